"""Allow ``python -m hypervvm``."""

from hypervvm.interface.cli import main

if __name__ == "__main__":
    main()
