"""CLI command functions, wired onto the app in hypervvm.interface.cli.app."""
