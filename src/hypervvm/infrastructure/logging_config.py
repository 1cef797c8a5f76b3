"""
Logging configuration module.

Console records go to stderr through rich, so ``--json`` output on stdout
stays parseable; an optional log file always receives DEBUG in plain text.
The library itself only logs through module loggers; this is called by the
CLI.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Loggers of the transport stack that are chatty at DEBUG
NOISY_LOGGERS = ("winrm", "urllib3", "requests_ntlm", "requests_kerberos", "spnego")

FILE_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def console_handler(level: int, console: Console | None = None) -> RichHandler:
    """
    Build the stderr handler.

    Logger names are only shown at DEBUG, where records from the session,
    executor and lifecycle layers interleave.
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
        log_time_format="[%X]",
    )
    fmt = "[%(name)s] %(message)s" if level <= logging.DEBUG else "%(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(level)
    return handler


def setup_logging(level: int = logging.WARNING, log_file: str | None = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Console logging level (logging.DEBUG, logging.INFO, etc.)
        log_file: Optional path to a log file that always receives DEBUG
    """
    handlers: list[logging.Handler] = [console_handler(level)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATEFMT))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized at %s", logging.getLevelName(level))
    if log_file:
        logger.debug("Log file: %s", log_file)
