"""
Logging setup for the monitor.

Every event goes to the console (through rich) and is appended as one
timestamped line to the configured log file.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "auto_push"
FILE_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_path: Optional[Path] = None,
    debug: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        log_path: Append-only log file. Parent directories are created.
        debug: Log at DEBUG level instead of INFO.
        console: Rich console for terminal output.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(
        RichHandler(
            console=console or Console(),
            show_path=False,
            log_time_format=f"[{DATE_FORMAT}]",
        )
    )

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger
