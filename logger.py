"""Logging setup for the laziest CLI tool"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from constants import APP_NAME

# Logs go to stderr so they never land inside a picker frame on stdout
_stderr_console = Console(stderr=True)


def setup_logger(name: str = APP_NAME, level: str = "WARNING",
                 console: Optional[Console] = None) -> logging.Logger:
    """Configure the application logger and return it"""
    logger = logging.getLogger(name)

    if not logger.handlers:  # Avoid duplicate handlers
        handler = RichHandler(
            console=console or _stderr_console,
            show_path=False,
            show_time=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter('%(name)s: %(message)s'))
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger of the application logger"""
    if name == APP_NAME or name.startswith(f"{APP_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_NAME}.{name}")
