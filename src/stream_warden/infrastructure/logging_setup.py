"""Logging configuration."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from stream_warden.infrastructure.config.models import LoggingConfig

ROOT_LOGGER = "stream_warden"


def setup_logging(
    config: LoggingConfig,
    console: Optional[Console] = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the package logger from the logging section of the config.

    Console output goes through rich; a rotating log file is added when
    ``file_path`` is set. Calling it again replaces the handlers.

    Args:
        config: Logging configuration
        console: Console for the rich handler; None disables console logging
        verbose: Force DEBUG level

    Returns:
        The package logger
    """
    package_logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    level = logging.DEBUG if verbose else getattr(logging, config.level)
    package_logger.setLevel(level)
    package_logger.propagate = False

    if console is not None:
        rich_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
        rich_handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(rich_handler)

    if config.file_path:
        log_path = Path(config.file_path).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        package_logger.addHandler(file_handler)

    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())

    return package_logger
