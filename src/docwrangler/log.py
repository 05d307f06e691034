"""Logging setup for the docwrangler package."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from docwrangler.config.models import LoggingSettings

PACKAGE_LOGGER = "docwrangler"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s"


def configure_logging(
    settings: Optional[LoggingSettings] = None,
    *,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach console and optional rotating file handlers to the package logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Level and log file options.
        console: Console that receives log output; defaults to stderr.

    Returns:
        logging.Logger: The configured package logger.
    """
    settings = settings or LoggingSettings()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, settings.level.upper(), logging.WARNING))

    for handler in list(logger.handlers):
        if getattr(handler, "_docwrangler", False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handlers: list[logging.Handler] = [console_handler]

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler._docwrangler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "PACKAGE_LOGGER"]
