"""Logging setup driven by the `logging` configuration section."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from invoicesort.config.models import LoggingSettings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_HANDLER_MARKER = "_invoicesort_handler"


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Attach console and optional rotating file handlers to the package logger.

    Calling this again replaces the handlers it installed earlier.

    Args:
        settings: Level, log file and rotation settings.

    Returns:
        logging.Logger: The configured `invoicesort` logger.
    """
    logger = logging.getLogger("invoicesort")
    logger.setLevel(settings.level)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.file is not None:
        log_path = settings.file.expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_path,
                maxBytes=settings.max_size_mb * 1024 * 1024,
                backupCount=settings.backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARKER, True)
        logger.addHandler(handler)
    return logger


__all__ = ["LOG_FORMAT", "configure_logging"]
