"""Logging utilities for svgpack commands."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "svgpack"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the svgpack hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the svgpack logger with console output and an optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # The dev server reconfigures on every restart; avoid stacking handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[svgpack] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def log_exception(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """Log ``exc`` with a traceback only when debug output is enabled."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.exception("%s: %s", message, exc)
    else:
        logger.error("%s: %s", message, exc)


__all__ = ["configure_logging", "get_logger", "log_exception"]
