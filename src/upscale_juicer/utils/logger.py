"""
Logging setup for Upscale Juicer using Python's standard logging
with JSON formatting for structured logs.

Log destinations:
- Console (stderr): Human-readable format for debugging
- logs/errors.jsonl: JSON format for error tracking, under the working
  directory unless UPSCALE_JUICER_LOG_DIR points elsewhere. The directory
  is created when the first error is written.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
import uuid

from io import TextIOWrapper
from pathlib import Path
from typing import Any

from pythonjsonlogger import json as jsonlogger

from upscale_juicer.core.constants import (
    DEFAULT_LOG_DIR_NAME,
    LOG_BACKUP_COUNT_ERRORS,
    LOG_DIR_ENV_VAR,
    LOG_MAX_SIZE,
    SESSION_ID_LENGTH,
)


class ErrorFilter(logging.Filter):
    """Filter to only allow ERROR and CRITICAL logs"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


class ErrorLogHandler(logging.handlers.RotatingFileHandler):
    """Rotating JSON error log that creates its directory on first write."""

    def _open(self) -> TextIOWrapper:
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


def _debug_from_env() -> bool:
    return os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")


def default_log_dir() -> Path:
    """Error log directory: UPSCALE_JUICER_LOG_DIR, else ./logs under the working directory."""
    override = os.getenv(LOG_DIR_ENV_VAR)
    return Path(override) if override else Path.cwd() / DEFAULT_LOG_DIR_NAME


def setup_logging(
    name: str = "upscale-juicer",
    debug: bool | None = None,
    log_dir: Path | None = None,
    error_log: bool = True,
) -> logging.Logger:
    """
    Set up logging with a console handler and a rotating JSON error log.

    Nothing is written to disk until the first error record.

    Args:
        name: Logger name
        debug: Enable debug logging (overrides DEBUG env var)
        log_dir: Directory for errors.jsonl (default: default_log_dir())
        error_log: Attach the JSON error log; False logs to the console only

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
    logger.propagate = False

    # Remove any existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if debug is None:
        debug = _debug_from_env()

    # --- Console Handler (Human-readable) ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)8s] %(name)s - %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logger.addHandler(console_handler)

    if not error_log:
        return logger

    # --- Error Log Handler (JSON) ---
    error_handler = ErrorLogHandler(
        (log_dir or default_log_dir()) / "errors.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_ERRORS,
        delay=True,
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.addFilter(ErrorFilter())
    error_handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(timestamp)s %(levelname)s %(name)s %(message)s %(session_id)s",
            timestamp=True,
        )
    )
    logger.addHandler(error_handler)

    return logger


class UpscaleLogger:
    """
    High-level logging interface for Upscale Juicer.
    Wraps standard Python logging and tags every record with a session id.
    Keyword arguments become structured fields on the record.
    """

    def __init__(self, name: str = "upscale-juicer", log_dir: Path | None = None, error_log: bool = True):
        self.logger = setup_logging(name, log_dir=log_dir, error_log=error_log)
        self.session_id = str(uuid.uuid4())[:SESSION_ID_LENGTH]

    def configure(self, debug: bool) -> None:
        """Re-apply handler levels once settings are loaded."""
        level = logging.DEBUG if debug else logging.INFO
        for handler in self.logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(level)

    def _extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        kwargs["session_id"] = self.session_id
        return kwargs

    def debug(self, message: str, **kwargs: Any) -> None:
        """Debug level logging"""
        self.logger.debug(message, extra=self._extra(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Info level logging"""
        self.logger.info(message, extra=self._extra(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Warning level logging"""
        self.logger.warning(message, extra=self._extra(kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Error level logging with optional exception info"""
        self.logger.error(message, extra=self._extra(kwargs), exc_info=exc_info)


# Global logger instance
logger = UpscaleLogger()
