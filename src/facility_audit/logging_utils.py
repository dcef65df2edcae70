"""Logging setup for the facility-audit command line."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from facility_audit.config import load_settings

_logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Client libraries that log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "google_genai")


def configure_logging(level_name: str | None = None) -> None:
    """Configure stderr (and optional file) logging.

    ``level_name`` overrides ``LOG_LEVEL``. Request logs from the HTTP and AI
    client libraries only show at DEBUG.
    """
    settings = load_settings()
    level = getattr(logging, (level_name or settings.logging.level).upper(), logging.INFO)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream_handler]

    if settings.logging.file:
        try:
            Path(settings.logging.file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.logging.file)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as exc:
            _logger.warning("Failed to open log file %s: %s", settings.logging.file, exc)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
