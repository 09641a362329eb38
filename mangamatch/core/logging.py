"""Logging configuration.

Every event is rendered by structlog through the stdlib logging bridge, so
library loggers and ``structlog.get_logger`` output share one handler.
Exceptions are attached as structured fields rather than a text blob.
"""

from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any

import structlog

from mangamatch.core.config import Settings, get_settings

if TYPE_CHECKING:
    from structlog.types import EventDict

LOG_FILENAME = "mangamatch.json.log"

ExcInfo = tuple[type[BaseException] | None, BaseException | None, TracebackType | None]
TracebackFrame = dict[str, str | int | None]
ExceptionDetails = dict[str, None | str | list[TracebackFrame]]

_NO_EXCEPTION = (None, None, None)


def format_exception_for_json(exc_info: ExcInfo | None) -> ExceptionDetails:
    """Structured representation of an exception.

    Args:
        exc_info: Exception info tuple from sys.exc_info() or None

    Returns:
        exception_type, exception_message and exception_module, plus
        traceback_frames and traceback_text when a traceback is present.
        Empty when there is no exception.
    """
    if exc_info is None or exc_info == _NO_EXCEPTION:
        return {}

    exc_type, exc_value, exc_tb = exc_info
    details: ExceptionDetails = {
        "exception_type": exc_type.__name__ if exc_type else None,
        "exception_message": str(exc_value) if exc_value else None,
        "exception_module": exc_type.__module__ if exc_type else None,
    }
    if exc_tb is None:
        return details

    frames: list[TracebackFrame] = []
    for summary in traceback.extract_tb(exc_tb):
        frame: TracebackFrame = {
            "filename": summary.filename,
            "lineno": summary.lineno,
            "function": summary.name,
        }
        if summary.line:
            frame["source_line"] = summary.line.strip()
        frames.append(frame)

    details["traceback_frames"] = frames
    details["traceback_text"] = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    return details


def _as_exc_info(value: Any) -> ExcInfo | None:
    if value is True:
        return sys.exc_info()
    if isinstance(value, BaseException):
        return (type(value), value, value.__traceback__)
    if isinstance(value, tuple) and len(value) == 3:
        return value
    return None


def exception_processor(
    logger: structlog.BoundLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that replaces exc_info with structured fields.

    Handles ``logger.exception()``, ``exc_info=True``, an exception instance
    passed as ``exc_info`` and an exception instance passed as ``exception``.
    """
    details = format_exception_for_json(_as_exc_info(event_dict.pop("exc_info", None)))
    if details:
        event_dict["exception"] = details
        if details.get("exception_type") and details.get("exception_message"):
            event_dict["exception_summary"] = (
                f"{details['exception_type']}: {details['exception_message']}"
            )

    error = event_dict.get("exception")
    if isinstance(error, BaseException):
        event_dict["exception"] = format_exception_for_json(
            (type(error), error, error.__traceback__)
        )

    return event_dict


def _open_handler(logs_dir: Path | None) -> tuple[logging.Handler, Path | None]:
    if logs_dir:
        log_file = logs_dir / LOG_FILENAME
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(log_file, encoding="utf-8"), log_file
        except OSError as e:
            sys.stderr.write(f"Warning: Failed to setup file logging: {e}\n")
    return logging.StreamHandler(sys.stdout), None


def setup_logging(
    debug: bool = False,
    logs_dir: Path | None = None,
    level: str | None = None,
) -> Path | None:
    """Configure structlog and the root stdlib logger.

    Events go to stdout, pretty-printed in debug mode and JSON otherwise. When
    ``logs_dir`` is given they are written as JSON to ``mangamatch.json.log``
    in that directory instead. An unwritable directory falls back to stdout.

    Args:
        debug: Log at DEBUG level, which includes similarity breakdowns
        logs_dir: Optional directory for the JSON log file
        level: Level name used outside debug mode (defaults to INFO)

    Returns:
        Path of the log file, or None when logging to stdout
    """
    log_level = logging.DEBUG if debug else logging.getLevelName(level or "INFO")
    handler, log_file = _open_handler(logs_dir)
    handler.setLevel(log_level)
    logging.basicConfig(format="%(message)s", level=log_level, handlers=[handler], force=True)

    renderer: Any
    if debug and log_file is None:
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            exception_processor,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    structlog.get_logger("mangamatch.logging").info(
        "Logging configured",
        level=logging.getLevelName(log_level),
        debug=debug,
        log_file=str(log_file) if log_file else None,
    )
    return log_file


def configure_logging(settings: Settings | None = None) -> Path | None:
    """Set up logging from Settings.

    Debug output follows ``Settings.is_debug`` (development env or DEBUG
    level). Otherwise ``log_level`` applies. JSON goes to ``logs_dir`` when
    it is set.
    """
    settings = settings or get_settings()
    return setup_logging(
        debug=settings.is_debug,
        logs_dir=settings.logs_dir,
        level=settings.log_level,
    )
