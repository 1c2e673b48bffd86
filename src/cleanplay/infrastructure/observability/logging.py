"""Structured logging with JSON output and per-task correlation ids."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me - there are no HTTP requests on the hot path here, the "requests" are
# scheduler ticks, per-user checks and queue jobs. Each of those sets its own
# correlation id so you can grep one user's whole check out of interleaved logs.
# contextvars is asyncio-safe: every task started by gather() gets a copy of the context.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="")
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("log_user_id", default="")


def get_correlation_id() -> str:
    """Current correlation id, empty string if none was set."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation id for the current context.

    Args:
        correlation_id: Id to set. A short random id is generated when None

    Returns:
        The id that was set
    """
    if correlation_id is None:
        correlation_id = uuid.uuid4().hex[:12]
    correlation_id_var.set(correlation_id)
    return correlation_id


def bind_user(user_id: str) -> None:
    """Tag every following record of the current task with the user being processed."""
    user_id_var.set(user_id)


class LogContextFilter(logging.Filter):
    """Attach correlation_id and user_id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.user_id = user_id_var.get()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Text formatter that renders exception chains compactly.

    Only frames from the cleanplay package are shown; library frames are noise
    when a Spotify call times out for the hundredth time.

    Example output:
    12:00:01 │ WARNING │ cleanplay.application.services.error_handler:88 │ ...
    ╰─► httpx.ReadTimeout: timed out
        File "spotify_client.py", line 120, in _api_request
          response = await client.request(method, url, headers=headers, **kwargs)
    """

    def formatException(self, ei: Any) -> str:
        _, exc_value, _ = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            if exc.__traceback__ is None:
                continue
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename or "cleanplay" not in frame.filename:
                    continue
                lines.append(f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}')
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON lines with level, logger and whatever log context is bound."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["line"] = record.lineno

        # Empty context values are left out so idle scheduler lines stay short.
        for key in ("correlation_id", "user_id"):
            value = getattr(record, key, "")
            if value:
                log_record[key] = value
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


# Call ONCE at startup (lifespan). Removes existing root handlers first so tests and
# reloads don't double-log. Third-party loggers are turned down, otherwise every
# poll of every user shows up as an httpx INFO line.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "cleanplay",
) -> None:
    """Configure root logging.

    Args:
        log_level: Logging level name (DEBUG, INFO, ...)
        json_format: Emit JSON lines instead of human readable text
        app_name: Application name included in the startup record
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(LogContextFilter())

    if json_format:
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for noisy in ("httpx", "httpcore", "asyncio", "redis", "uvicorn.access", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
