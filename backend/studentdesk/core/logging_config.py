"""
StudentDesk - Centralized Logging Configuration

Every record carries the current request id and user id (``-`` outside a
request). Development writes one readable line per record, production writes
one JSON object per record.

Usage:
    from studentdesk.core.logging_config import logger, get_logger

    logger.log_auth_event(event="login", success=False, user_email=email, reason="Invalid credentials")
    log = get_logger(__name__)
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from studentdesk.core.config import settings

ROOT_LOGGER_NAME = "studentdesk"

request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

# Attributes every LogRecord has; anything else on a record came from ``extra``
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "request_id", "user_id"}


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get()


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def generate_request_id() -> str:
    """Short random id used to correlate the log lines of one request"""
    return uuid.uuid4().hex[:12]


class RequestContextFilter(logging.Filter):
    """Stamp request_id / user_id from the context variables onto each record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log aggregation in production"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
            "request_id": getattr(record, "request_id", '-'),
            "user_id": getattr(record, "user_id", '-'),
        }

        entry.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith('_')
        )

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(entry, default=str)


class StudentDeskLogger(logging.Logger):
    """Logger with helpers for the structured events the API emits"""

    def _event(self, level: int, message: str, event_type: str, **fields: Any) -> None:
        self.log(level, message, extra={"event_type": event_type, **fields}, stacklevel=3)

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        """One line per finished HTTP request, level follows the status class"""
        level = logging.INFO
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING

        self._event(
            level,
            f"{method} {path} -> {status_code} in {duration_ms:.1f}ms",
            "http_request",
            http_method=method,
            http_path=path,
            http_status=status_code,
            duration_ms=round(duration_ms, 2),
            **kwargs
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """register / login / verify / authorize outcomes"""
        parts = [f"auth.{event}", "ok" if success else "denied"]
        if user_email:
            parts.append(user_email)
        if reason:
            parts.append(f"({reason})")

        self._event(
            logging.INFO if success else logging.WARNING,
            " ".join(parts),
            "auth",
            auth_event=event,
            auth_success=success,
            user_email=user_email,
            failure_reason=reason,
            **kwargs
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None,
                               **kwargs) -> None:
        """Unexpected failure, logged with its traceback"""
        self.error(
            f"Unhandled {type(error).__name__} in {context or 'unknown context'}: {error}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_context": context,
                **kwargs
            },
            stacklevel=2,
        )


def _build_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging() -> StudentDeskLogger:
    """(Re)configure the ``studentdesk`` logger tree from settings"""
    logging.setLoggerClass(StudentDeskLogger)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.__class__ = StudentDeskLogger
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.propagate = False
    root.handlers.clear()

    json_logs = settings.is_production()
    if json_logs:
        console_formatter = file_formatter = JSONFormatter()
    else:
        console_formatter = logging.Formatter("%(levelname)-8s [%(request_id)s] %(message)s")
        file_formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s [%(request_id)s] [%(user_id)s] "
            "%(name)s:%(lineno)d %(message)s"
        )

    root.addHandler(_build_handler(logging.StreamHandler(sys.stdout), console_formatter))

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        root.addHandler(_build_handler(rotating, file_formatter))

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root.debug("Logging initialized", extra={"json_logging": json_logs, "log_level": settings.LOG_LEVEL})
    return root


logger: StudentDeskLogger = setup_logging()


def get_logger(name: str) -> StudentDeskLogger:
    """Child of the application logger; ``studentdesk.x.y`` and ``x.y`` give the same logger"""
    if name == ROOT_LOGGER_NAME:
        return logger
    if name.startswith(ROOT_LOGGER_NAME + "."):
        name = name[len(ROOT_LOGGER_NAME) + 1:]
    child = logger.getChild(name)
    child.__class__ = StudentDeskLogger
    return child


__all__ = [
    'logger',
    'get_logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'generate_request_id',
    'StudentDeskLogger',
]
