"""
Structured logging using structlog.

- JSON or console rendering, switched by LOG_JSON
- Request context (user_id, role, path) merged from contextvars
- PAN and email redaction on every event before rendering
"""

import logging
import logging.config
import re
import sys
from typing import Any, Iterable, Optional

import structlog

from edufin.core.config import settings


class PIIRedactionProcessor:
    """Structlog processor that masks PAN numbers and email local-parts inside event_dict."""

    P_PAN = re.compile(r"\b[A-Z]{5}[0-9]{4}[A-Z]\b")
    P_EMAIL = re.compile(r"\b([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")

    def __call__(self, logger, method_name, event_dict):
        return {k: self._redact(v) for k, v in event_dict.items()}

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._redact(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        if isinstance(value, str):
            value = self.P_PAN.sub(lambda m: f"{m.group(0)[:2]}******{m.group(0)[-2:]}", value)
            return self.P_EMAIL.sub(lambda m: f"***@{m.group(2)}", value)
        return value


def bind_request_context(
    *,
    user_id: Optional[str] = None,
    role: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
) -> None:
    """Bind standard request fields for every log line emitted while handling the request."""
    payload = {
        k: v
        for k, v in dict(user_id=user_id, role=role, path=path, method=method).items()
        if v is not None
    }
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def configure_logging() -> None:
    """Idempotent structured logging configuration."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": "%(message)s"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "plain",
                    "stream": sys.stdout,
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
                "sqlalchemy.engine": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            },
        }
    )

    processors: Iterable[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        PIIRedactionProcessor(),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        (structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
