"""
Structured logging using structlog with:
- JSON/console switchable format
- Request context (request_id, correlation_id, aggregated context) via contextvars
- PII redaction (emails, E.164 phones/MSISDN, cards, SSN) outside local/dev
- Safe defaults for Uvicorn/SQLAlchemy

"""

from __future__ import annotations

import datetime
import logging
import logging.config
import re
import sys
from typing import Any, Dict, Iterable, List, Optional

import structlog
from pythonjsonlogger import jsonlogger

from src.bootstrap.config import Settings, get_settings


# ---------------------------------------------------------------------
# PII redaction
# ---------------------------------------------------------------------


class PIIRedactionProcessor:
    """
    Structlog processor to redact PII from strings inside event_dict (recursively).
    - Email: keep domain, redact local-part.
    - Phone/MSISDN (E.164 preferred): keep CC and last 4.
    - Credit card/SSN: full redact.
    - Keys in `masked_keys` (e.g. the bound "user.name"): full redact.
    Tracing ids and timestamps are left alone so lines stay joinable.
    """
    P_EMAIL = re.compile(r"\b([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")
    P_MSISDN = re.compile(r"\+?[1-9]\d{7,14}")
    P_PHONE = re.compile(r"\b(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")
    P_CC = re.compile(r"\b(?:\d[ -]*?){13,19}\b")
    P_SSN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")

    EXEMPT_KEYS = frozenset({
        "timestamp", "context.timestamp", "request_id", "correlation_id",
        "request.id", "error_id", "activity_id", "exception.id", "app.version",
        "app.commit", "app.build_date",
    })
    MASKED_KEYS = frozenset({"user.name"})

    def __init__(self, masked_keys: Optional[Iterable[str]] = None) -> None:
        self._masked_keys = frozenset(masked_keys) if masked_keys is not None else self.MASKED_KEYS

    def __call__(self, logger, method_name, event_dict):
        redacted = {}
        for key, value in event_dict.items():
            if key in self.EXEMPT_KEYS or value is None:
                redacted[key] = value
            elif key in self._masked_keys:
                redacted[key] = "***REDACTED***"
            else:
                redacted[key] = self._redact(value)
        return redacted

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._redact(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        if isinstance(value, str):
            return self._redact_str(value)
        return value

    def _redact_str(self, s: str) -> str:
        # Emails: mask local-part
        s = self.P_EMAIL.sub(lambda m: f"***@{m.group(2)}", s)

        def _mask_msisdn(m: re.Match) -> str:
            g = m.group(0)
            return f"{g[:2]}****{g[-4:]}" if len(g) >= 6 else "***"
        s = self.P_MSISDN.sub(_mask_msisdn, s)
        s = self.P_PHONE.sub(_mask_msisdn, s)
        # Cards/SSN: full redact
        s = self.P_CC.sub("***REDACTED***", s)
        s = self.P_SSN.sub("***REDACTED***", s)
        return s


# ---------------------------------------------------------------------
# Context processors
# ---------------------------------------------------------------------


def add_timestamp(logger, method_name, event_dict):
    # UTC ISO8601 Z
    event_dict.setdefault(
        "timestamp",
        datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    return event_dict


# Keys the processor chain owns; bound context must not shadow them
RESERVED_LOG_KEYS = frozenset({"timestamp", "event", "level", "logger", "exc_info", "stack_info"})


# ---------------------------------------------------------------------
# Public helpers to use from API/worker code
# ---------------------------------------------------------------------


def bind_request_context(
    *,
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Bind standard request context fields (call in middleware/route handlers)."""
    payload = {
        k: v
        for k, v in dict(
            request_id=request_id,
            correlation_id=correlation_id,
            path=path,
            method=method,
        ).items()
        if v is not None
    }
    if extras:
        payload.update(extras)
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


def clear_request_context() -> None:
    """Clear all bound contextvars (call at start/end of request/worker job)."""
    structlog.contextvars.clear_contextvars()


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------

def _ensure_log_format(settings: Settings) -> str:
    """
    Determine output format:
      - If settings has .log_format, use it ("json"|"console").
      - Else default: "console" for local/dev, "json" for staging/prod.
    """
    if settings.log_format in ("json", "console"):
        return settings.log_format
    return "console" if settings.is_local or settings.is_dev else "json"


def _level_name_to_int(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def build_processors(settings: Settings, log_format: str) -> List[Any]:
    """structlog processor chain; PII redaction runs only in prod-like environments."""
    is_prod_like = settings.is_prod or settings.is_staging
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    # Redact only outside of local/dev to help debugging locally
    if is_prod_like:
        processors.append(PIIRedactionProcessor())
    processors += [
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        # Renderer
        (structlog.processors.JSONRenderer(default=str) if log_format == "json" else structlog.dev.ConsoleRenderer()),
    ]
    return processors


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Idempotent structured logging configuration."""
    settings = settings or get_settings()
    log_format = _ensure_log_format(settings)
    is_prod_like = settings.is_prod or settings.is_staging

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
            "console": {
                "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if log_format == "json" else "console",
                "stream": sys.stdout,
            },
        },
        "root": {
            "level": _level_name_to_int(settings.log_level),
            "handlers": ["console"],
        },
        "loggers": {
            # Quiet noisy libs, but keep errors
            "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "sqlalchemy.engine": {
                "level": "WARNING" if is_prod_like or not settings.debug else "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(logging_config)

    processors = build_processors(settings, log_format)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        # tests swap processors (capture_logs), which cached loggers would ignore
        cache_logger_on_first_use=not settings.is_testing,
    )

    # Clear any inherited context
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
