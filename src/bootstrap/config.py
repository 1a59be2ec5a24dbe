"""
Centralized configuration for the request context bootstrap.

- Pure Python (dataclasses + stdlib), no Pydantic.
- Loads from OS env, plus a .env file (python-dotenv) when one exists.
- Strong typing & validation in __post_init__.
- Immutable singleton via functools.lru_cache.
- Secrets never logged (masked).
"""

from __future__ import annotations

import functools
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Tuple, cast
from urllib.parse import urlparse

from dotenv import load_dotenv


# ------------------------------------------------------------------------------
# .env loader
# ------------------------------------------------------------------------------
def _maybe_load_dotenv(env_path: Path) -> None:
    if not env_path.exists():
        return
    # OS env wins over the file
    load_dotenv(dotenv_path=str(env_path), override=False)


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def _mask_secret(value: Optional[str]) -> str:
    if not value:
        return "<unset>"
    if len(value) <= 8:
        return "***"
    return value[:2] + "…" + value[-2:]


def _get_env_str(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    v = os.getenv(key, default)
    if required and (v is None or str(v).strip() == ""):
        raise ValueError(f"Missing required env var: {key}")
    return v


def _get_env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip().lower()
    return v in {"1", "true", "t", "yes", "y", "on"}


def _get_env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be an integer")


def _get_env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be a number")


def _get_env_list(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Comma separated list; order is kept, blanks dropped."""
    v = os.getenv(key)
    if v is None:
        return default
    return tuple(item.strip() for item in v.split(",") if item.strip())


def _validate_choice(value: str, *, choices: tuple[str, ...], key: str) -> str:
    if value not in choices:
        raise ValueError(f"{key} must be one of {choices}, got {value!r}")
    return value


def _validate_url(value: Optional[str], *, key: str, allowed_schemes: tuple[str, ...]) -> Optional[str]:
    if value in (None, ""):
        return None
    parsed = urlparse(value)
    if parsed.scheme not in allowed_schemes or not parsed.netloc:
        raise ValueError(f"{key} must be a valid URL with scheme in {allowed_schemes}")
    return value


def _validate_database_url(value: str, *, key: str) -> str:
    if not value.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
        raise ValueError(f"{key} must start with postgresql+asyncpg:// or sqlite+aiosqlite://")
    return value


def _validate_header(value: str, *, key: str) -> str:
    if not re.fullmatch(r"[A-Za-z0-9-]+", value or ""):
        raise ValueError(f"{key} must be a valid HTTP header name, got {value!r}")
    return value


# ------------------------------------------------------------------------------
# Settings dataclass (immutable)
# ------------------------------------------------------------------------------
EnvName = Literal["local", "dev", "staging", "prod"]
LogFormat = Literal["json", "console"]

DEFAULT_CONTEXT_PROVIDERS: Tuple[str, ...] = ("timestamp", "app", "host", "request", "user", "correlation")
DEFAULT_CONTEXT_SINKS: Tuple[str, ...] = ("log",)
DEFAULT_EXCEPTION_CHANNELS: Tuple[str, ...] = ("context", "database", "log")


@dataclass(frozen=True)
class Settings:
    # Environment
    environment: EnvName = "local"
    debug: bool = False
    is_testing: bool = False

    # Application identity (feeds the "app" context subtree)
    app_name: str = "bootstrap"
    app_role: Optional[str] = None
    app_version: str = "0.0.0"
    app_commit: Optional[str] = None
    app_build_date: Optional[str] = None
    app_url: Optional[str] = None
    app_timezone: str = "UTC"
    app_locale: str = "en"

    # Database
    database_url: str = "sqlite+aiosqlite:///./bootstrap.db"
    database_auto_create: bool = True
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Observability
    log_level: str = "INFO"
    log_format: Optional[LogFormat] = None
    sentry_dsn: Optional[str] = None
    sentry_traces_sample_rate: float = 0.0

    # Context aggregation
    context_enabled: bool = True
    context_providers: Tuple[str, ...] = DEFAULT_CONTEXT_PROVIDERS
    context_sinks: Tuple[str, ...] = DEFAULT_CONTEXT_SINKS

    # Exception reporting
    exception_channels: Tuple[str, ...] = DEFAULT_EXCEPTION_CHANNELS

    # Activity log
    activity_logger_enabled: bool = True
    activity_logger_default_log_name: str = "default"

    # Tracing headers
    tracing_request_id_header: str = "X-Request-Id"
    tracing_correlation_id_header: str = "X-Correlation-Id"
    tracing_app_version_header: str = "X-App-Version"
    tracing_echo_headers: bool = True

    # HTTP
    force_https: bool = False
    force_https_environments: Tuple[str, ...] = ("prod", "staging")

    # Derived/computed flags (filled in __post_init__)
    is_prod: bool = field(init=False)
    is_staging: bool = field(init=False)
    is_dev: bool = field(init=False)
    is_local: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "environment",
            _validate_choice(self.environment, choices=("local", "dev", "staging", "prod"), key="ENVIRONMENT"),
        )
        if self.log_format is not None:
            _validate_choice(self.log_format, choices=("json", "console"), key="LOG_FORMAT")

        object.__setattr__(self, "database_url", _validate_database_url(self.database_url, key="DATABASE_URL"))
        _validate_url(self.app_url, key="APP_URL", allowed_schemes=("http", "https"))
        _validate_url(self.sentry_dsn, key="SENTRY_DSN", allowed_schemes=("http", "https"))

        if not self.app_name.strip():
            raise ValueError("APP_NAME must be set and non-empty")
        if not self.activity_logger_default_log_name.strip():
            raise ValueError("ACTIVITY_LOGGER_DEFAULT_LOG_NAME must be non-empty")
        if not 0.0 <= self.sentry_traces_sample_rate <= 1.0:
            raise ValueError("SENTRY_TRACES_SAMPLE_RATE must be between 0 and 1")

        _validate_header(self.tracing_request_id_header, key="TRACING_REQUEST_ID_HEADER")
        _validate_header(self.tracing_correlation_id_header, key="TRACING_CORRELATION_ID_HEADER")
        _validate_header(self.tracing_app_version_header, key="TRACING_APP_VERSION_HEADER")

        if not re.fullmatch(r"(?i)DEBUG|INFO|WARNING|ERROR|CRITICAL", self.log_level.strip()):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

        # Derived flags
        env = self.environment
        object.__setattr__(self, "is_prod", env == "prod")
        object.__setattr__(self, "is_staging", env == "staging")
        object.__setattr__(self, "is_dev", env == "dev")
        object.__setattr__(self, "is_local", env == "local")

    @property
    def should_force_https(self) -> bool:
        return self.force_https and self.environment in self.force_https_environments

    # Safe dict (for debug prints without secrets)
    def safe_dict(self) -> dict:
        return {
            "environment": self.environment,
            "debug": self.debug,
            "is_testing": self.is_testing,
            "app_name": self.app_name,
            "app_version": self.app_version,
            "database_url": "<masked>" if self.database_url else "<unset>",
            "database_auto_create": self.database_auto_create,
            "log_level": self.log_level,
            "log_format": self.log_format or "<auto>",
            "sentry_dsn": _mask_secret(self.sentry_dsn),
            "context_enabled": self.context_enabled,
            "context_providers": list(self.context_providers),
            "context_sinks": list(self.context_sinks),
            "exception_channels": list(self.exception_channels),
            "activity_logger_enabled": self.activity_logger_enabled,
            "activity_logger_default_log_name": self.activity_logger_default_log_name,
            "force_https": self.should_force_https,
        }


# ------------------------------------------------------------------------------
# Loader (singleton)
# ------------------------------------------------------------------------------
_logger = logging.getLogger(__name__)


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build a fresh Settings from the current environment."""
    env_file = env_file or Path(__file__).resolve().parent.parent.parent / ".env"
    _maybe_load_dotenv(env_file)

    return Settings(
        environment=cast(EnvName, _get_env_str("ENVIRONMENT", "local") or "local"),
        debug=_get_env_bool("DEBUG", False),
        is_testing=_get_env_bool("IS_TESTING", False),
        app_name=_get_env_str("APP_NAME", "bootstrap") or "bootstrap",
        app_role=_get_env_str("APP_ROLE", None),
        app_version=_get_env_str("APP_VERSION", "0.0.0") or "0.0.0",
        app_commit=_get_env_str("APP_COMMIT", None),
        app_build_date=_get_env_str("APP_BUILD_DATE", None),
        app_url=_get_env_str("APP_URL", None),
        app_timezone=_get_env_str("APP_TIMEZONE", "UTC") or "UTC",
        app_locale=_get_env_str("APP_LOCALE", "en") or "en",
        database_url=_get_env_str("DATABASE_URL", "sqlite+aiosqlite:///./bootstrap.db") or "",
        database_auto_create=_get_env_bool("DATABASE_AUTO_CREATE", True),
        database_pool_size=_get_env_int("DATABASE_POOL_SIZE", 5),
        database_max_overflow=_get_env_int("DATABASE_MAX_OVERFLOW", 10),
        log_level=_get_env_str("LOG_LEVEL", "INFO") or "INFO",
        log_format=cast(Optional[LogFormat], _get_env_str("LOG_FORMAT", None)),
        sentry_dsn=_get_env_str("SENTRY_DSN", None),
        sentry_traces_sample_rate=_get_env_float("SENTRY_TRACES_SAMPLE_RATE", 0.0),
        context_enabled=_get_env_bool("CONTEXT_ENABLED", True),
        context_providers=_get_env_list("CONTEXT_PROVIDERS", DEFAULT_CONTEXT_PROVIDERS),
        context_sinks=_get_env_list("CONTEXT_SINKS", DEFAULT_CONTEXT_SINKS),
        exception_channels=_get_env_list("EXCEPTION_CHANNELS", DEFAULT_EXCEPTION_CHANNELS),
        activity_logger_enabled=_get_env_bool("ACTIVITY_LOGGER_ENABLED", True),
        activity_logger_default_log_name=_get_env_str("ACTIVITY_LOGGER_DEFAULT_LOG_NAME", "default") or "default",
        tracing_request_id_header=_get_env_str("TRACING_REQUEST_ID_HEADER", "X-Request-Id") or "",
        tracing_correlation_id_header=_get_env_str("TRACING_CORRELATION_ID_HEADER", "X-Correlation-Id") or "",
        tracing_app_version_header=_get_env_str("TRACING_APP_VERSION_HEADER", "X-App-Version") or "",
        tracing_echo_headers=_get_env_bool("TRACING_ECHO_HEADERS", True),
        force_https=_get_env_bool("FORCE_HTTPS", False),
        force_https_environments=_get_env_list("FORCE_HTTPS_ENVIRONMENTS", ("prod", "staging")),
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = load_settings()
    _logger.info("Settings loaded", extra={"settings": settings.safe_dict()})
    return settings
