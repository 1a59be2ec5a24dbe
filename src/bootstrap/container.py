"""
Service wiring.

Registers the built-in providers, sinks and channels under their config ids
and resolves the configured lists once, at startup, into concrete instances.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from src.bootstrap import registry
from src.bootstrap.activity.logger import ActivityLogger, ActivityLogStatus
from src.bootstrap.config import Settings
from src.bootstrap.context.aggregator import ContextAggregator
from src.bootstrap.context.providers import (
    AppProvider,
    CorrelationProvider,
    HostProvider,
    RequestProvider,
    TimestampProvider,
    UserProvider,
)
from src.bootstrap.context.sinks import LogSink
from src.bootstrap.database.engine import Database
from src.bootstrap.database.repositories import (
    ActivityRepository,
    ExceptionRepository,
    SQLAlchemyActivityRepository,
    SQLAlchemyExceptionRepository,
)
from src.bootstrap.logging import get_logger
from src.bootstrap.reporting.channels import ContextChannel, DatabaseChannel, LogChannel, SentryChannel
from src.bootstrap.reporting.reporter import ExceptionReporter
from src.bootstrap.tracing import AppVersionSource, CorrelationIdSource, RequestIdSource, Tracer

logger = get_logger(__name__)


def _register_defaults() -> None:
    registry.providers.register("timestamp", lambda **_: TimestampProvider())
    registry.providers.register("app", lambda *, settings, origin, **_: AppProvider(settings, origin=origin))
    registry.providers.register("host", lambda **_: HostProvider())
    registry.providers.register("request", lambda *, settings, **_: RequestProvider(settings.app_locale))
    registry.providers.register("user", lambda **_: UserProvider())
    registry.providers.register("correlation", lambda **_: CorrelationProvider())

    registry.sinks.register("log", lambda **_: LogSink())

    registry.channels.register("context", lambda *, aggregator, **_: ContextChannel(aggregator))
    registry.channels.register("database", lambda *, exception_repository, **_: DatabaseChannel(exception_repository))
    registry.channels.register("log", lambda **_: LogChannel())
    registry.channels.register("sentry", lambda **_: SentryChannel())


_register_defaults()


@dataclass
class Services:
    settings: Settings
    database: Optional[Database]
    tracer: Tracer
    aggregator: ContextAggregator
    reporter: ExceptionReporter
    activity_logger: ActivityLogger
    activity_repository: ActivityRepository
    exception_repository: ExceptionRepository


def build_tracer(settings: Settings) -> Tracer:
    return Tracer([
        RequestIdSource(settings.tracing_request_id_header),
        CorrelationIdSource(settings.tracing_correlation_id_header),
        AppVersionSource(settings.app_version, settings.tracing_app_version_header),
    ])


def _channel_ids(settings: Settings) -> List[str]:
    ids = list(settings.exception_channels)
    if settings.sentry_dsn:
        if "sentry" not in ids:
            ids.append("sentry")
    elif "sentry" in ids:
        logger.warning("sentry_channel_skipped", reason="SENTRY_DSN not set")
        ids.remove("sentry")
    return ids


def build_services(
    settings: Settings,
    *,
    origin: str = "web",
    database: Optional[Database] = None,
    activity_repository: Optional[ActivityRepository] = None,
    exception_repository: Optional[ExceptionRepository] = None,
) -> Services:
    """
    Resolve configuration into ready-to-use services.

    Repositories default to SQLAlchemy ones on `database` (created from
    settings when not given); pass your own to run without a database.
    """
    if database is None and (activity_repository is None or exception_repository is None):
        database = Database(settings)
    if activity_repository is None:
        activity_repository = SQLAlchemyActivityRepository(database.session_factory)
    if exception_repository is None:
        exception_repository = SQLAlchemyExceptionRepository(database.session_factory)

    aggregator = ContextAggregator(
        registry.providers.resolve_all(settings.context_providers, settings=settings, origin=origin),
        registry.sinks.resolve_all(settings.context_sinks, settings=settings),
        enabled=settings.context_enabled,
    )
    reporter = ExceptionReporter(
        registry.channels.resolve_all(
            _channel_ids(settings),
            settings=settings,
            aggregator=aggregator,
            exception_repository=exception_repository,
        )
    )
    activity_logger = ActivityLogger(
        activity_repository,
        status=ActivityLogStatus(settings.activity_logger_enabled),
        default_log_name=settings.activity_logger_default_log_name,
    )

    logger.info(
        "services_built",
        providers=list(settings.context_providers),
        channels=[type(c).__name__ for c in reporter.channels],
    )
    return Services(
        settings=settings,
        database=database,
        tracer=build_tracer(settings),
        aggregator=aggregator,
        reporter=reporter,
        activity_logger=activity_logger,
        activity_repository=activity_repository,
        exception_repository=exception_repository,
    )
