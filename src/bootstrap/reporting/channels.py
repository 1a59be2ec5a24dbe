"""
Exception channels.

A channel receives a reported exception together with the request scope it
was raised in. Channels are independent: the reporter isolates each one.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import sentry_sdk

from src.bootstrap.context.aggregator import ContextAggregator
from src.bootstrap.context.scope import RequestScope
from src.bootstrap.database.repositories import ExceptionRepository
from src.bootstrap.exceptions import AppException
from src.bootstrap.logging import get_logger
from src.bootstrap.reporting.records import ExceptionRecord, exception_class, exception_location

logger = get_logger(__name__)


class ExceptionChannel(Protocol):
    async def send(self, exception: BaseException, scope: Optional[RequestScope]) -> None: ...


class DatabaseChannel:
    """
    Persists one ExceptionRecord per reported exception.

    Best effort: extraction or write failures are logged and swallowed.
    """

    def __init__(self, repository: ExceptionRepository) -> None:
        self._repository = repository

    async def send(self, exception: BaseException, scope: Optional[RequestScope]) -> None:
        try:
            record = ExceptionRecord.from_exception(exception, scope)
            await self._repository.add(record)
        except Exception as e:
            logger.error(
                "exception_persist_failed",
                error=str(e),
                error_type=type(e).__name__,
                exception_class=exception_class(exception),
            )


class ContextChannel:
    """
    Writes a short exception summary under the `exception` context key so log
    lines emitted later in the same request carry it.
    """

    def __init__(self, aggregator: ContextAggregator) -> None:
        self._aggregator = aggregator

    async def send(self, exception: BaseException, scope: Optional[RequestScope]) -> None:
        if scope is None:
            return
        file, line = exception_location(exception)
        summary: Dict[str, Any] = {
            "type": exception_class(exception),
            "message": str(exception),
            "file": file,
            "line": line,
        }
        if isinstance(exception, AppException):
            summary["id"] = exception.get_error_id()
        self._aggregator.set("exception", summary, scope=scope)


class LogChannel:
    """Emits one structured error line per reported exception."""

    async def send(self, exception: BaseException, scope: Optional[RequestScope]) -> None:
        logger.error(
            "exception_reported",
            exception_class=exception_class(exception),
            message=str(exception),
            error_id=exception.get_error_id() if isinstance(exception, AppException) else None,
            request_id=scope.trace.request_id if scope else None,
            correlation_id=scope.trace.correlation_id if scope else None,
            exc_info=exception,
        )


class SentryChannel:
    """Forwards the exception to Sentry with tracing tags and the aggregate as contexts."""

    async def send(self, exception: BaseException, scope: Optional[RequestScope]) -> None:
        with sentry_sdk.new_scope() as sentry_scope:
            if scope is not None:
                for name, value in scope.trace.as_dict().items():
                    sentry_scope.set_tag(name, value)
                for key, value in scope.context.all().items():
                    sentry_scope.set_context(key, value if isinstance(value, dict) else {"value": value})
                if scope.user.id:
                    sentry_scope.set_user({"id": scope.user.id, "email": scope.user.email})
            if isinstance(exception, AppException):
                sentry_scope.set_tag("error_id", exception.get_error_id())
            sentry_sdk.capture_exception(exception)
