"""
Exception records.

Flattens a raised exception, its cause chain and selected context values into
the immutable record persisted by the database channel.
"""
from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple
from uuid import UUID, uuid4

from src.bootstrap.context.scope import ContextData, RequestScope
from src.bootstrap.exceptions import AppException
from src.bootstrap.tracing import TraceIdentity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def exception_class(exc: BaseException) -> str:
    cls = type(exc)
    if cls.__module__ in ("builtins", "__main__"):
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def exception_location(exc: BaseException) -> Tuple[Optional[str], Optional[int]]:
    """File and line where the exception was raised (innermost frame)."""
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if not frames:
        return None, None
    last = frames[-1]
    return last.filename, last.lineno


def exception_code(exc: BaseException) -> int:
    if isinstance(exc, OSError) and isinstance(exc.errno, int):
        return exc.errno
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return 0


def stack_trace(exc: BaseException) -> Optional[str]:
    if exc.__traceback__ is None:
        return None
    return "".join(traceback.format_tb(exc.__traceback__))


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Walk explicit (`raise ... from`) and implicit causes, stopping on cycles."""
    seen = {id(exc)}
    current: Optional[BaseException] = exc
    while current is not None:
        nxt = current.__cause__
        if nxt is None and not current.__suppress_context__:
            nxt = current.__context__
        if nxt is None or id(nxt) in seen:
            return
        seen.add(id(nxt))
        yield nxt
        current = nxt


@dataclass(frozen=True)
class CauseRecord:
    exception_class: str
    message: str
    file: Optional[str]
    line: Optional[int]
    code: int
    stack_trace: Optional[str]

    @classmethod
    def from_exception(cls, exc: BaseException) -> "CauseRecord":
        file, line = exception_location(exc)
        return cls(
            exception_class=exception_class(exc),
            message=str(exc),
            file=file,
            line=line,
            code=exception_code(exc),
            stack_trace=stack_trace(exc),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "exception_class": self.exception_class,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "code": self.code,
            "stack_trace": self.stack_trace,
        }


@dataclass(frozen=True)
class ExceptionRecord:
    exception_class: str
    message: str
    user_message: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None
    code: int = 0
    status_code: Optional[int] = None
    is_retryable: Optional[bool] = None
    error_id: Optional[str] = None
    app_env: Optional[str] = None
    app_debug: Optional[bool] = None
    app_name: Optional[str] = None
    app_version: Optional[str] = None
    app_commit: Optional[str] = None
    host_name: Optional[str] = None
    host_ip: Optional[str] = None
    user_id: Optional[str] = None
    request_id: Optional[str] = None
    correlation_id: Optional[str] = None
    stack_trace: Optional[str] = None
    previous: Tuple[CauseRecord, ...] = ()
    context: Dict[str, Any] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_exception(cls, exc: BaseException, scope: Optional[RequestScope] = None) -> "ExceptionRecord":
        file, line = exception_location(exc)
        app_error = exc if isinstance(exc, AppException) else None

        data = scope.context if scope is not None else ContextData()
        trace = scope.trace if scope is not None else TraceIdentity()
        _ctx = data.get

        return cls(
            exception_class=exception_class(exc),
            message=str(exc),
            user_message=app_error.get_user_message() if app_error else None,
            file=file,
            line=line,
            code=exception_code(exc),
            status_code=app_error.get_status_code() if app_error else None,
            is_retryable=app_error.is_retryable() if app_error else None,
            error_id=app_error.get_error_id() if app_error else None,
            app_env=_ctx("app.env"),
            app_debug=_ctx("app.debug"),
            app_name=_ctx("app.name"),
            app_version=_ctx("app.version"),
            app_commit=_ctx("app.commit"),
            host_name=_ctx("host.name"),
            host_ip=_ctx("host.ip"),
            user_id=_ctx("user.id"),
            request_id=trace.request_id,
            correlation_id=trace.correlation_id,
            stack_trace=stack_trace(exc),
            previous=tuple(CauseRecord.from_exception(cause) for cause in iter_causes(exc)),
            context=data.all(),
        )

    @property
    def first_cause(self) -> Optional[CauseRecord]:
        return self.previous[0] if self.previous else None

    def causes_as_dicts(self) -> List[Dict[str, Any]]:
        return [cause.as_dict() for cause in self.previous]
