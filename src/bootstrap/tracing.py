"""
Request tracing identity.

A tracing source knows which header carries its value, how to resolve the
value for an inbound request and how to restore it inside a background job.
The resolved values form an immutable TraceIdentity for one request.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Protocol

from starlette.requests import Request

from src.bootstrap.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID = "request_id"
CORRELATION_ID = "correlation_id"
APP_VERSION = "app_version"

# Width of the correlation_id columns
MAX_CORRELATION_ID_LENGTH = 255
_ID_CHARSET = re.compile(r"[A-Za-z0-9._:/@+=-]+")


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TraceIdentity:
    """Tracing values for one request. Created at request start, never mutated."""

    values: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def request_id(self) -> Optional[str]:
        return self.values.get(REQUEST_ID)

    @property
    def correlation_id(self) -> Optional[str]:
        return self.values.get(CORRELATION_ID)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.values.get(name, default)

    def has(self, name: str) -> bool:
        return bool(self.values.get(name))

    def as_dict(self) -> Dict[str, str]:
        return dict(self.values)

    @classmethod
    def generate(cls, correlation_id: Optional[str] = None, **extra: str) -> "TraceIdentity":
        """Fresh identity outside HTTP (console commands, tests)."""
        values = {REQUEST_ID: _new_id(), CORRELATION_ID: correlation_id or _new_id()}
        values.update(extra)
        return cls(values)


class TracingSource(Protocol):
    name: str

    def header_name(self) -> str: ...

    def resolve(self, request: Optional[Request]) -> Optional[str]: ...

    def restore_from_job(self, value: str) -> str: ...


class RequestIdSource:
    """Always a fresh id; inbound request ids are never trusted."""

    name = REQUEST_ID

    def __init__(self, header: str = "X-Request-Id") -> None:
        self._header = header

    def header_name(self) -> str:
        return self._header

    def resolve(self, request: Optional[Request]) -> Optional[str]:
        return _new_id()

    def restore_from_job(self, value: str) -> str:
        return value


class CorrelationIdSource:
    """
    Inherited from the inbound header when it is a well-formed id, generated
    otherwise. Ids longer than the stored column or carrying characters outside
    the id charset are replaced, not truncated.
    """

    name = CORRELATION_ID

    def __init__(self, header: str = "X-Correlation-Id", max_length: int = MAX_CORRELATION_ID_LENGTH) -> None:
        self._header = header
        self._max_length = max_length

    def header_name(self) -> str:
        return self._header

    def resolve(self, request: Optional[Request]) -> Optional[str]:
        if request is not None:
            inbound = (request.headers.get(self._header) or "").strip()
            if inbound:
                if self.is_valid(inbound):
                    return inbound
                logger.warning("correlation_id_rejected", header=self._header, length=len(inbound))
        return _new_id()

    def is_valid(self, value: str) -> bool:
        return len(value) <= self._max_length and _ID_CHARSET.fullmatch(value) is not None

    def restore_from_job(self, value: str) -> str:
        return value


class AppVersionSource:
    """The deployed version. Only echoed outward; inbound headers are ignored."""

    name = APP_VERSION

    def __init__(self, version: str, header: str = "X-App-Version") -> None:
        self._version = version
        self._header = header

    def header_name(self) -> str:
        return self._header

    def resolve(self, request: Optional[Request]) -> Optional[str]:
        return self._version

    def restore_from_job(self, value: str) -> str:
        return value


class Tracer:
    """Resolves every configured tracing source, in order, into a TraceIdentity."""

    def __init__(self, sources: Iterable[TracingSource]) -> None:
        self._sources: List[TracingSource] = list(sources)

    @property
    def sources(self) -> List[TracingSource]:
        return list(self._sources)

    def start(self, request: Optional[Request] = None) -> TraceIdentity:
        values: Dict[str, str] = {}
        for source in self._sources:
            value = source.resolve(request)
            if value:
                values[source.name] = value
        return TraceIdentity(values)

    def response_headers(self, trace: TraceIdentity) -> Dict[str, str]:
        """Headers echoed back to the client for client-side correlation."""
        return {
            source.header_name(): trace.values[source.name]
            for source in self._sources
            if trace.has(source.name)
        }

    def job_payload(self, trace: TraceIdentity) -> Dict[str, str]:
        """Serializable tracing values to ship with a queued job."""
        return trace.as_dict()

    def restore(self, payload: Mapping[str, str]) -> TraceIdentity:
        """Rebuild the dispatching request's identity inside a worker."""
        values: Dict[str, str] = {}
        for source in self._sources:
            value = payload.get(source.name)
            if value:
                values[source.name] = source.restore_from_job(value)
        return TraceIdentity(values)
