# src/bootstrap/context/scope.py
from __future__ import annotations

import contextvars
import copy
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from starlette.requests import Request

from src.bootstrap.exceptions import ScopeNotBoundError
from src.bootstrap.tracing import TraceIdentity

_MISSING = object()


class ContextData:
    """Nested mapping with dotted-path access ("app.name", "request.id")."""

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def merge(self, subtree: Dict[str, Any]) -> None:
        # top-level keys from later providers replace earlier ones wholesale;
        # copied so cached provider output stays read-only
        self._data.update(copy.deepcopy(subtree))

    def reset(self) -> None:
        self._data = {}

    def all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def flatten(self) -> Dict[str, Any]:
        """{"app": {"name": "x"}} -> {"app.name": "x"}."""
        flat: Dict[str, Any] = {}

        def _walk(prefix: str, value: Any) -> None:
            if isinstance(value, dict) and value:
                for k, v in value.items():
                    _walk(f"{prefix}.{k}" if prefix else str(k), v)
            else:
                flat[prefix] = value

        for key, value in self._data.items():
            _walk(key, value)
        return flat

    def __len__(self) -> int:
        return len(self._data)


@dataclass
class UserIdentity:
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class RequestScope:
    """
    Everything that belongs to one inbound request (or one console/job run).

    The trace identity is fixed at creation; the context aggregate is owned by
    the scope and rebuilt per request, never shared between scopes.
    """
    trace: TraceIdentity
    request: Optional[Request] = None
    user: UserIdentity = field(default_factory=UserIdentity)
    context: ContextData = field(default_factory=ContextData)
    # "web" for HTTP requests, "console" for jobs and commands
    origin: Optional[str] = None


# Context variable, set once per request by middleware
SCOPE_VAR = contextvars.ContextVar[Optional[RequestScope]]("request_scope", default=None)


def maybe_scope() -> Optional[RequestScope]:
    return SCOPE_VAR.get()


def current_scope() -> RequestScope:
    scope = SCOPE_VAR.get()
    if scope is None:
        raise ScopeNotBoundError("No request scope is bound to the current context")
    return scope


@contextmanager
def bind_scope(scope: RequestScope) -> Iterator[RequestScope]:
    """
    Bind a scope for the current request/task and restore the previous one on exit.
    Example:
        with bind_scope(RequestScope(trace=TraceIdentity.generate())):
            await some_service()
    """
    token = SCOPE_VAR.set(scope)
    try:
        yield scope
    finally:
        SCOPE_VAR.reset(token)
