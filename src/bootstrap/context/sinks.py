from __future__ import annotations

from typing import Any, Dict, Protocol

import structlog

from src.bootstrap.context.scope import ContextData
from src.bootstrap.logging import RESERVED_LOG_KEYS


class ContextSink(Protocol):
    """Somewhere the aggregated context is registered after each build/set."""

    def register(self, context: ContextData) -> None: ...


class LogSink:
    """
    Attaches the flattened aggregate ("app.name", "request.id", ...) to every
    structlog line emitted afterwards in the same request.

    Keys the log pipeline fills itself ("timestamp", "event", ...) are bound
    as "context.<key>" so each line keeps its own emit time.
    """

    def register(self, context: ContextData) -> None:
        structlog.contextvars.bind_contextvars(**self.fields(context))

    @staticmethod
    def fields(context: ContextData) -> Dict[str, Any]:
        return {
            (f"context.{key}" if key in RESERVED_LOG_KEYS else key): value
            for key, value in context.flatten().items()
        }
