"""
Request context: scope, providers, aggregator and sinks.
"""
from src.bootstrap.context.aggregator import ContextAggregator
from src.bootstrap.context.providers import (
    AppProvider,
    ContextProvider,
    CorrelationProvider,
    HostProvider,
    RequestProvider,
    TimestampProvider,
    UserProvider,
)
from src.bootstrap.context.scope import (
    ContextData,
    RequestScope,
    UserIdentity,
    bind_scope,
    current_scope,
    maybe_scope,
)
from src.bootstrap.context.sinks import ContextSink, LogSink

__all__ = [
    "AppProvider",
    "ContextAggregator",
    "ContextData",
    "ContextProvider",
    "ContextSink",
    "CorrelationProvider",
    "HostProvider",
    "LogSink",
    "RequestProvider",
    "RequestScope",
    "TimestampProvider",
    "UserIdentity",
    "UserProvider",
    "bind_scope",
    "current_scope",
    "maybe_scope",
]
