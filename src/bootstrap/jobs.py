"""
Request scopes outside HTTP: queued jobs, console commands, scripts.

    payload = services.tracer.job_payload(current_scope().trace)
    ...  # ship payload with the job
    with job_scope(services, payload):
        await services.activity_logger.pending().log("job finished")
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Mapping, Optional

from src.bootstrap.context.scope import RequestScope, bind_scope
from src.bootstrap.logging import bind_request_context, clear_request_context

if TYPE_CHECKING:
    from src.bootstrap.container import Services


@contextmanager
def job_scope(
    services: "Services",
    payload: Optional[Mapping[str, str]] = None,
    *,
    origin: str = "console",
) -> Iterator[RequestScope]:
    """
    Bind a scope for one job run. With a payload the dispatching request's
    tracing values are restored; without one a fresh identity is generated.
    """
    trace = services.tracer.restore(payload) if payload else services.tracer.start(None)
    scope = RequestScope(trace=trace, origin=origin)
    clear_request_context()
    with bind_scope(scope):
        bind_request_context(request_id=trace.request_id, correlation_id=trace.correlation_id)
        services.aggregator.build(scope)
        try:
            yield scope
        finally:
            clear_request_context()
