from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.bootstrap.context.scope import RequestScope, bind_scope
from src.bootstrap.logging import bind_request_context, clear_request_context
from src.bootstrap.tracing import Tracer


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Establishes the trace identity and a fresh RequestScope for every request.

    - request id: always generated
    - correlation id: inherited from the inbound header, generated otherwise
    - echoes every tracing value back as a response header
    """

    def __init__(self, app: ASGIApp, tracer: Tracer, echo_headers: bool = True) -> None:
        super().__init__(app)
        self.tracer = tracer
        self.echo_headers = echo_headers

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Nothing from a previous request on this worker may leak into this one
        clear_request_context()

        trace = self.tracer.start(request)
        scope = RequestScope(trace=trace, request=request, origin="web")
        request.state.scope = scope
        request.state.request_id = trace.request_id

        with bind_scope(scope):
            bind_request_context(
                request_id=trace.request_id,
                correlation_id=trace.correlation_id,
                path=request.url.path,
                method=request.method,
            )
            try:
                response = await call_next(request)
            finally:
                clear_request_context()

        if self.echo_headers:
            for header, value in self.tracer.response_headers(trace).items():
                response.headers[header] = value
        return response
