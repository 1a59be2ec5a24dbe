from __future__ import annotations

from fastapi import FastAPI

from src.bootstrap.container import Services
from .context_middleware import ContextMiddleware
from .exception_middleware import ExceptionMiddleware
from .https_scheme_middleware import ForceHttpsSchemeMiddleware
from .tracing_middleware import TracingMiddleware


def setup_http_middlewares(app: FastAPI, services: Services) -> None:
    """
    Install middlewares. Starlette wraps the last added outermost, so they are
    added inner → outer; the effective order per request is:

      https scheme (optional) → tracing → context → exception translator → app
    """
    # 3) Centralized exception reporting/translation (sees the bound scope)
    app.add_middleware(ExceptionMiddleware, reporter=services.reporter)

    # 2) Context providers → request aggregate → log sink
    app.add_middleware(ContextMiddleware, aggregator=services.aggregator)

    # 1) Trace identity + request scope (used by everything else)
    app.add_middleware(
        TracingMiddleware,
        tracer=services.tracer,
        echo_headers=services.settings.tracing_echo_headers,
    )

    # 0) TLS is terminated upstream; URLs are generated as https
    if services.settings.should_force_https:
        app.add_middleware(ForceHttpsSchemeMiddleware)
