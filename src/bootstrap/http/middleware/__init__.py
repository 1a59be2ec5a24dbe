from .context_middleware import ContextMiddleware
from .exception_middleware import ExceptionMiddleware
from .https_scheme_middleware import ForceHttpsSchemeMiddleware
from .setup import setup_http_middlewares
from .tracing_middleware import TracingMiddleware

__all__ = [
    "ContextMiddleware",
    "ExceptionMiddleware",
    "ForceHttpsSchemeMiddleware",
    "TracingMiddleware",
    "setup_http_middlewares",
]
