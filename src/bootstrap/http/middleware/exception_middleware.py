from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.bootstrap.context.scope import maybe_scope
from src.bootstrap.exceptions import AppException
from src.bootstrap.http.responses import error_response, internal_error_response
from src.bootstrap.logging import get_logger
from src.bootstrap.reporting.reporter import ExceptionReporter

logger = get_logger("http")


class ExceptionMiddleware(BaseHTTPMiddleware):
    """
    Reports escaping exceptions through every channel, then translates them to
    the error contract. Never leaks stack traces; reporting failures never
    change the response.
    """

    def __init__(self, app: ASGIApp, reporter: ExceptionReporter) -> None:
        super().__init__(app)
        self.reporter = reporter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        scope = maybe_scope()
        try:
            return await call_next(request)
        except AppException as ae:
            await self.reporter.report(ae, scope)
            logger.warning(
                "app_error",
                code=ae.code,
                error_id=ae.error_id,
                status=ae.status_code,
            )
            return error_response(ae, scope)
        except Exception as e:
            await self.reporter.report(e, scope)
            logger.error("unhandled_exception", error_type=type(e).__name__)
            return internal_error_response(scope)
