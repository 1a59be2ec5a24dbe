from __future__ import annotations

from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.bootstrap.context.aggregator import ContextAggregator
from src.bootstrap.context.scope import UserIdentity, maybe_scope


def _extract_user(request: Request) -> UserIdentity:
    """
    Read identity from request.state as populated by a prior auth middleware.
    Anonymous requests yield an empty identity.
    """
    state = request.state
    user_id: Optional[str] = getattr(state, "user_id", None)
    return UserIdentity(
        id=str(user_id) if user_id is not None else None,
        name=getattr(state, "user_name", None),
        email=getattr(state, "user_email", None),
    )


class ContextMiddleware(BaseHTTPMiddleware):
    """
    Runs the context providers for the request bound by TracingMiddleware.
    Must be installed inside (after) TracingMiddleware.
    """

    def __init__(self, app: ASGIApp, aggregator: ContextAggregator) -> None:
        super().__init__(app)
        self.aggregator = aggregator

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        scope = maybe_scope()
        if scope is not None:
            scope.user = _extract_user(request)
            self.aggregator.build(scope)
        return await call_next(request)
