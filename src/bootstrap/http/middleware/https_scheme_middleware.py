from __future__ import annotations

from starlette.types import ASGIApp, Receive, Scope, Send

_SECURE = {"http": "https", "ws": "wss"}


class ForceHttpsSchemeMiddleware:
    """
    Treats every request as served over https (TLS terminated upstream).

    Only the scheme seen by the app changes, so generated URLs and
    `request.url` use https; nothing is redirected.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            scheme = scope.get("scheme", "http")
            scope = dict(scope, scheme=_SECURE.get(scheme, scheme))
        await self.app(scope, receive, send)
