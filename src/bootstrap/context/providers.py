"""
Context providers.

Each provider contributes one named subtree to the request context. Providers
read their sources of truth from the RequestScope handed to them and return
None values when a source is absent instead of raising.
"""
from __future__ import annotations

import socket
from datetime import datetime, timezone
from typing import Any, Dict, Hashable, Optional

from src.bootstrap.config import Settings
from src.bootstrap.context.scope import RequestScope


class ContextProvider:
    """Base provider: always runs, never cached, contributes nothing."""

    def should_run(self, scope: RequestScope) -> bool:
        return True

    def is_cacheable(self) -> bool:
        return False

    def cache_key(self, scope: RequestScope) -> Hashable:
        """Cacheable output is computed once per distinct key."""
        return None

    def get_context(self, scope: RequestScope) -> Dict[str, Any]:
        return {}


class TimestampProvider(ContextProvider):
    def get_context(self, scope: RequestScope) -> Dict[str, Any]:
        return {"timestamp": datetime.now(timezone.utc).isoformat()}


class AppProvider(ContextProvider):
    """
    Deployment identity; identical for every request of the process apart
    from `origin`, which follows the scope ("web" or "console").
    """

    def __init__(self, settings: Settings, origin: str = "web") -> None:
        self._settings = settings
        self._origin = origin

    def is_cacheable(self) -> bool:
        return True

    def cache_key(self, scope: RequestScope) -> Hashable:
        return self._origin_of(scope)

    def _origin_of(self, scope: RequestScope) -> str:
        return scope.origin or self._origin

    def get_context(self, scope: RequestScope) -> Dict[str, Any]:
        s = self._settings
        return {
            "app": {
                "name": s.app_name,
                "role": s.app_role,
                "env": s.environment,
                "version": s.app_version,
                "commit": s.app_commit,
                "build_date": s.app_build_date,
                "debug": s.debug,
                "url": s.app_url,
                "timezone": s.app_timezone,
                "locale": s.app_locale,
                "origin": self._origin_of(scope),
            },
        }


class HostProvider(ContextProvider):
    def is_cacheable(self) -> bool:
        return True

    def get_context(self, scope: RequestScope) -> Dict[str, Any]:
        name = socket.gethostname()
        return {"host": {"name": name, "ip": _resolve_ip(name)}}


def _resolve_ip(hostname: str) -> Optional[str]:
    try:
        return socket.gethostbyname(hostname)
    except OSError:
        return None


class RequestProvider(ContextProvider):
    def __init__(self, default_locale: str = "en") -> None:
        self._default_locale = default_locale

    def should_run(self, scope: RequestScope) -> bool:
        return scope.request is not None

    def get_context(self, scope: RequestScope) -> Dict[str, Any]:
        request = scope.request
        if request is None:
            return {"request": {"id": scope.trace.request_id}}
        headers = request.headers
        return {
            "request": {
                "id": scope.trace.request_id,
                "ip": request.client.host if request.client else None,
                "method": request.method,
                "url": str(request.url),
                "host": request.url.hostname,
                "scheme": request.url.scheme,
                "locale": getattr(request.state, "locale", None) or self._default_locale,
                "referer": headers.get("referer"),
                "user_agent": headers.get("user-agent"),
                "accept_language": headers.get("accept-language"),
            },
        }


class UserProvider(ContextProvider):
    def get_context(self, scope: RequestScope) -> Dict[str, Any]:
        user = scope.user
        return {"user": {"id": user.id, "name": user.name, "email": user.email}}


class CorrelationProvider(ContextProvider):
    def should_run(self, scope: RequestScope) -> bool:
        return scope.trace.has("correlation_id")

    def get_context(self, scope: RequestScope) -> Dict[str, Any]:
        return {"correlation_id": scope.trace.correlation_id}
