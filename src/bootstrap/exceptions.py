from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from starlette import status

from src.bootstrap.error_codes import ERROR_CODES


# ───────────────────────── Base & Application Exceptions ────────────────────
class AppException(Exception):
    """
    Base class for recognized application errors.

    Besides the developer-facing message it carries a user-facing message, the
    HTTP status to render, a retry hint and a unique error id that is echoed
    to the client and stored with the exception record.
    """
    code: str = "app_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str = "",
        *,
        user_message: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
        details: Optional[Dict[str, Any]] = None,
        error_id: Optional[str] = None,
    ) -> None:
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        self.message = message or self.__class__.__name__
        self.user_message = user_message or _msg_for(self.code)
        self.details = details
        self.error_id = error_id or str(uuid.uuid4())

    def get_user_message(self) -> str:
        return self.user_message

    def get_status_code(self) -> int:
        return self.status_code

    def get_error_id(self) -> str:
        return self.error_id

    def is_retryable(self) -> bool:
        return self.retryable

    def to_payload(self) -> Dict[str, Any]:
        """Client-safe error body; trace ids are added by the HTTP layer."""
        body: Dict[str, Any] = {
            "code": self.code,
            "message": self.user_message,
            "error_id": self.error_id,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppException):
    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(AppException):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppException):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class RateLimitedError(AppException):
    code = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    retryable = True


class ServiceUnavailableError(AppException):
    code = "service_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class InternalServerError(AppException):
    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ───────────────────────── Infrastructure errors ────────────────────────────
class ScopeNotBoundError(RuntimeError):
    """Raised when request-scoped state is read outside of a bound scope."""


class UnknownComponentError(KeyError):
    """Raised at startup when configuration names an unregistered component."""


# ───────────────────────────── Helpers ──────────────────────────────────────

def _http_for(code: str) -> int:
    return int(ERROR_CODES.get(code, {}).get("http", status.HTTP_500_INTERNAL_SERVER_ERROR))


def _msg_for(code: str) -> str:
    return str(ERROR_CODES.get(code, {}).get("message", code))
