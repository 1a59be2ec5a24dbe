# /src/bootstrap/http/responses.py
"""
HTTP response helpers for the error contract.

- error_response(app_error, scope)
- internal_error_response(scope)
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from starlette.responses import JSONResponse

from src.bootstrap.context.scope import RequestScope
from src.bootstrap.exceptions import AppException, _http_for, _msg_for


def _trace_fields(scope: Optional[RequestScope]) -> Dict[str, Any]:
    if scope is None:
        return {}
    return {
        k: v
        for k, v in (
            ("request_id", scope.trace.request_id),
            ("correlation_id", scope.trace.correlation_id),
        )
        if v
    }


def error_response(err: AppException, scope: Optional[RequestScope]) -> JSONResponse:
    payload = err.to_payload()
    payload.update(_trace_fields(scope))
    return JSONResponse({"error": payload}, status_code=err.status_code)


def internal_error_response(scope: Optional[RequestScope]) -> JSONResponse:
    """Never leaks exception details; clients correlate through the ids."""
    code = "internal_error"
    payload: Dict[str, Any] = {"code": code, "message": _msg_for(code)}
    payload.update(_trace_fields(scope))
    return JSONResponse({"error": payload}, status_code=_http_for(code))
