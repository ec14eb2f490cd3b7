"""JSON-RPC error envelopes returned by the gateway itself."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from starlette.responses import JSONResponse

AUTH_ERROR = -32000
INTERNAL_ERROR = -32603

MSG_MISSING_CREDENTIALS = "Missing or invalid Authorization header"
MSG_INVALID_TOKEN = "Invalid or expired token"
MSG_SESSION_NOT_FOUND = "Session not found or expired"
MSG_DELETE_NOT_FOUND = "Session not found"
MSG_INTERNAL_ERROR = "Internal server error"

RequestId = Union[str, int, None]


def jsonrpc_error(code: int, message: str, request_id: RequestId = None) -> Dict[str, Any]:
    """Build a ``{"jsonrpc": "2.0", "error": {...}, "id": ...}`` body."""
    return {
        "jsonrpc": "2.0",
        "error": {"code": code, "message": message},
        "id": request_id,
    }


def jsonrpc_error_response(
    status_code: int,
    code: int,
    message: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Wrap :func:`jsonrpc_error` in an HTTP response."""
    return JSONResponse(
        jsonrpc_error(code, message),
        status_code=status_code,
        headers=dict(headers) if headers else None,
    )
