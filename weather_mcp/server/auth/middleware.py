"""Bearer token gate for every non-public route."""

from __future__ import annotations

import logging
from typing import Optional

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from weather_mcp.constants import (
    AUTHORIZE_PATH,
    HEALTH_PATH,
    LOGOUT_PATH,
    OAUTH_SERVER_METADATA_PATH,
    OPENID_CONFIGURATION_PATH,
    PROTECTED_RESOURCE_PATH,
    REGISTER_PATH,
    TOKEN_PATH,
)
from weather_mcp.errors import TokenVerificationError
from weather_mcp.jsonrpc import (
    AUTH_ERROR,
    MSG_INVALID_TOKEN,
    MSG_MISSING_CREDENTIALS,
    jsonrpc_error_response,
)
from weather_mcp.server.auth.jwt import AuthContext, TokenVerifier

logger = logging.getLogger(__name__)

# Paths that never require authentication; the OAuth flow itself runs here.
PUBLIC_PATHS = frozenset(
    {
        HEALTH_PATH,
        OPENID_CONFIGURATION_PATH,
        OAUTH_SERVER_METADATA_PATH,
        PROTECTED_RESOURCE_PATH,
        AUTHORIZE_PATH,
        TOKEN_PATH,
        REGISTER_PATH,
        LOGOUT_PATH,
    }
)

AUTH_STATE_KEY = "auth"


class AuthMiddleware:
    """Pure ASGI middleware that verifies ``Authorization: Bearer`` tokens.

    On success the :class:`AuthContext` is stored in the request state
    (``request.state.auth``).  On failure a 401 JSON-RPC envelope is sent
    and the wrapped app is never called.

    Parameters
    ----------
    app:
        The wrapped ASGI application.
    verifier:
        Token verifier used for every protected request.
    resource_metadata_url:
        Absolute URL of the protected-resource metadata document,
        advertised in ``WWW-Authenticate``.
    """

    def __init__(self, app: ASGIApp, verifier: TokenVerifier, *, resource_metadata_url: str) -> None:
        self.app = app
        self._verifier = verifier
        self._challenge = f'Bearer resource_metadata="{resource_metadata_url}"'

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "/")
        if scope.get("method") == "OPTIONS" or path in PUBLIC_PATHS:
            await self.app(scope, receive, send)
            return

        auth_header = ""
        for key, value in scope.get("headers", []):
            if key == b"authorization":
                auth_header = value.decode("latin-1")
                break

        if not auth_header.startswith("Bearer "):
            await self._reject(scope, receive, send, MSG_MISSING_CREDENTIALS)
            return

        token = auth_header[7:].strip()
        try:
            auth = await self._verifier.verify(token)
        except TokenVerificationError as exc:
            client = scope.get("client")
            logger.warning(
                "Rejected token from %s for %s: %s",
                client[0] if client else "unknown",
                path,
                exc,
            )
            await self._reject(scope, receive, send, MSG_INVALID_TOKEN)
            return

        scope.setdefault("state", {})[AUTH_STATE_KEY] = auth
        logger.debug("Authenticated client %s for %s", auth.client_id, path)
        await self.app(scope, receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, message: str) -> None:
        response = jsonrpc_error_response(
            401,
            AUTH_ERROR,
            message,
            headers={"WWW-Authenticate": self._challenge},
        )
        await response(scope, receive, send)


def get_auth_context(request: Request) -> Optional[AuthContext]:
    """Return the identity attached by :class:`AuthMiddleware`, if any."""
    return getattr(request.state, AUTH_STATE_KEY, None)
