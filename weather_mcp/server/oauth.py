"""OAuth discovery documents and a thin proxy to the identity provider.

MCP clients discover this server as their authorization server; the
actual flow is delegated to the provider's ``/authorize``, ``/oauth/token``
and ``/oidc/register`` endpoints.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

import httpx
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from weather_mcp.config import Settings
from weather_mcp.constants import (
    AUTHORIZE_PATH,
    LOGOUT_PATH,
    OAUTH_SERVER_METADATA_PATH,
    OPENID_CONFIGURATION_PATH,
    PROTECTED_RESOURCE_PATH,
    REGISTER_PATH,
    SCOPES_SUPPORTED,
    TOKEN_PATH,
)
logger = logging.getLogger(__name__)

TOKEN_AUTH_METHODS = ["client_secret_basic", "client_secret_post", "none"]
RESPONSE_TYPES_SUPPORTED = ["code"]
GRANT_TYPES_SUPPORTED = ["authorization_code", "refresh_token"]
CODE_CHALLENGE_METHODS = ["S256"]
SENSITIVE_PARAMS = ("client_secret",)
REDACTED_VALUE = "[REDACTED]"


# ── Discovery documents ──────────────────────────────────────────────


def build_server_metadata(settings: Settings) -> Dict[str, Any]:
    """RFC 8414 authorization server metadata pointing back at this server."""
    base = settings.server_url
    return {
        "issuer": base,
        "authorization_endpoint": f"{base}{AUTHORIZE_PATH}",
        "token_endpoint": f"{base}{TOKEN_PATH}",
        "registration_endpoint": f"{base}{REGISTER_PATH}",
        "end_session_endpoint": f"{base}{LOGOUT_PATH}",
        "jwks_uri": settings.jwks_uri,
        "response_types_supported": list(RESPONSE_TYPES_SUPPORTED),
        "grant_types_supported": list(GRANT_TYPES_SUPPORTED),
        "code_challenge_methods_supported": list(CODE_CHALLENGE_METHODS),
        "scopes_supported": list(SCOPES_SUPPORTED),
        "token_endpoint_auth_methods_supported": list(TOKEN_AUTH_METHODS),
    }


def build_openid_configuration(settings: Settings) -> Dict[str, Any]:
    return {
        **build_server_metadata(settings),
        "subject_types_supported": ["public"],
        "id_token_signing_alg_values_supported": ["RS256"],
    }


def build_protected_resource_metadata(settings: Settings) -> Dict[str, Any]:
    return {
        "resource": settings.server_url,
        "authorization_servers": [settings.server_url],
        "scopes_supported": list(SCOPES_SUPPORTED),
        "bearer_methods_supported": ["header"],
    }


def parse_basic_auth(header: Optional[str]) -> Optional[Tuple[str, str]]:
    """Return ``(client_id, client_secret)`` from a Basic header, if usable."""
    if not header or not header.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(header[6:].strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    client_id, _, client_secret = decoded.partition(":")
    if not client_id:
        return None
    return client_id, client_secret


def redact_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of *params* with credential values masked for logging."""
    return {
        key: REDACTED_VALUE if key in SENSITIVE_PARAMS and value else value
        for key, value in params.items()
    }


def render_body(params: Dict[str, Any], is_json: bool) -> str:
    return json.dumps(params) if is_json else urlencode(params)


# ── Proxy ────────────────────────────────────────────────────────────


class OAuthProxy:
    """Routes for the OAuth discovery and delegation endpoints.

    Parameters
    ----------
    settings:
        Service settings; supplies the public URL and provider domain.
    client:
        HTTP client used to reach the provider's token and registration
        endpoints.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client
        provider = f"https://{settings.auth0_domain}"
        self.authorize_url = f"{provider}/authorize"
        self.token_url = f"{provider}/oauth/token"
        self.register_url = f"{provider}/oidc/register"
        self.logout_url = f"{provider}/v2/logout"

    def routes(self) -> List[Route]:
        return [
            Route(OPENID_CONFIGURATION_PATH, self.openid_configuration, methods=["GET"]),
            Route(OAUTH_SERVER_METADATA_PATH, self.server_metadata, methods=["GET"]),
            Route(PROTECTED_RESOURCE_PATH, self.protected_resource, methods=["GET"]),
            Route(AUTHORIZE_PATH, self.authorize, methods=["GET"]),
            Route(TOKEN_PATH, self.token, methods=["POST"]),
            Route(REGISTER_PATH, self.register, methods=["POST"]),
            Route(LOGOUT_PATH, self.logout, methods=["GET"]),
        ]

    # ── Handlers ─────────────────────────────────────────────────────

    async def openid_configuration(self, request: Request) -> JSONResponse:
        return JSONResponse(build_openid_configuration(self._settings))

    async def server_metadata(self, request: Request) -> JSONResponse:
        return JSONResponse(build_server_metadata(self._settings))

    async def protected_resource(self, request: Request) -> JSONResponse:
        return JSONResponse(build_protected_resource_metadata(self._settings))

    async def authorize(self, request: Request) -> RedirectResponse:
        params = dict(request.query_params)
        params.setdefault("audience", self._settings.auth0_audience)
        logger.debug(
            "Redirecting to provider authorize (client_id=%s, redirect_uri=%s, scope=%s)",
            params.get("client_id"),
            params.get("redirect_uri"),
            params.get("scope"),
        )
        return RedirectResponse(f"{self.authorize_url}?{urlencode(params)}", status_code=302)

    async def logout(self, request: Request) -> RedirectResponse:
        query = urlencode(dict(request.query_params))
        return RedirectResponse(f"{self.logout_url}?{query}", status_code=302)

    async def token(self, request: Request) -> Response:
        return await self._proxy_post(self.token_url, request)

    async def register(self, request: Request) -> Response:
        return await self._proxy_post(self.register_url, request)

    # ── Internal ─────────────────────────────────────────────────────

    async def _read_body(self, request: Request, is_json: bool) -> Dict[str, Any]:
        raw = await request.body()
        if not raw:
            return {}
        if is_json:
            try:
                data = json.loads(raw)
            except ValueError:
                return {}
            return data if isinstance(data, dict) else {}
        return dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True))

    async def _proxy_post(self, target_url: str, request: Request) -> Response:
        content_type = request.headers.get("content-type", "application/json")
        is_json = "application/json" in content_type
        params = await self._read_body(request, is_json)

        credentials = parse_basic_auth(request.headers.get("authorization"))
        if credentials is not None:
            client_id, client_secret = credentials
            if not params.get("client_id"):
                params["client_id"] = client_id
            if not params.get("client_secret") and client_secret:
                params["client_secret"] = client_secret

        body = render_body(params, is_json)
        logger.debug(
            "Proxying %s to %s: %s",
            content_type,
            target_url,
            render_body(redact_params(params), is_json),
        )

        try:
            upstream = await self._client.post(
                target_url,
                content=body.encode("utf-8"),
                headers={"Content-Type": content_type},
            )
        except httpx.HTTPError as exc:
            logger.error("Proxy to %s failed: %s", target_url, exc)
            return JSONResponse(
                {
                    "error": "proxy_error",
                    "error_description": f"Failed to reach authorization server: {target_url}",
                },
                status_code=502,
            )

        if upstream.status_code >= 400:
            logger.warning(
                "Authorization server %s returned %d: %s",
                target_url,
                upstream.status_code,
                upstream.text,
            )
        else:
            logger.debug("Authorization server %s returned %d", target_url, upstream.status_code)

        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type="application/json",
        )
