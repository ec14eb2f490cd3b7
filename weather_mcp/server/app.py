"""Starlette ASGI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from weather_mcp.config import Settings
from weather_mcp.constants import (
    HEALTH_PATH,
    MCP_PATH,
    PROTECTED_RESOURCE_PATH,
    SERVER_NAME,
    SERVER_VERSION,
)
from weather_mcp.jsonrpc import INTERNAL_ERROR, MSG_INTERNAL_ERROR, jsonrpc_error_response
from weather_mcp.server.auth import AuthMiddleware
from weather_mcp.server.context import ServiceContext, build_context
from weather_mcp.server.oauth import OAuthProxy

logger = logging.getLogger(__name__)


class MCPEndpoint:
    """ASGI endpoint for ``/mcp`` delegating to the session manager."""

    def __init__(self, context: ServiceContext) -> None:
        self._context = context

    async def __call__(self, scope, receive, send) -> None:
        await self._context.sessions.handle_request(scope, receive, send)


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def internal_error(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return jsonrpc_error_response(500, INTERNAL_ERROR, MSG_INTERNAL_ERROR)


def create_app(settings: Settings, *, context: Optional[ServiceContext] = None) -> Starlette:
    """Create the Starlette app serving ``/mcp``, OAuth routes and ``/health``."""
    ctx = context or build_context(settings)
    oauth = OAuthProxy(settings, ctx.oauth_client)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info("---- %s v%s starting ----", SERVER_NAME, SERVER_VERSION)
        ctx.start()
        logger.info(
            "Serving %d tool(s) on %s%s (environment=%s)",
            len(ctx.registry),
            settings.server_url,
            MCP_PATH,
            settings.environment,
        )
        try:
            yield
        finally:
            logger.info("Shutting down %s...", SERVER_NAME)
            await ctx.aclose()

    routes = [
        Route(HEALTH_PATH, health, methods=["GET"]),
        *oauth.routes(),
        Route(MCP_PATH, MCPEndpoint(ctx), methods=["GET", "POST", "DELETE"]),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "Mcp-Session-Id"],
            expose_headers=["Mcp-Session-Id"],
        ),
        Middleware(
            AuthMiddleware,
            verifier=ctx.verifier,
            resource_metadata_url=f"{settings.server_url}{PROTECTED_RESOURCE_PATH}",
        ),
    ]

    application = Starlette(
        routes=routes,
        middleware=middleware,
        lifespan=lifespan,
        exception_handlers={Exception: internal_error},
    )
    application.state.context = ctx
    return application
