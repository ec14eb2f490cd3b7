"""Explicitly constructed service dependencies.

Everything that lives for the whole process (cache, HTTP clients, tool
registry, token verifier, session manager) is built once here and passed
down, so tests can build isolated instances side by side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from mcp.server.streamable_http import StreamableHTTPServerTransport

from weather_mcp.cache import InMemoryCache
from weather_mcp.config import Settings
from weather_mcp.fetch import UpstreamFetcher
from weather_mcp.server.auth.jwt import JWTConfig, KeyClientFactory, TokenVerifier, default_key_client
from weather_mcp.server.session import SessionManager
from weather_mcp.tools import ToolContext, ToolRegistry, build_registry, create_engine

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    cache: InMemoryCache
    fetcher: UpstreamFetcher
    registry: ToolRegistry
    tool_context: ToolContext
    verifier: TokenVerifier
    sessions: SessionManager
    oauth_client: httpx.AsyncClient

    def start(self) -> None:
        """Start background sweeps.  Requires a running event loop."""
        self.cache.start()
        self.sessions.start()

    async def aclose(self) -> None:
        """Tear down in reverse order of dependency."""
        await self.sessions.shutdown()
        await self.cache.stop()
        await self.fetcher.close()
        await self.oauth_client.aclose()
        logger.info("Service context closed.")


def build_context(
    settings: Settings,
    *,
    upstream_client: Optional[httpx.AsyncClient] = None,
    oauth_client: Optional[httpx.AsyncClient] = None,
    key_client_factory: KeyClientFactory = default_key_client,
    transport_factory: Callable[..., Any] = StreamableHTTPServerTransport,
) -> ServiceContext:
    """Wire up a :class:`ServiceContext` from *settings*.

    The optional arguments let tests substitute fake HTTP transports,
    JWKS key clients and MCP transports.
    """
    cache = InMemoryCache(sweep_interval=settings.cache_sweep_interval)
    fetcher = UpstreamFetcher(cache, timeout=settings.upstream_timeout, client=upstream_client)
    registry = build_registry()
    tool_context = ToolContext(fetcher=fetcher)

    verifier = TokenVerifier(
        JWTConfig(
            jwks_uri=settings.jwks_uri,
            issuer=settings.issuer,
            audience=settings.auth0_audience,
        ),
        key_client_factory=key_client_factory,
    )

    sessions = SessionManager(
        lambda: create_engine(registry, tool_context),
        idle_ttl=settings.session_idle_ttl,
        sweep_interval=settings.session_sweep_interval,
        transport_factory=transport_factory,
    )

    return ServiceContext(
        settings=settings,
        cache=cache,
        fetcher=fetcher,
        registry=registry,
        tool_context=tool_context,
        verifier=verifier,
        sessions=sessions,
        oauth_client=oauth_client or httpx.AsyncClient(timeout=settings.upstream_timeout),
    )
