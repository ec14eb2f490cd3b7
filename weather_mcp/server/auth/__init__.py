"""Incoming authentication: JWT verification and the bearer token gate."""

from weather_mcp.server.auth.jwt import AuthContext, JWTConfig, TokenVerifier
from weather_mcp.server.auth.middleware import PUBLIC_PATHS, AuthMiddleware, get_auth_context

__all__ = [
    "PUBLIC_PATHS",
    "AuthContext",
    "AuthMiddleware",
    "JWTConfig",
    "TokenVerifier",
    "get_auth_context",
]
