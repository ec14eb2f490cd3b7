"""HTTP entry point: app factory, service context and OAuth proxy."""

from weather_mcp.server.app import create_app
from weather_mcp.server.context import ServiceContext, build_context

__all__ = ["ServiceContext", "build_context", "create_app"]
