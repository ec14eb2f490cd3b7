"""Weather tool catalogue and MCP engine factory."""

from __future__ import annotations

from mcp.server.lowlevel import Server

from weather_mcp.constants import SERVER_NAME, SERVER_VERSION
from weather_mcp.tools import (
    agriculture,
    air_quality,
    fire_weather,
    forecast,
    humidity,
    marine,
    marine_conditions,
    outdoor,
    precipitation,
    severe_weather,
    soil,
    weather,
    wind,
)
from weather_mcp.tools.registry import ToolCallError, ToolContext, ToolRegistry, ToolSpec

__all__ = [
    "ToolCallError",
    "ToolContext",
    "ToolRegistry",
    "ToolSpec",
    "build_registry",
    "create_engine",
]

# Catalogue order is the order tools are listed and published.
CATALOGUE = (
    weather.TOOL,
    forecast.DAILY_TOOL,
    forecast.HOURLY_TOOL,
    air_quality.TOOL,
    marine.TOOL,
    soil.TOOL,
    wind.TOOL,
    precipitation.TOOL,
    humidity.TOOL,
    fire_weather.TOOL,
    agriculture.TOOL,
    outdoor.TOOL,
    marine_conditions.TOOL,
    severe_weather.TOOL,
)


def build_registry() -> ToolRegistry:
    return ToolRegistry(list(CATALOGUE))


def create_engine(registry: ToolRegistry, ctx: ToolContext) -> Server:
    """Build a fresh protocol engine with every tool in *registry* bound."""
    engine: Server = Server(SERVER_NAME, version=SERVER_VERSION)
    registry.bind(engine, ctx)
    return engine
