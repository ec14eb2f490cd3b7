"""Static capability manifest for hub discovery."""

from __future__ import annotations

from typing import Any, Dict, Optional

from weather_mcp.constants import HEALTH_PATH, MCP_PATH, SERVER_VERSION
from weather_mcp.tools import ToolRegistry, build_registry

MANIFEST_ID = "weather-mcp-server"
MANIFEST_NAME = "Weather MCP Server"
MANIFEST_DESCRIPTION = (
    "MCP server providing weather data via Open-Meteo API. "
    "Designed as a spoke for federated MCP hubs."
)
MANIFEST_TAGS = ["weather", "geocoding", "open-meteo", "utility", "external-api"]


def build_manifest(registry: Optional[ToolRegistry] = None) -> Dict[str, Any]:
    """Describe this server and every tool in *registry*.

    Needs no running server or session; the default registry is the
    fixed tool catalogue.
    """
    registry = registry if registry is not None else build_registry()
    return {
        "id": MANIFEST_ID,
        "name": MANIFEST_NAME,
        "version": SERVER_VERSION,
        "description": MANIFEST_DESCRIPTION,
        "tags": list(MANIFEST_TAGS),
        "tools": registry.manifest_entries(),
        "auth": {"required": True, "type": "bearer", "provider": "auth0"},
        "healthEndpoint": HEALTH_PATH,
        "mcpEndpoint": MCP_PATH,
    }
