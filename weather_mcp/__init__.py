"""
Weather MCP - a session-managed MCP gateway for Open-Meteo weather tools.

Exposes current conditions, forecasts and derived assessments (fire risk,
growing conditions, marine activity, severe weather) as MCP tools over a
single authenticated streamable HTTP endpoint.
"""

from weather_mcp.constants import SERVER_NAME, SERVER_VERSION

__version__ = SERVER_VERSION
__app_name__ = SERVER_NAME

__all__ = [
    "SERVER_NAME",
    "SERVER_VERSION",
    "__version__",
    "__app_name__",
]
