"""Per-client MCP session management."""

from weather_mcp.server.session.manager import SessionManager
from weather_mcp.server.session.models import MCPSession, SessionState

__all__ = ["MCPSession", "SessionManager", "SessionState"]
