"""Shared constants for Weather MCP."""

SERVER_NAME = "weather-server"
SERVER_VERSION = "1.0.0"

# Network defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# HTTP surface
MCP_PATH = "/mcp"
HEALTH_PATH = "/health"
OPENID_CONFIGURATION_PATH = "/.well-known/openid-configuration"
OAUTH_SERVER_METADATA_PATH = "/.well-known/oauth-authorization-server"
PROTECTED_RESOURCE_PATH = "/.well-known/oauth-protected-resource"
AUTHORIZE_PATH = "/authorize"
TOKEN_PATH = "/token"
REGISTER_PATH = "/register"
LOGOUT_PATH = "/logout"

# Session header (lower-case, as it appears in ASGI scopes)
MCP_SESSION_ID_HEADER = "mcp-session-id"

# Session lifecycle
SESSION_IDLE_TTL = 1800.0  # 30 minutes
SESSION_SWEEP_INTERVAL = 300.0  # 5 minutes

# Cache TTL classes (seconds)
TTL_REALTIME = 5 * 60
TTL_FORECAST = 15 * 60
TTL_STATIC = 24 * 60 * 60
CACHE_DEFAULT_TTL = TTL_REALTIME
CACHE_SWEEP_INTERVAL = 60.0

# Upstream
UPSTREAM_TIMEOUT = 10.0  # seconds
FORECAST_API_URL = "https://api.open-meteo.com/v1/forecast"
AIR_QUALITY_API_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"
MARINE_API_URL = "https://marine-api.open-meteo.com/v1/marine"
GEOCODING_API_URL = "https://geocoding-api.open-meteo.com/v1/search"

# JWKS key material
JWKS_MAX_AGE = 600.0  # seconds a fetched key set stays valid
JWKS_REFRESH_COOLDOWN = 30.0  # minimum seconds between forced re-fetches

# OAuth discovery
SCOPES_SUPPORTED = ["openid", "profile", "email", "offline_access"]
