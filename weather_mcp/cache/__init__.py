"""Response cache used to memoize upstream fetches."""

from weather_mcp.cache.base import Cache
from weather_mcp.cache.memory import InMemoryCache
from weather_mcp.constants import TTL_FORECAST, TTL_REALTIME, TTL_STATIC

__all__ = [
    "Cache",
    "InMemoryCache",
    "TTL_FORECAST",
    "TTL_REALTIME",
    "TTL_STATIC",
]
