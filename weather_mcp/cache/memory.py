"""In-process cache with lazy expiry and a periodic background sweep."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from weather_mcp.cache.base import Cache
from weather_mcp.constants import CACHE_DEFAULT_TTL, CACHE_SWEEP_INTERVAL

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class InMemoryCache(Cache):
    """Dict-backed :class:`Cache`.

    An entry is visible iff ``clock() < expires_at``.  Reads evict the
    entry they find expired; :meth:`start` launches a sweep that prunes
    keys nobody reads again.

    Parameters
    ----------
    default_ttl:
        TTL in seconds used when :meth:`set` is called without one.
    sweep_interval:
        Seconds between background sweeps.
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        default_ttl: float = CACHE_DEFAULT_TTL,
        sweep_interval: float = CACHE_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store: Dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sweep_task: Optional[asyncio.Task[None]] = None

    # ── Cache interface ──────────────────────────────────────────────

    async def get(self, key: str, default: Any = None) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return default
        if self._clock() >= entry.expires_at:
            del self._store[key]
            return default
        return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def clear(self) -> None:
        self._store.clear()

    async def has(self, key: str) -> bool:
        return await self.get(key, _MISSING) is not _MISSING

    async def size(self) -> int:
        self.evict_expired()
        return len(self._store)

    # ── Expiry ───────────────────────────────────────────────────────

    def evict_expired(self) -> int:
        """Drop every expired entry in one pass; return how many went."""
        now = self._clock()
        expired = [k for k, e in self._store.items() if now >= e.expires_at]
        for key in expired:
            del self._store[key]
        return len(expired)

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the background sweep loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop(), name="cache-sweep")
            logger.debug("Cache sweep started (interval=%.0fs).", self._sweep_interval)

    async def stop(self) -> None:
        """Cancel the sweep task."""
        if self._sweep_task is not None and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None

    async def _sweep_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._sweep_interval)
                removed = self.evict_expired()
                if removed:
                    logger.debug(
                        "Cache sweep: evicted %d entr%s, %d remaining.",
                        removed,
                        "y" if removed == 1 else "ies",
                        len(self._store),
                    )
        except asyncio.CancelledError:
            logger.debug("Cache sweep loop cancelled.")
            raise
