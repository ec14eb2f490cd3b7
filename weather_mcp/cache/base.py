"""Abstract cache contract.

Call sites depend only on :class:`Cache`, so a network-backed store can
replace the in-memory one without touching them.  Every method is a
coroutine even when the backing store never suspends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class Cache(ABC):
    """Minimal async key-value store with per-entry expiry."""

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value for *key*, or *default* if missing or expired.

        Stored ``None`` values are returned as-is; pass a sentinel *default*
        to tell them apart from a miss.
        """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store *value* under *key* for *ttl* seconds (backend default if omitted)."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove *key*; return ``True`` if it was present."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    async def has(self, key: str) -> bool:
        """Return ``True`` if a non-expired entry exists for *key*."""

    @abstractmethod
    async def size(self) -> int:
        """Number of live (non-expired) entries."""
