"""Session data models for per-client MCP sessions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from time import monotonic
from typing import Any, Callable, Dict, Optional


class SessionState(str, Enum):
    """Lifecycle of a session.  ``CLOSED`` is terminal."""

    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    CLOSED = "closed"


@dataclass
class MCPSession:
    """One client conversation: a protocol engine bound to its own transport.

    The engine runs in ``task`` for the whole life of the session, reading
    from and writing to the transport's streams.  Each HTTP request on the
    session is handed to the transport, never to the engine directly.
    """

    id: str
    engine: Any
    """The ``mcp.server.lowlevel.Server`` holding this session's tools."""

    transport: Any
    """The ``StreamableHTTPServerTransport`` bound to :attr:`id`."""

    ttl: float = 1800.0
    """Idle seconds after which the sweep closes the session."""

    clock: Callable[[], float] = field(default=monotonic, repr=False)

    created_at: float = 0.0
    last_active: float = 0.0
    state: SessionState = SessionState.UNINITIALIZED
    task: Optional["asyncio.Task[None]"] = field(default=None, repr=False)
    ready: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    """Set once the engine is attached to the transport's streams."""

    def __post_init__(self) -> None:
        now = self.clock()
        self.created_at = self.created_at or now
        self.last_active = self.last_active or now

    @property
    def is_live(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def idle_seconds(self) -> float:
        """Seconds since the session was last active."""
        return self.clock() - self.last_active

    @property
    def age_seconds(self) -> float:
        return self.clock() - self.created_at

    @property
    def expired(self) -> bool:
        """``True`` if the session has been idle strictly longer than its TTL."""
        return self.idle_seconds > self.ttl

    def touch(self) -> None:
        """Update *last_active* to the current clock time."""
        self.last_active = self.clock()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "age_seconds": round(self.age_seconds, 1),
            "idle_seconds": round(self.idle_seconds, 1),
            "ttl": self.ttl,
            "expired": self.expired,
        }
