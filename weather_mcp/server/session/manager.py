"""Session lifecycle management for the ``/mcp`` endpoint.

Maps stateless HTTP requests onto long-lived MCP sessions.  A request
without an ``Mcp-Session-Id`` header creates a session; a request naming
a live session is handed to that session's transport; a request naming
anything else is refused with 404 and never creates a session.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Message, Receive, Scope, Send

from weather_mcp.constants import MCP_SESSION_ID_HEADER, SESSION_IDLE_TTL, SESSION_SWEEP_INTERVAL
from weather_mcp.errors import SessionConnectError, SessionNotFoundError
from weather_mcp.jsonrpc import (
    INTERNAL_ERROR,
    MSG_DELETE_NOT_FOUND,
    MSG_INTERNAL_ERROR,
    MSG_SESSION_NOT_FOUND,
    jsonrpc_error_response,
)
from weather_mcp.server.session.models import MCPSession, SessionState

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], Any]
TransportFactory = Callable[..., Any]


class SessionManager:
    """Owns every live session and the background idle sweep.

    Parameters
    ----------
    engine_factory:
        Zero-argument callable returning a fresh protocol engine with all
        tools registered.  Called exactly once per session.
    idle_ttl:
        Seconds a session may stay untouched before the sweep closes it.
    sweep_interval:
        How often (in seconds) the sweep runs.
    json_response:
        Ask transports for plain JSON responses instead of SSE streams
        on POST.
    transport_factory:
        Builds the transport for a new session; called with
        ``mcp_session_id`` and ``is_json_response_enabled``.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        *,
        idle_ttl: float = SESSION_IDLE_TTL,
        sweep_interval: float = SESSION_SWEEP_INTERVAL,
        json_response: bool = True,
        transport_factory: TransportFactory = StreamableHTTPServerTransport,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine_factory = engine_factory
        self._idle_ttl = idle_ttl
        self._sweep_interval = sweep_interval
        self._json_response = json_response
        self._transport_factory = transport_factory
        self._clock = clock
        self._sessions: Dict[str, MCPSession] = {}
        self._sweep_task: Optional[asyncio.Task[None]] = None

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the background idle sweep."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop(), name="session-sweep")
            logger.info(
                "Session sweep started (interval=%.0fs, idle_ttl=%.0fs).",
                self._sweep_interval,
                self._idle_ttl,
            )

    async def shutdown(self) -> None:
        """Stop the sweep, then close every remaining session."""
        if self._sweep_task is not None and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None

        remaining = list(self._sessions.values())
        self._sessions.clear()
        for session in remaining:
            await self._close(session)
        logger.info("SessionManager stopped. Closed %d session(s).", len(remaining))

    # ── Session operations ───────────────────────────────────────────

    async def resolve(self, session_id: Optional[str]) -> Tuple[MCPSession, bool]:
        """Return ``(session, created)`` for a request's session header.

        Raises :class:`SessionNotFoundError` when *session_id* is given
        but does not name a live session, and
        :class:`SessionConnectError` when a new engine cannot attach to
        its transport.
        """
        if session_id is not None:
            session = self._sessions.get(session_id)
            if session is None or not session.is_live:
                raise SessionNotFoundError(session_id)
            session.touch()
            return session, False

        session = self._create()
        await session.ready.wait()
        if not session.is_live:
            self._discard(session)
            raise SessionConnectError(f"Session {session.id} failed to connect its transport")
        logger.info("Session created: id=%s (active=%d)", session.id, len(self._sessions))
        return session, True

    async def dispatch(
        self, session: MCPSession, scope: Scope, receive: Receive, send: Send
    ) -> Optional[int]:
        """Hand one HTTP exchange to *session*'s transport.

        Exceptions never escape.  A 500 envelope is written only when the
        transport has not started a response yet.  Returns the status sent,
        or ``None`` if no response was started.
        """
        status: Optional[int] = None

        async def tracking_send(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await session.transport.handle_request(scope, receive, tracking_send)
        except Exception:
            logger.exception("Error dispatching request for session %s", session.id)
            if status is None:
                response = jsonrpc_error_response(500, INTERNAL_ERROR, MSG_INTERNAL_ERROR)
                await response(scope, receive, tracking_send)
        finally:
            session.touch()
        return status

    async def terminate(self, session_id: str) -> bool:
        """Close and forget *session_id*.  Returns ``False`` if it was not live."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await self._close(session)
        logger.info("Session terminated: id=%s (active=%d)", session_id, len(self._sessions))
        return True

    async def sweep_idle(self) -> int:
        """Close every session idle for strictly longer than the TTL."""
        expired = [sid for sid, s in self._sessions.items() if s.expired]
        closing = [self._sessions.pop(sid) for sid in expired]
        for session in closing:
            await self._close(session)
        if closing:
            logger.info(
                "Session sweep: closed %d idle session(s), %d remaining.",
                len(closing),
                len(self._sessions),
            )
        return len(closing)

    # ── ASGI entry ───────────────────────────────────────────────────

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve one request on ``/mcp`` (POST, GET or DELETE)."""
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)

        if request.method == "DELETE":
            if session_id and await self.terminate(session_id):
                response: Response = Response(status_code=204)
            else:
                response = jsonrpc_error_response(404, INTERNAL_ERROR, MSG_DELETE_NOT_FOUND)
            await response(scope, receive, send)
            return

        try:
            session, created = await self.resolve(session_id)
        except SessionNotFoundError:
            logger.info("Request for unknown session %s", session_id)
            response = jsonrpc_error_response(404, INTERNAL_ERROR, MSG_SESSION_NOT_FOUND)
            await response(scope, receive, send)
            return

        status = await self.dispatch(session, scope, receive, send)
        if created and (status is None or status >= 400):
            # No client learns the id of a refused opening request.
            logger.info("Discarding session %s: first request got status %s", session.id, status)
            await self.terminate(session.id)

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[MCPSession]:
        return self._sessions.get(session_id)

    def list_sessions(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self._sessions.values()]

    # ── Internal ─────────────────────────────────────────────────────

    def _create(self) -> MCPSession:
        session_id = uuid4().hex
        transport = self._transport_factory(
            mcp_session_id=session_id,
            is_json_response_enabled=self._json_response,
        )
        session = MCPSession(
            id=session_id,
            engine=self._engine_factory(),
            transport=transport,
            ttl=self._idle_ttl,
            clock=self._clock,
        )
        # Registered before the first suspension point.
        self._sessions[session_id] = session
        session.task = asyncio.create_task(self._run_engine(session), name=f"mcp-session-{session_id}")
        return session

    async def _run_engine(self, session: MCPSession) -> None:
        try:
            async with session.transport.connect() as (read_stream, write_stream):
                session.state = SessionState.CONNECTED
                session.ready.set()
                await session.engine.run(
                    read_stream,
                    write_stream,
                    session.engine.create_initialization_options(),
                    stateless=False,
                )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Engine for session %s crashed", session.id)
        finally:
            if session.state is not SessionState.CLOSED:
                session.state = SessionState.CLOSED
                self._discard(session)
            session.ready.set()

    def _discard(self, session: MCPSession) -> None:
        if self._sessions.get(session.id) is session:
            del self._sessions[session.id]
            logger.debug("Session removed: %s", session.id)

    async def _close(self, session: MCPSession) -> None:
        session.state = SessionState.CLOSED
        try:
            await session.transport.terminate()
        except Exception:
            logger.warning("Error terminating transport for session %s", session.id, exc_info=True)
        task = session.task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _sweep_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._sweep_interval)
                await self.sweep_idle()
        except asyncio.CancelledError:
            logger.debug("Session sweep loop cancelled.")
            raise
