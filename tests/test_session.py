"""Tests for session management on the /mcp endpoint."""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

import pytest
from starlette.responses import Response

from weather_mcp.errors import SessionConnectError
from weather_mcp.server.session import MCPSession, SessionManager, SessionState


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class FakeTransport:
    """Minimal stand-in for ``StreamableHTTPServerTransport``."""

    fail_connect = False
    fail_request: Optional[str] = None  # "before" | "after" response start
    reject_status: Optional[int] = None

    def __init__(self, mcp_session_id: str, is_json_response_enabled: bool) -> None:
        self.mcp_session_id = mcp_session_id
        self.is_json_response_enabled = is_json_response_enabled
        self.handled: List[str] = []
        self.terminated = False

    @asynccontextmanager
    async def connect(self):
        if self.fail_connect:
            raise RuntimeError("streams unavailable")
        yield ("read-stream", "write-stream")

    async def handle_request(self, scope, receive, send) -> None:
        self.handled.append(scope["method"])
        if self.fail_request == "before":
            raise RuntimeError("transport blew up")
        if self.fail_request == "after":
            await send({"type": "http.response.start", "status": 200, "headers": []})
            raise RuntimeError("transport blew up mid-stream")
        if self.reject_status is not None:
            await Response("Bad Request: Missing session ID", status_code=self.reject_status)(scope, receive, send)
            return
        await Response(f"ok:{self.mcp_session_id}")(scope, receive, send)

    async def terminate(self) -> None:
        self.terminated = True


class FakeEngine:
    def __init__(self, crash: bool = False) -> None:
        self.crash = crash
        self.run_args: Optional[Tuple[Any, ...]] = None

    def create_initialization_options(self) -> str:
        return "init-options"

    async def run(self, read, write, options, stateless: bool = False) -> None:
        self.run_args = (read, write, options, stateless)
        if self.crash:
            for _ in range(5):
                await asyncio.sleep(0)
            raise RuntimeError("engine crashed")
        await asyncio.Event().wait()


class Harness:
    def __init__(self, clock: FakeClock, idle_ttl: float = 10.0) -> None:
        self.transports: List[FakeTransport] = []
        self.engines: List[FakeEngine] = []
        self.crash_engines = False
        self.manager = SessionManager(
            self._engine,
            idle_ttl=idle_ttl,
            sweep_interval=0.01,
            transport_factory=self._transport,
            clock=clock,
        )

    def _engine(self) -> FakeEngine:
        engine = FakeEngine(crash=self.crash_engines)
        self.engines.append(engine)
        return engine

    def _transport(self, **kwargs: Any) -> FakeTransport:
        transport = FakeTransport(**kwargs)
        self.transports.append(transport)
        return transport


async def call(
    manager: SessionManager, method: str, session_id: Optional[str] = None
) -> Tuple[int, Dict[bytes, bytes], bytes]:
    """Drive one raw ASGI request through ``handle_request``."""
    headers = [(b"content-type", b"application/json")]
    if session_id is not None:
        headers.append((b"mcp-session-id", session_id.encode()))
    scope = {
        "type": "http",
        "method": method,
        "path": "/mcp",
        "raw_path": b"/mcp",
        "root_path": "",
        "scheme": "http",
        "query_string": b"",
        "headers": headers,
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 5000),
        "http_version": "1.1",
    }
    sent: List[Dict[str, Any]] = []

    async def receive() -> Dict[str, Any]:
        return {"type": "http.request", "body": b"{}", "more_body": False}

    async def send(message: Dict[str, Any]) -> None:
        sent.append(message)

    await manager.handle_request(scope, receive, send)
    start = sent[0]
    body = b"".join(m.get("body", b"") for m in sent[1:])
    return start["status"], dict(start["headers"]), body


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def harness(clock: FakeClock) -> Harness:
    return Harness(clock)


# ════════════════════════════════════════════════════════════════════════
#  MCPSession model tests
# ════════════════════════════════════════════════════════════════════════


class TestMCPSession:
    def test_defaults(self, clock: FakeClock) -> None:
        s = MCPSession(id="abc", engine=None, transport=None, clock=clock)
        assert s.state is SessionState.UNINITIALIZED
        assert s.ttl == 1800.0
        assert s.created_at == s.last_active == 1000.0
        assert not s.is_live

    def test_expired_is_strict(self, clock: FakeClock) -> None:
        s = MCPSession(id="abc", engine=None, transport=None, ttl=10, clock=clock)
        clock.now += 10
        assert not s.expired
        clock.now += 0.5
        assert s.expired

    def test_touch(self, clock: FakeClock) -> None:
        s = MCPSession(id="abc", engine=None, transport=None, ttl=10, clock=clock)
        clock.now += 8
        s.touch()
        clock.now += 8
        assert s.idle_seconds == 8
        assert s.age_seconds == 16
        assert not s.expired

    def test_to_dict(self, clock: FakeClock) -> None:
        s = MCPSession(id="abc", engine=None, transport=None, ttl=10, clock=clock)
        s.state = SessionState.CONNECTED
        clock.now += 2.25
        assert s.to_dict() == {
            "id": "abc",
            "state": "connected",
            "age_seconds": 2.2,
            "idle_seconds": 2.2,
            "ttl": 10,
            "expired": False,
        }


# ════════════════════════════════════════════════════════════════════════
#  SessionManager
# ════════════════════════════════════════════════════════════════════════


class TestSessionCreation:
    @pytest.mark.anyio
    async def test_request_without_id_creates_session(self, harness: Harness) -> None:
        status, _, body = await call(harness.manager, "POST")
        assert status == 200
        assert harness.manager.active_count == 1

        transport = harness.transports[0]
        assert body == f"ok:{transport.mcp_session_id}".encode()
        assert transport.is_json_response_enabled is True
        assert len(transport.mcp_session_id) == 32

        session = harness.manager.get(transport.mcp_session_id)
        assert session is not None and session.state is SessionState.CONNECTED
        assert harness.engines[0].run_args == ("read-stream", "write-stream", "init-options", False)
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_known_id_is_reused(self, harness: Harness) -> None:
        await call(harness.manager, "POST")
        sid = harness.transports[0].mcp_session_id
        status, _, body = await call(harness.manager, "POST", sid)
        assert status == 200
        assert body == f"ok:{sid}".encode()
        assert len(harness.transports) == 1
        assert harness.transports[0].handled == ["POST", "POST"]
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_concurrent_creations_get_distinct_sessions(self, harness: Harness) -> None:
        results = await asyncio.gather(*(harness.manager.resolve(None) for _ in range(3)))
        ids = {session.id for session, created in results}
        assert len(ids) == 3
        assert all(created for _, created in results)
        assert harness.manager.active_count == 3
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_connect_failure(self, harness: Harness) -> None:
        FakeTransport.fail_connect = True
        try:
            with pytest.raises(SessionConnectError):
                await harness.manager.resolve(None)
        finally:
            FakeTransport.fail_connect = False
        assert harness.manager.active_count == 0

    @pytest.mark.anyio
    async def test_engine_crash_discards_session(self, harness: Harness) -> None:
        harness.crash_engines = True
        session, _ = await harness.manager.resolve(None)
        await asyncio.wait_for(session.task, timeout=1)
        assert session.state is SessionState.CLOSED
        assert harness.manager.active_count == 0
        status, _, _ = await call(harness.manager, "POST", session.id)
        assert status == 404

    @pytest.mark.anyio
    async def test_refused_opening_request_discards_session(self, harness: Harness) -> None:
        FakeTransport.reject_status = 400
        try:
            statuses = [(await call(harness.manager, "GET"))[0] for _ in range(5)]
        finally:
            FakeTransport.reject_status = None
        assert statuses == [400] * 5
        assert harness.manager.active_count == 0
        assert all(t.terminated for t in harness.transports)

    @pytest.mark.anyio
    async def test_refused_request_keeps_existing_session(self, harness: Harness) -> None:
        session, _ = await harness.manager.resolve(None)
        harness.transports[0].reject_status = 400
        status, _, _ = await call(harness.manager, "POST", session.id)
        assert status == 400
        assert harness.manager.active_count == 1
        await harness.manager.shutdown()


class TestUnknownSessions:
    @pytest.mark.anyio
    async def test_unknown_id_is_404_and_creates_nothing(self, harness: Harness) -> None:
        status, headers, body = await call(harness.manager, "POST", "does-not-exist")
        assert status == 404
        assert headers[b"content-type"] == b"application/json"
        assert json.loads(body) == {
            "jsonrpc": "2.0",
            "error": {"code": -32603, "message": "Session not found or expired"},
            "id": None,
        }
        assert harness.manager.active_count == 0
        assert harness.transports == []

    @pytest.mark.anyio
    async def test_get_with_unknown_id(self, harness: Harness) -> None:
        status, _, _ = await call(harness.manager, "GET", "nope")
        assert status == 404


class TestTermination:
    @pytest.mark.anyio
    async def test_delete_closes_session(self, harness: Harness) -> None:
        await call(harness.manager, "POST")
        transport = harness.transports[0]
        session = harness.manager.get(transport.mcp_session_id)

        status, _, body = await call(harness.manager, "DELETE", transport.mcp_session_id)
        assert status == 204
        assert body == b""
        assert transport.terminated
        assert harness.manager.active_count == 0
        assert session is not None and session.task is not None and session.task.done()

        status, _, _ = await call(harness.manager, "POST", transport.mcp_session_id)
        assert status == 404

    @pytest.mark.anyio
    async def test_delete_unknown(self, harness: Harness) -> None:
        status, _, body = await call(harness.manager, "DELETE", "nope")
        assert status == 404
        assert json.loads(body)["error"] == {"code": -32603, "message": "Session not found"}

    @pytest.mark.anyio
    async def test_delete_without_header(self, harness: Harness) -> None:
        status, _, _ = await call(harness.manager, "DELETE")
        assert status == 404
        assert harness.transports == []

    @pytest.mark.anyio
    async def test_terminate_twice(self, harness: Harness) -> None:
        session, _ = await harness.manager.resolve(None)
        assert await harness.manager.terminate(session.id) is True
        assert await harness.manager.terminate(session.id) is False

    @pytest.mark.anyio
    async def test_shutdown_closes_everything(self, harness: Harness) -> None:
        for _ in range(3):
            await harness.manager.resolve(None)
        harness.manager.start()
        await harness.manager.shutdown()
        assert harness.manager.active_count == 0
        assert all(t.terminated for t in harness.transports)
        assert harness.manager._sweep_task is None


class TestDispatchErrors:
    @pytest.mark.anyio
    async def test_failure_before_response_sends_500(self, harness: Harness) -> None:
        session, _ = await harness.manager.resolve(None)
        harness.transports[0].fail_request = "before"
        status, _, body = await call(harness.manager, "POST", session.id)
        assert status == 500
        assert json.loads(body)["error"] == {"code": -32603, "message": "Internal server error"}
        # the session survives a failed request
        assert harness.manager.get(session.id) is session
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_failure_after_response_start_sends_nothing_more(self, harness: Harness) -> None:
        session, _ = await harness.manager.resolve(None)
        harness.transports[0].fail_request = "after"
        status, _, body = await call(harness.manager, "POST", session.id)
        assert status == 200
        assert body == b""
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_request_touches_session(self, harness: Harness, clock: FakeClock) -> None:
        session, _ = await harness.manager.resolve(None)
        clock.now += 7
        await call(harness.manager, "POST", session.id)
        assert session.idle_seconds == 0
        await harness.manager.shutdown()


class TestIdleSweep:
    @pytest.mark.anyio
    async def test_sweep_closes_only_expired(self, harness: Harness, clock: FakeClock) -> None:
        stale, _ = await harness.manager.resolve(None)
        fresh, _ = await harness.manager.resolve(None)
        clock.now += 5
        fresh.touch()
        clock.now += 6

        assert await harness.manager.sweep_idle() == 1
        assert harness.manager.get(stale.id) is None
        assert harness.manager.get(fresh.id) is fresh
        assert harness.transports[0].terminated
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_idle_exactly_ttl_survives(self, harness: Harness, clock: FakeClock) -> None:
        await harness.manager.resolve(None)
        clock.now += 10
        assert await harness.manager.sweep_idle() == 0
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_background_sweep(self, harness: Harness, clock: FakeClock) -> None:
        await harness.manager.resolve(None)
        clock.now += 60
        harness.manager.start()
        for _ in range(100):
            await asyncio.sleep(0.01)
            if harness.manager.active_count == 0:
                break
        assert harness.manager.active_count == 0
        await harness.manager.shutdown()

    @pytest.mark.anyio
    async def test_list_sessions(self, harness: Harness) -> None:
        session, _ = await harness.manager.resolve(None)
        listed = harness.manager.list_sessions()
        assert [entry["id"] for entry in listed] == [session.id]
        assert listed[0]["state"] == "connected"
        await harness.manager.shutdown()
