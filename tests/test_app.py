"""End-to-end tests for the HTTP entry point."""

from __future__ import annotations

from typing import Any, Dict

import httpx
import pytest
from conftest import SERVER_URL, FakeKeyClient, make_token
from starlette.testclient import TestClient

from weather_mcp.config import Settings
from weather_mcp.server import build_context, create_app

LONDON = {
    "name": "London",
    "latitude": 51.5085,
    "longitude": -0.1257,
    "country": "United Kingdom",
    "admin1": "England",
}

CURRENT_WEATHER = {
    "current": {
        "temperature_2m": 72.0,
        "relative_humidity_2m": 40,
        "apparent_temperature": 70.5,
        "wind_speed_10m": 5.2,
        "wind_direction_10m": 180,
        "weather_code": 2,
    }
}

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "capabilities": {},
        "clientInfo": {"name": "test-client", "version": "0.1.0"},
    },
}

INITIALIZED = {"jsonrpc": "2.0", "method": "notifications/initialized"}


def upstream_handler(request: httpx.Request) -> httpx.Response:
    host = request.url.host
    if host == "geocoding-api.open-meteo.com":
        if request.url.params.get("name") == "London":
            return httpx.Response(200, json={"results": [LONDON]})
        return httpx.Response(200, json={})
    if host == "api.open-meteo.com":
        return httpx.Response(200, json=CURRENT_WEATHER)
    return httpx.Response(503)


def oauth_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"access_token": "abc", "token_type": "Bearer"})


@pytest.fixture
def token(rsa_key) -> str:
    return make_token(rsa_key)


@pytest.fixture
def app(settings: Settings, rsa_key):
    ctx = build_context(
        settings,
        upstream_client=httpx.AsyncClient(transport=httpx.MockTransport(upstream_handler)),
        oauth_client=httpx.AsyncClient(transport=httpx.MockTransport(oauth_handler)),
        key_client_factory=lambda config: FakeKeyClient({"k1": rsa_key.public_key()}),
    )
    return create_app(settings, context=ctx)


def mcp_headers(token: str, session_id: str = "") -> Dict[str, str]:
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json, text/event-stream",
        "Content-Type": "application/json",
    }
    if session_id:
        headers["Mcp-Session-Id"] = session_id
    return headers


def rpc(method: str, request_id: int, params: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        body["params"] = params
    return body


def open_session(client: TestClient, token: str) -> str:
    resp = client.post("/mcp", json=INITIALIZE, headers=mcp_headers(token))
    assert resp.status_code == 200, resp.text
    session_id = resp.headers["mcp-session-id"]
    resp = client.post("/mcp", json=INITIALIZED, headers=mcp_headers(token, session_id))
    assert resp.status_code == 202
    return session_id


# ════════════════════════════════════════════════════════════════════════
#  Public endpoints
# ════════════════════════════════════════════════════════════════════════


class TestPublicEndpoints:
    def test_health(self, app) -> None:
        with TestClient(app) as client:
            resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_protected_resource_metadata(self, app) -> None:
        with TestClient(app) as client:
            resp = client.get("/.well-known/oauth-protected-resource")
        assert resp.status_code == 200
        assert resp.json()["resource"] == SERVER_URL
        assert resp.json()["authorization_servers"] == [SERVER_URL]

    def test_server_metadata(self, app) -> None:
        with TestClient(app) as client:
            resp = client.get("/.well-known/oauth-authorization-server")
        doc = resp.json()
        assert doc["issuer"] == SERVER_URL
        assert doc["token_endpoint"] == f"{SERVER_URL}/token"
        assert doc["code_challenge_methods_supported"] == ["S256"]

    def test_cors_preflight(self, app) -> None:
        with TestClient(app) as client:
            resp = client.options(
                "/mcp",
                headers={
                    "Origin": "https://client.example.org",
                    "Access-Control-Request-Method": "POST",
                    "Access-Control-Request-Headers": "Authorization, Mcp-Session-Id",
                },
            )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "https://client.example.org"
        assert resp.headers["access-control-allow-credentials"] == "true"


# ════════════════════════════════════════════════════════════════════════
#  Authentication
# ════════════════════════════════════════════════════════════════════════


class TestAuthGate:
    def test_missing_token(self, app) -> None:
        with TestClient(app) as client:
            resp = client.post("/mcp", json=INITIALIZE)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == -32000
        assert 'resource_metadata="https://weather.example.com/.well-known/oauth-protected-resource"' in (
            resp.headers["www-authenticate"]
        )
        assert app.state.context.sessions.active_count == 0

    def test_invalid_token(self, app, other_rsa_key) -> None:
        forged = make_token(other_rsa_key)
        with TestClient(app) as client:
            resp = client.post("/mcp", json=INITIALIZE, headers=mcp_headers(forged))
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid or expired token"

    def test_cors_headers_on_rejection(self, app) -> None:
        with TestClient(app) as client:
            resp = client.post("/mcp", json=INITIALIZE, headers={"Origin": "https://client.example.org"})
        assert resp.status_code == 401
        assert resp.headers["access-control-allow-origin"] == "https://client.example.org"


# ════════════════════════════════════════════════════════════════════════
#  MCP sessions over HTTP
# ════════════════════════════════════════════════════════════════════════


class TestMCPEndpoint:
    def test_initialize_assigns_session(self, app, token: str) -> None:
        with TestClient(app) as client:
            resp = client.post("/mcp", json=INITIALIZE, headers=mcp_headers(token))
            assert resp.status_code == 200
            assert resp.headers["mcp-session-id"]
            result = resp.json()["result"]
            assert result["serverInfo"]["name"] == "weather-server"
            assert "tools" in result["capabilities"]
            assert app.state.context.sessions.active_count == 1
        # lifespan shutdown closes every session
        assert app.state.context.sessions.active_count == 0

    def test_list_tools(self, app, token: str) -> None:
        with TestClient(app) as client:
            sid = open_session(client, token)
            resp = client.post("/mcp", json=rpc("tools/list", 2), headers=mcp_headers(token, sid))
        assert resp.status_code == 200
        tools = resp.json()["result"]["tools"]
        assert len(tools) == 14
        assert tools[0]["name"] == "get_weather"
        assert tools[0]["inputSchema"]["required"] == ["city"]

    def test_call_tool(self, app, token: str) -> None:
        with TestClient(app) as client:
            sid = open_session(client, token)
            resp = client.post(
                "/mcp",
                json=rpc("tools/call", 3, {"name": "get_weather", "arguments": {"city": "London"}}),
                headers=mcp_headers(token, sid),
            )
        result = resp.json()["result"]
        assert result["isError"] is False
        text = result["content"][0]["text"]
        assert text.startswith("Weather for London, England, United Kingdom")
        assert "Temperature: 72°F" in text

    def test_call_tool_unknown_city_is_flagged(self, app, token: str) -> None:
        with TestClient(app) as client:
            sid = open_session(client, token)
            resp = client.post(
                "/mcp",
                json=rpc("tools/call", 4, {"name": "get_weather", "arguments": {"city": "Atlantis"}}),
                headers=mcp_headers(token, sid),
            )
        result = resp.json()["result"]
        assert result["isError"] is True
        assert "Could not find a location matching \"Atlantis\"" in result["content"][0]["text"]

    def test_sessions_are_isolated(self, app, token: str) -> None:
        with TestClient(app) as client:
            first = open_session(client, token)
            second = open_session(client, token)
            assert first != second
            assert app.state.context.sessions.active_count == 2

    def test_unknown_session_is_404(self, app, token: str) -> None:
        with TestClient(app) as client:
            resp = client.post("/mcp", json=rpc("tools/list", 2), headers=mcp_headers(token, "bogus"))
            assert resp.status_code == 404
            assert resp.json()["error"] == {"code": -32603, "message": "Session not found or expired"}
            assert app.state.context.sessions.active_count == 0

    def test_delete_then_reuse(self, app, token: str) -> None:
        with TestClient(app) as client:
            sid = open_session(client, token)
            resp = client.delete("/mcp", headers=mcp_headers(token, sid))
            assert resp.status_code == 204
            resp = client.post("/mcp", json=rpc("tools/list", 5), headers=mcp_headers(token, sid))
            assert resp.status_code == 404
            resp = client.delete("/mcp", headers=mcp_headers(token, sid))
            assert resp.status_code == 404

    def test_session_header_exposed_to_browsers(self, app, token: str) -> None:
        headers = {**mcp_headers(token), "Origin": "https://client.example.org"}
        with TestClient(app) as client:
            resp = client.post("/mcp", json=INITIALIZE, headers=headers)
        assert "mcp-session-id" in resp.headers["access-control-expose-headers"].lower()


class TestInternalErrors:
    def test_unhandled_error_becomes_envelope(self, app, token: str, monkeypatch) -> None:
        async def explode(scope, receive, send) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(app.state.context.sessions, "handle_request", explode)
        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.post("/mcp", json=INITIALIZE, headers=mcp_headers(token))
        assert resp.status_code == 500
        assert resp.json()["error"] == {"code": -32603, "message": "Internal server error"}
