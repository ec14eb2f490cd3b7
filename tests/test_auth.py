"""Tests for incoming bearer token verification and the auth middleware."""

from __future__ import annotations

import time
from typing import Any, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import AUDIENCE, ISSUER, FakeKeyClient, make_token
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from weather_mcp.errors import TokenVerificationError
from weather_mcp.server.auth import AuthContext, AuthMiddleware, JWTConfig, TokenVerifier, get_auth_context

RESOURCE_METADATA = "https://weather.example.com/.well-known/oauth-protected-resource"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class KeyClientFactory:
    """Hands out a :class:`FakeKeyClient` over whatever keys are current."""

    def __init__(self, keys: Any) -> None:
        self.keys = keys
        self.built: List[FakeKeyClient] = []

    def __call__(self, config: JWTConfig) -> FakeKeyClient:
        client = FakeKeyClient(dict(self.keys))
        self.built.append(client)
        return client


def make_verifier(factory: KeyClientFactory, clock: FakeClock) -> TokenVerifier:
    config = JWTConfig(
        jwks_uri="https://tenant.example.com/.well-known/jwks.json",
        issuer=ISSUER,
        audience=AUDIENCE,
        refresh_cooldown=30,
    )
    return TokenVerifier(config, key_client_factory=factory, clock=clock)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def factory(rsa_key) -> KeyClientFactory:
    return KeyClientFactory({"k1": rsa_key.public_key()})


@pytest.fixture
def verifier(factory: KeyClientFactory, clock: FakeClock) -> TokenVerifier:
    return make_verifier(factory, clock)


# ── AuthContext ─────────────────────────────────────────────────────────


class TestAuthContext:
    def test_prefers_azp(self) -> None:
        ctx = AuthContext.from_claims("t", {"azp": "app", "sub": "user", "scope": "a b"})
        assert ctx.client_id == "app"
        assert ctx.scopes == ("a", "b")

    def test_falls_back_to_sub_then_unknown(self) -> None:
        assert AuthContext.from_claims("t", {"sub": "user"}).client_id == "user"
        assert AuthContext.from_claims("t", {}).client_id == "unknown"

    def test_token_not_in_repr(self) -> None:
        assert "secret-token" not in repr(AuthContext.from_claims("secret-token", {}))


# ── TokenVerifier ───────────────────────────────────────────────────────


class TestTokenVerifier:
    @pytest.mark.anyio
    async def test_valid_token(self, verifier: TokenVerifier, rsa_key) -> None:
        token = make_token(rsa_key)
        auth = await verifier.verify(token)
        assert auth.client_id == "client-abc"
        assert auth.scopes == ("openid", "profile")
        assert auth.claims["sub"] == "user-123"
        assert auth.expires_at is not None

    @pytest.mark.anyio
    async def test_expired_token(self, verifier: TokenVerifier, rsa_key) -> None:
        token = make_token(rsa_key, exp=int(time.time()) - 60)
        with pytest.raises(TokenVerificationError, match="expired"):
            await verifier.verify(token)

    @pytest.mark.anyio
    async def test_wrong_audience(self, verifier: TokenVerifier, rsa_key) -> None:
        token = make_token(rsa_key, aud="https://someone-else.example.com")
        with pytest.raises(TokenVerificationError):
            await verifier.verify(token)

    @pytest.mark.anyio
    async def test_wrong_issuer(self, verifier: TokenVerifier, rsa_key) -> None:
        token = make_token(rsa_key, iss="https://evil.example.com/")
        with pytest.raises(TokenVerificationError):
            await verifier.verify(token)

    @pytest.mark.anyio
    async def test_malformed_token(self, verifier: TokenVerifier) -> None:
        with pytest.raises(TokenVerificationError):
            await verifier.verify("not-a-jwt")

    @pytest.mark.anyio
    async def test_token_without_exp_is_accepted(self, verifier: TokenVerifier, rsa_key) -> None:
        auth = await verifier.verify(make_token(rsa_key, exp=None))
        assert auth.expires_at is None


class TestKeyRotation:
    @pytest.mark.anyio
    async def test_unknown_kid_triggers_refresh(
        self, factory: KeyClientFactory, clock: FakeClock, rsa_key, other_rsa_key
    ) -> None:
        verifier = make_verifier(factory, clock)
        await verifier.verify(make_token(rsa_key))
        assert len(factory.built) == 1

        # provider rotates in a new key
        factory.keys = {"k1": rsa_key.public_key(), "k2": other_rsa_key.public_key()}
        clock.now = 100
        auth = await verifier.verify(make_token(other_rsa_key, kid="k2"))
        assert auth.client_id == "client-abc"
        assert len(factory.built) == 2

    @pytest.mark.anyio
    async def test_refresh_respects_cooldown(
        self, factory: KeyClientFactory, clock: FakeClock, rsa_key, other_rsa_key
    ) -> None:
        verifier = make_verifier(factory, clock)
        await verifier.verify(make_token(rsa_key))
        clock.now = 10
        with pytest.raises(TokenVerificationError):
            await verifier.verify(make_token(other_rsa_key, kid="k2"))
        assert len(factory.built) == 1

    @pytest.mark.anyio
    async def test_bad_signature_fails_after_one_refresh(
        self, factory: KeyClientFactory, clock: FakeClock, rsa_key, other_rsa_key
    ) -> None:
        verifier = make_verifier(factory, clock)
        await verifier.verify(make_token(rsa_key))
        clock.now = 100
        forged = make_token(other_rsa_key, kid="k1")
        with pytest.raises(TokenVerificationError, match="after key refresh"):
            await verifier.verify(forged)
        assert len(factory.built) == 2

        # a second forgery inside the cooldown does not refetch
        clock.now = 110
        with pytest.raises(TokenVerificationError):
            await verifier.verify(forged)
        assert len(factory.built) == 2


# ── AuthMiddleware ──────────────────────────────────────────────────────


async def whoami(request: Request) -> JSONResponse:
    auth = get_auth_context(request)
    return JSONResponse({"client_id": auth.client_id if auth else None})


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def make_app(verifier: Any) -> Starlette:
    return Starlette(
        routes=[
            Route("/mcp", whoami, methods=["GET", "POST"]),
            Route("/health", health),
        ],
        middleware=[
            Middleware(AuthMiddleware, verifier=verifier, resource_metadata_url=RESOURCE_METADATA)
        ],
    )


class TestAuthMiddleware:
    def test_missing_header(self) -> None:
        verifier = MagicMock()
        verifier.verify = AsyncMock()
        with TestClient(make_app(verifier)) as client:
            resp = client.post("/mcp")
        assert resp.status_code == 401
        assert resp.json() == {
            "jsonrpc": "2.0",
            "error": {"code": -32000, "message": "Missing or invalid Authorization header"},
            "id": None,
        }
        assert resp.headers["www-authenticate"] == f'Bearer resource_metadata="{RESOURCE_METADATA}"'
        verifier.verify.assert_not_called()

    def test_non_bearer_scheme(self) -> None:
        verifier = MagicMock()
        verifier.verify = AsyncMock()
        with TestClient(make_app(verifier)) as client:
            resp = client.get("/mcp", headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Missing or invalid Authorization header"

    def test_invalid_token(self) -> None:
        verifier = MagicMock()
        verifier.verify = AsyncMock(side_effect=TokenVerificationError("bad"))
        with TestClient(make_app(verifier)) as client:
            resp = client.get("/mcp", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json()["error"] == {"code": -32000, "message": "Invalid or expired token"}
        verifier.verify.assert_awaited_once_with("nope")

    def test_valid_token_reaches_endpoint(self, verifier: TokenVerifier, rsa_key) -> None:
        token = make_token(rsa_key)
        with TestClient(make_app(verifier)) as client:
            resp = client.get("/mcp", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"client_id": "client-abc"}

    def test_public_path_skips_auth(self) -> None:
        verifier = MagicMock()
        verifier.verify = AsyncMock()
        with TestClient(make_app(verifier)) as client:
            resp = client.get("/health")
        assert resp.status_code == 200
        verifier.verify.assert_not_called()

    def test_options_skips_auth(self) -> None:
        verifier = MagicMock()
        verifier.verify = AsyncMock()
        with TestClient(make_app(verifier)) as client:
            resp = client.options("/mcp")
        assert resp.status_code != 401
        verifier.verify.assert_not_called()
