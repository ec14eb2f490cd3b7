"""Shared fixtures: settings, RSA signing keys and a fake JWKS key client."""

from __future__ import annotations

import time
from types import SimpleNamespace
from typing import Any, Dict

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from weather_mcp.config import Settings

ISSUER = "https://tenant.example.com/"
AUDIENCE = "https://weather.example.com"
SERVER_URL = "https://weather.example.com"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        server_url=SERVER_URL,
        auth0_domain="tenant.example.com",
        auth0_audience=AUDIENCE,
        environment="test",
    )


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


class FakeKeyClient:
    """Stands in for ``jwt.PyJWKClient`` with a fixed ``kid -> key`` map."""

    def __init__(self, keys: Dict[str, Any]) -> None:
        self.keys = keys
        self.lookups = 0

    def get_signing_key_from_jwt(self, token: str) -> SimpleNamespace:
        self.lookups += 1
        kid = jwt.get_unverified_header(token).get("kid")
        if kid not in self.keys:
            raise jwt.PyJWKClientError(f'Unable to find a signing key that matches: "{kid}"')
        return SimpleNamespace(key=self.keys[kid])


def make_token(private_key: rsa.RSAPrivateKey, kid: str = "k1", **claims: Any) -> str:
    """Sign an RS256 token with sensible defaults; ``None`` drops a claim."""
    now = int(time.time())
    payload: Dict[str, Any] = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "sub": "user-123",
        "azp": "client-abc",
        "scope": "openid profile",
        "iat": now,
        "exp": now + 3600,
    }
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})
