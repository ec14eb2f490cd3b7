"""JWT bearer token verification against a remote JWKS key set.

Keys are fetched lazily through :class:`jwt.PyJWKClient`, which caches the
key set for ``key_ttl`` seconds.  When a token's signature does not verify
or its ``kid`` is unknown, the key client is rebuilt (at most once per
``refresh_cooldown``) and the token is checked once more, which covers
signing-key rotation without letting bad tokens hammer the key endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import jwt
from jwt import PyJWKClient

from weather_mcp.constants import JWKS_MAX_AGE, JWKS_REFRESH_COOLDOWN
from weather_mcp.errors import TokenVerificationError

logger = logging.getLogger(__name__)


@dataclass
class JWTConfig:
    """Configuration for JWT validation.

    Attributes
    ----------
    jwks_uri:
        URL of the JSON Web Key Set.
    issuer:
        Expected ``iss`` claim.
    audience:
        Expected ``aud`` claim.
    algorithms:
        Allowed signing algorithms.
    key_ttl:
        Seconds a fetched key set stays cached.
    refresh_cooldown:
        Minimum seconds between forced key-set re-fetches.
    """

    jwks_uri: str
    issuer: str
    audience: str
    algorithms: List[str] = field(default_factory=lambda: ["RS256"])
    key_ttl: float = JWKS_MAX_AGE
    refresh_cooldown: float = JWKS_REFRESH_COOLDOWN


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to an authenticated request."""

    token: str = field(repr=False)
    client_id: str
    scopes: Tuple[str, ...] = ()
    expires_at: Optional[int] = None
    claims: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_claims(cls, token: str, claims: Dict[str, Any]) -> "AuthContext":
        scope = claims.get("scope")
        return cls(
            token=token,
            client_id=claims.get("azp") or claims.get("sub") or "unknown",
            scopes=tuple(scope.split()) if isinstance(scope, str) else (),
            expires_at=claims.get("exp"),
            claims=claims,
        )


KeyClientFactory = Callable[[JWTConfig], Any]


def default_key_client(config: JWTConfig) -> PyJWKClient:
    return PyJWKClient(config.jwks_uri, cache_jwk_set=True, lifespan=config.key_ttl)


class TokenVerifier:
    """Verify bearer tokens and build :class:`AuthContext` values.

    Usage::

        verifier = TokenVerifier(JWTConfig(jwks_uri=..., issuer=..., audience=...))
        auth = await verifier.verify(token)
    """

    def __init__(
        self,
        config: JWTConfig,
        *,
        key_client_factory: KeyClientFactory = default_key_client,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._key_client_factory = key_client_factory
        self._clock = clock
        self._key_client: Optional[Any] = None
        self._last_refresh: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def config(self) -> JWTConfig:
        return self._config

    async def verify(self, token: str) -> AuthContext:
        """Verify *token*; raises :class:`TokenVerificationError` on any failure.

        Key fetching and signature checks block, so they run in a worker
        thread.
        """
        claims = await asyncio.to_thread(self._verify_sync, token)
        return AuthContext.from_claims(token, claims)

    # ── Internal ─────────────────────────────────────────────────────

    def _verify_sync(self, token: str) -> Dict[str, Any]:
        try:
            return self._decode(token)
        except (jwt.InvalidSignatureError, jwt.PyJWKClientError) as exc:
            if not self._refresh_keys():
                raise TokenVerificationError(f"Invalid token: {exc}") from exc
            logger.debug("Retrying token verification with a refreshed key set")
            try:
                return self._decode(token)
            except jwt.PyJWTError as retry_exc:
                raise TokenVerificationError(
                    f"Token verification failed after key refresh: {retry_exc}"
                ) from retry_exc
        except jwt.ExpiredSignatureError as exc:
            raise TokenVerificationError("Token has expired") from exc
        except jwt.PyJWTError as exc:
            raise TokenVerificationError(f"Invalid token: {exc}") from exc

    def _decode(self, token: str) -> Dict[str, Any]:
        client = self._client()
        signing_key = client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=self._config.algorithms,
            issuer=self._config.issuer,
            audience=self._config.audience,
        )

    def _client(self) -> Any:
        with self._lock:
            if self._key_client is None:
                self._key_client = self._key_client_factory(self._config)
                self._last_refresh = self._clock()
            return self._key_client

    def _refresh_keys(self) -> bool:
        """Rebuild the key client unless one was built within the cooldown."""
        with self._lock:
            now = self._clock()
            if self._last_refresh is not None and now - self._last_refresh < self._config.refresh_cooldown:
                return False
            logger.info("Refreshing JWKS key set from %s", self._config.jwks_uri)
            self._key_client = self._key_client_factory(self._config)
            self._last_refresh = now
            return True
