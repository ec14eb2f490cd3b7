"""Environment-driven configuration for Weather MCP.

All settings come from environment variables and are validated eagerly
at startup.  A process that cannot build a valid :class:`Settings`
must not start serving; :func:`load_settings_or_exit` enforces that.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from weather_mcp.constants import (
    CACHE_SWEEP_INTERVAL,
    DEFAULT_HOST,
    DEFAULT_PORT,
    SESSION_IDLE_TTL,
    SESSION_SWEEP_INTERVAL,
    UPSTREAM_TIMEOUT,
)
from weather_mcp.errors import ConfigurationError

logger = logging.getLogger(__name__)

# field name → environment variable
ENV_VARS: Dict[str, str] = {
    "host": "HOST",
    "port": "PORT",
    "server_url": "SERVER_URL",
    "environment": "ENVIRONMENT",
    "log_level": "LOG_LEVEL",
    "auth0_domain": "AUTH0_DOMAIN",
    "auth0_audience": "AUTH0_AUDIENCE",
    "auth0_issuer_url": "AUTH0_ISSUER_URL",
    "session_idle_ttl": "SESSION_IDLE_TTL",
    "session_sweep_interval": "SESSION_SWEEP_INTERVAL",
    "upstream_timeout": "UPSTREAM_TIMEOUT",
    "cache_sweep_interval": "CACHE_SWEEP_INTERVAL",
}

# Accept both pino-style and Python level names.
_LEVEL_ALIASES: Dict[str, str] = {
    "fatal": "CRITICAL",
    "critical": "CRITICAL",
    "error": "ERROR",
    "warn": "WARNING",
    "warning": "WARNING",
    "info": "INFO",
    "debug": "DEBUG",
    "trace": "DEBUG",
}


class Settings(BaseModel):
    """Validated service configuration."""

    host: str = Field(default=DEFAULT_HOST, description="Interface to bind.")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="TCP port to bind.")
    server_url: str = Field(
        ...,
        min_length=1,
        description="Public base URL of this server (used as OAuth issuer and resource).",
    )
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment.",
    )
    log_level: str = Field(default="INFO", description="Root log level.")
    auth0_domain: str = Field(..., min_length=1, description="Identity provider domain.")
    auth0_audience: str = Field(..., min_length=1, description="Expected token audience.")
    auth0_issuer_url: Optional[str] = Field(
        default=None,
        description="Expected token issuer; defaults to https://{auth0_domain}/.",
    )
    session_idle_ttl: float = Field(
        default=SESSION_IDLE_TTL, gt=0, description="Idle seconds before a session is swept."
    )
    session_sweep_interval: float = Field(
        default=SESSION_SWEEP_INTERVAL, gt=0, description="Seconds between session sweeps."
    )
    upstream_timeout: float = Field(
        default=UPSTREAM_TIMEOUT, gt=0, description="Upstream HTTP timeout in seconds."
    )
    cache_sweep_interval: float = Field(
        default=CACHE_SWEEP_INTERVAL, gt=0, description="Seconds between cache sweeps."
    )

    @field_validator("server_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped:
            raise ValueError("SERVER_URL is required")
        return stripped

    @field_validator("auth0_domain")
    @classmethod
    def _bare_domain(cls, v: str) -> str:
        domain = v.strip()
        for prefix in ("https://", "http://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix) :]
        domain = domain.rstrip("/")
        if not domain:
            raise ValueError("AUTH0_DOMAIN is required")
        return domain

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, v: str) -> str:
        level = _LEVEL_ALIASES.get(v.strip().lower())
        if level is None:
            raise ValueError(
                f"unknown log level '{v}' (expected one of: {', '.join(sorted(_LEVEL_ALIASES))})"
            )
        return level

    # ── Derived values ───────────────────────────────────────────────

    @property
    def issuer(self) -> str:
        return self.auth0_issuer_url or f"https://{self.auth0_domain}/"

    @property
    def jwks_uri(self) -> str:
        return f"https://{self.auth0_domain}/.well-known/jwks.json"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _collect_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for field_name, var in ENV_VARS.items():
        raw = environ.get(var)
        if raw is None or raw.strip() == "":
            continue
        values[field_name] = raw.strip()
    return values


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from *environ* (defaults to ``os.environ``).

    Raises :class:`ConfigurationError` listing every invalid variable.
    """
    env = os.environ if environ is None else environ
    try:
        return Settings(**_collect_env(env))
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            field_name = str(err["loc"][0]) if err["loc"] else "?"
            var = ENV_VARS.get(field_name, field_name)
            problems.append(f"{var}: {err['msg']}")
        raise ConfigurationError("Invalid environment configuration: " + "; ".join(problems)) from exc


def load_settings_or_exit(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Like :func:`load_settings` but terminates the process on failure."""
    try:
        return load_settings(environ)
    except ConfigurationError as exc:
        logger.critical("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
