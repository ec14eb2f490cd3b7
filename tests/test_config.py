"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from weather_mcp.config import load_settings, load_settings_or_exit
from weather_mcp.errors import ConfigurationError

BASE_ENV = {
    "SERVER_URL": "https://weather.example.com/",
    "AUTH0_DOMAIN": "tenant.example.com",
    "AUTH0_AUDIENCE": "https://weather.example.com",
}


class TestLoadSettings:
    def test_minimal(self) -> None:
        s = load_settings(BASE_ENV)
        assert s.server_url == "https://weather.example.com"
        assert s.port == 3000
        assert s.environment == "development"
        assert s.log_level == "INFO"
        assert not s.is_production

    def test_derived_urls(self) -> None:
        s = load_settings({**BASE_ENV, "AUTH0_DOMAIN": "https://tenant.example.com/"})
        assert s.auth0_domain == "tenant.example.com"
        assert s.issuer == "https://tenant.example.com/"
        assert s.jwks_uri == "https://tenant.example.com/.well-known/jwks.json"

    def test_explicit_issuer(self) -> None:
        s = load_settings({**BASE_ENV, "AUTH0_ISSUER_URL": "https://login.example.com/"})
        assert s.issuer == "https://login.example.com/"

    def test_overrides(self) -> None:
        s = load_settings(
            {
                **BASE_ENV,
                "PORT": "8080",
                "ENVIRONMENT": "production",
                "LOG_LEVEL": "warn",
                "SESSION_IDLE_TTL": "60",
            }
        )
        assert s.port == 8080
        assert s.is_production
        assert s.log_level == "WARNING"
        assert s.session_idle_ttl == 60

    def test_blank_values_fall_back_to_defaults(self) -> None:
        assert load_settings({**BASE_ENV, "PORT": "  "}).port == 3000

    def test_missing_required(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings({})
        message = str(exc_info.value)
        for var in ("SERVER_URL", "AUTH0_DOMAIN", "AUTH0_AUDIENCE"):
            assert var in message

    @pytest.mark.parametrize(
        "var, value",
        [
            ("PORT", "not-a-port"),
            ("PORT", "70000"),
            ("ENVIRONMENT", "staging"),
            ("LOG_LEVEL", "loud"),
            ("UPSTREAM_TIMEOUT", "0"),
        ],
    )
    def test_invalid_values_name_the_variable(self, var: str, value: str) -> None:
        with pytest.raises(ConfigurationError, match=var):
            load_settings({**BASE_ENV, var: value})

    def test_or_exit(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            load_settings_or_exit({})
        assert exc_info.value.code == 1
        assert "SERVER_URL" in capsys.readouterr().err
