"""Tests for the capability manifest and the CLI."""

from __future__ import annotations

import json

import pytest

from weather_mcp.cli import _build_parser, main
from weather_mcp.manifest import build_manifest
from weather_mcp.tools import ToolRegistry, build_registry


class TestManifest:
    def test_shape(self) -> None:
        manifest = build_manifest()
        assert manifest["id"] == "weather-mcp-server"
        assert manifest["version"] == "1.0.0"
        assert manifest["auth"] == {"required": True, "type": "bearer", "provider": "auth0"}
        assert manifest["healthEndpoint"] == "/health"
        assert manifest["mcpEndpoint"] == "/mcp"
        assert "open-meteo" in manifest["tags"]

    def test_lists_every_tool_in_catalogue_order(self) -> None:
        manifest = build_manifest()
        assert [t["name"] for t in manifest["tools"]] == build_registry().names()
        weather = manifest["tools"][0]
        assert weather == {
            "name": "get_weather",
            "description": weather["description"],
            "category": "primitive",
            "tags": ["weather", "current"],
        }

    def test_custom_registry(self) -> None:
        assert build_manifest(ToolRegistry())["tools"] == []

    def test_serialisable(self) -> None:
        json.dumps(build_manifest())


class TestCli:
    def test_manifest_command(self, capsys) -> None:
        main(["manifest", "--indent", "0"])
        out = json.loads(capsys.readouterr().out)
        assert len(out["tools"]) == 14

    def test_no_command_prints_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "serve" in capsys.readouterr().out

    def test_serve_arguments(self) -> None:
        args = _build_parser().parse_args(["serve", "--port", "9000", "--log-level", "debug"])
        assert args.command == "serve"
        assert args.port == 9000
        assert args.log_level == "debug"
        assert args.host is None

    def test_serve_rejects_unknown_level(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["serve", "--log-level", "chatty"])

    def test_serve_exits_without_configuration(self, monkeypatch) -> None:
        for var in ("SERVER_URL", "AUTH0_DOMAIN", "AUTH0_AUDIENCE"):
            monkeypatch.delenv(var, raising=False)
        with pytest.raises(SystemExit) as exc_info:
            main(["serve"])
        assert exc_info.value.code == 1
