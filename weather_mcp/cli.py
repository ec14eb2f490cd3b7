"""CLI argument parsing and main entry point.

* ``weather-mcp serve``: run the Uvicorn server.
* ``weather-mcp manifest``: print the tool manifest as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

import uvicorn

from weather_mcp.config import load_settings_or_exit
from weather_mcp.constants import SERVER_NAME, SERVER_VERSION
from weather_mcp.logging_config import VALID_LEVELS, setup_logging

module_logger = logging.getLogger(__name__)


# ── ``weather-mcp serve`` ───────────────────────────────────────────────


def _cmd_serve(args: argparse.Namespace) -> None:
    """Entry-point for ``weather-mcp serve``."""
    settings = load_settings_or_exit()
    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.log_level is not None:
        overrides["log_level"] = args.log_level.upper()
    if overrides:
        settings = settings.model_copy(update=overrides)

    log_lvl = setup_logging(settings.log_level, environment=settings.environment)
    module_logger.info(
        "---- %s v%s (log level: %s, environment: %s) ----",
        SERVER_NAME,
        SERVER_VERSION,
        log_lvl,
        settings.environment,
    )

    from weather_mcp.server import create_app

    app = create_app(settings)
    uvicorn_cfg = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=log_lvl.lower(),
    )
    server = uvicorn.Server(uvicorn_cfg)

    module_logger.info("Listening on http://%s:%s", settings.host, settings.port)
    module_logger.info("  MCP endpoint: %s/mcp", settings.server_url)
    module_logger.info("  Health check: %s/health", settings.server_url)
    try:
        server.run()
    except KeyboardInterrupt:
        module_logger.info("%s interrupted by KeyboardInterrupt.", SERVER_NAME)
    finally:
        module_logger.info("%s has shut down.", SERVER_NAME)


# ── ``weather-mcp manifest`` ────────────────────────────────────────────


def _cmd_manifest(args: argparse.Namespace) -> None:
    """Entry-point for ``weather-mcp manifest``."""
    from weather_mcp.manifest import build_manifest

    print(json.dumps(build_manifest(), indent=args.indent))


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with serve/manifest subcommands."""
    parser = argparse.ArgumentParser(
        prog="weather-mcp",
        description=f"{SERVER_NAME} v{SERVER_VERSION}",
    )
    subparsers = parser.add_subparsers(dest="command")

    # ── serve ───────────────────────────────────────────────────
    sp_serve = subparsers.add_parser(
        "serve",
        help="Run the HTTP server (settings come from the environment)",
    )
    sp_serve.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address (overrides HOST)",
    )
    sp_serve.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port (overrides PORT)",
    )
    sp_serve.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=[lvl.lower() for lvl in VALID_LEVELS],
        help="Log level (overrides LOG_LEVEL)",
    )
    sp_serve.set_defaults(func=_cmd_serve)

    # ── manifest ────────────────────────────────────────────────
    sp_manifest = subparsers.add_parser(
        "manifest",
        help="Print the tool manifest as JSON",
    )
    sp_manifest.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation (default: 2)",
    )
    sp_manifest.set_defaults(func=_cmd_manifest)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    else:
        args.func(args)
