"""Tool catalogue and its binding onto MCP protocol engines.

A :class:`ToolRegistry` holds immutable :class:`ToolSpec` entries and no
per-request state, so one registry is shared by every session while each
session's engine gets its own bound handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterator, List, Optional, Tuple, Type

from mcp import types as mcp_types
from pydantic import BaseModel, ValidationError

from weather_mcp.errors import LocationNotFoundError, WeatherMCPError

if TYPE_CHECKING:
    from mcp.server.lowlevel import Server as McpServer

    from weather_mcp.fetch import UpstreamFetcher

logger = logging.getLogger(__name__)


class ToolCallError(WeatherMCPError):
    """Raised inside an engine's ``call_tool`` handler to mark a flagged result.

    The MCP engine renders an exception raised from the handler as a
    normal ``CallToolResult`` with ``isError=True`` and the message as
    its only text block.
    """

    pass


@dataclass(frozen=True)
class ToolContext:
    """Dependencies handed to every tool handler."""

    fetcher: "UpstreamFetcher"


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool invocation: a single text block, maybe flagged."""

    text: str
    is_error: bool = False


Handler = Callable[[Any, ToolContext], Awaitable[str]]


@dataclass(frozen=True)
class ToolSpec:
    """Static description of one tool.

    Parameters
    ----------
    name:
        Unique tool name.
    description:
        Human-readable summary shown to callers.
    input_model:
        Pydantic model validating the arguments.  It must expose a
        ``target`` property naming what was asked about.
    handler:
        ``async (validated_input, ctx) -> report_text``.
    category:
        ``"primitive"`` or ``"compound"``.
    tags:
        Discovery tags for the manifest.
    subject:
        Noun used in failure texts (``Error fetching {subject} for ...``).
    """

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Handler
    category: str
    tags: Tuple[str, ...] = field(default_factory=tuple)
    subject: str = "data"

    def to_mcp_tool(self) -> mcp_types.Tool:
        return mcp_types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(),
        )


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


class ToolRegistry:
    """Ordered, name-unique collection of :class:`ToolSpec` entries."""

    def __init__(self, specs: Optional[List[ToolSpec]] = None) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        for spec in specs or []:
            self.add(spec)

    def add(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool '{spec.name}' is already registered")
        self._tools[spec.name] = spec

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def list_tools(self) -> List[mcp_types.Tool]:
        return [spec.to_mcp_tool() for spec in self._tools.values()]

    def manifest_entries(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "category": spec.category,
                "tags": list(spec.tags),
            }
            for spec in self._tools.values()
        ]

    async def invoke(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        ctx: ToolContext,
    ) -> ToolResult:
        """Validate *arguments*, run the handler and never raise.

        Every failure (bad input, unknown location, upstream error,
        malformed upstream data) comes back as a flagged
        :class:`ToolResult` carrying readable text.
        """
        spec = self._tools.get(name)
        if spec is None:
            return ToolResult(f"Unknown tool: {name}", is_error=True)

        try:
            params = spec.input_model.model_validate(arguments or {})
        except ValidationError as exc:
            return ToolResult(
                f"Invalid arguments for {name}: {_describe_validation_error(exc)}",
                is_error=True,
            )

        try:
            text = await spec.handler(params, ctx)
        except LocationNotFoundError as exc:
            logger.info("Tool '%s': no location match for %r", name, exc.query)
            return ToolResult(str(exc), is_error=True)
        except Exception as exc:
            logger.warning("Tool '%s' failed: %s", name, exc, exc_info=True)
            target = getattr(params, "target", "request")
            return ToolResult(
                f"Error fetching {spec.subject} for {target}: {exc}",
                is_error=True,
            )
        return ToolResult(text)

    def bind(self, server: "McpServer", ctx: ToolContext) -> None:
        """Install ``list_tools`` / ``call_tool`` handlers on *server*."""
        registry = self

        @server.list_tools()
        async def handle_list_tools() -> List[mcp_types.Tool]:
            logger.debug("Handling listTools request...")
            return registry.list_tools()

        @server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Dict[str, Any]
        ) -> List[mcp_types.TextContent]:
            logger.debug("Handling callTool: name='%s'", name)
            result = await registry.invoke(name, arguments, ctx)
            if result.is_error:
                raise ToolCallError(result.text)
            return [mcp_types.TextContent(type="text", text=result.text)]
