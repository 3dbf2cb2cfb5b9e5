"""MCP server wiring for github-mcp-server.

The sealed tool registry and the runtime are built once at startup and passed
explicitly to `create_server`; the request handlers close over them.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.types import Resource, ResourceTemplate, TextContent, Tool

from . import __version__
from .config import ServerConfig
from .registry import ToolRegistry, Translate
from .resources import CONTENT_TEMPLATES, STATUS_URI, read_content, server_status
from .runtime import Runtime, build_runtime
from .tools import build_registry, dispatch_tool

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


class ToolCallError(Exception):
    """Carries a tool-error text to the SDK, which reports it with `isError=true`."""


def configure_logging(log_file: Path | None = None) -> None:
    """Log to stderr (stdout carries the protocol); `log_file` adds a DEBUG file log."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    level = logging.INFO
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    # Request lines would otherwise show up at DEBUG.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def tool_definitions(registry: ToolRegistry) -> list[Tool]:
    return [
        Tool(name=d.name, description=d.description, inputSchema=d.input_schema())
        for d in registry.descriptors()
    ]


def resource_definitions() -> list[Resource]:
    return [
        Resource(
            uri=STATUS_URI,
            name="Server Status",
            description="Non-secret server configuration and limits",
            mimeType="application/json",
        )
    ]


def resource_template_definitions() -> list[ResourceTemplate]:
    return [
        ResourceTemplate(uriTemplate=t.uri_template, name=t.name, description=t.description)
        for t in CONTENT_TEMPLATES
    ]


def create_server(runtime: Runtime, registry: ToolRegistry) -> Server:
    """Build an MCP server bound to a runtime and a sealed registry."""
    server = Server("github-mcp-server", version=__version__)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List all available tools."""
        tools = tool_definitions(registry)
        logger.info("Listed %s tools", len(tools))
        return tools

    # Arguments are validated by the parameter binder, which also accepts numbers
    # encoded as strings; schema validation in the SDK would reject those.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Execute a tool and return MCP-compliant TextContent."""
        logger.info("Tool called: %s", name)
        result = await dispatch_tool(registry, runtime, name, arguments or {})
        if result.is_error:
            raise ToolCallError(result.text)
        return [TextContent(type="text", text=result.text)]

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        """List available resources."""
        return resource_definitions()

    @server.list_resource_templates()
    async def list_resource_templates() -> list[ResourceTemplate]:
        """List repository content templates."""
        return resource_template_definitions()

    @server.read_resource()
    async def read_resource(uri: Any) -> list[ReadResourceContents]:
        """Read resource content."""
        uri_s = str(uri)
        if uri_s == STATUS_URI:
            return [ReadResourceContents(content=server_status(runtime, registry), mime_type="application/json")]
        content = await read_content(runtime, uri_s)
        mime_type = "application/octet-stream" if isinstance(content, bytes) else "text/plain"
        return [ReadResourceContents(content=content, mime_type=mime_type)]

    return server


async def run_server(config: ServerConfig, translate: Translate | None = None) -> None:
    """Run the server over stdio until the client disconnects.

    `translate` overrides tool descriptions (see `translations.Translations`).
    """
    from mcp.server.stdio import stdio_server

    runtime = build_runtime(config)
    registry = build_registry(read_only=config.read_only, translate=translate)
    server = create_server(runtime, registry)
    logger.info(
        "Starting github-mcp-server %s (api=%s, read_only=%s)",
        __version__,
        config.api_base_url,
        config.read_only,
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await runtime.aclose()


async def test_server() -> None:
    """Lightweight self-test: build the registry and every listed definition."""
    for read_only in (False, True):
        registry = build_registry(read_only=read_only)
        tools = tool_definitions(registry)
        logger.info("read_only=%s: %d tools", read_only, len(tools))
    resources = resource_definitions()
    templates = resource_template_definitions()
    logger.info("%d resources, %d resource templates", len(resources), len(templates))
