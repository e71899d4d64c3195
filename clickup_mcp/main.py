from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import anyio
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from . import __version__
from .cache import WorkspaceHierarchyCache, WorkspaceTaskCache
from .clickup_client import ClickUpClient
from .config import Settings, get_settings
from .dispatch import ToolDispatcher
from .logging_config import setup_logging
from .tools import ToolRegistry
from .tools import (
    custom_api_tools,
    dependency_tools,
    document_tools,
    folder_tools,
    list_tools,
    member_tools,
    tag_tools,
    task_tools,
    time_tools,
    workspace_tools,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "clickup-mcp-server"

SERVER_INSTRUCTIONS = (
    "Manage ClickUp tasks, spaces, folders, lists, tags, time tracking, and documents. "
    "Set CLICKUP_API_KEY and CLICKUP_TEAM_ID in the environment. Most tools accept either IDs or names; "
    "read-only tools list or fetch data, while create/update/delete tools change workspace state."
)

# Registration order is the order tools are listed to clients.
TOOL_MODULES = (
    workspace_tools,
    task_tools,
    time_tools,
    dependency_tools,
    list_tools,
    folder_tools,
    tag_tools,
    member_tools,
    custom_api_tools,
    document_tools,
)


def build_registry(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> ToolRegistry:
    registry = ToolRegistry()
    for module in TOOL_MODULES:
        module.register_tools(registry, client=client, cache=cache)
    return registry


class ClickUpMCPServer:
    """
    Owns the low-level MCP server and wires protocol requests to the registry
    and dispatcher. Collaborators are constructed once and injected.
    """

    def __init__(
        self,
        settings: Settings,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        cache: Optional[WorkspaceHierarchyCache] = None,
        client: Optional[ClickUpClient] = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.dispatcher = dispatcher
        self.cache = cache
        self.client = client
        self.server = Server(SERVER_NAME, version=__version__, instructions=SERVER_INSTRUCTIONS)
        self._configured = False
        self._prewarm_task: Optional[asyncio.Task] = None

    @property
    def configured(self) -> bool:
        return self._configured

    def list_tools(self) -> List[types.Tool]:
        return self.registry.list_tools(
            enabled_tools=self.settings.enabled_tools,
            disabled_tools=self.settings.disabled_tools,
            document_support=self.settings.document_support,
        )

    def configure(self) -> Server:
        """
        Register the protocol handlers. Safe to call more than once: later
        calls return the same server without registering anything again.
        """
        if self._configured:
            logger.debug("Server already configured - skipping duplicate handler registration")
            return self.server

        self._configured = True
        logger.info("Registering server request handlers")

        self._start_prewarm()
        self._register_handlers()
        return self.server

    def _start_prewarm(self) -> None:
        if self.cache is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; hierarchy cache will fill on first use")
            return
        self._prewarm_task = loop.create_task(self.cache.prewarm())
        self._prewarm_task.add_done_callback(_log_prewarm_failure)

    def _register_handlers(self) -> None:
        server = self.server

        @server.list_tools()
        async def list_tools() -> List[types.Tool]:
            logger.debug("Received ListTools request")
            return self.list_tools()

        @server.list_resources()
        async def list_resources() -> List[types.Resource]:
            logger.debug("Received ListResources request")
            return []

        @server.list_prompts()
        async def list_prompts() -> List[types.Prompt]:
            logger.info("Received ListPrompts request")
            return []

        @server.get_prompt()
        async def get_prompt(name: str, arguments: Optional[Dict[str, str]]) -> types.GetPromptResult:
            logger.error("Received GetPrompt request, but prompts are not supported")
            raise McpError(
                types.ErrorData(code=types.INVALID_PARAMS, message=f"Prompt not found: {name}")
            )

        logger.info(f"Registering tool handlers (toolCount={len(self.registry)})")
        # Installed directly rather than via @server.call_tool(): that decorator
        # turns exceptions into tool results, and failures here must reach the
        # client as JSON-RPC errors.
        server.request_handlers[types.CallToolRequest] = self._handle_call_tool

    async def _handle_call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        result = await self.dispatcher.invoke(req.params.name, req.params.arguments or {})
        return types.ServerResult(
            types.CallToolResult(content=[types.TextContent(type="text", text=json.dumps(result))])
        )


def _log_prewarm_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Cache prewarm failed: {error}")


def create_app(settings: Optional[Settings] = None) -> ClickUpMCPServer:
    """
    Build the server and its collaborators from settings.
    """
    settings = settings or get_settings()

    client = ClickUpClient(settings)
    cache = WorkspaceHierarchyCache(
        client,
        ttl_seconds=settings.hierarchy_cache_ttl,
        task_cache=WorkspaceTaskCache(client, ttl_seconds=settings.task_cache_ttl),
    )
    registry = build_registry(client, cache)
    dispatcher = ToolDispatcher(
        registry,
        enabled_tools=settings.enabled_tools,
        disabled_tools=settings.disabled_tools,
    )
    return ClickUpMCPServer(settings, registry, dispatcher, cache=cache, client=client)


async def run_stdio(app: ClickUpMCPServer) -> None:
    server = app.configure()
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        if app.client is not None:
            await app.client.aclose()


def main() -> None:
    """
    Entrypoint for running the MCP server.

    Supports two transport modes:
    - stdio: For direct process-to-process communication (default)
    - http: For HTTP/SSE transport behind reverse proxy
    """
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info(f"ClickUp MCP Server starting with {settings.transport} transport")

    if settings.transport == "http":
        from .http_server import run_http_server

        anyio.run(run_http_server, settings.server_host, settings.server_port)
    else:
        app = create_app(settings)
        anyio.run(run_stdio, app)


if __name__ == "__main__":
    main()
