from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from mcp import types

from . import __version__
from .errors import DispatchError
from .main import SERVER_INSTRUCTIONS, SERVER_NAME, ClickUpMCPServer, create_app

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"


def _error(message_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": message_id,
        "error": {"code": code, "message": message},
    }


def _result(message_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": message_id, "result": result}


def create_http_app(app: Optional[ClickUpMCPServer] = None) -> FastAPI:
    """
    Create FastAPI app that wraps the MCP server for HTTP/SSE transport.

    MCP over HTTP/SSE:
    - Client sends POST requests with JSON-RPC messages in body
    - Server responds with SSE stream containing JSON-RPC responses
    - Each SSE event format: "data: <json-rpc-response>\\n\\n"

    Tool calls go through the same dispatcher as the stdio transport, so
    error codes are identical.
    """
    mcp_app = app or create_app()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        mcp_app.configure()
        try:
            yield
        finally:
            if mcp_app.client is not None:
                await mcp_app.client.aclose()

    http_app = FastAPI(
        title="ClickUp MCP Server",
        version=__version__,
        description="MCP server exposing ClickUp tasks, lists, folders, tags, time tracking and documents",
        lifespan=lifespan,
    )

    @http_app.get("/health")
    async def health() -> Dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "service": SERVER_NAME}

    @http_app.get("/")
    async def root() -> Dict[str, Any]:
        """Root endpoint with service info."""
        return {
            "service": SERVER_NAME,
            "version": __version__,
            "protocol": "mcp",
            "transport": "http/sse",
            "endpoints": {
                "health": "/health",
                "mcp_stream": "/mcp/stream",
            },
        }

    @http_app.post("/mcp/stream")
    async def mcp_stream(request: Request):
        """
        MCP SSE stream endpoint.

        Supported MCP methods:
        - initialize: Server initialization handshake
        - tools/list: List enabled tools
        - tools/call: Execute a tool
        - resources/list: Always empty
        - prompts/list: Always empty
        - prompts/get: Always fails
        """
        body = await request.body()
        if not body:
            return JSONResponse(_error(None, types.INVALID_REQUEST, "Empty request body"), status_code=400)

        try:
            message = json.loads(body)
        except json.JSONDecodeError as e:
            return JSONResponse(_error(None, types.PARSE_ERROR, f"Parse error: {e}"), status_code=400)

        if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
            message_id = message.get("id") if isinstance(message, dict) else None
            return JSONResponse(
                _error(message_id, types.INVALID_REQUEST, "Invalid Request: jsonrpc must be '2.0'"),
                status_code=400,
            )

        method = message.get("method")
        message_id = message.get("id")
        params = message.get("params") or {}
        if not method:
            return JSONResponse(
                _error(message_id, types.INVALID_REQUEST, "Invalid Request: method is required"),
                status_code=400,
            )

        async def generate_sse() -> AsyncIterator[str]:
            """Generate SSE events from MCP server responses."""
            response = await handle_mcp_request(mcp_app, method, params, message_id)
            yield f"data: {json.dumps(response)}\n\n"

        return StreamingResponse(
            generate_sse(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering
            },
        )

    return http_app


async def handle_mcp_request(
    app: ClickUpMCPServer,
    method: str,
    params: Dict[str, Any],
    message_id: Any,
) -> Dict[str, Any]:
    """
    Handle a single JSON-RPC request and return the JSON-RPC response object.
    """
    try:
        if method == "initialize":
            return _result(
                message_id,
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {
                        "tools": {"listChanged": False},
                        "prompts": {"listChanged": False},
                        "resources": {"subscribe": False, "listChanged": False},
                    },
                    "serverInfo": {"name": SERVER_NAME, "version": __version__},
                    "instructions": SERVER_INSTRUCTIONS,
                },
            )

        if method == "tools/list":
            tools = app.list_tools()
            return _result(
                message_id,
                {"tools": [tool.model_dump(by_alias=True, exclude_none=True) for tool in tools]},
            )

        if method == "tools/call":
            tool_name = params.get("name")
            if not tool_name:
                return _error(message_id, types.INVALID_PARAMS, "Invalid params: 'name' is required")
            try:
                result = await app.dispatcher.invoke(tool_name, params.get("arguments") or {})
            except DispatchError as e:
                return _error(message_id, e.code, e.message)
            content = types.TextContent(type="text", text=json.dumps(result))
            call_result = types.CallToolResult(content=[content])
            return _result(message_id, call_result.model_dump(by_alias=True, exclude_none=True))

        if method == "resources/list":
            return _result(message_id, {"resources": []})

        if method == "prompts/list":
            return _result(message_id, {"prompts": []})

        if method == "prompts/get":
            return _error(message_id, types.INVALID_PARAMS, f"Prompt not found: {params.get('name')}")

        return _error(message_id, types.METHOD_NOT_FOUND, f"Method not found: {method}")

    except Exception as e:
        logger.exception(f"Error handling MCP method {method}")
        return _error(message_id, types.INTERNAL_ERROR, f"Internal error: {e}")


async def run_http_server(host: str = "0.0.0.0", port: int = 3231) -> None:
    """Run the HTTP server using uvicorn."""
    import uvicorn

    config = uvicorn.Config(
        create_http_app(),
        host=host,
        port=port,
        log_level="info",
        access_log=True,
    )
    server = uvicorn.Server(config)
    await server.serve()
