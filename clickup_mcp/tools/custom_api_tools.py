from __future__ import annotations

from typing import Any, Dict

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from . import ToolRegistry


def custom_api_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    async def call_clickup_api(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await client.call_api(
            method=arguments.get("method"),
            path=arguments.get("path"),
            query=arguments.get("query"),
            body=arguments.get("body"),
            headers=arguments.get("headers"),
        )

    return {
        "call_clickup_api": {
            "schema": {
                "type": "object",
                "properties": {
                    "method": {"type": "string", "description": "HTTP method (GET, POST, PUT, PATCH, DELETE)"},
                    "path": {
                        "type": "string",
                        "description": "API path relative to /api/v2 (e.g., /team/{teamId}/task, /space, /dashboard)",
                    },
                    "query": {"type": "object", "description": "Optional query string parameters object"},
                    "body": {"type": "object", "description": "Optional request body for POST/PUT/PATCH calls"},
                    "headers": {"type": "object", "description": "Optional additional headers to send with the request"},
                },
                "required": ["method", "path"],
            },
            "handler": call_clickup_api,
            "description": (
                "Call any ClickUp API endpoint with a raw HTTP request. Useful for dashboards, docs, "
                "spaces, tags, custom fields, and other endpoints not covered by dedicated tools."
            ),
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(custom_api_tools(client, cache))
