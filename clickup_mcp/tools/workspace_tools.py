from __future__ import annotations

from typing import Any, Dict

from ..cache import HierarchyNode, WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from . import ToolRegistry
from .params import as_bool


def _render_node(node: HierarchyNode) -> Dict[str, Any]:
    rendered: Dict[str, Any] = {"id": node.id, "name": node.name, "type": node.type}
    if node.children:
        rendered["children"] = [_render_node(child) for child in node.children]
    return rendered


def workspace_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    async def get_workspace_hierarchy(arguments: Dict[str, Any]) -> Dict[str, Any]:
        hierarchy = await cache.get_hierarchy(force_refresh=as_bool(arguments.get("refresh")))
        return {
            "workspace": {
                "id": hierarchy.team_id,
                "spaces": [_render_node(space) for space in hierarchy.spaces],
            }
        }

    return {
        "get_workspace_hierarchy": {
            "schema": {
                "type": "object",
                "properties": {
                    "refresh": {
                        "type": "boolean",
                        "description": "Bypass the cached hierarchy and fetch it again.",
                    },
                },
            },
            "handler": get_workspace_hierarchy,
            "description": (
                "Get the complete workspace tree: spaces, folders and lists with their IDs. "
                "Use it to discover IDs before calling other tools."
            ),
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(workspace_tools(client, cache))
