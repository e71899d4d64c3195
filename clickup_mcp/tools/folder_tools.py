from __future__ import annotations

from typing import Any, Dict

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError
from . import ToolRegistry
from .params import as_bool, require
from .resolvers import resolve_folder_id, resolve_space_id


def _summarize_folder(payload: Dict[str, Any]) -> Dict[str, Any]:
    space = payload.get("space") or {}
    return {
        "id": payload.get("id"),
        "name": payload.get("name"),
        "hidden": payload.get("hidden"),
        "override_statuses": payload.get("override_statuses"),
        "space": {"id": space.get("id"), "name": space.get("name")} if space else None,
        "lists": [{"id": lst.get("id"), "name": lst.get("name")} for lst in payload.get("lists", [])],
    }


def folder_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    async def create_folder(arguments: Dict[str, Any]) -> Dict[str, Any]:
        name = require(arguments, "name")
        space_id = await resolve_space_id(arguments, cache)
        body: Dict[str, Any] = {"name": name}
        if arguments.get("override_statuses") is not None:
            body["override_statuses"] = as_bool(arguments["override_statuses"])
        payload = await client.post(f"/space/{space_id}/folder", json=body)
        cache.invalidate()
        return {"folder": _summarize_folder(payload)}

    async def get_folder(arguments: Dict[str, Any]) -> Dict[str, Any]:
        folder_id = await resolve_folder_id(arguments, cache)
        payload = await client.get(f"/folder/{folder_id}")
        return {"folder": _summarize_folder(payload)}

    async def update_folder(arguments: Dict[str, Any]) -> Dict[str, Any]:
        folder_id = await resolve_folder_id(arguments, cache)
        body: Dict[str, Any] = {}
        if arguments.get("new_name"):
            body["name"] = arguments["new_name"]
        if arguments.get("override_statuses") is not None:
            body["override_statuses"] = as_bool(arguments["override_statuses"])
        if not body:
            raise ValidationError("No fields to update were provided")
        payload = await client.put(f"/folder/{folder_id}", json=body)
        cache.invalidate()
        return {"folder": _summarize_folder(payload)}

    async def delete_folder(arguments: Dict[str, Any]) -> Dict[str, Any]:
        folder_id = await resolve_folder_id(arguments, cache)
        await client.delete(f"/folder/{folder_id}")
        cache.invalidate()
        return {"id": folder_id, "deleted": True}

    folder_ref = {
        "folder_id": {"type": "string"},
        "folder_name": {"type": "string"},
        "space_id": {"type": "string", "description": "Narrows folder_name lookup to one space."},
        "space_name": {"type": "string"},
    }

    return {
        "create_folder": {
            "schema": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "space_id": {"type": "string"},
                    "space_name": {"type": "string"},
                    "override_statuses": {"type": "boolean", "description": "Use folder-specific statuses."},
                },
                "required": ["name"],
            },
            "handler": create_folder,
            "description": "Create a folder in a space.",
        },
        "get_folder": {
            "schema": {"type": "object", "properties": folder_ref},
            "handler": get_folder,
            "description": "Get a folder and the lists it contains.",
        },
        "update_folder": {
            "schema": {
                "type": "object",
                "properties": {
                    **folder_ref,
                    "new_name": {"type": "string"},
                    "override_statuses": {"type": "boolean"},
                },
            },
            "handler": update_folder,
            "description": "Rename a folder or change its status settings.",
        },
        "delete_folder": {
            "schema": {"type": "object", "properties": folder_ref},
            "handler": delete_folder,
            "description": "Permanently delete a folder and everything in it.",
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(folder_tools(client, cache))
