from __future__ import annotations

from typing import Any, Dict

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError
from . import ToolRegistry
from .params import as_int, pick, require, to_timestamp_ms
from .resolvers import resolve_folder_id, resolve_list_id, resolve_member_ids, resolve_space_id


def _summarize_list(payload: Dict[str, Any]) -> Dict[str, Any]:
    folder = payload.get("folder") or {}
    space = payload.get("space") or {}
    return {
        "id": payload.get("id"),
        "name": payload.get("name"),
        "content": payload.get("content"),
        "status": payload.get("status"),
        "task_count": payload.get("task_count"),
        "folder": {"id": folder.get("id"), "name": folder.get("name")} if folder else None,
        "space": {"id": space.get("id"), "name": space.get("name")} if space else None,
        "url": f"https://app.clickup.com/{space.get('id')}/v/li/{payload.get('id')}" if space else None,
    }


def list_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    async def _list_body(arguments: Dict[str, Any]) -> Dict[str, Any]:
        body = pick(arguments, ["name", "content", "status"])
        priority = as_int(arguments, "priority")
        if priority is not None:
            body["priority"] = priority
        due_date = to_timestamp_ms(arguments.get("due_date"), "due_date")
        if due_date is not None:
            body["due_date"] = due_date
        if arguments.get("assignee") is not None:
            body["assignee"] = (await resolve_member_ids(client, [arguments["assignee"]]))[0]
        return body

    async def create_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
        require(arguments, "name")
        space_id = await resolve_space_id(arguments, cache)
        payload = await client.post(f"/space/{space_id}/list", json=await _list_body(arguments))
        cache.invalidate()
        return {"list": _summarize_list(payload)}

    async def create_list_in_folder(arguments: Dict[str, Any]) -> Dict[str, Any]:
        require(arguments, "name")
        folder_id = await resolve_folder_id(arguments, cache)
        payload = await client.post(f"/folder/{folder_id}/list", json=await _list_body(arguments))
        cache.invalidate()
        return {"list": _summarize_list(payload)}

    async def get_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
        list_id = await resolve_list_id(arguments, cache)
        payload = await client.get(f"/list/{list_id}")
        return {"list": _summarize_list(payload), "statuses": payload.get("statuses", [])}

    async def update_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
        list_id = await resolve_list_id(arguments, cache)
        body = await _list_body({**arguments, "name": arguments.get("new_name")})
        if not body:
            raise ValidationError("No fields to update were provided")
        payload = await client.put(f"/list/{list_id}", json=body)
        cache.invalidate()
        return {"list": _summarize_list(payload)}

    async def delete_list(arguments: Dict[str, Any]) -> Dict[str, Any]:
        list_id = await resolve_list_id(arguments, cache)
        await client.delete(f"/list/{list_id}")
        cache.invalidate()
        return {"id": list_id, "deleted": True}

    list_fields = {
        "content": {"type": "string", "description": "List description."},
        "status": {"type": "string", "description": "List color/status label."},
        "priority": {"type": "integer", "description": "1 (urgent) to 4 (low)."},
        "due_date": {"type": ["string", "integer"]},
        "assignee": {"type": ["integer", "string"], "description": "User ID, email or username."},
    }
    list_ref = {
        "list_id": {"type": "string"},
        "list_name": {"type": "string"},
    }

    return {
        "create_list": {
            "schema": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "space_id": {"type": "string"},
                    "space_name": {"type": "string"},
                    **list_fields,
                },
                "required": ["name"],
            },
            "handler": create_list,
            "description": "Create a list directly in a space (outside any folder).",
        },
        "create_list_in_folder": {
            "schema": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "folder_id": {"type": "string"},
                    "folder_name": {"type": "string"},
                    "space_id": {"type": "string", "description": "Narrows folder_name lookup to one space."},
                    "space_name": {"type": "string"},
                    **list_fields,
                },
                "required": ["name"],
            },
            "handler": create_list_in_folder,
            "description": "Create a list inside a folder.",
        },
        "get_list": {
            "schema": {"type": "object", "properties": list_ref},
            "handler": get_list,
            "description": "Get a list's details and statuses.",
        },
        "update_list": {
            "schema": {
                "type": "object",
                "properties": {**list_ref, "new_name": {"type": "string"}, **list_fields},
            },
            "handler": update_list,
            "description": "Rename a list or change its description, status or due date.",
        },
        "delete_list": {
            "schema": {"type": "object", "properties": list_ref},
            "handler": delete_list,
            "description": "Permanently delete a list and its tasks.",
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(list_tools(client, cache))
