from __future__ import annotations

from typing import Any, Dict
from urllib.parse import quote

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError
from . import ToolRegistry
from .params import require
from .resolvers import resolve_space_id, resolve_task_id


def tag_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    async def _space_tag_names(task_id: str) -> Dict[str, str]:
        task = await client.get(f"/task/{task_id}")
        space_id = (task.get("space") or {}).get("id")
        if not space_id:
            return {}
        payload = await client.get(f"/space/{space_id}/tag")
        return {tag["name"].lower(): tag["name"] for tag in payload.get("tags", [])}

    async def get_space_tags(arguments: Dict[str, Any]) -> Dict[str, Any]:
        space_id = await resolve_space_id(arguments, cache)
        payload = await client.get(f"/space/{space_id}/tag")
        tags = [
            {"name": tag.get("name"), "tag_fg": tag.get("tag_fg"), "tag_bg": tag.get("tag_bg")}
            for tag in payload.get("tags", [])
        ]
        return {"space_id": space_id, "count": len(tags), "tags": tags}

    async def add_tag_to_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        tag_name = str(require(arguments, "tag_name"))
        task_id = await resolve_task_id(arguments, client, cache)
        # ClickUp silently creates unknown tags; refuse instead.
        known = await _space_tag_names(task_id)
        canonical = known.get(tag_name.lower())
        if canonical is None:
            raise ValidationError(
                f"Tag '{tag_name}' does not exist in the task's space. Use get_space_tags to list tags."
            )
        await client.post(f"/task/{task_id}/tag/{quote(canonical, safe='')}")
        return {"task_id": task_id, "tag_name": canonical, "added": True}

    async def remove_tag_from_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        tag_name = str(require(arguments, "tag_name"))
        task_id = await resolve_task_id(arguments, client, cache)
        await client.delete(f"/task/{task_id}/tag/{quote(tag_name, safe='')}")
        return {"task_id": task_id, "tag_name": tag_name, "removed": True}

    task_tag_properties = {
        "task_id": {"type": "string"},
        "task_name": {"type": "string", "description": "Task name; list_id or list_name narrows the search."},
        "list_id": {"type": "string"},
        "list_name": {"type": "string"},
        "tag_name": {"type": "string"},
    }

    return {
        "get_space_tags": {
            "schema": {
                "type": "object",
                "properties": {"space_id": {"type": "string"}, "space_name": {"type": "string"}},
            },
            "handler": get_space_tags,
            "description": "List the tags defined in a space.",
        },
        "add_tag_to_task": {
            "schema": {"type": "object", "properties": task_tag_properties, "required": ["tag_name"]},
            "handler": add_tag_to_task,
            "description": "Add an existing space tag to a task.",
        },
        "remove_tag_from_task": {
            "schema": {"type": "object", "properties": task_tag_properties, "required": ["tag_name"]},
            "handler": remove_tag_from_task,
            "description": "Remove a tag from a task.",
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(tag_tools(client, cache))
