from __future__ import annotations

from typing import Any, Dict

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError
from . import ToolRegistry
from .params import require_list
from .resolvers import resolve_task_id
from .task_tools import run_bulk


def _dependency_body(arguments: Dict[str, Any]) -> Dict[str, str]:
    depends_on = arguments.get("depends_on")
    dependency_of = arguments.get("dependency_of")
    if bool(depends_on) == bool(dependency_of):
        raise ValidationError("Provide exactly one of 'depends_on' or 'dependency_of'")
    if depends_on:
        return {"depends_on": str(depends_on)}
    return {"dependency_of": str(dependency_of)}


def dependency_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    async def _add(item: Dict[str, Any]) -> Dict[str, Any]:
        body = _dependency_body(item)
        task_id = await resolve_task_id(item, client, cache)
        await client.post(f"/task/{task_id}/dependency", json=body)
        return {"task_id": task_id, **body, "added": True}

    async def add_task_dependency(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await _add(arguments)

    async def remove_task_dependency(arguments: Dict[str, Any]) -> Dict[str, Any]:
        params = _dependency_body(arguments)
        task_id = await resolve_task_id(arguments, client, cache)
        await client.delete(f"/task/{task_id}/dependency", params=params)
        return {"task_id": task_id, **params, "removed": True}

    async def get_task_dependencies(arguments: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(arguments, client, cache)
        task = await client.get(f"/task/{task_id}")
        waiting_on = []
        blocking = []
        for dependency in task.get("dependencies", []):
            if str(dependency.get("task_id")) == task_id:
                waiting_on.append(dependency.get("depends_on"))
            else:
                blocking.append(dependency.get("task_id"))
        return {
            "task_id": task_id,
            "waiting_on": waiting_on,
            "blocking": blocking,
            "linked_tasks": task.get("linked_tasks", []),
        }

    async def add_bulk_dependencies(arguments: Dict[str, Any]) -> Dict[str, Any]:
        items = require_list(arguments, "dependencies")
        return await run_bulk(items, _add)

    dependency_properties = {
        "task_id": {"type": "string"},
        "task_name": {"type": "string", "description": "Task name; list_id or list_name narrows the search."},
        "list_id": {"type": "string"},
        "list_name": {"type": "string"},
        "depends_on": {"type": "string", "description": "ID of the task this task waits on."},
        "dependency_of": {"type": "string", "description": "ID of the task that waits on this task."},
    }

    return {
        "add_task_dependency": {
            "schema": {"type": "object", "properties": dependency_properties},
            "handler": add_task_dependency,
            "description": "Make a task wait on another task, or block another task.",
        },
        "remove_task_dependency": {
            "schema": {"type": "object", "properties": dependency_properties},
            "handler": remove_task_dependency,
            "description": "Remove a dependency between two tasks.",
        },
        "get_task_dependencies": {
            "schema": {
                "type": "object",
                "properties": {
                    key: value
                    for key, value in dependency_properties.items()
                    if key not in ("depends_on", "dependency_of")
                },
            },
            "handler": get_task_dependencies,
            "description": "List the tasks a task waits on and the tasks it blocks.",
        },
        "add_bulk_dependencies": {
            "schema": {
                "type": "object",
                "properties": {
                    "dependencies": {
                        "type": "array",
                        "items": {"type": "object", "properties": dependency_properties},
                    },
                },
                "required": ["dependencies"],
            },
            "handler": add_bulk_dependencies,
            "description": "Add several task dependencies. Failures are reported per item.",
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(dependency_tools(client, cache))
