"""
Name-to-ID resolution shared by the tool handlers.

Spaces, folders and lists are resolved through the workspace hierarchy
cache. Tasks are resolved inside a given list, or across the workspace
through the task-name cache when no list is given.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError


async def resolve_space_id(arguments: Dict[str, Any], cache: WorkspaceHierarchyCache) -> str:
    space_id = arguments.get("space_id")
    if space_id:
        return str(space_id)
    space_name = arguments.get("space_name")
    if not space_name:
        raise ValidationError("Either 'space_id' or 'space_name' is required")
    node = await cache.lookup("space", space_name)
    if node is None:
        raise ValidationError(f"Space '{space_name}' not found")
    return node.id


async def resolve_folder_id(arguments: Dict[str, Any], cache: WorkspaceHierarchyCache) -> str:
    folder_id = arguments.get("folder_id")
    if folder_id:
        return str(folder_id)
    folder_name = arguments.get("folder_name")
    if not folder_name:
        raise ValidationError("Either 'folder_id' or 'folder_name' is required")
    parent_id = await _optional_space_id(arguments, cache)
    node = await cache.lookup("folder", folder_name, parent_id=parent_id)
    if node is None:
        raise ValidationError(f"Folder '{folder_name}' not found")
    return node.id


async def resolve_list_id(
    arguments: Dict[str, Any],
    cache: WorkspaceHierarchyCache,
    id_field: str = "list_id",
    name_field: str = "list_name",
) -> str:
    list_id = arguments.get(id_field)
    if list_id:
        return str(list_id)
    list_name = arguments.get(name_field)
    if not list_name:
        raise ValidationError(f"Either '{id_field}' or '{name_field}' is required")
    node = await cache.lookup("list", list_name)
    if node is None:
        raise ValidationError(f"List '{list_name}' not found")
    return node.id


async def resolve_task_id(
    arguments: Dict[str, Any],
    client: ClickUpClient,
    cache: WorkspaceHierarchyCache,
) -> str:
    """
    Use `task_id` when given. Otherwise find `task_name` inside the list named
    by `list_id` / `list_name`, or across the whole workspace when no list is
    given. A workspace-wide name must match exactly one task.
    """
    task_id = arguments.get("task_id")
    if task_id:
        return str(task_id)
    task_name = arguments.get("task_name")
    if not task_name:
        raise ValidationError("Either 'task_id' or 'task_name' is required")
    if not (arguments.get("list_id") or arguments.get("list_name")):
        return await _resolve_task_globally(str(task_name), cache)

    list_id = await resolve_list_id(arguments, cache)
    wanted = str(task_name).strip().lower()
    page = 0
    while True:
        payload = await client.get(
            f"/list/{list_id}/task",
            params={"page": page, "include_closed": True, "subtasks": True},
        )
        tasks = payload.get("tasks", [])
        for task in tasks:
            if str(task.get("name", "")).strip().lower() == wanted:
                return str(task["id"])
        if payload.get("last_page", True) or not tasks:
            break
        page += 1
    raise ValidationError(f"Task '{task_name}' not found in list {list_id}")


async def _resolve_task_globally(task_name: str, cache: WorkspaceHierarchyCache) -> str:
    matches = await cache.lookup_task(task_name)
    if not matches:
        raise ValidationError(f"Task '{task_name}' not found in the workspace")
    if len(matches) > 1:
        candidates = ", ".join(f"{task['id']} (list {task['list'].get('name')})" for task in matches)
        raise ValidationError(
            f"Task name '{task_name}' is ambiguous: {candidates}. Provide task_id, list_id or list_name."
        )
    return matches[0]["id"]


async def _optional_space_id(arguments: Dict[str, Any], cache: WorkspaceHierarchyCache) -> Optional[str]:
    if arguments.get("space_id") or arguments.get("space_name"):
        return await resolve_space_id(arguments, cache)
    return None


async def fetch_members(client: ClickUpClient) -> List[Dict[str, Any]]:
    """Members of the configured workspace, as ClickUp `user` objects."""
    payload = await client.get("/team")
    for team in payload.get("teams", []):
        if str(team.get("id")) == str(client.team_id):
            return [member.get("user", {}) for member in team.get("members", [])]
    return []


def match_member(members: List[Dict[str, Any]], query: Any) -> Optional[Dict[str, Any]]:
    """
    Match a member by id, email or username (case-insensitive, exact first,
    then substring on username).
    """
    text = str(query).strip().lower()
    for member in members:
        if str(member.get("id")) == text:
            return member
        if str(member.get("email") or "").lower() == text:
            return member
        if str(member.get("username") or "").lower() == text:
            return member
    for member in members:
        if text and text in str(member.get("username") or "").lower():
            return member
    return None


async def resolve_member_ids(client: ClickUpClient, values: List[Any]) -> List[int]:
    if not values:
        return []
    if any(isinstance(value, bool) for value in values):
        raise ValidationError("Assignees must be user IDs, emails or usernames, not booleans")
    if all(isinstance(value, int) for value in values):
        return list(values)
    members = await fetch_members(client)
    ids: List[int] = []
    unresolved: List[str] = []
    for value in values:
        if isinstance(value, int):
            ids.append(value)
            continue
        member = match_member(members, value)
        if member is None:
            unresolved.append(str(value))
        else:
            ids.append(int(member["id"]))
    if unresolved:
        raise ValidationError(f"Could not resolve assignees: {', '.join(unresolved)}")
    return ids
