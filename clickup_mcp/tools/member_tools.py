from __future__ import annotations

from typing import Any, Dict

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from . import ToolRegistry
from .params import require, require_list
from .resolvers import fetch_members, match_member


def _summarize_member(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": user.get("id"),
        "username": user.get("username"),
        "email": user.get("email"),
        "initials": user.get("initials"),
        "role": user.get("role"),
    }


def member_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    async def get_workspace_members(arguments: Dict[str, Any]) -> Dict[str, Any]:
        members = await fetch_members(client)
        return {"count": len(members), "members": [_summarize_member(m) for m in members]}

    async def find_member_by_name(arguments: Dict[str, Any]) -> Dict[str, Any]:
        query = require(arguments, "name_or_email")
        member = match_member(await fetch_members(client), query)
        return {"query": query, "found": member is not None, "member": _summarize_member(member) if member else None}

    async def resolve_assignees(arguments: Dict[str, Any]) -> Dict[str, Any]:
        assignees = require_list(arguments, "assignees")
        members = await fetch_members(client)
        resolved = []
        unresolved = []
        for value in assignees:
            member = match_member(members, value)
            if member is None:
                unresolved.append(value)
            else:
                resolved.append({"query": value, "user_id": member.get("id")})
        return {
            "user_ids": [item["user_id"] for item in resolved],
            "resolved": resolved,
            "unresolved": unresolved,
        }

    return {
        "get_workspace_members": {
            "schema": {"type": "object", "properties": {}},
            "handler": get_workspace_members,
            "description": "List all members of the workspace.",
        },
        "find_member_by_name": {
            "schema": {
                "type": "object",
                "properties": {"name_or_email": {"type": "string", "description": "Username or email to search for."}},
                "required": ["name_or_email"],
            },
            "handler": find_member_by_name,
            "description": "Find a workspace member by username or email.",
        },
        "resolve_assignees": {
            "schema": {
                "type": "object",
                "properties": {
                    "assignees": {
                        "type": "array",
                        "items": {"type": ["integer", "string"]},
                        "description": "User IDs, emails or usernames.",
                    },
                },
                "required": ["assignees"],
            },
            "handler": resolve_assignees,
            "description": "Map usernames or emails to ClickUp user IDs for use as assignees.",
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(member_tools(client, cache))
