from __future__ import annotations

import re
from typing import Any, Dict, Optional

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError
from . import ToolRegistry
from .params import as_bool, require, to_timestamp_ms
from .resolvers import resolve_task_id

DURATION_PATTERN = re.compile(r"^\s*(?:(\d+)\s*h)?\s*(?:(\d+)\s*m)?\s*$", re.IGNORECASE)


def parse_duration_ms(value: Any) -> int:
    """
    Parse a duration given in milliseconds or as `1h 30m` / `45m` / `2h`.
    """
    if isinstance(value, bool):
        raise ValidationError("Field 'duration' must be a number of milliseconds or like '1h 30m'")
    if isinstance(value, (int, float)):
        if value <= 0:
            raise ValidationError("Field 'duration' must be positive")
        return int(value)
    text = str(value).strip()
    if text.isdigit():
        return parse_duration_ms(int(text))
    match = DURATION_PATTERN.match(text)
    if not text or match is None or not any(match.groups()):
        raise ValidationError("Field 'duration' must be a number of milliseconds or like '1h 30m'")
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return parse_duration_ms((hours * 60 + minutes) * 60_000)


def _entry_summary(entry: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not entry:
        return None
    task = entry.get("task") or {}
    user = entry.get("user") or {}
    return {
        "id": entry.get("id"),
        "task": {"id": task.get("id"), "name": task.get("name")} if task else None,
        "user": user.get("username"),
        "description": entry.get("description"),
        "start": entry.get("start"),
        "end": entry.get("end"),
        "duration": entry.get("duration"),
        "billable": entry.get("billable"),
        "tags": [tag.get("name") for tag in entry.get("tags", [])],
    }


def time_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    entries_path = f"/team/{client.team_id}/time_entries"

    async def get_task_time_entries(arguments: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(arguments, client, cache)
        params = {
            "task_id": task_id,
            "start_date": to_timestamp_ms(arguments.get("start_date"), "start_date"),
            "end_date": to_timestamp_ms(arguments.get("end_date"), "end_date"),
        }
        payload = await client.get(entries_path, params=params)
        entries = [_entry_summary(entry) for entry in payload.get("data", [])]
        total = sum(int(entry.get("duration") or 0) for entry in payload.get("data", []))
        return {"task_id": task_id, "count": len(entries), "total_duration": total, "time_entries": entries}

    async def start_time_tracking(arguments: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(arguments, client, cache)
        current = await client.get(f"{entries_path}/current")
        if current.get("data"):
            raise ValidationError(
                "A timer is already running. Stop it with stop_time_tracking before starting a new one."
            )
        body: Dict[str, Any] = {
            "tid": task_id,
            "description": arguments.get("description"),
            "billable": as_bool(arguments.get("billable")),
        }
        if arguments.get("tags"):
            body["tags"] = [{"name": name} for name in arguments["tags"]]
        payload = await client.post(f"{entries_path}/start", json=body)
        return {"started": True, "time_entry": _entry_summary(payload.get("data"))}

    async def stop_time_tracking(arguments: Dict[str, Any]) -> Dict[str, Any]:
        current = await client.get(f"{entries_path}/current")
        if not current.get("data"):
            raise ValidationError("No timer is currently running")
        body: Dict[str, Any] = {}
        if arguments.get("description"):
            body["description"] = arguments["description"]
        if arguments.get("tags"):
            body["tags"] = [{"name": name} for name in arguments["tags"]]
        payload = await client.post(f"{entries_path}/stop", json=body)
        return {"stopped": True, "time_entry": _entry_summary(payload.get("data"))}

    async def add_time_entry(arguments: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(arguments, client, cache)
        start = to_timestamp_ms(require(arguments, "start_time"), "start_time")
        duration = parse_duration_ms(require(arguments, "duration"))
        body: Dict[str, Any] = {
            "tid": task_id,
            "start": start,
            "duration": duration,
            "description": arguments.get("description"),
            "billable": as_bool(arguments.get("billable")),
        }
        if arguments.get("tags"):
            body["tags"] = [{"name": name} for name in arguments["tags"]]
        payload = await client.post(entries_path, json=body)
        return {"created": True, "time_entry": _entry_summary(payload.get("data"))}

    async def delete_time_entry(arguments: Dict[str, Any]) -> Dict[str, Any]:
        timer_id = require(arguments, "timer_id")
        await client.delete(f"{entries_path}/{timer_id}")
        return {"timer_id": timer_id, "deleted": True}

    async def get_current_time_entry(arguments: Dict[str, Any]) -> Dict[str, Any]:
        payload = await client.get(f"{entries_path}/current")
        entry = _entry_summary(payload.get("data"))
        return {"running": entry is not None, "time_entry": entry}

    task_ref = {
        "task_id": {"type": "string"},
        "task_name": {"type": "string", "description": "Task name; list_id or list_name narrows the search."},
        "list_id": {"type": "string"},
        "list_name": {"type": "string"},
    }
    tags_schema = {"type": "array", "items": {"type": "string"}, "description": "Time entry tag names."}

    return {
        "get_task_time_entries": {
            "schema": {
                "type": "object",
                "properties": {
                    **task_ref,
                    "start_date": {"type": ["string", "integer"]},
                    "end_date": {"type": ["string", "integer"]},
                },
            },
            "handler": get_task_time_entries,
            "description": "List time entries recorded on a task, with the total duration.",
        },
        "start_time_tracking": {
            "schema": {
                "type": "object",
                "properties": {
                    **task_ref,
                    "description": {"type": "string"},
                    "billable": {"type": "boolean"},
                    "tags": tags_schema,
                },
            },
            "handler": start_time_tracking,
            "description": "Start a timer on a task. Fails if another timer is running.",
        },
        "stop_time_tracking": {
            "schema": {
                "type": "object",
                "properties": {"description": {"type": "string"}, "tags": tags_schema},
            },
            "handler": stop_time_tracking,
            "description": "Stop the currently running timer.",
        },
        "add_time_entry": {
            "schema": {
                "type": "object",
                "properties": {
                    **task_ref,
                    "start_time": {
                        "type": ["string", "integer"],
                        "description": "Start as millisecond timestamp or ISO 8601 date.",
                    },
                    "duration": {
                        "type": ["string", "integer"],
                        "description": "Milliseconds, or a string like '1h 30m'.",
                    },
                    "description": {"type": "string"},
                    "billable": {"type": "boolean"},
                    "tags": tags_schema,
                },
                "required": ["start_time", "duration"],
            },
            "handler": add_time_entry,
            "description": "Record a completed time entry on a task.",
        },
        "delete_time_entry": {
            "schema": {
                "type": "object",
                "properties": {"timer_id": {"type": "string", "description": "ID of the time entry."}},
                "required": ["timer_id"],
            },
            "handler": delete_time_entry,
            "description": "Delete a time entry.",
        },
        "get_current_time_entry": {
            "schema": {"type": "object", "properties": {}},
            "handler": get_current_time_entry,
            "description": "Get the running timer for the authenticated user, if any.",
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(time_tools(client, cache))
