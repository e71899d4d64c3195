from __future__ import annotations

import base64
import binascii
from typing import Any, Awaitable, Callable, Dict, List

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError
from . import ToolRegistry
from .params import as_bool, as_int, pick, require, require_any, require_list, to_timestamp_ms
from .resolvers import resolve_list_id, resolve_member_ids, resolve_task_id


TASK_REF_PROPERTIES: Dict[str, Any] = {
    "task_id": {"type": "string", "description": "ID of the task."},
    "task_name": {
        "type": "string",
        "description": "Name of the task. list_id or list_name narrows the search to one list.",
    },
    "list_id": {"type": "string"},
    "list_name": {"type": "string"},
}

TASK_FIELD_PROPERTIES: Dict[str, Any] = {
    "name": {"type": "string"},
    "description": {"type": "string", "description": "Plain text description."},
    "markdown_description": {"type": "string", "description": "Markdown description; wins over description."},
    "status": {"type": "string"},
    "priority": {"type": "integer", "description": "1 (urgent) to 4 (low)."},
    "due_date": {
        "type": ["string", "integer"],
        "description": "Unix timestamp in milliseconds or ISO 8601 date.",
    },
    "start_date": {
        "type": ["string", "integer"],
        "description": "Unix timestamp in milliseconds or ISO 8601 date.",
    },
    "time_estimate": {"type": "integer", "description": "Estimate in milliseconds."},
    "tags": {"type": "array", "items": {"type": "string"}},
    "parent": {"type": "string", "description": "Parent task ID to create a subtask."},
    "custom_fields": {
        "type": "array",
        "items": {"type": "object"},
        "description": "ClickUp custom field values: [{\"id\": ..., \"value\": ...}].",
    },
}


def summarize_task(task: Dict[str, Any]) -> Dict[str, Any]:
    status = task.get("status") or {}
    task_list = task.get("list") or {}
    return {
        "id": task.get("id"),
        "name": task.get("name"),
        "status": status.get("status") if isinstance(status, dict) else status,
        "url": task.get("url"),
        "list": {"id": task_list.get("id"), "name": task_list.get("name")},
        "due_date": task.get("due_date"),
        "assignees": [a.get("username") or a.get("email") for a in task.get("assignees", [])],
    }


def _build_task_body(arguments: Dict[str, Any]) -> Dict[str, Any]:
    body = pick(
        arguments,
        ["name", "description", "markdown_description", "status", "parent", "time_estimate", "tags", "custom_fields"],
    )
    priority = as_int(arguments, "priority")
    if priority is not None:
        if priority not in (1, 2, 3, 4):
            raise ValidationError("Field 'priority' must be between 1 and 4")
        body["priority"] = priority
    for field in ("due_date", "start_date"):
        timestamp = to_timestamp_ms(arguments.get(field), field)
        if timestamp is not None:
            body[field] = timestamp
    return body


async def run_bulk(
    items: List[Dict[str, Any]],
    operation: Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]],
) -> Dict[str, Any]:
    """
    Apply `operation` to each item in order. A failing item is reported and
    the batch continues.
    """
    successful: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            failed.append({"index": index, "error": "Each item must be an object"})
            continue
        try:
            successful.append(await operation(item))
        except Exception as e:
            failed.append({"index": index, "item": item, "error": str(e)})
    return {
        "total": len(items),
        "success_count": len(successful),
        "failure_count": len(failed),
        "successful": successful,
        "failed": failed,
    }


def task_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    """
    Factory to produce task handlers bound to the ClickUp client and hierarchy cache.
    """

    async def _create(list_id: str, item: Dict[str, Any]) -> Dict[str, Any]:
        require(item, "name")
        body = _build_task_body(item)
        assignees = item.get("assignees")
        if assignees:
            body["assignees"] = await resolve_member_ids(client, assignees)
        if item.get("notify_all") is not None:
            body["notify_all"] = as_bool(item.get("notify_all"))
        task = await client.post(f"/list/{list_id}/task", json=body)
        cache.invalidate_tasks()
        return summarize_task(task)

    async def _update(item: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(item, client, cache)
        body = _build_task_body(item)
        add_ids = await resolve_member_ids(client, item.get("add_assignees") or [])
        rem_ids = await resolve_member_ids(client, item.get("remove_assignees") or [])
        if add_ids or rem_ids:
            body["assignees"] = {"add": add_ids, "rem": rem_ids}
        body.pop("tags", None)
        body.pop("parent", None)
        if not body:
            raise ValidationError("No fields to update were provided")
        task = await client.put(f"/task/{task_id}", json=body)
        cache.invalidate_tasks()
        return summarize_task(task)

    async def _move(item: Dict[str, Any], target_list_id: str) -> Dict[str, Any]:
        task_id = await resolve_task_id(item, client, cache)
        await client.put(
            f"/workspaces/{client.team_id}/tasks/{task_id}/home_list/{target_list_id}",
            version="v3",
        )
        task = await client.get(f"/task/{task_id}")
        return summarize_task(task)

    async def _delete(item: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(item, client, cache)
        await client.delete(f"/task/{task_id}")
        cache.invalidate_tasks()
        return {"id": task_id, "deleted": True}

    async def _target_list_id(arguments: Dict[str, Any]) -> str:
        return await resolve_list_id(arguments, cache, id_field="target_list_id", name_field="target_list_name")

    async def create_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        list_id = await resolve_list_id(arguments, cache)
        return await _create(list_id, arguments)

    async def get_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "include_subtasks": as_bool(arguments.get("subtasks")),
            "include_markdown_description": True,
        }
        if arguments.get("custom_task_id"):
            task_id = arguments["custom_task_id"]
            params.update({"custom_task_ids": True, "team_id": client.team_id})
        else:
            task_id = await resolve_task_id(arguments, client, cache)
        task = await client.get(f"/task/{task_id}", params=params)
        return {"task": task}

    async def update_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await _update(arguments)

    async def move_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        target_list_id = await _target_list_id(arguments)
        return await _move(arguments, target_list_id)

    async def duplicate_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(arguments, client, cache)
        source = await client.get(f"/task/{task_id}", params={"include_markdown_description": True})
        if arguments.get("target_list_id") or arguments.get("target_list_name"):
            list_id = await _target_list_id(arguments)
        else:
            list_id = str((source.get("list") or {}).get("id"))
        body: Dict[str, Any] = {
            "name": source.get("name"),
            "markdown_description": source.get("markdown_description") or source.get("description") or "",
            "tags": [tag.get("name") for tag in source.get("tags", [])],
            "assignees": [a.get("id") for a in source.get("assignees", [])],
        }
        priority = source.get("priority")
        if isinstance(priority, dict) and priority.get("id"):
            body["priority"] = int(priority["id"])
        for field in ("due_date", "start_date", "time_estimate"):
            if source.get(field) is not None:
                body[field] = int(source[field])
        task = await client.post(f"/list/{list_id}/task", json=body)
        cache.invalidate_tasks()
        return {"source_task_id": task_id, "task": summarize_task(task)}

    async def delete_task(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await _delete(arguments)

    async def get_task_comments(arguments: Dict[str, Any]) -> Dict[str, Any]:
        task_id = await resolve_task_id(arguments, client, cache)
        params = {"start": arguments.get("start"), "start_id": arguments.get("start_id")}
        payload = await client.get(f"/task/{task_id}/comment", params=params)
        comments = payload.get("comments", [])
        return {"task_id": task_id, "count": len(comments), "comments": comments}

    async def create_task_comment(arguments: Dict[str, Any]) -> Dict[str, Any]:
        text = require(arguments, "comment_text")
        task_id = await resolve_task_id(arguments, client, cache)
        body: Dict[str, Any] = {
            "comment_text": text,
            "notify_all": as_bool(arguments.get("notify_all")),
        }
        if arguments.get("assignee") is not None:
            body["assignee"] = (await resolve_member_ids(client, [arguments["assignee"]]))[0]
        result = await client.post(f"/task/{task_id}/comment", json=body)
        return {"task_id": task_id, "comment": result}

    async def attach_task_file(arguments: Dict[str, Any]) -> Dict[str, Any]:
        require_any(arguments, "file_data", "file_url")
        task_id = await resolve_task_id(arguments, client, cache)
        if arguments.get("file_data"):
            file_name = require(arguments, "file_name")
            try:
                content = base64.b64decode(arguments["file_data"], validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValidationError("Field 'file_data' must be base64-encoded") from e
        else:
            url = arguments["file_url"]
            file_name = arguments.get("file_name") or url.rstrip("/").split("/")[-1].split("?")[0] or "attachment"
            content = await client.download(url)
        result = await client.post(
            f"/task/{task_id}/attachment",
            files={"attachment": (file_name, content)},
        )
        return {"task_id": task_id, "attachment": result}

    async def create_bulk_tasks(arguments: Dict[str, Any]) -> Dict[str, Any]:
        items = require_list(arguments, "tasks")
        list_id = await resolve_list_id(arguments, cache)
        return await run_bulk(items, lambda item: _create(list_id, item))

    async def update_bulk_tasks(arguments: Dict[str, Any]) -> Dict[str, Any]:
        items = require_list(arguments, "tasks")
        return await run_bulk(items, _update)

    async def move_bulk_tasks(arguments: Dict[str, Any]) -> Dict[str, Any]:
        items = require_list(arguments, "tasks")
        target_list_id = await _target_list_id(arguments)
        return await run_bulk(items, lambda item: _move(item, target_list_id))

    async def delete_bulk_tasks(arguments: Dict[str, Any]) -> Dict[str, Any]:
        items = require_list(arguments, "tasks")
        return await run_bulk(items, _delete)

    async def get_workspace_tasks(arguments: Dict[str, Any]) -> Dict[str, Any]:
        filter_fields = ("tags", "list_ids", "folder_ids", "space_ids", "statuses", "assignees")
        if not any(arguments.get(field) for field in filter_fields):
            raise ValidationError(
                "At least one filter is required: tags, list_ids, folder_ids, space_ids, statuses or assignees"
            )
        params: Dict[str, Any] = {
            "page": as_int(arguments, "page") or 0,
            "order_by": arguments.get("order_by"),
            "reverse": as_bool(arguments.get("reverse")),
            "subtasks": as_bool(arguments.get("subtasks")),
            "include_closed": as_bool(arguments.get("include_closed")),
            "tags[]": arguments.get("tags"),
            "list_ids[]": arguments.get("list_ids"),
            "project_ids[]": arguments.get("folder_ids"),
            "space_ids[]": arguments.get("space_ids"),
            "statuses[]": arguments.get("statuses"),
            "assignees[]": await resolve_member_ids(client, arguments.get("assignees") or []) or None,
        }
        for field in ("due_date_gt", "due_date_lt", "date_created_gt", "date_created_lt", "date_updated_gt", "date_updated_lt"):
            params[field] = to_timestamp_ms(arguments.get(field), field)

        payload = await client.get(f"/team/{client.team_id}/task", params=params)
        tasks = payload.get("tasks", [])
        detailed = arguments.get("detail_level") == "detailed"
        return {
            "count": len(tasks),
            "page": params["page"],
            "last_page": payload.get("last_page", True),
            "tasks": tasks if detailed else [summarize_task(task) for task in tasks],
        }

    create_properties = {
        "list_id": {"type": "string", "description": "ID of the list to create the task in."},
        "list_name": {"type": "string", "description": "Name of the list; used when list_id is omitted."},
        **TASK_FIELD_PROPERTIES,
        "assignees": {
            "type": "array",
            "items": {"type": ["integer", "string"]},
            "description": "User IDs, emails or usernames.",
        },
        "notify_all": {"type": "boolean"},
    }
    update_properties = {
        **TASK_REF_PROPERTIES,
        **TASK_FIELD_PROPERTIES,
        "add_assignees": {"type": "array", "items": {"type": ["integer", "string"]}},
        "remove_assignees": {"type": "array", "items": {"type": ["integer", "string"]}},
    }
    target_properties = {
        "target_list_id": {"type": "string", "description": "ID of the destination list."},
        "target_list_name": {"type": "string", "description": "Name of the destination list."},
    }
    bulk_refs_schema = {
        "type": "array",
        "items": {"type": "object", "properties": TASK_REF_PROPERTIES},
        "description": "Tasks to act on, each identified by task_id or task_name + list.",
    }

    return {
        "create_task": {
            "schema": {
                "type": "object",
                "properties": create_properties,
                "required": ["name"],
            },
            "handler": create_task,
            "description": "Create a task in a list (by list ID or name). Supports subtasks via 'parent'.",
        },
        "get_task": {
            "schema": {
                "type": "object",
                "properties": {
                    **TASK_REF_PROPERTIES,
                    "custom_task_id": {"type": "string", "description": "Custom task ID such as DEV-1234."},
                    "subtasks": {"type": "boolean", "description": "Include subtasks."},
                },
            },
            "handler": get_task,
            "description": "Get full details of a task by ID, custom ID, or name within a list.",
        },
        "update_task": {
            "schema": {"type": "object", "properties": update_properties},
            "handler": update_task,
            "description": "Update task fields: name, description, status, priority, dates and assignees.",
        },
        "move_task": {
            "schema": {
                "type": "object",
                "properties": {**TASK_REF_PROPERTIES, **target_properties},
            },
            "handler": move_task,
            "description": "Move a task to a different list.",
        },
        "duplicate_task": {
            "schema": {
                "type": "object",
                "properties": {**TASK_REF_PROPERTIES, **target_properties},
            },
            "handler": duplicate_task,
            "description": "Copy a task into the same list or another list.",
        },
        "delete_task": {
            "schema": {"type": "object", "properties": TASK_REF_PROPERTIES},
            "handler": delete_task,
            "description": "Permanently delete a task.",
        },
        "get_task_comments": {
            "schema": {
                "type": "object",
                "properties": {
                    **TASK_REF_PROPERTIES,
                    "start": {"type": "integer", "description": "Pagination: timestamp of the oldest comment seen."},
                    "start_id": {"type": "string", "description": "Pagination: ID of the oldest comment seen."},
                },
            },
            "handler": get_task_comments,
            "description": "Get comments on a task, newest first (25 per page).",
        },
        "create_task_comment": {
            "schema": {
                "type": "object",
                "properties": {
                    **TASK_REF_PROPERTIES,
                    "comment_text": {"type": "string"},
                    "notify_all": {"type": "boolean"},
                    "assignee": {"type": ["integer", "string"], "description": "Assign the comment to a user."},
                },
                "required": ["comment_text"],
            },
            "handler": create_task_comment,
            "description": "Add a comment to a task.",
        },
        "attach_task_file": {
            "schema": {
                "type": "object",
                "properties": {
                    **TASK_REF_PROPERTIES,
                    "file_data": {"type": "string", "description": "Base64-encoded file content."},
                    "file_name": {"type": "string"},
                    "file_url": {"type": "string", "description": "URL to download the file from."},
                },
            },
            "handler": attach_task_file,
            "description": "Attach a file to a task from base64 data or a URL.",
        },
        "create_bulk_tasks": {
            "schema": {
                "type": "object",
                "properties": {
                    "list_id": {"type": "string"},
                    "list_name": {"type": "string"},
                    "tasks": {
                        "type": "array",
                        "items": {"type": "object", "properties": create_properties, "required": ["name"]},
                    },
                },
                "required": ["tasks"],
            },
            "handler": create_bulk_tasks,
            "description": "Create several tasks in one list. Failures are reported per task.",
        },
        "update_bulk_tasks": {
            "schema": {
                "type": "object",
                "properties": {
                    "tasks": {"type": "array", "items": {"type": "object", "properties": update_properties}},
                },
                "required": ["tasks"],
            },
            "handler": update_bulk_tasks,
            "description": "Update several tasks. Failures are reported per task.",
        },
        "move_bulk_tasks": {
            "schema": {
                "type": "object",
                "properties": {"tasks": bulk_refs_schema, **target_properties},
                "required": ["tasks"],
            },
            "handler": move_bulk_tasks,
            "description": "Move several tasks to one destination list.",
        },
        "delete_bulk_tasks": {
            "schema": {
                "type": "object",
                "properties": {"tasks": bulk_refs_schema},
                "required": ["tasks"],
            },
            "handler": delete_bulk_tasks,
            "description": "Permanently delete several tasks.",
        },
        "get_workspace_tasks": {
            "schema": {
                "type": "object",
                "properties": {
                    "tags": {"type": "array", "items": {"type": "string"}},
                    "list_ids": {"type": "array", "items": {"type": "string"}},
                    "folder_ids": {"type": "array", "items": {"type": "string"}},
                    "space_ids": {"type": "array", "items": {"type": "string"}},
                    "statuses": {"type": "array", "items": {"type": "string"}},
                    "assignees": {"type": "array", "items": {"type": ["integer", "string"]}},
                    "include_closed": {"type": "boolean"},
                    "subtasks": {"type": "boolean"},
                    "page": {"type": "integer"},
                    "order_by": {"type": "string", "enum": ["id", "created", "updated", "due_date"]},
                    "reverse": {"type": "boolean"},
                    "due_date_gt": {"type": ["string", "integer"]},
                    "due_date_lt": {"type": ["string", "integer"]},
                    "date_created_gt": {"type": ["string", "integer"]},
                    "date_created_lt": {"type": ["string", "integer"]},
                    "date_updated_gt": {"type": ["string", "integer"]},
                    "date_updated_lt": {"type": ["string", "integer"]},
                    "detail_level": {"type": "string", "enum": ["summary", "detailed"]},
                },
            },
            "handler": get_workspace_tasks,
            "description": "Search tasks across the workspace. At least one filter is required.",
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(task_tools(client, cache))
