from __future__ import annotations

import asyncio
from typing import Any, Dict

from ..cache import WorkspaceHierarchyCache
from ..clickup_client import ClickUpClient
from ..errors import ValidationError
from . import DOCUMENTS_GROUP, ToolRegistry
from .params import as_bool, as_int, pick, require, require_list

# ClickUp v3 parent type codes for docs.
PARENT_TYPES = {"space": 4, "folder": 5, "list": 6, "everything": 7, "workspace": 12}

CONTENT_FORMATS = ("text/md", "text/plain")
EDIT_MODES = ("replace", "append", "prepend")


def _parent_type_code(value: Any) -> int:
    if isinstance(value, int) and value in PARENT_TYPES.values():
        return value
    code = PARENT_TYPES.get(str(value).lower())
    if code is None:
        raise ValidationError(f"Field 'parent_type' must be one of: {', '.join(PARENT_TYPES)}")
    return code


def _content_format(arguments: Dict[str, Any]) -> str:
    content_format = arguments.get("content_format") or "text/md"
    if content_format not in CONTENT_FORMATS:
        raise ValidationError(f"Field 'content_format' must be one of: {', '.join(CONTENT_FORMATS)}")
    return content_format


def document_tools(client: ClickUpClient, cache: WorkspaceHierarchyCache) -> Dict[str, Any]:
    docs_path = f"/workspaces/{client.team_id}/docs"

    async def create_document(arguments: Dict[str, Any]) -> Dict[str, Any]:
        name = require(arguments, "name")
        parent_id = require(arguments, "parent_id")
        body: Dict[str, Any] = {
            "name": name,
            "parent": {"id": str(parent_id), "type": _parent_type_code(arguments.get("parent_type", "space"))},
            "visibility": arguments.get("visibility") or "PRIVATE",
            "create_page": as_bool(arguments.get("create_page"), default=True),
        }
        payload = await client.post(docs_path, version="v3", json=body)
        return {"document": payload}

    async def get_document(arguments: Dict[str, Any]) -> Dict[str, Any]:
        document_id = require(arguments, "document_id")
        payload = await client.get(f"{docs_path}/{document_id}", version="v3")
        return {"document": payload}

    async def list_documents(arguments: Dict[str, Any]) -> Dict[str, Any]:
        params = pick(arguments, ["id", "creator", "parent_id", "next_cursor"])
        if arguments.get("parent_type") is not None:
            params["parent_type"] = _parent_type_code(arguments["parent_type"])
        for flag in ("deleted", "archived"):
            if arguments.get(flag) is not None:
                params[flag] = as_bool(arguments[flag])
        limit = as_int(arguments, "limit")
        if limit is not None:
            params["limit"] = limit
        if "next_cursor" in params:
            params["cursor"] = params.pop("next_cursor")
        payload = await client.get(docs_path, version="v3", params=params)
        docs = payload.get("docs", [])
        return {"count": len(docs), "documents": docs, "next_cursor": payload.get("next_cursor")}

    async def list_document_pages(arguments: Dict[str, Any]) -> Dict[str, Any]:
        document_id = require(arguments, "document_id")
        params = {"max_page_depth": as_int(arguments, "max_page_depth")}
        payload = await client.get(f"{docs_path}/{document_id}/pageListing", version="v3", params=params)
        return {"document_id": document_id, "pages": payload}

    async def get_document_pages(arguments: Dict[str, Any]) -> Dict[str, Any]:
        document_id = require(arguments, "document_id")
        page_ids = require_list(arguments, "page_ids")
        content_format = _content_format(arguments)
        pages = await asyncio.gather(
            *(
                client.get(
                    f"{docs_path}/{document_id}/pages/{page_id}",
                    version="v3",
                    params={"content_format": content_format},
                )
                for page_id in page_ids
            )
        )
        return {"document_id": document_id, "pages": list(pages)}

    async def create_document_page(arguments: Dict[str, Any]) -> Dict[str, Any]:
        document_id = require(arguments, "document_id")
        name = require(arguments, "name")
        body = {
            "name": name,
            "content_format": _content_format(arguments),
            **pick(arguments, ["content", "sub_title", "parent_page_id"]),
        }
        payload = await client.post(f"{docs_path}/{document_id}/pages", version="v3", json=body)
        return {"document_id": document_id, "page": payload}

    async def update_document_page(arguments: Dict[str, Any]) -> Dict[str, Any]:
        document_id = require(arguments, "document_id")
        page_id = require(arguments, "page_id")
        edit_mode = arguments.get("content_edit_mode") or "replace"
        if edit_mode not in EDIT_MODES:
            raise ValidationError(f"Field 'content_edit_mode' must be one of: {', '.join(EDIT_MODES)}")
        body = pick(arguments, ["name", "sub_title", "content"])
        if not body:
            raise ValidationError("No fields to update were provided")
        body.update({"content_edit_mode": edit_mode, "content_format": _content_format(arguments)})
        await client.put(f"{docs_path}/{document_id}/pages/{page_id}", version="v3", json=body)
        return {"document_id": document_id, "page_id": page_id, "updated": True}

    document_ref = {"document_id": {"type": "string"}}
    format_schema = {"type": "string", "enum": list(CONTENT_FORMATS)}

    return {
        "create_document": {
            "schema": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "parent_id": {"type": "string", "description": "ID of the space, folder, list or workspace."},
                    "parent_type": {"type": "string", "enum": list(PARENT_TYPES)},
                    "visibility": {"type": "string", "enum": ["PUBLIC", "PRIVATE", "PERSONAL", "HIDDEN"]},
                    "create_page": {"type": "boolean"},
                },
                "required": ["name", "parent_id"],
            },
            "handler": create_document,
            "description": "Create a document in a space, folder, list or the workspace.",
            "group": DOCUMENTS_GROUP,
        },
        "get_document": {
            "schema": {"type": "object", "properties": document_ref, "required": ["document_id"]},
            "handler": get_document,
            "description": "Get a document's metadata.",
            "group": DOCUMENTS_GROUP,
        },
        "list_documents": {
            "schema": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "creator": {"type": "integer"},
                    "deleted": {"type": "boolean"},
                    "archived": {"type": "boolean"},
                    "parent_id": {"type": "string"},
                    "parent_type": {"type": "string", "enum": list(PARENT_TYPES)},
                    "limit": {"type": "integer"},
                    "next_cursor": {"type": "string"},
                },
            },
            "handler": list_documents,
            "description": "List documents in the workspace with optional filters.",
            "group": DOCUMENTS_GROUP,
        },
        "list_document_pages": {
            "schema": {
                "type": "object",
                "properties": {**document_ref, "max_page_depth": {"type": "integer"}},
                "required": ["document_id"],
            },
            "handler": list_document_pages,
            "description": "List the page tree of a document.",
            "group": DOCUMENTS_GROUP,
        },
        "get_document_pages": {
            "schema": {
                "type": "object",
                "properties": {
                    **document_ref,
                    "page_ids": {"type": "array", "items": {"type": "string"}},
                    "content_format": format_schema,
                },
                "required": ["document_id", "page_ids"],
            },
            "handler": get_document_pages,
            "description": "Get the content of one or more document pages.",
            "group": DOCUMENTS_GROUP,
        },
        "create_document_page": {
            "schema": {
                "type": "object",
                "properties": {
                    **document_ref,
                    "name": {"type": "string"},
                    "content": {"type": "string"},
                    "sub_title": {"type": "string"},
                    "parent_page_id": {"type": "string"},
                    "content_format": format_schema,
                },
                "required": ["document_id", "name"],
            },
            "handler": create_document_page,
            "description": "Add a page to a document.",
            "group": DOCUMENTS_GROUP,
        },
        "update_document_page": {
            "schema": {
                "type": "object",
                "properties": {
                    **document_ref,
                    "page_id": {"type": "string"},
                    "name": {"type": "string"},
                    "sub_title": {"type": "string"},
                    "content": {"type": "string"},
                    "content_edit_mode": {"type": "string", "enum": list(EDIT_MODES)},
                    "content_format": format_schema,
                },
                "required": ["document_id", "page_id"],
            },
            "handler": update_document_page,
            "description": "Replace, append to or prepend to a document page.",
            "group": DOCUMENTS_GROUP,
        },
    }


def register_tools(registry: ToolRegistry, client: ClickUpClient, cache: WorkspaceHierarchyCache) -> None:
    registry.add_tool_defs(document_tools(client, cache))
