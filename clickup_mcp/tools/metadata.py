"""
Derived tool metadata: titles, behavioral annotations and schema descriptions.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Dict

from mcp import types

READ_ONLY_PATTERN = re.compile(r"^(get_|list_|find_|resolve_|call_clickup_api|get_workspace_hierarchy)")

OPEN_WORLD_TOOLS = frozenset({"call_clickup_api"})


def derive_title(name: str) -> str:
    """`get_task_comments` -> `Get Task Comments`."""
    segments = [segment for segment in re.split(r"[_-]", name) if segment]
    return " ".join(segment[0].upper() + segment[1:] for segment in segments)


def is_read_only(name: str) -> bool:
    return READ_ONLY_PATTERN.match(name) is not None


def enhance_schema(schema: Any, title: str) -> Any:
    """
    Fill in missing property descriptions and the schema-level description.

    Anything that is not a mapping is returned untouched.
    """
    if not isinstance(schema, dict):
        return schema

    properties = schema.get("properties") or {}
    enhanced_properties: Dict[str, Any] = {}
    for key, value in properties.items():
        if isinstance(value, dict) and "description" not in value:
            enhanced_properties[key] = {
                "description": f"Value for {key.replace('_', ' ')}",
                **copy.deepcopy(value),
            }
        else:
            enhanced_properties[key] = copy.deepcopy(value)

    enhanced = {"description": f"{title} parameters", **copy.deepcopy(schema)}
    if enhanced["description"] is None:
        enhanced["description"] = f"{title} parameters"
    enhanced["properties"] = enhanced_properties
    return enhanced


def enhance_tool(tool: types.Tool) -> types.Tool:
    """
    Return a copy of `tool` with title, annotations, description and schema
    descriptions filled in. Explicit values on the tool always win.
    """
    explicit: Dict[str, Any] = tool.annotations.model_dump(exclude_none=True) if tool.annotations else {}
    title = explicit.get("title", derive_title(tool.name))
    read_only = is_read_only(tool.name)

    annotations = types.ToolAnnotations(
        **{
            "readOnlyHint": read_only,
            "destructiveHint": not read_only,
            "idempotentHint": read_only,
            "openWorldHint": tool.name in OPEN_WORLD_TOOLS,
            **explicit,
            "title": title,
        }
    )

    return tool.model_copy(
        update={
            "description": tool.description if tool.description is not None else f"{title} tool",
            "annotations": annotations,
            "inputSchema": enhance_schema(tool.inputSchema, title),
        }
    )
