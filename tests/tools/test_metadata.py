"""Tests for clickup_mcp.tools.metadata module."""

from __future__ import annotations

import copy

import pytest
from mcp import types

from clickup_mcp.tools.metadata import derive_title, enhance_schema, enhance_tool, is_read_only


def _tool(name: str = "create_task", **kwargs) -> types.Tool:
    schema = kwargs.pop(
        "inputSchema",
        {
            "type": "object",
            "properties": {
                "list_id": {"type": "string"},
                "name": {"type": "string", "description": "Task name."},
            },
            "required": ["name"],
        },
    )
    return types.Tool(name=name, inputSchema=schema, **kwargs)


@pytest.mark.unit
class TestDeriveTitle:
    @pytest.mark.parametrize(
        ("name", "title"),
        [
            ("get_task_comments", "Get Task Comments"),
            ("call_clickup_api", "Call Clickup Api"),
            ("get-workspace-hierarchy", "Get Workspace Hierarchy"),
            ("create__task", "Create Task"),
            ("x", "X"),
        ],
    )
    def test_derive_title(self, name: str, title: str) -> None:
        assert derive_title(name) == title

    def test_deterministic(self) -> None:
        assert derive_title("get_task_comments") == derive_title("get_task_comments")


@pytest.mark.unit
class TestIsReadOnly:
    @pytest.mark.parametrize(
        "name",
        ["get_task", "list_documents", "find_member_by_name", "resolve_assignees", "call_clickup_api", "get_workspace_hierarchy"],
    )
    def test_read_only(self, name: str) -> None:
        assert is_read_only(name) is True

    @pytest.mark.parametrize("name", ["create_task", "update_task", "delete_task", "add_tag_to_task", "move_bulk_tasks"])
    def test_not_read_only(self, name: str) -> None:
        assert is_read_only(name) is False


@pytest.mark.unit
class TestEnhanceSchema:
    def test_fills_missing_property_descriptions(self) -> None:
        schema = enhance_schema({"type": "object", "properties": {"list_id": {"type": "string"}}}, "Create Task")
        assert schema["properties"]["list_id"] == {"description": "Value for list id", "type": "string"}

    def test_keeps_existing_property_descriptions(self) -> None:
        schema = enhance_schema(
            {"type": "object", "properties": {"name": {"type": "string", "description": "Task name."}}},
            "Create Task",
        )
        assert schema["properties"]["name"]["description"] == "Task name."

    def test_schema_description_default(self) -> None:
        assert enhance_schema({"type": "object"}, "Create Task")["description"] == "Create Task parameters"

    def test_schema_description_kept(self) -> None:
        schema = enhance_schema({"type": "object", "description": "Custom"}, "Create Task")
        assert schema["description"] == "Custom"

    @pytest.mark.parametrize("schema", [None, "not-a-schema", 42])
    def test_non_mapping_passes_through(self, schema) -> None:
        assert enhance_schema(schema, "Title") == schema

    def test_non_mapping_properties_pass_through(self) -> None:
        schema = enhance_schema({"type": "object", "properties": {"flag": True}}, "T")
        assert schema["properties"]["flag"] is True

    def test_does_not_mutate_input(self) -> None:
        original = {"type": "object", "properties": {"list_id": {"type": "string"}}}
        snapshot = copy.deepcopy(original)
        enhance_schema(original, "Create Task")
        assert original == snapshot


@pytest.mark.unit
class TestEnhanceTool:
    def test_write_tool_annotations(self) -> None:
        tool = enhance_tool(_tool("create_task"))
        assert tool.annotations is not None
        assert tool.annotations.title == "Create Task"
        assert tool.annotations.readOnlyHint is False
        assert tool.annotations.destructiveHint is True
        assert tool.annotations.idempotentHint is False
        assert tool.annotations.openWorldHint is False

    def test_read_tool_annotations(self) -> None:
        tool = enhance_tool(_tool("get_task"))
        assert tool.annotations.readOnlyHint is True
        assert tool.annotations.destructiveHint is False
        assert tool.annotations.idempotentHint is True

    def test_passthrough_tool_is_open_world(self) -> None:
        tool = enhance_tool(_tool("call_clickup_api"))
        assert tool.annotations.openWorldHint is True
        assert tool.annotations.readOnlyHint is True

    def test_explicit_annotations_win(self) -> None:
        tool = enhance_tool(
            _tool(
                "update_task",
                annotations=types.ToolAnnotations(title="Edit Task", destructiveHint=False, idempotentHint=True),
            )
        )
        assert tool.annotations.title == "Edit Task"
        assert tool.annotations.destructiveHint is False
        assert tool.annotations.idempotentHint is True
        assert tool.annotations.readOnlyHint is False
        assert tool.description == "Edit Task tool"
        assert tool.inputSchema["description"] == "Edit Task parameters"

    def test_explicit_empty_title_kept(self) -> None:
        tool = enhance_tool(_tool("update_task", annotations=types.ToolAnnotations(title="")))
        assert tool.annotations.title == ""

    def test_description_default(self) -> None:
        assert enhance_tool(_tool("create_task")).description == "Create Task tool"

    def test_description_kept(self) -> None:
        assert enhance_tool(_tool("create_task", description="Make a task")).description == "Make a task"

    def test_schema_enhanced(self) -> None:
        tool = enhance_tool(_tool("create_task"))
        assert tool.inputSchema["properties"]["list_id"]["description"] == "Value for list id"
        assert tool.inputSchema["properties"]["name"]["description"] == "Task name."
        assert tool.inputSchema["required"] == ["name"]

    def test_does_not_mutate_input(self) -> None:
        original = _tool("create_task")
        snapshot = original.model_dump()
        enhance_tool(original)
        assert original.model_dump() == snapshot
        assert original.annotations is None

    def test_idempotent(self) -> None:
        once = enhance_tool(_tool("get_task_comments"))
        twice = enhance_tool(once)
        assert twice.model_dump() == once.model_dump()
        assert twice.description == "Get Task Comments tool"
