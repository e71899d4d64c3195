"""
Tool registration utilities.

Each `*_tools` module in this package exposes a `register_tools(registry, ...)`
function that adds its tools, in declaration order, to the central registry
used by the MCP server.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from mcp import types

from .enablement import is_tool_enabled
from .metadata import enhance_tool


ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

DOCUMENTS_GROUP = "documents"


@dataclass
class RegisteredTool:
    spec: types.Tool
    handler: ToolHandler
    group: Optional[str] = None


class ToolRegistry:
    """
    In-memory registry mapping MCP tool names to their specifications and handlers.

    Registration order is the order tools are listed to clients.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def add_tool(
        self,
        tool: types.Tool,
        handler: ToolHandler,
        group: Optional[str] = None,
    ) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = RegisteredTool(spec=tool, handler=handler, group=group)

    def add_tool_defs(self, tool_defs: Dict[str, Dict[str, Any]]) -> None:
        """
        Register the output of a `<group>_tools(...)` factory.

        Each value carries `handler`, `schema` and `description`, plus optional
        `annotations` and `group`.
        """
        for name, meta in tool_defs.items():
            annotations = meta.get("annotations")
            self.add_tool(
                types.Tool(
                    name=name,
                    description=meta.get("description"),
                    inputSchema=meta["schema"],
                    annotations=types.ToolAnnotations(**annotations) if annotations else None,
                ),
                meta["handler"],
                group=meta.get("group"),
            )

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def catalog(self, document_support: bool = False) -> List[types.Tool]:
        """Raw descriptors in declaration order, before filtering and enhancement."""
        return [
            rt.spec
            for rt in self._tools.values()
            if rt.group != DOCUMENTS_GROUP or document_support
        ]

    def list_tools(
        self,
        enabled_tools: Iterable[str] = (),
        disabled_tools: Iterable[str] = (),
        document_support: bool = False,
    ) -> List[types.Tool]:
        enabled = list(enabled_tools)
        disabled = list(disabled_tools)
        return [
            enhance_tool(tool)
            for tool in self.catalog(document_support)
            if is_tool_enabled(tool.name, enabled, disabled)
        ]

    def get_handler(self, name: str) -> ToolHandler:
        if name not in self._tools:
            raise KeyError(f"Unknown tool '{name}'")
        return self._tools[name].handler
