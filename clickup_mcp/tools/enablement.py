from __future__ import annotations

from typing import Collection


def is_tool_enabled(
    name: str,
    enabled_tools: Collection[str],
    disabled_tools: Collection[str],
) -> bool:
    """
    Decide whether a tool is exposed.

    A non-empty allow-list wins outright; the deny-list is only consulted
    when no allow-list is configured. With neither, everything is enabled.
    """
    if enabled_tools:
        return name in enabled_tools
    if disabled_tools:
        return name not in disabled_tools
    return True


def disabled_reason(
    name: str,
    enabled_tools: Collection[str],
    disabled_tools: Collection[str],
) -> str:
    if enabled_tools:
        return f"Tool '{name}' is not in the enabled tools list."
    return f"Tool '{name}' is disabled."
