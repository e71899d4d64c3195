"""
ClickUp MCP server package.

This package exposes ClickUp as MCP tools for:
- Workspace hierarchy (spaces, folders, lists)
- Tasks, comments, attachments and bulk task operations
- Time tracking and task dependencies
- Lists, folders and tags
- Workspace members and assignee resolution
- Documents (opt-in via DOCUMENT_SUPPORT)
- A raw passthrough to any ClickUp API endpoint

The server core is a tool registry plus a dispatcher that filters tools by
ENABLED_TOOLS / DISABLED_TOOLS and maps handler failures to JSON-RPC errors.
"""

from __future__ import annotations

__version__ = "0.8.4"
