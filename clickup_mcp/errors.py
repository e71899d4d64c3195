from __future__ import annotations

from enum import Enum
from typing import Optional

from mcp import types
from mcp.shared.exceptions import McpError


class ErrorKind(Enum):
    """
    Closed set of failure kinds surfaced to MCP clients, valued by JSON-RPC code.
    """

    METHOD_NOT_FOUND = types.METHOD_NOT_FOUND
    INVALID_PARAMS = types.INVALID_PARAMS
    EXECUTION_ERROR = -32000

    @property
    def code(self) -> int:
        return self.value


class DispatchError(McpError):
    """
    Protocol-level error raised by the dispatcher.

    Carries its `ErrorKind` so callers never need to inspect message strings.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(types.ErrorData(code=kind.code, message=message))
        self.kind = kind

    @property
    def code(self) -> int:
        return self.kind.code

    @property
    def message(self) -> str:
        return self.error.message


class ClickUpMCPError(Exception):
    """Base class for errors raised by handlers and the ClickUp client."""


class ValidationError(ClickUpMCPError, ValueError):
    """A tool was called with missing or malformed arguments."""


class ClickUpAPIError(ClickUpMCPError):
    """
    ClickUp answered with a non-2xx status, or could not be reached at all.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        err_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.err_code = err_code

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        suffix = f" ({self.err_code})" if self.err_code else ""
        return f"ClickUp API error {self.status_code}{suffix}: {base}"
