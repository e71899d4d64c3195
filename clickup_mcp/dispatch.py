from __future__ import annotations

import logging
from typing import Any, Collection, Dict, Optional

import pydantic

from .errors import DispatchError, ErrorKind, ValidationError
from .tools import ToolRegistry
from .tools.enablement import disabled_reason, is_tool_enabled

logger = logging.getLogger(__name__)


def classify_failure(tool_name: str, error: Exception) -> DispatchError:
    """
    Map a handler failure onto the protocol error taxonomy.
    """
    if isinstance(error, DispatchError):
        return error
    if isinstance(error, (ValidationError, pydantic.ValidationError)):
        return DispatchError(
            ErrorKind.INVALID_PARAMS,
            f"Invalid params for tool {tool_name}: {error}",
        )
    return DispatchError(
        ErrorKind.EXECUTION_ERROR,
        f"Error executing tool {tool_name}: {error}",
    )


class ToolDispatcher:
    """
    Routes a tool invocation to its handler.

    Every call is attempted exactly once: the enablement filter runs first,
    then the handler lookup, then the handler itself. Failures always surface
    as a `DispatchError` chained to the original exception.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        enabled_tools: Collection[str] = (),
        disabled_tools: Collection[str] = (),
    ) -> None:
        self._registry = registry
        self._enabled_tools = tuple(enabled_tools)
        self._disabled_tools = tuple(disabled_tools)

    def is_enabled(self, name: str) -> bool:
        return is_tool_enabled(name, self._enabled_tools, self._disabled_tools)

    async def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.info(f"Received CallTool request for tool: {name} params={arguments}")

        if not self.is_enabled(name):
            reason = disabled_reason(name, self._enabled_tools, self._disabled_tools)
            logger.warning(f"Tool execution blocked: {reason}")
            raise DispatchError(ErrorKind.METHOD_NOT_FOUND, reason)

        try:
            handler = self._registry.get_handler(name)
        except KeyError:
            logger.error(f"Unknown tool requested: {name}")
            raise DispatchError(ErrorKind.METHOD_NOT_FOUND, f"Unknown tool: {name}") from None

        try:
            return await handler(arguments if arguments is not None else {})
        except Exception as e:
            logger.error(f"Error executing tool: {name}: {e}", exc_info=True)
            raise classify_failure(name, e) from e
