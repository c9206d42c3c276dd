"""
Tool registry with dispatch table for the MCP server.

Each entry maps a tool name to ``(handler, verb)``. The verb names the
operation in failure messages: a bridge error raised by the handler becomes
the tool error ``Failed to <verb>: <error>``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..errors import BridgeError
from .arguments import ArgumentError, ToolArguments
from .types import ToolResult

if TYPE_CHECKING:
    from ..browser_client import BrowserClient
    from ..cancel import CancelScope

logger = logging.getLogger("mcp.bridge.registry")

# Type alias for handler function
HandlerFunc = Callable[["BrowserClient", ToolArguments, "CancelScope"], ToolResult]


class ToolRegistry:
    """Registry for tool handlers."""

    def __init__(self) -> None:
        # name -> (handler, verb)
        self._handlers: dict[str, tuple[HandlerFunc, str]] = {}

    def register(self, name: str, handler: HandlerFunc, verb: str) -> None:
        """Register a tool handler."""
        self._handlers[name] = (handler, verb)

    def register_many(self, handlers: dict[str, tuple[HandlerFunc, str]]) -> None:
        """Register multiple handlers at once."""
        self._handlers.update(handlers)

    def get(self, name: str) -> tuple[HandlerFunc, str] | None:
        return self._handlers.get(name)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def dispatch(
        self,
        name: str,
        client: BrowserClient,
        arguments: dict | None,
        scope: CancelScope,
    ) -> ToolResult:
        """
        Dispatch tool call to its handler.

        Argument errors and bridge errors come back as tool error results;
        anything else propagates to the caller.

        Raises:
            KeyError: If tool not found
        """
        handler_info = self._handlers.get(name)
        if handler_info is None:
            raise KeyError(f"Unknown tool: {name}")

        handler, verb = handler_info
        try:
            return handler(client, ToolArguments(arguments), scope)
        except ArgumentError as exc:
            return ToolResult.error(str(exc))
        except BridgeError as exc:
            logger.info("tool=%s failed: %s", name, exc)
            return ToolResult.error(f"Failed to {verb}: {exc}")

    def tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._handlers.keys())


def create_default_registry() -> ToolRegistry:
    """Create registry with all default handlers registered."""
    from .handlers import ALL_HANDLERS

    registry = ToolRegistry()
    registry.register_many(ALL_HANDLERS)
    return registry
