"""
Connection tool handlers - waiting for the extension to attach.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..types import ToolResult

if TYPE_CHECKING:
    from ...browser_client import BrowserClient
    from ...cancel import CancelScope
    from ..arguments import ToolArguments


def handle_wait_for_connection(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    timeout = args.get_float("timeout", 30.0)
    client.wait_for_connection(timeout, scope)
    return ToolResult.text("Successfully connected to browser extension")


CONNECTION_HANDLERS: dict[str, tuple] = {
    "browser_wait_for_connection": (handle_wait_for_connection, "connect to browser"),
}
