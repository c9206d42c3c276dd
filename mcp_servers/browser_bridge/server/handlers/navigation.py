"""
Navigation tool handlers - page navigation and reload.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..types import ToolResult

if TYPE_CHECKING:
    from ...browser_client import BrowserClient
    from ...cancel import CancelScope
    from ..arguments import ToolArguments


def handle_browser_navigate(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    url = args.require_str("url")
    client.navigate(args.get_int("tabId", 0), url, args.get_bool("waitUntilLoad", True), scope)
    return ToolResult.text(f"Navigated to {url}")


def handle_browser_reload(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    hard_reload = args.get_bool("hardReload", False)
    client.reload(args.get_int("tabId", 0), hard_reload, scope)
    return ToolResult.text("Hard reloaded page" if hard_reload else "Reloaded page")


NAVIGATION_HANDLERS: dict[str, tuple] = {
    "browser_navigate": (handle_browser_navigate, "navigate"),
    "browser_reload": (handle_browser_reload, "reload"),
}
