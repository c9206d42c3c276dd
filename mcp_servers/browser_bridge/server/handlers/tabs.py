"""
Tab tool handlers - list, open, close, activate, keyboard input.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..types import ToolResult

if TYPE_CHECKING:
    from ...browser_client import BrowserClient
    from ...cancel import CancelScope
    from ...models import Tab
    from ..arguments import ToolArguments


def render_tabs(tabs: list[Tab]) -> str:
    lines = [f"Found {len(tabs)} open tabs:\n\n"]
    for tab in tabs:
        status = " [ACTIVE]" if tab.active else ""
        lines.append(f"Tab {tab.id}{status}: {tab.title}\n")
        lines.append(f"  URL: {tab.url}\n")
        lines.append(f"  Index: {tab.index}\n\n")
    return "".join(lines)


def handle_list_tabs(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    return ToolResult.text(render_tabs(client.list_tabs(scope)))


def handle_create_tab(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    tab = client.create_tab(args.get_str("url", "about:blank"), args.get_bool("active", True), scope)
    return ToolResult.json(tab.to_dict())


def handle_close_tab(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    tab_id = args.require_int("tabId")
    client.close_tab(tab_id, scope)
    return ToolResult.text(f"Closed tab {tab_id}")


def handle_activate_tab(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    tab_id = args.require_int("tabId")
    client.activate_tab(tab_id, scope)
    return ToolResult.text(f"Activated tab {tab_id}")


def handle_send_key(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    key = args.require_str("key")
    client.send_key(key, args.get_bool_map("modifiers"), args.get_int("tabId", 0), scope)
    return ToolResult.text(f"Sent key '{key}'")


TAB_HANDLERS: dict[str, tuple] = {
    "browser_list_tabs": (handle_list_tabs, "list tabs"),
    "browser_create_tab": (handle_create_tab, "create tab"),
    "browser_close_tab": (handle_close_tab, "close tab"),
    "browser_activate_tab": (handle_activate_tab, "activate tab"),
    "browser_send_key": (handle_send_key, "send key"),
}
