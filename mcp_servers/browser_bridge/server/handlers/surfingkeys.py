"""
Keyboard-navigation tool handlers (hints, search, find, clipboard, omnibar,
visual mode, page title), served by the extension's Surfingkeys integration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..arguments import ArgumentError
from ..types import ToolResult

if TYPE_CHECKING:
    from ...browser_client import BrowserClient
    from ...cancel import CancelScope
    from ..arguments import ToolArguments

OMNIBAR_TYPES = ("bookmarks", "history", "tabs", "commands")


def handle_hints_show(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    reply = client.show_hints(args.get_int("tabId", 0), args.get_str("selector", ""), args.get_str("action", ""), scope)
    return ToolResult.from_reply(reply, "Hints shown")


def handle_hints_click(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    reply = client.click_hint(
        args.get_int("tabId", 0),
        args.get_str("selector", ""),
        args.get_int("index", -1),
        args.get_str("text", ""),
        scope,
    )
    return ToolResult.from_reply(reply, "Hint clicked")


def handle_search(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    query = args.require_str("query")
    reply = client.search(query, args.get_str("engine", "google"), args.get_bool("newTab", True), scope)
    return ToolResult.from_reply(reply, f"Searched for '{query}'")


def handle_find(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    text = args.require_str("text")
    reply = client.find(
        args.get_int("tabId", 0),
        text,
        args.get_bool("caseSensitive", False),
        args.get_bool("wholeWord", False),
        scope,
    )
    return ToolResult.from_reply(reply, f"Searched page for '{text}'")


def handle_clipboard_read(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    return ToolResult.text(client.read_clipboard(scope))


def handle_clipboard_write(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    text = args.require_str("text")
    client.write_clipboard(text, args.get_str("format", "text"), scope)
    return ToolResult.text(f"Wrote {len(text)} characters to clipboard")


def handle_omnibar(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    bar_type = args.require_str("type")
    if bar_type not in OMNIBAR_TYPES:
        raise ArgumentError(f'argument "type" must be one of: {", ".join(OMNIBAR_TYPES)}')
    reply = client.show_omnibar(args.get_int("tabId", 0), bar_type, args.get_str("query", ""), scope)
    return ToolResult.from_reply(reply, f"Opened {bar_type} omnibar")


def handle_visual_mode(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    reply = client.start_visual_mode(args.get_int("tabId", 0), args.get_bool("selectElement", False), scope)
    return ToolResult.from_reply(reply, "Visual mode started")


def handle_get_page_title(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    return ToolResult.text(client.get_page_title(args.get_int("tabId", 0), scope))


SURFINGKEYS_HANDLERS: dict[str, tuple] = {
    "browser_hints_show": (handle_hints_show, "show hints"),
    "browser_hints_click": (handle_hints_click, "click hint"),
    "browser_search": (handle_search, "search"),
    "browser_find": (handle_find, "find text"),
    "browser_clipboard_read": (handle_clipboard_read, "read clipboard"),
    "browser_clipboard_write": (handle_clipboard_write, "write clipboard"),
    "browser_omnibar": (handle_omnibar, "show omnibar"),
    "browser_visual_mode": (handle_visual_mode, "start visual mode"),
    "browser_get_page_title": (handle_get_page_title, "get page title"),
}
