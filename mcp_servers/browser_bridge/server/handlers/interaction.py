"""
Interaction tool handlers - click, type, scroll, wait for element.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..types import ToolResult

if TYPE_CHECKING:
    from ...browser_client import BrowserClient
    from ...cancel import CancelScope
    from ..arguments import ToolArguments


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def handle_click(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    selector = args.require_str("selector")
    client.click(args.get_int("tabId", 0), selector, args.get_int("timeout", 30000), scope)
    return ToolResult.text(f"Clicked on element: {selector}")


def handle_type(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    selector = args.require_str("selector")
    text = args.require_str("text")
    clear_first = args.get_bool("clearFirst", False)
    client.type_text(args.get_int("tabId", 0), selector, text, clear_first, args.get_int("delay", 0), scope)
    action = "Cleared and typed" if clear_first else "Typed"
    return ToolResult.text(f"{action} '{text}' into {selector}")


def handle_scroll(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    # negative coordinates mean "not given"
    x: float | None = args.get_float("x", -1)
    y: float | None = args.get_float("y", -1)
    if x is not None and x < 0:
        x = None
    if y is not None and y < 0:
        y = None
    selector = args.get_str("selector", "")
    client.scroll(args.get_int("tabId", 0), x, y, selector, args.get_str("behavior", "auto"), scope)

    if selector:
        desc = f"to element {selector}"
    elif x is not None and y is not None:
        desc = f"to position ({_num(x)}, {_num(y)})"
    elif x is not None:
        desc = f"horizontally to {_num(x)}"
    elif y is not None:
        desc = f"vertically to {_num(y)}"
    else:
        desc = ""
    return ToolResult.text(f"Scrolled {desc}".rstrip())


def handle_wait_for_element(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    selector = args.require_str("selector")
    state = args.get_str("state", "visible")
    client.wait_for_element(args.get_int("tabId", 0), selector, args.get_int("timeout", 30000), state, scope)
    return ToolResult.text(f"Element {selector} is now {state}")


INTERACTION_HANDLERS: dict[str, tuple] = {
    "browser_click": (handle_click, "click"),
    "browser_type": (handle_type, "type"),
    "browser_scroll": (handle_scroll, "scroll"),
    "browser_wait_for_element": (handle_wait_for_element, "wait for element"),
}
