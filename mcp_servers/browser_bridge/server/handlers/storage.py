"""
Storage tool handlers - cookies, localStorage, sessionStorage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...models import Cookie
from ..types import ToolResult

if TYPE_CHECKING:
    from ...browser_client import BrowserClient
    from ...cancel import CancelScope
    from ..arguments import ToolArguments


def render_cookies(cookies: list[Cookie]) -> str:
    if not cookies:
        return "No cookies found"
    parts = [f"Found {len(cookies)} cookie(s):\n\n"]
    for cookie in cookies:
        parts.append(f"Name: {cookie.name}\n")
        parts.append(f"Value: {cookie.value}\n")
        parts.append(f"Domain: {cookie.domain}\n")
        parts.append(f"Path: {cookie.path}\n")
        if cookie.secure:
            parts.append("Secure: true\n")
        if cookie.http_only:
            parts.append("HttpOnly: true\n")
        parts.append("\n")
    return "".join(parts)


def handle_get_cookies(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    cookies = client.get_cookies(args.get_str("url", ""), args.get_str("name", ""), scope)
    return ToolResult.text(render_cookies(cookies))


def handle_set_cookie(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    name = args.require_str("name")
    value = args.require_str("value")
    cookie = Cookie(
        name=name,
        value=value,
        domain=args.get_str("domain", ""),
        path=args.get_str("path", "/"),
        secure=args.get_bool("secure", False),
        http_only=args.get_bool("httpOnly", False),
        expiration_date=args.get_float("expirationDate", 0),
    )
    client.set_cookie(cookie, scope)
    return ToolResult.text(f"Set cookie '{name}' = '{value}'")


def handle_delete_cookies(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    url = args.get_str("url", "")
    name = args.get_str("name", "")
    client.delete_cookies(url, name, scope)
    if name:
        desc = f"cookie '{name}'"
    elif url:
        desc = f"cookies for {url}"
    else:
        desc = "all cookies"
    return ToolResult.text(f"Deleted {desc}")


def _storage_handlers(area: str) -> dict[str, tuple]:
    """get/set/clear handlers for ``localStorage`` or ``sessionStorage``."""
    prefix = "local" if area == "localStorage" else "session"

    def handle_get(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
        key = args.require_str("key")
        getter = client.get_local_storage if prefix == "local" else client.get_session_storage
        value = getter(args.get_int("tabId", 0), key, scope)
        return ToolResult.text(f"{area}['{key}'] = {value}")

    def handle_set(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
        key = args.require_str("key")
        value = args.require_str("value")
        setter = client.set_local_storage if prefix == "local" else client.set_session_storage
        setter(args.get_int("tabId", 0), key, value, scope)
        return ToolResult.text(f"Set {area}['{key}'] = {value}")

    def handle_clear(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
        clearer = client.clear_local_storage if prefix == "local" else client.clear_session_storage
        clearer(args.get_int("tabId", 0), scope)
        return ToolResult.text(f"Cleared {area}")

    return {
        f"browser_get_{prefix}_storage": (handle_get, f"get {area}"),
        f"browser_set_{prefix}_storage": (handle_set, f"set {area}"),
        f"browser_clear_{prefix}_storage": (handle_clear, f"clear {area}"),
    }


STORAGE_HANDLERS: dict[str, tuple] = {
    "browser_get_cookies": (handle_get_cookies, "get cookies"),
    "browser_set_cookie": (handle_set_cookie, "set cookie"),
    "browser_delete_cookies": (handle_delete_cookies, "delete cookies"),
    **_storage_handlers("localStorage"),
    **_storage_handlers("sessionStorage"),
}
