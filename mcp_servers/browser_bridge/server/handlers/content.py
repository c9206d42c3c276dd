"""
Content tool handlers - scripts, extraction, screenshots, page structure.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from ..types import ToolResult

if TYPE_CHECKING:
    from ...browser_client import BrowserClient
    from ...cancel import CancelScope
    from ..arguments import ToolArguments


def render_extracted(results: list[str]) -> str:
    if not results:
        return "No matching elements found"
    parts = [f"Found {len(results)} matching element(s):\n\n"]
    for i, content in enumerate(results):
        if len(results) > 1:
            parts.append(f"[{i + 1}] ")
        parts.append(content)
        parts.append("\n")
        if i < len(results) - 1:
            parts.append("\n")
    return "".join(parts)


def split_data_url(data_url: str) -> tuple[str, str]:
    """``data:<mime>;base64,<payload>`` -> (mime, payload)."""
    mime_type = "image/png"
    if len(data_url) > 5 and data_url.startswith("data:"):
        idx = data_url.find(";")
        if idx > 5:
            mime_type = data_url[5:idx]
    payload = data_url
    idx = data_url.find(",")
    if idx > 0:
        payload = data_url[idx + 1 :]
    return mime_type, payload


def handle_execute_script(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    script = args.require_str("script")
    result = client.execute_script(args.get_int("tabId", 0), script, args.get_list("args"), scope)
    rendered = result if isinstance(result, str) else json.dumps(result, ensure_ascii=False)
    return ToolResult.text(f"Script result: {rendered}")


def handle_extract_content(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    results = client.extract_content(
        args.get_int("tabId", 0),
        args.get_str("selector", "body"),
        args.get_str("type", "text"),
        args.get_str("attribute", ""),
        scope,
    )
    return ToolResult.text(render_extracted(results))


def handle_extract_text(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    return ToolResult.text(client.extract_text(args.get_int("tabId", 0), args.get_str("selector", "body"), scope))


def handle_screenshot(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    data_url = client.screenshot(
        args.get_int("tabId", 0),
        args.get_bool("fullPage", False),
        args.get_str("selector", ""),
        args.get_str("format", "png"),
        args.get_int("quality", 90),
        scope,
    )
    mime_type, payload = split_data_url(data_url)
    return ToolResult.with_image("Screenshot captured", payload, mime_type)


def handle_get_actionables(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    return ToolResult.json(client.get_actionables(args.get_int("tabId", 0), scope))


def handle_get_accessibility_snapshot(client: BrowserClient, args: ToolArguments, scope: CancelScope) -> ToolResult:
    snapshot = client.get_accessibility_snapshot(
        args.get_int("tabId", 0),
        args.get_bool("interestingOnly", True),
        args.get_str("root", ""),
        scope,
    )
    return ToolResult.json(snapshot)


CONTENT_HANDLERS: dict[str, tuple] = {
    "browser_execute_script": (handle_execute_script, "execute script"),
    "browser_extract_content": (handle_extract_content, "extract content"),
    "browser_extract_text": (handle_extract_text, "extract text"),
    "browser_screenshot": (handle_screenshot, "take screenshot"),
    "browser_get_actionables": (handle_get_actionables, "get actionables"),
    "browser_get_accessibility_snapshot": (handle_get_accessibility_snapshot, "get accessibility snapshot"),
}
