from __future__ import annotations

import json
from typing import Any

import pytest

from mcp_servers.browser_bridge.browser_client import BrowserClient
from mcp_servers.browser_bridge.cancel import CancelScope
from mcp_servers.browser_bridge.correlator import RequestCorrelator
from mcp_servers.browser_bridge.models import Cookie, Tab
from mcp_servers.browser_bridge.protocol import Message
from mcp_servers.browser_bridge.server.arguments import ArgumentError, ToolArguments
from mcp_servers.browser_bridge.server.contract import tools_list
from mcp_servers.browser_bridge.server.handlers.content import render_extracted, split_data_url
from mcp_servers.browser_bridge.server.handlers.storage import render_cookies
from mcp_servers.browser_bridge.server.handlers.tabs import render_tabs
from mcp_servers.browser_bridge.server.registry import create_default_registry
from mcp_servers.browser_bridge.server.types import ToolResult


class _ScriptedLink:
    id = "scripted"

    def __init__(self, correlator: RequestCorrelator, replies: dict[str, Any]) -> None:
        self.correlator = correlator
        self.replies = replies
        self.sent: list[Message] = []

    def send_message(self, msg: Message) -> None:
        self.sent.append(msg)
        reply = self.replies.get(msg.action)
        if isinstance(reply, Exception):
            self.correlator.handle_response(msg.id, None, str(reply))
        else:
            self.correlator.handle_response(msg.id, reply)


def _call(name: str, args: dict[str, Any] | None = None, replies: dict[str, Any] | None = None) -> ToolResult:
    corr = RequestCorrelator(request_timeout=1.0)
    corr.set_connection(_ScriptedLink(corr, replies or {}))
    return create_default_registry().dispatch(name, BrowserClient(corr), args or {}, CancelScope())


def _text(result: ToolResult) -> str:
    return result.content[0].text or ""


def test_every_defined_tool_has_a_handler() -> None:
    registry = create_default_registry()
    names = [tool["name"] for tool in tools_list()]
    assert len(names) == 36
    assert sorted(names) == sorted(registry.tool_names())
    for tool in tools_list():
        assert tool["inputSchema"]["type"] == "object"


def test_unknown_tool_raises_key_error() -> None:
    with pytest.raises(KeyError):
        _call("browser_teleport")


def test_list_tabs_text() -> None:
    tabs = [
        {"id": 1, "url": "https://a", "title": "A", "active": True, "index": 0},
        {"id": 2, "url": "https://b", "title": "B", "active": False, "index": 1},
    ]
    result = _call("browser_list_tabs", replies={"listTabs": tabs})
    assert not result.is_error
    assert _text(result) == (
        "Found 2 open tabs:\n\n"
        "Tab 1 [ACTIVE]: A\n  URL: https://a\n  Index: 0\n\n"
        "Tab 2: B\n  URL: https://b\n  Index: 1\n\n"
    )


def test_bridge_failure_is_a_tool_error() -> None:
    result = _call("browser_list_tabs", replies={"listTabs": Exception("permission denied")})
    assert result.is_error
    assert _text(result) == "Failed to list tabs: chrome extension error: permission denied"


def test_missing_link_is_a_tool_error() -> None:
    corr = RequestCorrelator(request_timeout=1.0)
    result = create_default_registry().dispatch("browser_close_tab", BrowserClient(corr), {"tabId": 3}, CancelScope())
    assert result.is_error
    assert _text(result) == "Failed to close tab: no connection to Chrome extension"


def test_missing_required_argument() -> None:
    result = _call("browser_navigate", {})
    assert result.is_error
    assert _text(result) == 'required argument "url" not found'


def test_close_and_activate_tab_texts() -> None:
    assert _text(_call("browser_close_tab", {"tabId": 5})) == "Closed tab 5"
    assert _text(_call("browser_activate_tab", {"tabId": "6"})) == "Activated tab 6"
    assert _text(_call("browser_send_key", {"key": "Escape"})) == "Sent key 'Escape'"


def test_create_tab_returns_json() -> None:
    reply = {"id": 4, "url": "https://n", "title": "N", "active": True, "index": 3}
    result = _call("browser_create_tab", {"url": "https://n"}, {"createTab": reply})
    assert json.loads(_text(result)) == {"id": 4, "url": "https://n", "title": "N", "active": True, "index": 3}


def test_scroll_descriptions() -> None:
    assert _text(_call("browser_scroll", {"x": 0, "y": 400})) == "Scrolled to position (0, 400)"
    assert _text(_call("browser_scroll", {"y": 10.5})) == "Scrolled vertically to 10.5"
    assert _text(_call("browser_scroll", {"selector": "#end"})) == "Scrolled to element #end"
    assert _text(_call("browser_scroll", {})) == "Scrolled"


def test_type_text() -> None:
    result = _call("browser_type", {"selector": "#q", "text": "hi", "clearFirst": True})
    assert _text(result) == "Cleared and typed 'hi' into #q"


def test_execute_script_renders_result() -> None:
    assert _text(_call("browser_execute_script", {"script": "1"}, {"executeScript": "ok"})) == "Script result: ok"
    result = _call("browser_execute_script", {"script": "1"}, {"executeScript": {"a": 1}})
    assert _text(result) == 'Script result: {"a": 1}'


def test_screenshot_returns_image_content() -> None:
    result = _call("browser_screenshot", {}, {"screenshot": {"dataUrl": "data:image/jpeg;base64,QUJD"}})
    assert not result.is_error
    content = result.to_content_list()
    assert content[0] == {"type": "text", "text": "Screenshot captured"}
    assert content[1] == {"type": "image", "data": "QUJD", "mimeType": "image/jpeg"}


def test_empty_screenshot_is_an_error() -> None:
    result = _call("browser_screenshot", {}, {"screenshot": {"dataUrl": ""}})
    assert result.is_error
    assert _text(result) == "Screenshot data is empty"


def test_storage_handlers() -> None:
    replies = {"getSessionStorage": {"storage": {"k": "v"}}}
    assert _text(_call("browser_get_session_storage", {"key": "k"}, replies)) == "sessionStorage['k'] = v"
    assert _text(_call("browser_set_local_storage", {"key": "a", "value": "b"})) == "Set localStorage['a'] = b"
    assert _text(_call("browser_clear_local_storage")) == "Cleared localStorage"


def test_delete_cookies_descriptions() -> None:
    assert _text(_call("browser_delete_cookies", {"name": "sid"})) == "Deleted cookie 'sid'"
    assert _text(_call("browser_delete_cookies", {"url": "https://a"})) == "Deleted cookies for https://a"
    assert _text(_call("browser_delete_cookies")) == "Deleted all cookies"


def test_passthrough_reply_or_fallback_text() -> None:
    assert _text(_call("browser_hints_show", {}, {"hints.show": {}})) == "Hints shown"
    result = _call("browser_hints_show", {}, {"hints.show": {"count": 3}})
    assert json.loads(_text(result)) == {"count": 3}


def test_render_helpers() -> None:
    assert render_tabs([]) == "Found 0 open tabs:\n\n"
    tab = Tab(id=3, url="u", title="t", index=1)
    assert "Tab 3: t\n" in render_tabs([tab])

    assert render_extracted([]) == "No matching elements found"
    assert render_extracted(["x"]) == "Found 1 matching element(s):\n\nx\n"
    assert render_extracted(["x", "y"]) == "Found 2 matching element(s):\n\n[1] x\n\n[2] y\n"

    assert render_cookies([]) == "No cookies found"
    text = render_cookies([Cookie(name="n", value="v", domain="d", path="/", secure=True)])
    assert text == "Found 1 cookie(s):\n\nName: n\nValue: v\nDomain: d\nPath: /\nSecure: true\n\n"


def test_split_data_url() -> None:
    assert split_data_url("data:image/webp;base64,AAAA") == ("image/webp", "AAAA")
    assert split_data_url("AAAA") == ("image/png", "AAAA")


def test_tool_arguments_coercion() -> None:
    args = ToolArguments({"n": "12", "f": 2, "b": "yes", "s": 5, "m": {"shift": "true", "alt": 0}})
    assert args.require_int("n") == 12
    assert args.get_float("f") == 2.0
    assert args.get_bool("b") is True
    assert args.get_str("s", "dflt") == "dflt"
    assert args.get_int("missing", 7) == 7
    assert args.get_bool_map("m") == {"shift": True, "alt": False}

    with pytest.raises(ArgumentError) as exc_info:
        args.require_str("s")
    assert str(exc_info.value) == 'argument "s" is not a string'
    with pytest.raises(ArgumentError) as exc_info:
        ToolArguments({"tabId": True}).require_int("tabId")
    assert str(exc_info.value) == 'argument "tabId" is not an int'
