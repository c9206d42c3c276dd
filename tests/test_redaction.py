from __future__ import annotations

from mcp_servers.browser_bridge.server.redaction import (
    MAX_LOGGED_STRING,
    redact_jsonrpc_for_log,
    redact_tool_arguments,
    redact_url,
)


def test_tool_specific_arguments_are_redacted() -> None:
    out = redact_tool_arguments("browser_type", {"selector": "#pw", "text": "hunter2"})
    assert out == {"selector": "#pw", "text": "<redacted:7 chars>"}

    out = redact_tool_arguments("browser_execute_script", {"script": "x()", "args": [1, 2]})
    assert out == {"script": "<redacted:3 chars>", "args": "<redacted:2 items>"}


def test_sensitive_keys_are_redacted_for_any_tool() -> None:
    out = redact_tool_arguments("browser_navigate", {"url": "https://a", "authToken": "abc", "nested": {"password": "p"}})
    assert out["authToken"] == "<redacted:3 chars>"
    assert out["nested"] == {"password": "<redacted:1 chars>"}
    assert out["url"] == "https://a"


def test_urls_lose_userinfo_and_secret_params() -> None:
    assert redact_url("https://user:pw@example.com/p?q=1&token=abc") == "https://example.com/p?q=1&token=REDACTED"
    assert redact_url("https://example.com/p?q=1") == "https://example.com/p?q=1"


def test_long_strings_are_truncated() -> None:
    out = redact_tool_arguments("browser_navigate", {"url": "https://a/" + "x" * 300})
    assert out["url"].startswith("https://a/")
    assert "(+" in out["url"]
    assert len(out["url"]) < 300 + 10
    assert len(out["url"].split("…")[0]) == MAX_LOGGED_STRING


def test_jsonrpc_frames_hide_arguments_and_images() -> None:
    request = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": "browser_set_cookie", "arguments": {"name": "sid", "value": "secret"}},
    }
    logged = redact_jsonrpc_for_log(request)
    assert logged["params"]["arguments"]["value"] == "<redacted:6 chars>"
    assert request["params"]["arguments"]["value"] == "secret"

    response = {"jsonrpc": "2.0", "id": 1, "result": {"content": [{"type": "image", "data": "A" * 40}]}}
    logged = redact_jsonrpc_for_log(response)
    assert logged["result"]["content"][0]["data"] == "<omitted image base64 len=40>"
