"""Redaction utilities for logging.

Tool arguments are logged on every call; this module strips values that are
likely secrets (typed text, cookie values, storage values, scripts) and keeps
log lines short.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

MAX_LOGGED_STRING = 200

_SENSITIVE_KEYS = {
    "secret",
    "password",
    "pass",
    "pwd",
    "token",
    "auth",
    "authorization",
    "cookie",
    "api-key",
    "apikey",
}

_SENSITIVE_KEY_RE = re.compile(r"(token|password|passwd|secret|auth|cookie|session|api[-_]?key)", re.IGNORECASE)

# tool name -> argument keys whose values are always redacted
_TOOL_SENSITIVE_ARGS: dict[str, set[str]] = {
    "browser_type": {"text"},
    "browser_execute_script": {"script", "args"},
    "browser_set_cookie": {"value"},
    "browser_set_local_storage": {"value"},
    "browser_set_session_storage": {"value"},
    "browser_clipboard_write": {"text"},
}


def is_sensitive_key(key: str) -> bool:
    lk = (key or "").strip().lower()
    if not lk:
        return False
    return lk in _SENSITIVE_KEYS or _SENSITIVE_KEY_RE.search(lk) is not None


def _redacted_summary(value: Any) -> str:
    if value is None:
        return "<redacted>"
    if isinstance(value, str):
        return f"<redacted:{len(value)} chars>"
    if isinstance(value, (list, tuple)):
        return f"<redacted:{len(value)} items>"
    if isinstance(value, dict):
        return f"<redacted:{len(value)} keys>"
    return "<redacted>"


def _truncate(value: str) -> str:
    if len(value) <= MAX_LOGGED_STRING:
        return value
    return value[:MAX_LOGGED_STRING] + f"…(+{len(value) - MAX_LOGGED_STRING} chars)"


def redact_url(url: str) -> str:
    """Drop userinfo and redact values of sensitive query parameters."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.netloc.split("@", 1)[1] if "@" in parts.netloc else parts.netloc
    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        query = urlencode([(k, "REDACTED" if is_sensitive_key(k) else v) for k, v in pairs])
    if netloc == parts.netloc and query == parts.query:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def _redact_any(value: Any, *, tool: str, key: str | None) -> Any:
    if isinstance(value, dict):
        return {k: _redact_any(v, tool=tool, key=str(k)) for k, v in value.items()}

    lk = (key or "").lower()
    if lk and lk in {k.lower() for k in _TOOL_SENSITIVE_ARGS.get(tool, set())}:
        return _redacted_summary(value)
    if lk and is_sensitive_key(lk):
        return _redacted_summary(value)

    if isinstance(value, list):
        return [_redact_any(v, tool=tool, key=key) for v in value]
    if isinstance(value, str):
        if lk == "url":
            value = redact_url(value)
        return _truncate(value)
    return value


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    if not isinstance(args, dict):
        return {}
    return _redact_any(args, tool=tool, key=None)


def redact_jsonrpc_for_log(payload: dict[str, Any]) -> dict[str, Any]:
    """Shallow copy of a JSON-RPC frame with tool arguments and image data redacted."""
    msg = dict(payload) if isinstance(payload, dict) else {}

    params = msg.get("params")
    if msg.get("method") == "tools/call" and isinstance(params, dict):
        name = params.get("name")
        args = params.get("arguments")
        if isinstance(name, str) and isinstance(args, dict):
            msg["params"] = {**params, "arguments": redact_tool_arguments(name, args)}

    result = msg.get("result")
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        content = []
        for item in result["content"]:
            if isinstance(item, dict) and item.get("type") == "image" and isinstance(item.get("data"), str):
                item = {**item, "data": f"<omitted image base64 len={len(item['data'])}>"}
            elif isinstance(item, dict) and isinstance(item.get("text"), str):
                item = {**item, "text": _truncate(item["text"])}
            content.append(item)
        msg["result"] = {**result, "content": content}
    return msg
