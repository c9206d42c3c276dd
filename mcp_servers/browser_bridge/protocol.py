"""Frames exchanged with the browser extension over the WebSocket link."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

MESSAGE_TYPES = frozenset({"command", "response", "event", "ping", "pong", "ack", "connected", "error"})

_UNSET: Any = object()


@dataclass(slots=True)
class Message:
    """One JSON text frame.

    ``command``/``action`` and ``params``/``data`` are legacy pairs: outbound
    commands carry both, inbound responses prefer ``result`` and fall back to
    ``data``.
    """

    id: str = ""
    type: str = ""
    command: str = ""
    action: str = ""
    params: Any = _UNSET
    data: Any = _UNSET
    result: Any = _UNSET
    error: str = ""

    @classmethod
    def command_frame(cls, msg_id: str, action: str, params: Any) -> Message:
        return cls(id=msg_id, type="command", command=action, action=action, params=params, data=params)

    @classmethod
    def reply_frame(cls, msg_id: str, kind: str) -> Message:
        """``pong``/``ack`` replies; ``command`` mirrors the type for the extension's validator."""
        return cls(id=msg_id, type=kind, command=kind)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Message:
        def _str(key: str) -> str:
            value = raw.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            id=_str("id"),
            type=_str("type"),
            command=_str("command"),
            action=_str("action"),
            params=raw.get("params", _UNSET),
            data=raw.get("data", _UNSET),
            result=raw.get("result", _UNSET),
            error=_str("error"),
        )

    @classmethod
    def decode(cls, raw: str | bytes) -> Message:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("frame is not a JSON object")
        return cls.from_dict(payload)

    def has(self, name: str) -> bool:
        return getattr(self, name) is not _UNSET

    def get(self, name: str, default: Any = None) -> Any:
        value = getattr(self, name)
        return default if value is _UNSET else value

    def reply_payload(self) -> Any:
        """Payload of a response: ``result`` if present and not null, else ``data``."""
        result = self.get("result")
        if result is not None:
            return result
        return self.get("data")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "type": self.type}
        if self.command:
            out["command"] = self.command
        if self.action:
            out["action"] = self.action
        for name in ("data", "result", "params"):
            if self.has(name):
                out[name] = getattr(self, name)
        if self.error:
            out["error"] = self.error
        return out

    def encode(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
