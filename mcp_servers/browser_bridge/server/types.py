"""
Type definitions for MCP tool results and handlers.
"""

from __future__ import annotations

import json as _json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..browser_client import BrowserClient
    from ..cancel import CancelScope
    from .arguments import ToolArguments


@dataclass(slots=True)
class ToolContent:
    """Single content item in tool response."""

    type: str  # "text" or "image"
    text: str | None = None
    data: str | None = None  # base64 for images
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP content format."""
        if self.type == "image":
            return {"type": "image", "data": self.data, "mimeType": self.mime_type}
        return {"type": "text", "text": self.text}


@dataclass(slots=True)
class ToolResult:
    """Result of a tool execution."""

    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> ToolResult:
        return cls(content=[ToolContent(type="text", text=text or "")])

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(content=[ToolContent(type="text", text=message)], is_error=True)

    @classmethod
    def json(cls, data: Any) -> ToolResult:
        """Structured payload serialized as JSON text."""
        return cls(content=[ToolContent(type="text", text=_json.dumps(data, ensure_ascii=False))])

    @classmethod
    def from_reply(cls, data: Any, fallback: str) -> ToolResult:
        """Pass an extension reply through as JSON; ``fallback`` text when it is empty."""
        if data is None or data == {}:
            return cls.text(fallback)
        return cls.json(data)

    @classmethod
    def with_image(cls, text: str, data_b64: str, mime_type: str = "image/png") -> ToolResult:
        """Caption plus image content. Errors out if the image is empty."""
        if not data_b64:
            return cls.error("Screenshot data is empty")
        return cls(
            content=[
                ToolContent(type="text", text=text),
                ToolContent(type="image", data=data_b64, mime_type=mime_type),
            ]
        )

    def to_content_list(self) -> list[dict[str, Any]]:
        """Convert to MCP content list format."""
        return [c.to_dict() for c in self.content]


class ToolHandler(Protocol):
    """Protocol for tool handler functions."""

    def __call__(
        self,
        client: BrowserClient,
        args: ToolArguments,
        scope: CancelScope,
    ) -> ToolResult: ...
