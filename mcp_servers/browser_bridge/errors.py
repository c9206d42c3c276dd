"""Error types raised by the bridge.

Everything a tool handler can hit derives from ``BridgeError`` so the adapter
layer can turn it into a tool-level error result with a single ``except``.
"""

from __future__ import annotations


class BridgeError(Exception):
    pass


class ExtensionError(BridgeError):
    """The extension answered with an error (response or error frame)."""

    def __init__(self, message: str) -> None:
        self.reason = message
        super().__init__(f"chrome extension error: {message}")


class LinkError(BridgeError):
    """No live extension link, or the link failed while sending."""


class BufferFullError(LinkError):
    """Outbound queue is full. Retryable."""

    def __init__(self, message: str = "connection send buffer full") -> None:
        super().__init__(message)


class ProtocolError(BridgeError):
    """The extension replied with a payload of the wrong shape."""


class RequestTimeout(BridgeError, TimeoutError):
    pass


class RequestCancelled(BridgeError):
    def __init__(self, message: str = "request cancelled") -> None:
        super().__init__(message)


class ConfigError(BridgeError):
    pass
