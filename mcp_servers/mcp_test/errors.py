"""Error types for the test DSL and its MCP driver."""

from __future__ import annotations


class DSLError(Exception):
    pass


class DSLSyntaxError(DSLError):
    """Lexer or parser failure. ``line``/``column`` are 1-based, 0 when unknown."""

    def __init__(self, message: str, *, line: int = 0, column: int = 0) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


class DSLRuntimeError(DSLError):
    pass


class MCPClientError(Exception):
    """The MCP server could not be reached or answered with a JSON-RPC error."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
