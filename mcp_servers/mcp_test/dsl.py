"""Public entry points for the test DSL: parse, validate, format and execute."""

from __future__ import annotations

from pathlib import Path
from typing import IO, Any

from mcp_servers.browser_bridge.cancel import CancelScope
from mcp_servers.browser_bridge.errors import BridgeError

from .errors import DSLError, DSLRuntimeError, DSLSyntaxError
from .formatter import format_ast
from .interpreter import ClientFactory
from .interpreter import Interpreter as _Runtime
from .mcp_client import MCPClient
from .nodes import Script
from .parser import parse


def parse_string(source: str) -> Script:
    try:
        return parse(source)
    except RecursionError:
        raise DSLSyntaxError("expression nested too deeply") from None


def _read(path: str | Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise DSLError(f"failed to read file: {exc}") from exc


def parse_file(path: str | Path) -> Script:
    return parse_string(_read(path))


def validate_string(source: str) -> None:
    """Raises ``DSLSyntaxError`` when ``source`` does not parse."""
    parse_string(source)


def validate_file(path: str | Path) -> None:
    parse_file(path)


def format_script(source: str) -> str:
    return format_ast(parse_string(source))


class Interpreter:
    """Runs scripts and keeps variables, procedures and the MCP client between runs."""

    def __init__(self, *, client_factory: ClientFactory = MCPClient, stdout: IO[str] | None = None) -> None:
        self.runtime = _Runtime(client_factory=client_factory, stdout=stdout)

    @property
    def output(self) -> str:
        return self.runtime.output

    @property
    def client(self) -> MCPClient | None:
        return self.runtime.client

    @property
    def variables(self) -> dict[str, Any]:
        return self.runtime.variables

    def execute_string(self, source: str, scope: CancelScope | None = None) -> None:
        try:
            script = parse_string(source)
        except DSLSyntaxError as exc:
            raise DSLSyntaxError(f"parse error: {exc}", line=exc.line, column=exc.column) from exc
        try:
            self.runtime.execute(script, scope)
        except (DSLRuntimeError, BridgeError) as exc:
            raise DSLRuntimeError(f"runtime error: {exc}") from exc
        except RecursionError:
            raise DSLRuntimeError("runtime error: maximum nesting depth exceeded") from None

    def execute_file(self, path: str | Path, scope: CancelScope | None = None) -> None:
        self.execute_string(_read(path), scope)

    def close(self) -> None:
        self.runtime.close()


__all__ = [
    "Interpreter",
    "format_ast",
    "format_script",
    "parse_file",
    "parse_string",
    "validate_file",
    "validate_string",
]
