"""Tree-walking evaluator for the test DSL.

One interpreter runs one script on the calling thread. Blocking work (tool
calls, ``wait`` polling) honours the ``CancelScope`` passed to ``execute``.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Callable
from typing import IO, Any

from mcp_servers.browser_bridge.cancel import CancelScope

from .durations import format_duration
from .errors import DSLRuntimeError, MCPClientError
from .formatter import format_expression
from .mcp_client import CallToolResult, MCPClient
from .nodes import (
    ArrayLiteral,
    AssertStatement,
    BinaryOp,
    BooleanLiteral,
    CallStatement,
    ConnectStatement,
    DefineStatement,
    Expression,
    FieldAccess,
    FunctionCall,
    IfStatement,
    IndexAccess,
    LoopStatement,
    NullLiteral,
    NumberLiteral,
    ObjectLiteral,
    PrintStatement,
    RunStatement,
    Script,
    SetStatement,
    Statement,
    StringLiteral,
    UnaryOp,
    Variable,
    WaitStatement,
)
from .values import (
    format_value,
    is_number,
    is_truthy,
    iterate,
    length,
    to_float,
    to_int,
    to_json,
    type_name,
    values_equal,
)

logger = logging.getLogger("mcp.test.runtime")

DEFAULT_WAIT_TIMEOUT = 30.0
DEFAULT_WAIT_INTERVAL_MS = 100.0
MAX_RUN_DEPTH = 64

ClientFactory = Callable[[], MCPClient]


def _stringify(value: Any) -> str:
    """Strings unchanged, everything else as compact JSON (``1.0`` -> ``1``)."""
    return value if isinstance(value, str) else to_json(value)


def content_value(item: dict[str, Any]) -> Any:
    """Text content decodes as JSON when it parses, raw text otherwise; other content is kept whole."""
    text = item.get("text")
    if item.get("type") == "text" and isinstance(text, str):
        try:
            return json.loads(text)
        except ValueError:
            return text
    return item


def bind_result(result: CallToolResult) -> Any:
    values = [content_value(item) for item in result.content]
    if len(values) == 1:
        return values[0]
    return values


class Interpreter:
    def __init__(self, *, client_factory: ClientFactory = MCPClient, stdout: IO[str] | None = None) -> None:
        self.client_factory = client_factory
        self.client: MCPClient | None = None
        self.variables: dict[str, Any] = {}
        self.automations: dict[str, DefineStatement] = {}
        self._depth = 0
        self._stdout = stdout
        self._output: list[str] = []
        self._scope = CancelScope(name="interpreter")

    @property
    def output(self) -> str:
        """Everything printed so far."""
        return "".join(self._output)

    def execute(self, script: Script, scope: CancelScope | None = None) -> None:
        previous = self._scope
        self._scope = scope or CancelScope(name="interpreter")
        try:
            self._run_block(script.statements)
        finally:
            self._scope = previous

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    # -- statements ------------------------------------------------------

    def _run_block(self, statements: list[Statement]) -> None:
        for stmt in statements:
            self._scope.raise_if_cancelled()
            handler = self._STATEMENTS.get(type(stmt))
            if handler is None:
                raise DSLRuntimeError(f"unknown statement type: {type(stmt).__name__}")
            handler(self, stmt)

    def _evaluate_as(self, expr: Expression, what: str) -> Any:
        try:
            return self.evaluate(expr)
        except DSLRuntimeError as exc:
            raise DSLRuntimeError(f"failed to evaluate {what}: {exc}") from exc

    def _connect(self, stmt: ConnectStatement) -> None:
        server = self._evaluate_as(stmt.server, "server expression")
        if not isinstance(server, str):
            raise DSLRuntimeError(f"server must be a string, got {type_name(server)}")
        args = [_stringify(self._evaluate_as(a, "argument")) for a in stmt.args]
        options = {name: self._evaluate_as(expr, f"option '{name}'") for name, expr in stmt.options.items()}

        client = self.client_factory()
        if "timeout" in options:
            client.request_timeout = to_float(options.pop("timeout"))
        for name in options:
            logger.warning("ignoring unknown connect option %r", name)
        try:
            client.connect(server, *args, scope=self._scope)
        except MCPClientError as exc:
            raise DSLRuntimeError(f"failed to connect: {exc}") from exc

        self.close()
        self.client = client

    def _call(self, stmt: CallStatement) -> None:
        client = self.client
        if client is None:
            raise DSLRuntimeError("not connected to any MCP server")

        if stmt.tool == "list_tools":
            try:
                tools = client.list_tools(scope=self._scope)
            except MCPClientError as exc:
                raise DSLRuntimeError(f"failed to list tools: {exc}") from exc
            if stmt.variable:
                self.variables[stmt.variable] = [t.get("name", "") for t in tools]
            return

        args = self._evaluate_as(stmt.arguments, "arguments") if stmt.arguments is not None else None
        logger.debug("call %s", stmt.tool)
        try:
            result = client.call_tool(stmt.tool, args, scope=self._scope)
        except MCPClientError as exc:
            raise DSLRuntimeError(f"tool call failed: {exc}") from exc

        if stmt.variable:
            self.variables[stmt.variable] = bind_result(result)

    def _assert(self, stmt: AssertStatement) -> None:
        if is_truthy(self._evaluate_as(stmt.expression, "assertion")):
            return
        message = stmt.message or f"assertion failed: {format_expression(stmt.expression)}"
        raise DSLRuntimeError(f"assertion error: {message}")

    def _wait(self, stmt: WaitStatement) -> None:
        timeout = DEFAULT_WAIT_TIMEOUT
        interval = DEFAULT_WAIT_INTERVAL_MS / 1000.0
        if stmt.timeout is not None:
            value = self._evaluate_as(stmt.timeout, "timeout")
            if not is_number(value):
                raise DSLRuntimeError(f"timeout must be a number, got {type_name(value)}")
            timeout = float(value)
        if stmt.interval is not None:
            value = self._evaluate_as(stmt.interval, "interval")
            if not is_number(value):
                raise DSLRuntimeError(f"interval must be a number, got {type_name(value)}")
            interval = max(float(value), 0.0) / 1000.0

        deadline = time.monotonic() + timeout
        while True:
            if is_truthy(self._evaluate_as(stmt.condition, "wait condition")):
                return
            if time.monotonic() > deadline:
                raise DSLRuntimeError(f"wait timeout: condition did not become true within {format_duration(timeout)}")
            if self._scope.wait(interval):
                self._scope.raise_if_cancelled()

    def _loop(self, stmt: LoopStatement) -> None:
        collection = self._evaluate_as(stmt.collection, "collection")
        for item in iterate(collection):
            self.variables[stmt.iterator] = item
            self._run_block(stmt.body)

    def _if(self, stmt: IfStatement) -> None:
        if is_truthy(self._evaluate_as(stmt.condition, "if condition")):
            self._run_block(stmt.then)
        else:
            self._run_block(stmt.otherwise)

    def _set(self, stmt: SetStatement) -> None:
        self.variables[stmt.variable] = self._evaluate_as(stmt.value, "value")

    def _print(self, stmt: PrintStatement) -> None:
        text = format_value(self._evaluate_as(stmt.expression, "print expression"))
        self._output.append(text + "\n")
        out = self._stdout or sys.stdout
        out.write(text + "\n")
        out.flush()

    def _define(self, stmt: DefineStatement) -> None:
        self.automations[stmt.name] = stmt

    def _run(self, stmt: RunStatement) -> None:
        automation = self.automations.get(stmt.name)
        if automation is None:
            raise DSLRuntimeError(f"automation '{stmt.name}' not defined")
        if len(stmt.arguments) != len(automation.parameters):
            raise DSLRuntimeError(
                f"automation '{stmt.name}' expects {len(automation.parameters)} arguments, got {len(stmt.arguments)}"
            )
        if self._depth >= MAX_RUN_DEPTH:
            raise DSLRuntimeError(f"maximum automation call depth exceeded ({MAX_RUN_DEPTH}) in '{stmt.name}'")

        # callee sees a snapshot of the caller's variables; nothing flows back
        saved = self.variables
        self.variables = dict(saved)
        self._depth += 1
        try:
            for i, (param, expr) in enumerate(zip(automation.parameters, stmt.arguments)):
                try:
                    self.variables[param] = self.evaluate(expr)
                except DSLRuntimeError as exc:
                    raise DSLRuntimeError(f"failed to evaluate argument {i}: {exc}") from exc
            self._run_block(automation.body)
        finally:
            self.variables = saved
            self._depth -= 1

    _STATEMENTS: dict[type, Callable[[Interpreter, Any], None]] = {
        ConnectStatement: _connect,
        CallStatement: _call,
        AssertStatement: _assert,
        WaitStatement: _wait,
        LoopStatement: _loop,
        IfStatement: _if,
        SetStatement: _set,
        PrintStatement: _print,
        DefineStatement: _define,
        RunStatement: _run,
    }

    # -- expressions -----------------------------------------------------

    def evaluate(self, expr: Expression) -> Any:
        if isinstance(expr, (StringLiteral, NumberLiteral, BooleanLiteral)):
            return expr.value
        if isinstance(expr, NullLiteral):
            return None
        if isinstance(expr, Variable):
            if expr.name not in self.variables:
                raise DSLRuntimeError(f"undefined variable: {expr.name}")
            return self.variables[expr.name]
        if isinstance(expr, ObjectLiteral):
            return {name: self.evaluate(value) for name, value in expr.fields.items()}
        if isinstance(expr, ArrayLiteral):
            return [self.evaluate(e) for e in expr.elements]
        if isinstance(expr, FieldAccess):
            return self._field(self.evaluate(expr.object), expr.field)
        if isinstance(expr, IndexAccess):
            obj = self.evaluate(expr.object)
            return self._index(obj, self.evaluate(expr.index))
        if isinstance(expr, BinaryOp):
            return self._binary(expr)
        if isinstance(expr, UnaryOp):
            return self._unary(expr)
        if isinstance(expr, FunctionCall):
            return self._function(expr)
        raise DSLRuntimeError(f"unknown expression type: {type(expr).__name__}")

    @staticmethod
    def _field(obj: Any, name: str) -> Any:
        if isinstance(obj, dict):
            return obj.get(name)
        raise DSLRuntimeError(f"cannot access field '{name}' on {type_name(obj)}")

    @staticmethod
    def _index(obj: Any, index: Any) -> Any:
        if isinstance(obj, dict):
            return obj.get(_stringify(index))
        if isinstance(obj, (list, str)):
            kind = "array" if isinstance(obj, list) else "string"
            try:
                idx = to_int(index)
            except DSLRuntimeError as exc:
                raise DSLRuntimeError(f"{kind} index must be integer: {exc}") from exc
            if idx < 0 or idx >= len(obj):
                raise DSLRuntimeError(f"{kind} index out of bounds: {idx}")
            return obj[idx]
        raise DSLRuntimeError(f"cannot index {type_name(obj)}")

    def _binary(self, expr: BinaryOp) -> Any:
        op = expr.operator
        left = self.evaluate(expr.left)
        if op == "&&":
            return is_truthy(left) and is_truthy(self.evaluate(expr.right))
        if op == "||":
            return is_truthy(left) or is_truthy(self.evaluate(expr.right))

        right = self.evaluate(expr.right)
        if op == "==":
            return values_equal(left, right)
        if op == "!=":
            return not values_equal(left, right)
        if op == "+":
            if isinstance(left, str) or isinstance(right, str):
                return format_value(left) + format_value(right)
            return self._arith("add", left, right, lambda a, b: a + b)
        if op == "-":
            return self._arith("subtract", left, right, lambda a, b: a - b)
        if op == "*":
            return self._arith("multiply", left, right, lambda a, b: a * b)
        if op == "/":
            return self._arith("divide", left, right, _divide)
        if op == "<":
            return self._compare(left, right, lambda a, b: a < b)
        if op == ">":
            return self._compare(left, right, lambda a, b: a > b)
        if op == "<=":
            return not self._compare(left, right, lambda a, b: a > b)
        if op == ">=":
            return not self._compare(left, right, lambda a, b: a < b)
        raise DSLRuntimeError(f"unknown binary operator: {op}")

    @staticmethod
    def _arith(verb: str, a: Any, b: Any, fn: Callable[[float, float], float]) -> float:
        try:
            x, y = to_float(a), to_float(b)
        except DSLRuntimeError:
            raise DSLRuntimeError(f"cannot {verb} {type_name(a)} and {type_name(b)}") from None
        return fn(x, y)

    @staticmethod
    def _compare(a: Any, b: Any, fn: Callable[[Any, Any], bool]) -> bool:
        if isinstance(a, str) and isinstance(b, str):
            return fn(a, b)
        try:
            x, y = to_float(a), to_float(b)
        except DSLRuntimeError:
            raise DSLRuntimeError(f"cannot compare {type_name(a)} and {type_name(b)}") from None
        return fn(x, y)

    def _unary(self, expr: UnaryOp) -> Any:
        operand = self.evaluate(expr.operand)
        if expr.operator == "!":
            return not is_truthy(operand)
        if expr.operator == "-":
            if is_number(operand):
                return -operand
            raise DSLRuntimeError(f"cannot negate {type_name(operand)}")
        raise DSLRuntimeError(f"unknown unary operator: {expr.operator}")

    def _function(self, call: FunctionCall) -> Any:
        fn = BUILTINS.get(call.name)
        if fn is None:
            raise DSLRuntimeError(f"unknown function: {call.name}")
        if len(call.arguments) != 1:
            raise DSLRuntimeError(f"{call.name}() expects 1 argument, got {len(call.arguments)}")
        return fn(self.evaluate(call.arguments[0]))


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise DSLRuntimeError("division by zero")
    return a / b


BUILTINS: dict[str, Callable[[Any], Any]] = {
    "len": length,
    "str": format_value,
    "int": to_int,
    "float": to_float,
    "json": to_json,
}
