from __future__ import annotations

import io
import time
from typing import Any

import pytest

from mcp_servers.browser_bridge.cancel import CancelScope
from mcp_servers.browser_bridge.errors import RequestCancelled
from mcp_servers.mcp_test.dsl import Interpreter, parse_string
from mcp_servers.mcp_test.errors import DSLRuntimeError, DSLSyntaxError, MCPClientError
from mcp_servers.mcp_test.mcp_client import CallToolResult


class _FakeClient:
    """Stands in for MCPClient; records calls and returns canned results."""

    instances: list[_FakeClient] = []

    def __init__(self) -> None:
        self.request_timeout = 60.0
        self.connected_with: tuple[str, ...] = ()
        self.calls: list[tuple[str, Any]] = []
        self.closed = False
        self.results: dict[str, CallToolResult] = {
            "echo": CallToolResult(content=[{"type": "text", "text": '{"ok": true, "n": 2}'}]),
            "plain": CallToolResult(content=[{"type": "text", "text": "hello"}]),
            "pair": CallToolResult(
                content=[{"type": "text", "text": "a"}, {"type": "image", "data": "QQ==", "mimeType": "image/png"}]
            ),
            "broken": CallToolResult(content=[{"type": "text", "text": "nope"}], is_error=True),
        }
        _FakeClient.instances.append(self)

    def connect(self, command: str, *args: str, scope: CancelScope | None = None) -> None:
        if command == "missing-binary":
            raise MCPClientError("failed to start MCP server 'missing-binary': not found")
        self.connected_with = (command, *args)

    def list_tools(self, *, scope: CancelScope | None = None) -> list[dict[str, Any]]:
        return [{"name": "echo"}, {"name": "plain"}]

    def call_tool(self, name: str, arguments: Any = None, *, scope: CancelScope | None = None) -> CallToolResult:
        self.calls.append((name, arguments))
        if name not in self.results:
            raise MCPClientError("Unknown tool (code -32602)")
        return self.results[name]

    def close(self) -> None:
        self.closed = True


def _interp() -> tuple[Interpreter, io.StringIO]:
    out = io.StringIO()
    return Interpreter(client_factory=_FakeClient, stdout=out), out


def _run(source: str) -> tuple[Interpreter, io.StringIO]:
    interp, out = _interp()
    interp.execute_string(source)
    return interp, out


def test_set_and_print_arithmetic() -> None:
    interp, out = _run("set x = 1 + 2\nprint x")
    assert out.getvalue() == "3\n"
    assert interp.output == "3\n"
    assert interp.variables["x"] == 3.0


def test_loop_sum() -> None:
    interp, _ = _run("set s = 0\nloop n in [1,2,3] { set s = s + n }\nassert s == 6")
    assert interp.variables["s"] == 6


def test_print_formats_values() -> None:
    _, out = _run('print "hi"\nprint null\nprint 2.5\nprint [1, "a"]\nprint {b: 1, a: true}')
    assert out.getvalue() == 'hi\nnull\n2.5\n[\n  1,\n  "a"\n]\n{\n  "a": true,\n  "b": 1\n}\n'


def test_string_concatenation_and_comparison() -> None:
    interp, _ = _run('set a = "n=" + 3\nset b = "abc" < "abd"\nset c = 2 >= 2\nset d = 1 <= 0')
    assert interp.variables["a"] == "n=3"
    assert interp.variables["b"] is True
    assert interp.variables["c"] is True
    assert interp.variables["d"] is False


def test_logical_operators_short_circuit() -> None:
    interp, _ = _run("set a = false || 0\nset b = true || missing\nset c = false && missing\nset d = 0 || \"x\"")
    assert interp.variables["a"] is False
    assert interp.variables["b"] is True
    assert interp.variables["c"] is False
    assert interp.variables["d"] is True


def test_equality_rules() -> None:
    interp, _ = _run(
        'set a = 1 == 1.0\nset b = true == 1\nset c = [1, {k: "v"}] == [1, {k: "v"}]\nset d = null == null\nset e = "1" != 1'
    )
    assert [interp.variables[k] for k in "abcde"] == [True, False, True, True, True]


def test_field_and_index_access() -> None:
    interp, _ = _run('set o = {name: "x", list: [10, 20]}\nset a = o.name\nset b = o.list[1]\nset c = o.missing\nset d = "hey"[1]\nset e = o["name"]')
    v = interp.variables
    assert (v["a"], v["b"], v["c"], v["d"], v["e"]) == ("x", 20, None, "e", "x")


def test_loop_over_object_and_string() -> None:
    _, out = _run('loop kv in {a: 1} { print kv.key + "=" + kv.value }\nloop ch in "ab" { print ch }')
    assert out.getvalue() == "a=1\na\nb\n"


def test_if_else_if_chain() -> None:
    source = 'loop n in [1, 2, 3] {\n  if n == 1 { print "one" } else if n == 2 { print "two" } else { print "many" }\n}'
    _, out = _run(source)
    assert out.getvalue() == "one\ntwo\nmany\n"


def test_builtins() -> None:
    interp, _ = _run('set a = len("abc")\nset b = int("42px")\nset c = float("2.5")\nset d = str(3)\nset e = json({b: [1, 2]})')
    v = interp.variables
    assert (v["a"], v["b"], v["c"], v["d"], v["e"]) == (3, 42, 2.5, "3", '{"b":[1,2]}')


def test_define_and_run_use_a_snapshot() -> None:
    source = """
set greeting = "Hello"
define greet(name) {
  set message = greeting + ", " + name
  print message
  set greeting = "changed"
}
run greet("Ann")
"""
    interp, out = _run(source)
    assert out.getvalue() == "Hello, Ann\n"
    assert interp.variables["greeting"] == "Hello"
    assert "message" not in interp.variables
    assert "name" not in interp.variables


@pytest.mark.parametrize(
    ("source", "message"),
    [
        ("print missing", "undefined variable: missing"),
        ('set x = "a" - 1', "cannot subtract string and number"),
        ("set x = 1 / 0", "division by zero"),
        ("set x = [1] < 2", "cannot compare array and number"),
        ('set x = -"a"', "cannot negate string"),
        ("set x = [1][5]", "array index out of bounds: 5"),
        ("set x = (1).f", "cannot access field 'f' on number"),
        ("set x = nope(1)", "unknown function: nope"),
        ("set x = len(1, 2)", "len() expects 1 argument, got 2"),
        ("set x = len(5)", "cannot get length of number"),
        ("run ghost", "automation 'ghost' not defined"),
        ("define f(a) { print a }\nrun f", "automation 'f' expects 1 arguments, got 0"),
        ('call "echo" {}', "not connected to any MCP server"),
        ("loop x in 5 { print x }", "not iterable"),
    ],
)
def test_runtime_errors(source: str, message: str) -> None:
    interp, _ = _interp()
    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string(source)
    assert str(exc_info.value).startswith("runtime error: ")
    assert message in str(exc_info.value)


def test_assert_messages() -> None:
    interp, _ = _interp()
    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string('assert 1 == 2, "numbers differ"')
    assert str(exc_info.value) == "runtime error: assertion error: numbers differ"

    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string("set x = 1\nassert x > 5")
    assert str(exc_info.value) == "runtime error: assertion error: assertion failed: (x > 5)"


def test_parse_errors_are_wrapped() -> None:
    interp, _ = _interp()
    with pytest.raises(DSLSyntaxError) as exc_info:
        interp.execute_string("print (")
    assert str(exc_info.value).startswith("parse error: ")


def test_wait_returns_when_condition_holds() -> None:
    started = time.monotonic()
    _run("set ready = true\nwait ready, 5")
    assert time.monotonic() - started < 1.0


def test_wait_times_out() -> None:
    interp, _ = _interp()
    started = time.monotonic()
    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string("wait false, 0.2, 20")
    assert time.monotonic() - started < 2.0
    assert "wait timeout: condition did not become true within 200ms" in str(exc_info.value)


def test_wait_rejects_non_numeric_timeout() -> None:
    interp, _ = _interp()
    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string('wait true, "soon"')
    assert "timeout must be a number, got string" in str(exc_info.value)


def test_cancelled_scope_stops_execution() -> None:
    interp, out = _interp()
    scope = CancelScope()
    scope.cancel(RequestCancelled("execution timeout"))
    with pytest.raises(RequestCancelled):
        interp.runtime.execute(parse_string("print 1"), scope)
    assert out.getvalue() == ""


def test_connect_call_and_bind_results() -> None:
    source = """
connect "python3" "server.py" 7 {
  timeout: 5
}
call list_tools -> tools
call echo {msg: "hi"} -> r
call "plain" -> p
call pair -> both
call broken -> bad
"""
    interp, _ = _run(source)
    client = interp.client
    assert isinstance(client, _FakeClient)
    assert client.connected_with == ("python3", "server.py", "7")
    assert client.request_timeout == 5.0
    assert client.calls[0] == ("echo", {"msg": "hi"})
    assert client.calls[1] == ("plain", None)

    v = interp.variables
    assert v["tools"] == ["echo", "plain"]
    assert v["r"] == {"ok": True, "n": 2}
    assert v["p"] == "hello"
    assert v["both"] == ["a", {"type": "image", "data": "QQ==", "mimeType": "image/png"}]
    assert v["bad"] == "nope"


def test_reconnect_closes_previous_client() -> None:
    interp, _ = _run('connect "one"\nconnect "two"')
    first, second = _FakeClient.instances[-2:]
    assert first.closed
    assert interp.client is second
    interp.close()
    assert second.closed
    assert interp.client is None


def test_client_failures_become_runtime_errors() -> None:
    interp, _ = _interp()
    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string('connect "missing-binary"')
    assert "failed to connect: failed to start MCP server" in str(exc_info.value)

    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string('connect "ok"\ncall unknown_tool')
    assert "tool call failed: Unknown tool (code -32602)" in str(exc_info.value)


def test_connect_requires_string_server() -> None:
    interp, _ = _interp()
    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string("connect 5")
    assert "server must be a string, got number" in str(exc_info.value)


def test_state_persists_between_runs() -> None:
    interp, out = _interp()
    interp.execute_string("define hi { print \"hi\" }\nset n = 1")
    interp.execute_string("run hi\nprint n + 1")
    assert out.getvalue() == "hi\n2\n"


@pytest.mark.parametrize(
    ("source", "name"),
    [
        ("define f { run f }\nrun f", "f"),
        ("define a { run b }\ndefine b { if true { run a } }\nrun a", "a"),
    ],
)
def test_unbounded_automation_recursion_is_a_runtime_error(source: str, name: str) -> None:
    interp, _ = _interp()
    with pytest.raises(DSLRuntimeError) as exc_info:
        interp.execute_string("set keep = 1\n" + source)
    assert f"maximum automation call depth exceeded (64) in '{name}'" in str(exc_info.value)
    assert str(exc_info.value).startswith("runtime error: ")

    # the failed run leaves the interpreter usable
    interp.execute_string("define once { print keep }\nrun once")
    assert interp.variables == {"keep": 1}


def test_bounded_recursion_runs() -> None:
    _, out = _run("define down(n) {\n  print n\n  if n > 1 { run down(n - 1) }\n}\nrun down(3)")
    assert out.getvalue() == "3\n2\n1\n"


def test_deeply_nested_expression_is_a_parse_error() -> None:
    interp, _ = _interp()
    with pytest.raises(DSLSyntaxError) as exc_info:
        interp.execute_string("set x = " + "(" * 5000 + "1" + ")" * 5000)
    assert str(exc_info.value) == "parse error: expression nested too deeply"
