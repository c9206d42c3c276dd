from __future__ import annotations

import pytest

from mcp_servers.mcp_test.errors import DSLSyntaxError
from mcp_servers.mcp_test.lexer import TokenType, tokenize
from mcp_servers.mcp_test.nodes import (
    AssertStatement,
    BinaryOp,
    CallStatement,
    ConnectStatement,
    DefineStatement,
    FieldAccess,
    FunctionCall,
    IfStatement,
    IndexAccess,
    LoopStatement,
    NullLiteral,
    NumberLiteral,
    ObjectLiteral,
    RunStatement,
    SetStatement,
    StringLiteral,
    UnaryOp,
    Variable,
    WaitStatement,
)
from mcp_servers.mcp_test.parser import parse


def _types(source: str) -> list[TokenType]:
    return [tok.type for tok in tokenize(source)]


def test_tokens_and_positions() -> None:
    toks = tokenize('set x = "a\\nb" # comment\n  y >= 2.5 && !z')
    assert [t.type for t in toks] == [
        TokenType.SET,
        TokenType.IDENTIFIER,
        TokenType.ASSIGN,
        TokenType.STRING,
        TokenType.NEWLINE,
        TokenType.IDENTIFIER,
        TokenType.GREATER_EQUAL,
        TokenType.NUMBER,
        TokenType.AND,
        TokenType.NOT,
        TokenType.IDENTIFIER,
        TokenType.EOF,
    ]
    assert toks[3].value == "a\nb"
    y = toks[5]
    assert (y.line, y.column) == (2, 3)
    assert toks[7].value == "2.5"


def test_keywords_are_case_insensitive() -> None:
    assert _types("CONNECT Call tRuE NULL") == [
        TokenType.CONNECT,
        TokenType.CALL,
        TokenType.TRUE,
        TokenType.NULL,
        TokenType.EOF,
    ]


def test_single_quoted_strings_and_arrow() -> None:
    toks = tokenize("call 'my tool' -> out")
    assert toks[1].type is TokenType.STRING
    assert toks[1].value == "my tool"
    assert toks[2].type is TokenType.ARROW


def test_lexer_errors() -> None:
    with pytest.raises(DSLSyntaxError) as exc_info:
        tokenize("set x = a & b")
    assert str(exc_info.value) == "unexpected character '&' at line 1, column 11"

    with pytest.raises(DSLSyntaxError) as exc_info:
        tokenize('print "open')
    assert str(exc_info.value) == "unterminated string at line 1, column 7"
    assert exc_info.value.line == 1


def test_precedence() -> None:
    (stmt,) = parse("set v = 1 + 2 * 3 == 7 || !ok && -n < 0").statements
    assert isinstance(stmt, SetStatement)
    root = stmt.value
    assert isinstance(root, BinaryOp) and root.operator == "||"
    assert isinstance(root.left, BinaryOp) and root.left.operator == "=="
    sum_ = root.left.left
    assert isinstance(sum_, BinaryOp) and sum_.operator == "+"
    assert isinstance(sum_.right, BinaryOp) and sum_.right.operator == "*"
    right = root.right
    assert isinstance(right, BinaryOp) and right.operator == "&&"
    assert isinstance(right.left, UnaryOp) and right.left.operator == "!"
    assert isinstance(right.right, BinaryOp) and right.right.operator == "<"
    assert isinstance(right.right.left, UnaryOp)


def test_postfix_and_function_calls() -> None:
    (stmt,) = parse("print len(items[0].name)").statements
    call = stmt.expression
    assert isinstance(call, FunctionCall)
    assert call.name == "len"
    field = call.arguments[0]
    assert isinstance(field, FieldAccess) and field.field == "name"
    assert isinstance(field.object, IndexAccess)
    assert isinstance(field.object.object, Variable)

    # a parenthesized expression is never callable
    with pytest.raises(DSLSyntaxError):
        parse("print (f)(1)")


def test_connect_with_args_and_options() -> None:
    script = parse('connect "python3" "-m" "server" {\n  timeout: 5,\n  name: "x"\n}\nprint 1')
    stmt = script.statements[0]
    assert isinstance(stmt, ConnectStatement)
    assert isinstance(stmt.server, StringLiteral) and stmt.server.value == "python3"
    assert [a.value for a in stmt.args] == ["-m", "server"]
    assert list(stmt.options) == ["timeout", "name"]
    assert len(script.statements) == 2


def test_call_forms() -> None:
    a, b, c = parse('call list_tools -> tools\ncall "browser_navigate" {url: "https://x"}\ncall t [1, 2] -> r').statements
    assert isinstance(a, CallStatement) and a.tool == "list_tools" and a.arguments is None and a.variable == "tools"
    assert b.tool == "browser_navigate" and isinstance(b.arguments, ObjectLiteral) and b.variable == ""
    assert c.variable == "r"

    with pytest.raises(DSLSyntaxError) as exc_info:
        parse("call 5")
    assert str(exc_info.value) == "expected tool name after 'call' at line 1"


def test_assert_and_wait() -> None:
    a, w = parse('assert x != null, "x must be set"\nwait ready, 2, 50').statements
    assert isinstance(a, AssertStatement) and a.message == "x must be set"
    assert isinstance(a.expression.right, NullLiteral)
    assert isinstance(w, WaitStatement)
    assert isinstance(w.timeout, NumberLiteral) and w.timeout.value == 2.0
    assert isinstance(w.interval, NumberLiteral) and w.interval.value == 50.0


def test_blocks_and_else_if() -> None:
    source = """
loop n in [1, 2,
           3] {
  if n == 1 {
    print "one"
  } else if n == 2 {
    print "two"
  } else {
    print "many"
  }
}
"""
    (loop,) = parse(source).statements
    assert isinstance(loop, LoopStatement) and loop.iterator == "n"
    (branch,) = loop.body
    assert isinstance(branch, IfStatement)
    (nested,) = branch.otherwise
    assert isinstance(nested, IfStatement)
    assert len(nested.otherwise) == 1


def test_define_and_run() -> None:
    d, r, bare = parse('define greet(name, greeting) {\n  print greeting + name\n}\nrun greet("Bob", "Hi ")\nrun other').statements
    assert isinstance(d, DefineStatement) and d.parameters == ["name", "greeting"]
    assert isinstance(r, RunStatement) and len(r.arguments) == 2
    assert bare.name == "other" and bare.arguments == []


def test_assignment_shorthand() -> None:
    (stmt,) = parse("total = 4").statements
    assert isinstance(stmt, SetStatement) and stmt.variable == "total"


def test_syntax_errors_carry_line() -> None:
    with pytest.raises(DSLSyntaxError) as exc_info:
        parse("print 1\nbogus")
    assert str(exc_info.value) == "unexpected identifier 'bogus' at line 2"

    with pytest.raises(DSLSyntaxError) as exc_info:
        parse("if x {\n  print 1\n")
    assert str(exc_info.value).startswith("expected '}'")

    with pytest.raises(DSLSyntaxError) as exc_info:
        parse("} ")
    assert str(exc_info.value) == "unexpected token '}' at line 1"


def test_empty_script() -> None:
    assert parse("\n# only a comment\n\n").statements == []
