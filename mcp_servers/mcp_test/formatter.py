"""Pretty-printer turning a ``Script`` AST back into DSL source.

Every binary operation is parenthesized, so formatting parsed output again
yields the same text.
"""

from __future__ import annotations

import re
from decimal import Decimal

from .lexer import KEYWORDS
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

INDENT = "  "

_IDENT_RE = re.compile(r"^[^\W\d]\w*$")
_QUOTE_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def quote(value: str) -> str:
    return '"' + "".join(_QUOTE_ESCAPES.get(ch, ch) for ch in value) + '"'


def format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        # the lexer has no exponent syntax; spell out the shortest repr in full
        text = format(Decimal(text), "f")
    return text


def _name(value: str) -> str:
    """Bare identifier when it lexes back as one, quoted string otherwise."""
    if _IDENT_RE.match(value) and value.lower() not in KEYWORDS:
        return value
    return quote(value)


def _postfix_object(expr: Expression) -> str:
    # unary binds looser than ".", "[" so "-a.x" would mean -(a.x)
    if isinstance(expr, UnaryOp):
        return f"({format_expression(expr)})"
    return format_expression(expr)


def _connect_operands(stmt: ConnectStatement) -> list[str]:
    """Server and arguments, each kept a separate expression when reparsed.

    An argument that would glue onto its predecessor (a leading "-" or "[")
    or open the options block (a leading "{") is parenthesized, and a bare
    name (or a unary applied to one) in front of a "(" is wrapped so it is
    not read as a call.
    """
    parts = [format_expression(stmt.server)]
    exprs = [stmt.server]
    for arg in stmt.args:
        text = format_expression(arg)
        if text[:1] in "-[{":
            text = f"({text})"
        if text.startswith("(") and isinstance(exprs[-1], (Variable, UnaryOp)) and not parts[-1].endswith(")"):
            parts[-1] = f"({parts[-1]})"
        parts.append(text)
        exprs.append(arg)
    return parts


def format_expression(expr: Expression) -> str:
    if isinstance(expr, StringLiteral):
        return quote(expr.value)
    if isinstance(expr, NumberLiteral):
        return format_number(expr.value)
    if isinstance(expr, BooleanLiteral):
        return "true" if expr.value else "false"
    if isinstance(expr, NullLiteral):
        return "null"
    if isinstance(expr, Variable):
        return expr.name
    if isinstance(expr, ObjectLiteral):
        fields = ", ".join(f"{_name(k)}: {format_expression(v)}" for k, v in expr.fields.items())
        return "{" + fields + "}"
    if isinstance(expr, ArrayLiteral):
        return "[" + ", ".join(format_expression(e) for e in expr.elements) + "]"
    if isinstance(expr, FieldAccess):
        return f"{_postfix_object(expr.object)}.{expr.field}"
    if isinstance(expr, IndexAccess):
        return f"{_postfix_object(expr.object)}[{format_expression(expr.index)}]"
    if isinstance(expr, BinaryOp):
        return f"({format_expression(expr.left)} {expr.operator} {format_expression(expr.right)})"
    if isinstance(expr, UnaryOp):
        return f"{expr.operator}{format_expression(expr.operand)}"
    if isinstance(expr, FunctionCall):
        return f"{expr.name}(" + ", ".join(format_expression(a) for a in expr.arguments) + ")"
    raise TypeError(f"unknown expression type: {type(expr).__name__}")


class _Formatter:
    def __init__(self) -> None:
        self.out: list[str] = []
        self.depth = 0

    def _indent(self) -> str:
        return INDENT * self.depth

    def _block(self, body: list[Statement]) -> None:
        """Writes ``{``, the indented body and the closing ``}`` (no newline)."""
        self.out.append("{\n")
        self.depth += 1
        for stmt in body:
            self.statement(stmt)
        self.depth -= 1
        self.out.append(self._indent() + "}")

    def statement(self, stmt: Statement, *, indent: bool = True) -> None:
        if indent:
            self.out.append(self._indent())
        w = self.out.append

        if isinstance(stmt, ConnectStatement):
            w("connect " + " ".join(_connect_operands(stmt)))
            if stmt.options:
                w(" {\n")
                self.depth += 1
                for name, value in stmt.options.items():
                    w(f"{self._indent()}{name}: {format_expression(value)}\n")
                self.depth -= 1
                w(self._indent() + "}")
            w("\n")
        elif isinstance(stmt, CallStatement):
            w("call " + _name(stmt.tool))
            if stmt.arguments is not None:
                w(" " + format_expression(stmt.arguments))
            if stmt.variable:
                w(" -> " + stmt.variable)
            w("\n")
        elif isinstance(stmt, AssertStatement):
            w("assert " + format_expression(stmt.expression))
            if stmt.message:
                w(", " + quote(stmt.message))
            w("\n")
        elif isinstance(stmt, WaitStatement):
            w("wait " + format_expression(stmt.condition))
            if stmt.timeout is not None:
                w(", " + format_expression(stmt.timeout))
                if stmt.interval is not None:
                    w(", " + format_expression(stmt.interval))
            w("\n")
        elif isinstance(stmt, LoopStatement):
            w(f"loop {stmt.iterator} in {format_expression(stmt.collection)} ")
            self._block(stmt.body)
            w("\n")
        elif isinstance(stmt, IfStatement):
            w(f"if {format_expression(stmt.condition)} ")
            self._block(stmt.then)
            if stmt.otherwise:
                w(" else ")
                if len(stmt.otherwise) == 1 and isinstance(stmt.otherwise[0], IfStatement):
                    self.statement(stmt.otherwise[0], indent=False)
                    return
                self._block(stmt.otherwise)
            w("\n")
        elif isinstance(stmt, SetStatement):
            w(f"set {stmt.variable} = {format_expression(stmt.value)}\n")
        elif isinstance(stmt, PrintStatement):
            w(f"print {format_expression(stmt.expression)}\n")
        elif isinstance(stmt, DefineStatement):
            w("define " + stmt.name)
            if stmt.parameters:
                w("(" + ", ".join(stmt.parameters) + ")")
            w(" ")
            self._block(stmt.body)
            w("\n")
        elif isinstance(stmt, RunStatement):
            w("run " + stmt.name)
            if stmt.arguments:
                w("(" + ", ".join(format_expression(a) for a in stmt.arguments) + ")")
            w("\n")
        else:
            raise TypeError(f"unknown statement type: {type(stmt).__name__}")


def format_ast(script: Script) -> str:
    """Top-level statements are separated by one blank line."""
    parts = []
    for stmt in script.statements:
        f = _Formatter()
        f.statement(stmt)
        parts.append("".join(f.out))
    return "\n".join(parts)
