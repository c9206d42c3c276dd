"""AST node types for the test DSL."""

from __future__ import annotations

from dataclasses import dataclass, field


class Node:
    __slots__ = ()


class Statement(Node):
    __slots__ = ()


class Expression(Node):
    __slots__ = ()


@dataclass(slots=True)
class Script(Node):
    statements: list[Statement] = field(default_factory=list)


# statements


@dataclass(slots=True)
class ConnectStatement(Statement):
    server: Expression
    args: list[Expression] = field(default_factory=list)
    options: dict[str, Expression] = field(default_factory=dict)


@dataclass(slots=True)
class CallStatement(Statement):
    tool: str
    arguments: Expression | None = None
    variable: str = ""


@dataclass(slots=True)
class AssertStatement(Statement):
    expression: Expression
    message: str = ""


@dataclass(slots=True)
class WaitStatement(Statement):
    condition: Expression
    timeout: Expression | None = None
    interval: Expression | None = None


@dataclass(slots=True)
class LoopStatement(Statement):
    iterator: str
    collection: Expression
    body: list[Statement] = field(default_factory=list)


@dataclass(slots=True)
class IfStatement(Statement):
    condition: Expression
    then: list[Statement] = field(default_factory=list)
    otherwise: list[Statement] = field(default_factory=list)


@dataclass(slots=True)
class SetStatement(Statement):
    variable: str
    value: Expression


@dataclass(slots=True)
class PrintStatement(Statement):
    expression: Expression


@dataclass(slots=True)
class DefineStatement(Statement):
    name: str
    parameters: list[str] = field(default_factory=list)
    body: list[Statement] = field(default_factory=list)


@dataclass(slots=True)
class RunStatement(Statement):
    name: str
    arguments: list[Expression] = field(default_factory=list)


# expressions


@dataclass(slots=True)
class StringLiteral(Expression):
    value: str


@dataclass(slots=True)
class NumberLiteral(Expression):
    value: float


@dataclass(slots=True)
class BooleanLiteral(Expression):
    value: bool


@dataclass(slots=True)
class NullLiteral(Expression):
    pass


@dataclass(slots=True)
class Variable(Expression):
    name: str


@dataclass(slots=True)
class ObjectLiteral(Expression):
    fields: dict[str, Expression] = field(default_factory=dict)


@dataclass(slots=True)
class ArrayLiteral(Expression):
    elements: list[Expression] = field(default_factory=list)


@dataclass(slots=True)
class FieldAccess(Expression):
    object: Expression
    field: str


@dataclass(slots=True)
class IndexAccess(Expression):
    object: Expression
    index: Expression


@dataclass(slots=True)
class BinaryOp(Expression):
    left: Expression
    operator: str
    right: Expression


@dataclass(slots=True)
class UnaryOp(Expression):
    operator: str
    operand: Expression


@dataclass(slots=True)
class FunctionCall(Expression):
    name: str
    arguments: list[Expression] = field(default_factory=list)
