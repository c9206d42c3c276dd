"""Recursive-descent parser producing a ``Script`` AST.

Precedence, loosest first: ``||``, ``&&``, ``== !=``, ``< > <= >=``,
``+ -``, ``* /``, unary ``! -``, postfix (``.field``, ``[index]``, call),
primary. Statements are introduced by their leading keyword; ``name = expr``
is accepted as shorthand for ``set``.
"""

from __future__ import annotations

from .errors import DSLSyntaxError
from .lexer import Token, TokenType, tokenize
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

T = TokenType


class Parser:
    def __init__(self, tokens: list[Token]) -> None:
        if not tokens or tokens[-1].type is not T.EOF:
            raise ValueError("token stream must end with EOF")
        self.tokens = tokens
        self.current = 0

    def parse(self) -> Script:
        script = Script()
        while not self._at_end():
            if self._match(T.NEWLINE):
                continue
            stmt = self._statement()
            if stmt is not None:
                script.statements.append(stmt)
        return script

    # -- helpers ---------------------------------------------------------

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _at_end(self) -> bool:
        return self._peek().type is T.EOF

    def _check(self, ttype: TokenType) -> bool:
        return not self._at_end() and self._peek().type is ttype

    def _check_ahead(self, ttype: TokenType) -> bool:
        idx = self.current + 1
        return idx < len(self.tokens) and self.tokens[idx].type is ttype

    def _advance(self) -> Token:
        if not self._at_end():
            self.current += 1
        return self._previous()

    def _match(self, *types: TokenType) -> bool:
        for ttype in types:
            if self._check(ttype):
                self._advance()
                return True
        return False

    def _skip_newlines(self) -> None:
        while self._match(T.NEWLINE):
            pass

    def _at_line_end(self) -> bool:
        return self._check(T.NEWLINE) or self._at_end()

    def _error(self, message: str) -> DSLSyntaxError:
        tok = self._peek()
        return DSLSyntaxError(f"{message} at line {tok.line}", line=tok.line, column=tok.column)

    def _expect(self, ttype: TokenType, what: str) -> Token:
        if not self._check(ttype):
            raise self._error(f"expected {what}")
        return self._advance()

    # -- statements ------------------------------------------------------

    def _statement(self) -> Statement | None:
        self._skip_newlines()
        tok = self._peek()
        handler = self._STATEMENTS.get(tok.type)
        if handler is not None:
            self._advance()
            return handler(self)
        if tok.type is T.IDENTIFIER:
            if self._check_ahead(T.ASSIGN):
                return self._set()
            raise DSLSyntaxError(f"unexpected identifier '{tok.value}' at line {tok.line}", line=tok.line, column=tok.column)
        if self._at_end():
            return None
        raise DSLSyntaxError(f"unexpected token '{tok.value}' at line {tok.line}", line=tok.line, column=tok.column)

    def _connect(self) -> ConnectStatement:
        stmt = ConnectStatement(server=self._expression())

        while not self._at_line_end() and not self._check(T.LEFT_BRACE):
            mark = self.current
            try:
                stmt.args.append(self._expression())
            except DSLSyntaxError:
                self.current = mark
                break

        if self._match(T.LEFT_BRACE):
            while not self._check(T.RIGHT_BRACE) and not self._at_end():
                self._skip_newlines()
                if self._check(T.RIGHT_BRACE):
                    break
                name = self._expect(T.IDENTIFIER, "option name").value
                self._expect(T.COLON, "':' after option name")
                stmt.options[name] = self._expression()
                self._match(T.COMMA)
                self._skip_newlines()
            self._expect(T.RIGHT_BRACE, "'}'")

        self._skip_newlines()
        return stmt

    def _call(self) -> CallStatement:
        if not (self._check(T.IDENTIFIER) or self._check(T.STRING)):
            raise self._error("expected tool name after 'call'")
        stmt = CallStatement(tool=self._advance().value)

        if not self._at_line_end() and not self._check(T.ARROW):
            stmt.arguments = self._expression()

        if self._match(T.ARROW):
            stmt.variable = self._expect(T.IDENTIFIER, "variable name after '->'").value

        self._skip_newlines()
        return stmt

    def _assert(self) -> AssertStatement:
        stmt = AssertStatement(expression=self._expression())
        if self._match(T.COMMA):
            stmt.message = self._expect(T.STRING, "string message after ','").value
        self._skip_newlines()
        return stmt

    def _wait(self) -> WaitStatement:
        stmt = WaitStatement(condition=self._expression())
        if self._match(T.COMMA):
            stmt.timeout = self._expression()
            if self._match(T.COMMA):
                stmt.interval = self._expression()
        self._skip_newlines()
        return stmt

    def _loop(self) -> LoopStatement:
        iterator = self._expect(T.IDENTIFIER, "iterator variable after 'loop'").value
        self._expect(T.IN, "'in' after iterator variable")
        collection = self._expression()
        return LoopStatement(iterator=iterator, collection=collection, body=self._block())

    def _if(self) -> IfStatement:
        stmt = IfStatement(condition=self._expression(), then=self._block())
        if self._match(T.ELSE):
            if self._match(T.IF):
                stmt.otherwise = [self._if()]
            else:
                stmt.otherwise = self._block()
        return stmt

    def _set(self) -> SetStatement:
        self._match(T.SET)
        name = self._expect(T.IDENTIFIER, "variable name").value
        self._expect(T.ASSIGN, "'=' after variable name")
        stmt = SetStatement(variable=name, value=self._expression())
        self._skip_newlines()
        return stmt

    def _print(self) -> PrintStatement:
        stmt = PrintStatement(expression=self._expression())
        self._skip_newlines()
        return stmt

    def _define(self) -> DefineStatement:
        stmt = DefineStatement(name=self._expect(T.IDENTIFIER, "automation name after 'define'").value)
        if self._match(T.LEFT_PAREN):
            while not self._check(T.RIGHT_PAREN) and not self._at_end():
                stmt.parameters.append(self._expect(T.IDENTIFIER, "parameter name").value)
                if not self._check(T.RIGHT_PAREN) and not self._match(T.COMMA):
                    raise self._error("expected ',' or ')'")
            self._expect(T.RIGHT_PAREN, "')'")
        stmt.body = self._block()
        return stmt

    def _run(self) -> RunStatement:
        stmt = RunStatement(name=self._expect(T.IDENTIFIER, "automation name after 'run'").value)
        if self._match(T.LEFT_PAREN):
            stmt.arguments = self._argument_list()
        self._skip_newlines()
        return stmt

    def _block(self) -> list[Statement]:
        self._skip_newlines()
        self._expect(T.LEFT_BRACE, "'{'")
        self._skip_newlines()
        body: list[Statement] = []
        while not self._check(T.RIGHT_BRACE) and not self._at_end():
            if self._match(T.NEWLINE):
                continue
            stmt = self._statement()
            if stmt is not None:
                body.append(stmt)
        self._expect(T.RIGHT_BRACE, "'}'")
        self._skip_newlines()
        return body

    _STATEMENTS = {
        T.CONNECT: _connect,
        T.CALL: _call,
        T.ASSERT: _assert,
        T.WAIT: _wait,
        T.LOOP: _loop,
        T.IF: _if,
        T.SET: _set,
        T.PRINT: _print,
        T.DEFINE: _define,
        T.RUN: _run,
    }

    # -- expressions -----------------------------------------------------

    def _expression(self) -> Expression:
        return self._binary(0)

    _LEVELS: tuple[tuple[TokenType, ...], ...] = (
        (T.OR,),
        (T.AND,),
        (T.EQUALS, T.NOT_EQUALS),
        (T.LESS, T.GREATER, T.LESS_EQUAL, T.GREATER_EQUAL),
        (T.PLUS, T.MINUS),
        (T.MULTIPLY, T.DIVIDE),
    )

    def _binary(self, level: int) -> Expression:
        if level == len(self._LEVELS):
            return self._unary()
        left = self._binary(level + 1)
        while self._match(*self._LEVELS[level]):
            op = self._previous().value
            left = BinaryOp(left=left, operator=op, right=self._binary(level + 1))
        return left

    def _unary(self) -> Expression:
        if self._match(T.NOT, T.MINUS):
            op = self._previous().value
            return UnaryOp(operator=op, operand=self._unary())
        return self._postfix()

    def _postfix(self) -> Expression:
        expr = self._primary()
        while True:
            if self._match(T.DOT):
                expr = FieldAccess(object=expr, field=self._expect(T.IDENTIFIER, "field name after '.'").value)
            elif self._match(T.LEFT_BRACKET):
                index = self._expression()
                self._expect(T.RIGHT_BRACKET, "']'")
                expr = IndexAccess(object=expr, index=index)
            elif (
                self._check(T.LEFT_PAREN)
                and self._previous().type is T.IDENTIFIER
                and isinstance(expr, Variable)
            ):
                self._advance()
                expr = FunctionCall(name=expr.name, arguments=self._argument_list())
            else:
                return expr

    def _argument_list(self) -> list[Expression]:
        """Comma-separated expressions after an opening '(' up to and including ')'."""
        args: list[Expression] = []
        self._skip_newlines()
        while not self._check(T.RIGHT_PAREN) and not self._at_end():
            args.append(self._expression())
            self._skip_newlines()
            if not self._check(T.RIGHT_PAREN) and not self._match(T.COMMA):
                raise self._error("expected ',' or ')'")
            self._skip_newlines()
        self._expect(T.RIGHT_PAREN, "')'")
        return args

    def _primary(self) -> Expression:
        tok = self._peek()
        if self._match(T.STRING):
            return StringLiteral(tok.value)
        if self._match(T.NUMBER):
            try:
                return NumberLiteral(float(tok.value))
            except ValueError:
                raise DSLSyntaxError(f"invalid number '{tok.value}' at line {tok.line}", line=tok.line, column=tok.column) from None
        if self._match(T.TRUE, T.FALSE):
            return BooleanLiteral(tok.type is T.TRUE)
        if self._match(T.NULL):
            return NullLiteral()
        if self._match(T.LEFT_BRACE):
            return self._object()
        if self._match(T.LEFT_BRACKET):
            return self._array()
        if self._match(T.LEFT_PAREN):
            self._skip_newlines()
            expr = self._expression()
            self._skip_newlines()
            self._expect(T.RIGHT_PAREN, "')'")
            return expr
        if self._match(T.IDENTIFIER):
            return Variable(tok.value)
        raise self._error("expected expression")

    def _object(self) -> ObjectLiteral:
        obj = ObjectLiteral()
        while not self._check(T.RIGHT_BRACE) and not self._at_end():
            self._skip_newlines()
            if self._check(T.RIGHT_BRACE):
                break
            if not (self._check(T.STRING) or self._check(T.IDENTIFIER)):
                raise self._error("expected field name")
            name = self._advance().value
            self._expect(T.COLON, "':' after field name")
            obj.fields[name] = self._expression()
            self._match(T.COMMA)
            self._skip_newlines()
        self._expect(T.RIGHT_BRACE, "'}'")
        return obj

    def _array(self) -> ArrayLiteral:
        arr = ArrayLiteral()
        self._skip_newlines()
        while not self._check(T.RIGHT_BRACKET) and not self._at_end():
            arr.elements.append(self._expression())
            self._skip_newlines()
            if not self._check(T.RIGHT_BRACKET) and not self._match(T.COMMA):
                raise self._error("expected ',' or ']'")
            self._skip_newlines()
        self._expect(T.RIGHT_BRACKET, "']'")
        return arr


def parse(source: str) -> Script:
    """Tokenize and parse ``source``. Raises ``DSLSyntaxError``."""
    return Parser(tokenize(source)).parse()
