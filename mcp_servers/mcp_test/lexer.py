"""Tokenizer for the test DSL."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from .errors import DSLSyntaxError


class TokenType(Enum):
    EOF = auto()
    STRING = auto()
    NUMBER = auto()
    BOOLEAN = auto()
    IDENTIFIER = auto()

    CONNECT = auto()
    CALL = auto()
    ASSERT = auto()
    WAIT = auto()
    LOOP = auto()
    IN = auto()
    IF = auto()
    ELSE = auto()
    SET = auto()
    PRINT = auto()
    DEFINE = auto()
    RUN = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    EQUALS = auto()
    NOT_EQUALS = auto()
    LESS = auto()
    GREATER = auto()
    LESS_EQUAL = auto()
    GREATER_EQUAL = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    ASSIGN = auto()
    PLUS = auto()
    MINUS = auto()
    MULTIPLY = auto()
    DIVIDE = auto()

    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    LEFT_BRACE = auto()
    RIGHT_BRACE = auto()
    LEFT_BRACKET = auto()
    RIGHT_BRACKET = auto()
    COMMA = auto()
    COLON = auto()
    DOT = auto()
    ARROW = auto()
    NEWLINE = auto()


KEYWORDS: dict[str, TokenType] = {
    "connect": TokenType.CONNECT,
    "call": TokenType.CALL,
    "assert": TokenType.ASSERT,
    "wait": TokenType.WAIT,
    "loop": TokenType.LOOP,
    "in": TokenType.IN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "set": TokenType.SET,
    "print": TokenType.PRINT,
    "define": TokenType.DEFINE,
    "run": TokenType.RUN,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

# two-character operators are tried before their one-character prefixes
_DOUBLE: dict[str, TokenType] = {
    "==": TokenType.EQUALS,
    "!=": TokenType.NOT_EQUALS,
    "<=": TokenType.LESS_EQUAL,
    ">=": TokenType.GREATER_EQUAL,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "->": TokenType.ARROW,
}

_SINGLE: dict[str, TokenType] = {
    "=": TokenType.ASSIGN,
    "!": TokenType.NOT,
    "<": TokenType.LESS,
    ">": TokenType.GREATER,
    "-": TokenType.MINUS,
    "+": TokenType.PLUS,
    "*": TokenType.MULTIPLY,
    "/": TokenType.DIVIDE,
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    "[": TokenType.LEFT_BRACKET,
    "]": TokenType.RIGHT_BRACKET,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
    ".": TokenType.DOT,
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


def keyword_type(word: str) -> TokenType:
    """Keywords match case-insensitively (ASCII)."""
    return KEYWORDS.get(word.lower(), TokenType.IDENTIFIER)


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


@dataclass(slots=True, frozen=True)
class Token:
    type: TokenType
    value: str
    line: int
    column: int


class Lexer:
    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        while self.pos < len(self.source):
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break
            self._next_token()
        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.source[idx] if idx < len(self.source) else ""

    def _advance(self, n: int = 1) -> None:
        self.pos += n
        self.column += n

    def _emit(self, ttype: TokenType, value: str, line: int, column: int) -> None:
        self.tokens.append(Token(ttype, value, line, column))

    def _error(self, message: str) -> DSLSyntaxError:
        return DSLSyntaxError(message, line=self.line, column=self.column)

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] in " \t\r":
            self._advance()

    def _next_token(self) -> None:
        ch = self.source[self.pos]
        line, column = self.line, self.column

        if ch == "#":
            while self.pos < len(self.source) and self.source[self.pos] != "\n":
                self._advance()
            return
        if ch in "\"'":
            self._read_string(ch)
            return
        if _is_digit(ch):
            self._read_number()
            return
        if _is_ident_start(ch):
            self._read_identifier()
            return
        if ch == "\n":
            self._emit(TokenType.NEWLINE, "\n", line, column)
            self.pos += 1
            self.line += 1
            self.column = 1
            return

        pair = ch + self._peek(1)
        if pair in _DOUBLE:
            self._emit(_DOUBLE[pair], pair, line, column)
            self._advance(2)
            return
        if ch in _SINGLE:
            self._emit(_SINGLE[ch], ch, line, column)
            self._advance()
            return
        # lone '&' and '|' land here as well
        raise self._error(f"unexpected character '{ch}' at line {line}, column {column}")

    def _read_string(self, quote: str) -> None:
        line, column = self.line, self.column
        self._advance()
        buf: list[str] = []
        while self.pos < len(self.source) and self.source[self.pos] != quote:
            ch = self.source[self.pos]
            if ch == "\\" and self.pos + 1 < len(self.source):
                self._advance()
                esc = self.source[self.pos]
                buf.append(_ESCAPES.get(esc, esc))
            else:
                buf.append(ch)
                if ch == "\n":
                    self.line += 1
                    self.column = 0
            self._advance()

        if self.pos >= len(self.source):
            raise DSLSyntaxError(f"unterminated string at line {line}, column {column}", line=line, column=column)
        self._advance()
        self._emit(TokenType.STRING, "".join(buf), line, column)

    def _read_number(self) -> None:
        start, column = self.pos, self.column
        seen_dot = False
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if _is_digit(ch):
                self._advance()
            elif ch == "." and not seen_dot and _is_digit(self._peek(1)):
                seen_dot = True
                self._advance()
            else:
                break
        self._emit(TokenType.NUMBER, self.source[start : self.pos], self.line, column)

    def _read_identifier(self) -> None:
        start, column = self.pos, self.column
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == "_" or ch.isalpha() or _is_digit(ch):
                self._advance()
            else:
                break
        word = self.source[start : self.pos]
        self._emit(keyword_type(word), word, self.line, column)


def tokenize(source: str) -> list[Token]:
    return Lexer(source).tokenize()
