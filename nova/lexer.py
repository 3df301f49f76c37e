"""Nova Lexer — Tokenizer with line/column tracking.

Turns source text into a flat token list terminated by EOF. Lexical problems
never abort tokenization: they become ERROR tokens, and the parser reports
the first one it reaches.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from nova.errors import SourceLocation

INT64_MAX = 2 ** 63 - 1


class TokenType(Enum):
    # Keywords
    FN = auto()
    LET = auto()
    RETURN = auto()
    IF = auto()
    TRUE = auto()
    FALSE = auto()

    # Type keywords
    TYPE_INT = auto()
    TYPE_FLOAT = auto()
    TYPE_BOOL = auto()
    TYPE_STRING = auto()

    # Literals
    INT_LIT = auto()
    STRING_LIT = auto()

    # Identifier
    IDENT = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    ASSIGN = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    COLON = auto()
    COMMA = auto()
    SEMICOLON = auto()

    # Special
    ERROR = auto()
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "fn": TokenType.FN,
    "let": TokenType.LET,
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "i32": TokenType.TYPE_INT,
    "f64": TokenType.TYPE_FLOAT,
    "bool": TokenType.TYPE_BOOL,
    "string": TokenType.TYPE_STRING,
}

TYPE_KEYWORDS = frozenset({
    TokenType.TYPE_INT,
    TokenType.TYPE_FLOAT,
    TokenType.TYPE_BOOL,
    TokenType.TYPE_STRING,
})

PUNCTUATION: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "=": TokenType.ASSIGN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
}

WHITESPACE = frozenset(" \t\r\n\f")


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation

    def describe(self) -> str:
        """Human-readable rendering used in syntax errors."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.STRING_LIT:
            return f'"{self.value}"'
        return self.value

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.location})"


class Lexer:
    """Tokenizer for Nova source code."""

    def __init__(self, source: str, filename: str = "<stdin>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    def _loc(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.filename)

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.source):
            return self.source[self.pos]
        return None

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] in WHITESPACE:
            self._advance()

    def _read_string(self) -> Token:
        loc = self._loc()
        self._advance()  # opening quote
        value = ""
        while self.pos < len(self.source):
            ch = self._advance()
            if ch == '"':
                return Token(TokenType.STRING_LIT, value, loc)
            value += ch
        return Token(TokenType.ERROR, '"' + value, loc)

    def _read_number(self) -> Token:
        loc = self._loc()
        value = ""
        while self.pos < len(self.source) and self.source[self.pos].isascii() and self.source[self.pos].isdigit():
            value += self._advance()
        if int(value) > INT64_MAX:
            return Token(TokenType.ERROR, value, loc)
        return Token(TokenType.INT_LIT, value, loc)

    def _read_identifier(self) -> Token:
        loc = self._loc()
        value = ""
        while self.pos < len(self.source) and _is_ident_char(self.source[self.pos]):
            value += self._advance()
        token_type = KEYWORDS.get(value, TokenType.IDENT)
        return Token(token_type, value, loc)

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while self.pos < len(self.source):
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break

            ch = self._peek()
            loc = self._loc()

            if ch == '"':
                tokens.append(self._read_string())
            elif ch.isascii() and ch.isdigit():
                tokens.append(self._read_number())
            elif ch.isascii() and ch.isalpha():
                tokens.append(self._read_identifier())
            elif ch in PUNCTUATION:
                self._advance()
                tokens.append(Token(PUNCTUATION[ch], ch, loc))
            else:
                self._advance()
                tokens.append(Token(TokenType.ERROR, ch, loc))

        tokens.append(Token(TokenType.EOF, "", self._loc()))
        return tokens


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience function to tokenize Nova source code."""
    return Lexer(source, filename).tokenize()
