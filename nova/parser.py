"""Nova Parser — LL(1) recursive-descent parser.

Parses a token list into a Program node. One token of lookahead, no
backtracking; the first unmet expectation raises NovaSyntaxError and no
partial tree is returned.

Grammar:

    program      := declaration*
    declaration  := function | let_stmt
    function     := 'fn' ident '(' params? ')' (':' type)? '{' stmt* '}'
    params       := param (',' param)*
    param        := ident ':' type_name
    let_stmt     := 'let' ident (':' type_name)? '=' expr ';'
    stmt         := let_stmt | return_stmt
    return_stmt  := 'return' expr ';'        (must be followed by '}')
    expr         := primary ( ('+'|'-'|'*'|'/') primary )*
    primary      := number | string_literal | 'true' | 'false' | ident
    type         := 'i32' | 'f64' | 'bool' | 'string'
    type_name    := type | ident

All four binary operators share one precedence tier and associate to the
left: ``1 + 2 * 3`` parses as ``(1 + 2) * 3``.
"""

from __future__ import annotations

import logging
from typing import Optional

from nova.lexer import Token, TokenType, TYPE_KEYWORDS, tokenize
from nova.ast_nodes import (
    Node, Program, Function, Let, Return,
    Number, StringLiteral, Boolean, Identifier,
    BinaryOp, BinaryOperator,
)
from nova.errors import SourceLocation, syntax_error

logger = logging.getLogger(__name__)

BINARY_OPERATORS: dict[TokenType, BinaryOperator] = {
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.MINUS: BinaryOperator.SUBTRACT,
    TokenType.STAR: BinaryOperator.MULTIPLY,
    TokenType.SLASH: BinaryOperator.DIVIDE,
}


class Parser:
    """LL(1) recursive-descent parser for Nova."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>"):
        self.filename = filename
        if not tokens or tokens[-1].type != TokenType.EOF:
            end = tokens[-1].location if tokens else SourceLocation(1, 1, filename)
            tokens = [*tokens, Token(TokenType.EOF, "", end)]
        self.tokens = tokens
        self.pos = 0

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self) -> TokenType:
        return self._current().type

    def _loc(self) -> SourceLocation:
        return self._current().location

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _error(self, expected: str) -> Exception:
        tok = self._current()
        return syntax_error(expected, tok.describe(), tok.location)

    def _expect(self, tt: TokenType, expected: str) -> Token:
        if self._peek() != tt:
            raise self._error(expected)
        return self._advance()

    def _match(self, tt: TokenType) -> Optional[Token]:
        if self._peek() == tt:
            return self._advance()
        return None

    # -------------------------------------------------------------------
    # Top-level
    # -------------------------------------------------------------------

    def parse(self) -> Program:
        loc = self._loc()
        decls: list[Node] = []
        while self._peek() != TokenType.EOF:
            decls.append(self._parse_declaration())
        logger.debug("parsed %d top-level declaration(s) from %s", len(decls), self.filename)
        return Program(items=decls, location=loc)

    def _parse_declaration(self) -> Node:
        tt = self._peek()
        if tt == TokenType.FN:
            return self._parse_function()
        elif tt == TokenType.LET:
            return self._parse_let()
        raise self._error("declaration ('fn' or 'let')")

    # -------------------------------------------------------------------
    # fn
    # -------------------------------------------------------------------

    def _parse_function(self) -> Function:
        loc = self._loc()
        self._expect(TokenType.FN, "'fn'")
        name = self._expect(TokenType.IDENT, "function name").value
        self._expect(TokenType.LPAREN, "'(' after function name")
        params = self._parse_param_list()
        self._expect(TokenType.RPAREN, "')' after parameters")

        return_type: Optional[str] = None
        if self._match(TokenType.COLON):
            return_type = self._parse_type()

        self._expect(TokenType.LBRACE, "'{' to begin function body")
        body = self._parse_block()
        return Function(name=name, params=params, body=body, return_type=return_type, location=loc)

    def _parse_param_list(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if self._peek() == TokenType.RPAREN:
            return params
        params.append(self._parse_param())
        while self._match(TokenType.COMMA):
            params.append(self._parse_param())
        return params

    def _parse_param(self) -> tuple[str, str]:
        name = self._expect(TokenType.IDENT, "parameter name").value
        self._expect(TokenType.COLON, "':' after parameter name")
        return name, self._parse_type_name()

    def _parse_block(self) -> Program:
        loc = self._loc()
        stmts: list[Node] = []
        while self._peek() != TokenType.RBRACE:
            tt = self._peek()
            if tt == TokenType.LET:
                stmts.append(self._parse_let())
            elif tt == TokenType.RETURN:
                stmts.append(self._parse_return())
                # A return closes its block.
                break
            else:
                raise self._error("statement ('let' or 'return') in function body")
        self._expect(TokenType.RBRACE, "'}' to end function body")
        return Program(items=stmts, location=loc)

    # -------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------

    def _parse_type(self) -> str:
        if self._peek() in TYPE_KEYWORDS:
            return self._advance().value
        raise self._error("type ('i32', 'f64', 'bool' or 'string')")

    def _parse_type_name(self) -> str:
        if self._peek() in TYPE_KEYWORDS or self._peek() == TokenType.IDENT:
            return self._advance().value
        raise self._error("type name after ':'")

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _parse_let(self) -> Let:
        loc = self._loc()
        self._expect(TokenType.LET, "'let'")
        name = self._expect(TokenType.IDENT, "variable name").value
        type_ann: Optional[str] = None
        if self._match(TokenType.COLON):
            type_ann = self._parse_type_name()
        self._expect(TokenType.ASSIGN, "'=' in let statement")
        value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';' after let statement")
        return Let(name=name, type_annotation=type_ann, value=value, location=loc)

    def _parse_return(self) -> Return:
        loc = self._loc()
        self._expect(TokenType.RETURN, "'return'")
        value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';' after return statement")
        return Return(value=value, location=loc)

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _parse_expression(self) -> Node:
        left = self._parse_primary()
        while self._peek() in BINARY_OPERATORS:
            op_tok = self._advance()
            right = self._parse_primary()
            left = BinaryOp(
                op=BINARY_OPERATORS[op_tok.type], left=left, right=right,
                location=op_tok.location,
            )
        return left

    def _parse_primary(self) -> Node:
        tok = self._current()
        tt = tok.type

        if tt == TokenType.INT_LIT:
            self._advance()
            return Number(value=int(tok.value), location=tok.location)
        elif tt == TokenType.STRING_LIT:
            self._advance()
            return StringLiteral(value=tok.value, location=tok.location)
        elif tt == TokenType.TRUE:
            self._advance()
            return Boolean(value=True, location=tok.location)
        elif tt == TokenType.FALSE:
            self._advance()
            return Boolean(value=False, location=tok.location)
        elif tt == TokenType.IDENT:
            self._advance()
            return Identifier(name=tok.value, location=tok.location)
        raise self._error("expression")


def parse(source: str, filename: str = "<stdin>") -> Program:
    """Convenience function: tokenize and parse Nova source code."""
    tokens = tokenize(source, filename)
    return Parser(tokens, filename).parse()
