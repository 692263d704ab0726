"""Precedence-climbing parser producing one ``Line`` per input line.

Parsing never aborts: problems are collected as ``CalcError`` values and a
placeholder node keeps the tree well formed.
"""

import logging
from typing import List, Optional, Tuple

from numcalc.crypto import lookup_crypto, lookup_crypto_by_symbol
from numcalc.currency import lookup_currency, lookup_currency_by_symbol
from numcalc.errors import CalcError, parse_error
from numcalc.lexer import tokenize
from numcalc.metal import lookup_metal
from numcalc.nodes import (
    AssignStmt,
    BinaryExpr,
    BinaryOp,
    CallExpr,
    CommentStmt,
    ConversionContinuation,
    ConversionExpr,
    CryptoLit,
    CurrencyLit,
    EmptyStmt,
    Expr,
    ExprStmt,
    GroupExpr,
    Identifier,
    Line,
    MetalLit,
    NumberLit,
    PercentLit,
    PercentOfExpr,
    ContinuationExpr,
    UnaryExpr,
    UnaryOp,
    UnitLit,
)
from numcalc.tokens import Token, TokenType
from numcalc.units import lookup_unit

logger = logging.getLogger(__name__)

PREVIOUS = "_"

BINARY_OPS = {
    TokenType.PLUS: BinaryOp.ADD,
    TokenType.MINUS: BinaryOp.SUB,
    TokenType.STAR: BinaryOp.MUL,
    TokenType.SLASH: BinaryOp.DIV,
    TokenType.MOD: BinaryOp.MOD,
    TokenType.CARET: BinaryOp.POW,
    TokenType.POWER: BinaryOp.POW,
}


def parse_number(literal: str) -> float:
    return float(literal.replace(",", "").rstrip("%"))


def typed_literal(amount: float, name: str, raw: str) -> Optional[Expr]:
    """Build a currency/crypto/metal/unit literal from a trailing word."""
    currency = lookup_currency(name)
    if currency is not None:
        return CurrencyLit(amount, currency, raw)
    crypto = lookup_crypto(name)
    if crypto is not None:
        return CryptoLit(amount, crypto, raw)
    metal = lookup_metal(name)
    if metal is not None:
        return MetalLit(amount, metal, raw)
    unit = lookup_unit(name)
    if unit is not None:
        return UnitLit(amount, unit, raw)
    return None


def symbol_literal(amount: float, symbol: str, raw: str) -> Optional[Expr]:
    currency = lookup_currency_by_symbol(symbol)
    if currency is not None:
        return CurrencyLit(amount, currency, raw)
    crypto = lookup_crypto_by_symbol(symbol)
    if crypto is not None:
        return CryptoLit(amount, crypto, raw)
    return None


class Parser:
    def __init__(self, tokens: List[Token], source: str = ""):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.errors: List[CalcError] = []

    # ---------- token helpers ----------
    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, n: int = 1) -> Token:
        idx = min(self.pos + n, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.current
        if tok.type != TokenType.EOF:
            self.pos += 1
        return tok

    def expect(self, token_type: TokenType, message: str) -> bool:
        if self.current.type == token_type:
            self.advance()
            return True
        self.error(message)
        return False

    def error(self, message: str, tok: Optional[Token] = None):
        tok = tok or self.current
        self.errors.append(parse_error(message, tok.pos))

    def raw_between(self, first: Token, last: Token) -> str:
        if not self.source:
            return f"{first.literal} {last.literal}"
        return self.source[first.pos:last.pos + len(last.literal)]

    # ---------- line ----------
    def parse_line(self) -> Line:
        comment = None
        body = []
        for tok in self.tokens:
            if tok.type == TokenType.COMMENT:
                comment = tok.literal
            elif tok.type != TokenType.NEWLINE:
                body.append(tok)
        self.tokens = body
        self.pos = 0

        for tok in body:
            if tok.type == TokenType.ILLEGAL:
                self.error(f"unexpected character {tok.literal!r}", tok)

        if self.current.type == TokenType.EOF:
            if comment is not None:
                return Line(CommentStmt(comment), comment, self.source)
            return Line(EmptyStmt(), None, self.source)

        return Line(self.parse_statement(), comment, self.source)

    def parse_statement(self):
        tok = self.current

        if tok.type == TokenType.IDENT and self.peek().type == TokenType.EQUALS:
            self.advance()
            self.advance()
            return AssignStmt(tok.literal, self.parse_expression())

        if tok.type in BINARY_OPS:
            self.advance()
            return ExprStmt(ContinuationExpr(BINARY_OPS[tok.type], self.parse_expression()))

        if tok.type == TokenType.IN:
            self.advance()
            return ExprStmt(ConversionContinuation(self.parse_target()))

        return ExprStmt(self.parse_expression())

    # ---------- expressions ----------
    def parse_expression(self) -> Expr:
        expr = self.parse_binary(1)
        if self.current.type == TokenType.IN:
            self.advance()
            expr = ConversionExpr(expr, self.parse_target())
        return expr

    def parse_binary(self, min_prec: int) -> Expr:
        left = self.parse_unary()
        while True:
            op = BINARY_OPS.get(self.current.type)
            if op is None or op.precedence < min_prec:
                return left
            self.advance()
            next_prec = op.precedence if op.right_assoc else op.precedence + 1
            right = self.parse_binary(next_prec)
            left = BinaryExpr(left, op, right)

    def parse_unary(self) -> Expr:
        if self.current.type == TokenType.MINUS:
            self.advance()
            return UnaryExpr(UnaryOp.NEG, self.parse_unary())
        if self.current.type == TokenType.PLUS:
            self.advance()
            return UnaryExpr(UnaryOp.POS, self.parse_unary())
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        expr = self.parse_primary()
        if isinstance(expr, PercentLit) and self.current.type == TokenType.OF:
            self.advance()
            return PercentOfExpr(expr, self.parse_unary())
        return expr

    def parse_primary(self) -> Expr:
        tok = self.current

        if tok.type == TokenType.NUMBER:
            return self.parse_number()

        if tok.type == TokenType.PERCENT:
            self.advance()
            return PercentLit(parse_number(tok.literal) / 100, tok.literal)

        if tok.is_symbol():
            return self.parse_symbol_prefix()

        if tok.type == TokenType.IDENT:
            if self.peek().type == TokenType.LPAREN:
                return self.parse_call()
            self.advance()
            name = tok.literal
            if name.lower() in (PREVIOUS, "ans"):
                name = PREVIOUS
            return Identifier(name)

        if tok.type == TokenType.LPAREN:
            self.advance()
            if self.current.type == TokenType.RPAREN:
                self.advance()
                return NumberLit(0, "()")
            expr = self.parse_expression()
            self.expect(TokenType.RPAREN, "expected ')'")
            return GroupExpr(expr)

        if tok.type == TokenType.EOF:
            self.error("unexpected end of expression")
        else:
            self.error(f"unexpected token {tok.literal!r}")
            self.advance()
        return NumberLit(0)

    def parse_number(self) -> Expr:
        tok = self.advance()
        amount = parse_number(tok.literal)
        nxt = self.current
        if nxt.type == TokenType.IDENT and self.peek().type != TokenType.LPAREN:
            typed = typed_literal(amount, nxt.literal, self.raw_between(tok, nxt))
            if typed is not None:
                self.advance()
                return typed
        elif nxt.is_symbol():
            typed = symbol_literal(amount, nxt.literal, self.raw_between(tok, nxt))
            if typed is not None:
                self.advance()
                return typed
        return NumberLit(amount, tok.literal)

    def parse_symbol_prefix(self) -> Expr:
        sym = self.advance()
        negative = False
        if self.current.type == TokenType.MINUS and self.peek().type == TokenType.NUMBER:
            self.advance()
            negative = True
        if self.current.type != TokenType.NUMBER:
            self.error(f"expected amount after {sym.literal!r}", sym)
            return NumberLit(0)
        num = self.advance()
        amount = parse_number(num.literal)
        if negative:
            amount = -amount
        typed = symbol_literal(amount, sym.literal, self.raw_between(sym, num))
        if typed is None:
            self.error(f"unknown symbol {sym.literal!r}", sym)
            return NumberLit(amount, num.literal)
        return typed

    def parse_call(self) -> Expr:
        name = self.advance().literal
        self.advance()  # (
        args = []
        if self.current.type == TokenType.RPAREN:
            self.advance()
            return CallExpr(name, ())
        while True:
            args.append(self.parse_expression())
            if self.current.type == TokenType.COMMA:
                self.advance()
                continue
            break
        self.expect(TokenType.RPAREN, f"expected ')' after arguments to {name}")
        return CallExpr(name, tuple(args))

    def parse_target(self) -> str:
        tok = self.current
        if tok.type == TokenType.IDENT or tok.is_symbol():
            self.advance()
            return tok.literal
        self.error("expected conversion target")
        return ""


def parse_line(text: str) -> Tuple[Line, List[CalcError]]:
    """Parse a single line. Errors are returned, never raised."""
    parser = Parser(tokenize(text), text)
    line = parser.parse_line()
    if parser.errors:
        logger.debug(f"Parse errors for {text!r}: {parser.errors}")
    return line, parser.errors


def parse_lines(text: str) -> List[Tuple[Line, List[CalcError]]]:
    results = []
    for number, raw in enumerate(text.split("\n"), start=1):
        line, errors = parse_line(raw)
        results.append((line, [e.with_line(number) for e in errors]))
    return results


def parse_expr(text: str) -> Tuple[Optional[Expr], List[CalcError]]:
    """Parse ``text`` as a bare expression (no assignment or continuation)."""
    parser = Parser(tokenize(text), text)
    parser.tokens = [t for t in parser.tokens if t.type not in (TokenType.COMMENT, TokenType.NEWLINE)]
    if parser.current.type == TokenType.EOF:
        return None, []
    expr = parser.parse_expression()
    return expr, parser.errors
