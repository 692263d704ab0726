from enum import Enum
from dataclasses import dataclass


class TokenType(Enum):
    EOF = "EOF"
    ILLEGAL = "ILLEGAL"

    NUMBER = "NUMBER"
    PERCENT = "PERCENT"  # 15%
    IDENT = "IDENT"

    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    CARET = "^"
    POWER = "**"
    LPAREN = "("
    RPAREN = ")"
    EQUALS = "="
    COMMA = ","

    IN = "in"  # also "to"
    OF = "of"
    MOD = "mod"

    # Currency and crypto glyphs
    DOLLAR = "$"
    EURO = "€"
    POUND = "£"
    YEN = "¥"
    BITCOIN = "₿"
    CURRENCY = "CURRENCY"  # any other registered glyph

    COMMENT = "COMMENT"
    NEWLINE = "NEWLINE"


KEYWORDS = {
    "in": TokenType.IN,
    "to": TokenType.IN,
    "of": TokenType.OF,
    "mod": TokenType.MOD,
}

OPERATORS = {
    TokenType.PLUS,
    TokenType.MINUS,
    TokenType.STAR,
    TokenType.SLASH,
    TokenType.CARET,
    TokenType.POWER,
    TokenType.MOD,
}

SYMBOLS = {
    TokenType.DOLLAR,
    TokenType.EURO,
    TokenType.POUND,
    TokenType.YEN,
    TokenType.BITCOIN,
    TokenType.CURRENCY,
}


@dataclass(frozen=True)
class Token:
    type: TokenType
    literal: str
    pos: int  # character offset into the source line
    line: int = 1
    col: int = 1

    def is_operator(self) -> bool:
        return self.type in OPERATORS

    def is_symbol(self) -> bool:
        return self.type in SYMBOLS

    def __repr__(self):
        return f"{self.type.name}({self.literal!r}@{self.pos})"
