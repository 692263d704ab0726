"""Line tokenizer.

Every token keeps the exact source slice it was read from, so
``text[tok.pos:tok.pos + len(tok.literal)] == tok.literal`` always holds.
"""

from typing import Dict, List, Optional, Tuple

from numcalc.crypto import crypto_symbols
from numcalc.currency import currency_symbols
from numcalc.tokens import KEYWORDS, Token, TokenType

# Characters after which "-5" is a negative number rather than a subtraction
EXPRESSION_START = "+-*/^(=,\n"

GLYPH_TYPES = {
    "$": TokenType.DOLLAR,
    "€": TokenType.EURO,
    "£": TokenType.POUND,
    "¥": TokenType.YEN,
    "₿": TokenType.BITCOIN,
}

SINGLE_CHAR = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "^": TokenType.CARET,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "=": TokenType.EQUALS,
    ",": TokenType.COMMA,
}

# Single-character currency/crypto symbols that cannot start a word
GLYPHS = {
    s
    for s in currency_symbols() + crypto_symbols()
    if len(s) == 1 and not (s.isascii() and s.isalnum())
}

# First word -> the word sequences that may follow it
MULTI_WORD: Dict[str, List[Tuple[str, ...]]] = {
    "turkish": [("lira",)],
    "hong": [("kong", "dollar"), ("kong", "dollars")],
    "new": [("zealand", "dollar"), ("zealand", "dollars")],
    "south": [("african", "rand"), ("korean", "won")],
    "saudi": [("riyal",)],
    "swiss": [("franc",), ("francs",)],
    "british": [("pound",), ("pounds",)],
    "us": [("dollar",), ("dollars",)],
    "canadian": [("dollar",), ("dollars",)],
    "australian": [("dollar",), ("dollars",)],
    "mexican": [("peso",)],
    "brazilian": [("real",)],
    "indian": [("rupee",), ("rupees",)],
    "square": [
        ("meter",), ("meters",), ("foot",), ("feet",),
        ("mile",), ("miles",), ("kilometer",), ("kilometers",),
    ],
    "cubic": [("meter",), ("meters",)],
    "fluid": [("ounce",), ("ounces",)],
    "fl": [("oz",)],
    "troy": [("ounce",), ("ounces",)],
    "nautical": [("mile",), ("miles",)],
}


class Lexer:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.col = 1
        self.current_char = text[0] if text else None

    def advance(self):
        if self.current_char == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        self.pos += 1
        if self.pos >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.pos]

    def peek(self, n: int = 1) -> Optional[str]:
        idx = self.pos + n
        if idx >= len(self.text):
            return None
        return self.text[idx]

    def snapshot(self) -> Tuple[int, int, int]:
        return (self.pos, self.line, self.col)

    def restore(self, state: Tuple[int, int, int]):
        self.pos, self.line, self.col = state
        self.current_char = self.text[self.pos] if self.pos < len(self.text) else None

    # spaces, tabs and carriage returns only; newlines are tokens
    def skip_whitespace(self):
        while self.current_char is not None and self.current_char in " \t\r":
            self.advance()

    def at_expression_start(self) -> bool:
        i = self.pos - 1
        while i >= 0 and self.text[i] in " \t\r":
            i -= 1
        return i < 0 or self.text[i] in EXPRESSION_START

    def make(self, token_type: TokenType, start: Tuple[int, int, int]) -> Token:
        pos, line, col = start
        return Token(token_type, self.text[pos:self.pos], pos, line, col)

    def tokenize(self) -> List[Token]:
        tokens = []
        while True:
            tok = self.next_token()
            tokens.append(tok)
            if tok.type == TokenType.EOF:
                return tokens

    def next_token(self) -> Token:
        self.skip_whitespace()
        start = self.snapshot()
        ch = self.current_char

        if ch is None:
            return Token(TokenType.EOF, "", self.pos, self.line, self.col)

        if ch == "\n":
            self.advance()
            return self.make(TokenType.NEWLINE, start)

        if ch == "#" or (ch == "/" and self.peek() == "/"):
            while self.current_char is not None and self.current_char != "\n":
                self.advance()
            return self.make(TokenType.COMMENT, start)

        if ch in GLYPHS:
            self.advance()
            return self.make(GLYPH_TYPES.get(ch, TokenType.CURRENCY), start)

        if ch.isdigit() or (ch == "." and self._is_digit(self.peek())):
            return self.read_number()

        if ch == "-" and self._starts_number(1) and self.at_expression_start():
            return self.read_number()

        if ch.isalpha() or ch == "_":
            return self.read_identifier()

        if ch == "*" and self.peek() == "*":
            self.advance()
            self.advance()
            return self.make(TokenType.POWER, start)

        self.advance()
        return self.make(SINGLE_CHAR.get(ch, TokenType.ILLEGAL), start)

    @staticmethod
    def _is_digit(ch: Optional[str]) -> bool:
        return ch is not None and ch.isdigit()

    def _starts_number(self, offset: int) -> bool:
        ch = self.peek(offset)
        if self._is_digit(ch):
            return True
        return ch == "." and self._is_digit(self.peek(offset + 1))

    def _is_thousands_separator(self) -> bool:
        # "1,234" but not "sum(1,2,3)" or "1,2345"
        for i in range(1, 4):
            if not self._is_digit(self.peek(i)):
                return False
        return not self._is_digit(self.peek(4))

    def read_number(self) -> Token:
        start = self.snapshot()
        if self.current_char == "-":
            self.advance()

        seen_dot = False
        while self.current_char is not None:
            ch = self.current_char
            if ch.isdigit():
                self.advance()
            elif ch == "," and not seen_dot and self._is_thousands_separator():
                self.advance()
            elif ch == "." and not seen_dot and self._is_digit(self.peek()):
                seen_dot = True
                self.advance()
            else:
                break

        if self.current_char in ("e", "E"):
            nxt = self.peek()
            if self._is_digit(nxt) or (nxt in ("+", "-") and self._is_digit(self.peek(2))):
                self.advance()
                if self.current_char in ("+", "-"):
                    self.advance()
                while self._is_digit(self.current_char):
                    self.advance()

        if self.current_char == "%":
            self.advance()
            return self.make(TokenType.PERCENT, start)
        return self.make(TokenType.NUMBER, start)

    def _read_word(self) -> str:
        begin = self.pos
        while self.current_char is not None and (
            self.current_char.isalnum() or self.current_char == "_"
        ):
            self.advance()
        return self.text[begin:self.pos]

    def read_identifier(self) -> Token:
        start = self.snapshot()
        word = self._read_word()
        lower = word.lower()

        if lower in KEYWORDS:
            return self.make(KEYWORDS[lower], start)

        if lower in MULTI_WORD:
            self._read_continuation(MULTI_WORD[lower])
        return self.make(TokenType.IDENT, start)

    def _read_continuation(self, candidates: List[Tuple[str, ...]]):
        """Consume the longest fully matching word sequence, or nothing."""
        after_first = self.snapshot()
        best = None
        for words in sorted(candidates, key=len, reverse=True):
            self.restore(after_first)
            if self._match_words(words):
                best = self.snapshot()
                break
        self.restore(best if best is not None else after_first)

    def _match_words(self, words: Tuple[str, ...]) -> bool:
        for expected in words:
            if self.current_char not in (" ", "\t"):
                return False
            self.skip_whitespace()
            if self._read_word().lower() != expected:
                return False
        return True


def tokenize(text: str) -> List[Token]:
    return Lexer(text).tokenize()


def tokenize_no_comments(text: str) -> List[Token]:
    return [t for t in Lexer(text).tokenize() if t.type != TokenType.COMMENT]
