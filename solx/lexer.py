"""SOL-X Lexer — Tokenizer with line/column/byte-offset tracking.

Produces a stream of tokens from SOL-X source code.
No whitespace-sensitive parsing. Every token is meaningful.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from solx.errors import ErrorKind, SourceLocation, lex_error


class TokenType(Enum):
    # Keywords
    PROGRAM = auto()
    ACCOUNT = auto()
    INSTRUCTION = auto()
    INIT = auto()
    PAYER = auto()
    SIGNER = auto()
    REQUIRE = auto()
    TRUE = auto()
    FALSE = auto()

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
    PERCENT = auto()
    EQ = auto()
    NEQ = auto()
    GTE = auto()
    LTE = auto()
    GT = auto()
    LT = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    ASSIGN = auto()
    PLUS_ASSIGN = auto()
    MINUS_ASSIGN = auto()
    STAR_ASSIGN = auto()
    SLASH_ASSIGN = auto()
    PERCENT_ASSIGN = auto()
    DOT = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    COLON = auto()
    COMMA = auto()
    SEMICOLON = auto()

    # Special
    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "program": TokenType.PROGRAM,
    "account": TokenType.ACCOUNT,
    "instruction": TokenType.INSTRUCTION,
    "init": TokenType.INIT,
    "payer": TokenType.PAYER,
    "signer": TokenType.SIGNER,
    "require": TokenType.REQUIRE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

# Longest match first within each leading character.
OPERATORS: list[tuple[str, TokenType]] = [
    ("==", TokenType.EQ),
    ("!=", TokenType.NEQ),
    ("<=", TokenType.LTE),
    (">=", TokenType.GTE),
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    ("+=", TokenType.PLUS_ASSIGN),
    ("-=", TokenType.MINUS_ASSIGN),
    ("*=", TokenType.STAR_ASSIGN),
    ("/=", TokenType.SLASH_ASSIGN),
    ("%=", TokenType.PERCENT_ASSIGN),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("%", TokenType.PERCENT),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("!", TokenType.NOT),
    ("=", TokenType.ASSIGN),
    (".", TokenType.DOT),
    ("{", TokenType.LBRACE),
    ("}", TokenType.RBRACE),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    (":", TokenType.COLON),
    (",", TokenType.COMMA),
    (";", TokenType.SEMICOLON),
]

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"'}

U64_MAX = (1 << 64) - 1


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation

    def describe(self) -> str:
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.STRING_LIT:
            return f"string literal \"{self.value}\""
        return f"'{self.value}'"

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.location})"


class Lexer:
    """Tokenizer for SOL-X source code."""

    def __init__(self, source: str, filename: str = "<stdin>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.offset = 0
        self.line = 1
        self.column = 1

    def _loc(self, length: int = 0) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.offset, length, self.filename)

    def _span(self, start: SourceLocation) -> SourceLocation:
        return SourceLocation(start.line, start.column, start.offset,
                              self.offset - start.offset, self.filename)

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.source):
            return self.source[self.pos]
        return None

    def _peek_ahead(self, offset: int = 1) -> Optional[str]:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return None

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        self.offset += len(ch.encode("utf-8"))
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in (" ", "\t", "\r", "\n"):
                self._advance()
            elif ch == "/" and self._peek_ahead() == "/":
                while self.pos < len(self.source) and self.source[self.pos] != "\n":
                    self._advance()
            elif ch == "/" and self._peek_ahead() == "*":
                start = self._loc(2)
                self._advance()
                self._advance()
                while True:
                    if self.pos >= len(self.source):
                        raise lex_error(ErrorKind.MALFORMED_LITERAL, "Unterminated block comment", start)
                    if self.source[self.pos] == "*" and self._peek_ahead() == "/":
                        self._advance()
                        self._advance()
                        break
                    self._advance()
            else:
                break

    def _read_string(self) -> Token:
        start = self._loc()
        self._advance()  # opening quote
        value = ""
        while self.pos < len(self.source):
            ch = self._peek()
            if ch == "\n":
                break
            self._advance()
            if ch == '"':
                return Token(TokenType.STRING_LIT, value, self._span(start))
            if ch == "\\":
                esc_loc = self._loc()
                next_ch = self._advance() if self.pos < len(self.source) else ""
                if next_ch not in ESCAPES:
                    raise lex_error(ErrorKind.MALFORMED_LITERAL,
                                    f"Unknown escape sequence '\\{next_ch}'", esc_loc)
                value += ESCAPES[next_ch]
            else:
                value += ch
        raise lex_error(ErrorKind.MALFORMED_LITERAL, "Unterminated string literal", self._span(start))

    def _read_number(self) -> Token:
        start = self._loc()
        text = ""
        while self.pos < len(self.source) and (_is_digit(self.source[self.pos]) or self.source[self.pos] == "_"):
            text += self._advance()
        if self.pos < len(self.source) and _is_ident_char(self.source[self.pos]):
            while self.pos < len(self.source) and _is_ident_char(self.source[self.pos]):
                text += self._advance()
            raise lex_error(ErrorKind.MALFORMED_LITERAL,
                            f"Malformed integer literal '{text}'", self._span(start))
        if text.endswith("_"):
            raise lex_error(ErrorKind.MALFORMED_LITERAL,
                            f"Malformed integer literal '{text}'", self._span(start))
        digits = text.replace("_", "")
        if int(digits) > U64_MAX:
            raise lex_error(ErrorKind.MALFORMED_LITERAL,
                            f"Integer literal '{text}' does not fit in 64 bits", self._span(start))
        return Token(TokenType.INT_LIT, digits, self._span(start))

    def _read_identifier(self) -> Token:
        start = self._loc()
        value = ""
        while self.pos < len(self.source) and _is_ident_char(self.source[self.pos]):
            value += self._advance()
        token_type = KEYWORDS.get(value, TokenType.IDENT)
        return Token(token_type, value, self._span(start))

    def _read_operator(self) -> Token:
        start = self._loc()
        for text, token_type in OPERATORS:
            if self.source.startswith(text, self.pos):
                for _ in text:
                    self._advance()
                return Token(token_type, text, self._span(start))
        ch = self._peek()
        raise lex_error(ErrorKind.INVALID_CHARACTER, f"Unexpected character '{ch}'", self._loc(len(ch.encode("utf-8"))))

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while self.pos < len(self.source):
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break

            ch = self._peek()
            if ch == '"':
                tokens.append(self._read_string())
            elif _is_digit(ch):
                tokens.append(self._read_number())
            elif ch.isascii() and (ch.isalpha() or ch == "_"):
                tokens.append(self._read_identifier())
            else:
                tokens.append(self._read_operator())

        tokens.append(Token(TokenType.EOF, "", self._loc()))
        return tokens


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience function to tokenize SOL-X source code."""
    return Lexer(source, filename).tokenize()
