"""SOL-X Lexer Tests.

Token kinds, literal rules, comment handling and source positions.
"""

import pytest

from solx.lexer import tokenize, TokenType
from solx.errors import LexError, ErrorKind, Phase


def types_of(source):
    return [t.type for t in tokenize(source)]


class TestTokens:
    """Keywords, identifiers and punctuation."""

    def test_keywords(self):
        tokens = tokenize("program account instruction init payer signer require true false")
        assert [t.type for t in tokens] == [
            TokenType.PROGRAM, TokenType.ACCOUNT, TokenType.INSTRUCTION,
            TokenType.INIT, TokenType.PAYER, TokenType.SIGNER,
            TokenType.REQUIRE, TokenType.TRUE, TokenType.FALSE, TokenType.EOF,
        ]

    def test_type_names_are_identifiers(self):
        tokens = tokenize("Pubkey u64 Signer String Vec Option")
        assert all(t.type == TokenType.IDENT for t in tokens[:-1])

    def test_identifier_with_underscore_and_digits(self):
        tokens = tokenize("_make_offer2")
        assert tokens[0].type == TokenType.IDENT
        assert tokens[0].value == "_make_offer2"

    def test_compound_operators_take_longest_match(self):
        assert types_of("+= -= *= /= %= == != <= >= && ||")[:-1] == [
            TokenType.PLUS_ASSIGN, TokenType.MINUS_ASSIGN, TokenType.STAR_ASSIGN,
            TokenType.SLASH_ASSIGN, TokenType.PERCENT_ASSIGN, TokenType.EQ,
            TokenType.NEQ, TokenType.LTE, TokenType.GTE, TokenType.AND, TokenType.OR,
        ]

    def test_punctuation(self):
        assert types_of("{ } ( ) < > , : ; . !")[:-1] == [
            TokenType.LBRACE, TokenType.RBRACE, TokenType.LPAREN, TokenType.RPAREN,
            TokenType.LT, TokenType.GT, TokenType.COMMA, TokenType.COLON,
            TokenType.SEMICOLON, TokenType.DOT, TokenType.NOT,
        ]

    def test_empty_source_is_just_eof(self):
        assert types_of("") == [TokenType.EOF]


class TestComments:

    def test_line_comment_skipped(self):
        assert types_of("program // the name follows\nCounter") == [
            TokenType.PROGRAM, TokenType.IDENT, TokenType.EOF,
        ]

    def test_block_comment_spans_lines(self):
        tokens = tokenize("/* one\n two */ program")
        assert tokens[0].type == TokenType.PROGRAM
        assert tokens[0].location.line == 2

    def test_unterminated_block_comment(self):
        with pytest.raises(LexError) as exc:
            tokenize("program /* never closed")
        assert exc.value.diagnostic.location.column == 9


class TestLiterals:

    def test_integer_with_separators(self):
        tokens = tokenize("1_000_000")
        assert tokens[0].type == TokenType.INT_LIT
        assert tokens[0].value == "1000000"

    def test_u64_max_accepted(self):
        tokens = tokenize("18446744073709551615")
        assert tokens[0].value == "18446744073709551615"

    def test_integer_over_u64_rejected(self):
        with pytest.raises(LexError) as exc:
            tokenize("18446744073709551616")
        diag = exc.value.diagnostic
        assert diag.phase == Phase.LEX
        assert diag.kind == ErrorKind.MALFORMED_LITERAL

    def test_letters_after_digits_rejected(self):
        with pytest.raises(LexError) as exc:
            tokenize("12abc")
        assert "12abc" in exc.value.diagnostic.message

    def test_trailing_separator_rejected(self):
        with pytest.raises(LexError):
            tokenize("100_")

    def test_string_escapes(self):
        tokens = tokenize(r'"a\"b\\c\nd"')
        assert tokens[0].type == TokenType.STRING_LIT
        assert tokens[0].value == 'a"b\\c\nd'

    def test_unknown_escape_rejected(self):
        with pytest.raises(LexError) as exc:
            tokenize(r'"bad \q"')
        assert "\\q" in exc.value.diagnostic.message

    def test_unterminated_string(self):
        with pytest.raises(LexError) as exc:
            tokenize('"no end')
        assert exc.value.diagnostic.kind == ErrorKind.MALFORMED_LITERAL

    def test_raw_newline_in_string_rejected(self):
        with pytest.raises(LexError):
            tokenize('"line one\nline two"')


class TestInvalidCharacters:

    def test_invalid_character(self):
        with pytest.raises(LexError) as exc:
            tokenize("program $")
        diag = exc.value.diagnostic
        assert diag.kind == ErrorKind.INVALID_CHARACTER
        assert diag.location.line == 1
        assert diag.location.column == 9

    def test_non_ascii_identifier_rejected(self):
        with pytest.raises(LexError):
            tokenize("prögram")

    def test_single_ampersand_rejected(self):
        with pytest.raises(LexError):
            tokenize("a & b")


class TestLocations:
    """Every token carries line, column, byte offset and byte length."""

    def test_line_and_column(self):
        tokens = tokenize("program\n  Counter")
        assert (tokens[1].location.line, tokens[1].location.column) == (2, 3)

    def test_offset_and_length(self):
        tokens = tokenize("program Counter")
        assert tokens[1].location.offset == 8
        assert tokens[1].location.length == 7

    def test_offset_counts_utf8_bytes(self):
        tokens = tokenize('"é" x')
        # The string token spans quote + two bytes + quote.
        assert tokens[0].location.length == 4
        assert tokens[1].location.offset == 5

    def test_filename_recorded(self):
        tokens = tokenize("program", filename="counter.solx")
        assert tokens[0].location.file == "counter.solx"
        assert str(tokens[0].location) == "counter.solx:1:1"
