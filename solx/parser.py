"""SOL-X Parser — LL(1) recursive-descent parser.

Parses token stream into AST. Declarations and statements are recursive
descent; expressions use precedence climbing. The first syntax error aborts
the compilation unit.
"""

from __future__ import annotations

import logging
from typing import Optional

from solx.lexer import KEYWORDS, OPERATORS, Token, TokenType, tokenize
from solx.ast_nodes import (
    Program, AccountDef, Field, Instruction, Param,
    Statement, InitStmt, RequireStmt, AssignStmt, ExprStmt,
    Expr, IntLiteral, StringLiteral, BoolLiteral,
    Identifier, BinaryOp, UnaryOp, FieldAccess,
)
from solx.errors import SourceLocation, unexpected_token
from solx.types import (
    SolxType, PRIMITIVE_TYPES, StringType, VecType, OptionType, AccountRef, SIGNER,
)

logger = logging.getLogger(__name__)


# Binary precedence levels, loosest first. All are left-associative.
BINARY_LEVELS: list[dict[TokenType, str]] = [
    {TokenType.OR: "||"},
    {TokenType.AND: "&&"},
    {TokenType.EQ: "==", TokenType.NEQ: "!="},
    {TokenType.LT: "<", TokenType.LTE: "<=", TokenType.GT: ">", TokenType.GTE: ">="},
    {TokenType.PLUS: "+", TokenType.MINUS: "-"},
    {TokenType.STAR: "*", TokenType.SLASH: "/", TokenType.PERCENT: "%"},
]

UNARY_OPS: dict[TokenType, str] = {
    TokenType.NOT: "!",
    TokenType.MINUS: "-",
}

ASSIGN_TOKENS: dict[TokenType, str] = {
    TokenType.ASSIGN: "=",
    TokenType.PLUS_ASSIGN: "+=",
    TokenType.MINUS_ASSIGN: "-=",
    TokenType.STAR_ASSIGN: "*=",
    TokenType.SLASH_ASSIGN: "/=",
    TokenType.PERCENT_ASSIGN: "%=",
}

TOKEN_NAMES: dict[TokenType, str] = {
    TokenType.IDENT: "identifier",
    TokenType.INT_LIT: "integer literal",
    TokenType.STRING_LIT: "string literal",
    TokenType.EOF: "end of input",
}

# Source spelling of every keyword and punctuation token.
TOKEN_TEXT: dict[TokenType, str] = {
    **{tt: text for text, tt in KEYWORDS.items()},
    **{tt: text for text, tt in OPERATORS},
}


def _describe(tt: TokenType) -> str:
    if tt in TOKEN_NAMES:
        return TOKEN_NAMES[tt]
    return f"'{TOKEN_TEXT[tt]}'"


class Parser:
    """LL(1) recursive-descent parser for SOL-X."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>"):
        self.tokens = tokens
        self.pos = 0
        self.filename = filename

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self) -> TokenType:
        return self._current().type

    def _loc(self) -> SourceLocation:
        return self._current().location

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _error(self, expected: str):
        tok = self._current()
        return unexpected_token(expected, tok.describe(), tok.location)

    def _expect(self, tt: TokenType) -> Token:
        if self._peek() != tt:
            raise self._error(_describe(tt))
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
        self._expect(TokenType.PROGRAM)
        name = self._expect(TokenType.IDENT).value
        accounts: list[AccountDef] = []
        instructions: list[Instruction] = []
        while self._peek() != TokenType.EOF:
            tt = self._peek()
            if tt == TokenType.ACCOUNT:
                accounts.append(self._parse_account_def())
            elif tt == TokenType.INSTRUCTION:
                instructions.append(self._parse_instruction())
            else:
                raise self._error("'account' or 'instruction'")
        logger.debug("parsed program %s: %d accounts, %d instructions",
                     name, len(accounts), len(instructions))
        return Program(
            name=name, accounts=tuple(accounts), instructions=tuple(instructions),
            filename=self.filename, location=loc,
        )

    # -------------------------------------------------------------------
    # account
    # -------------------------------------------------------------------

    def _parse_account_def(self) -> AccountDef:
        loc = self._loc()
        self._expect(TokenType.ACCOUNT)
        name = self._expect(TokenType.IDENT).value
        self._expect(TokenType.LBRACE)
        fields: list[Field] = []
        while self._peek() != TokenType.RBRACE:
            if self._peek() != TokenType.IDENT:
                raise self._error("field name or '}'")
            fields.append(self._parse_field())
            self._match(TokenType.COMMA)
        self._expect(TokenType.RBRACE)
        return AccountDef(name=name, fields=tuple(fields), location=loc)

    def _parse_field(self) -> Field:
        loc = self._loc()
        name = self._expect(TokenType.IDENT).value
        self._expect(TokenType.COLON)
        ty = self._parse_type()
        return Field(name=name, type=ty, location=loc)

    # -------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------

    def _parse_type(self) -> SolxType:
        tok = self._expect(TokenType.IDENT)
        name = tok.value

        if name in PRIMITIVE_TYPES:
            return PRIMITIVE_TYPES[name]
        if name == "Signer":
            return SIGNER
        if name == "String":
            if self._match(TokenType.LT):
                max_len = self._parse_capacity()
                self._expect(TokenType.GT)
                return StringType(max_len)
            return StringType()
        if name == "Vec":
            self._expect(TokenType.LT)
            element = self._parse_type()
            max_len: Optional[int] = None
            if self._match(TokenType.COMMA):
                max_len = self._parse_capacity()
            self._expect(TokenType.GT)
            return VecType(element, max_len)
        if name == "Option":
            self._expect(TokenType.LT)
            inner = self._parse_type()
            self._expect(TokenType.GT)
            return OptionType(inner)
        return AccountRef(name)

    def _parse_capacity(self) -> int:
        return int(self._expect(TokenType.INT_LIT).value)

    # -------------------------------------------------------------------
    # instruction
    # -------------------------------------------------------------------

    def _parse_instruction(self) -> Instruction:
        loc = self._loc()
        self._expect(TokenType.INSTRUCTION)
        name = self._expect(TokenType.IDENT).value
        self._expect(TokenType.LPAREN)
        params = self._parse_param_list()
        self._expect(TokenType.RPAREN)
        self._expect(TokenType.LBRACE)
        body = self._parse_body()
        self._expect(TokenType.RBRACE)
        return Instruction(name=name, params=tuple(params), body=tuple(body), location=loc)

    def _parse_param_list(self) -> list[Param]:
        params: list[Param] = []
        if self._peek() == TokenType.RPAREN:
            return params
        params.append(self._parse_parameter())
        while self._match(TokenType.COMMA):
            params.append(self._parse_parameter())
        return params

    def _parse_parameter(self) -> Param:
        loc = self._loc()
        name = self._expect(TokenType.IDENT).value
        self._expect(TokenType.COLON)
        ty = self._parse_type()
        return Param(name=name, type=ty, location=loc)

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _parse_body(self) -> list[Statement]:
        stmts: list[Statement] = []
        while self._peek() not in (TokenType.RBRACE, TokenType.EOF):
            stmts.append(self._parse_statement())
            self._match(TokenType.SEMICOLON)
        return stmts

    def _parse_statement(self) -> Statement:
        tt = self._peek()
        if tt == TokenType.INIT:
            return self._parse_init()
        elif tt == TokenType.REQUIRE:
            return self._parse_require()
        else:
            return self._parse_expr_or_assign_stmt()

    def _parse_init(self) -> InitStmt:
        loc = self._loc()
        self._expect(TokenType.INIT)
        self._expect(TokenType.ACCOUNT)
        var = self._expect(TokenType.IDENT).value
        self._expect(TokenType.COLON)
        account_type = self._expect(TokenType.IDENT).value
        self._expect(TokenType.PAYER)
        payer = self._expect(TokenType.IDENT).value
        signer: Optional[str] = None
        if self._match(TokenType.SIGNER):
            signer = self._expect(TokenType.IDENT).value
        return InitStmt(var=var, account_type=account_type, payer=payer, signer=signer, location=loc)

    def _parse_require(self) -> RequireStmt:
        loc = self._loc()
        self._expect(TokenType.REQUIRE)
        condition = self._parse_expression()
        message: Optional[str] = None
        if self._match(TokenType.COMMA):
            message = self._expect(TokenType.STRING_LIT).value
        return RequireStmt(condition=condition, message=message, location=loc)

    def _parse_expr_or_assign_stmt(self) -> Statement:
        loc = self._loc()
        expr = self._parse_expression()
        op = ASSIGN_TOKENS.get(self._peek())
        if op is not None:
            self._advance()
            value = self._parse_expression()
            return AssignStmt(target=expr, op=op, value=value, location=loc)
        return ExprStmt(expr=expr, location=loc)

    # -------------------------------------------------------------------
    # Expressions (precedence climbing)
    # -------------------------------------------------------------------

    def _parse_expression(self) -> Expr:
        return self._parse_binary(0)

    def _parse_binary(self, level: int) -> Expr:
        if level == len(BINARY_LEVELS):
            return self._parse_unary()
        ops = BINARY_LEVELS[level]
        left = self._parse_binary(level + 1)
        while self._peek() in ops:
            loc = self._loc()
            op = ops[self._advance().type]
            right = self._parse_binary(level + 1)
            left = BinaryOp(op=op, left=left, right=right, location=loc)
        return left

    def _parse_unary(self) -> Expr:
        op = UNARY_OPS.get(self._peek())
        if op is not None:
            loc = self._loc()
            self._advance()
            operand = self._parse_unary()
            return UnaryOp(op=op, operand=operand, location=loc)
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        expr = self._parse_primary()
        while self._peek() == TokenType.DOT:
            loc = self._loc()
            self._advance()
            field_name = self._expect(TokenType.IDENT).value
            expr = FieldAccess(base=expr, field_name=field_name, location=loc)
        return expr

    def _parse_primary(self) -> Expr:
        tt = self._peek()
        loc = self._loc()

        if tt == TokenType.INT_LIT:
            tok = self._advance()
            return IntLiteral(value=int(tok.value), location=loc)

        if tt == TokenType.STRING_LIT:
            tok = self._advance()
            return StringLiteral(value=tok.value, location=loc)

        if tt == TokenType.TRUE:
            self._advance()
            return BoolLiteral(value=True, location=loc)

        if tt == TokenType.FALSE:
            self._advance()
            return BoolLiteral(value=False, location=loc)

        if tt == TokenType.IDENT:
            tok = self._advance()
            return Identifier(name=tok.value, location=loc)

        if tt == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN)
            return expr

        raise self._error("expression")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(source: str, filename: str = "<stdin>") -> Program:
    """Parse SOL-X source code into an AST."""
    tokens = tokenize(source, filename)
    parser = Parser(tokens, filename)
    return parser.parse()
