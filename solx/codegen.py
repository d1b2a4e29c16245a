"""SOL-X Code Generation — HIR → Anchor program source.

Produces a single Rust `lib.rs` for the Anchor framework:

  1. prelude import and declare_id!
  2. one #[account] struct per account, with its allocation size
  3. the #[program] module, one handler per instruction
  4. one #[derive(Accounts)] context struct per instruction
  5. the #[error_code] enum, when any require exists

Generation is a pure function of the HIR and the options: the same input
always yields byte-identical output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from solx.errors import codegen_error
from solx.hir import (
    HirProgram, HirAccount, HirInstruction, HirParam, ParamKind,
    HirStatement, HirInit, HirRequire, HirAssign, HirExprStmt,
    HirExpr, HirLiteral, HirParamRef, HirFieldGet, HirAccountKey, HirBinary, HirUnary,
    constant_value,
)
from solx.layout import account_space, program_layout
from solx.naming import context_name, module_name, pascal_case
from solx.types import (
    SolxType, PubkeyType, IntType, BoolType, StringType, VecType, OptionType,
    AccountRef, is_copy,
)

logger = logging.getLogger(__name__)


# The System Program address, Anchor's placeholder program id.
DEFAULT_PROGRAM_ID = "11111111111111111111111111111111"

DEFAULT_ERROR_VARIANT = "RequireViolated"

INDENT = "    "

RUST_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\0": "\\0",
}


@dataclass(frozen=True)
class GeneratorOptions:
    program_id: str = DEFAULT_PROGRAM_ID


@dataclass(frozen=True)
class GeneratedSource:
    program_name: str
    module_name: str
    code: str
    account_sizes: dict[str, int] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.code


# ---------------------------------------------------------------------------
# Rust spelling helpers
# ---------------------------------------------------------------------------

def rust_string(value: str) -> str:
    """Quote a value as a Rust string literal."""
    return '"' + "".join(RUST_ESCAPES.get(ch, ch) for ch in value) + '"'


def rust_format_string(value: str) -> str:
    """Quote a value for a macro that treats its argument as a format string."""
    return rust_string(value.replace("{", "{{").replace("}", "}}"))


def rust_type(ty: SolxType) -> str:
    """Rust spelling of a field or argument type. Capacities are layout-only."""
    if isinstance(ty, (PubkeyType, IntType, BoolType)):
        return str(ty)
    if isinstance(ty, StringType):
        return "String"
    if isinstance(ty, VecType):
        return f"Vec<{rust_type(ty.element)}>"
    if isinstance(ty, OptionType):
        return f"Option<{rust_type(ty.inner)}>"
    if isinstance(ty, AccountRef):
        return ty.name
    raise codegen_error(f"Type '{ty}' has no Rust representation")


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------

class AnchorGenerator:
    """Emits Anchor source for a validated program."""

    def __init__(self, program: HirProgram, options: Optional[GeneratorOptions] = None):
        self.program = program
        self.options = options or GeneratorOptions()
        # (instruction index, statement index) -> ErrorCode variant
        self._variants: dict[tuple[int, int], str] = {}
        self._messages: list[tuple[str, str]] = []
        self._uses_default_variant = False

    def generate(self) -> GeneratedSource:
        program = self.program
        self._collect_requires()

        blocks: list[str] = [self._emit_header()]
        for account in program.accounts:
            blocks.append(self._emit_account(account))
        blocks.append(self._emit_program_module())
        for instr in program.instructions:
            blocks.append(self._emit_context(instr))
        if self._messages or self._uses_default_variant:
            blocks.append(self._emit_error_code())

        code = "\n\n".join(blocks) + "\n"
        logger.debug("generated %d bytes of Anchor source for %s", len(code), program.name)
        return GeneratedSource(
            program_name=program.name,
            module_name=module_name(program.name),
            code=code,
            account_sizes=program_layout(program),
        )

    def _collect_requires(self) -> None:
        for i, instr in enumerate(self.program.instructions):
            k = 0
            for j, stmt in enumerate(instr.body):
                if not isinstance(stmt, HirRequire):
                    continue
                k += 1
                if stmt.message is None:
                    self._variants[(i, j)] = DEFAULT_ERROR_VARIANT
                    self._uses_default_variant = True
                else:
                    variant = f"{pascal_case(instr.name)}Require{k}"
                    self._variants[(i, j)] = variant
                    self._messages.append((variant, stmt.message))

    # -------------------------------------------------------------------
    # Top-level items
    # -------------------------------------------------------------------

    def _emit_header(self) -> str:
        return "\n".join([
            "use anchor_lang::prelude::*;",
            "",
            f"declare_id!({rust_string(self.options.program_id)});",
        ])

    def _emit_account(self, account: HirAccount) -> str:
        lines = ["#[account]", f"pub struct {account.name} {{"]
        for f in account.fields:
            lines.append(f"{INDENT}pub {f.name}: {rust_type(f.ty)},")
        lines.append("}")
        lines.append("")
        lines.append(f"impl {account.name} {{")
        lines.append(f"{INDENT}pub const SPACE: usize = {account_space(account, self.program)};")
        lines.append("}")
        return "\n".join(lines)

    def _emit_program_module(self) -> str:
        handlers = [
            self._emit_handler(i, instr)
            for i, instr in enumerate(self.program.instructions)
        ]
        lines = [
            "#[program]",
            f"pub mod {module_name(self.program.name)} {{",
            f"{INDENT}use super::*;",
        ]
        for handler in handlers:
            lines.append("")
            lines.append(handler)
        lines.append("}")
        return "\n".join(lines)

    def _emit_handler(self, index: int, instr: HirInstruction) -> str:
        pad = INDENT * 2
        lines = [
            f"{INDENT}pub fn {instr.name}(",
            f"{pad}ctx: Context<{context_name(instr.name)}>,",
        ]
        for p in instr.params:
            if p.kind == ParamKind.VALUE:
                lines.append(f"{pad}{p.name}: {rust_type(p.ty)},")
        lines.append(f"{INDENT}) -> Result<()> {{")
        for j, stmt in enumerate(instr.body):
            text = self._emit_statement(stmt, self._variants.get((index, j)))
            if text:
                lines.append(f"{pad}{text}")
        lines.append(f"{pad}Ok(())")
        lines.append(f"{INDENT}}}")
        return "\n".join(lines)

    def _emit_context(self, instr: HirInstruction) -> str:
        name = context_name(instr.name)
        fields: list[str] = []
        for p in instr.params:
            fields.extend(self._emit_context_field(instr, p))
        if instr.has_init:
            fields.append(f"{INDENT}pub system_program: Program<'info, System>,")

        if not fields:
            return "\n".join(["#[derive(Accounts)]", f"pub struct {name} {{}}"])
        return "\n".join(["#[derive(Accounts)]", f"pub struct {name}<'info> {{", *fields, "}"])

    def _emit_context_field(self, instr: HirInstruction, p: HirParam) -> list[str]:
        if p.kind == ParamKind.SIGNER:
            lines = []
            if instr.pays_for_init(p):
                lines.append(f"{INDENT}#[account(mut)]")
            lines.append(f"{INDENT}pub {p.name}: Signer<'info>,")
            return lines

        if p.kind == ParamKind.ACCOUNT:
            lines = []
            init = instr.init_of(p)
            if init is not None:
                lines.extend(self._emit_init_attribute(init))
            elif instr.mutates(p):
                lines.append(f"{INDENT}#[account(mut)]")
            lines.append(f"{INDENT}pub {p.name}: Account<'info, {p.account.name}>,")
            return lines

        return []

    def _emit_init_attribute(self, init: HirInit) -> list[str]:
        pad = INDENT * 2
        args = [
            "init",
            f"payer = {init.payer.name}",
            f"space = {account_space(init.account, self.program)}",
        ]
        if init.signer is not None:
            args.append(f"constraint = {init.signer.name}.is_signer")
        lines = [f"{INDENT}#[account("]
        lines.extend(f"{pad}{arg}," for arg in args[:-1])
        lines.append(f"{pad}{args[-1]}")
        lines.append(f"{INDENT})]")
        return lines

    def _emit_error_code(self) -> str:
        lines = ["#[error_code]", "pub enum ErrorCode {"]
        for variant, message in self._messages:
            lines.append(f"{INDENT}#[msg({rust_format_string(message)})]")
            lines.append(f"{INDENT}{variant},")
        if self._uses_default_variant:
            lines.append(f"{INDENT}{DEFAULT_ERROR_VARIANT},")
        lines.append("}")
        return "\n".join(lines)

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _emit_statement(self, stmt: HirStatement, variant: Optional[str]) -> str:
        if isinstance(stmt, HirInit):
            # Realized by the init attribute on the accounts context.
            return ""
        elif isinstance(stmt, HirRequire):
            return f"require!({self._emit_expr(stmt.condition)}, ErrorCode::{variant});"
        elif isinstance(stmt, HirAssign):
            return f"{self._emit_expr(stmt.target)} = {self._emit_value(stmt.value)};"
        elif isinstance(stmt, HirExprStmt):
            expr = stmt.expr
            if isinstance(expr, (HirParamRef, HirFieldGet)) and not is_copy(expr.ty):
                # Borrow so the statement moves nothing out of its place.
                return f"let _ = &{self._emit_expr(expr)};"
            return f"{self._emit_expr(expr, suffix=constant_value(expr) is not None)};"
        raise codegen_error(
            f"No Anchor translation for statement '{type(stmt).__name__}'",
            stmt.location,
        )

    def _emit_value(self, expr: HirExpr) -> str:
        """An expression in a position that takes ownership of its value."""
        if isinstance(expr, HirLiteral) and isinstance(expr.value, str):
            return f"String::from({rust_string(expr.value)})"
        if isinstance(expr, (HirParamRef, HirFieldGet)) and not is_copy(expr.ty):
            return f"{self._emit_expr(expr)}.clone()"
        return self._emit_expr(expr)

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _emit_expr(self, expr: HirExpr, suffix: bool = False) -> str:
        """Rust for expr. With suffix, integer literals carry their width."""
        if isinstance(expr, HirLiteral):
            if isinstance(expr.value, bool):
                return "true" if expr.value else "false"
            if isinstance(expr.value, str):
                return rust_string(expr.value)
            if suffix and isinstance(expr.ty, IntType):
                return f"{expr.value}{expr.ty}"
            return str(expr.value)

        if isinstance(expr, HirParamRef):
            if expr.param.kind == ParamKind.VALUE:
                return expr.param.name
            return f"ctx.accounts.{expr.param.name}"

        if isinstance(expr, HirFieldGet):
            return f"{self._emit_expr(expr.base)}.{expr.field.name}"

        if isinstance(expr, HirAccountKey):
            return f"{self._emit_expr(expr.base)}.key()"

        if isinstance(expr, HirBinary):
            if constant_value(expr.left) is not None and constant_value(expr.right) is not None:
                # Literal-only operands have no other side to infer a width from.
                suffix = True
            left = self._emit_expr(expr.left, suffix)
            right = self._emit_expr(expr.right, suffix)
            return f"({left} {expr.op} {right})"

        if isinstance(expr, HirUnary):
            return f"{expr.op}{self._emit_expr(expr.operand, suffix)}"

        raise codegen_error(
            f"No Anchor translation for expression '{type(expr).__name__}'",
            expr.location,
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate(program: HirProgram, options: Optional[GeneratorOptions] = None) -> GeneratedSource:
    """Generate Anchor source for a validated program. Raises CodegenError."""
    return AnchorGenerator(program, options).generate()
