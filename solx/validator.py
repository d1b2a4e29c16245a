"""SOL-X Validator — name resolution, type checking, HIR construction.

Walks the whole AST once and either returns an immutable HirProgram or raises
the ValidationError of the first failing check. Account declarations are
visible program-wide, so a parameter may name an account declared after the
instruction that uses it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from solx.ast_nodes import (
    Program, AccountDef, Instruction, Param,
    Statement, InitStmt, RequireStmt, AssignStmt, ExprStmt,
    Expr, IntLiteral, BoolLiteral, StringLiteral,
    Identifier, FieldAccess, BinaryOp, UnaryOp,
)
from solx.errors import (
    ErrorKind, SourceLocation, ValidationError,
    validation_error, unresolved_name, duplicate_declaration,
    type_mismatch, expected_type,
    invalid_init, invalid_field_access, invalid_assignment,
)
from solx.hir import (
    HirProgram, HirAccount, HirField, HirInstruction, HirParam, ParamKind,
    HirStatement, HirInit, HirRequire, HirAssign, HirExprStmt,
    HirExpr, HirLiteral, HirParamRef, HirFieldGet, HirAccountKey, HirBinary, HirUnary,
    root_param, constant_value,
)
from solx.naming import (
    RUST_KEYWORDS, FRAMEWORK_TYPE_NAMES, RESERVED_PARAM_NAMES,
    context_name, module_name,
)
from solx.types import (
    SolxType, IntType, BoolType, StringType, VecType, OptionType,
    AccountRef, SignerRef, IntLiteralType,
    BOOL, PUBKEY, STRING, INT_LITERAL, I64, U64,
    BUILTIN_TYPE_NAMES, is_integer, types_match, contains_reference,
)

logger = logging.getLogger(__name__)


ARITHMETIC_OPS = frozenset({"+", "-", "*", "/", "%"})
RELATIONAL_OPS = frozenset({"<", "<=", ">", ">="})
EQUALITY_OPS = frozenset({"==", "!="})
LOGICAL_OPS = frozenset({"&&", "||"})

# Pseudo-field giving the address of a signer or account parameter.
KEY_FIELD = "key"


class Validator:
    """Validates a Program and lowers it to HIR."""

    def __init__(self, program: Program):
        self.program = program
        self._account_defs: dict[str, AccountDef] = {}
        self._accounts: dict[str, HirAccount] = {}
        # Per-instruction scope.
        self._params: dict[str, HirParam] = {}

    # -------------------------------------------------------------------
    # Program
    # -------------------------------------------------------------------

    def validate(self) -> HirProgram:
        program = self.program
        self._check_identifier(program.name, "program name", program.location)
        self._check_identifier(module_name(program.name), "program module name", program.location)

        context_names: dict[str, str] = {}
        for instr in program.instructions:
            ctx = context_name(instr.name)
            if ctx in context_names:
                raise validation_error(
                    ErrorKind.DUPLICATE_DECLARATION,
                    f"Duplicate instruction '{instr.name}'"
                    if context_names[ctx] == instr.name else
                    f"Instruction '{instr.name}' collides with '{context_names[ctx]}' in generated code",
                    instr.location,
                    name=instr.name,
                    what="instruction",
                )
            context_names[ctx] = instr.name

        for account in program.accounts:
            if account.name in self._account_defs:
                raise duplicate_declaration(account.name, "account", account.location)
            self._check_identifier(account.name, "account name", account.location)
            if account.name in FRAMEWORK_TYPE_NAMES or account.name in BUILTIN_TYPE_NAMES:
                raise validation_error(
                    ErrorKind.RESERVED_NAME,
                    f"Account name '{account.name}' shadows a built-in type",
                    account.location,
                    name=account.name,
                )
            if account.name in context_names:
                raise validation_error(
                    ErrorKind.RESERVED_NAME,
                    f"Account name '{account.name}' collides with the accounts context "
                    f"generated for instruction '{context_names[account.name]}'",
                    account.location,
                    name=account.name,
                )
            self._account_defs[account.name] = account

        for account in program.accounts:
            self._check_account_fields(account)

        # Accounts may embed each other; build handles dependencies-first.
        for account in program.accounts:
            self._build_account(account.name, ())

        instructions = tuple(self._validate_instruction(i) for i in program.instructions)

        logger.debug("validated program %s", program.name)
        return HirProgram(
            name=program.name,
            accounts=tuple(self._accounts[a.name] for a in program.accounts),
            instructions=instructions,
            filename=program.filename,
        )

    def _check_identifier(self, name: str, what: str, location: Optional[SourceLocation]) -> None:
        if name in RUST_KEYWORDS:
            raise validation_error(
                ErrorKind.RESERVED_NAME,
                f"{what[:1].upper() + what[1:]} '{name}' is a reserved word",
                location,
                name=name,
            )

    # -------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------

    def _check_account_fields(self, account: AccountDef) -> None:
        seen: set[str] = set()
        for f in account.fields:
            if f.name in seen:
                raise duplicate_declaration(f.name, f"field in account '{account.name}'", f.location)
            seen.add(f.name)
            self._check_identifier(f.name, "field name", f.location)
            self._check_field_type(f.type, f.location)

    def _check_field_type(self, ty: SolxType, location: Optional[SourceLocation]) -> None:
        if isinstance(ty, SignerRef):
            raise validation_error(
                ErrorKind.INVALID_TYPE,
                "'Signer' is only valid as an instruction parameter type",
                location,
                type=str(ty),
            )
        if isinstance(ty, AccountRef):
            if ty.name not in self._account_defs:
                raise unresolved_name(ty.name, "account type", location)
        elif isinstance(ty, StringType):
            self._check_capacity(ty, ty.max_len, location)
        elif isinstance(ty, VecType):
            self._check_capacity(ty, ty.max_len, location)
            self._check_field_type(ty.element, location)
        elif isinstance(ty, OptionType):
            self._check_field_type(ty.inner, location)

    def _check_capacity(self, ty: SolxType, max_len: Optional[int],
                        location: Optional[SourceLocation]) -> None:
        if max_len is None:
            raise validation_error(
                ErrorKind.INVALID_TYPE,
                f"Account field of type '{ty}' needs a declared capacity "
                f"(e.g. 'String<32>' or 'Vec<u8, 16>')",
                location,
                type=str(ty),
            )
        if max_len == 0:
            raise validation_error(
                ErrorKind.INVALID_TYPE,
                f"Capacity of '{ty}' must be positive",
                location,
                type=str(ty),
            )

    def _build_account(self, name: str, path: tuple[str, ...]) -> HirAccount:
        if name in self._accounts:
            return self._accounts[name]
        account = self._account_defs[name]
        if name in path:
            cycle = " -> ".join(path[path.index(name):] + (name,))
            raise validation_error(
                ErrorKind.INVALID_TYPE,
                f"Account '{name}' embeds itself ({cycle})",
                account.location,
                name=name,
            )
        fields: list[HirField] = []
        for index, f in enumerate(account.fields):
            embedded: Optional[HirAccount] = None
            for ref in _account_refs(f.type):
                built = self._build_account(ref, path + (name,))
                if f.type == AccountRef(ref):
                    embedded = built
            fields.append(HirField(
                name=f.name, ty=f.type, index=index, owner=name, account=embedded,
            ))
        hir_account = HirAccount(name=name, fields=tuple(fields))
        self._accounts[name] = hir_account
        return hir_account

    # -------------------------------------------------------------------
    # Instructions
    # -------------------------------------------------------------------

    def _validate_instruction(self, instr: Instruction) -> HirInstruction:
        self._check_identifier(instr.name, "instruction name", instr.location)
        self._params = {}
        params: list[HirParam] = []
        for index, p in enumerate(instr.params):
            param = self._resolve_param(p, index)
            if param.name in self._params:
                raise duplicate_declaration(p.name, f"parameter in instruction '{instr.name}'", p.location)
            self._params[param.name] = param
            params.append(param)

        body: list[HirStatement] = []
        initialized: set[str] = set()
        for stmt in instr.body:
            hir_stmt = self._validate_statement(stmt)
            if isinstance(hir_stmt, HirInit):
                if hir_stmt.param.name in initialized:
                    raise invalid_init(
                        f"Account '{hir_stmt.param.name}' is initialized more than once",
                        stmt.location,
                        name=hir_stmt.param.name,
                    )
                initialized.add(hir_stmt.param.name)
            body.append(hir_stmt)

        logger.debug("validated instruction %s: %d params, %d statements",
                     instr.name, len(params), len(body))
        return HirInstruction(name=instr.name, params=tuple(params), body=tuple(body))

    def _resolve_param(self, p: Param, index: int) -> HirParam:
        self._check_identifier(p.name, "parameter name", p.location)
        if p.name in RESERVED_PARAM_NAMES:
            raise validation_error(
                ErrorKind.RESERVED_NAME,
                f"Parameter name '{p.name}' is reserved",
                p.location,
                name=p.name,
            )
        ty = p.type
        if isinstance(ty, SignerRef):
            return HirParam(name=p.name, ty=ty, index=index, kind=ParamKind.SIGNER)
        if isinstance(ty, AccountRef):
            account = self._accounts.get(ty.name)
            if account is None:
                raise unresolved_name(ty.name, "account type", p.location)
            return HirParam(name=p.name, ty=ty, index=index, kind=ParamKind.ACCOUNT, account=account)
        if contains_reference(ty):
            for ref in _account_refs(ty):
                if ref not in self._accounts:
                    raise unresolved_name(ref, "account type", p.location)
            raise validation_error(
                ErrorKind.INVALID_TYPE,
                f"Parameter type '{ty}' may not nest an account or signer",
                p.location,
                type=str(ty),
            )
        return HirParam(name=p.name, ty=ty, index=index, kind=ParamKind.VALUE)

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _validate_statement(self, stmt: Statement) -> HirStatement:
        if isinstance(stmt, InitStmt):
            return self._validate_init(stmt)
        elif isinstance(stmt, RequireStmt):
            condition = self._expr(stmt.condition)
            if not isinstance(condition.ty, BoolType):
                raise expected_type("bool", str(condition.ty), "require condition", stmt.condition.location)
            return HirRequire(condition=condition, message=stmt.message, location=stmt.location)
        elif isinstance(stmt, AssignStmt):
            return self._validate_assign(stmt)
        elif isinstance(stmt, ExprStmt):
            expr = self._expr(stmt.expr)
            if isinstance(expr.ty, IntLiteralType):
                expr = self._fix_literal(expr, self._literal_width(expr))
            return HirExprStmt(expr=expr, location=stmt.location)
        raise validation_error(
            ErrorKind.UNSUPPORTED_CONSTRUCT,
            f"Unsupported statement '{type(stmt).__name__}'",
            stmt.location,
        )

    def _validate_init(self, stmt: InitStmt) -> HirInit:
        account = self._accounts.get(stmt.account_type)
        if account is None:
            raise unresolved_name(stmt.account_type, "account type", stmt.location)
        param = self._params.get(stmt.var)
        if param is None:
            raise unresolved_name(stmt.var, "parameter", stmt.location)
        if param.kind != ParamKind.ACCOUNT or param.ty != AccountRef(stmt.account_type):
            raise invalid_init(
                f"Cannot init '{stmt.var}' as '{stmt.account_type}': "
                f"parameter is declared as '{param.ty}'",
                stmt.location,
                name=stmt.var,
                expected_type=stmt.account_type,
                actual_type=str(param.ty),
            )
        payer = self._signer_param(stmt.payer, "payer", stmt.location)
        signer = self._signer_param(stmt.signer, "signer", stmt.location) if stmt.signer else None
        return HirInit(param=param, account=account, payer=payer, signer=signer, location=stmt.location)

    def _signer_param(self, name: str, role: str, location: Optional[SourceLocation]) -> HirParam:
        param = self._params.get(name)
        if param is None:
            raise unresolved_name(name, "parameter", location)
        if param.kind != ParamKind.SIGNER:
            raise invalid_init(
                f"Init {role} '{name}' must be a Signer parameter, not '{param.ty}'",
                location,
                name=name,
                role=role,
            )
        return param

    def _validate_assign(self, stmt: AssignStmt) -> HirAssign:
        target = self._expr(stmt.target)
        self._check_assignable(target, stmt.target.location)

        if stmt.op == "=":
            value_expr = stmt.value
        else:
            # x OP= y  is checked and lowered as  x = x OP y
            value_expr = BinaryOp(op=stmt.op[:-1], left=stmt.target, right=stmt.value,
                                  location=stmt.location)
        value = self._coerce(self._expr(value_expr), target.ty, "assignment", value_expr.location)
        return HirAssign(target=target, value=value, location=stmt.location)

    def _check_assignable(self, target: HirExpr, location: Optional[SourceLocation]) -> None:
        if isinstance(target, HirFieldGet):
            root = root_param(target)
            if root is not None and root.kind == ParamKind.ACCOUNT:
                return
        if isinstance(target, HirAccountKey):
            raise invalid_assignment(
                f"The '{KEY_FIELD}' of '{target.base.param.name}' cannot be assigned",
                location,
            )
        raise invalid_assignment(
            "Assignment target must be a field of an account parameter",
            location,
        )

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _expr(self, expr: Expr) -> HirExpr:
        loc = expr.location

        if isinstance(expr, IntLiteral):
            return HirLiteral(ty=INT_LITERAL, value=expr.value, location=loc)

        if isinstance(expr, BoolLiteral):
            return HirLiteral(ty=BOOL, value=expr.value, location=loc)

        if isinstance(expr, StringLiteral):
            return HirLiteral(ty=STRING, value=expr.value, location=loc)

        if isinstance(expr, Identifier):
            param = self._params.get(expr.name)
            if param is None:
                raise unresolved_name(expr.name, "name", loc)
            return HirParamRef(ty=param.ty, param=param, location=loc)

        if isinstance(expr, FieldAccess):
            return self._field_access(expr)

        if isinstance(expr, BinaryOp):
            return self._binary(expr)

        if isinstance(expr, UnaryOp):
            return self._unary(expr)

        raise validation_error(
            ErrorKind.UNSUPPORTED_CONSTRUCT,
            f"Unsupported expression '{type(expr).__name__}'",
            loc,
        )

    def _field_access(self, expr: FieldAccess) -> HirExpr:
        base = self._expr(expr.base)
        loc = expr.location
        name = expr.field_name

        if isinstance(base.ty, AccountRef):
            account = self._accounts[base.ty.name]
            f = account.get_field(name)
            if f is not None:
                return HirFieldGet(ty=f.ty, base=base, field=f, location=loc)
            if name == KEY_FIELD and isinstance(base, HirParamRef):
                return HirAccountKey(ty=PUBKEY, base=base, location=loc)
            raise invalid_field_access(
                f"Account '{account.name}' has no field '{name}'",
                loc,
                account=account.name,
                field=name,
            )

        if isinstance(base.ty, SignerRef) and isinstance(base, HirParamRef):
            if name == KEY_FIELD:
                return HirAccountKey(ty=PUBKEY, base=base, location=loc)
            raise invalid_field_access(
                f"Signer '{base.param.name}' has no field '{name}' (only '{KEY_FIELD}')",
                loc,
                field=name,
            )

        raise invalid_field_access(
            f"Cannot access field '{name}' on a value of type '{base.ty}'",
            loc,
            type=str(base.ty),
            field=name,
        )

    def _binary(self, expr: BinaryOp) -> HirExpr:
        op = expr.op
        loc = expr.location
        left = self._expr(expr.left)
        right = self._expr(expr.right)

        if op in LOGICAL_OPS:
            if not (isinstance(left.ty, BoolType) and isinstance(right.ty, BoolType)):
                raise type_mismatch(op, str(left.ty), str(right.ty), loc)
            return HirBinary(ty=BOOL, op=op, left=left, right=right, operand_ty=BOOL, location=loc)

        left, right, operand_ty = self._unify(op, left, right, loc)

        if op in ARITHMETIC_OPS:
            if not is_integer(operand_ty):
                raise type_mismatch(op, str(left.ty), str(right.ty), loc)
            if op in ("/", "%") and constant_value(right) == 0:
                raise validation_error(
                    ErrorKind.TYPE_MISMATCH,
                    f"Operator '{op}' has a constant divisor of zero",
                    expr.right.location or loc,
                    operator=op,
                )
            return HirBinary(ty=operand_ty, op=op, left=left, right=right,
                             operand_ty=operand_ty, location=loc)

        if op in RELATIONAL_OPS or op in EQUALITY_OPS:
            if contains_reference(operand_ty):
                raise type_mismatch(op, str(left.ty), str(right.ty), loc)
            if isinstance(operand_ty, IntLiteralType):
                # Both sides are literal-only; compare at a fixed width.
                operand_ty = self._literal_width(left, right)
                left = self._fix_literal(left, operand_ty)
                right = self._fix_literal(right, operand_ty)
            return HirBinary(ty=BOOL, op=op, left=left, right=right,
                             operand_ty=operand_ty, location=loc)

        raise validation_error(ErrorKind.UNSUPPORTED_CONSTRUCT, f"Unknown operator '{op}'", loc)

    def _unify(self, op: str, left: HirExpr, right: HirExpr,
               loc: Optional[SourceLocation]) -> tuple[HirExpr, HirExpr, SolxType]:
        """Bring both operands to one type; integer literals adopt the other side's width."""
        lt, rt = left.ty, right.ty
        if isinstance(lt, IntLiteralType) and isinstance(rt, IntType):
            return self._coerce(left, rt, f"operand of '{op}'", loc), right, rt
        if isinstance(rt, IntLiteralType) and isinstance(lt, IntType):
            return left, self._coerce(right, lt, f"operand of '{op}'", loc), lt
        if types_match(lt, rt):
            return left, right, lt
        raise type_mismatch(op, str(lt), str(rt), loc)

    def _unary(self, expr: UnaryOp) -> HirExpr:
        operand = self._expr(expr.operand)
        loc = expr.location
        ty = operand.ty
        if expr.op == "!":
            if not isinstance(ty, BoolType):
                raise validation_error(
                    ErrorKind.TYPE_MISMATCH,
                    f"Operator '!' cannot be applied to '{ty}'",
                    loc,
                    operator="!",
                    operand_type=str(ty),
                )
            return HirUnary(ty=BOOL, op="!", operand=operand, location=loc)
        if expr.op == "-":
            if isinstance(ty, IntLiteralType) or (isinstance(ty, IntType) and ty.signed):
                return HirUnary(ty=ty, op="-", operand=operand, location=loc)
            raise validation_error(
                ErrorKind.TYPE_MISMATCH,
                f"Operator '-' cannot be applied to '{ty}'",
                loc,
                operator="-",
                operand_type=str(ty),
            )
        raise validation_error(ErrorKind.UNSUPPORTED_CONSTRUCT, f"Unknown operator '{expr.op}'", loc)

    # -------------------------------------------------------------------
    # Coercion
    # -------------------------------------------------------------------

    def _coerce(self, expr: HirExpr, target: SolxType, context: str,
                loc: Optional[SourceLocation]) -> HirExpr:
        """Check that expr can be stored as target, fixing literal widths."""
        if isinstance(expr.ty, IntLiteralType) and isinstance(target, IntType):
            return self._fix_literal(expr, target)
        if not types_match(expr.ty, target):
            raise expected_type(str(target), str(expr.ty), context, loc)
        if (isinstance(target, StringType) and target.max_len is not None
                and isinstance(expr, HirLiteral)):
            size = len(str(expr.value).encode("utf-8"))
            if size > target.max_len:
                raise validation_error(
                    ErrorKind.TYPE_MISMATCH,
                    f"String literal of {size} bytes exceeds capacity of '{target}'",
                    loc,
                    expected_type=str(target),
                    length=size,
                )
        return expr

    def _fix_literal(self, expr: HirExpr, target: IntType) -> HirExpr:
        if isinstance(expr, HirLiteral):
            if not target.contains(expr.value):
                raise self._out_of_range(expr.value, target, expr.location)
            return replace(expr, ty=target)
        if isinstance(expr, HirUnary) and expr.op == "-":
            if not target.signed:
                raise validation_error(
                    ErrorKind.TYPE_MISMATCH,
                    f"Cannot negate a value of unsigned type '{target}'",
                    expr.location,
                    operator="-",
                    operand_type=str(target),
                )
            operand = expr.operand
            if isinstance(operand, HirLiteral):
                if not target.contains(-operand.value):
                    raise self._out_of_range(-operand.value, target, expr.location)
                operand = replace(operand, ty=target)
            else:
                operand = self._fix_literal(operand, target)
            return replace(expr, ty=target, operand=operand)
        if isinstance(expr, HirBinary):
            fixed = replace(
                expr,
                ty=target,
                operand_ty=target,
                left=self._fix_literal(expr.left, target),
                right=self._fix_literal(expr.right, target),
            )
            value = constant_value(fixed)
            if value is not None and not target.contains(value):
                raise self._out_of_range(value, target, expr.location)
            return fixed
        return expr

    def _literal_width(self, *exprs: HirExpr) -> IntType:
        """Width for literal-only integer expressions with nothing else to adopt."""
        values = [constant_value(e) for e in exprs]
        for width in (I64, U64):
            if all(v is None or width.contains(v) for v in values):
                return width
        value = max((v for v in values if v is not None), key=abs)
        raise self._out_of_range(value, U64, exprs[0].location)

    def _out_of_range(self, value: int, target: IntType,
                      loc: Optional[SourceLocation]) -> ValidationError:
        return validation_error(
            ErrorKind.TYPE_MISMATCH,
            f"Integer literal {value} is out of range for '{target}'",
            loc,
            expected_type=str(target),
            value=value,
        )


def _account_refs(ty: SolxType) -> list[str]:
    """Names of all accounts referenced anywhere inside a type."""
    if isinstance(ty, AccountRef):
        return [ty.name]
    if isinstance(ty, VecType):
        return _account_refs(ty.element)
    if isinstance(ty, OptionType):
        return _account_refs(ty.inner)
    return []


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate(program: Program) -> HirProgram:
    """Validate an AST and lower it to HIR. Raises ValidationError."""
    return Validator(program).validate()
