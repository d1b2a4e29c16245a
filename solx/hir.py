"""SOL-X HIR — the validated, typed program handed to code generation.

Every expression carries its resolved type and every name is replaced by a
handle to its declaration. Compound assignments are already lowered to plain
assignments. HIR nodes are frozen; the validator builds them once.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from solx.errors import SourceLocation
from solx.types import SolxType


class ParamKind(Enum):
    SIGNER = "signer"
    ACCOUNT = "account"
    VALUE = "value"


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HirField:
    name: str
    ty: SolxType
    index: int
    owner: str
    # Set when the field embeds another account struct.
    account: Optional[HirAccount] = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": str(self.ty)}


@dataclass(frozen=True)
class HirAccount:
    name: str
    fields: tuple[HirField, ...] = ()

    def get_field(self, name: str) -> Optional[HirField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "fields": [f.to_dict() for f in self.fields]}


@dataclass(frozen=True)
class HirParam:
    name: str
    ty: SolxType
    index: int
    kind: ParamKind
    account: Optional[HirAccount] = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": str(self.ty), "kind": self.kind.value}


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HirExpr:
    ty: SolxType
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class HirLiteral(HirExpr):
    value: Union[int, bool, str] = 0

    def to_dict(self) -> dict[str, Any]:
        return {"expr": "literal", "type": str(self.ty), "value": self.value}


@dataclass(frozen=True)
class HirParamRef(HirExpr):
    param: Optional[HirParam] = None

    def to_dict(self) -> dict[str, Any]:
        return {"expr": "param", "type": str(self.ty), "name": self.param.name}


@dataclass(frozen=True)
class HirFieldGet(HirExpr):
    base: Optional[HirExpr] = None
    field: Optional[HirField] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "expr": "field",
            "type": str(self.ty),
            "base": self.base.to_dict(),
            "field": self.field.name,
        }


@dataclass(frozen=True)
class HirAccountKey(HirExpr):
    """The address of a signer or account parameter."""
    base: Optional[HirParamRef] = None

    def to_dict(self) -> dict[str, Any]:
        return {"expr": "key", "type": str(self.ty), "base": self.base.to_dict()}


@dataclass(frozen=True)
class HirBinary(HirExpr):
    op: str = ""
    left: Optional[HirExpr] = None
    right: Optional[HirExpr] = None
    operand_ty: Optional[SolxType] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "expr": "binary",
            "type": str(self.ty),
            "op": self.op,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }


@dataclass(frozen=True)
class HirUnary(HirExpr):
    op: str = ""
    operand: Optional[HirExpr] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "expr": "unary",
            "type": str(self.ty),
            "op": self.op,
            "operand": self.operand.to_dict(),
        }


def root_param(expr: HirExpr) -> Optional[HirParam]:
    """The parameter a place expression (param or field chain) is rooted at."""
    while isinstance(expr, HirFieldGet):
        expr = expr.base
    if isinstance(expr, HirParamRef):
        return expr.param
    return None


def constant_value(expr: HirExpr) -> Optional[int]:
    """Value of an integer expression built only from literals, else None.

    Division truncates toward zero and the remainder takes the sign of the
    dividend, matching the generated integer arithmetic. A zero divisor
    yields None.
    """
    if isinstance(expr, HirLiteral):
        if isinstance(expr.value, int) and not isinstance(expr.value, bool):
            return expr.value
        return None
    if isinstance(expr, HirUnary) and expr.op == "-":
        value = constant_value(expr.operand)
        return None if value is None else -value
    if isinstance(expr, HirBinary):
        left = constant_value(expr.left)
        right = constant_value(expr.right)
        if left is None or right is None:
            return None
        if expr.op == "+":
            return left + right
        if expr.op == "-":
            return left - right
        if expr.op == "*":
            return left * right
        if expr.op in ("/", "%") and right != 0:
            quotient = abs(left) // abs(right)
            if (left < 0) != (right < 0):
                quotient = -quotient
            return quotient if expr.op == "/" else left - right * quotient
    return None


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HirStatement:
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class HirInit(HirStatement):
    param: Optional[HirParam] = None
    account: Optional[HirAccount] = None
    payer: Optional[HirParam] = None
    signer: Optional[HirParam] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "stmt": "init",
            "var": self.param.name,
            "account": self.account.name,
            "payer": self.payer.name,
        }
        if self.signer:
            d["signer"] = self.signer.name
        return d


@dataclass(frozen=True)
class HirRequire(HirStatement):
    condition: Optional[HirExpr] = None
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"stmt": "require", "condition": self.condition.to_dict()}
        if self.message is not None:
            d["message"] = self.message
        return d


@dataclass(frozen=True)
class HirAssign(HirStatement):
    target: Optional[HirExpr] = None
    value: Optional[HirExpr] = None

    def to_dict(self) -> dict[str, Any]:
        return {"stmt": "assign", "target": self.target.to_dict(), "value": self.value.to_dict()}


@dataclass(frozen=True)
class HirExprStmt(HirStatement):
    expr: Optional[HirExpr] = None

    def to_dict(self) -> dict[str, Any]:
        return {"stmt": "expr", "expr": self.expr.to_dict()}


# ---------------------------------------------------------------------------
# Instructions and program
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HirInstruction:
    name: str
    params: tuple[HirParam, ...] = ()
    body: tuple[HirStatement, ...] = ()

    def init_of(self, param: HirParam) -> Optional[HirInit]:
        for stmt in self.body:
            if isinstance(stmt, HirInit) and stmt.param.name == param.name:
                return stmt
        return None

    def mutates(self, param: HirParam) -> bool:
        """True if any assignment in the body writes through this parameter."""
        for stmt in self.body:
            if isinstance(stmt, HirAssign):
                root = root_param(stmt.target)
                if root is not None and root.name == param.name:
                    return True
        return False

    def pays_for_init(self, param: HirParam) -> bool:
        return any(
            isinstance(stmt, HirInit) and stmt.payer.name == param.name
            for stmt in self.body
        )

    @property
    def has_init(self) -> bool:
        return any(isinstance(stmt, HirInit) for stmt in self.body)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "params": [p.to_dict() for p in self.params],
            "body": [s.to_dict() for s in self.body],
        }


@dataclass(frozen=True)
class HirProgram:
    name: str
    accounts: tuple[HirAccount, ...] = ()
    instructions: tuple[HirInstruction, ...] = ()
    filename: str = "<stdin>"

    def get_account(self, name: str) -> Optional[HirAccount]:
        for account in self.accounts:
            if account.name == name:
                return account
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "program": self.name,
            "accounts": [a.to_dict() for a in self.accounts],
            "instructions": [i.to_dict() for i in self.instructions],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

