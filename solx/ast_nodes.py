"""SOL-X AST Node definitions.

Top-level constructs: program, account, instruction.
Statements: init, require, assignment, expression.

Nodes are frozen and hold their children in tuples; the parser builds the
tree once and nothing mutates it afterwards. Source locations are carried for
diagnostics but ignored by equality.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from solx.errors import SourceLocation
from solx.types import SolxType


ASSIGN_OPS = ("=", "+=", "-=", "*=", "/=", "%=")


@dataclass(frozen=True)
class Node:
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Expr(Node):
    pass


@dataclass(frozen=True)
class Literal(Expr):
    pass


@dataclass(frozen=True)
class IntLiteral(Literal):
    value: int = 0


@dataclass(frozen=True)
class BoolLiteral(Literal):
    value: bool = False


@dataclass(frozen=True)
class StringLiteral(Literal):
    value: str = ""


@dataclass(frozen=True)
class Identifier(Expr):
    name: str = ""


@dataclass(frozen=True)
class FieldAccess(Expr):
    base: Expr = field(default_factory=Expr)
    field_name: str = ""


@dataclass(frozen=True)
class BinaryOp(Expr):
    op: str = ""
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class UnaryOp(Expr):
    op: str = ""
    operand: Expr = field(default_factory=Expr)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Statement(Node):
    pass


@dataclass(frozen=True)
class InitStmt(Statement):
    """init account <var>: <account_type> payer <payer> [signer <signer>]"""
    var: str = ""
    account_type: str = ""
    payer: str = ""
    signer: Optional[str] = None


@dataclass(frozen=True)
class RequireStmt(Statement):
    condition: Expr = field(default_factory=Expr)
    message: Optional[str] = None


@dataclass(frozen=True)
class AssignStmt(Statement):
    target: Expr = field(default_factory=Expr)
    op: str = "="
    value: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class ExprStmt(Statement):
    expr: Expr = field(default_factory=Expr)


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Field(Node):
    name: str = ""
    type: SolxType = field(default_factory=SolxType)


@dataclass(frozen=True)
class AccountDef(Node):
    name: str = ""
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Param(Node):
    name: str = ""
    type: SolxType = field(default_factory=SolxType)


@dataclass(frozen=True)
class Instruction(Node):
    name: str = ""
    params: tuple[Param, ...] = ()
    body: tuple[Statement, ...] = ()


@dataclass(frozen=True)
class Program(Node):
    name: str = ""
    accounts: tuple[AccountDef, ...] = ()
    instructions: tuple[Instruction, ...] = ()
    filename: str = "<stdin>"


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def to_dict(node: Any) -> Any:
    """Convert an AST (or any part of it) to JSON-compatible data."""
    if isinstance(node, Node):
        d: dict[str, Any] = {"node": type(node).__name__}
        for f in dataclasses.fields(node):
            if f.name == "location":
                continue
            d[f.name] = to_dict(getattr(node, f.name))
        if node.location is not None:
            d["location"] = node.location.to_dict()
        return d
    if isinstance(node, tuple):
        return [to_dict(n) for n in node]
    if isinstance(node, SolxType):
        return str(node)
    return node


def to_json(node: Node, indent: int = 2) -> str:
    return json.dumps(to_dict(node), indent=indent)
