"""SOL-X Type System.

Primitive types: Pubkey, u8..u64, i8..i64, bool
Variable-length types: String<N>, Vec<T, N>, Option<T>
Reference types: account names, Signer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


# ---------------------------------------------------------------------------
# Type Representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SolxType:
    """Base type."""
    def __str__(self) -> str:
        return "Unknown"


@dataclass(frozen=True)
class PubkeyType(SolxType):
    def __str__(self) -> str:
        return "Pubkey"


@dataclass(frozen=True)
class IntType(SolxType):
    bits: int = 64
    signed: bool = False

    def __str__(self) -> str:
        return f"{'i' if self.signed else 'u'}{self.bits}"

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def contains(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value


@dataclass(frozen=True)
class BoolType(SolxType):
    def __str__(self) -> str:
        return "bool"


@dataclass(frozen=True)
class StringType(SolxType):
    max_len: Optional[int] = None

    def __str__(self) -> str:
        if self.max_len is not None:
            return f"String<{self.max_len}>"
        return "String"


@dataclass(frozen=True)
class VecType(SolxType):
    element: SolxType = field(default_factory=SolxType)
    max_len: Optional[int] = None

    def __str__(self) -> str:
        if self.max_len is not None:
            return f"Vec<{self.element}, {self.max_len}>"
        return f"Vec<{self.element}>"


@dataclass(frozen=True)
class OptionType(SolxType):
    inner: SolxType = field(default_factory=SolxType)

    def __str__(self) -> str:
        return f"Option<{self.inner}>"


@dataclass(frozen=True)
class AccountRef(SolxType):
    name: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SignerRef(SolxType):
    def __str__(self) -> str:
        return "Signer"


@dataclass(frozen=True)
class IntLiteralType(SolxType):
    """Type of an integer literal not yet fixed to a width."""
    def __str__(self) -> str:
        return "{integer}"


# ---------------------------------------------------------------------------
# Built-in Types
# ---------------------------------------------------------------------------

PUBKEY = PubkeyType()
BOOL = BoolType()
STRING = StringType()
SIGNER = SignerRef()
INT_LITERAL = IntLiteralType()

U8 = IntType(8, False)
U16 = IntType(16, False)
U32 = IntType(32, False)
U64 = IntType(64, False)
I8 = IntType(8, True)
I16 = IntType(16, True)
I32 = IntType(32, True)
I64 = IntType(64, True)

PRIMITIVE_TYPES: dict[str, SolxType] = {
    "Pubkey": PUBKEY,
    "u8": U8,
    "u16": U16,
    "u32": U32,
    "u64": U64,
    "i8": I8,
    "i16": I16,
    "i32": I32,
    "i64": I64,
    "bool": BOOL,
}

# Serialized byte width of each fixed-size primitive.
FIXED_SIZES: dict[SolxType, int] = {
    PUBKEY: 32,
    U8: 1, I8: 1,
    U16: 2, I16: 2,
    U32: 4, I32: 4,
    U64: 8, I64: 8,
    BOOL: 1,
}

# Names the parser treats as type constructors rather than account references.
BUILTIN_TYPE_NAMES = frozenset(PRIMITIVE_TYPES) | {"String", "Vec", "Option", "Signer"}


def fixed_size(ty: SolxType) -> Optional[int]:
    return FIXED_SIZES.get(ty)


def is_integer(ty: SolxType) -> bool:
    return isinstance(ty, (IntType, IntLiteralType))


def types_match(a: SolxType, b: SolxType) -> bool:
    """Structural equality ignoring declared capacities."""
    if isinstance(a, StringType) and isinstance(b, StringType):
        return True
    if isinstance(a, VecType) and isinstance(b, VecType):
        return types_match(a.element, b.element)
    if isinstance(a, OptionType) and isinstance(b, OptionType):
        return types_match(a.inner, b.inner)
    return a == b


def contains_reference(ty: SolxType) -> bool:
    """True if the type is, or nests, an account or signer reference."""
    if isinstance(ty, (AccountRef, SignerRef)):
        return True
    if isinstance(ty, VecType):
        return contains_reference(ty.element)
    if isinstance(ty, OptionType):
        return contains_reference(ty.inner)
    return False


def is_copy(ty: SolxType) -> bool:
    """Whether values of this type are bitwise-copied in the generated code."""
    if isinstance(ty, (PubkeyType, IntType, BoolType, IntLiteralType)):
        return True
    if isinstance(ty, OptionType):
        return is_copy(ty.inner)
    return False
