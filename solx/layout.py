"""SOL-X Layout — serialized byte size of account data.

Sizes follow the Borsh encoding Anchor uses for account data:
fixed-width primitives at their natural width, a u32 length prefix for
String and Vec, a one-byte tag for Option, and an 8-byte discriminator in
front of every top-level account.
"""

from __future__ import annotations

from solx.errors import codegen_error
from solx.hir import HirAccount, HirProgram
from solx.types import (
    SolxType, StringType, VecType, OptionType, AccountRef, fixed_size,
)

DISCRIMINATOR_SIZE = 8
LENGTH_PREFIX_SIZE = 4
OPTION_TAG_SIZE = 1


def type_size(ty: SolxType, program: HirProgram) -> int:
    size = fixed_size(ty)
    if size is not None:
        return size
    if isinstance(ty, StringType) and ty.max_len is not None:
        return LENGTH_PREFIX_SIZE + ty.max_len
    if isinstance(ty, VecType) and ty.max_len is not None:
        return LENGTH_PREFIX_SIZE + ty.max_len * type_size(ty.element, program)
    if isinstance(ty, OptionType):
        return OPTION_TAG_SIZE + type_size(ty.inner, program)
    if isinstance(ty, AccountRef):
        account = program.get_account(ty.name)
        if account is not None:
            return fields_size(account, program)
    raise codegen_error(f"Cannot compute the serialized size of '{ty}'")


def fields_size(account: HirAccount, program: HirProgram) -> int:
    """Size of an account's fields alone, as when embedded in another account."""
    return sum(type_size(f.ty, program) for f in account.fields)


def account_space(account: HirAccount, program: HirProgram) -> int:
    """Bytes to allocate for a top-level account: discriminator plus fields."""
    return DISCRIMINATOR_SIZE + fields_size(account, program)


def program_layout(program: HirProgram) -> dict[str, int]:
    """Allocation size of every account, in declaration order."""
    return {a.name: account_space(a, program) for a in program.accounts}
