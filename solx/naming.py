"""Identifier rules shared by validation and code generation."""

from __future__ import annotations

RUST_KEYWORDS = frozenset({
    "as", "async", "await", "break", "const", "continue", "crate", "dyn",
    "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
    "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
    "self", "Self", "static", "struct", "super", "trait", "true", "type",
    "unsafe", "use", "where", "while", "abstract", "become", "box", "do",
    "final", "macro", "override", "priv", "try", "typeof", "unsized",
    "virtual", "yield", "union",
})

# Type names already in scope in the generated module.
FRAMEWORK_TYPE_NAMES = frozenset({
    "Pubkey", "String", "Vec", "Option", "Signer", "Account", "Context",
    "Result", "Program", "System", "ErrorCode", "Ok", "Err", "Some", "None",
})

# Names generated into every handler or accounts context.
RESERVED_PARAM_NAMES = frozenset({"ctx", "system_program"})


def pascal_case(name: str) -> str:
    """make_offer -> MakeOffer, initialize -> Initialize"""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def context_name(instruction: str) -> str:
    return f"{pascal_case(instruction)}Context"


def module_name(program: str) -> str:
    return program.lower()
