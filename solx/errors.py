"""Structured diagnostics for the SOL-X compiler.

Every failure is a machine-readable Diagnostic tagged with the pipeline phase
that produced it. A stage reports a failure by raising the CompileError
subclass for its phase; nothing downstream runs after that.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Phase(Enum):
    LEX = "lex"
    PARSE = "parse"
    VALIDATE = "validate"
    CODEGEN = "codegen"


class ErrorKind(Enum):
    INVALID_CHARACTER = "invalid_character"
    MALFORMED_LITERAL = "malformed_literal"
    UNEXPECTED_TOKEN = "unexpected_token"
    UNRESOLVED_NAME = "unresolved_name"
    DUPLICATE_DECLARATION = "duplicate_declaration"
    RESERVED_NAME = "reserved_name"
    INVALID_TYPE = "invalid_type"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_INIT = "invalid_init"
    INVALID_FIELD_ACCESS = "invalid_field_access"
    INVALID_ASSIGNMENT = "invalid_assignment"
    UNSUPPORTED_CONSTRUCT = "unsupported_construct"


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    offset: int = 0
    length: int = 0
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "offset": self.offset,
            "length": self.length,
        }


@dataclass
class Diagnostic:
    phase: Phase
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "phase": self.phase.value,
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = self.location.to_dict()
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f"{self.location}: " if self.location else ""
        return f"{loc}[{self.phase.value}] {self.message}"


class CompileError(Exception):
    """Exception wrapping one or more Diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic] | Diagnostic):
        if isinstance(diagnostics, Diagnostic):
            diagnostics = [diagnostics]
        self.diagnostics = diagnostics
        super().__init__(self._format())

    @property
    def diagnostic(self) -> Diagnostic:
        return self.diagnostics[0]

    def _format(self) -> str:
        return "\n".join(str(d) for d in self.diagnostics)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([d.to_dict() for d in self.diagnostics], indent=indent)


class LexError(CompileError):
    """Invalid character or malformed literal."""


class ParseError(CompileError):
    """Unexpected token."""


class ValidationError(CompileError):
    """A program that cannot be proven well-formed."""


class CodegenError(CompileError):
    """A validated construct with no known translation."""


class ConfigError(ValueError):
    """Malformed project configuration."""


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

def lex_error(
    kind: ErrorKind,
    message: str,
    location: Optional[SourceLocation] = None,
) -> LexError:
    return LexError(Diagnostic(Phase.LEX, kind, message, location))


def unexpected_token(
    expected: str,
    found: str,
    location: Optional[SourceLocation] = None,
) -> ParseError:
    return ParseError(Diagnostic(
        phase=Phase.PARSE,
        kind=ErrorKind.UNEXPECTED_TOKEN,
        message=f"Expected {expected}, found {found}",
        location=location,
        details={"expected": expected, "found": found},
    ))


def validation_error(
    kind: ErrorKind,
    message: str,
    location: Optional[SourceLocation] = None,
    **details: Any,
) -> ValidationError:
    return ValidationError(Diagnostic(Phase.VALIDATE, kind, message, location, dict(details)))


def unresolved_name(
    name: str,
    what: str,
    location: Optional[SourceLocation] = None,
) -> ValidationError:
    return validation_error(
        ErrorKind.UNRESOLVED_NAME,
        f"Unknown {what} '{name}'",
        location,
        name=name,
        what=what,
    )


def duplicate_declaration(
    name: str,
    what: str,
    location: Optional[SourceLocation] = None,
) -> ValidationError:
    return validation_error(
        ErrorKind.DUPLICATE_DECLARATION,
        f"Duplicate {what} '{name}'",
        location,
        name=name,
        what=what,
    )


def type_mismatch(
    op: str,
    left: str,
    right: str,
    location: Optional[SourceLocation] = None,
) -> ValidationError:
    return validation_error(
        ErrorKind.TYPE_MISMATCH,
        f"Operator '{op}' cannot be applied to '{left}' and '{right}'",
        location,
        operator=op,
        left_type=left,
        right_type=right,
    )


def expected_type(
    expected: str,
    actual: str,
    context: str,
    location: Optional[SourceLocation] = None,
) -> ValidationError:
    return validation_error(
        ErrorKind.TYPE_MISMATCH,
        f"Expected type '{expected}' in {context}, got '{actual}'",
        location,
        expected_type=expected,
        actual_type=actual,
    )


def invalid_init(
    message: str,
    location: Optional[SourceLocation] = None,
    **details: Any,
) -> ValidationError:
    return validation_error(ErrorKind.INVALID_INIT, message, location, **details)


def invalid_field_access(
    message: str,
    location: Optional[SourceLocation] = None,
    **details: Any,
) -> ValidationError:
    return validation_error(ErrorKind.INVALID_FIELD_ACCESS, message, location, **details)


def invalid_assignment(
    message: str,
    location: Optional[SourceLocation] = None,
) -> ValidationError:
    return validation_error(ErrorKind.INVALID_ASSIGNMENT, message, location)


def codegen_error(
    message: str,
    location: Optional[SourceLocation] = None,
) -> CodegenError:
    return CodegenError(Diagnostic(
        phase=Phase.CODEGEN,
        kind=ErrorKind.UNSUPPORTED_CONSTRUCT,
        message=message,
        location=location,
    ))
