"""SOL-X Pipeline — source text to Anchor source in one call.

    source → tokenize → parse → validate → generate

Each stage either returns its artifact or raises the CompileError subclass
for its phase; later stages never run after a failure.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from solx.codegen import GeneratedSource, GeneratorOptions, generate
from solx.errors import CompileError, Diagnostic, ErrorKind, LexError, SourceLocation, lex_error
from solx.hir import HirProgram
from solx.parser import parse
from solx.validator import validate

logger = logging.getLogger(__name__)


def read_source(path: Union[str, Path]) -> str:
    """Read a source file as UTF-8. Undecodable bytes raise LexError."""
    path = Path(path)
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise _decode_error(data, e, str(path)) from None


def _decode_error(data: bytes, e: UnicodeDecodeError, filename: str) -> LexError:
    before = data[:e.start]
    line_start = before.rfind(b"\n") + 1
    # Everything before the bad byte decoded cleanly.
    column = len(before[line_start:].decode("utf-8")) + 1
    location = SourceLocation(
        line=before.count(b"\n") + 1,
        column=column,
        offset=e.start,
        length=e.end - e.start,
        file=filename,
    )
    return lex_error(
        ErrorKind.INVALID_CHARACTER,
        f"Invalid UTF-8 byte 0x{data[e.start]:02x}",
        location,
    )


def lower_source(source: str, filename: str = "<stdin>") -> HirProgram:
    """Parse and validate, stopping before code generation."""
    program = parse(source, filename)
    logger.debug("%s: parsed %d accounts, %d instructions",
                 filename, len(program.accounts), len(program.instructions))
    hir = validate(program)
    logger.debug("%s: validated", filename)
    return hir


def compile_source(
    source: str,
    filename: str = "<stdin>",
    options: Optional[GeneratorOptions] = None,
) -> GeneratedSource:
    """Compile SOL-X source text to Anchor source. Raises CompileError."""
    hir = lower_source(source, filename)
    result = generate(hir, options)
    logger.debug("%s: generated %s", filename, result.module_name)
    return result


def compile_file(
    path: Union[str, Path],
    options: Optional[GeneratorOptions] = None,
) -> GeneratedSource:
    source = read_source(path)
    return compile_source(source, str(path), options)


def check_source(source: str, filename: str = "<stdin>") -> list[Diagnostic]:
    """Run every front-end check. Returns diagnostics instead of raising."""
    try:
        lower_source(source, filename)
    except CompileError as e:
        return list(e.diagnostics)
    return []
