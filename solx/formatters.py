"""SOL-X Output Formatters — Human-friendly terminal output.

Provides two output modes:
    pretty — `file:line:col: [phase] message`, colored on a terminal, with
             the offending source line when the source text is available
    json   — machine-readable diagnostics and layouts
"""

from __future__ import annotations

import json
import os
import sys
from typing import Dict, List, Optional

from solx.errors import Diagnostic


# ── ANSI color helpers ───────────────────────────────────────────────────

_NO_COLOR = os.environ.get("NO_COLOR") is not None or not sys.stdout.isatty()


def _c(code: str, text: str) -> str:
    if _NO_COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def red(t: str) -> str:
    return _c("31", t)


def green(t: str) -> str:
    return _c("32", t)


def cyan(t: str) -> str:
    return _c("36", t)


def bold(t: str) -> str:
    return _c("1", t)


def dim(t: str) -> str:
    return _c("2", t)


ICON_ERROR = red("✖")
ICON_OK = green("✔")


# ── Diagnostics ─────────────────────────────────────────────────────────

def format_diagnostic(diag: Diagnostic, source: Optional[str] = None) -> str:
    """One diagnostic as `file:line:col: [phase] message`, plus a source excerpt."""
    loc = f"{diag.location}: " if diag.location else ""
    lines = [f"{bold(loc)}{red('[' + diag.phase.value + ']')} {diag.message}"]
    excerpt = _source_excerpt(diag, source)
    if excerpt:
        lines.extend(excerpt)
    return "\n".join(lines)


def _source_excerpt(diag: Diagnostic, source: Optional[str]) -> List[str]:
    if source is None or diag.location is None:
        return []
    source_lines = source.splitlines()
    line_no = diag.location.line
    if not 1 <= line_no <= len(source_lines):
        return []
    text = source_lines[line_no - 1]
    gutter = f"{line_no:>4} | "
    caret = " " * (len(gutter) + diag.location.column - 1) + "^"
    return [dim(gutter) + text, red(caret)]


def format_diagnostics(
    diagnostics: List[Diagnostic],
    fmt: str = "pretty",
    source: Optional[str] = None,
) -> str:
    if fmt == "json":
        return json.dumps([d.to_dict() for d in diagnostics], indent=2)
    return "\n".join(format_diagnostic(d, source) for d in diagnostics)


# ── Layout ──────────────────────────────────────────────────────────────

def format_layout(sizes: Dict[str, int], fmt: str = "pretty") -> str:
    """Allocation size of each account."""
    if fmt == "json":
        return json.dumps(sizes, indent=2)
    if not sizes:
        return dim("no accounts")
    width = max(len(name) for name in sizes)
    return "\n".join(
        f"{cyan(name.ljust(width))}  {size} bytes" for name, size in sizes.items()
    )


# ── Build summary ───────────────────────────────────────────────────────

def format_written(source_path: str, output_path: str, fmt: str = "pretty") -> str:
    if fmt == "json":
        return json.dumps({"source": source_path, "output": output_path, "ok": True})
    return f"{ICON_OK} {source_path} → {bold(output_path)}"


def format_failed(source_path: str, count: int) -> str:
    return f"{ICON_ERROR} {source_path}: {count} error(s), nothing written"
