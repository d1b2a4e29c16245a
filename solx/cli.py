"""SOL-X CLI — Command-line interface for the SOL-X compiler.

Commands:
  solx build <file.solx>...          — Compile to Anchor source (lib.rs)
  solx check <file.solx>             — Lex, parse and validate only
  solx ast <file.solx>               — Print the syntax tree (JSON)
  solx hir <file.solx>               — Print the validated program (JSON)
  solx layout <file.solx>            — Print each account's allocation size
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from solx import __version__
from solx.ast_nodes import to_json
from solx.codegen import GeneratorOptions
from solx.config import SolxConfig, is_valid_program_id, load_config
from solx.errors import CompileError, ConfigError, Diagnostic
from solx.formatters import (
    format_diagnostics, format_failed, format_layout, format_written, green,
)
from solx.layout import program_layout
from solx.parallel import FileResult, compile_many
from solx.parser import parse
from solx.pipeline import check_source, lower_source, read_source

logger = logging.getLogger(__name__)


def _read_source(path: str, fmt: str = "pretty") -> Optional[str]:
    if not os.path.exists(path):
        print(json.dumps({"error": f"File not found: {path}"}))
        return None
    try:
        return read_source(path)
    except CompileError as e:
        _report(e.diagnostics, fmt)
        return None


def _excerpt_source(path: str) -> Optional[str]:
    """Source text for diagnostic excerpts, if it can be read."""
    try:
        return read_source(path)
    except (CompileError, OSError):
        return None


def _load_config(args: argparse.Namespace, near: str) -> Optional[SolxConfig]:
    try:
        return load_config(args.config, start_dir=os.path.dirname(os.path.abspath(near)))
    except ConfigError as e:
        print(json.dumps({"error": str(e)}))
        return None


def _report(diagnostics: List[Diagnostic], fmt: str, source: Optional[str] = None) -> None:
    print(format_diagnostics(diagnostics, fmt, source))


def _output_paths(files: List[str], output: Optional[str], config: SolxConfig) -> List[Path]:
    """One file goes to -o or the configured output; several go beside their
    sources, or into the -o directory."""
    if len(files) == 1:
        return [Path(output or config.output)]
    if output:
        return [Path(output) / f"{Path(f).stem}.rs" for f in files]
    return [Path(f).with_suffix(".rs") for f in files]


def cmd_build(args: argparse.Namespace) -> int:
    """Compile SOL-X files to Anchor source. Writes nothing unless every file compiles."""
    config = _load_config(args, args.files[0])
    if config is None:
        return 2

    program_id = args.program_id or config.program_id
    if not is_valid_program_id(program_id):
        print(json.dumps({"error": f"Invalid program id: {program_id}"}))
        return 2
    fmt = args.format or config.format

    if args.output == "-" and len(args.files) > 1:
        print(json.dumps({"error": "Output '-' (stdout) takes a single source file"}))
        return 2

    for path in args.files:
        if not os.path.exists(path):
            print(json.dumps({"error": f"File not found: {path}"}))
            return 1

    workers = args.workers or config.workers
    if not (args.parallel or config.parallel):
        workers = 1

    options = GeneratorOptions(program_id=program_id)
    results: List[FileResult] = compile_many(args.files, options, workers=workers)

    failed = [r for r in results if not r.ok]
    if failed:
        for r in failed:
            if r.error:
                print(json.dumps({"error": r.error}))
                continue
            _report(r.diagnostics, fmt, _excerpt_source(r.path))
            if fmt != "json":
                print(format_failed(r.path, len(r.diagnostics)))
        return 1

    if args.output == "-":
        sys.stdout.write(results[0].output.code)
        return 0

    for result, out_path in zip(results, _output_paths(args.files, args.output, config)):
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result.output.code, encoding="utf-8")
        logger.debug("wrote %s (%d bytes)", out_path, len(result.output.code))
        print(format_written(result.path, str(out_path), fmt))
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Run every front-end check without generating code."""
    source = _read_source(args.file, args.format)
    if source is None:
        return 1
    diagnostics = check_source(source, args.file)
    if diagnostics:
        _report(diagnostics, args.format, source)
        return 1
    if args.format == "json":
        print(json.dumps([]))
    else:
        print(green(f"{args.file}: ok"))
    return 0


def cmd_ast(args: argparse.Namespace) -> int:
    """Print the syntax tree as JSON."""
    source = _read_source(args.file, args.format)
    if source is None:
        return 1
    try:
        program = parse(source, args.file)
    except CompileError as e:
        _report(e.diagnostics, args.format, source)
        return 1
    print(to_json(program))
    return 0


def cmd_hir(args: argparse.Namespace) -> int:
    """Print the validated, typed program as JSON."""
    source = _read_source(args.file, args.format)
    if source is None:
        return 1
    try:
        hir = lower_source(source, args.file)
    except CompileError as e:
        _report(e.diagnostics, args.format, source)
        return 1
    print(hir.to_json())
    return 0


def cmd_layout(args: argparse.Namespace) -> int:
    """Print the allocation size of every account."""
    source = _read_source(args.file, args.format)
    if source is None:
        return 1
    try:
        hir = lower_source(source, args.file)
    except CompileError as e:
        _report(e.diagnostics, args.format, source)
        return 1
    print(format_layout(program_layout(hir), args.format))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="solx",
        description="SOL-X — declarative Solana programs compiled to Anchor",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log compiler stages")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # build
    p_build = subparsers.add_parser("build", help="Compile SOL-X source to Anchor source")
    p_build.add_argument("files", nargs="+", metavar="FILE", help="SOL-X source files (.solx)")
    p_build.add_argument("-o", "--output",
                         help="Output file (one source, '-' for stdout) or directory (several)")
    p_build.add_argument("--program-id", dest="program_id", help="Program address for declare_id!")
    p_build.add_argument("--parallel", action="store_true", help="Compile files in parallel")
    p_build.add_argument("--workers", type=int, default=0, help="Worker processes (0 = auto)")
    p_build.add_argument("--format", choices=["pretty", "json"], default=None, help="Output format")
    p_build.add_argument("--config", help="Config file (default: nearest solx.yml)")
    p_build.set_defaults(func=cmd_build)

    # check / ast / hir / layout
    for name, func, help_text in [
        ("check", cmd_check, "Lex, parse and validate without generating code"),
        ("ast", cmd_ast, "Print the syntax tree as JSON"),
        ("hir", cmd_hir, "Print the validated program as JSON"),
        ("layout", cmd_layout, "Print each account's allocation size"),
    ]:
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("file", help="SOL-X source file (.solx)")
        p.add_argument("--format", choices=["pretty", "json"], default="pretty", help="Output format")
        p.set_defaults(func=func)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
