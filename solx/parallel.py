"""SOL-X Parallel Compilation — Multi-process batch builds.

Compiles independent SOL-X files in parallel using Python's multiprocessing.
Each program is compiled single-threaded; only whole files are distributed.

Usage:
    from solx.parallel import compile_many
    results = compile_many(["a.solx", "b.solx"], workers=4)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from multiprocessing import Pool, cpu_count
from typing import List, Optional, Tuple

from solx.codegen import GeneratedSource, GeneratorOptions
from solx.errors import CompileError, Diagnostic
from solx.pipeline import compile_file

logger = logging.getLogger(__name__)


@dataclass
class FileResult:
    """Outcome of compiling one file."""
    path: str
    output: Optional[GeneratedSource] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)
    # Set when the file could not be read at all.
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.output is not None


# ---------------------------------------------------------------------------
# Worker function (must be top-level for pickling)
# ---------------------------------------------------------------------------

def _compile_single_file(args: Tuple[str, Optional[GeneratorOptions]]) -> FileResult:
    """Compile a single file (worker function for multiprocessing).

    Args:
        args: (path, options)

    Returns:
        FileResult with the generated source or the diagnostics
    """
    path, options = args
    try:
        return FileResult(path=path, output=compile_file(path, options))
    except CompileError as e:
        return FileResult(path=path, diagnostics=list(e.diagnostics))
    except OSError as e:
        return FileResult(path=path, error=f"{path}: {e.strerror or e}")


# ---------------------------------------------------------------------------
# Batch compilation
# ---------------------------------------------------------------------------

def compile_many(paths: List[str], options: Optional[GeneratorOptions] = None,
                 workers: int = 0) -> List[FileResult]:
    """Compile files in parallel. Results keep the order of paths.

    Args:
        paths: SOL-X source files
        options: Code generation options shared by every file
        workers: Number of worker processes (0 = auto = cpu_count)
    """
    if not paths:
        return []

    start = time.time()

    if workers <= 0:
        workers = min(cpu_count(), len(paths), 8)  # Cap at 8 workers
    workers = max(1, workers)

    work_items = [(p, options) for p in paths]

    if workers == 1 or len(paths) <= 2:
        # Sequential for small sets (avoid multiprocessing overhead)
        results = [_compile_single_file(item) for item in work_items]
    else:
        with Pool(processes=workers) as pool:
            results = pool.map(_compile_single_file, work_items)

    elapsed = (time.time() - start) * 1000
    failed = sum(1 for r in results if not r.ok)
    logger.debug("compiled %d files (%d failed) in %.1fms [%d workers]",
                 len(results), failed, elapsed, workers)
    return results
