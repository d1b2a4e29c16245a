"""SOL-X Parallel Compilation Tests."""

from pathlib import Path

from solx.parallel import compile_many, FileResult
from solx.codegen import GeneratorOptions
from solx.errors import ErrorKind


EXAMPLES = Path(__file__).resolve().parents[2] / "examples"


def write_programs(tmp_path, count):
    paths = []
    for i in range(count):
        path = tmp_path / f"p{i}.solx"
        path.write_text(f"program P{i}\naccount A{i} {{ v: u{8 * 2 ** (i % 4)} }}\n")
        paths.append(str(path))
    return paths


class TestCompileMany:

    def test_empty(self):
        assert compile_many([]) == []

    def test_sequential_results(self):
        paths = [str(EXAMPLES / "counter.solx"), str(EXAMPLES / "escrow.solx")]
        results = compile_many(paths, workers=1)
        assert [r.path for r in results] == paths
        assert all(r.ok for r in results)
        assert results[1].output.account_sizes == {"EscrowState": 113}

    def test_pool_keeps_input_order(self, tmp_path):
        paths = write_programs(tmp_path, 5)
        results = compile_many(paths, workers=2)
        assert [r.path for r in results] == paths
        assert [r.output.program_name for r in results] == ["P0", "P1", "P2", "P3", "P4"]
        assert [r.output.account_sizes[f"A{i}"] for i, r in enumerate(results)] == [9, 10, 12, 16, 9]

    def test_failures_reported_per_file(self, tmp_path):
        good, bad = write_programs(tmp_path, 2)
        Path(bad).write_text("program Bad instruction a(v: Vault) {}")
        results = compile_many([good, bad], workers=1)
        assert results[0].ok
        assert not results[1].ok
        assert results[1].diagnostics[0].kind == ErrorKind.UNRESOLVED_NAME

    def test_unreadable_file(self, tmp_path):
        missing = str(tmp_path / "missing.solx")
        result = compile_many([missing])[0]
        assert isinstance(result, FileResult)
        assert not result.ok
        assert result.error.startswith(missing)

    def test_options_shared(self, tmp_path):
        paths = write_programs(tmp_path, 3)
        program_id = "Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS"
        results = compile_many(paths, GeneratorOptions(program_id=program_id), workers=3)
        assert all(program_id in r.output.code for r in results)

    def test_undecodable_file(self, tmp_path):
        good, bad = write_programs(tmp_path, 2)
        Path(bad).write_bytes(b"program P\n// \xff\xfe\n")
        results = compile_many([good, bad], workers=1)
        assert results[0].ok
        assert results[1].error == ""
        assert results[1].diagnostics[0].kind == ErrorKind.INVALID_CHARACTER
