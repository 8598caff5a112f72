"""
Command line tests for stackvm-asm and stackvm-run.
"""
import pytest

from stackvm.cli import EXIT_FAILURE, EXIT_FAULT, EXIT_OK, asm_main, run_main


@pytest.fixture
def build(tmp_path):
    """Write source to a file, assemble it, return the bytecode path."""
    def _build(source: str) -> str:
        src = tmp_path / "prog.asm"
        out = tmp_path / "prog.bc"
        src.write_text(source)
        assert asm_main([str(src), str(out)]) == EXIT_OK
        return str(out)
    return _build


class TestAsmCommand:

    def test_writes_bytecode(self, tmp_path):
        src = tmp_path / "a.asm"
        out = tmp_path / "a.bc"
        src.write_text("PUSH 2 PUSH 3 ADD HALT")
        assert asm_main([str(src), str(out)]) == EXIT_OK
        assert out.read_bytes().hex() == "010200000001030000000410"

    def test_unknown_mnemonic(self, tmp_path, capsys):
        src = tmp_path / "a.asm"
        src.write_text("PUSH 2\nFROB")
        assert asm_main([str(src), str(tmp_path / "a.bc")]) == EXIT_FAILURE
        err = capsys.readouterr().err
        assert "Line 2" in err
        assert "'FROB'" in err

    def test_missing_input(self, tmp_path, capsys):
        assert asm_main([str(tmp_path / "nope.asm"), str(tmp_path / "a.bc")]) == EXIT_FAILURE
        assert "Error" in capsys.readouterr().err

    def test_oversized_literal(self, tmp_path, capsys):
        src = tmp_path / "a.asm"
        src.write_text("PUSH " + "9" * 5000)
        assert asm_main([str(src), str(tmp_path / "a.bc")]) == EXIT_FAILURE
        assert "too large" in capsys.readouterr().err

    def test_invalid_utf8(self, tmp_path, capsys):
        src = tmp_path / "a.asm"
        out = tmp_path / "a.bc"
        src.write_bytes(b"PUSH 1 \xff HALT")
        assert asm_main([str(src), str(out)]) == EXIT_FAILURE
        assert "invalid UTF-8 byte 0xff at offset 7" in capsys.readouterr().err
        assert not out.exists()

    def test_truncate_indices_flag(self, tmp_path):
        src = tmp_path / "a.asm"
        out = tmp_path / "a.bc"
        src.write_text("STORE 257")
        assert asm_main([str(src), str(out)]) == EXIT_FAILURE
        assert asm_main([str(src), str(out), "--truncate-indices"]) == EXIT_OK
        assert out.read_bytes() == b'\x0c\x01'

    def test_listing(self, tmp_path, capsys):
        src = tmp_path / "a.asm"
        src.write_text("PUSH 7 HALT")
        assert asm_main([str(src), str(tmp_path / "a.bc"), "--listing"]) == EXIT_OK
        out = capsys.readouterr().out.splitlines()
        assert out[0].endswith("PUSH 7")
        assert out[1].endswith("HALT")


class TestRunCommand:

    def test_clean_halt(self, build, capsys):
        path = build("PUSH 2 PUSH 3 ADD HALT")
        assert run_main([path]) == EXIT_OK
        assert capsys.readouterr().out == "VM HALT. Top of stack = 5\n"

    def test_empty_stack(self, build, capsys):
        assert run_main([build("HALT")]) == EXIT_OK
        assert capsys.readouterr().out == "VM HALT. Stack is empty\n"

    def test_fault_exit_status(self, build, capsys):
        assert run_main([build("PUSH 5 PUSH 0 DIV HALT")]) == EXIT_FAULT
        assert "division by zero" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert run_main([str(tmp_path / "missing.bc")]) == EXIT_FAILURE
        assert "Error" in capsys.readouterr().err

    def test_capacity_flags(self, build, capsys):
        path = build("PUSH 1 PUSH 2 HALT")
        assert run_main([path, "--stack-size", "1"]) == EXIT_FAULT
        assert "stack overflow" in capsys.readouterr().err

    def test_code_size_too_small(self, build, capsys):
        path = build("PUSH 1 PUSH 2 HALT")
        assert run_main([path, "--code-size", "4"]) == EXIT_FAILURE
        assert "code buffer" in capsys.readouterr().err

    def test_max_steps(self, build, capsys):
        assert run_main([build("JMP 0"), "--max-steps", "10"]) == EXIT_FAULT
        assert "step limit exceeded" in capsys.readouterr().err

    def test_invalid_memory_size(self, build):
        with pytest.raises(SystemExit) as exc:
            run_main([build("HALT"), "--memory-size", "512"])
        assert exc.value.code == 2
