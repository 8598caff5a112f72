"""
Emulator and console reporting tests.
"""
from unittest.mock import Mock

import pytest

from stackvm import Capacities, Console, Emu, assemble


class TestReports:

    def test_halt_with_value(self):
        emu = Emu(capture_output=True)
        emu.assemble_and_run("PUSH 2 PUSH 3 ADD HALT")
        assert emu.console.output_buffer == ["VM HALT. Top of stack = 5"]
        assert emu.console.error_buffer == []

    def test_halt_on_empty_stack(self):
        emu = Emu(capture_output=True)
        emu.assemble_and_run("PUSH 1 POP HALT")
        assert emu.console.output_buffer == ["VM HALT. Stack is empty"]

    def test_fault_report(self):
        emu = Emu(capture_output=True)
        vm = emu.assemble_and_run("ADD HALT")
        assert vm.state == "halted-on-error"
        assert emu.console.output_buffer == []
        assert emu.console.error_buffer == ["VM ERROR: stack underflow at pc=0 (opcode 0x04)"]

    def test_stdout(self, capsys):
        Emu().assemble_and_run("PUSH 9 HALT")
        assert capsys.readouterr().out == "VM HALT. Top of stack = 9\n"

    def test_stderr(self, capsys):
        Emu().assemble_and_run("PUSH 5 PUSH 0 DIV HALT")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "VM ERROR: division by zero at pc=10 (opcode 0x07)\n" in captured.err

    def test_app_redirection(self):
        app = Mock()
        emu = Emu(app=app)
        emu.assemble_and_run("RET")
        app.write_output.assert_called_with(
            "[red]Error: VM ERROR: call stack underflow at pc=0 (opcode 0x0f)[/red]")
        app.update_repr.assert_called()


class TestRuns:

    def test_fresh_machine_per_run(self):
        emu = Emu(capture_output=True)
        first = emu.assemble_and_run("PUSH 1 STORE 3 HALT")
        second = emu.assemble_and_run("LOAD 3 HALT")
        assert first is not second
        assert second.result == 0

    def test_capacities_applied(self):
        emu = Emu(capture_output=True, capacities=Capacities(stack_size=1))
        vm = emu.assemble_and_run("PUSH 1 DUP HALT")
        assert vm.fault.reason == "stack overflow"

    def test_max_steps_applied(self):
        emu = Emu(capture_output=True, max_steps=50)
        vm = emu.assemble_and_run("JMP 0")
        assert vm.fault.reason == "step limit exceeded"
        assert vm.steps == 50

    def test_oversize_program(self):
        emu = Emu(capture_output=True, capacities=Capacities(code_size=8))
        with pytest.raises(ValueError):
            emu.load(assemble("PUSH 1 PUSH 2 HALT"))

    def test_load_file(self, tmp_path):
        path = tmp_path / "prog.bc"
        path.write_bytes(bytes(assemble("PUSH 6 PUSH 7 MUL HALT")))
        emu = Emu(capture_output=True)
        assert emu.load_file(str(path)).result == 42

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Emu().load_file(str(tmp_path / "missing.bc"))


def test_console_buffers_reset():
    c = Console(capture_output=True)
    c.output("a")
    c.error("b")
    c.init()
    assert c.output_buffer == [] and c.error_buffer == []


def test_app_text_is_escaped():
    app = Mock()
    c = Console(app=app)
    c.output("[bold]5")
    app.write_output.assert_called_with("\\[bold]5")
    c.error("[x] bad")
    app.write_output.assert_called_with("[red]Error: \\[x] bad[/red]")
