import logging
from typing import Optional
from .asm import assemble
from .config import Capacities, DEFAULT_CAPACITIES
from .vm import VM
from .devices.console import Console


logger = logging.getLogger(__name__)

class Emu:
    """
    Runs compiled programs on a fresh machine and reports the outcome.
    >>> e = Emu()
    >>> vm = e.load(bytearray([0x01, 0x2a, 0, 0, 0, 0x10]))
    VM HALT. Top of stack = 42
    >>> e.vm.state
    'halted'
    """
    def __init__(self, app: Optional[object] = None, capture_output: bool = False,
                 capacities: Capacities = DEFAULT_CAPACITIES, max_steps: Optional[int] = None) -> None:
        """
        :param app: Optional Textual app for report redirection.
        :param capture_output: If True, Console captures reports in buffers.
        :param capacities: Machine capacity limits for every run.
        :param max_steps: Instruction ceiling per run, None for unbounded.
        """
        self.app: Optional[object] = app
        self.capacities: Capacities = capacities
        self.max_steps: Optional[int] = max_steps
        self.vm: VM = VM(capacities)
        self.console: Console = Console(app=app, capture_output=capture_output)

    def init(self) -> None:
        """
        Reset the machine and the console.
        >>> e = Emu(capture_output=True)
        >>> vm = e.load(bytearray([0x10]))
        >>> e.init()
        >>> e.vm.state, e.console.output_buffer
        ('running', [])
        """
        self.vm = VM(self.capacities)
        self.console.init()
        self.update_repr()

    def load_file(self, file_path: str) -> VM:
        """
        Load a compiled program from a file path and run it.
        >>> import tempfile, os
        >>> with tempfile.NamedTemporaryFile(delete=False) as f:
        ...     _ = f.write(b'\\x10')
        >>> vm = Emu().load_file(f.name)
        VM HALT. Stack is empty
        >>> os.unlink(f.name)
        """
        with open(file_path, 'rb') as f:
            rom = bytearray(f.read())
        return self.load(rom)

    def load(self, rom: bytes | bytearray) -> VM:
        """Run rom on a fresh machine. Raises ValueError if rom exceeds the code buffer."""
        logger.debug(f"Loading program of length {len(rom)}")
        self.vm = VM(self.capacities)
        self.vm.load(rom).eval(self.max_steps)
        self.report()
        self.update_repr()
        return self.vm

    def assemble_and_run(self, source: str, truncate_indices: bool = False) -> VM:
        """
        >>> vm = Emu().assemble_and_run("PUSH 5 PUSH 0 DIV HALT")
        >>> vm.fault.reason
        'division by zero'
        """
        return self.load(assemble(source, truncate_indices=truncate_indices))

    def report(self) -> None:
        if self.vm.error:
            self.console.error(f"VM ERROR: {self.vm.fault}")
        elif self.vm.result is None:
            self.console.output("VM HALT. Stack is empty")
        else:
            self.console.output(f"VM HALT. Top of stack = {self.vm.result}")

    def update_repr(self) -> None:
        """
        Update the Textual app with the current machine state if an app is attached.
        >>> Emu().update_repr()  # No crash if app is None
        """
        if self.app:
            self.app.update_repr()
