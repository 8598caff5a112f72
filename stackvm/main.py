import logging
import sys
import threading
from functools import partial
from rich.markup import escape
from textual.app import App, ComposeResult
from textual.widgets import RichLog, Input, Static, Footer
from .asm import AsmError, assemble, disassemble
from .emu import Emu


logger = logging.getLogger(__name__)

# Instruction ceiling for programs typed into the TUI
TUI_MAX_STEPS = 100_000


def setup_logging() -> None:
    """Log to a file (overwritten each run) and stderr."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('tui_debug.log', mode='w'),
            logging.StreamHandler(sys.stderr)
        ]
    )
    # per-instruction tracing is too noisy for interactive runs
    logging.getLogger("stackvm.vm").setLevel(logging.INFO)


class StackVMApp(App):
    CSS = """
    RichLog#output {
        height: 60%;
        border: tall white;
        margin: 1;
        background: black;
        min-height: 10;
    }
    Input {
        height: 10%;
        margin: 1;
        &:focus {
            border: heavy green;
        }
    }
    Static#repr {
        height: 25%;
        border: round green;
        padding: 1;
        background: darkblue;
        content-align: center middle;
        min-height: 4;
    }
    Footer {
        height: 5%;
    }
    """

    BINDINGS = [("escape", "quit", "Quit")]

    def compose(self) -> ComposeResult:
        yield RichLog(id="output", markup=True)
        yield Input(placeholder="Enter program, e.g. PUSH 2 PUSH 3 ADD HALT")
        yield Static(id="repr", classes="repr")
        yield Footer()

    def on_mount(self) -> None:
        logger.info("TUI starting...")
        self.ui_thread_id = threading.get_ident()
        self.emu = Emu(app=self, max_steps=TUI_MAX_STEPS)
        self.emu.init()
        self.query_one(Input).focus()
        logger.debug("Input widget focused")

    def call_on_ui(self, callback, *args) -> None:
        """Run callback on the event loop thread, from wherever we are."""
        if threading.get_ident() == self.ui_thread_id:
            callback(*args)
        else:
            self.call_from_thread(callback, *args)

    def write_output(self, text: str) -> None:
        logger.debug(f"Writing to RichLog: {text}")
        self.call_on_ui(self.log_line, text)

    def update_repr(self) -> None:
        logger.debug("Updating repr widget")
        self.call_on_ui(self.show_state, repr(self.emu.vm))

    def log_line(self, text: str) -> None:
        self.query_one(RichLog).write(text)

    def show_state(self, text: str) -> None:
        self.query_one("#repr", Static).update(text)

    def process_source(self, source: str) -> None:
        """Assemble source and run it on a fresh machine. Runs in a worker thread."""
        logger.debug(f"Processing input: {source}")
        self.write_output(f"Input: {escape(source)}")
        try:
            rom = assemble(source)
        except AsmError as e:
            logger.warning(f"Assembly failed: {e}")
            self.write_output(f"[red]Assembly error: {escape(str(e))}[/red]")
            return
        for line in disassemble(rom):
            self.write_output(line)
        try:
            self.emu.load(rom)
        except ValueError as e:
            self.write_output(f"[red]Load error: {escape(str(e))}[/red]")
            return
        logger.debug(f"Run finished after {self.emu.vm.steps} steps, state: {self.emu.vm.state}")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        logger.debug(f"Input submitted: {event.value}")
        self.run_worker(partial(self.process_source, event.value), thread=True, exclusive=True)
        event.input.value = ""


if __name__ == "__main__":
    setup_logging()
    StackVMApp().run()
