from typing import Optional
import sys
from io import StringIO
from rich.markup import escape


class Console:
    """
    Report sink for the machine: stdout/stderr, an attached Textual app,
    or in-memory buffers.
    >>> c = Console()
    >>> c.output("VM HALT. Top of stack = 5")
    VM HALT. Top of stack = 5
    """
    def __init__(self, app: Optional[object] = None, capture_output: bool = False) -> None:
        """
        :param app: Optional Textual app for output redirection.
        :param capture_output: If True, store stdout lines in output_buffer and stderr lines in error_buffer.
        """
        self.app = app
        self.capture_output = capture_output
        self.output_buffer: Optional[list[str]] = [] if capture_output else None
        self.error_buffer: Optional[list[str]] = [] if capture_output else None

    def init(self) -> None:
        """
        Reset captured output.
        >>> c = Console(capture_output=True)
        >>> c.output("x")
        >>> c.init()
        >>> c.output_buffer
        []
        """
        if self.capture_output:
            self.output_buffer = []
            self.error_buffer = []

    def output(self, text: str) -> None:
        """
        Write a report line to stdout, Textual app, or output_buffer.
        >>> from unittest.mock import Mock
        >>> app = Mock()
        >>> Console(app=app).output("hi")
        >>> app.write_output.assert_called_with('hi')
        >>> c = Console(capture_output=True)
        >>> c.output("hi")
        >>> c.output_buffer
        ['hi']
        """
        if self.capture_output:
            self.output_buffer.append(text)
        elif self.app:
            self.app.write_output(escape(text))
        else:
            print(text, flush=True)

    def error(self, text: str) -> None:
        """
        Write a diagnostic to stderr, Textual app, or error_buffer.
        >>> old_stderr = sys.stderr
        >>> sys.stderr = StringIO()
        >>> Console().error("bad")
        >>> sys.stderr.getvalue()
        'bad\\n'
        >>> sys.stderr = old_stderr
        >>> c = Console(capture_output=True)
        >>> c.error("bad")
        >>> c.error_buffer
        ['bad']
        """
        if self.capture_output:
            self.error_buffer.append(text)
        elif self.app:
            self.app.write_output(f"[red]Error: {escape(text)}[/red]")
        else:
            print(text, flush=True, file=sys.stderr)
