"""
I/O ports for the Befunge machine.

The machine never touches stdin/stdout directly. `&`, `~`, `.` and `,` go
through an IOPort, which turns requests into line reads and emits into
text writes. ConsolePort talks to real streams with the interactive
prompts; ScriptedPort replays pre-supplied input lines and collects output
in memory.
"""

from __future__ import annotations

import re
import sys
from typing import TextIO

from .chips import FIFO, INT_MAX, INT_MIN
from .errors import InputError


_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

REPLACEMENT_CHAR = "\ufffd"


def format_char(code: int) -> str:
    """Character for an output code. Invalid scalar values become U+FFFD."""
    if 0 <= code <= 0x10FFFF and not 0xD800 <= code <= 0xDFFF:
        return chr(code)
    return REPLACEMENT_CHAR


def _strip_eol(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


class IOPort:
    """Base port. Subclasses supply read_line() and write()."""

    NUMBER_PROMPT = "Enter a number: "
    CHAR_PROMPT = "Enter a character: "

    def __init__(self):
        self.discarded: list[str] = []

    # -------------------------------------------------------------------
    # Transport hooks
    # -------------------------------------------------------------------

    def read_line(self, prompt: str) -> str | None:
        """Return one input line without its terminator, or None at EOF."""
        raise NotImplementedError

    def write(self, text: str):
        raise NotImplementedError

    def on_discard(self, kept: str, extra: str):
        """Called when `~` drops trailing characters from an input line."""

    # -------------------------------------------------------------------
    # Machine-facing contract
    # -------------------------------------------------------------------

    def request_integer(self) -> int:
        line = self.read_line(self.NUMBER_PROMPT)
        if line is None:
            raise InputError("Error reading input")
        if not _INTEGER_RE.fullmatch(line):
            raise InputError(f"Invalid number: {line!r}")
        try:
            val = int(line)
        except ValueError:
            # digit count past the interpreter's int conversion limit
            raise InputError(f"Invalid number: {line!r}") from None
        if not INT_MIN <= val <= INT_MAX:
            raise InputError(f"Invalid number: {line!r}")
        return val

    def request_character(self) -> int:
        line = self.read_line(self.CHAR_PROMPT)
        if line is None:
            raise InputError("Error reading input")
        if not line:
            raise InputError("No input")
        if len(line) > 1:
            self.discarded.append(line[1:])
            self.on_discard(line[0], line[1:])
        return ord(line[0])

    def emit_integer(self, val: int):
        self.write(f"{val} ")

    def emit_character(self, code: int):
        self.write(format_char(code))

    def flush(self):
        pass


class ConsolePort(IOPort):
    """Interactive port over text streams (stdin/stdout by default)."""

    def __init__(self, stdin: TextIO | None = None,
                 stdout: TextIO | None = None,
                 stderr: TextIO | None = None):
        super().__init__()
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr

    def read_line(self, prompt: str) -> str | None:
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return _strip_eol(line)

    def write(self, text: str):
        self.stdout.write(text)

    def on_discard(self, kept: str, extra: str):
        print(f"Ignoring extra characters, input is {kept!r}",
              file=self.stderr, flush=True)

    def flush(self):
        self.stdout.flush()


class ScriptedPort(IOPort):
    """Replays a fixed list of input lines; output accumulates in memory."""

    def __init__(self, inputs=(), echo_prompts: bool = False):
        super().__init__()
        self.inputs = FIFO(_strip_eol(str(line)) for line in inputs)
        self.echo_prompts = echo_prompts
        self._chunks: list[str] = []

    def feed(self, line: str):
        self.inputs.push(_strip_eol(line))

    def read_line(self, prompt: str) -> str | None:
        if self.echo_prompts:
            self._chunks.append(prompt)
        return self.inputs.pop()

    def write(self, text: str):
        self._chunks.append(text)

    @property
    def output(self) -> str:
        return "".join(self._chunks)
