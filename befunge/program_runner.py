"""
program_runner — drives a BefungeMachine for the CLI and the debugger.

Wraps loading, the optional cycle budget and the diagnostic hooks that run
between cycles. The hooks only observe: they receive a Snapshot and never
touch the machine's canvas, stack or IP.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from .chips import Canvas
from .errors import CycleLimitExceeded
from .loader import load_file, load_text, program_listing
from .machine import BefungeMachine, M_NORMAL, M_STRING, M_SKIP, S_HALTED
from .ports import IOPort, ScriptedPort


MODE_NAMES = {M_NORMAL: "normal", M_STRING: "string", M_SKIP: "skip"}


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Snapshot:
    x: int
    y: int
    code: int               # cell under the IP
    stack: tuple[int, ...]  # bottom to top
    mode: str
    cycles: int

    @property
    def char(self) -> str:
        return chr(self.code)


def quote_char(code: int) -> str:
    """Single-quoted character literal for diagnostics."""
    if code == ord("'"):
        return "'\\''"
    return repr(chr(code))


def format_stack(stack) -> str:
    return "[" + " ".join(str(v) for v in stack) + "]"


# ---------------------------------------------------------------------------
# Console tracer (--debug)
# ---------------------------------------------------------------------------

class ConsoleTracer:
    """Step-by-step console diagnostics.

    Blocks on a line from `stdin` before every cycle, then shows the PC and
    the character under it; shows the stack once the cycle has run.
    """

    def __init__(self, stdin: TextIO | None = None,
                 stdout: TextIO | None = None):
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout

    def start(self, listing: str):
        self.stdout.write(f"program:\n{listing}\n")
        self.stdout.flush()

    def before(self, snap: Snapshot):
        self.stdin.readline()
        self.stdout.write(f"PC: ({snap.x}, {snap.y})\n")
        self.stdout.write(f"character: {quote_char(snap.code)}\n")
        self.stdout.flush()

    def after(self, snap: Snapshot):
        self.stdout.write(f"stack: {format_stack(snap.stack)}\n")
        self.stdout.flush()


# ---------------------------------------------------------------------------
# ProgramRunner
# ---------------------------------------------------------------------------

class ProgramRunner:
    """Owns one machine and runs it with optional tracing and cycle budget."""

    def __init__(self, port: IOPort | None = None, rng=None,
                 max_cycles: int | None = None,
                 tracer: ConsoleTracer | None = None):
        self.port = port if port is not None else ScriptedPort()
        self.rng = rng
        self.max_cycles = max_cycles
        self.tracer = tracer
        self.machine: BefungeMachine | None = None
        self.listing = ""
        self.source_name = "<none>"
        self.error: Exception | None = None

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------

    def load_canvas(self, canvas: Canvas, name: str = "<canvas>"):
        self.machine = BefungeMachine(canvas, port=self.port, rng=self.rng)
        self.listing = program_listing(canvas)
        self.source_name = name
        self.error = None
        if self.tracer is not None:
            self.tracer.start(self.listing)

    def load_file(self, path: str | Path):
        self.load_canvas(load_file(path), name=str(path))

    def load_text(self, text: str):
        self.load_canvas(load_text(text), name="<text>")

    # -------------------------------------------------------------------
    # Execution control
    # -------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        m = self.machine
        return Snapshot(
            x=m.x, y=m.y, code=m.current_cell(),
            stack=m.stack.snapshot(),
            mode=MODE_NAMES[m.mode],
            cycles=m.cycles,
        )

    @property
    def halted(self) -> bool:
        return self.machine is None or self.machine.halted

    def tick(self) -> bool:
        """Advance one cycle. Returns False once the program has halted."""
        m = self.machine
        if m is None or m.halted:
            return False
        if self.max_cycles is not None and m.cycles >= self.max_cycles:
            m.state = S_HALTED
            self.port.flush()
            self.error = CycleLimitExceeded(
                f"Cycle limit of {self.max_cycles} exceeded at ({m.x}, {m.y})"
            )
            raise self.error
        if self.tracer is not None:
            self.tracer.before(self.snapshot())
        # the cycle after `#` only moves the IP; no stack line for it
        skipped = m.mode == M_SKIP
        try:
            running = m.tick()
        except Exception as e:
            self.error = e
            self.port.flush()
            raise
        if self.tracer is not None and running and not skipped:
            self.tracer.after(self.snapshot())
        if not running:
            self.port.flush()
        return running

    def run(self) -> int:
        """Run to `@`. Fatal errors propagate. Returns the cycle count."""
        while self.tick():
            pass
        return self.machine.cycles

    @property
    def output(self) -> str:
        return getattr(self.port, "output", "")
