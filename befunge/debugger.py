"""
Textual TUI debugger for the Befunge machine.

Cycle-stepping debugger that loads a .bf program, runs it on the machine,
and displays the canvas, IP, stack and output at every step.

Usage:
    python -m befunge.debugger examples/hello.bf
    python -m befunge.debugger -i 21 examples/double.bf
    python -m befunge.debugger --run examples/hello.bf
"""

from __future__ import annotations

import argparse
import random
import sys

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer
from textual.widgets import Static, RichLog, Footer
from textual import work
from textual.worker import Worker
from rich.text import Text

from .chips import HEIGHT
from .errors import BefungeError
from .machine import EAST, WEST, SOUTH, NORTH
from .ports import ScriptedPort
from .program_runner import ProgramRunner


DIRECTION_NAMES = {EAST: "east", WEST: "west", SOUTH: "south", NORTH: "north"}


def _esc(text: str) -> str:
    """Escape Rich markup characters in text."""
    return text.replace("[", "\\[")


def _printable(row: str) -> str:
    return "".join(c if 32 <= ord(c) < 127 else "·" for c in row)


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

DEBUGGER_CSS = """
Screen {
    layout: grid;
    grid-size: 2 3;
    grid-columns: 3fr 1fr;
    grid-rows: 2fr 1fr auto;
}

.panel {
    border: solid $accent;
    border-title-align: left;
    overflow-y: auto;
    height: 100%;
}

#canvas-panel { column-span: 1; }
#stack-panel  { column-span: 1; }
#state-panel  { column-span: 1; }
#output-panel { column-span: 1; }

Footer {
    column-span: 2;
}
"""


# ---------------------------------------------------------------------------
# Panel widgets
# ---------------------------------------------------------------------------

class CanvasPanel(ScrollableContainer):
    """The 80×25 canvas with the IP cell highlighted."""
    BORDER_TITLE = "Canvas"

    def compose(self) -> ComposeResult:
        yield Static("", id="canvas-content")


class StackPanel(ScrollableContainer):
    """Stack contents, top-down."""
    BORDER_TITLE = "Stack"

    def compose(self) -> ComposeResult:
        yield Static("", id="stack-content")


class StatePanel(ScrollableContainer):
    """IP, mode and counters."""
    BORDER_TITLE = "Machine State"

    def compose(self) -> ComposeResult:
        yield Static("", id="state-content")


class OutputPanel(ScrollableContainer):
    """Accumulated program output."""
    BORDER_TITLE = "Output"

    def compose(self) -> ComposeResult:
        yield RichLog(id="output-log", markup=False, wrap=True)


# ---------------------------------------------------------------------------
# Main debugger app
# ---------------------------------------------------------------------------

class BefungeDebugger(App):
    """Textual TUI debugger for the Befunge machine."""

    CSS = DEBUGGER_CSS
    TITLE = "Befunge Debugger"

    BINDINGS = [
        Binding("s", "step_1", "Step"),
        Binding("space", "step_1", "Step", show=False),
        Binding("n", "step_10", "x10"),
        Binding("f", "step_100", "x100"),
        Binding("r", "run_to_end", "Run"),
        Binding("b", "toggle_breakpoint", "Break"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, runner: ProgramRunner, auto_run: bool = False):
        super().__init__()
        self.runner = runner
        self.auto_run = auto_run
        self.breakpoints: set[tuple[int, int]] = set()
        self.messages: list[str] = []
        self._output_len = 0
        self._running_worker: Worker | None = None

    def compose(self) -> ComposeResult:
        yield CanvasPanel(id="canvas-panel", classes="panel")
        yield StackPanel(id="stack-panel", classes="panel")
        yield StatePanel(id="state-panel", classes="panel")
        yield OutputPanel(id="output-panel", classes="panel")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_panels()
        if self.auto_run:
            self.action_run_to_end()

    # -------------------------------------------------------------------
    # Panel refresh
    # -------------------------------------------------------------------

    def refresh_panels(self) -> None:
        self._refresh_canvas()
        self._refresh_stack()
        self._refresh_state()
        self._refresh_output()

    def _refresh_canvas(self) -> None:
        m = self.runner.machine
        text = Text()
        for y, row in enumerate(m.canvas.rows()):
            line = Text(f"{y:2d}│" + _printable(row))
            for (bx, by) in self.breakpoints:
                if by == y:
                    line.stylize("red", 3 + bx, 4 + bx)
            if y == m.y:
                line.stylize("bold reverse", 3 + m.x, 4 + m.x)
            text.append(line)
            if y < HEIGHT - 1:
                text.append("\n")
        content = self.query_one("#canvas-content", Static)
        content.update(text)

    def _refresh_stack(self) -> None:
        items = self.runner.machine.stack.snapshot()
        lines = []
        for i in range(len(items) - 1, -1, -1):
            v = items[i]
            ch = f" '{chr(v)}'" if 32 <= v < 127 else ""
            lines.append(f"\\[{i:3d}] {v}{_esc(ch)}")
        content = self.query_one("#stack-content", Static)
        content.update("\n".join(lines) if lines else "(empty)")

    def _refresh_state(self) -> None:
        m = self.runner.machine
        snap = self.runner.snapshot()
        status = "halted" if m.halted else "running"
        if self.runner.error is not None:
            status = "error"
        text = (
            f"[bold]IP:[/bold] ({m.x}, {m.y})  "
            f"[bold]Dir:[/bold] {DIRECTION_NAMES.get(m.direction, '?')}\n"
            f"[bold]Cell:[/bold] {_esc(repr(snap.char))} ({snap.code})  "
            f"[bold]Mode:[/bold] {snap.mode}\n"
            f"[bold]Status:[/bold] {status}  [bold]Cycle:[/bold] {m.cycles}\n"
            f"[bold]Grid:[/bold] {m.grid_reads}R/{m.grid_writes}W  "
            f"[bold]IO:[/bold] {m.io_ops}  "
            f"[bold]Stack peak:[/bold] {m.stack.peak}\n"
            f"[bold]Source:[/bold] {_esc(self.runner.source_name)}"
        )
        content = self.query_one("#state-content", Static)
        content.update(text)

    def _refresh_output(self) -> None:
        log = self.query_one("#output-log", RichLog)
        out = self.runner.output
        if len(out) > self._output_len:
            log.write(out[self._output_len:])
            self._output_len = len(out)
        while self.messages:
            log.write(self.messages.pop(0))

    # -------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------

    def _report_error(self, err: Exception) -> None:
        """Show an error in the output panel."""
        self.messages.append(f"[ERROR] {err}")
        self.refresh_panels()

    @property
    def engine_busy(self) -> bool:
        """True while a run worker owns the machine."""
        return (self._running_worker is not None
                and not self._running_worker.is_finished)

    def _do_steps(self, count: int) -> None:
        if self.engine_busy:
            return
        try:
            for _ in range(count):
                if not self.runner.tick():
                    break
        except BefungeError as e:
            self._report_error(e)
            return
        self.refresh_panels()

    def action_step_1(self) -> None:
        self._do_steps(1)

    def action_step_10(self) -> None:
        self._do_steps(10)

    def action_step_100(self) -> None:
        self._do_steps(100)

    def action_toggle_breakpoint(self) -> None:
        m = self.runner.machine
        pos = (m.x, m.y)
        if pos in self.breakpoints:
            self.breakpoints.discard(pos)
        else:
            self.breakpoints.add(pos)
        self._refresh_canvas()

    def action_run_to_end(self) -> None:
        if self.engine_busy:
            return
        self._running_worker = self._run_worker()

    @work(thread=True, exclusive=True, group="engine")
    def _run_worker(self) -> None:
        """Run to `@` or the next breakpoint in a background thread."""
        m = self.runner.machine
        try:
            cycle = 0
            while self.runner.tick():
                cycle += 1
                if (m.x, m.y) in self.breakpoints:
                    break
                if cycle % 500 == 0:
                    self.call_from_thread(self.refresh_panels)
        except BefungeError as e:
            self.call_from_thread(self._report_error, e)
            return
        self.call_from_thread(self.refresh_panels)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="Befunge machine TUI debugger",
        prog="python -m befunge.debugger",
    )
    parser.add_argument("file", help="Path to .bf program file")
    parser.add_argument("-i", "--input", action="append", default=[],
                        help="Input line for & and ~ (repeatable)")
    parser.add_argument("--run", action="store_true",
                        help="Run to completion immediately (auto-run mode)")
    parser.add_argument("--seed", type=int,
                        help="Seed for the ? instruction")
    args = parser.parse_args()

    rng = random.Random(args.seed) if args.seed is not None else None
    runner = ProgramRunner(port=ScriptedPort(args.input), rng=rng)
    try:
        runner.load_file(args.file)
    except BefungeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    app = BefungeDebugger(runner, auto_run=args.run)
    app.run()


if __name__ == "__main__":
    main()
