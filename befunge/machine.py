"""
Befunge machine — cycle-stepped interpreter for the 80×25 Befunge-93 canvas.

Models the engine as one object owning the canvas, the operand stack, the
instruction pointer registers and the mode latch. Every tick() re-reads the
cell under the IP, so `p` can rewrite code that runs later.
"""

from __future__ import annotations

import random

from .chips import Canvas, OperandStack, WIDTH, HEIGHT
from .errors import (
    DivisionByZero, OutOfBoundsAccess, UnrecognizedInstruction,
)
from .ports import ConsolePort, IOPort


# ---------------------------------------------------------------------------
# Directions (dx, dy)
# ---------------------------------------------------------------------------

EAST  = (1, 0)
WEST  = (-1, 0)
SOUTH = (0, 1)
NORTH = (0, -1)

DIRECTIONS = (EAST, WEST, SOUTH, NORTH)

ARROWS = {
    ord(">"): EAST,
    ord("<"): WEST,
    ord("v"): SOUTH,
    ord("^"): NORTH,
}

# Mode latch
M_NORMAL = 0
M_STRING = 1
M_SKIP   = 2

# Run state
S_RUNNING = 0
S_HALTED  = 1

QUOTE = ord('"')


def step(x: int, y: int, dx: int, dy: int) -> tuple[int, int]:
    """Advance one cell with toroidal wraparound."""
    return (x + dx) % WIDTH, (y + dy) % HEIGHT


def trunc_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def trunc_mod(a: int, b: int) -> int:
    """Remainder with the sign of the dividend: a - b*trunc(a/b)."""
    return a - b * trunc_div(a, b)


# ---------------------------------------------------------------------------
# Machine
# ---------------------------------------------------------------------------

class BefungeMachine:
    """Single-threaded Befunge-93 engine.

    Args:
        canvas: Program memory. The machine takes ownership; pass a copy if
            the caller keeps using it.
        port: I/O port for `& ~ . ,`. Defaults to a ConsolePort.
        rng: Object with randrange(n), used by `?`. Defaults to a fresh
            random.Random().
    """

    def __init__(self, canvas: Canvas | None = None,
                 port: IOPort | None = None,
                 rng: random.Random | None = None):
        self.canvas = canvas if canvas is not None else Canvas()
        self.stack = OperandStack()
        self.port = port if port is not None else ConsolePort()
        self.rng = rng if rng is not None else random.Random()

        # --- IP registers ---
        self.x = 0
        self.y = 0
        self.dx, self.dy = EAST

        self.mode = M_NORMAL
        self.state = S_RUNNING

        # --- Counters ---
        self.cycles = 0
        self.grid_reads = 0
        self.grid_writes = 0
        self.io_ops = 0

        self._ops = {
            ord("+"): self._op_add,
            ord("-"): self._op_sub,
            ord("*"): self._op_mul,
            ord("/"): self._op_div,
            ord("%"): self._op_mod,
            ord("!"): self._op_not,
            ord("`"): self._op_greater,
            ord("?"): self._op_random,
            ord("_"): self._op_horizontal_if,
            ord("|"): self._op_vertical_if,
            ord(":"): self._op_dup,
            ord("\\"): self._op_swap,
            ord("$"): self._op_discard,
            ord("&"): self._op_input_int,
            ord("~"): self._op_input_char,
            ord("."): self._op_output_int,
            ord(","): self._op_output_char,
            ord("#"): self._op_trampoline,
            ord("g"): self._op_get,
            ord("p"): self._op_put,
            ord('"'): self._op_string,
            ord("@"): self._op_halt,
            ord(" "): self._op_nop,
        }

    # -------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------

    @property
    def halted(self) -> bool:
        return self.state == S_HALTED

    @property
    def direction(self) -> tuple[int, int]:
        return (self.dx, self.dy)

    def current_cell(self) -> int:
        return self.canvas.read(self.x, self.y)

    # -------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------

    def tick(self) -> bool:
        """One cycle. Returns True if still running.

        A fatal error halts the machine and propagates to the caller.
        """
        if self.state == S_HALTED:
            return False
        self.cycles += 1

        if self.mode == M_SKIP:
            self.mode = M_NORMAL
        elif self.mode == M_STRING:
            code = self.current_cell()
            if code == QUOTE:
                self.mode = M_NORMAL
            else:
                self.stack.push(code)
        else:
            try:
                self._dispatch(self.current_cell())
            except Exception:
                self.state = S_HALTED
                raise
            if self.state == S_HALTED:
                return False

        self.x, self.y = step(self.x, self.y, self.dx, self.dy)
        return True

    def _dispatch(self, code: int):
        if 0x30 <= code <= 0x39:
            self.stack.push(code - 0x30)
            return
        arrow = ARROWS.get(code)
        if arrow is not None:
            self.dx, self.dy = arrow
            return
        op = self._ops.get(code)
        if op is None:
            raise UnrecognizedInstruction(chr(code), self.x, self.y)
        op()

    def run(self) -> int:
        """Run until `@` or a fatal error. Returns the cycle count."""
        while self.tick():
            pass
        self.port.flush()
        return self.cycles

    # -------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------

    def _pop_pair(self) -> tuple[int, int]:
        b = self.stack.pop()
        a = self.stack.pop()
        return a, b

    def _op_add(self):
        a, b = self._pop_pair()
        self.stack.push(a + b)

    def _op_sub(self):
        a, b = self._pop_pair()
        self.stack.push(a - b)

    def _op_mul(self):
        a, b = self._pop_pair()
        self.stack.push(a * b)

    def _op_div(self):
        a, b = self._pop_pair()
        if b == 0:
            raise DivisionByZero("/", self.x, self.y)
        self.stack.push(trunc_div(a, b))

    def _op_mod(self):
        a, b = self._pop_pair()
        if b == 0:
            raise DivisionByZero("%", self.x, self.y)
        self.stack.push(trunc_mod(a, b))

    def _op_not(self):
        self.stack.push(1 if self.stack.pop() == 0 else 0)

    def _op_greater(self):
        a, b = self._pop_pair()
        self.stack.push(1 if a > b else 0)

    # -------------------------------------------------------------------
    # Control flow
    # -------------------------------------------------------------------

    def _op_random(self):
        self.dx, self.dy = DIRECTIONS[self.rng.randrange(4)]

    def _op_horizontal_if(self):
        self.dx, self.dy = EAST if self.stack.pop() == 0 else WEST

    def _op_vertical_if(self):
        self.dx, self.dy = SOUTH if self.stack.pop() == 0 else NORTH

    def _op_trampoline(self):
        self.mode = M_SKIP

    def _op_string(self):
        self.mode = M_STRING

    def _op_halt(self):
        self.state = S_HALTED

    def _op_nop(self):
        pass

    # -------------------------------------------------------------------
    # Stack manipulation
    # -------------------------------------------------------------------

    def _op_dup(self):
        a = self.stack.pop()
        self.stack.push(a)
        self.stack.push(a)

    def _op_swap(self):
        a = self.stack.pop()
        b = self.stack.pop()
        self.stack.push(a)
        self.stack.push(b)

    def _op_discard(self):
        self.stack.pop()

    # -------------------------------------------------------------------
    # IO
    # -------------------------------------------------------------------

    def _op_input_int(self):
        self.stack.push(self.port.request_integer())
        self.io_ops += 1

    def _op_input_char(self):
        self.stack.push(self.port.request_character())
        self.io_ops += 1

    def _op_output_int(self):
        self.port.emit_integer(self.stack.pop())
        self.io_ops += 1

    def _op_output_char(self):
        self.port.emit_character(self.stack.pop())
        self.io_ops += 1

    # -------------------------------------------------------------------
    # Self-modification
    # -------------------------------------------------------------------

    def _op_get(self):
        cy = self.stack.pop()
        cx = self.stack.pop()
        if not self.canvas.contains(cx, cy):
            raise OutOfBoundsAccess("g", cx, cy)
        self.stack.push(self.canvas.read(cx, cy))
        self.grid_reads += 1

    def _op_put(self):
        cy = self.stack.pop()
        cx = self.stack.pop()
        val = self.stack.pop()
        if not self.canvas.contains(cx, cy):
            raise OutOfBoundsAccess("p", cx, cy)
        self.canvas.write(cx, cy, val)
        self.grid_writes += 1

    # -------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------

    def reset_counters(self):
        self.cycles = 0
        self.grid_reads = 0
        self.grid_writes = 0
        self.io_ops = 0
        self.stack.peak = len(self.stack)

    def stats(self) -> dict:
        return {
            "cycles": self.cycles,
            "grid_reads": self.grid_reads,
            "grid_writes": self.grid_writes,
            "io_ops": self.io_ops,
            "stack_depth": len(self.stack),
            "stack_peak": self.stack.peak,
        }

    def stats_summary(self) -> str:
        s = self.stats()
        return (
            f"Cycles: {s['cycles']}\n"
            f"Grid: {s['grid_reads']}R/{s['grid_writes']}W\n"
            f"IO: {s['io_ops']} operations\n"
            f"Stack: {s['stack_depth']} deep (peak {s['stack_peak']})"
        )
