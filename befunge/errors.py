"""Fatal conditions raised by the Befunge machine and its collaborators."""

from __future__ import annotations


class BefungeError(Exception):
    """Base class. Every subclass halts the run."""


class LoadError(BefungeError):
    """Program source could not be read."""


class InputError(BefungeError):
    """Input port exhausted or the supplied text did not parse."""


class UnrecognizedInstruction(BefungeError):
    """A cell outside the instruction set was reached in normal mode."""

    def __init__(self, char: str, x: int, y: int):
        self.char = char
        self.x = x
        self.y = y
        super().__init__(f"Invalid character: {char!r} at ({x}, {y})")


class DivisionByZero(BefungeError, ArithmeticError):
    """`/` or `%` with a zero divisor."""

    def __init__(self, op: str, x: int, y: int):
        self.op = op
        self.x = x
        self.y = y
        super().__init__(f"Division by zero: {op!r} at ({x}, {y})")


class OutOfBoundsAccess(BefungeError, IndexError):
    """`g` or `p` addressed a cell outside the canvas."""

    def __init__(self, op: str, cell_x: int, cell_y: int):
        self.op = op
        self.cell_x = cell_x
        self.cell_y = cell_y
        super().__init__(
            f"Out of bounds access: {op!r} at cell ({cell_x}, {cell_y})"
        )


class CycleLimitExceeded(BefungeError):
    """The runner's cycle budget ran out before the program halted."""
