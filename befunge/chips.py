"""
Storage primitives for the Befunge machine.

Passive components the dispatcher reads and mutates: the 80×25 canvas
(program memory), the operand stack, and a line FIFO for scripted input.
"""

from __future__ import annotations

import collections

import numpy as np


WIDTH  = 80
HEIGHT = 25
SPACE  = 0x20

# Stack cells are signed 64-bit words
INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1


def wrap_int(val: int) -> int:
    """Two's-complement wrap of val into a signed 64-bit word."""
    return ((val - INT_MIN) & 0xFFFFFFFFFFFFFFFF) + INT_MIN


class Canvas:
    """Fixed 80×25 byte grid. Program text and data share the same cells.

    Coordinates are validated by the dispatcher; read/write assume
    0 <= x < WIDTH and 0 <= y < HEIGHT.
    """

    def __init__(self, cells: np.ndarray | None = None):
        if cells is None:
            cells = np.full((HEIGHT, WIDTH), SPACE, dtype=np.uint8)
        if cells.shape != (HEIGHT, WIDTH):
            raise ValueError(f"canvas must be {HEIGHT}x{WIDTH}, got {cells.shape}")
        self.cells = cells.astype(np.uint8, copy=False)

    @staticmethod
    def contains(x: int, y: int) -> bool:
        return 0 <= x < WIDTH and 0 <= y < HEIGHT

    def read(self, x: int, y: int) -> int:
        return int(self.cells[y, x])

    def write(self, x: int, y: int, code: int):
        self.cells[y, x] = code & 0xFF

    def copy(self) -> Canvas:
        return Canvas(self.cells.copy())

    def row_bytes(self, y: int) -> bytes:
        return self.cells[y].tobytes()

    def rows(self) -> list[str]:
        """Rows as latin-1 text, one character per cell."""
        return [self.row_bytes(y).decode("latin-1") for y in range(HEIGHT)]


class OperandStack:
    """LIFO of signed 64-bit words. Popping an empty stack yields 0.

    Pushed values wrap on overflow, so arithmetic results never leave the
    int64 range.
    """

    def __init__(self):
        self.items: list[int] = []
        self.peak = 0

    def push(self, val: int):
        self.items.append(wrap_int(val))
        if len(self.items) > self.peak:
            self.peak = len(self.items)

    def pop(self) -> int:
        return self.items.pop() if self.items else 0

    def peek(self) -> int:
        return self.items[-1] if self.items else 0

    def snapshot(self) -> tuple[int, ...]:
        """Bottom-to-top copy of the contents."""
        return tuple(self.items)

    def __len__(self) -> int:
        return len(self.items)


class FIFO:
    """Line buffer feeding a scripted input port."""

    def __init__(self, lines=()):
        self.buffer: collections.deque[str] = collections.deque(lines)

    def push(self, line: str):
        self.buffer.append(line)

    def pop(self) -> str | None:
        return self.buffer.popleft() if self.buffer else None

    def ready(self) -> bool:
        return len(self.buffer) > 0

    def __len__(self) -> int:
        return len(self.buffer)
