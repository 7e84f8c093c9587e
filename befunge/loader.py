"""
loader — program text → 80×25 canvas, and canvas → listing.

Lines past row 25 and columns past 80 are dropped; short lines and missing
rows are padded with spaces.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np

from .chips import Canvas, WIDTH, HEIGHT, SPACE
from .errors import LoadError


def load_bytes(data: bytes) -> Canvas:
    """Build a canvas from raw program bytes."""
    cells = np.full((HEIGHT, WIDTH), SPACE, dtype=np.uint8)
    lines = data.split(b"\n")
    # A trailing newline does not start another row
    if lines and lines[-1] == b"":
        lines.pop()
    for y, line in enumerate(lines[:HEIGHT]):
        if line.endswith(b"\r"):
            line = line[:-1]
        if not line:
            continue
        row = np.frombuffer(line[:WIDTH], dtype=np.uint8)
        cells[y, :len(row)] = row
    return Canvas(cells)


def load_text(text: str) -> Canvas:
    return load_bytes(text.encode("utf-8"))


def load_file(path: str | Path) -> Canvas:
    """Read a program file. Unreadable files raise LoadError."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise LoadError(f"Could not open file: '{path}'") from e
    return load_bytes(data)


def program_listing(canvas: Canvas) -> str:
    """Non-blank rows, right-stripped, each terminated by a newline."""
    out = []
    for y in range(HEIGHT):
        line = canvas.row_bytes(y).rstrip(b" ").decode("latin-1")
        if line:
            out.append(line + "\n")
    return "".join(out)
