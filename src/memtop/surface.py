# src/memtop/surface.py
"""Cell-addressed drawing surface used by the renderer."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

from rich.style import Style

Cell = tuple[str, Style | None]

BLANK: Cell = (" ", None)


class Surface(Protocol):
    """Minimal terminal-like surface: a grid of styled character cells."""

    def dimensions(self) -> tuple[int, int]:
        """Current (width, height) in cells."""
        ...

    def clear(self) -> None:
        """Blank every cell."""
        ...

    def put(self, x: int, y: int, char: str, style: Style | None = None) -> None:
        """Write one character. Out-of-bounds writes are ignored."""
        ...

    def show(self) -> None:
        """Make the current contents visible."""
        ...

    def sync(self) -> None:
        """Re-read the underlying size after a resize."""
        ...


class CellBuffer:
    """In-memory Surface.

    Backs the Textual widget and doubles as a simulation screen in tests.
    """

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self._width = 0
        self._height = 0
        self._cells: list[list[Cell]] = []
        self.frames = 0
        self.resize(width, height)

    def dimensions(self) -> tuple[int, int]:
        """Return (width, height)."""
        return self._width, self._height

    def resize(self, width: int, height: int) -> None:
        """Reallocate the grid. Contents are discarded."""
        self._width = max(width, 0)
        self._height = max(height, 0)
        self.clear()

    def clear(self) -> None:
        """Blank every cell."""
        self._cells = [[BLANK] * self._width for _ in range(self._height)]

    def put(self, x: int, y: int, char: str, style: Style | None = None) -> None:
        """Write one character, ignoring anything outside the grid."""
        if 0 <= x < self._width and 0 <= y < self._height:
            self._cells[y][x] = (char, style)

    def show(self) -> None:
        """Count a presented frame."""
        self.frames += 1

    def sync(self) -> None:
        """No external size to follow; kept for the Surface protocol."""

    def cell(self, x: int, y: int) -> Cell:
        """Return the (char, style) at x, y."""
        return self._cells[y][x]

    def row_text(self, y: int) -> str:
        """Plain text of row y with trailing blanks stripped."""
        if not 0 <= y < self._height:
            return ""
        return "".join(char for char, _ in self._cells[y]).rstrip(" ")

    def rows(self) -> Iterator[list[tuple[str, Style | None]]]:
        """Yield each row as runs of (text, style) sharing a style."""
        for row in self._cells:
            runs: list[tuple[str, Style | None]] = []
            for char, style in row:
                if runs and runs[-1][1] == style:
                    runs[-1] = (runs[-1][0] + char, style)
                else:
                    runs.append((char, style))
            yield runs
