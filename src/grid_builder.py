"""Word-start detection, word lengths and clue numbering over a flat grid."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from models import Cell

BLACK = ord(".")
OPEN = ord("-")


@dataclass(frozen=True)
class FlatGrid:
    """Row-major grid, one byte per cell; ``black`` marks blocked squares."""

    cells: bytes
    width: int
    height: int
    black: int = BLACK

    def is_black(self, row: int, col: int) -> bool:
        return self.cells[row * self.width + col] == self.black


@dataclass(frozen=True)
class WordStart:
    """A numbered cell and which entries begin there."""

    row: int
    col: int
    number: int
    across: bool
    down: bool


def flat_grid_from_cells(cells: Sequence[Sequence[Cell]], width: int, height: int) -> FlatGrid:
    """Project a typed Cell grid onto the flat byte form."""
    buf = bytearray(OPEN for _ in range(width * height))
    for r in range(height):
        for c in range(width):
            if cells[r][c].is_black:
                buf[r * width + c] = BLACK
    return FlatGrid(bytes(buf), width, height)


def starts_across(grid: FlatGrid, r: int, c: int) -> bool:
    """Left is BLACK/edge AND right is open."""
    if grid.is_black(r, c):
        return False
    left_is_edge_or_black = (c == 0) or grid.is_black(r, c - 1)
    right_is_open = (c + 1 < grid.width) and not grid.is_black(r, c + 1)
    return left_is_edge_or_black and right_is_open


def starts_down(grid: FlatGrid, r: int, c: int) -> bool:
    """Top is BLACK/edge AND bottom is open."""
    if grid.is_black(r, c):
        return False
    top_is_edge_or_black = (r == 0) or grid.is_black(r - 1, c)
    bottom_is_open = (r + 1 < grid.height) and not grid.is_black(r + 1, c)
    return top_is_edge_or_black and bottom_is_open


def word_length_across(grid: FlatGrid, r: int, c: int) -> int:
    length = 0
    while c + length < grid.width and not grid.is_black(r, c + length):
        length += 1
    return length


def word_length_down(grid: FlatGrid, r: int, c: int) -> int:
    length = 0
    while r + length < grid.height and not grid.is_black(r + length, c):
        length += 1
    return length


def number_grid(grid: FlatGrid) -> list[WordStart]:
    """Scan L→R, T→B and assign sequential numbers where a word starts."""
    starts: list[WordStart] = []
    counter = 1
    for r in range(grid.height):
        for c in range(grid.width):
            across = starts_across(grid, r, c)
            down = starts_down(grid, r, c)
            if across or down:
                starts.append(WordStart(r, c, counter, across, down))
                counter += 1
    return starts
