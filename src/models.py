"""Data models for decoded crossword puzzles."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CellKind(Enum):
    BLACK = "BLACK"
    LETTER = "LETTER"


class Direction(Enum):
    ACROSS = "ACROSS"
    DOWN = "DOWN"


@dataclass(frozen=True)
class Cell:
    """A single grid square, format independent."""

    kind: CellKind = CellKind.LETTER
    number: int | None = None
    solution: str | None = None  # one character
    rebus_solution: str | None = None  # full answer when longer than one character
    player_value: str | None = None
    is_circled: bool = False
    was_incorrect: bool = False
    is_revealed: bool = False

    @classmethod
    def black(cls) -> Cell:
        return cls(kind=CellKind.BLACK)

    @property
    def is_black(self) -> bool:
        return self.kind == CellKind.BLACK

    def letter_value(self) -> str | None:
        """Full answer for this square: the rebus if there is one, else the solution."""
        return self.rebus_solution or self.solution


@dataclass(frozen=True)
class Clue:
    """A clue anchored at its 0-indexed starting cell."""

    number: int
    text: str
    row: int
    col: int
    length: int


@dataclass(frozen=True)
class Clues:
    across: tuple[Clue, ...] = ()
    down: tuple[Clue, ...] = ()


@dataclass(frozen=True)
class Puzzle:
    """A decoded puzzle. ``grid`` is row-major, ``height`` rows of ``width`` cells."""

    title: str
    author: str
    copyright: str
    notes: str
    width: int
    height: int
    grid: tuple[tuple[Cell, ...], ...]
    clues: Clues = field(default_factory=Clues)
    has_solution: bool = False
    is_scrambled: bool = False
    timer_state: str | None = None

    def cell(self, row: int, col: int) -> Cell:
        return self.grid[row][col]

    @property
    def cell_count(self) -> int:
        return sum(len(row) for row in self.grid)

    def clues_for(self, direction: Direction) -> tuple[Clue, ...]:
        return self.clues.across if direction == Direction.ACROSS else self.clues.down

    def answer_for(self, clue: Clue, direction: Direction) -> str | None:
        """Concatenate the solutions along *clue*, or None if any square is unsolved."""
        dr = 1 if direction == Direction.DOWN else 0
        dc = 1 if direction == Direction.ACROSS else 0
        parts: list[str] = []
        for i in range(clue.length):
            r = clue.row + dr * i
            c = clue.col + dc * i
            if r >= self.height or c >= self.width:
                return None
            value = self.grid[r][c].letter_value()
            if value is None:
                return None
            parts.append(value)
        return "".join(parts)


def upper_char(ch: str) -> str:
    """Uppercase one character; characters whose uppercase form is longer (ß) are kept."""
    upper = ch.upper()
    return upper if len(upper) == 1 else ch


def split_rebus(value: str) -> tuple[str, str | None]:
    """Uppercase *value*; a multi-character answer keeps its first letter as the solution."""
    if len(value) == 1:
        return upper_char(value), None
    upper = value.upper()
    if len(upper) > 1:
        return upper[0], upper
    return upper, None


class CrosswordError(Exception):
    """Fatal error while reading a crossword."""


class PuzzleDecodeError(CrosswordError):
    """The input bytes could not be decoded into a Puzzle."""


# ─── Structural failures ────────────────────────────────────────────────────


class LengthMismatchError(PuzzleDecodeError):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"File too short: expected at least {expected} bytes, got {actual}"
        )


class MalformedJsonError(PuzzleDecodeError):
    """ipuz data is not well-formed JSON of the expected shape."""


class ArchiveError(PuzzleDecodeError):
    """The ZIP container around a jpz file could not be opened or read."""


class MalformedXmlError(PuzzleDecodeError):
    """jpz / Crossword Compiler markup could not be parsed."""


class WordSpanError(MalformedXmlError):
    def __init__(self, attribute: str, value: str):
        self.attribute = attribute
        self.value = value
        super().__init__(f"Invalid word span {attribute}={value!r}")


# ─── Content failures ───────────────────────────────────────────────────────


class SignatureMismatchError(PuzzleDecodeError):
    def __init__(self, found: bytes):
        self.found = found
        super().__init__(f"Invalid magic string: expected ACROSS&DOWN, found {found!r}")


class DimensionError(PuzzleDecodeError):
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        super().__init__(f"Invalid grid dimensions: {width}x{height}")


class GridShapeError(PuzzleDecodeError):
    """Row count, or the cell count of row ``row``, differs from the declared size."""

    def __init__(self, expected: int, actual: int, row: int | None = None):
        self.expected = expected
        self.actual = actual
        self.row = row
        if row is None:
            message = f"Puzzle grid has {actual} rows, expected {expected}"
        else:
            message = f"Row {row} has {actual} cells, expected {expected}"
        super().__init__(message)


class ClueNotFoundError(PuzzleDecodeError):
    def __init__(self, number: int, direction: Direction):
        self.number = number
        self.direction = direction
        super().__init__(
            f"Clue {number} {direction.value.lower()} not found in grid"
        )


class ContentKindError(PuzzleDecodeError):
    def __init__(self, kinds: list):
        self.kinds = kinds
        super().__init__(
            f"ipuz file is not a crossword puzzle (kind: {kinds!r})"
        )


class ChecksumMismatchError(PuzzleDecodeError):
    def __init__(self, section: str, expected: int, actual: int):
        self.section = section
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{section} checksum mismatch: expected {expected:#06x}, got {actual:#06x}"
        )


# ─── Dispatch and file access ───────────────────────────────────────────────


class UnsupportedFormatError(CrosswordError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unsupported format: {token}")


class PuzzleFileNotFoundError(CrosswordError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class FileTooLargeError(CrosswordError):
    def __init__(self, path: str, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(f"File too large: {path} is {size} bytes (limit {limit})")
