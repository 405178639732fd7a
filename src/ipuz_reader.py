"""Decode ipuz (JSON) crossword puzzles."""

from __future__ import annotations

import json
import logging

from grid_builder import flat_grid_from_cells, word_length_across, word_length_down
from models import (
    Cell,
    Clue,
    ClueNotFoundError,
    Clues,
    ContentKindError,
    DimensionError,
    Direction,
    GridShapeError,
    MalformedJsonError,
    Puzzle,
    split_rebus,
)

logger = logging.getLogger(__name__)

CROSSWORD_KIND = "http://ipuz.org/crossword"
BLOCK = "#"
METADATA_FIELDS = ("title", "author", "copyright", "notes")


def decode(data: bytes) -> Puzzle:
    """Parse *data* as an ipuz document and build a Puzzle from it."""
    try:
        doc = json.loads(data.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedJsonError(f"JSON parse error: not UTF-8 ({e})") from e
    except json.JSONDecodeError as e:
        raise MalformedJsonError(f"JSON parse error: {e}") from e

    if not isinstance(doc, dict):
        raise MalformedJsonError("JSON parse error: top level is not an object")

    kinds = doc.get("kind", [])
    if not isinstance(kinds, list):
        raise MalformedJsonError("'kind' must be a list")
    if not any(isinstance(k, str) and k.startswith(CROSSWORD_KIND) for k in kinds):
        raise ContentKindError(kinds)

    metadata = _read_metadata(doc)
    width, height = _read_dimensions(doc)
    puzzle_rows = _require_grid(doc, "puzzle")
    solution_rows = doc.get("solution")
    if solution_rows is not None and not _is_grid(solution_rows):
        raise MalformedJsonError("'solution' must be a list of lists")
    clue_lists = _require_clues(doc)

    if len(puzzle_rows) != height:
        raise GridShapeError(expected=height, actual=len(puzzle_rows))

    grid: list[tuple[Cell, ...]] = []
    for r, puzzle_row in enumerate(puzzle_rows):
        if len(puzzle_row) != width:
            raise GridShapeError(expected=width, actual=len(puzzle_row), row=r)
        row: list[Cell] = []
        for c, value in enumerate(puzzle_row):
            is_block, number, is_circled = parse_puzzle_cell(value)
            if is_block:
                row.append(Cell.black())
                continue
            solution, rebus = None, None
            if solution_rows is not None:
                solution, rebus = parse_solution_cell(_lookup(solution_rows, r, c))
            row.append(Cell(
                number=number,
                solution=solution,
                rebus_solution=rebus,
                is_circled=is_circled,
            ))
        grid.append(tuple(row))

    cells = tuple(grid)
    across = _build_clues(clue_lists.get("Across", []), cells, width, height, Direction.ACROSS)
    down = _build_clues(clue_lists.get("Down", []), cells, width, height, Direction.DOWN)

    return Puzzle(
        title=metadata["title"],
        author=metadata["author"],
        copyright=metadata["copyright"],
        notes=metadata["notes"],
        width=width,
        height=height,
        grid=cells,
        clues=Clues(across=tuple(across), down=tuple(down)),
        has_solution=solution_rows is not None,
        is_scrambled=False,
    )


def parse_puzzle_cell(value) -> tuple[bool, int | None, bool]:
    """Return ``(is_block, number, is_circled)`` for one ``puzzle`` entry.

    Strings other than the block marker are playable and unnumbered.
    """
    if value is None:
        return True, None, False
    if isinstance(value, bool):
        return False, None, False
    if isinstance(value, str):
        return value == BLOCK, None, False
    if isinstance(value, int):
        return False, (value if value > 0 else None), False
    if isinstance(value, dict):
        cell = value.get("cell")
        if cell == BLOCK:
            return True, None, False
        number = cell if isinstance(cell, int) and not isinstance(cell, bool) and cell > 0 else None
        style = value.get("style")
        is_circled = isinstance(style, dict) and style.get("shapebg") == "circle"
        return False, number, is_circled
    return False, None, False


def parse_solution_cell(value) -> tuple[str | None, str | None]:
    """Return ``(solution, rebus_solution)`` for one ``solution`` entry."""
    if isinstance(value, dict):
        value = value.get("value")
    if not isinstance(value, str) or value in ("", BLOCK):
        return None, None
    return split_rebus(value)


def _lookup(rows: list, r: int, c: int):
    if r < len(rows) and c < len(rows[r]):
        return rows[r][c]
    return None


def _is_grid(value) -> bool:
    return isinstance(value, list) and all(isinstance(row, list) for row in value)


def _read_metadata(doc: dict) -> dict[str, str]:
    metadata: dict[str, str] = {}
    for name in METADATA_FIELDS:
        value = doc.get(name)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise MalformedJsonError(f"'{name}' must be a string")
        metadata[name] = value
    return metadata


def _read_dimensions(doc: dict) -> tuple[int, int]:
    dims = doc.get("dimensions")
    if dims is None:
        raise MalformedJsonError("missing 'dimensions'")
    if not isinstance(dims, dict):
        raise MalformedJsonError("'dimensions' must be an object")
    width, height = dims.get("width"), dims.get("height")
    for name, value in (("width", width), ("height", height)):
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise MalformedJsonError(f"'dimensions.{name}' must be a non-negative integer")
    if width == 0 or height == 0:
        raise DimensionError(width, height)
    return width, height


def _require_grid(doc: dict, name: str) -> list:
    value = doc.get(name)
    if value is None:
        raise MalformedJsonError(f"missing '{name}'")
    if not _is_grid(value):
        raise MalformedJsonError(f"'{name}' must be a list of lists")
    return value


def _require_clues(doc: dict) -> dict:
    clues = doc.get("clues")
    if clues is None:
        raise MalformedJsonError("missing 'clues'")
    if not isinstance(clues, dict):
        raise MalformedJsonError("'clues' must be an object")
    for name in ("Across", "Down"):
        if not isinstance(clues.get(name, []), list):
            raise MalformedJsonError(f"'clues.{name}' must be a list")
    return clues


def _build_clues(
    entries: list,
    cells: tuple[tuple[Cell, ...], ...],
    width: int,
    height: int,
    direction: Direction,
) -> list[Clue]:
    """Anchor each ``[number, text, ...]`` entry at the cell carrying that number."""
    flat = flat_grid_from_cells(cells, width, height)
    measure = word_length_across if direction == Direction.ACROSS else word_length_down
    clues: list[Clue] = []

    for entry in entries:
        if not isinstance(entry, list) or len(entry) < 2:
            logger.debug("Skipping malformed %s clue %r", direction.value.lower(), entry)
            continue
        number, text = entry[0], entry[1]
        if not isinstance(number, int) or isinstance(number, bool):
            logger.debug("Skipping %s clue with number %r", direction.value.lower(), number)
            continue
        if not isinstance(text, str):
            text = ""

        position = _find_number(cells, number)
        if position is None:
            raise ClueNotFoundError(number, direction)
        row, col = position
        clues.append(Clue(
            number=number,
            text=text,
            row=row,
            col=col,
            length=measure(flat, row, col),
        ))

    return clues


def _find_number(cells: tuple[tuple[Cell, ...], ...], number: int) -> tuple[int, int] | None:
    for r, row in enumerate(cells):
        for c, cell in enumerate(row):
            if cell.number == number:
                return r, c
    return None
