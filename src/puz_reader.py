"""Decode Across Lite ``.puz`` binary puzzles.

Layout: a fixed 0x34-byte header, the solution grid and the player-state grid
(width*height bytes each), a run of NUL-terminated strings (title, author,
copyright, one per clue, notes) and optional extension chunks::

    name[4] length<H> checksum<H> payload[length] NUL

Clue numbers are not stored; they are derived from the grid (see grid_builder)
and the clue strings are consumed in numbering order, across before down.
"""

from __future__ import annotations

import logging
import struct

from grid_builder import FlatGrid, number_grid, word_length_across, word_length_down
from models import (
    Cell,
    ChecksumMismatchError,
    Clue,
    Clues,
    DimensionError,
    LengthMismatchError,
    Puzzle,
    SignatureMismatchError,
    upper_char,
)

logger = logging.getLogger(__name__)

HEADER_FORMAT = "<H 12s H Q 4s 2s H 12s B B H H H"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 0x34
HEADER_CKSUM_FORMAT = "<B B H H H"
EXTENSION_HEADER_FORMAT = "<4s H H"
EXTENSION_HEADER_SIZE = struct.calcsize(EXTENSION_HEADER_FORMAT)

MAGIC = b"ACROSS&DOWN\0"
MAGIC_OFFSET = 0x02
MASKSTRING = b"ICHEATED"

BLACK_SQUARE = ord(".")
NO_ANSWER = (ord("-"), ord(":"))
UNFILLED = (ord("-"), ord("."), 0)

EXT_REBUS_GRID = b"GRBS"
EXT_REBUS_TABLE = b"RTBL"
EXT_MARKUP = b"GEXT"
EXT_TIMER = b"LTIM"

MARKUP_PREVIOUSLY_INCORRECT = 0x10
MARKUP_REVEALED = 0x40
MARKUP_CIRCLED = 0x80


def decode(data: bytes, verify_checksums: bool = False) -> Puzzle:
    """Parse *data* as a .puz file.

    Checksums are read but only compared when *verify_checksums* is set.
    """
    if len(data) < HEADER_SIZE:
        raise LengthMismatchError(expected=HEADER_SIZE, actual=len(data))

    found = data[MAGIC_OFFSET:MAGIC_OFFSET + len(MAGIC)]
    if found != MAGIC:
        raise SignatureMismatchError(found)

    (
        cksum_file, _magic, cksum_header, cksum_masked, version,
        _reserved1, _cksum_scrambled, _reserved2,
        width, height, num_clues, puzzle_type, scrambled_tag,
    ) = struct.unpack_from(HEADER_FORMAT, data, 0)

    if width == 0 or height == 0:
        raise DimensionError(width, height)

    size = width * height
    grids_end = HEADER_SIZE + 2 * size
    if len(data) < grids_end:
        raise LengthMismatchError(expected=grids_end, actual=len(data))

    reader = _ByteReader(data, HEADER_SIZE)
    solution = reader.read(size)
    state = reader.read(size)

    raw_strings = [reader.read_string() for _ in range(num_clues + 4)]
    title, author, copyright_ = (decode_text(s) for s in raw_strings[:3])
    clue_texts = [decode_text(s) for s in raw_strings[3:3 + num_clues]]
    notes = decode_text(raw_strings[3 + num_clues])

    extensions = _read_extensions(reader)

    if verify_checksums:
        header = struct.pack(
            HEADER_CKSUM_FORMAT, width, height, num_clues, puzzle_type, scrambled_tag
        )
        _verify_checksums(
            header, solution, state, raw_strings, num_clues, version,
            cksum_file, cksum_header, cksum_masked, extensions,
        )

    is_scrambled = scrambled_tag != 0
    rebus_grid = extensions.get(EXT_REBUS_GRID, _Extension(b"", 0)).payload
    rebus_table = parse_rebus_table(
        extensions.get(EXT_REBUS_TABLE, _Extension(b"", 0)).payload
    )
    markup = extensions.get(EXT_MARKUP, _Extension(b"", 0)).payload
    timer = extensions.get(EXT_TIMER)

    grid, across, down = _build_grid(
        FlatGrid(solution, width, height, BLACK_SQUARE),
        state, clue_texts, rebus_grid, rebus_table, markup,
    )

    return Puzzle(
        title=title,
        author=author,
        copyright=copyright_,
        notes=notes,
        width=width,
        height=height,
        grid=grid,
        clues=Clues(across=tuple(across), down=tuple(down)),
        has_solution=not is_scrambled,
        is_scrambled=is_scrambled,
        timer_state=decode_text(timer.payload) if timer is not None else None,
    )


def decode_text(raw: bytes) -> str:
    """UTF-8 if the bytes are valid UTF-8, Windows-1252 otherwise."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("cp1252", errors="replace")


def parse_rebus_table(raw: bytes) -> dict[int, str]:
    """Parse ``" 0:HEART; 1:SPADE;"`` into ``{0: "HEART", 1: "SPADE"}``."""
    table: dict[int, str] = {}
    for entry in decode_text(raw).split(";"):
        entry = entry.strip()
        if not entry or ":" not in entry:
            continue
        key, value = entry.split(":", 1)
        key = key.strip()
        if key.isascii() and key.isdigit() and int(key) <= 0xFF:
            table[int(key)] = value
    return table


def data_cksum(data: bytes, cksum: int = 0) -> int:
    """Across Lite rotating checksum."""
    for b in data:
        lowbit = cksum & 0x0001
        cksum >>= 1
        if lowbit:
            cksum |= 0x8000
        cksum = (cksum + b) & 0xFFFF
    return cksum


class _ByteReader:
    """Forward-only cursor over the file bytes."""

    def __init__(self, data: bytes, pos: int = 0):
        self.data = data
        self.pos = pos

    def can_read(self, n_bytes: int = 1) -> bool:
        return self.pos + n_bytes <= len(self.data)

    def read(self, n_bytes: int) -> bytes:
        start = self.pos
        self.pos += n_bytes
        return self.data[start:self.pos]

    def read_string(self) -> bytes:
        """Read up to the next NUL; an unterminated tail is returned whole."""
        end = self.data.find(b"\0", self.pos)
        if end == -1:
            start, self.pos = self.pos, len(self.data)
            return self.data[start:]
        value = self.data[self.pos:end]
        self.pos = end + 1
        return value

    def unpack(self, struct_format: str) -> tuple:
        values = struct.unpack_from(struct_format, self.data, self.pos)
        self.pos += struct.calcsize(struct_format)
        return values


class _Extension:
    __slots__ = ("payload", "cksum")

    def __init__(self, payload: bytes, cksum: int):
        self.payload = payload
        self.cksum = cksum


def _read_extensions(reader: _ByteReader) -> dict[bytes, _Extension]:
    """Walk extension chunks until the data runs out or a length overruns it."""
    extensions: dict[bytes, _Extension] = {}
    while reader.can_read(EXTENSION_HEADER_SIZE):
        name, length, cksum = reader.unpack(EXTENSION_HEADER_FORMAT)
        if not reader.can_read(length):
            logger.warning(
                "Extension %r claims %d bytes but only %d remain; ignoring the rest",
                name, length, len(reader.data) - reader.pos,
            )
            break
        payload = reader.read(length)
        reader.read(1)  # trailing NUL
        if name in (EXT_REBUS_GRID, EXT_REBUS_TABLE, EXT_MARKUP, EXT_TIMER):
            extensions[name] = _Extension(payload, cksum)
        else:
            logger.debug("Skipping unknown extension %r (%d bytes)", name, length)
    return extensions


def _build_grid(
    flat: FlatGrid,
    state: bytes,
    clue_texts: list[str],
    rebus_grid: bytes,
    rebus_table: dict[int, str],
    markup: bytes,
) -> tuple[tuple[tuple[Cell, ...], ...], list[Clue], list[Clue]]:
    """Number the grid, hand out clue strings in order and build every Cell."""
    texts = iter(clue_texts)
    numbers: dict[tuple[int, int], int] = {}
    across: list[Clue] = []
    down: list[Clue] = []

    for start in number_grid(flat):
        numbers[(start.row, start.col)] = start.number
        if start.across:
            across.append(Clue(
                number=start.number,
                text=next(texts, ""),
                row=start.row,
                col=start.col,
                length=word_length_across(flat, start.row, start.col),
            ))
        if start.down:
            down.append(Clue(
                number=start.number,
                text=next(texts, ""),
                row=start.row,
                col=start.col,
                length=word_length_down(flat, start.row, start.col),
            ))

    rows: list[tuple[Cell, ...]] = []
    for r in range(flat.height):
        row: list[Cell] = []
        for c in range(flat.width):
            idx = r * flat.width + c
            sol_byte = flat.cells[idx]
            if sol_byte == BLACK_SQUARE:
                row.append(Cell.black())
                continue

            solution = None if sol_byte in NO_ANSWER else upper_char(chr(sol_byte))
            rebus_solution = None
            rebus_key = rebus_grid[idx] if idx < len(rebus_grid) else 0
            if rebus_key and (rebus_key - 1) in rebus_table:
                value = rebus_table[rebus_key - 1].upper()
                if len(value) > 1:
                    solution, rebus_solution = value[0], value
                elif value:
                    solution = value

            state_byte = state[idx]
            player_value = None if state_byte in UNFILLED else upper_char(chr(state_byte))

            flags = markup[idx] if idx < len(markup) else 0
            row.append(Cell(
                number=numbers.get((r, c)),
                solution=solution,
                rebus_solution=rebus_solution,
                player_value=player_value,
                is_circled=bool(flags & MARKUP_CIRCLED),
                was_incorrect=bool(flags & MARKUP_PREVIOUSLY_INCORRECT),
                is_revealed=bool(flags & MARKUP_REVEALED),
            ))
        rows.append(tuple(row))

    return tuple(rows), across, down


# ─── Checksums ──────────────────────────────────────────────────────────────


def _verify_checksums(
    header: bytes,
    solution: bytes,
    state: bytes,
    raw_strings: list[bytes],
    num_clues: int,
    version: bytes,
    cksum_file: int,
    cksum_header: int,
    cksum_masked: int,
    extensions: dict[bytes, _Extension],
) -> None:
    header_cksum = data_cksum(header)
    if header_cksum != cksum_header:
        raise ChecksumMismatchError("header", cksum_header, header_cksum)

    text_cksum = _text_cksum(raw_strings, num_clues, version)
    file_cksum = _text_cksum(
        raw_strings, num_clues, version,
        data_cksum(state, data_cksum(solution, header_cksum)),
    )
    if file_cksum != cksum_file:
        raise ChecksumMismatchError("file", cksum_file, file_cksum)

    masked = _masked_cksum(
        [header_cksum, data_cksum(solution), data_cksum(state), text_cksum]
    )
    if masked != cksum_masked:
        raise ChecksumMismatchError("masked", cksum_masked, masked)

    for name, ext in extensions.items():
        actual = data_cksum(ext.payload)
        if actual != ext.cksum:
            raise ChecksumMismatchError(name.decode("ascii", "replace"), ext.cksum, actual)


def _text_cksum(raw_strings: list[bytes], num_clues: int, version: bytes, cksum: int = 0) -> int:
    # title, author and copyright count with their NUL, clues without,
    # notes only from format version 1.3 on
    for s in raw_strings[:3]:
        if s:
            cksum = data_cksum(s + b"\0", cksum)
    for s in raw_strings[3:3 + num_clues]:
        if s:
            cksum = data_cksum(s, cksum)
    notes = raw_strings[3 + num_clues]
    if notes and _version_tuple(version) >= (1, 3):
        cksum = data_cksum(notes + b"\0", cksum)
    return cksum


def _masked_cksum(cksums: list[int]) -> int:
    masked = 0
    for i, cksum in enumerate(reversed(cksums)):
        slot = len(cksums) - i - 1
        masked <<= 8
        masked |= MASKSTRING[slot] ^ (cksum & 0xFF)
        masked |= (MASKSTRING[slot + 4] ^ (cksum >> 8)) << 32
    return masked


def _version_tuple(version: bytes) -> tuple[int, ...]:
    try:
        return tuple(int(p) for p in version.rstrip(b"\0").split(b"."))
    except ValueError:
        return (1, 3)
