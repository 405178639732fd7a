"""Decode Crossword Compiler XML, bare or inside a ``.jpz`` ZIP archive.

The XML is consumed as a SAX event stream. ``title`` means the puzzle title
inside ``<metadata>`` but a direction header ("Across"/"Down") inside
``<clues>``, so the handler keeps a small state record of where it is.
Word spans come straight from ``<word>`` elements; no numbering is derived.
"""

from __future__ import annotations

import io
import logging
import xml.sax
import zipfile
import zlib
from dataclasses import dataclass, field

from models import (
    ArchiveError,
    Cell,
    CellKind,
    Clue,
    Clues,
    DimensionError,
    Direction,
    MalformedXmlError,
    Puzzle,
    WordSpanError,
    split_rebus,
)

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"
BLOCK_TYPES = ("block", "void")
MAX_DIMENSION = 255  # one byte, as in .puz headers
METADATA_TAGS = ("title", "creator", "copyright", "description")


@dataclass(frozen=True)
class RawCell:
    x: int  # 1-indexed, as in the file
    y: int
    solution: str | None = None
    number: int | None = None
    is_block: bool = False
    is_circled: bool = False


@dataclass(frozen=True)
class WordSpan:
    start_row: int  # 0-indexed
    start_col: int
    length: int
    across: bool = True

    def fits(self, width: int, height: int) -> bool:
        """True if every square of the span lies inside a width x height grid."""
        if self.across:
            end_row, end_col = self.start_row, self.start_col + self.length - 1
        else:
            end_row, end_col = self.start_row + self.length - 1, self.start_col
        return (
            self.start_row >= 0 and self.start_col >= 0
            and end_row < height and end_col < width
        )


@dataclass(frozen=True)
class RawClue:
    word_id: str
    number: int
    text: str


@dataclass
class ParseState:
    """Everything the handler has learnt so far, plus where it is in the tree."""

    metadata: dict[str, str] = field(default_factory=lambda: {t: "" for t in METADATA_TAGS})
    width: int = 0
    height: int = 0
    cells: list[RawCell] = field(default_factory=list)
    words: dict[str, WordSpan] = field(default_factory=dict)
    across: list[RawClue] = field(default_factory=list)
    down: list[RawClue] = field(default_factory=list)

    in_metadata: bool = False
    metadata_tag: str | None = None
    in_clues: bool = False
    in_clue_title: bool = False
    clue_title_text: list[str] = field(default_factory=list)
    direction: Direction | None = None
    in_clue: bool = False
    clue_word_id: str = ""
    clue_number: int = 0
    clue_text: list[str] = field(default_factory=list)


def decode(data: bytes) -> Puzzle:
    """Parse jpz/XML *data*; ZIP archives are unwrapped first."""
    if data.startswith(ZIP_MAGIC):
        data = extract_from_zip(data)
    state = parse_xml(data)
    return build_puzzle(state)


def extract_from_zip(data: bytes) -> bytes:
    """Return the contents of the archive's first member."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            members = archive.infolist()
            if not members:
                raise ArchiveError("ZIP archive is empty")
            return archive.read(members[0])
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"ZIP error: {e}") from e
    except (zlib.error, RuntimeError, NotImplementedError, EOFError) as e:
        raise ArchiveError(f"ZIP decompress error: {e}") from e


def parse_xml(data: bytes) -> ParseState:
    handler = _PuzzleHandler()
    try:
        xml.sax.parseString(data, handler)
    except xml.sax.SAXParseException as e:
        raise MalformedXmlError(f"XML parse error: {e}") from e
    return handler.state


def build_puzzle(state: ParseState) -> Puzzle:
    if not (0 < state.width <= MAX_DIMENSION and 0 < state.height <= MAX_DIMENSION):
        raise DimensionError(state.width, state.height)

    w, h = state.width, state.height
    grid = [[Cell() for _ in range(w)] for _ in range(h)]
    has_solution = False

    for raw in state.cells:
        row, col = raw.y - 1, raw.x - 1
        if not (0 <= row < h and 0 <= col < w):
            logger.debug("Dropping cell at x=%d y=%d outside %dx%d grid", raw.x, raw.y, w, h)
            continue
        if raw.is_block:
            grid[row][col] = Cell.black()
            continue
        solution, rebus = None, None
        if raw.solution is not None:
            has_solution = True
            if raw.solution:
                solution, rebus = split_rebus(raw.solution)
        grid[row][col] = Cell(
            kind=CellKind.LETTER,
            number=raw.number,
            solution=solution,
            rebus_solution=rebus,
            is_circled=raw.is_circled,
        )

    return Puzzle(
        title=state.metadata["title"].strip(),
        author=state.metadata["creator"].strip(),
        copyright=state.metadata["copyright"].strip(),
        notes=state.metadata["description"].strip(),
        width=w,
        height=h,
        grid=tuple(tuple(row) for row in grid),
        clues=Clues(
            across=tuple(_join_spans(state.across, state.words, w, h)),
            down=tuple(_join_spans(state.down, state.words, w, h)),
        ),
        has_solution=has_solution,
        is_scrambled=False,
    )


def strip_html_tags(text: str) -> str:
    """Drop everything between ``<`` and ``>``, inclusive."""
    result: list[str] = []
    in_tag = False
    for ch in text:
        if ch == "<":
            in_tag = True
        elif ch == ">":
            in_tag = False
        elif not in_tag:
            result.append(ch)
    return "".join(result)


def parse_range(value: str, attribute: str = "range") -> tuple[int, int]:
    """Parse ``"1-6"`` into ``(1, 6)``."""
    parts = value.split("-")
    if len(parts) != 2:
        raise WordSpanError(attribute, value)
    start, end = (_parse_int(p) for p in parts)
    if start is None or end is None or end < start:
        raise WordSpanError(attribute, value)
    return start, end


def parse_word(attrs) -> tuple[str, WordSpan] | None:
    """``x="1-6" y="2"`` spans across, ``x="2" y="1-4"`` spans down."""
    word_id = attrs.get("id", "")
    x_attr = attrs.get("x", "")
    y_attr = attrs.get("y", "")
    if not word_id:
        return None

    if "-" in x_attr:
        start, end = parse_range(x_attr, "x")
        row = _parse_int(y_attr)
        if row is None:
            raise WordSpanError("y", y_attr)
        col = start
    elif "-" in y_attr:
        start, end = parse_range(y_attr, "y")
        col = _parse_int(x_attr)
        if col is None:
            raise WordSpanError("x", x_attr)
        row = start
    else:
        return None

    return word_id, WordSpan(
        start_row=row - 1,
        start_col=col - 1,
        length=end - start + 1,
        across="-" in x_attr,
    )


def parse_cell(attrs) -> RawCell:
    number = _parse_int(attrs.get("number", "")) or None
    return RawCell(
        x=_parse_int(attrs.get("x", "")) or 0,
        y=_parse_int(attrs.get("y", "")) or 0,
        solution=attrs.get("solution"),
        number=number,
        is_block=attrs.get("type") in BLOCK_TYPES,
        is_circled=attrs.get("background-shape") == "circle",
    )


def _parse_int(value: str) -> int | None:
    value = value.strip()
    return int(value) if value.isascii() and value.isdigit() else None


def _join_spans(
    raw_clues: list[RawClue],
    words: dict[str, WordSpan],
    width: int,
    height: int,
) -> list[Clue]:
    clues: list[Clue] = []
    for raw in raw_clues:
        span = words.get(raw.word_id)
        if span is None:
            logger.debug("Dropping clue %d: unknown word id %r", raw.number, raw.word_id)
            continue
        if not span.fits(width, height):
            logger.debug("Dropping clue %d: word %r runs off the %dx%d grid",
                         raw.number, raw.word_id, width, height)
            continue
        clues.append(Clue(
            number=raw.number,
            text=raw.text,
            row=span.start_row,
            col=span.start_col,
            length=span.length,
        ))
    return clues


def _local_name(name: str) -> str:
    return name.rsplit(":", 1)[-1]


class _PuzzleHandler(xml.sax.ContentHandler):
    def __init__(self):
        super().__init__()
        self.state = ParseState()

    def startElement(self, name, attrs):
        s = self.state
        tag = _local_name(name)

        if tag == "metadata":
            s.in_metadata = True
        elif tag in METADATA_TAGS and s.in_metadata:
            s.metadata_tag = tag
        elif tag == "grid":
            s.width = _parse_int(attrs.get("width", "")) or 0
            s.height = _parse_int(attrs.get("height", "")) or 0
        elif tag == "cell":
            s.cells.append(parse_cell(attrs))
        elif tag == "word":
            word = parse_word(attrs)
            if word is not None:
                s.words[word[0]] = word[1]
        elif tag == "clues":
            s.in_clues = True
            s.direction = None
        elif tag == "title" and s.in_clues:
            s.in_clue_title = True
            s.clue_title_text = []
        elif tag == "clue" and s.in_clues:
            s.in_clue = True
            s.clue_word_id = attrs.get("word", "")
            s.clue_number = _parse_int(attrs.get("number", "")) or 0
            s.clue_text = []

    def characters(self, content):
        s = self.state
        if s.metadata_tag is not None:
            s.metadata[s.metadata_tag] += content
        elif s.in_clue_title:
            s.clue_title_text.append(content)
        elif s.in_clue:
            s.clue_text.append(content)

    def endElement(self, name):
        s = self.state
        tag = _local_name(name)

        if tag == "metadata":
            s.in_metadata = False
            s.metadata_tag = None
        elif tag == s.metadata_tag:
            s.metadata_tag = None
        elif tag == "title" and s.in_clue_title:
            s.in_clue_title = False
            header = "".join(s.clue_title_text).lower()
            if "across" in header:
                s.direction = Direction.ACROSS
            elif "down" in header:
                s.direction = Direction.DOWN
        elif tag == "clues":
            s.in_clues = False
            s.direction = None
        elif tag == "clue" and s.in_clue:
            self._finish_clue()

    def _finish_clue(self):
        s = self.state
        s.in_clue = False
        if s.clue_number <= 0:
            return
        raw = RawClue(
            word_id=s.clue_word_id,
            number=s.clue_number,
            text=strip_html_tags("".join(s.clue_text)).strip(),
        )
        if s.direction == Direction.ACROSS:
            s.across.append(raw)
        elif s.direction == Direction.DOWN:
            s.down.append(raw)
        else:
            logger.debug("Dropping clue %d: no direction header seen", raw.number)
