"""Pick a decoder by format token and read puzzle files from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import ipuz_reader
import jpz_reader
import puz_reader
from models import FileTooLargeError, Puzzle, PuzzleFileNotFoundError, UnsupportedFormatError

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 16 * 1024 * 1024

DECODERS: dict[str, Callable[[bytes], Puzzle]] = {
    "puz": puz_reader.decode,
    "ipuz": ipuz_reader.decode,
    "jpz": jpz_reader.decode,
    "xml": jpz_reader.decode,
}
SUPPORTED_FORMATS = tuple(DECODERS)


def decode(data: bytes, format_hint: str, verify_checksums: bool = False) -> Puzzle:
    """Decode *data* with the decoder registered for *format_hint* (case-insensitive)."""
    key = format_hint.lower()
    if key not in DECODERS:
        raise UnsupportedFormatError(format_hint)
    if key == "puz":
        return puz_reader.decode(data, verify_checksums=verify_checksums)
    return DECODERS[key](data)


def read_puzzle(
    path: str | Path,
    format_hint: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    verify_checksums: bool = False,
) -> Puzzle:
    """Read *path* and decode it; the format defaults to the file extension."""
    path = Path(path)
    if not path.is_file():
        raise PuzzleFileNotFoundError(str(path))

    size = path.stat().st_size
    if size > max_bytes:
        raise FileTooLargeError(str(path), size, max_bytes)

    if format_hint is None:
        format_hint = path.suffix[1:]
    logger.debug("Reading %s (%d bytes) as %r", path, size, format_hint)
    return decode(path.read_bytes(), format_hint, verify_checksums=verify_checksums)
