"""Tests for puzzle_reader.py."""

import os
import tempfile

import pytest

from conftest import make_puz
from models import (
    ChecksumMismatchError,
    Direction,
    FileTooLargeError,
    PuzzleFileNotFoundError,
    UnsupportedFormatError,
)
from puzzle_reader import SUPPORTED_FORMATS, decode, read_puzzle


def _clue_layout(puzzle):
    return [
        [(c.number, c.text, c.row, c.col, c.length) for c in puzzle.clues_for(d)]
        for d in Direction
    ]


def _numbers(puzzle):
    return [[cell.number for cell in row] for row in puzzle.grid]


class TestDecode:
    def test_supported_formats(self):
        assert set(SUPPORTED_FORMATS) == {"puz", "ipuz", "jpz", "xml"}

    @pytest.mark.parametrize("token", ["puz", "PUZ", "Puz"])
    def test_case_insensitive(self, cat_puz, token):
        assert decode(cat_puz, token).title == "Test Puzzle"

    def test_xml_and_jpz_share_decoder(self, cat_xml, cat_jpz):
        assert decode(cat_xml, "xml") == decode(cat_jpz, "JPZ")

    def test_unsupported_token_verbatim(self, cat_puz):
        with pytest.raises(UnsupportedFormatError) as exc:
            decode(cat_puz, "PDF")
        assert exc.value.token == "PDF"
        assert str(exc.value) == "Unsupported format: PDF"

    def test_empty_token(self, cat_puz):
        with pytest.raises(UnsupportedFormatError):
            decode(cat_puz, "")

    def test_verify_checksums_passed_through(self, cat_puz):
        data = b"\xff\xff" + cat_puz[2:]
        assert decode(data, "puz").title == "Test Puzzle"
        with pytest.raises(ChecksumMismatchError):
            decode(data, "puz", verify_checksums=True)

    def test_formats_agree(self, cat_puz, cat_ipuz, cat_xml):
        puz = decode(cat_puz, "puz")
        ipuz = decode(cat_ipuz, "ipuz")
        jpz = decode(cat_xml, "xml")
        assert _numbers(puz) == _numbers(ipuz) == _numbers(jpz)
        assert _clue_layout(puz) == _clue_layout(ipuz) == _clue_layout(jpz)
        for p in (puz, ipuz, jpz):
            assert [p.answer_for(c, Direction.ACROSS) for c in p.clues.across] == ["CAT", "DOG"]


class TestReadPuzzle:
    def _write(self, data, suffix):
        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as f:
            f.write(data)
            return f.name

    def test_format_from_extension(self, cat_ipuz):
        path = self._write(cat_ipuz, ".IPUZ")
        try:
            assert read_puzzle(path).title == "Test Puzzle"
        finally:
            os.unlink(path)

    def test_explicit_format_overrides_extension(self, cat_puz):
        path = self._write(cat_puz, ".bin")
        try:
            assert read_puzzle(path, format_hint="puz").width == 3
        finally:
            os.unlink(path)

    def test_unknown_extension(self, cat_puz):
        path = self._write(cat_puz, ".txt")
        try:
            with pytest.raises(UnsupportedFormatError) as exc:
                read_puzzle(path)
            assert exc.value.token == "txt"
        finally:
            os.unlink(path)

    def test_missing_file(self):
        with pytest.raises(PuzzleFileNotFoundError) as exc:
            read_puzzle("/nonexistent/puzzle.puz")
        assert exc.value.path == "/nonexistent/puzzle.puz"

    def test_too_large(self):
        path = self._write(make_puz(notes="x" * 500), ".puz")
        try:
            with pytest.raises(FileTooLargeError) as exc:
                read_puzzle(path, max_bytes=100)
            assert exc.value.limit == 100
            assert exc.value.size > 100
        finally:
            os.unlink(path)
