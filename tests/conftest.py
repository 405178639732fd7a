"""Builders for hand-made puzzle files shared by the test modules."""

import io
import json
import struct
import zipfile

import pytest

# Solution CAT / .O. / DOG: 1-Across CAT, 2-Down AOO, 3-Across DOG
CAT_SOLUTION = b"CAT.O.DOG"
CAT_CLUES = ("Feline friend", "Letter between N and P", "Canine friend")


def cksum(data, value=0):
    for b in data:
        lowbit = value & 0x0001
        value >>= 1
        if lowbit:
            value |= 0x8000
        value = (value + b) & 0xFFFF
    return value


def _encode(s):
    return s if isinstance(s, bytes) else s.encode("utf-8")


def make_extension(name, payload, checksum=None):
    if checksum is None:
        checksum = cksum(payload)
    return name + struct.pack("<HH", len(payload), checksum) + payload + b"\0"


def make_puz(
    solution=CAT_SOLUTION,
    width=3,
    height=3,
    state=None,
    title="Test Puzzle",
    author="Test Author",
    copyright="2024",
    clues=CAT_CLUES,
    notes="",
    extensions=(),
    scrambled_tag=0,
    puzzle_type=1,
    version=b"1.3\0",
):
    """Build a .puz file with correct checksums."""
    if state is None:
        state = bytes(ord(".") if b == ord(".") else ord("-") for b in solution)
    strings = [_encode(s) for s in (title, author, copyright)]
    clue_bytes = [_encode(c) for c in clues]
    notes_bytes = _encode(notes)

    header_ck = cksum(struct.pack("<BBHHH", width, height, len(clues), puzzle_type, scrambled_tag))

    text_ck = 0
    for s in strings:
        if s:
            text_ck = cksum(s + b"\0", text_ck)
    for c in clue_bytes:
        if c:
            text_ck = cksum(c, text_ck)
    if notes_bytes:
        text_ck = cksum(notes_bytes + b"\0", text_ck)

    file_ck = cksum(state, cksum(solution, header_ck))
    for s in strings:
        if s:
            file_ck = cksum(s + b"\0", file_ck)
    for c in clue_bytes:
        if c:
            file_ck = cksum(c, file_ck)
    if notes_bytes:
        file_ck = cksum(notes_bytes + b"\0", file_ck)

    mask = b"ICHEATED"
    parts = [header_ck, cksum(solution), cksum(state), text_ck]
    masked = 0
    for i, ck in enumerate(reversed(parts)):
        slot = len(parts) - i - 1
        masked <<= 8
        masked |= mask[slot] ^ (ck & 0xFF)
        masked |= (mask[slot + 4] ^ (ck >> 8)) << 32

    header = struct.pack(
        "<H12sHQ4s2sH12sBBHHH",
        file_ck, b"ACROSS&DOWN\0", header_ck, masked, version,
        b"\0\0", 0, b"\0" * 12,
        width, height, len(clues), puzzle_type, scrambled_tag,
    )
    body = solution + state
    for s in strings + clue_bytes + [notes_bytes]:
        body += s + b"\0"
    for ext in extensions:
        body += ext
    return header + body


CAT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<crossword-compiler xmlns="http://crossword.info/xml/crossword-compiler">
<rectangular-puzzle xmlns="http://crossword.info/xml/rectangular-puzzle" alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ">
  <metadata>
    <title>Test Puzzle</title>
    <creator>Test Author</creator>
    <copyright>2024</copyright>
    <description>Some notes</description>
  </metadata>
  <crossword>
    <grid width="3" height="3">
      <grid-look numbering-scheme="normal"/>
      <cell x="1" y="1" solution="C" number="1"/>
      <cell x="2" y="1" solution="A" number="2"/>
      <cell x="3" y="1" solution="T"/>
      <cell x="1" y="2" type="block"/>
      <cell x="2" y="2" solution="O"/>
      <cell x="3" y="2" type="block"/>
      <cell x="1" y="3" solution="D" number="3"/>
      <cell x="2" y="3" solution="O"/>
      <cell x="3" y="3" solution="G"/>
    </grid>
    <word id="1" x="1-3" y="1"/>
    <word id="2" x="2" y="1-3"/>
    <word id="3" x="1-3" y="3"/>
    <clues ordering="normal">
      <title><b>Across</b></title>
      <clue word="1" number="1">Feline friend</clue>
      <clue word="3" number="3">Canine friend</clue>
    </clues>
    <clues ordering="normal">
      <title><b>Down</b></title>
      <clue word="2" number="2">Letter between N and P</clue>
    </clues>
  </crossword>
</rectangular-puzzle>
</crossword-compiler>
"""


def make_ipuz_doc(**overrides):
    doc = {
        "version": "http://ipuz.org/v2",
        "kind": ["http://ipuz.org/crossword#1"],
        "dimensions": {"width": 3, "height": 3},
        "title": "Test Puzzle",
        "author": "Test Author",
        "copyright": "2024",
        "puzzle": [[1, 2, 0], ["#", 0, "#"], [3, 0, 0]],
        "solution": [["C", "A", "T"], ["#", "O", "#"], ["D", "O", "G"]],
        "clues": {
            "Across": [[1, "Feline friend"], [3, "Canine friend"]],
            "Down": [[2, "Letter between N and P"]],
        },
    }
    doc.update(overrides)
    return doc


def make_ipuz(**overrides):
    return json.dumps(make_ipuz_doc(**overrides)).encode("utf-8")


def make_zip(members):
    """Zip ``{name: bytes}`` in insertion order."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def cat_puz():
    return make_puz()


@pytest.fixture
def cat_ipuz():
    return make_ipuz()


@pytest.fixture
def cat_xml():
    return CAT_XML.encode("utf-8")


@pytest.fixture
def cat_jpz(cat_xml):
    return make_zip({"puzzle.xml": cat_xml})
