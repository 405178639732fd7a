#!/usr/bin/env python3
"""CLI entry point: read a .puz / .ipuz / .jpz / .xml crossword.

Decodes the file and prints a summary of the puzzle to stderr.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from models import CrosswordError, Puzzle
from puzzle_reader import DEFAULT_MAX_BYTES, SUPPORTED_FORMATS, read_puzzle


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Read a crossword file and print a summary of it."
    )
    p.add_argument("input",
                   help="Path to a .puz, .ipuz, .jpz or .xml puzzle")
    p.add_argument("--format", dest="format_hint", default=None,
                   help=f"Override the format detected from the extension "
                        f"({', '.join(SUPPORTED_FORMATS)})")
    p.add_argument("--verify-checksums", action="store_true",
                   help="Reject .puz files whose checksums do not match")
    p.add_argument("--max-bytes", type=int, default=DEFAULT_MAX_BYTES,
                   help=f"Refuse files larger than this (default: {DEFAULT_MAX_BYTES})")
    p.add_argument("--verbose", "-v", action="store_true",
                   help="Log decoder details to stderr")
    return p


def main(argv: list[str] | None = None) -> None:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    t0 = time.time()

    try:
        puzzle = read_puzzle(
            args.input,
            format_hint=args.format_hint,
            max_bytes=args.max_bytes,
            verify_checksums=args.verify_checksums,
        )
    except CrosswordError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    _print_summary(puzzle)

    elapsed = time.time() - t0
    print(f"Done in {elapsed:.1f}s", file=sys.stderr)


def _print_summary(puzzle: Puzzle) -> None:
    print(f"Title:     {puzzle.title or '(untitled)'}", file=sys.stderr)
    if puzzle.author:
        print(f"Author:    {puzzle.author}", file=sys.stderr)
    if puzzle.copyright:
        print(f"Copyright: {puzzle.copyright}", file=sys.stderr)

    black_cells = sum(1 for row in puzzle.grid for cell in row if cell.is_black)
    density = (puzzle.cell_count - black_cells) / puzzle.cell_count * 100
    print(
        f"Grid {puzzle.width}x{puzzle.height}, "
        f"{len(puzzle.clues.across)} across / {len(puzzle.clues.down)} down clues, "
        f"grid density {density:.0f}%",
        file=sys.stderr,
    )

    if puzzle.is_scrambled:
        print("Solution is scrambled", file=sys.stderr)
    elif not puzzle.has_solution:
        print("No solution in file", file=sys.stderr)
    if puzzle.timer_state is not None:
        print(f"Timer:     {puzzle.timer_state}", file=sys.stderr)


if __name__ == "__main__":
    main()
