"""Parsers for the CLI's non-table output shapes."""
from __future__ import annotations

import re
from typing import NamedTuple

from ..errors import ParseAmbiguityError
from .base import BORDER_GLYPHS, OutputParser, has_alnum, is_footer


class PlainEntry(NamedTuple):
    id: str
    name: str
    active: bool


_ACTIVE_MARKERS = ("[active]", "[*]")


class PlainListParser(OutputParser[PlainEntry]):
    """Legacy list shape: ``«id» «display name» [active]``."""

    def parse_line(self, line: str) -> PlainEntry | None:
        if line.startswith(("ℹ", "→")):
            return None
        active = any(marker in line for marker in _ACTIVE_MARKERS)
        for marker in _ACTIVE_MARKERS:
            line = line.replace(marker, "")
        parts = line.split()
        if not parts:
            return None
        ident = parts[0]
        if ident[0] in BORDER_GLYPHS or not has_alnum(ident):
            raise ParseAmbiguityError(line, "not an identifier")
        name = " ".join(parts[1:]) or ident
        return PlainEntry(ident, name, active)


_COLUMN_GAP_RE = re.compile(r"\s{2,}")


class ColumnParser(OutputParser[list[str]]):
    """Columns separated by two or more spaces (``skills search``)."""

    header_prefix = "Name"

    def __init__(self, min_columns: int = 2) -> None:
        self.min_columns = min_columns

    def parse_line(self, line: str) -> list[str] | None:
        if line.startswith(self.header_prefix) or "───" in line:
            return None
        columns = _COLUMN_GAP_RE.split(line)
        if len(columns) < self.min_columns:
            raise ParseAmbiguityError(line, "too few columns")
        if is_footer(columns[0]):
            return None
        return columns


class KeyValueParser(OutputParser[tuple[str, str]]):
    """``key: value`` or ``key = value`` dumps.

    Whichever separator appears first on the line wins.
    """

    def parse_line(self, line: str) -> tuple[str, str] | None:
        positions = [i for i in (line.find(":"), line.find("=")) if i > 0]
        if not positions:
            return None
        split_at = min(positions)
        key = line[:split_at].strip()
        if not key:
            return None
        return key, line[split_at + 1:].strip()

    def parse_dict(self, output: str | None) -> dict[str, str]:
        return dict(self.parse(output))
