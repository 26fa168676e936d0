"""Shared pieces for turning driven-CLI text into records.

The CLI renders tables with box-drawing glyphs, uses ``┆`` between
cells, ``✓`` for the active row and ``ℹ``/``→`` for footer lines.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Generic, TypeVar

from ..errors import ParseAmbiguityError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BORDER_GLYPHS = "┌┐└┘├┤┬┴┼─═│║╞╡╪╤╧╟╢╥╨╫╬╭╮╯╰╱╲╳╌"
# Glyphs that only appear on rule/border lines, never on data rows.
RULE_GLYPHS = "┌┐└┘├┤┬┴┼─═╞╡╪╤╧╟╢╥╨╫╬╌"
CELL_SEPARATOR = "┆"
CHECK_MARK = "✓"
FOOTER_GLYPHS = ("ℹ", "→")

_BORDER_LINE_RE = re.compile(f"^[{BORDER_GLYPHS}\\s]+$")
_RESIDUAL_RE = re.compile("[│┌┐└┘╞═╪╡║]")
_ALNUM_RE = re.compile("[A-Za-z0-9]")


def is_border_line(line: str) -> bool:
    return bool(_BORDER_LINE_RE.match(line))


def is_footer(text: str) -> bool:
    return any(glyph in text for glyph in FOOTER_GLYPHS)


def has_alnum(text: str) -> bool:
    return bool(_ALNUM_RE.search(text))


def clean_cell(cell: str) -> str:
    """Strip residual border glyphs and surrounding whitespace."""
    return _RESIDUAL_RE.sub("", cell.strip()).strip()


def split_cells(line: str) -> list[str]:
    return [clean_cell(cell) for cell in line.split(CELL_SEPARATOR)]


def is_checked(cell: str) -> bool:
    return CHECK_MARK in cell


def content_lines(output: str) -> Iterator[str]:
    """Yield trimmed lines that may carry data.

    Blank lines, ``#`` comments, ``===`` rules and lines made only of
    border glyphs are dropped.
    """
    for raw in output.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith("==="):
            continue
        if is_border_line(line):
            continue
        yield line


class OutputParser(ABC, Generic[T]):
    """Turns one shape of CLI output into an ordered list of records.

    parse() is total: sentinel lines short-circuit to ``[]`` and a line
    that raises ParseAmbiguityError is skipped.
    """

    # Case-insensitive "none found" markers.
    sentinels: tuple[str, ...] = ()

    def parse(self, output: str | None) -> list[T]:
        if not output:
            return []
        lowered = output.lower()
        if any(s.lower() in lowered for s in self.sentinels):
            return []

        records: list[T] = []
        for line in content_lines(output):
            try:
                record = self.parse_line(line)
            except ParseAmbiguityError as exc:
                logger.debug("%s skipped line: %s", type(self).__name__, exc)
                continue
            if record is not None:
                records.append(record)
        return records

    @abstractmethod
    def parse_line(self, line: str) -> T | None:
        """Return a record, None for lines that carry no data, or raise
        ParseAmbiguityError for a malformed data line."""
