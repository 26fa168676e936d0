"""Parser for the CLI's box-drawing tables."""
from __future__ import annotations

from abc import abstractmethod
from typing import TypeVar

from ..errors import ParseAmbiguityError
from .base import (
    CELL_SEPARATOR,
    RULE_GLYPHS,
    OutputParser,
    has_alnum,
    is_footer,
    split_cells,
)

T = TypeVar("T")


class TableParser(OutputParser[T]):
    """Reads ``┆``-separated rows.

    Subclasses set the column titles that mark a header row, the minimum
    cell count of a data row and which cell holds the identifier, and
    implement build().
    """

    header_titles: frozenset[str] = frozenset({"ID", "Name"})
    min_cells: int = 3
    id_index: int = 1

    def parse_line(self, line: str) -> T | None:
        if CELL_SEPARATOR not in line:
            return None
        if any(glyph in line for glyph in RULE_GLYPHS):
            return None
        if is_footer(line):
            return None

        cells = split_cells(line)
        if any(cell in self.header_titles for cell in cells):
            return None
        if len(cells) < self.min_cells:
            raise ParseAmbiguityError(
                line, f"expected {self.min_cells} cells, got {len(cells)}"
            )
        ident = cells[self.id_index]
        if not ident or not has_alnum(ident):
            raise ParseAmbiguityError(line, "missing identifier")
        return self.build(cells)

    @abstractmethod
    def build(self, cells: list[str]) -> T:
        """Create a record from a validated row."""

    @staticmethod
    def cell(cells: list[str], index: int, default: str = "") -> str:
        return cells[index] if index < len(cells) else default
