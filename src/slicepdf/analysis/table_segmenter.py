"""
Module: analysis.table_segmenter

Purpose:
    Decide where tables taller than one page may be cut. A TablePlan turns
    the frozen row geometry of every oversized table into safe cut offsets
    and answers two questions for the pagination engine: where should a
    tentative page end snap to, and does a page starting here need a
    repeated header.

Key Functions:
    - segment_tables(): Build a TablePlan from table candidates

Key Classes:
    - TablePolicy: Header repetition and row splitting rules
    - TablePlan: Safe cuts, snap() and header_for()
    - SnapDecision: Result of snapping one tentative boundary

Snapping rules (boundary strictly inside a table):
    - Inside the header or row 0 of a table starting below the page top
      -> break before the whole table
    - Inside row i -> end of row i-1, unless fewer than min_rows_per_page
      rows would remain on the page -> past row i (overflow)
    - Row taller than the remaining page -> past the row (overflow), or the
      raw cut when row splitting is allowed

Dependencies:
    - slicepdf.core.models: TableSegment, HeaderBlock

Used By:
    - slicepdf.layout.engine: Table snapping and header repetition
    - slicepdf.controller: Builds the plan per generation call
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from slicepdf.core.models import HeaderBlock, TableSegment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TablePolicy:
    """
    Table pagination rules (immutable).

    Attributes:
        repeat_headers: Duplicate the header at the top of continuation pages
        allow_row_split: Cut through rows that cannot fit on any page
        min_rows_per_page: Fewest rows a page may end a table section with
    """

    repeat_headers: bool = True
    allow_row_split: bool = False
    min_rows_per_page: int = 3

    def __post_init__(self) -> None:
        if self.min_rows_per_page < 1:
            raise ValueError(f"min_rows_per_page must be >= 1: {self.min_rows_per_page}")


@dataclass(frozen=True, slots=True)
class SnapDecision:
    """
    Outcome of TablePlan.snap().

    Attributes:
        end_px: Boundary to use
        reason: "outside", "boundary", "before_table", "row_boundary",
            "min_rows", "row_split" or "oversized_row"
        overflow: True when end_px lies past the tentative boundary
    """

    end_px: int
    reason: str
    overflow: bool = False

    @property
    def moved(self) -> bool:
        return self.reason not in ("outside", "boundary")


class TablePlan:
    """
    Safe cut offsets and header repeats for oversized tables.

    Tables are kept sorted by top offset; lookups are binary searches.

    Example:
        >>> table = TableSegment(700, 100, (800, 1000, 1200, 1400))
        >>> plan = segment_tables([table], TablePolicy(min_rows_per_page=1))
        >>> plan.snap(0, 1100)
        SnapDecision(end_px=1000, reason='row_boundary', overflow=False)
    """

    def __init__(self, tables: Iterable[TableSegment] = (), policy: Optional[TablePolicy] = None):
        self._tables: Tuple[TableSegment, ...] = tuple(
            sorted(tables, key=lambda t: t.table_offset_px)
        )
        self._tops: Tuple[int, ...] = tuple(t.table_offset_px for t in self._tables)
        self.policy = policy or TablePolicy()

    @property
    def tables(self) -> Tuple[TableSegment, ...]:
        return self._tables

    @property
    def safe_cuts(self) -> Tuple[int, ...]:
        """Every offset a table may legally be cut at, ascending."""
        cuts = set()
        for table in self._tables:
            cuts.add(table.table_offset_px)
            cuts.update(table.row_boundaries)
        return tuple(sorted(cuts))

    def table_at(self, y: int) -> Optional[TableSegment]:
        """Table strictly containing y, or None."""
        i = bisect_left(self._tops, y) - 1
        if i >= 0:
            table = self._tables[i]
            if table.table_offset_px < y < table.bottom_px:
                return table
        return None

    def header_for(self, cursor: int) -> Optional[HeaderBlock]:
        """
        Header to repeat on a page starting at cursor.

        Only pages starting inside a table body (at or below the first row)
        receive one.
        """
        if not self.policy.repeat_headers:
            return None
        i = bisect_right(self._tops, cursor) - 1
        if i < 0:
            return None
        table = self._tables[i]
        if table.header_height_px <= 0:
            return None
        if table.body_top_px <= cursor < table.bottom_px:
            return HeaderBlock(table.table_offset_px, table.header_height_px)
        return None

    def snap(self, cursor: int, end: int) -> SnapDecision:
        """
        Snap a tentative page end to a legal table cut.

        Args:
            cursor: Start of the page being laid out
            end: Tentative end (cursor < end)

        Returns:
            SnapDecision whose end_px is always > cursor
        """
        table = self.table_at(end)
        if table is None:
            return SnapDecision(end, "outside")

        edges = table.row_boundaries
        if end in edges:
            return SnapDecision(end, "boundary")

        starts_below = table.table_offset_px > cursor
        if starts_below and end < table.row_bottom(0):
            # Header or first row would be stranded at the page bottom
            return SnapDecision(table.table_offset_px, "before_table")

        if end < table.body_top_px:
            # Page starts inside the header itself
            if table.body_top_px > cursor:
                return SnapDecision(table.body_top_px, "row_boundary")
            return self._past_row(table, 0, end)

        row = bisect_right(edges, end) - 1
        back = table.row_top(row)
        if back <= cursor:
            return self._oversized(table, row, cursor, end)

        first_row = bisect_left(edges, cursor)
        rows_on_page = row - min(first_row, row)
        if rows_on_page < self.policy.min_rows_per_page:
            logger.debug(
                f"Only {rows_on_page} rows before {end}, keeping row {row} on the page"
            )
            return self._past_row(table, row, end, reason="min_rows")

        return SnapDecision(back, "row_boundary")

    def _past_row(self, table: TableSegment, row: int, end: int, reason: str = "min_rows") -> SnapDecision:
        forward = table.row_bottom(row)
        return SnapDecision(forward, reason, overflow=forward > end)

    def _oversized(self, table: TableSegment, row: int, cursor: int, end: int) -> SnapDecision:
        """Row starting at or above the page top does not fit on the page."""
        if self.policy.allow_row_split or table.allow_split:
            logger.debug(f"Splitting row {row} at {end}")
            return SnapDecision(end, "row_split")
        forward = table.row_bottom(row)
        logger.debug(f"Row {row} ({table.row_height(row)}px) exceeds page at {cursor}")
        return SnapDecision(forward, "oversized_row", overflow=True)

    def __len__(self) -> int:
        return len(self._tables)


def segment_tables(
    candidates: Iterable[TableSegment],
    policy: Optional[TablePolicy] = None,
) -> TablePlan:
    """
    Build a TablePlan for the tables that must cross pages.

    Args:
        candidates: TableSegments from the break analyzer
        policy: Table rules (defaults to TablePolicy())

    Returns:
        TablePlan ready for the pagination engine
    """
    plan = TablePlan(candidates, policy)
    if plan.tables:
        logger.info(
            f"Segmented {len(plan)} tables into {len(plan.safe_cuts)} safe cuts "
            f"(repeat_headers={plan.policy.repeat_headers}, "
            f"min_rows_per_page={plan.policy.min_rows_per_page})"
        )
    return plan
