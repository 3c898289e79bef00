"""
Module: core.models.tables

Purpose:
    Frozen table geometry. A TableSegment describes one table that is too
    tall to fit on a single page: its header block and the absolute row
    boundaries the Table Segmenter may cut at.

Key Classes:
    - TableSegment: Header + row boundaries of one table

Dependencies:
    - dataclasses (std)

Used By:
    - slicepdf.analysis.break_analyzer: Freezes tables from geometry
    - slicepdf.analysis.table_segmenter: Computes safe cuts
    - slicepdf.batch.scaler: Rescales and shifts segments
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class TableSegment:
    """
    Geometry of a table that may cross pages (immutable).

    The header occupies [table_offset_px, table_offset_px + header_height_px).
    row_boundaries holds [row0_top, row0_bottom, row1_bottom, ..., rowN_bottom]
    as absolute surface offsets, so row i spans
    [row_boundaries[i], row_boundaries[i + 1]).

    Attributes:
        table_offset_px: Top of the table (header included)
        header_height_px: Height of the header block (0 if none)
        row_boundaries: Ascending absolute row edges
        allow_split: Rows of this table may be cut through their content

    Example:
        >>> seg = TableSegment(700, 100, (800, 1000, 1200))
        >>> seg.row_count
        2
        >>> seg.bottom_px
        1200
    """

    table_offset_px: int
    header_height_px: int
    row_boundaries: Tuple[int, ...]
    allow_split: bool = False

    def __post_init__(self) -> None:
        """Validate geometry on construction."""
        if self.header_height_px < 0:
            raise ValueError(f"header_height_px must be >= 0: {self.header_height_px}")
        if len(self.row_boundaries) < 2:
            raise ValueError("A table segment needs at least one row")
        edges = self.row_boundaries
        if any(b <= a for a, b in zip(edges, edges[1:])):
            raise ValueError(f"row_boundaries must be strictly ascending: {edges}")
        if edges[0] < self.table_offset_px + self.header_height_px:
            raise ValueError("First row starts inside the header block")

    @property
    def body_top_px(self) -> int:
        """Top of the first row."""
        return self.row_boundaries[0]

    @property
    def bottom_px(self) -> int:
        """Bottom of the last row."""
        return self.row_boundaries[-1]

    @property
    def height_px(self) -> int:
        return self.bottom_px - self.table_offset_px

    @property
    def row_count(self) -> int:
        return len(self.row_boundaries) - 1

    def row_top(self, i: int) -> int:
        return self.row_boundaries[i]

    def row_bottom(self, i: int) -> int:
        return self.row_boundaries[i + 1]

    def row_height(self, i: int) -> int:
        return self.row_bottom(i) - self.row_top(i)

    def transformed(self, scale: float, offset: int) -> TableSegment:
        """
        Return a copy scaled by ``scale`` then shifted by ``offset``.

        Edges collapsing onto each other after rounding are dropped.
        """
        def tx(y: float) -> int:
            return int(round(y * scale)) + offset

        edges = []
        for edge in self.row_boundaries:
            value = tx(edge)
            if not edges or value > edges[-1]:
                edges.append(value)
        if len(edges) < 2:
            edges = [tx(self.row_boundaries[0]), tx(self.row_boundaries[0]) + 1]

        top = tx(self.table_offset_px)
        header = min(int(round(self.header_height_px * scale)), edges[0] - top)
        return TableSegment(
            table_offset_px=top,
            header_height_px=max(0, header),
            row_boundaries=tuple(edges),
            allow_split=self.allow_split,
        )
