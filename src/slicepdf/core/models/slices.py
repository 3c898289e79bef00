"""
Module: core.models.slices

Purpose:
    Data models for pagination output. PageSlice is the contract between
    the pagination engine and the slice compositor.

Key Classes:
    - HeaderBlock: A table header duplicated at the top of a page
    - PageSlice: One output page as a [start, end) band of content
    - PaginationResult: Ordered slices plus the inputs that produced them

Dependencies:
    - dataclasses (std)

Used By:
    - slicepdf.layout.engine: Creates slices
    - slicepdf.output.compositor: Consumes slices
    - slicepdf.batch.scaler: Attributes slices to batch items
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class HeaderBlock:
    """
    Repeated table header.

    Attributes:
        source_top_px: Where the original header starts in content space
        height_px: Header height in content pixels
    """

    source_top_px: int
    height_px: int

    @property
    def source_bottom_px(self) -> int:
        return self.source_top_px + self.height_px


@dataclass(frozen=True, slots=True)
class PageSlice:
    """
    A single output page (immutable).

    Attributes:
        index: Page index (0-indexed)
        start_px: First content row on the page
        end_px: End of content on the page (exclusive)
        source_item_index: Batch item owning start_px (0 in single mode)
        repeated_header: Table header drawn above the content, if any

    Example:
        >>> s = PageSlice(index=0, start_px=0, end_px=1000)
        >>> s.height_px
        1000
    """

    index: int
    start_px: int
    end_px: int
    source_item_index: int = 0
    repeated_header: Optional[HeaderBlock] = None

    @property
    def height_px(self) -> int:
        """Content height on the page (excludes a repeated header)."""
        return self.end_px - self.start_px

    @property
    def is_degenerate(self) -> bool:
        return self.end_px <= self.start_px

    @property
    def header_height_px(self) -> int:
        return self.repeated_header.height_px if self.repeated_header else 0

    def overlaps(self, start: int, end: int) -> bool:
        """True if the slice shares at least one row with [start, end)."""
        return self.start_px < end and start < self.end_px


@dataclass(frozen=True)
class PaginationResult:
    """
    Pagination output.

    Attributes:
        slices: Ordered page slices covering [0, total_height_px)
        total_height_px: Height that was paginated
        usable_height_px: Usable page height the engine worked against
        overflow_pages: Indices of slices taller than their budget
    """

    slices: Tuple[PageSlice, ...]
    total_height_px: int
    usable_height_px: int
    overflow_pages: Tuple[int, ...] = field(default=())

    @property
    def page_count(self) -> int:
        return len(self.slices)

    @property
    def header_count(self) -> int:
        """Number of repeated header blocks across all pages."""
        return sum(1 for s in self.slices if s.repeated_header is not None)
