"""
Module: layout.engine

Purpose:
    Cut continuous content of a known height into page slices. Greedy
    forward scan with local lookback: each page takes as much content as
    fits, then its end is moved to the nearest legal boundary. Emitted
    slices are never revisited.

Key Functions:
    - paginate(): Main pagination function

Algorithm:
    For each page starting at cursor:
    1. budget = usable height minus any repeated table header
    2. end = min(cursor + budget, total)
    3. Forced break in (cursor, end] -> end moves to the earliest one
    4. Else end strictly inside an avoid range -> shrink to its start, or
       grow to its end when shrinking would empty the page (overflow)
    5. Else end inside an oversized table -> TablePlan.snap(); a snapped
       end landing inside an avoid range is shrunk again when possible
    6. Emit the slice, cursor = end

Dependencies:
    - slicepdf.core.models: ConstraintSet, PageSlice, PaginationResult
    - slicepdf.analysis.table_segmenter: TablePlan
    - slicepdf.diagnostics: Overflow warnings
    - slicepdf.progress: Progress and cancellation

Used By:
    - slicepdf.controller: Single and batch generation
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from typing import List, Optional, Sequence, Tuple, Union

from slicepdf.analysis.table_segmenter import TablePlan
from slicepdf.core.models import (
    BreakConstraint,
    ConstraintSet,
    ItemSpan,
    PageSlice,
    PaginationResult,
)
from slicepdf.diagnostics import DiagnosticsCollector
from slicepdf.progress import CancellationToken, ProgressTracker

logger = logging.getLogger(__name__)


def paginate(
    total_height_px: int,
    usable_height_px: int,
    constraints: Union[ConstraintSet, Sequence[BreakConstraint]] = (),
    table_plan: Optional[TablePlan] = None,
    *,
    diagnostics: Optional[DiagnosticsCollector] = None,
    progress: Optional[ProgressTracker] = None,
    cancel: Optional[CancellationToken] = None,
    item_spans: Sequence[ItemSpan] = (),
) -> PaginationResult:
    """
    Slice [0, total_height_px) into pages.

    Identical inputs always give an identical slice list.

    Args:
        total_height_px: Height of the content to paginate
        usable_height_px: Content pixels available per page
        constraints: Sorted break constraints (or a prepared ConstraintSet)
        table_plan: Safe cuts and header repeats for oversized tables
        diagnostics: Receives overflow warnings
        progress: Receives cursor / total after each slice
        cancel: Checked before each slice
        item_spans: Batch placement, used to attribute slices to items

    Returns:
        PaginationResult covering the content exactly once

    Example:
        >>> [(s.start_px, s.end_px) for s in paginate(3000, 1000).slices]
        [(0, 1000), (1000, 2000), (2000, 3000)]
    """
    if total_height_px <= 0:
        raise ValueError(f"total_height_px must be positive: {total_height_px}")
    if usable_height_px <= 0:
        raise ValueError(f"usable_height_px must be positive: {usable_height_px}")

    cset = constraints if isinstance(constraints, ConstraintSet) else ConstraintSet(constraints)
    plan = table_plan or TablePlan()
    diagnostics = diagnostics if diagnostics is not None else DiagnosticsCollector()
    span_offsets = tuple(span.offset_px for span in item_spans)

    slices: List[PageSlice] = []
    overflow_pages: List[int] = []
    cursor = 0

    while cursor < total_height_px:
        if cancel is not None:
            cancel.raise_if_cancelled("pagination")

        header = plan.header_for(cursor)
        budget = usable_height_px
        if header is not None:
            if header.height_px < usable_height_px:
                budget -= header.height_px
            else:
                logger.debug(f"Header of {header.height_px}px fills the page, not repeating")
                header = None

        end, reason = _page_end(cursor, budget, total_height_px, cset, plan)

        index = len(slices)
        if end - cursor > budget:
            overflow_pages.append(index)
            diagnostics.constraint_conflict(
                f"Page {index + 1} overflows by {end - cursor - budget}px ({reason})",
                offset_px=cursor,
            )

        slices.append(PageSlice(
            index=index,
            start_px=cursor,
            end_px=end,
            source_item_index=_item_at(item_spans, span_offsets, cursor),
            repeated_header=header,
        ))
        logger.debug(f"Slice {index}: [{cursor}, {end}) {reason}")

        cursor = end
        if progress is not None:
            progress.update(cursor / total_height_px)

    logger.info(
        f"Paginated {total_height_px}px into {len(slices)} pages "
        f"({len(overflow_pages)} overflowing, usable {usable_height_px}px)"
    )
    return PaginationResult(
        slices=tuple(slices),
        total_height_px=total_height_px,
        usable_height_px=usable_height_px,
        overflow_pages=tuple(overflow_pages),
    )


def _page_end(
    cursor: int,
    budget: int,
    total: int,
    cset: ConstraintSet,
    plan: TablePlan,
) -> Tuple[int, str]:
    """Pick the end of the page starting at cursor. Always > cursor."""
    end = min(cursor + budget, total)

    forced = cset.first_forced_break(cursor, end)
    if forced is not None:
        return forced, "forced break"

    if end >= total:
        return total, "end of content"

    avoid = cset.avoid_range_at(end)
    if avoid is not None:
        if avoid.start > cursor:
            return avoid.start, "avoid range start"
        return _honour_forced(cursor, avoid.end, cset, "avoid range overflow")

    decision = plan.snap(cursor, end)
    if not decision.moved:
        return end, "full page"

    snapped = decision.end_px
    avoid = cset.avoid_range_at(snapped)
    if avoid is not None and avoid.start > cursor:
        return avoid.start, f"table {decision.reason}, avoid range start"
    if decision.overflow:
        return _honour_forced(cursor, snapped, cset, f"table {decision.reason}")
    return snapped, f"table {decision.reason}"


def _honour_forced(cursor: int, end: int, cset: ConstraintSet, reason: str) -> Tuple[int, str]:
    """Forced breaks still win inside a page grown past its budget."""
    forced = cset.first_forced_break(cursor, end)
    if forced is not None:
        return forced, "forced break"
    return end, reason


def _item_at(spans: Sequence[ItemSpan], offsets: Tuple[int, ...], y: int) -> int:
    if not spans:
        return 0
    i = max(0, bisect_right(offsets, y) - 1)
    return spans[i].item_index
