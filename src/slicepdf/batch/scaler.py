"""
Module: batch.scaler

Purpose:
    Combine independently captured batch items into one content stream.
    Each item is scaled so it fills its requested number of pages, placed
    after its predecessor, and contributes its own break constraints and
    tables shifted to its concatenation offset. Item boundaries become
    forced breaks according to the item's new_page flag.

Key Functions:
    - compute_scale(): Scale for a requested page count (unclamped)
    - plan_batch(): Scales, spans and merged constraints for a batch
    - assign_pages(): Page range per item after pagination

Key Classes:
    - BatchPlan: Everything the engine and compositor need for a batch

Dependencies:
    - slicepdf.analysis.break_analyzer: Per-item constraint extraction
    - slicepdf.core.models: BatchItem, ItemSpan, constraints, tables

Used By:
    - slicepdf.controller: generate_batch()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from slicepdf.analysis.break_analyzer import BreakPolicy, analyze_breaks
from slicepdf.capture.adapter import CaptureResult
from slicepdf.core.models import (
    BatchItem,
    BreakConstraint,
    BreakKind,
    ItemSpan,
    PageSlice,
    TableSegment,
    build_constraints,
    split_constraints,
)
from slicepdf.diagnostics import DiagnosticsCollector

logger = logging.getLogger(__name__)

MIN_SCALE = 0.1
MAX_SCALE = 4.0


@dataclass(frozen=True)
class BatchPlan:
    """
    Concatenated batch layout (immutable).

    Attributes:
        items: Items with computed_scale set
        spans: Placement of each scaled surface, in caller order
        constraints: Merged constraints over the concatenated content
        tables: Oversized tables, shifted to concatenated offsets
        total_height_px: Height of the concatenated content
    """

    items: Tuple[BatchItem, ...]
    spans: Tuple[ItemSpan, ...]
    constraints: Tuple[BreakConstraint, ...]
    tables: Tuple[TableSegment, ...]
    total_height_px: int


def compute_scale(
    natural_height_px: int,
    usable_height_px: int,
    requested_page_count: Optional[int],
) -> float:
    """
    Scale that makes an item exactly fill its page budget.

    Example:
        >>> compute_scale(3000, 1000, 1)
        0.3333333333333333
        >>> compute_scale(3000, 1000, None)
        1.0
    """
    if requested_page_count is None:
        return 1.0
    if natural_height_px <= 0:
        raise ValueError(f"natural_height_px must be positive: {natural_height_px}")
    return requested_page_count * usable_height_px / natural_height_px


def plan_batch(
    items: Sequence[BatchItem],
    captures: Sequence[CaptureResult],
    usable_height_px: int,
    policy: Optional[BreakPolicy] = None,
    diagnostics: Optional[DiagnosticsCollector] = None,
) -> BatchPlan:
    """
    Scale and concatenate captured batch items.

    Args:
        items: Batch items in caller order
        captures: One capture per item, same order
        usable_height_px: Content pixels per page
        policy: Break analysis rules applied to every item
        diagnostics: Receives clamped-scale warnings

    Returns:
        BatchPlan for the pagination engine
    """
    if len(items) != len(captures):
        raise ValueError(f"{len(items)} items but {len(captures)} captures")
    if not items:
        raise ValueError("A batch needs at least one item")

    diagnostics = diagnostics if diagnostics is not None else DiagnosticsCollector()

    planned: List[BatchItem] = []
    spans: List[ItemSpan] = []
    forced: List[BreakConstraint] = []
    ranges = []
    tables: List[TableSegment] = []
    offset = 0
    last = len(items) - 1

    for index, (item, captured) in enumerate(zip(items, captures)):
        natural = captured.surface.height_px
        raw = compute_scale(natural, usable_height_px, item.requested_page_count)
        scale = min(MAX_SCALE, max(MIN_SCALE, raw))
        if scale != raw:
            diagnostics.scale_out_of_range(
                f"Item {index + 1}: scale {raw:.3f} clamped to {scale}",
                item_index=index,
            )

        height = max(1, int(round(natural * scale)))
        span = ItemSpan(
            item_index=index,
            offset_px=offset,
            height_px=height,
            scale=scale,
            surface=captured.surface,
        )

        # Analyze in scaled space so page-relative rules use the real page height
        analysis = analyze_breaks(captured.layout.scaled(scale), height, usable_height_px, policy)
        item_forced, item_ranges = split_constraints(
            c.shifted(offset) for c in analysis.constraints
        )
        forced.extend(item_forced)
        ranges.extend(item_ranges)
        tables.extend(t.transformed(1.0, offset) for t in analysis.table_candidates)

        if item.new_page is True and offset > 0:
            forced.append(BreakConstraint(offset, BreakKind.FORCE_BEFORE))
        elif item.new_page is None and index < last:
            forced.append(BreakConstraint(span.end_px, BreakKind.FORCE_AFTER))

        logger.debug(
            f"Item {index + 1}: natural {natural}px x {scale:.3f} = {height}px "
            f"at offset {offset}"
        )
        planned.append(item.with_scale(scale))
        spans.append(span)
        offset = span.end_px

    constraints = build_constraints(forced, ranges)
    logger.info(
        f"Planned batch of {len(items)} items: {offset}px, "
        f"{len(constraints)} constraints, {len(tables)} tables"
    )
    return BatchPlan(
        items=tuple(planned),
        spans=tuple(spans),
        constraints=constraints,
        tables=tuple(tables),
        total_height_px=offset,
    )


def assign_pages(
    items: Sequence[BatchItem],
    spans: Sequence[ItemSpan],
    slices: Sequence[PageSlice],
) -> Tuple[BatchItem, ...]:
    """
    Set start_page / end_page (0-indexed) from the slices overlapping each span.

    Args:
        items: Planned items (computed_scale set)
        spans: Matching spans
        slices: Final, renumbered slices

    Returns:
        New BatchItem instances with page ranges
    """
    result = []
    for item, span in zip(items, spans):
        pages = [s.index for s in slices if s.overlaps(span.offset_px, span.end_px)]
        if not pages:
            raise ValueError(f"No page covers item {span.item_index + 1}")
        result.append(item.with_pages(pages[0], pages[-1]))
    return tuple(result)
