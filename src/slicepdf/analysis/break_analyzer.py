"""
Module: analysis.break_analyzer

Purpose:
    Extract break constraints from frozen content geometry in a single
    depth-first pass. The result is an immutable, sorted constraint list
    plus the tables that are too tall for one page and must be segmented
    row by row.

Key Functions:
    - analyze_breaks(): Main analysis entry point
    - freeze_table(): Turn a table node into a TableSegment

Key Classes:
    - BreakPolicy: Which rules to apply
    - BreakAnalysis: Constraints + table candidates

Algorithm:
    For every node with positive height:
    1. Computed break-before/after -> FORCE_BEFORE / FORCE_AFTER
    2. Computed break-inside: avoid -> avoid range over the node
    3. Selector defaults -> forced breaks / avoid ranges
    4. Tables taller than a page -> TableSegment (row-level integrity)
    5. Headings -> avoid range from heading top to end of next sibling
    Overlapping avoid ranges are merged into their union at the end.

Dependencies:
    - slicepdf.core.models: ContentNode, BreakConstraint, AvoidRange, TableSegment

Used By:
    - slicepdf.controller: Single-item generation
    - slicepdf.batch.scaler: Per-item analysis before concatenation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from slicepdf.config import DEFAULT_AVOID_BREAK_INSIDE
from slicepdf.core.models import (
    AvoidRange,
    BreakConstraint,
    BreakKind,
    ContentNode,
    TableSegment,
    build_constraints,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BreakPolicy:
    """
    Analysis switches (immutable).

    Attributes:
        respect_explicit_breaks: Honour computed break styles
        avoid_orphan_headings: Keep headings with their next sibling
        avoid_break_inside_selectors: Nodes that should not be split
        break_before_selectors: Nodes that always start a page
        break_after_selectors: Nodes that always end a page
    """

    respect_explicit_breaks: bool = True
    avoid_orphan_headings: bool = True
    avoid_break_inside_selectors: Tuple[str, ...] = DEFAULT_AVOID_BREAK_INSIDE
    break_before_selectors: Tuple[str, ...] = ()
    break_after_selectors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BreakAnalysis:
    """
    Analysis output (immutable).

    Attributes:
        constraints: Sorted constraints with merged avoid ranges
        table_candidates: Tables taller than one usable page
    """

    constraints: Tuple[BreakConstraint, ...]
    table_candidates: Tuple[TableSegment, ...] = ()

    @property
    def forced_offsets(self) -> Tuple[int, ...]:
        return tuple(c.offset_px for c in self.constraints if c.kind.is_forced)


@dataclass
class _Collected:
    """Mutable accumulator for one traversal."""
    total_height: int
    usable_height: int
    policy: BreakPolicy
    forced: List[BreakConstraint] = field(default_factory=list)
    ranges: List[AvoidRange] = field(default_factory=list)
    tables: List[TableSegment] = field(default_factory=list)

    def clamp(self, y: float) -> int:
        return max(0, min(self.total_height, int(round(y))))

    def force(self, y: float, kind: BreakKind) -> None:
        offset = self.clamp(y)
        # A break at either end of the content is a no-op
        if 0 < offset < self.total_height:
            self.forced.append(BreakConstraint(offset, kind))

    def avoid(self, top: float, bottom: float, *, from_heading: bool = False) -> None:
        start, end = self.clamp(top), self.clamp(bottom)
        if end > start:
            self.ranges.append(AvoidRange(start, end, from_heading=from_heading))


def analyze_breaks(
    root: ContentNode,
    total_height_px: int,
    usable_height_px: int,
    policy: Optional[BreakPolicy] = None,
) -> BreakAnalysis:
    """
    Extract break constraints from a geometry tree.

    Args:
        root: Root of the captured geometry
        total_height_px: Surface height (offsets are clamped to it)
        usable_height_px: Content pixels per page
        policy: Analysis switches (defaults to BreakPolicy())

    Returns:
        BreakAnalysis with sorted constraints and table candidates

    Example:
        >>> tree = ContentNode.from_dict({"tag": "body", "top": 0, "bottom": 2500,
        ...     "children": [{"tag": "section", "top": 1500, "bottom": 2500,
        ...                   "style": {"break-before": "page"}}]})
        >>> analyze_breaks(tree, 2500, 1000).forced_offsets
        (1500,)
    """
    if usable_height_px <= 0:
        raise ValueError(f"usable_height_px must be positive: {usable_height_px}")

    ctx = _Collected(
        total_height=total_height_px,
        usable_height=usable_height_px,
        policy=policy or BreakPolicy(),
    )
    _visit(root, None, ctx)

    constraints = build_constraints(ctx.forced, ctx.ranges)
    tables = tuple(sorted(ctx.tables, key=lambda t: t.table_offset_px))

    logger.info(
        f"Analyzed breaks: {len(ctx.forced)} forced, {len(ctx.ranges)} avoid ranges "
        f"-> {len(constraints)} constraints, {len(tables)} segmented tables"
    )
    return BreakAnalysis(constraints=constraints, table_candidates=tables)


def _visit(node: ContentNode, following: Optional[ContentNode], ctx: _Collected) -> None:
    """Depth-first traversal; following is the next visible sibling."""
    if node.is_malformed:
        logger.debug(f"Skipping malformed <{node.tag}> at {node.top}..{node.bottom}")
        return

    if node.height > 0:
        _collect(node, following, ctx)

    children = node.children
    for i, child in enumerate(children):
        _visit(child, _next_visible(children, i), ctx)


def _next_visible(siblings: Sequence[ContentNode], index: int) -> Optional[ContentNode]:
    for sibling in siblings[index + 1:]:
        if not sibling.is_malformed and sibling.height > 0:
            return sibling
    return None


def _collect(node: ContentNode, following: Optional[ContentNode], ctx: _Collected) -> None:
    """Emit the constraints one node contributes."""
    policy = ctx.policy

    if policy.respect_explicit_breaks:
        if node.style.forces_before:
            ctx.force(node.top, BreakKind.FORCE_BEFORE)
        if node.style.forces_after:
            ctx.force(node.bottom, BreakKind.FORCE_AFTER)

    if any(node.matches(s) for s in policy.break_before_selectors):
        ctx.force(node.top, BreakKind.FORCE_BEFORE)
    if any(node.matches(s) for s in policy.break_after_selectors):
        ctx.force(node.bottom, BreakKind.FORCE_AFTER)

    segmented = False
    if node.tag == "table":
        segment = freeze_table(node)
        if segment is not None and segment.height_px > ctx.usable_height:
            ctx.tables.append(segment)
            segmented = True
            logger.debug(
                f"Table at {segment.table_offset_px} ({segment.height_px}px, "
                f"{segment.row_count} rows) exceeds page, segmenting by row"
            )

    # Row integrity replaces whole-table avoidance for segmented tables
    if not segmented and policy.respect_explicit_breaks and node.style.avoids_inside:
        ctx.avoid(node.top, node.bottom)
    elif not segmented and any(node.matches(s) for s in policy.avoid_break_inside_selectors):
        if node.height <= ctx.usable_height:
            ctx.avoid(node.top, node.bottom)
        else:
            logger.debug(
                f"Dropping avoid hint for <{node.tag}> taller than a page "
                f"({node.height:.0f}px > {ctx.usable_height}px)"
            )

    if policy.avoid_orphan_headings and node.is_heading and following is not None:
        # Capped at one page so keeping a heading with a long section never overflows
        end = min(max(following.bottom, node.bottom), node.top + ctx.usable_height)
        ctx.avoid(node.top, end, from_heading=True)


def freeze_table(node: ContentNode) -> Optional[TableSegment]:
    """
    Freeze a table node's geometry into a TableSegment.

    The header block runs from the table top to the bottom of its
    ``thead``. Rows are the ``tr`` descendants outside the header; each row
    top is a legal cut, as is the bottom of the last row.

    Args:
        node: A node with tag "table"

    Returns:
        TableSegment, or None when the table has no usable rows
    """
    thead = next((c for c in node.iter_all() if c.tag == "thead"), None)
    header_ids = {id(n) for n in thead.iter_all()} if thead is not None else set()

    rows = sorted(
        (
            n for n in node.iter_all()
            if n.tag == "tr" and id(n) not in header_ids
            and not n.is_malformed and n.height > 0
        ),
        key=lambda n: n.top,
    )
    if not rows:
        return None

    top = int(round(node.top))
    edges: List[int] = []
    for row in rows:
        y = int(round(row.top))
        if not edges or y > edges[-1]:
            edges.append(y)
    last = int(round(rows[-1].bottom))
    if last > edges[-1]:
        edges.append(last)
    if len(edges) < 2:
        return None

    header = int(round(thead.bottom)) - top if thead is not None else 0
    header = max(0, min(header, edges[0] - top))
    top = min(top, edges[0])

    return TableSegment(
        table_offset_px=top,
        header_height_px=header,
        row_boundaries=tuple(edges),
    )
