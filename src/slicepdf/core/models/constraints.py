"""
Module: core.models.constraints

Purpose:
    Break constraints: geometric rules restricting where a page boundary
    may fall. Constraint lists are immutable, sorted by offset, and carry
    avoid ranges as START/END pairs that never overlap.

Key Classes:
    - BreakKind: Constraint kinds (forced breaks, avoid range markers)
    - BreakConstraint: A single (offset, kind) rule
    - AvoidRange: A [start, end) region that should not be split
    - ConstraintSet: Indexed view used by the pagination engine

Key Functions:
    - merge_avoid_ranges(): Union overlapping ranges
    - build_constraints(): Forced offsets + ranges -> sorted constraint tuple

Dependencies:
    - bisect (std)
    - dataclasses (std)

Used By:
    - slicepdf.analysis.break_analyzer: Produces constraints
    - slicepdf.batch.scaler: Shifts and injects constraints
    - slicepdf.layout.engine: Queries ConstraintSet
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Optional, Sequence, Tuple


class BreakKind(IntEnum):
    """
    Constraint kinds.

    Integer values define the tie-break order for constraints sharing an
    offset: a range that ends at y sorts before one that starts at y.
    """

    AVOID_INSIDE_END = 0
    FORCE_AFTER = 1
    FORCE_BEFORE = 2
    AVOID_INSIDE_START = 3
    ORPHAN_HEADING = 4

    @property
    def is_forced(self) -> bool:
        return self in (BreakKind.FORCE_BEFORE, BreakKind.FORCE_AFTER)

    @property
    def opens_range(self) -> bool:
        return self in (BreakKind.AVOID_INSIDE_START, BreakKind.ORPHAN_HEADING)


@dataclass(frozen=True, slots=True, order=True)
class BreakConstraint:
    """
    A break rule at a vertical offset.

    Ordering is (offset_px, kind), so sorted() gives the canonical order.

    Example:
        >>> BreakConstraint(1500, BreakKind.FORCE_BEFORE)
        BreakConstraint(offset_px=1500, kind=<BreakKind.FORCE_BEFORE: 2>)
    """

    offset_px: int
    kind: BreakKind

    def shifted(self, delta: int) -> BreakConstraint:
        return BreakConstraint(self.offset_px + delta, self.kind)


@dataclass(frozen=True, slots=True, order=True)
class AvoidRange:
    """
    Region that should not contain a page boundary.

    A boundary at exactly start or end is legal; only offsets strictly
    inside (start < y < end) are avoided.

    Attributes:
        start: First pixel of the region
        end: End of the region (exclusive)
        from_heading: True when the range exists only to keep a heading
            with its following content
    """

    start: int
    end: int
    from_heading: bool = False

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"end must be > start: {self.end} <= {self.start}")

    @property
    def height(self) -> int:
        return self.end - self.start

    def contains(self, y: int) -> bool:
        """True if y lies strictly inside the range."""
        return self.start < y < self.end

    def overlaps(self, other: AvoidRange) -> bool:
        """Ranges that merely touch (end == start) do not overlap."""
        return self.start < other.end and other.start < self.end


def merge_avoid_ranges(ranges: Iterable[AvoidRange]) -> List[AvoidRange]:
    """
    Merge overlapping avoid ranges into their union.

    A merged range keeps ``from_heading`` only if every member had it.

    Args:
        ranges: Ranges in any order

    Returns:
        Sorted, pairwise non-overlapping ranges

    Example:
        >>> merge_avoid_ranges([AvoidRange(0, 100), AvoidRange(50, 200)])
        [AvoidRange(start=0, end=200, from_heading=False)]
    """
    merged: List[AvoidRange] = []
    for current in sorted(ranges):
        if merged and merged[-1].overlaps(current):
            last = merged[-1]
            merged[-1] = AvoidRange(
                start=last.start,
                end=max(last.end, current.end),
                from_heading=last.from_heading and current.from_heading,
            )
        else:
            merged.append(current)
    return merged


def build_constraints(
    forced: Iterable[BreakConstraint],
    ranges: Iterable[AvoidRange],
) -> Tuple[BreakConstraint, ...]:
    """
    Combine forced breaks and avoid ranges into a sorted constraint tuple.

    Ranges are merged first, then emitted as START (or ORPHAN_HEADING) /
    END pairs. Duplicate forced breaks are dropped.

    Args:
        forced: FORCE_BEFORE / FORCE_AFTER constraints
        ranges: Avoid ranges (may overlap)

    Returns:
        Sorted, de-duplicated constraint tuple
    """
    result = set()
    for constraint in forced:
        if not constraint.kind.is_forced:
            raise ValueError(f"Expected a forced break, got {constraint.kind.name}")
        result.add(constraint)

    for avoid in merge_avoid_ranges(ranges):
        opener = BreakKind.ORPHAN_HEADING if avoid.from_heading else BreakKind.AVOID_INSIDE_START
        result.add(BreakConstraint(avoid.start, opener))
        result.add(BreakConstraint(avoid.end, BreakKind.AVOID_INSIDE_END))

    return tuple(sorted(result))


def split_constraints(
    constraints: Iterable[BreakConstraint],
) -> Tuple[List[BreakConstraint], List[AvoidRange]]:
    """
    Inverse of build_constraints: separate forced breaks and avoid ranges.

    Range markers are paired in offset order; an unmatched END is ignored
    and an unmatched START is dropped.

    Returns:
        (forced constraints, avoid ranges)
    """
    forced: List[BreakConstraint] = []
    ranges: List[AvoidRange] = []
    open_start: Optional[BreakConstraint] = None

    for constraint in sorted(constraints):
        if constraint.kind.is_forced:
            forced.append(constraint)
        elif constraint.kind.opens_range:
            if open_start is None:
                open_start = constraint
        elif open_start is not None:
            if constraint.offset_px > open_start.offset_px:
                ranges.append(AvoidRange(
                    open_start.offset_px,
                    constraint.offset_px,
                    from_heading=open_start.kind is BreakKind.ORPHAN_HEADING,
                ))
            open_start = None

    return forced, ranges


class ConstraintSet:
    """
    Indexed, read-only view over a constraint list.

    Forced break offsets and merged avoid ranges are kept in sorted arrays
    so each engine query is a binary search.

    Example:
        >>> cs = ConstraintSet([BreakConstraint(1500, BreakKind.FORCE_BEFORE)])
        >>> cs.first_forced_break(1000, 2000)
        1500
    """

    def __init__(self, constraints: Sequence[BreakConstraint] = ()):
        forced, ranges = split_constraints(constraints)
        self._forced: Tuple[int, ...] = tuple(sorted({c.offset_px for c in forced}))
        self._ranges: Tuple[AvoidRange, ...] = tuple(merge_avoid_ranges(ranges))
        self._range_starts: Tuple[int, ...] = tuple(r.start for r in self._ranges)
        self._constraints = build_constraints(forced, self._ranges)

    @property
    def constraints(self) -> Tuple[BreakConstraint, ...]:
        """Normalised, sorted constraints."""
        return self._constraints

    @property
    def forced_offsets(self) -> Tuple[int, ...]:
        return self._forced

    @property
    def avoid_ranges(self) -> Tuple[AvoidRange, ...]:
        return self._ranges

    def first_forced_break(self, low: int, high: int) -> Optional[int]:
        """Earliest forced break offset in (low, high], or None."""
        i = bisect_right(self._forced, low)
        if i < len(self._forced) and self._forced[i] <= high:
            return self._forced[i]
        return None

    def avoid_range_at(self, y: int) -> Optional[AvoidRange]:
        """Avoid range strictly containing y, or None."""
        i = bisect_left(self._range_starts, y) - 1
        if i >= 0 and self._ranges[i].contains(y):
            return self._ranges[i]
        return None

    def __len__(self) -> int:
        return len(self._constraints)
