"""
Module: core.models

Purpose:
    Immutable data models shared by every pipeline stage.

Key Classes:
    - RenderedSurface, SurfaceBand: Raster snapshot and row bands
    - ContentNode, BreakStyle: Frozen content geometry
    - BreakKind, BreakConstraint, AvoidRange, ConstraintSet: Break rules
    - TableSegment: Table geometry
    - PageSlice, HeaderBlock, PaginationResult: Pagination output
    - BatchItem, ItemSpan: Batch input and placement
"""

from .surface import RenderedSurface, SurfaceBand
from .geometry import BreakStyle, ContentNode
from .constraints import (
    AvoidRange,
    BreakConstraint,
    BreakKind,
    ConstraintSet,
    build_constraints,
    merge_avoid_ranges,
    split_constraints,
)
from .tables import TableSegment
from .slices import HeaderBlock, PageSlice, PaginationResult
from .batch import BatchItem, ItemSpan

__all__ = [
    "RenderedSurface",
    "SurfaceBand",
    "BreakStyle",
    "ContentNode",
    "AvoidRange",
    "BreakConstraint",
    "BreakKind",
    "ConstraintSet",
    "build_constraints",
    "merge_avoid_ranges",
    "split_constraints",
    "TableSegment",
    "HeaderBlock",
    "PageSlice",
    "PaginationResult",
    "BatchItem",
    "ItemSpan",
]
