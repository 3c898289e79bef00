"""
Module: core.models.batch

Purpose:
    Batch item model. One BatchItem is an independently supplied content
    block with its own target page budget, combined with others into a
    single output document.

Key Classes:
    - BatchItem: Caller input plus derived scale and page range
    - ItemSpan: Where a scaled item sits in the concatenated content

Dependencies:
    - dataclasses (std)

Used By:
    - slicepdf.batch.scaler: Derives scales and spans
    - slicepdf.output.compositor: Maps page rows back to item surfaces
    - slicepdf.controller: Builds results
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from .surface import RenderedSurface


@dataclass(frozen=True)
class BatchItem:
    """
    One content block in a batch (immutable).

    ``computed_scale`` is set once by the batch scaler; ``start_page`` and
    ``end_page`` once after slicing. Both are set through ``replace`` so
    earlier instances stay untouched.

    Attributes:
        content: Whatever the capture adapter accepts
        requested_page_count: Target pages, or None for natural size
        new_page: True = force start on new page, False = may share a page,
            None = break after the item (except the last)
        title: Optional label reported back in results
        computed_scale: Scale applied to the item's natural height
        start_page: First slice index (0-indexed) holding this item
        end_page: Last slice index (0-indexed) holding this item
    """

    content: Any
    requested_page_count: Optional[int] = None
    new_page: Optional[bool] = None
    title: Optional[str] = None
    computed_scale: Optional[float] = None
    start_page: Optional[int] = None
    end_page: Optional[int] = None

    def __post_init__(self) -> None:
        if self.requested_page_count is not None and self.requested_page_count <= 0:
            raise ValueError(
                f"requested_page_count must be positive: {self.requested_page_count}"
            )

    @property
    def weight(self) -> int:
        """Progress weight: the requested page budget (1 when unset)."""
        return self.requested_page_count or 1

    @property
    def page_count(self) -> int:
        if self.start_page is None or self.end_page is None:
            return 0
        return self.end_page - self.start_page + 1

    def with_scale(self, scale: float) -> BatchItem:
        if self.computed_scale is not None:
            raise ValueError("computed_scale is already set")
        return replace(self, computed_scale=scale)

    def with_pages(self, start_page: int, end_page: int) -> BatchItem:
        if self.start_page is not None or self.end_page is not None:
            raise ValueError("page range is already assigned")
        return replace(self, start_page=start_page, end_page=end_page)


@dataclass(frozen=True)
class ItemSpan:
    """
    Placement of one scaled surface in concatenated content space.

    Content rows [offset_px, offset_px + height_px) come from the surface
    rows [0, surface.height_px), stretched by ``scale``.

    Attributes:
        item_index: Index of the owning batch item
        offset_px: Start in concatenated content space
        height_px: Scaled height (round(natural * scale))
        scale: Scale factor
        surface: Source raster
    """

    item_index: int
    offset_px: int
    height_px: int
    scale: float
    surface: RenderedSurface

    @property
    def end_px(self) -> int:
        return self.offset_px + self.height_px

    def to_source(self, y: int) -> int:
        """Map a content-space row to a source surface row (clamped)."""
        local = (y - self.offset_px) / self.scale
        return max(0, min(self.surface.height_px, int(round(local))))
