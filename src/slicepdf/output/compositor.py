"""
Module: output.compositor

Purpose:
    Turn page slices into physical page images. Each slice is cropped from
    the item surface(s) it covers, a repeated table header is pasted above
    it, and the result is placed on a white page canvas inside the margins.

Key Functions:
    - merge_degenerate_slices(): Fold empty slices into their neighbours
    - compose_page(): One slice -> one page canvas
    - compose_pages(): All slices, with progress and cancellation

Key Classes:
    - ComposedPage: Page canvas plus the slice it shows

Dependencies:
    - PIL: Canvas creation and pasting
    - slicepdf.output.cropper: Row bands from item surfaces
    - slicepdf.config: PageGeometry

Used By:
    - slicepdf.controller: Compositing stage
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass, replace
from typing import Iterator, List, Optional, Sequence

from PIL import Image

from slicepdf.config import PageGeometry
from slicepdf.core.models import ItemSpan, PageSlice, RenderedSurface
from slicepdf.diagnostics import DiagnosticsCollector
from slicepdf.progress import CancellationToken, ProgressTracker

from .cropper import render_span_rows

logger = logging.getLogger(__name__)

PAGE_BACKGROUND = "white"


@dataclass(frozen=True)
class ComposedPage:
    """
    A composed page canvas.

    Attributes:
        index: Page index (0-indexed)
        image: Full page at page_width_px x page_height_px
        slice: Slice shown on the page
        shrunk: True when an overflowing slice was scaled down to fit
    """

    index: int
    image: Image.Image
    slice: PageSlice
    shrunk: bool = False


def single_span(surface: RenderedSurface) -> ItemSpan:
    """Span covering a whole surface at scale 1 (single-item mode)."""
    return ItemSpan(item_index=0, offset_px=0, height_px=surface.height_px, scale=1.0, surface=surface)


def merge_degenerate_slices(
    slices: Sequence[PageSlice],
    diagnostics: Optional[DiagnosticsCollector] = None,
) -> List[PageSlice]:
    """
    Remove zero-height slices.

    A degenerate slice is merged into the following non-degenerate slice;
    a trailing one is merged into the previous slice. Survivors are
    renumbered from 0.

    Example:
        >>> out = merge_degenerate_slices([PageSlice(0, 0, 500), PageSlice(1, 500, 500),
        ...                                PageSlice(2, 500, 900)])
        >>> [(s.index, s.start_px, s.end_px) for s in out]
        [(0, 0, 500), (1, 500, 900)]
    """
    merged: List[PageSlice] = []
    pending: Optional[int] = None

    for s in slices:
        if s.is_degenerate:
            if diagnostics is not None:
                diagnostics.degenerate_slice(
                    f"Empty page at {s.start_px} merged into a neighbour",
                    offset_px=s.start_px,
                )
            pending = s.start_px if pending is None else min(pending, s.start_px)
            continue
        if pending is not None:
            s = replace(s, start_px=min(pending, s.start_px))
            pending = None
        merged.append(s)

    if pending is not None and merged:
        merged[-1] = replace(merged[-1], end_px=max(merged[-1].end_px, pending))

    return [replace(s, index=i) for i, s in enumerate(merged)]


def compose_page(
    page_slice: PageSlice,
    spans: Sequence[ItemSpan],
    geometry: PageGeometry,
) -> ComposedPage:
    """
    Compose one page canvas.

    Args:
        page_slice: Content rows to show
        spans: Item spans ordered by offset
        geometry: Page size and margins in pixels

    Returns:
        ComposedPage
    """
    offsets = [span.offset_px for span in spans]
    usable_width = geometry.content_width_px
    usable_height = geometry.usable_height_px

    header_height = page_slice.header_height_px
    strip = Image.new("RGB", (usable_width, header_height + page_slice.height_px), PAGE_BACKGROUND)

    if page_slice.repeated_header is not None:
        header = page_slice.repeated_header
        span = spans[_span_index(offsets, header.source_top_px)]
        end = min(header.source_bottom_px, span.end_px)
        if end > header.source_top_px:
            _paste_centred(strip, render_span_rows(span, header.source_top_px, end, usable_width), 0)

    for i in range(_span_index(offsets, page_slice.start_px), len(spans)):
        span = spans[i]
        if span.offset_px >= page_slice.end_px:
            break
        start = max(page_slice.start_px, span.offset_px)
        end = min(page_slice.end_px, span.end_px)
        if end <= start:
            continue
        rows = render_span_rows(span, start, end, usable_width)
        _paste_centred(strip, rows, header_height + start - page_slice.start_px)

    shrunk = False
    if strip.height > usable_height:
        # Forced overflow: shrink uniformly so the page still fits
        factor = usable_height / strip.height
        new_width = max(1, int(round(strip.width * factor)))
        logger.debug(
            f"Page {page_slice.index + 1}: shrinking {strip.height}px to {usable_height}px"
        )
        strip = strip.resize((new_width, usable_height), Image.Resampling.LANCZOS)
        shrunk = True

    canvas = Image.new("RGB", (geometry.page_width_px, geometry.page_height_px), PAGE_BACKGROUND)
    left = geometry.content_left_px + (usable_width - strip.width) // 2
    canvas.paste(strip, (left, geometry.content_top_px))

    return ComposedPage(index=page_slice.index, image=canvas, slice=page_slice, shrunk=shrunk)


def compose_pages(
    slices: Sequence[PageSlice],
    spans: Sequence[ItemSpan],
    geometry: PageGeometry,
    *,
    progress: Optional[ProgressTracker] = None,
    cancel: Optional[CancellationToken] = None,
) -> Iterator[ComposedPage]:
    """
    Compose every slice in order.

    Pages are yielded one at a time so only one canvas is alive while the
    caller encodes and writes it.

    Args:
        slices: Non-degenerate slices (see merge_degenerate_slices)
        spans: Item spans ordered by offset
        geometry: Page geometry
        progress: Receives pages done / total
        cancel: Checked before each page

    Yields:
        ComposedPage per slice
    """
    if not spans:
        raise ValueError("compose_pages needs at least one span")

    total = len(slices)
    for n, page_slice in enumerate(slices, start=1):
        if cancel is not None:
            cancel.raise_if_cancelled("compositing")
        if page_slice.is_degenerate:
            raise ValueError(f"Degenerate slice {page_slice.index} reached the compositor")

        yield compose_page(page_slice, spans, geometry)

        if progress is not None:
            progress.update(n / total)

    logger.info(f"Composed {total} pages")


def _span_index(offsets: Sequence[int], y: int) -> int:
    return max(0, bisect_right(offsets, y) - 1)


def _paste_centred(strip: Image.Image, rows: Image.Image, y: int) -> None:
    strip.paste(rows, ((strip.width - rows.width) // 2, y))
