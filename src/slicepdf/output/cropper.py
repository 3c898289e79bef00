"""
Module: output.cropper

Purpose:
    Cropping row bands from rendered surfaces. Batch items are stored at
    their natural size, so a band in concatenated content space is mapped
    back to source rows and stretched to its scaled height here.

Key Functions:
    - crop_band(): Crop [top, bottom) rows from a surface
    - render_span_rows(): Content rows of one item span, scaled for the page

Dependencies:
    - PIL: Image manipulation
    - slicepdf.core.models: RenderedSurface, SurfaceBand, ItemSpan

Used By:
    - slicepdf.output.compositor: Page composition
"""

from __future__ import annotations

from PIL import Image

from slicepdf.core.models import ItemSpan, RenderedSurface, SurfaceBand


def crop_band(surface: RenderedSurface, band: SurfaceBand) -> Image.Image:
    """
    Crop a full-width band from a surface.

    Args:
        surface: Source surface
        band: Rows to crop

    Returns:
        Cropped image (new copy, not a view)

    Raises:
        ValueError: If the band extends past the surface

    Example:
        >>> crop_band(surface, SurfaceBand(100, 300)).height
        200
    """
    if band.bottom > surface.height_px:
        raise ValueError(
            f"Band bottom {band.bottom} exceeds surface height {surface.height_px}"
        )
    return surface.image.crop((0, band.top, surface.width_px, band.bottom))


def render_span_rows(
    span: ItemSpan,
    start_px: int,
    end_px: int,
    max_width_px: int,
    resample: int = Image.Resampling.LANCZOS,
) -> Image.Image:
    """
    Render content rows [start_px, end_px) of one item span.

    Source rows are content rows divided by the span's scale. The result
    is end_px - start_px rows tall and ``surface width * min(scale, 1)``
    wide (capped at max_width_px), so items scaled down keep their aspect
    ratio and items scaled up are stretched vertically only.

    Note:
        Vertical-only stretching does not preserve the aspect ratio: at
        scale k > 1 glyphs and images come out k times taller than wide
        (up to 4x at the maximum batch scale).

    Args:
        span: Item placement (content rows must lie inside it)
        start_px: First content row
        end_px: End content row (exclusive)
        max_width_px: Width of the usable page area
        resample: Pillow resampling filter

    Returns:
        Image sized (drawn width, end_px - start_px)
    """
    if not span.offset_px <= start_px < end_px <= span.end_px:
        raise ValueError(
            f"Rows [{start_px}, {end_px}) outside span "
            f"[{span.offset_px}, {span.end_px})"
        )

    top = span.to_source(start_px)
    bottom = max(top + 1, span.to_source(end_px))
    bottom = min(bottom, span.surface.height_px)
    top = min(top, bottom - 1)
    band = crop_band(span.surface, SurfaceBand(top, bottom))

    width = int(round(span.surface.width_px * min(span.scale, 1.0)))
    width = max(1, min(width, max_width_px))
    height = end_px - start_px
    if band.size == (width, height):
        return band
    return band.resize((width, height), resample)
