"""
Module: core.models.surface

Purpose:
    Provides the RenderedSurface dataclass - the flattened raster snapshot
    of all content prior to pagination, plus SurfaceBand for addressing a
    vertical pixel band within it.

Key Classes:
    - RenderedSurface: Immutable raster produced once per capture
    - SurfaceBand: [top, bottom) row range within a surface

Dependencies:
    - PIL.Image: Pixel data
    - dataclasses (std)

Used By:
    - slicepdf.capture: Produces surfaces
    - slicepdf.output.cropper: Crops bands from surfaces
    - slicepdf.batch.scaler: Reads natural heights
"""

from __future__ import annotations

from dataclasses import dataclass

from PIL import Image


@dataclass(frozen=True)
class RenderedSurface:
    """
    Raster snapshot of rendered content (immutable).

    The image is never modified after construction; croppers and the
    compositor only read from it.

    Attributes:
        width_px: Surface width in pixels
        height_px: Surface height in pixels (exact, integer)
        image: Pixel data

    Example:
        >>> surface = RenderedSurface.from_image(Image.new("RGB", (800, 3000)))
        >>> surface.height_px
        3000
    """

    width_px: int
    height_px: int
    image: Image.Image

    def __post_init__(self) -> None:
        """Validate dimensions on construction."""
        if self.width_px <= 0:
            raise ValueError(f"width_px must be positive: {self.width_px}")
        if self.height_px <= 0:
            raise ValueError(f"height_px must be positive: {self.height_px}")
        if self.image.size != (self.width_px, self.height_px):
            raise ValueError(
                f"image size {self.image.size} does not match "
                f"({self.width_px}, {self.height_px})"
            )

    @classmethod
    def from_image(cls, image: Image.Image) -> RenderedSurface:
        """Wrap a Pillow image, converting palette/alpha modes to RGB."""
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        return cls(width_px=image.width, height_px=image.height, image=image)


@dataclass(frozen=True, slots=True)
class SurfaceBand:
    """
    Vertical row range within a surface.

    The band is [top, bottom): top inclusive, bottom exclusive.

    Example:
        >>> SurfaceBand(100, 300).height
        200
    """

    top: int
    bottom: int

    def __post_init__(self) -> None:
        """Validate band on construction."""
        if self.top < 0:
            raise ValueError(f"top must be >= 0: {self.top}")
        if self.bottom <= self.top:
            raise ValueError(f"bottom must be > top: {self.bottom} <= {self.top}")

    @property
    def height(self) -> int:
        """Height of the band in pixels."""
        return self.bottom - self.top
