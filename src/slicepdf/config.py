"""
Module: config

Purpose:
    Configuration for PDF generation. Immutable dataclasses with
    validation on construction, plus the derived page geometry that
    converts between millimetres and surface pixels.

Key Classes:
    - GeneratorConfig: Main generation settings
    - WatermarkConfig: Text or image watermark settings
    - PdfMetadata: Document information fields
    - PageGeometry: Page/margin sizes in mm and px for one content width

Key Functions:
    - GeneratorConfig.from_dict(): Build from a JSON-style mapping
    - GeneratorConfig.geometry(): Derive PageGeometry for a content width

Dependencies:
    - dataclasses (std)

Used By:
    - slicepdf.controller: Pipeline settings
    - slicepdf.output.compositor: Page canvas geometry
    - slicepdf.output.decorations: Decoration settings
    - slicepdf.cli: Command line overrides
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from slicepdf.core.errors import ConfigError

# Paper sizes in mm (portrait)
PAPER_FORMATS: Dict[str, Tuple[float, float]] = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
    "a3": (297.0, 420.0),
    "legal": (215.9, 355.6),
}

# CSS reference pixel density: 96 px per inch
MM_TO_PX = 3.7795

DEFAULT_AVOID_BREAK_INSIDE = (
    "table",
    "figure",
    "img",
    "svg",
    "pre",
    "code",
    "blockquote",
    "ul",
    "ol",
    "dl",
)

WATERMARK_POSITIONS = ("center", "diagonal", "top-left", "top-right", "bottom-left", "bottom-right")


@dataclass(frozen=True)
class WatermarkConfig:
    """
    Watermark overlay (immutable).

    Exactly one of text or image_path is normally set; text wins if both are.

    Attributes:
        text: Watermark text
        image_path: Path to an image file to stamp instead of text
        opacity: 0..1 (default 0.1 for text, 0.15 for images)
        position: One of WATERMARK_POSITIONS
        font_size_pt: Text size in points
        color: Hex colour for text
        rotation: Degrees; None means 45 for "diagonal", else 0
        image_width_mm: Stamp width for image watermarks
        all_pages: Stamp every page (False = first page only)
    """

    text: Optional[str] = None
    image_path: Optional[str] = None
    opacity: Optional[float] = None
    position: str = "diagonal"
    font_size_pt: float = 48.0
    color: str = "#cccccc"
    rotation: Optional[float] = None
    image_width_mm: float = 50.0
    all_pages: bool = True

    def __post_init__(self) -> None:
        if self.position not in WATERMARK_POSITIONS:
            raise ConfigError(f"Unknown watermark position: {self.position!r}")
        if self.opacity is not None and not 0.0 <= self.opacity <= 1.0:
            raise ConfigError(f"opacity must be within 0..1: {self.opacity}")

    @property
    def enabled(self) -> bool:
        return bool(self.text or self.image_path)

    @property
    def effective_opacity(self) -> float:
        if self.opacity is not None:
            return self.opacity
        return 0.1 if self.text else 0.15

    @property
    def effective_rotation(self) -> float:
        if self.rotation is not None:
            return self.rotation
        return 45.0 if self.position == "diagonal" else 0.0


@dataclass(frozen=True)
class PdfMetadata:
    """Document information fields passed to the sink."""

    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: Tuple[str, ...] = ()
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[datetime] = None

    def to_fields(self) -> Dict[str, Any]:
        """Non-empty fields, keywords joined with ', '."""
        result: Dict[str, Any] = {}
        for name in ("title", "author", "subject", "creator", "producer", "creation_date"):
            value = getattr(self, name)
            if value:
                result[name] = value
        if self.keywords:
            result["keywords"] = ", ".join(self.keywords)
        return result


@dataclass(frozen=True)
class PageGeometry:
    """
    Page layout for one content width.

    The content (surface) width maps onto the usable page width, which
    fixes the pixel density used for every other measurement.

    Example:
        >>> geo = GeneratorConfig().geometry()  # 1436 px across 190 mm
        >>> geo.usable_height_px
        2093
    """

    page_width_mm: float
    page_height_mm: float
    margin_top_mm: float
    margin_right_mm: float
    margin_bottom_mm: float
    margin_left_mm: float
    header_reserve_mm: float
    footer_reserve_mm: float
    content_width_px: int

    @property
    def usable_width_mm(self) -> float:
        return self.page_width_mm - self.margin_left_mm - self.margin_right_mm

    @property
    def usable_height_mm(self) -> float:
        return (
            self.page_height_mm
            - self.margin_top_mm
            - self.margin_bottom_mm
            - self.header_reserve_mm
            - self.footer_reserve_mm
        )

    @property
    def px_per_mm(self) -> float:
        return self.content_width_px / self.usable_width_mm

    @property
    def usable_height_px(self) -> int:
        """Content pixels that fit on one page."""
        return max(1, int(math.floor(self.usable_height_mm * self.px_per_mm + 1e-6)))

    @property
    def page_width_px(self) -> int:
        return int(round(self.page_width_mm * self.px_per_mm))

    @property
    def page_height_px(self) -> int:
        return int(round(self.page_height_mm * self.px_per_mm))

    @property
    def content_left_px(self) -> int:
        return int(round(self.margin_left_mm * self.px_per_mm))

    @property
    def content_top_px(self) -> int:
        return int(round((self.margin_top_mm + self.header_reserve_mm) * self.px_per_mm))

    def px_to_mm(self, px: float) -> float:
        return px / self.px_per_mm

    def mm_to_px(self, value_mm: float) -> int:
        return int(round(value_mm * self.px_per_mm))


@dataclass(frozen=True)
class GeneratorConfig:
    """
    Configuration for PDF generation (immutable).

    Attributes:
        format: Paper format ("a4", "letter", "a3", "legal")
        orientation: "portrait" or "landscape"
        margins: (top, right, bottom, left) in mm
        render_scale: Capture density multiplier over 96 DPI
        respect_explicit_breaks: Honour computed break-before/after/inside
        avoid_orphan_headings: Keep headings with the following sibling
        avoid_break_inside_selectors: Selectors treated as unsplittable
        break_before_selectors: Selectors that force a break before
        break_after_selectors: Selectors that force a break after
        repeat_table_headers: Duplicate table headers on continuation pages
        avoid_table_row_split: Never cut through a table row
        min_rows_per_page: Minimum table rows left on a page before a break
        image_format: "JPEG" or "PNG" for page images
        image_quality: JPEG quality 0..1
        compress: Compress PDF streams
        show_page_numbers: Draw "n / total"
        page_number_position: "footer" or "header"
        header_template: Text with {page}, {total}, {date}, {title}
        footer_template: Same variables as header_template
        header_height_mm: Height reserved when header_template is set
        footer_height_mm: Height reserved when footer_template is set
        header_footer_first_page: Draw templates on the first page
        watermark: Optional watermark
        metadata: Document information
        max_capture_workers: Parallel captures in batch mode

    Example:
        >>> config = GeneratorConfig(format="letter", margins=(15, 15, 15, 15))
        >>> config.page_size_mm
        (215.9, 279.4)
    """

    # Page
    format: str = "a4"
    orientation: str = "portrait"
    margins: Tuple[float, float, float, float] = (10.0, 10.0, 10.0, 10.0)
    render_scale: float = 2.0

    # Break analysis
    respect_explicit_breaks: bool = True
    avoid_orphan_headings: bool = True
    avoid_break_inside_selectors: Tuple[str, ...] = DEFAULT_AVOID_BREAK_INSIDE
    break_before_selectors: Tuple[str, ...] = ()
    break_after_selectors: Tuple[str, ...] = ()

    # Tables
    repeat_table_headers: bool = True
    avoid_table_row_split: bool = True
    min_rows_per_page: int = 3

    # Output encoding
    image_format: str = "JPEG"
    image_quality: float = 0.85
    compress: bool = True

    # Decorations
    show_page_numbers: bool = False
    page_number_position: str = "footer"
    header_template: Optional[str] = None
    footer_template: Optional[str] = None
    header_height_mm: float = 10.0
    footer_height_mm: float = 10.0
    header_footer_first_page: bool = True
    watermark: Optional[WatermarkConfig] = None
    metadata: PdfMetadata = field(default_factory=PdfMetadata)

    # Batch
    max_capture_workers: int = 4

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.format not in PAPER_FORMATS:
            raise ConfigError(f"Unknown paper format: {self.format!r}")
        if self.orientation not in ("portrait", "landscape"):
            raise ConfigError(f"orientation must be portrait or landscape: {self.orientation!r}")
        if len(self.margins) != 4:
            raise ConfigError(f"margins needs 4 values (top, right, bottom, left): {self.margins}")
        if any(m < 0 for m in self.margins):
            raise ConfigError(f"margins must be non-negative: {self.margins}")
        if self.render_scale <= 0:
            raise ConfigError(f"render_scale must be positive: {self.render_scale}")
        if self.min_rows_per_page < 1:
            raise ConfigError(f"min_rows_per_page must be >= 1: {self.min_rows_per_page}")
        if self.image_format.upper() not in ("JPEG", "PNG"):
            raise ConfigError(f"image_format must be JPEG or PNG: {self.image_format!r}")
        if not 0.0 < self.image_quality <= 1.0:
            raise ConfigError(f"image_quality must be within (0, 1]: {self.image_quality}")
        if self.page_number_position not in ("header", "footer"):
            raise ConfigError(f"page_number_position must be header or footer: {self.page_number_position!r}")
        if self.max_capture_workers < 1:
            raise ConfigError(f"max_capture_workers must be >= 1: {self.max_capture_workers}")

        width, height = self.page_size_mm
        top, right, bottom, left = self.margins
        if width - left - right <= 0:
            raise ConfigError("Margins exceed page width")
        if height - top - bottom - self.header_reserve_mm - self.footer_reserve_mm <= 0:
            raise ConfigError("Margins and header/footer exceed page height")

    @property
    def page_size_mm(self) -> Tuple[float, float]:
        """(width, height) after applying orientation."""
        width, height = PAPER_FORMATS[self.format]
        if self.orientation == "landscape":
            return height, width
        return width, height

    @property
    def header_reserve_mm(self) -> float:
        return self.header_height_mm if self.header_template else 0.0

    @property
    def footer_reserve_mm(self) -> float:
        return self.footer_height_mm if self.footer_template else 0.0

    @property
    def target_width_px(self) -> int:
        """Width the capture adapter should render at."""
        width, _ = self.page_size_mm
        usable = width - self.margins[1] - self.margins[3]
        return int(round(usable * MM_TO_PX * self.render_scale))

    def geometry(self, content_width_px: Optional[int] = None) -> PageGeometry:
        """
        Derive page geometry for a content width.

        Args:
            content_width_px: Surface width; defaults to target_width_px

        Returns:
            PageGeometry
        """
        width, height = self.page_size_mm
        top, right, bottom, left = self.margins
        return PageGeometry(
            page_width_mm=width,
            page_height_mm=height,
            margin_top_mm=top,
            margin_right_mm=right,
            margin_bottom_mm=bottom,
            margin_left_mm=left,
            header_reserve_mm=self.header_reserve_mm,
            footer_reserve_mm=self.footer_reserve_mm,
            content_width_px=content_width_px or self.target_width_px,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GeneratorConfig:
        """
        Build a config from a mapping (e.g. parsed JSON).

        Keys may be snake_case field names or the camelCase option names
        used by browser-side generators (``respectExplicitBreaks``,
        ``repeatTableHeaders``, ...). Unknown keys raise ConfigError.

        Args:
            data: Option mapping

        Returns:
            GeneratorConfig
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL_ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown configuration key: {key!r}")
            kwargs[name] = value

        if "margins" in kwargs:
            kwargs["margins"] = tuple(float(m) for m in kwargs["margins"])
        for name in ("avoid_break_inside_selectors", "break_before_selectors", "break_after_selectors"):
            if name in kwargs:
                kwargs[name] = tuple(kwargs[name])
        if isinstance(kwargs.get("watermark"), Mapping):
            kwargs["watermark"] = WatermarkConfig(**{
                _CAMEL_ALIASES.get(k, k): v for k, v in kwargs["watermark"].items()
            })
        if isinstance(kwargs.get("metadata"), Mapping):
            meta = dict(kwargs["metadata"])
            keywords = meta.get("keywords", ())
            if isinstance(keywords, str):
                keywords = [k.strip() for k in keywords.split(",") if k.strip()]
            meta["keywords"] = tuple(keywords)
            if "creationDate" in meta:
                meta["creation_date"] = meta.pop("creationDate")
            if isinstance(meta.get("creation_date"), str):
                meta["creation_date"] = datetime.fromisoformat(meta["creation_date"])
            kwargs["metadata"] = PdfMetadata(**meta)

        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


_CAMEL_ALIASES = {
    "respectExplicitBreaks": "respect_explicit_breaks",
    "respectCSSPageBreaks": "respect_explicit_breaks",
    "avoidOrphanHeadings": "avoid_orphan_headings",
    "preventOrphanedHeadings": "avoid_orphan_headings",
    "avoidBreakInsideSelectors": "avoid_break_inside_selectors",
    "breakBeforeSelectors": "break_before_selectors",
    "breakAfterSelectors": "break_after_selectors",
    "repeatTableHeaders": "repeat_table_headers",
    "avoidTableRowSplit": "avoid_table_row_split",
    "minRowsPerPage": "min_rows_per_page",
    "imageQuality": "image_quality",
    "imageFormat": "image_format",
    "scale": "render_scale",
    "showPageNumbers": "show_page_numbers",
    "pageNumberPosition": "page_number_position",
    "headerTemplate": "header_template",
    "footerTemplate": "footer_template",
    "maxCaptureWorkers": "max_capture_workers",
    "imagePath": "image_path",
    "fontSize": "font_size_pt",
    "allPages": "all_pages",
}
