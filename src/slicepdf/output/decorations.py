"""
Module: output.decorations

Purpose:
    Draw page furniture onto composed page canvases: page numbers,
    header/footer text templates and a text or image watermark. Page
    images are then encoded for the PDF sink.

Key Functions:
    - decorate_page(): Apply all configured decorations to one page
    - build_watermark_stamp(): Render the watermark once per document
    - fill_template(): Substitute {page}, {total}, {date}, {title}
    - encode_page(): Page image -> PNG/JPEG bytes

Dependencies:
    - PIL: Image drawing, fonts, alpha compositing

Used By:
    - slicepdf.controller: Between compositing and the sink
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Dict, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from slicepdf.config import GeneratorConfig, PageGeometry, WatermarkConfig
from slicepdf.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Default settings
DECORATION_FONT_PT = 9
DECORATION_TEXT_COLOR = (102, 102, 102)
PT_TO_MM = 25.4 / 72


def fill_template(template: str, values: Dict[str, object]) -> str:
    """
    Substitute ``{name}`` placeholders; unknown braces are left alone.

    Example:
        >>> fill_template("Page {page} of {total}", {"page": 2, "total": 5})
        'Page 2 of 5'
    """
    text = template
    for name, value in values.items():
        text = text.replace("{" + name + "}", "" if value is None else str(value))
    return text


def decorate_page(
    image: Image.Image,
    page_number: int,
    total_pages: int,
    geometry: PageGeometry,
    config: GeneratorConfig,
    *,
    title: Optional[str] = None,
    today: Optional[date] = None,
    watermark_stamp: Optional[Image.Image] = None,
) -> Image.Image:
    """
    Apply page numbers, header/footer templates and watermark.

    Args:
        image: Composed page (copied, not modified)
        page_number: 1-indexed page number
        total_pages: Page count of the document
        geometry: Page geometry (pixel density, margins)
        config: Decoration settings
        title: Value for {title}
        today: Value for {date} (defaults to today)
        watermark_stamp: Prebuilt stamp shared by all pages of a document

    Returns:
        Decorated copy of the page
    """
    result = image.copy()
    draw = ImageDraw.Draw(result)
    font = _load_font(_pt_to_px(DECORATION_FONT_PT, geometry))

    values = {
        "page": page_number,
        "total": total_pages,
        "date": (today or date.today()).isoformat(),
        "title": title or config.metadata.title or "",
    }

    templates_visible = page_number > 1 or config.header_footer_first_page
    if templates_visible:
        for where, template in (("header", config.header_template), ("footer", config.footer_template)):
            if template:
                text = fill_template(template, values)
                _draw_centred(draw, text, _band(geometry, where), result.width, font)

    if config.show_page_numbers:
        text = f"{page_number} / {total_pages}"
        band = _band(geometry, config.page_number_position)
        if _has_template(config, config.page_number_position) and templates_visible:
            _draw_right(draw, text, band, geometry, font)
        else:
            _draw_centred(draw, text, band, result.width, font)

    watermark = config.watermark
    if watermark is not None and watermark.enabled and (watermark.all_pages or page_number == 1):
        result = apply_watermark(result, watermark, geometry, watermark_stamp)

    return result


def build_watermark_stamp(watermark: WatermarkConfig, geometry: PageGeometry) -> Image.Image:
    """
    Render the watermark once so it can be pasted onto every page.

    Args:
        watermark: Watermark settings (text wins over image)
        geometry: Page geometry for sizing

    Returns:
        RGBA stamp, already rotated and faded

    Raises:
        ConfigError: If the watermark image cannot be read
    """
    if watermark.text:
        stamp = _text_stamp(watermark, geometry)
    else:
        stamp = _image_stamp(watermark, geometry)

    rotation = watermark.effective_rotation
    if rotation:
        stamp = stamp.rotate(rotation, expand=True, resample=Image.Resampling.BICUBIC)
    return stamp


def apply_watermark(
    image: Image.Image,
    watermark: WatermarkConfig,
    geometry: PageGeometry,
    stamp: Optional[Image.Image] = None,
) -> Image.Image:
    """
    Stamp a text or image watermark onto a copy of the page.

    Args:
        image: Page canvas
        watermark: Watermark settings (text wins over image)
        geometry: Page geometry for sizing
        stamp: Stamp from build_watermark_stamp() (built here if omitted)

    Returns:
        New RGB image with the watermark blended in
    """
    if stamp is None:
        stamp = build_watermark_stamp(watermark, geometry)

    x, y = _watermark_origin(watermark.position, stamp.size, geometry)
    base = image.convert("RGBA")
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    layer.paste(stamp, (x, y))
    logger.debug(f"Watermark at ({x}, {y}) size {stamp.size}")
    return Image.alpha_composite(base, layer).convert("RGB")


def encode_page(image: Image.Image, image_format: str = "JPEG", quality: float = 0.85) -> bytes:
    """
    Encode a page image for the sink.

    Args:
        image: Page canvas
        image_format: "JPEG" or "PNG"
        quality: JPEG quality 0..1

    Returns:
        Encoded bytes
    """
    buf = io.BytesIO()
    if image_format.upper() == "PNG":
        image.save(buf, format="PNG", optimize=True)
    else:
        image.convert("RGB").save(buf, format="JPEG", quality=int(round(quality * 100)))
    return buf.getvalue()


def _text_stamp(watermark: WatermarkConfig, geometry: PageGeometry) -> Image.Image:
    font = _load_font(_pt_to_px(watermark.font_size_pt, geometry))
    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = probe.textbbox((0, 0), watermark.text, font=font)
    stamp = Image.new("RGBA", (max(1, right - left), max(1, bottom - top)), (0, 0, 0, 0))
    r, g, b = ImageColor.getrgb(watermark.color)[:3]
    alpha = int(round(255 * watermark.effective_opacity))
    ImageDraw.Draw(stamp).text((-left, -top), watermark.text, font=font, fill=(r, g, b, alpha))
    return stamp


def _image_stamp(watermark: WatermarkConfig, geometry: PageGeometry) -> Image.Image:
    try:
        with Image.open(watermark.image_path) as src:
            stamp = src.convert("RGBA")
    except OSError as e:
        raise ConfigError(f"Cannot read watermark image {watermark.image_path!r}: {e}") from e
    width = max(1, geometry.mm_to_px(watermark.image_width_mm))
    height = max(1, int(round(stamp.height * width / stamp.width)))
    stamp = stamp.resize((width, height), Image.Resampling.LANCZOS)
    alpha = stamp.getchannel("A").point(lambda a: int(a * watermark.effective_opacity))
    stamp.putalpha(alpha)
    return stamp


def _watermark_origin(position: str, size: Tuple[int, int], geometry: PageGeometry) -> Tuple[int, int]:
    """Top-left corner of the stamp for a named position."""
    w, h = size
    page_w, page_h = geometry.page_width_px, geometry.page_height_px
    pad = geometry.content_left_px
    if position == "top-left":
        return pad, pad
    if position == "top-right":
        return page_w - w - pad, pad
    if position == "bottom-left":
        return pad, page_h - h - pad
    if position == "bottom-right":
        return page_w - w - pad, page_h - h - pad
    return (page_w - w) // 2, (page_h - h) // 2


def _band(geometry: PageGeometry, where: str) -> Tuple[int, int]:
    """Vertical pixel band for header or footer text."""
    mm = geometry.mm_to_px
    if where == "header":
        if geometry.header_reserve_mm > 0:
            top = mm(geometry.margin_top_mm)
            return top, top + mm(geometry.header_reserve_mm)
        return 0, mm(geometry.margin_top_mm)

    page_h = geometry.page_height_px
    bottom = page_h - mm(geometry.margin_bottom_mm)
    if geometry.footer_reserve_mm > 0:
        return bottom - mm(geometry.footer_reserve_mm), bottom
    return bottom, page_h


def _has_template(config: GeneratorConfig, where: str) -> bool:
    return bool(config.header_template if where == "header" else config.footer_template)


def _draw_centred(draw: ImageDraw.ImageDraw, text: str, band: Tuple[int, int], page_w: int, font) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = (page_w - (right - left)) // 2 - left
    y = band[0] + (band[1] - band[0] - (bottom - top)) // 2 - top
    draw.text((x, y), text, fill=DECORATION_TEXT_COLOR, font=font)


def _draw_right(draw: ImageDraw.ImageDraw, text: str, band: Tuple[int, int], geometry: PageGeometry, font) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = geometry.page_width_px - geometry.mm_to_px(geometry.margin_right_mm) - (right - left) - left
    y = band[0] + (band[1] - band[0] - (bottom - top)) // 2 - top
    draw.text((x, y), text, fill=DECORATION_TEXT_COLOR, font=font)


def _pt_to_px(size_pt: float, geometry: PageGeometry) -> int:
    return max(1, int(round(size_pt * PT_TO_MM * geometry.px_per_mm)))


def _load_font(size: int) -> ImageFont.ImageFont:
    """
    Load a TrueType font at the given pixel size.

    Falls back to Pillow's bundled font if no system font is found.
    """
    font_options = [
        "DejaVuSans.ttf",
        "arial.ttf",
        "Arial.ttf",
        "Helvetica.ttc",
    ]

    for font_name in font_options:
        try:
            return ImageFont.truetype(font_name, size)
        except (IOError, OSError):
            continue

    logger.debug("Could not load TrueType font, using default")
    return ImageFont.load_default(size=size)
