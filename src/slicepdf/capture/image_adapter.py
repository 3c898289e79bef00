"""
Module: capture.image_adapter

Purpose:
    Capture adapter for content that was rasterised elsewhere: an image
    (in memory or on disk) plus its geometry tree (a dict or a JSON file).
    The raster is resized to the requested width and the geometry is
    scaled by the same factor.

Key Classes:
    - PrerenderedContent: Image + geometry input
    - ImageCaptureAdapter: CaptureAdapter for PrerenderedContent

Key Functions:
    - load_geometry(): Read a geometry tree from a JSON file

Dependencies:
    - PIL: Image loading and resizing
    - json (std): Geometry files

Used By:
    - slicepdf.controller: Default adapter
    - slicepdf.cli: render / batch commands
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

from PIL import Image

from slicepdf.core.errors import CaptureFailure
from slicepdf.core.models import ContentNode, RenderedSurface

from .adapter import CaptureAdapter, CaptureResult

logger = logging.getLogger(__name__)

ImageSource = Union[Image.Image, str, Path]
GeometrySource = Union[ContentNode, Mapping[str, Any], str, Path, None]


@dataclass(frozen=True)
class PrerenderedContent:
    """
    Already rasterised content.

    Attributes:
        image: Pillow image or path to an image file
        geometry: ContentNode, node mapping, or path to a JSON file.
            None means a single root node covering the whole image.

    Example:
        >>> content = PrerenderedContent("page.png", "page.json")
    """

    image: ImageSource
    geometry: GeometrySource = None


def load_geometry(path: Union[str, Path]) -> ContentNode:
    """
    Read a geometry tree from a JSON file.

    The file holds either the root node mapping or ``{"root": {...}}``.

    Raises:
        CaptureFailure: If the file is missing or not valid JSON
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CaptureFailure(f"Cannot read geometry {path}: {e}") from e

    if isinstance(data, dict) and "root" in data:
        data = data["root"]
    if not isinstance(data, dict):
        raise CaptureFailure(f"Geometry root must be an object: {path}")
    return ContentNode.from_dict(data)


class ImageCaptureAdapter(CaptureAdapter):
    """
    Adapter for PrerenderedContent.

    Bare images and paths are accepted too and get a single root node.

    Attributes:
        resample: Pillow resampling filter used when resizing
    """

    def __init__(self, resample: int = Image.Resampling.LANCZOS):
        self.resample = resample

    def render(self, content: Any, target_width_px: int) -> CaptureResult:
        """Load, resize to target_width_px and scale geometry to match."""
        if target_width_px <= 0:
            raise CaptureFailure(f"target_width_px must be positive: {target_width_px}")
        if not isinstance(content, PrerenderedContent):
            content = PrerenderedContent(image=content)

        image = self._load_image(content.image)
        if image.width <= 0 or image.height <= 0:
            raise CaptureFailure(f"Empty image {image.size}")

        factor = target_width_px / image.width
        layout = self._load_layout(content.geometry, image.height)

        if image.width != target_width_px:
            height = max(1, int(round(image.height * factor)))
            logger.debug(f"Resizing {image.size} -> ({target_width_px}, {height})")
            image = image.resize((target_width_px, height), self.resample)
            layout = layout.scaled(factor)

        return CaptureResult(surface=RenderedSurface.from_image(image), layout=layout)

    def _load_image(self, source: ImageSource) -> Image.Image:
        if isinstance(source, Image.Image):
            return source
        path = Path(source)
        if not path.exists():
            raise CaptureFailure(f"Image not found: {path}")
        try:
            with Image.open(path) as img:
                img.load()
                return img.copy()
        except OSError as e:
            raise CaptureFailure(f"Cannot read image {path}: {e}") from e

    def _load_layout(self, source: GeometrySource, height: int) -> ContentNode:
        if source is None:
            return ContentNode(tag="body", top=0, bottom=height)
        if isinstance(source, ContentNode):
            return source
        if isinstance(source, Mapping):
            return ContentNode.from_dict(dict(source))
        return load_geometry(source)

