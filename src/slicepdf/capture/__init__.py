"""
Module: capture

Purpose:
    Rendering content to a RenderedSurface with frozen geometry.
"""

from .adapter import CaptureAdapter, CaptureResult, capture, capture_many
from .image_adapter import ImageCaptureAdapter, PrerenderedContent, load_geometry

__all__ = [
    "CaptureAdapter",
    "CaptureResult",
    "capture",
    "capture_many",
    "ImageCaptureAdapter",
    "PrerenderedContent",
    "load_geometry",
]
