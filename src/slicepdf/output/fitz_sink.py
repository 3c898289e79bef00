"""
Module: output.fitz_sink

Purpose:
    PdfSink backed by PyMuPDF. PyMuPDF already uses a top-left origin,
    so rectangles map directly from millimetres to points.

Key Classes:
    - FitzSink: PyMuPDF PDF writer

Dependencies:
    - fitz (PyMuPDF): PDF generation

Used By:
    - slicepdf.controller: sink="fitz"
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict

import fitz

from slicepdf.core.errors import SinkWriteFailure

from .sink import MM_TO_PT, PageHandle, PdfSink

logger = logging.getLogger(__name__)

# PyMuPDF metadata keys for our field names
_METADATA_KEYS = {
    "title": "title",
    "author": "author",
    "subject": "subject",
    "keywords": "keywords",
    "creator": "creator",
    "producer": "producer",
}


class FitzSink(PdfSink):
    """PyMuPDF sink writing to memory."""

    def __init__(self, compress: bool = True):
        self._doc = fitz.open()
        self._page_count = 0
        self._compress = compress
        self._finished = False

    def add_page(self, width_mm: float, height_mm: float) -> PageHandle:
        self._check_open()
        if width_mm <= 0 or height_mm <= 0:
            raise SinkWriteFailure(f"Invalid page size {width_mm}x{height_mm}mm")
        self._doc.new_page(width=width_mm * MM_TO_PT, height=height_mm * MM_TO_PT)
        self._page_count += 1
        return PageHandle(self._page_count - 1, width_mm, height_mm)

    def draw_image(
        self,
        handle: PageHandle,
        image_bytes: bytes,
        x_mm: float,
        y_mm: float,
        w_mm: float,
        h_mm: float,
    ) -> None:
        self._check_open()
        if not 0 <= handle.index < self._page_count:
            raise SinkWriteFailure(f"Unknown page {handle.index}")
        rect = fitz.Rect(
            x_mm * MM_TO_PT,
            y_mm * MM_TO_PT,
            (x_mm + w_mm) * MM_TO_PT,
            (y_mm + h_mm) * MM_TO_PT,
        )
        try:
            self._doc.load_page(handle.index).insert_image(rect, stream=image_bytes, keep_proportion=False)
        except (RuntimeError, ValueError) as e:
            raise SinkWriteFailure(f"Cannot draw image on page {handle.index}: {e}") from e

    def set_metadata(self, fields: Dict[str, Any]) -> None:
        self._check_open()
        metadata: Dict[str, str] = {}
        for name, key in _METADATA_KEYS.items():
            if fields.get(name):
                metadata[key] = str(fields[name])
        created = fields.get("creation_date")
        if isinstance(created, datetime):
            metadata["creationDate"] = created.strftime("D:%Y%m%d%H%M%S")
        self._doc.set_metadata(metadata)

    def finish(self) -> bytes:
        self._check_open()
        if not self._page_count:
            raise SinkWriteFailure("Cannot finish a document without pages")
        try:
            data = self._doc.tobytes(garbage=3, deflate=self._compress)
        except (RuntimeError, ValueError) as e:
            raise SinkWriteFailure(f"Cannot finish PDF: {e}") from e
        finally:
            self._doc.close()
            self._finished = True
        logger.info(f"Wrote {self._page_count} pages ({len(data)} bytes) with PyMuPDF")
        return data

    def _check_open(self) -> None:
        if self._finished:
            raise SinkWriteFailure("Sink already finished")
