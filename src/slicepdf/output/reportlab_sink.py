"""
Module: output.reportlab_sink

Purpose:
    PdfSink backed by a ReportLab canvas writing to memory. Pages are
    sized individually and images are placed with a flipped y-axis so
    callers can keep thinking top-down.

Key Classes:
    - ReportLabSink: Default PDF writer

Dependencies:
    - reportlab: PDF generation

Used By:
    - slicepdf.controller: Default sink
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, Optional

from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from slicepdf.core.errors import SinkWriteFailure

from .sink import MM_TO_PT, PageHandle, PdfSink

logger = logging.getLogger(__name__)


class ReportLabSink(PdfSink):
    """
    ReportLab canvas sink.

    showPage() is deferred until the next page is added (or finish()),
    so any number of images can be drawn onto the current page.

    Example:
        >>> sink = ReportLabSink()
        >>> page = sink.add_page(210, 297)
        >>> pdf = sink.finish()
    """

    def __init__(self, compress: bool = True):
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pageCompression=1 if compress else 0)
        self._current: Optional[PageHandle] = None
        self._page_count = 0
        self._finished = False

    def add_page(self, width_mm: float, height_mm: float) -> PageHandle:
        self._check_open()
        if width_mm <= 0 or height_mm <= 0:
            raise SinkWriteFailure(f"Invalid page size {width_mm}x{height_mm}mm")
        if self._current is not None:
            self._canvas.showPage()
        self._canvas.setPageSize((width_mm * MM_TO_PT, height_mm * MM_TO_PT))
        self._current = PageHandle(self._page_count, width_mm, height_mm)
        self._page_count += 1
        return self._current

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
        if handle != self._current:
            raise SinkWriteFailure(f"Page {handle.index} is no longer the current page")

        # Convert Y coordinate (top-down to bottom-up)
        y_pt = (handle.height_mm - y_mm - h_mm) * MM_TO_PT
        try:
            self._canvas.drawImage(
                ImageReader(io.BytesIO(image_bytes)),
                x_mm * MM_TO_PT,
                y_pt,
                width=w_mm * MM_TO_PT,
                height=h_mm * MM_TO_PT,
            )
        except (OSError, ValueError) as e:
            raise SinkWriteFailure(f"Cannot draw image on page {handle.index}: {e}") from e

    def set_metadata(self, fields: Dict[str, Any]) -> None:
        self._check_open()
        c = self._canvas
        if fields.get("title"):
            c.setTitle(fields["title"])
        if fields.get("author"):
            c.setAuthor(fields["author"])
        if fields.get("subject"):
            c.setSubject(fields["subject"])
        if fields.get("keywords"):
            c.setKeywords(fields["keywords"])
        if fields.get("creator"):
            c.setCreator(fields["creator"])
        if fields.get("producer"):
            c.setProducer(fields["producer"])
        if fields.get("creation_date"):
            logger.debug("creation_date is set by ReportLab itself, ignoring")

    def finish(self) -> bytes:
        self._check_open()
        if self._current is None:
            raise SinkWriteFailure("Cannot finish a document without pages")
        try:
            self._canvas.showPage()
            self._canvas.save()
        except (OSError, ValueError) as e:
            raise SinkWriteFailure(f"Cannot finish PDF: {e}") from e
        self._finished = True
        data = self._buffer.getvalue()
        logger.info(f"Wrote {self._page_count} pages ({len(data)} bytes) with ReportLab")
        return data

    def _check_open(self) -> None:
        if self._finished:
            raise SinkWriteFailure("Sink already finished")
