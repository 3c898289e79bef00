"""
Module: output.sink

Purpose:
    Contract for the PDF writer. The pipeline only ever adds pages,
    draws encoded page images and sets document metadata; the binary PDF
    format stays behind this interface.

Key Classes:
    - PdfSink: Abstract base class for PDF writers
    - PageHandle: Reference to a page created by a sink

Dependencies:
    - abc (std)

Used By:
    - slicepdf.output.reportlab_sink: Default writer
    - slicepdf.output.fitz_sink: PyMuPDF writer
    - slicepdf.controller: Output stage
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict

MM_TO_PT = 72.0 / 25.4


@dataclass(frozen=True, slots=True)
class PageHandle:
    """
    A page added to a sink.

    Attributes:
        index: Page index (0-indexed)
        width_mm: Page width
        height_mm: Page height
    """

    index: int
    width_mm: float
    height_mm: float


class PdfSink(ABC):
    """
    Abstract PDF writer.

    Coordinates are millimetres from the page's top-left corner. A sink
    is single use: finish() returns the document and closes the sink.
    """

    @abstractmethod
    def add_page(self, width_mm: float, height_mm: float) -> PageHandle:
        """
        Append a page.

        Raises:
            SinkWriteFailure: If the page cannot be created
        """

    @abstractmethod
    def draw_image(
        self,
        handle: PageHandle,
        image_bytes: bytes,
        x_mm: float,
        y_mm: float,
        w_mm: float,
        h_mm: float,
    ) -> None:
        """
        Draw encoded image bytes (PNG or JPEG) on a page.

        Raises:
            SinkWriteFailure: If the image is rejected
        """

    @abstractmethod
    def set_metadata(self, fields: Dict[str, Any]) -> None:
        """Set document information (title, author, subject, keywords, ...)."""

    @abstractmethod
    def finish(self) -> bytes:
        """
        Complete the document.

        Returns:
            PDF file contents

        Raises:
            SinkWriteFailure: If the document cannot be produced
        """
