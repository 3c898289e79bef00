"""
Tests for the PDF sinks.

Both sinks must produce documents pypdf can read back with the requested
page sizes and metadata.
"""

import io
from datetime import datetime

import pytest
from PIL import Image
from pypdf import PdfReader

from slicepdf.core.errors import SinkWriteFailure
from slicepdf.output import FitzSink, ReportLabSink, encode_page
from slicepdf.output.sink import MM_TO_PT, PageHandle


@pytest.fixture(params=["reportlab", "fitz"])
def sink(request):
    if request.param == "reportlab":
        return ReportLabSink()
    return FitzSink()


@pytest.fixture
def page_png():
    return encode_page(Image.new("RGB", (210, 297), "white"), "PNG")


def read(blob: bytes) -> PdfReader:
    return PdfReader(io.BytesIO(blob))


class TestSinks:
    """Behaviour shared by every sink."""

    def test_when_pages_added_then_sizes_preserved(self, sink, page_png):
        # Arrange
        first = sink.add_page(210, 297)
        sink.draw_image(first, page_png, 0, 0, 210, 297)
        second = sink.add_page(215.9, 279.4)
        sink.draw_image(second, page_png, 0, 0, 215.9, 279.4)

        # Act
        reader = read(sink.finish())

        # Assert
        assert len(reader.pages) == 2
        assert float(reader.pages[0].mediabox.width) == pytest.approx(210 * MM_TO_PT, abs=0.5)
        assert float(reader.pages[1].mediabox.height) == pytest.approx(279.4 * MM_TO_PT, abs=0.5)

    def test_when_metadata_set_then_readable(self, sink, page_png):
        # Arrange
        sink.set_metadata({
            "title": "Quarterly report",
            "author": "Finance",
            "keywords": "q1, revenue",
            "creator": "slicepdf test",
            "creation_date": datetime(2024, 5, 1, 12, 0, 0),
        })
        handle = sink.add_page(210, 297)
        sink.draw_image(handle, page_png, 0, 0, 210, 297)

        # Act
        meta = read(sink.finish()).metadata

        # Assert
        assert meta.title == "Quarterly report"
        assert meta.author == "Finance"

    def test_when_finished_without_pages_then_sink_write_failure(self, sink):
        with pytest.raises(SinkWriteFailure):
            sink.finish()

    def test_when_used_after_finish_then_sink_write_failure(self, sink, page_png):
        handle = sink.add_page(210, 297)
        sink.draw_image(handle, page_png, 0, 0, 210, 297)
        sink.finish()

        with pytest.raises(SinkWriteFailure):
            sink.add_page(210, 297)

    def test_when_page_size_invalid_then_sink_write_failure(self, sink):
        with pytest.raises(SinkWriteFailure):
            sink.add_page(0, 297)


def test_reportlab_rejects_drawing_on_previous_page(page_png):
    sink = ReportLabSink()
    first = sink.add_page(210, 297)
    sink.add_page(210, 297)

    with pytest.raises(SinkWriteFailure, match="no longer the current page"):
        sink.draw_image(first, page_png, 0, 0, 210, 297)


def test_fitz_can_draw_on_any_page(page_png):
    # Arrange
    sink = FitzSink()
    first = sink.add_page(210, 297)
    sink.add_page(210, 297)
    third = sink.add_page(210, 297)

    # Act
    sink.draw_image(first, page_png, 10, 10, 100, 100)
    sink.draw_image(third, page_png, 0, 0, 210, 297)

    # Assert
    reader = read(sink.finish())
    assert [len(page.images) for page in reader.pages] == [1, 0, 1]


def test_fitz_rejects_unknown_page(page_png):
    sink = FitzSink()
    sink.add_page(210, 297)

    with pytest.raises(SinkWriteFailure, match="Unknown page"):
        sink.draw_image(PageHandle(3, 210, 297), page_png, 0, 0, 210, 297)
