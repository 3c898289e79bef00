"""
Module: output

Purpose:
    Page composition, decoration and PDF writing.
"""

from .compositor import ComposedPage, compose_page, compose_pages, merge_degenerate_slices, single_span
from .cropper import crop_band, render_span_rows
from .decorations import build_watermark_stamp, decorate_page, encode_page, fill_template
from .fitz_sink import FitzSink
from .reportlab_sink import ReportLabSink
from .sink import PageHandle, PdfSink

__all__ = [
    "ComposedPage",
    "compose_page",
    "compose_pages",
    "merge_degenerate_slices",
    "single_span",
    "crop_band",
    "render_span_rows",
    "build_watermark_stamp",
    "decorate_page",
    "encode_page",
    "fill_template",
    "FitzSink",
    "ReportLabSink",
    "PageHandle",
    "PdfSink",
]
