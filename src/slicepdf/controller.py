"""
Module: controller

Purpose:
    Orchestrate the complete generation pipeline.
    Capture → Analyze → Segment tables → Paginate → Compose → Decorate → Write

Key Functions:
    - generate(): Single content block to PDF
    - generate_batch(): Several blocks with per-item page budgets
    - write_pdf(): Atomically store a result's PDF on disk

Key Classes:
    - GenerationResult: Finished document and statistics
    - BatchGenerationResult: Adds per-item page ranges
    - ItemResult: Page range and scale of one batch item

Dependencies:
    - slicepdf.capture: Rasterisation
    - slicepdf.analysis: Break constraints and table plans
    - slicepdf.layout: Pagination
    - slicepdf.batch: Batch scaling
    - slicepdf.output: Composition, decoration and sinks

Used By:
    - slicepdf.cli: Command line
    - Library callers
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from .analysis import BreakPolicy, TablePolicy, analyze_breaks, segment_tables
from .batch import assign_pages, plan_batch
from .capture import CaptureAdapter, ImageCaptureAdapter, capture, capture_many
from .config import GeneratorConfig, PageGeometry
from .core.errors import SinkWriteFailure, SlicePdfError
from .core.models import BatchItem, ItemSpan, PageSlice
from .diagnostics import Diagnostic, DiagnosticsCollector, WarningCallback
from .layout import paginate
from .output import (
    FitzSink,
    PdfSink,
    ReportLabSink,
    build_watermark_stamp,
    compose_pages,
    decorate_page,
    encode_page,
    merge_degenerate_slices,
    single_span,
)
from .progress import CancellationToken, ProgressCallback, ProgressTracker

logger = logging.getLogger(__name__)

SinkFactory = Callable[[GeneratorConfig], PdfSink]
SinkChoice = Union[str, SinkFactory, None]

SINKS: Dict[str, SinkFactory] = {
    "reportlab": lambda config: ReportLabSink(compress=config.compress),
    "fitz": lambda config: FitzSink(compress=config.compress),
}

# Progress phases (percent)
CAPTURE_PHASE = (0.0, 30.0)
PAGINATE_PHASE = (30.0, 40.0)
COMPOSE_PHASE = (40.0, 100.0)


@dataclass(frozen=True)
class GenerationResult:
    """
    Complete generation result (immutable).

    Attributes:
        page_count: Pages in the document
        file_size_bytes: Size of blob
        generation_time_ms: Wall time of the call
        blob: PDF file contents
        slices: Final page slices
        warnings: Recoverable issues met along the way

    Example:
        >>> result = generate(PrerenderedContent("report.png", "report.json"))
        >>> print(f"Generated {result.page_count} pages")
    """

    page_count: int
    file_size_bytes: int
    generation_time_ms: float
    blob: bytes
    slices: Tuple[PageSlice, ...] = ()
    warnings: Tuple[Diagnostic, ...] = ()

    @property
    def warning_messages(self) -> Tuple[str, ...]:
        return tuple(str(w) for w in self.warnings)


@dataclass(frozen=True)
class ItemResult:
    """
    Placement of one batch item in the document.

    Pages are 1-indexed here, as shown to readers.
    """

    title: Optional[str]
    start_page: int
    end_page: int
    page_count: int
    scale_factor: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "start_page": self.start_page,
            "end_page": self.end_page,
            "page_count": self.page_count,
            "scale_factor": self.scale_factor,
        }


@dataclass(frozen=True)
class BatchGenerationResult(GenerationResult):
    """GenerationResult plus per-item page ranges."""

    items: Tuple[ItemResult, ...] = ()


def generate(
    content: Any,
    config: Optional[GeneratorConfig] = None,
    *,
    adapter: Optional[CaptureAdapter] = None,
    sink: SinkChoice = None,
    on_progress: Optional[ProgressCallback] = None,
    on_warning: Optional[WarningCallback] = None,
    cancel: Optional[CancellationToken] = None,
) -> GenerationResult:
    """
    Generate a PDF from one content block.

    Pipeline:
    1. Capture content to a surface + geometry
    2. Extract break constraints and plan oversized tables
    3. Paginate
    4. Compose, decorate and write every page

    Args:
        content: Anything the adapter accepts (PrerenderedContent by default)
        config: Generation settings (defaults to GeneratorConfig())
        adapter: Capture implementation (defaults to ImageCaptureAdapter)
        sink: "reportlab" (default), "fitz" or a factory taking the config
        on_progress: Receives non-decreasing percentages
        on_warning: Receives each recoverable issue as it is recorded
        cancel: Abort signal

    Returns:
        GenerationResult

    Raises:
        CaptureFailure: If rendering fails
        SinkWriteFailure: If the PDF cannot be written
        ConfigError: If the watermark image cannot be read
        GenerationCancelled: If cancel was triggered
    """
    start_time = time.perf_counter()
    config = config or GeneratorConfig()
    adapter = adapter or ImageCaptureAdapter()
    progress = ProgressTracker(on_progress)
    diagnostics = DiagnosticsCollector(on_warning)

    # 1. Capture
    progress.enter_phase(*CAPTURE_PHASE)
    captured = capture(adapter, content, config.target_width_px, cancel)
    surface = captured.surface
    progress.update(1.0)

    geometry = config.geometry(surface.width_px)
    usable = geometry.usable_height_px
    logger.info(
        f"Captured {surface.width_px}x{surface.height_px}px, "
        f"{usable}px per page ({geometry.px_per_mm:.2f} px/mm)"
    )

    # 2. Constraints and table plan
    analysis = analyze_breaks(captured.layout, surface.height_px, usable, break_policy(config))
    table_plan = segment_tables(analysis.table_candidates, table_policy(config))

    # 3. Paginate
    progress.enter_phase(*PAGINATE_PHASE)
    pagination = paginate(
        surface.height_px,
        usable,
        analysis.constraints,
        table_plan,
        diagnostics=diagnostics,
        progress=progress,
        cancel=cancel,
    )
    slices = tuple(merge_degenerate_slices(pagination.slices, diagnostics))

    # 4. Compose and write
    progress.enter_phase(*COMPOSE_PHASE)
    spans = (single_span(surface),)
    blob = _write_document(slices, spans, geometry, config, sink, progress, cancel)
    progress.complete()

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"Generated {len(slices)} pages ({len(blob)} bytes) in {elapsed_ms:.0f}ms")
    return GenerationResult(
        page_count=len(slices),
        file_size_bytes=len(blob),
        generation_time_ms=elapsed_ms,
        blob=blob,
        slices=slices,
        warnings=diagnostics.issues,
    )


def generate_batch(
    items: Sequence[BatchItem],
    config: Optional[GeneratorConfig] = None,
    *,
    adapter: Optional[CaptureAdapter] = None,
    sink: SinkChoice = None,
    on_progress: Optional[ProgressCallback] = None,
    on_warning: Optional[WarningCallback] = None,
    cancel: Optional[CancellationToken] = None,
) -> BatchGenerationResult:
    """
    Generate one PDF from several content blocks.

    Each item is scaled to fill its requested page count (best effort,
    within one page) and placed after its predecessor in caller order.
    Items scaled below 1 shrink uniformly. Items scaled above 1 already
    span the usable width, so they are stretched vertically only and their
    content is distorted by the scale factor (at most 4x).

    Args:
        items: Batch items in document order
        config: Generation settings
        adapter: Capture implementation
        sink: "reportlab" (default), "fitz" or a factory taking the config
        on_progress: Receives non-decreasing percentages; the capture
            phase advances by each item's requested page count
        on_warning: Receives each recoverable issue
        cancel: Abort signal, checked before every capture

    Returns:
        BatchGenerationResult with per-item page ranges

    Raises:
        CaptureFailure: If any item fails to render
        SinkWriteFailure: If the PDF cannot be written
        ConfigError: If the watermark image cannot be read
        GenerationCancelled: If cancel was triggered
    """
    if not items:
        raise ValueError("generate_batch needs at least one item")

    start_time = time.perf_counter()
    config = config or GeneratorConfig()
    adapter = adapter or ImageCaptureAdapter()
    progress = ProgressTracker(on_progress)
    diagnostics = DiagnosticsCollector(on_warning)

    # 1. Capture (weighted by page budget)
    progress.enter_phase(*CAPTURE_PHASE)
    total_weight = sum(item.weight for item in items)
    done_weight = 0

    def on_captured(index: int) -> None:
        nonlocal done_weight
        done_weight += items[index].weight
        progress.update(done_weight / total_weight)

    captures = capture_many(
        adapter,
        [item.content for item in items],
        config.target_width_px,
        max_workers=config.max_capture_workers,
        cancel=cancel,
        on_captured=on_captured,
    )

    width = captures[0].surface.width_px
    geometry = config.geometry(width)
    usable = geometry.usable_height_px

    # 2. Scale, concatenate, plan tables
    plan = plan_batch(items, captures, usable, break_policy(config), diagnostics)
    table_plan = segment_tables(plan.tables, table_policy(config))

    # 3. Paginate
    progress.enter_phase(*PAGINATE_PHASE)
    pagination = paginate(
        plan.total_height_px,
        usable,
        plan.constraints,
        table_plan,
        diagnostics=diagnostics,
        progress=progress,
        cancel=cancel,
        item_spans=plan.spans,
    )
    slices = tuple(merge_degenerate_slices(pagination.slices, diagnostics))
    placed = assign_pages(plan.items, plan.spans, slices)

    # 4. Compose and write
    progress.enter_phase(*COMPOSE_PHASE)
    blob = _write_document(slices, plan.spans, geometry, config, sink, progress, cancel)
    progress.complete()

    item_results = tuple(
        ItemResult(
            title=item.title,
            start_page=item.start_page + 1,
            end_page=item.end_page + 1,
            page_count=item.page_count,
            scale_factor=item.computed_scale,
        )
        for item in placed
    )

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"Generated batch of {len(items)} items on {len(slices)} pages "
        f"({len(blob)} bytes) in {elapsed_ms:.0f}ms"
    )
    return BatchGenerationResult(
        page_count=len(slices),
        file_size_bytes=len(blob),
        generation_time_ms=elapsed_ms,
        blob=blob,
        slices=slices,
        warnings=diagnostics.issues,
        items=item_results,
    )


def write_pdf(result: GenerationResult, path: Union[str, Path]) -> Path:
    """
    Write a result's PDF atomically.

    The document is written to a temporary file in the target directory
    and renamed into place, so the path never holds a partial file.

    Args:
        result: Finished generation result
        path: Destination file

    Returns:
        Resolved destination path

    Raises:
        SinkWriteFailure: If the file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(result.blob)
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise SinkWriteFailure(f"Cannot write {path}: {e}") from e

    logger.info(f"Wrote {result.file_size_bytes} bytes to {path}")
    return path.resolve()


def break_policy(config: GeneratorConfig) -> BreakPolicy:
    """Break analysis rules derived from a config."""
    return BreakPolicy(
        respect_explicit_breaks=config.respect_explicit_breaks,
        avoid_orphan_headings=config.avoid_orphan_headings,
        avoid_break_inside_selectors=config.avoid_break_inside_selectors,
        break_before_selectors=config.break_before_selectors,
        break_after_selectors=config.break_after_selectors,
    )


def table_policy(config: GeneratorConfig) -> TablePolicy:
    """Table rules derived from a config."""
    return TablePolicy(
        repeat_headers=config.repeat_table_headers,
        allow_row_split=not config.avoid_table_row_split,
        min_rows_per_page=config.min_rows_per_page,
    )


def _make_sink(choice: SinkChoice, config: GeneratorConfig) -> PdfSink:
    if choice is None:
        choice = "reportlab"
    if isinstance(choice, str):
        factory = SINKS.get(choice)
        if factory is None:
            raise ValueError(f"Unknown sink {choice!r}, expected one of {sorted(SINKS)}")
        return factory(config)
    return choice(config)


def _document_fields(config: GeneratorConfig) -> Dict[str, Any]:
    from slicepdf import __version__

    fields = config.metadata.to_fields()
    fields.setdefault("creator", f"slicepdf {__version__}")
    fields.setdefault("producer", f"slicepdf {__version__}")
    fields.setdefault("creation_date", datetime.now())
    return fields


def _write_document(
    slices: Sequence[PageSlice],
    spans: Sequence[ItemSpan],
    geometry: PageGeometry,
    config: GeneratorConfig,
    sink_choice: SinkChoice,
    progress: ProgressTracker,
    cancel: Optional[CancellationToken],
) -> bytes:
    """Compose, decorate and hand every page to a fresh sink."""
    watermark = config.watermark
    stamp = None
    if watermark is not None and watermark.enabled:
        stamp = build_watermark_stamp(watermark, geometry)

    sink = _make_sink(sink_choice, config)
    width_mm, height_mm = geometry.page_width_mm, geometry.page_height_mm
    total = len(slices)

    _sink_call(sink.set_metadata, _document_fields(config))
    for page in compose_pages(slices, spans, geometry, progress=progress, cancel=cancel):
        image = decorate_page(
            page.image,
            page.index + 1,
            total,
            geometry,
            config,
            title=config.metadata.title,
            watermark_stamp=stamp,
        )
        data = encode_page(image, config.image_format, config.image_quality)
        handle = _sink_call(sink.add_page, width_mm, height_mm)
        _sink_call(sink.draw_image, handle, data, 0.0, 0.0, width_mm, height_mm)

    return _sink_call(sink.finish)


def _sink_call(method: Callable[..., Any], *args: Any) -> Any:
    """Call a sink method, wrapping foreign errors in SinkWriteFailure."""
    try:
        return method(*args)
    except SlicePdfError:
        raise
    except Exception as e:
        raise SinkWriteFailure(f"PDF sink failed in {method.__name__}: {e}") from e
