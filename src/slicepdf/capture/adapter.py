"""
Module: capture.adapter

Purpose:
    Contract for the rasterisation step that turns content into a
    RenderedSurface plus its frozen geometry tree, and the helpers that
    call adapters with cancellation checks and failure wrapping.

Key Classes:
    - CaptureAdapter: Abstract base class for capture implementations
    - CaptureResult: Surface + geometry from one capture

Key Functions:
    - capture(): One checked capture call
    - capture_many(): Ordered, optionally parallel captures (batch mode)

Dependencies:
    - concurrent.futures (std): Parallel batch captures
    - slicepdf.core.models: RenderedSurface, ContentNode

Used By:
    - slicepdf.capture.image_adapter: Bundled implementation
    - slicepdf.controller: Capture stage
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from slicepdf.core.errors import CaptureFailure, SlicePdfError
from slicepdf.core.models import ContentNode, RenderedSurface
from slicepdf.progress import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureResult:
    """
    Output of one capture (immutable).

    Attributes:
        surface: Rendered raster
        layout: Geometry tree in surface pixels
    """

    surface: RenderedSurface
    layout: ContentNode

    @property
    def height_px(self) -> int:
        return self.surface.height_px


class CaptureAdapter(ABC):
    """
    Abstract interface for rendering content to a raster.

    Implementations must be deterministic for identical input and report
    an exact integer pixel height.
    """

    @abstractmethod
    def render(self, content: Any, target_width_px: int) -> CaptureResult:
        """
        Render content at a fixed width.

        Args:
            content: Implementation specific content description
            target_width_px: Width of the resulting surface

        Returns:
            CaptureResult with surface and geometry

        Raises:
            CaptureFailure: If rendering fails
        """


def capture(
    adapter: CaptureAdapter,
    content: Any,
    target_width_px: int,
    cancel: Optional[CancellationToken] = None,
) -> CaptureResult:
    """
    Run one capture, wrapping adapter errors in CaptureFailure.

    Cancellation is checked before the adapter is called; a capture that
    has started always runs to completion.
    """
    if cancel is not None:
        cancel.raise_if_cancelled("capture")

    try:
        result = adapter.render(content, target_width_px)
    except SlicePdfError:
        raise
    except Exception as e:
        raise CaptureFailure(f"Capture failed: {e}") from e

    if not isinstance(result, CaptureResult):
        raise CaptureFailure(f"Adapter returned {type(result).__name__}, expected CaptureResult")

    logger.debug(
        f"Captured {result.surface.width_px}x{result.surface.height_px}px "
        f"with {sum(1 for _ in result.layout.iter_all())} nodes"
    )
    return result


def capture_many(
    adapter: CaptureAdapter,
    contents: Sequence[Any],
    target_width_px: int,
    *,
    max_workers: int = 1,
    cancel: Optional[CancellationToken] = None,
    on_captured: Optional[Callable[[int], None]] = None,
) -> List[CaptureResult]:
    """
    Capture several contents, returning results in input order.

    Args:
        adapter: Capture implementation
        contents: Content per batch item
        target_width_px: Width for every surface
        max_workers: Parallel captures (1 = sequential)
        cancel: Checked before each capture
        on_captured: Called with the item index as each result is consumed

    Returns:
        CaptureResults in the order of contents
    """
    def run(content: Any) -> CaptureResult:
        return capture(adapter, content, target_width_px, cancel)

    results: List[CaptureResult] = []
    if max_workers <= 1 or len(contents) <= 1:
        for i, content in enumerate(contents):
            results.append(run(content))
            if on_captured is not None:
                on_captured(i)
        return results

    workers = min(max_workers, len(contents))
    logger.info(f"Capturing {len(contents)} items on {workers} workers")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        # map() yields in submission order regardless of completion order
        for i, result in enumerate(executor.map(run, contents)):
            results.append(result)
            if on_captured is not None:
                on_captured(i)
    return results
