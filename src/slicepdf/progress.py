"""
Module: progress

Purpose:
    Progress reporting and cooperative cancellation, threaded explicitly
    through the pipeline instead of living in ambient counters.

Key Classes:
    - ProgressTracker: Monotonic percentage reporter with phase ranges
    - CancellationToken: Abort signal checked between steps

Dependencies:
    - threading (std)

Used By:
    - slicepdf.layout.engine: Reports cursor progress, checks cancellation
    - slicepdf.output.compositor: Reports page progress, checks cancellation
    - slicepdf.controller: Creates both per generation call
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from slicepdf.core.errors import GenerationCancelled

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class CancellationToken:
    """
    Cooperative abort signal.

    Checked before each capture call and between slice emissions. An
    in-flight step is always allowed to finish.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.raise_if_cancelled("compositing")
        Traceback (most recent call last):
        ...
        slicepdf.core.errors.GenerationCancelled: Cancelled during compositing
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            logger.info(f"Generation cancelled during {stage}")
            raise GenerationCancelled(f"Cancelled during {stage}")


class ProgressTracker:
    """
    Reports progress as a non-decreasing percentage (0-100).

    Work is split into phases; each phase maps its own 0..1 fraction onto
    a slice of the overall range. A value lower than one already reported
    is swallowed, so callers never see progress go backwards.

    Example:
        >>> seen = []
        >>> tracker = ProgressTracker(seen.append)
        >>> tracker.enter_phase(0, 50)
        >>> tracker.update(0.5)
        >>> tracker.update(0.2)
        >>> seen
        [0.0, 25.0]
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._reported = 0.0
        self._phase_low = 0.0
        self._phase_high = 100.0
        self._started = False
        self._lock = threading.Lock()

    @property
    def reported(self) -> float:
        return self._reported

    def enter_phase(self, low: float, high: float) -> None:
        """Map subsequent update() fractions onto [low, high]."""
        if not 0 <= low <= high <= 100:
            raise ValueError(f"Invalid phase range: {low}..{high}")
        self._phase_low = low
        self._phase_high = high
        self.report(low)

    def update(self, fraction: float) -> None:
        """Report progress within the current phase (fraction 0..1)."""
        fraction = max(0.0, min(1.0, fraction))
        self.report(self._phase_low + (self._phase_high - self._phase_low) * fraction)

    def report(self, percent: float) -> None:
        """Report an absolute percentage; ignored unless it moves forward."""
        percent = round(max(0.0, min(100.0, percent)), 2)
        with self._lock:
            if self._started and percent <= self._reported:
                return
            self._reported = percent
            self._started = True
        if self._callback is not None:
            self._callback(percent)

    def complete(self) -> None:
        self.report(100.0)
