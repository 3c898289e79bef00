"""
Module: diagnostics

Captures recoverable pagination issues (forced overflow, merged empty
pages, clamped batch scales) so a generation call can finish with a
degraded-but-correct result and still tell the caller what happened.

Structure:
- Each issue is a Diagnostic with a kind, a human message and the content
  offset it concerns (if any)
- The collector logs every issue at WARNING and forwards it to an optional
  callback (the caller's error channel)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    """Recoverable issue kinds."""

    CONSTRAINT_CONFLICT = "constraint_conflict"
    DEGENERATE_SLICE = "degenerate_slice"
    SCALE_OUT_OF_RANGE = "scale_out_of_range"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single non-fatal issue.

    Fields:
    - kind: What went wrong
    - message: Human readable description
    - offset_px: Content offset the issue relates to (None if not positional)
    - item_index: Batch item the issue relates to (None in single mode)
    """
    kind: DiagnosticKind
    message: str
    offset_px: Optional[int] = None
    item_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.offset_px is not None:
            d["offset_px"] = self.offset_px
        if self.item_index is not None:
            d["item_index"] = self.item_index
        return d

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


WarningCallback = Callable[[Diagnostic], None]


class DiagnosticsCollector:
    """
    Thread-safe collector for recoverable issues.

    Batch captures may run on worker threads, so additions are locked.
    """

    def __init__(self, on_warning: Optional[WarningCallback] = None):
        self._issues: List[Diagnostic] = []
        self._lock = threading.Lock()
        self._on_warning = on_warning

    def add(
        self,
        kind: DiagnosticKind,
        message: str,
        *,
        offset_px: Optional[int] = None,
        item_index: Optional[int] = None,
    ) -> Diagnostic:
        """Record an issue, log it and notify the callback."""
        issue = Diagnostic(kind=kind, message=message, offset_px=offset_px, item_index=item_index)
        with self._lock:
            self._issues.append(issue)
        logger.warning(str(issue))
        if self._on_warning is not None:
            self._on_warning(issue)
        return issue

    def constraint_conflict(self, message: str, offset_px: int) -> Diagnostic:
        return self.add(DiagnosticKind.CONSTRAINT_CONFLICT, message, offset_px=offset_px)

    def degenerate_slice(self, message: str, offset_px: int) -> Diagnostic:
        return self.add(DiagnosticKind.DEGENERATE_SLICE, message, offset_px=offset_px)

    def scale_out_of_range(self, message: str, item_index: int) -> Diagnostic:
        return self.add(DiagnosticKind.SCALE_OUT_OF_RANGE, message, item_index=item_index)

    @property
    def issues(self) -> Tuple[Diagnostic, ...]:
        with self._lock:
            return tuple(self._issues)

    def of_kind(self, kind: DiagnosticKind) -> Tuple[Diagnostic, ...]:
        return tuple(i for i in self.issues if i.kind is kind)

    def messages(self) -> Tuple[str, ...]:
        return tuple(str(i) for i in self.issues)

    def __len__(self) -> int:
        with self._lock:
            return len(self._issues)
