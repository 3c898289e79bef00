"""
Module: core.errors

Purpose:
    Exception hierarchy for the slicing pipeline. Fatal failures are
    raised as exceptions; recoverable conditions are reported through
    slicepdf.diagnostics instead.

Key Classes:
    - SlicePdfError: Base class for all pipeline errors
    - CaptureFailure: Rendering step failed
    - SinkWriteFailure: PDF sink rejected a page or could not finish
    - GenerationCancelled: Abort signal observed
    - ConfigError: Invalid configuration value

Used By:
    - slicepdf.capture: Wraps adapter failures
    - slicepdf.output: Wraps sink failures
    - slicepdf.controller: Surfaces fatal errors to callers
"""

from __future__ import annotations


class SlicePdfError(Exception):
    """Base class for errors raised by slicepdf."""
    pass


class CaptureFailure(SlicePdfError):
    """Rendering content to a raster surface failed."""
    pass


class SinkWriteFailure(SlicePdfError):
    """The PDF sink rejected a page or failed to produce the document."""
    pass


class GenerationCancelled(SlicePdfError):
    """Generation was aborted through a CancellationToken."""
    pass


class ConfigError(SlicePdfError, ValueError):
    """Configuration value is invalid."""
    pass
