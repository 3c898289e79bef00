"""
Module: core

Purpose:
    Shared data models and the exception hierarchy.
"""

from .errors import (
    CaptureFailure,
    ConfigError,
    GenerationCancelled,
    SinkWriteFailure,
    SlicePdfError,
)

__all__ = [
    "CaptureFailure",
    "ConfigError",
    "GenerationCancelled",
    "SinkWriteFailure",
    "SlicePdfError",
]
