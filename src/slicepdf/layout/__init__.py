"""
Module: layout

Purpose:
    Pagination of continuous content into page slices.
"""

from .engine import paginate

__all__ = ["paginate"]
