"""
Module: analysis

Purpose:
    Pure extraction passes over frozen geometry: break constraints and
    table cut plans.
"""

from .break_analyzer import BreakAnalysis, BreakPolicy, analyze_breaks, freeze_table
from .table_segmenter import SnapDecision, TablePlan, TablePolicy, segment_tables

__all__ = [
    "BreakAnalysis",
    "BreakPolicy",
    "analyze_breaks",
    "freeze_table",
    "SnapDecision",
    "TablePlan",
    "TablePolicy",
    "segment_tables",
]
