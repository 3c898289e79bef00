"""
Module: batch

Purpose:
    Batch mode: scaling items to page budgets and concatenating them.
"""

from .scaler import MAX_SCALE, MIN_SCALE, BatchPlan, assign_pages, compute_scale, plan_batch

__all__ = ["MAX_SCALE", "MIN_SCALE", "BatchPlan", "assign_pages", "compute_scale", "plan_batch"]
