"""
Core orchestration.

Combines the inventory reader and the planner into a source/target comparison.
"""

from .reconcile import Comparison, compute_plan

__all__ = ["Comparison", "compute_plan"]
