"""
Index Reconciliation Module

Descriptor model, equivalence, planning and application of secondary indexes.

This module is part of MDB_INDEX_SYNC.
"""

from .applier import (
    AppliedIndex,
    ApplySummary,
    DuplicateIndexMatcher,
    IndexCreationOutcome,
    OutcomeStatus,
    apply_custom_indexes,
    apply_plan,
    create_index,
    ensure_collection,
)
from .comparator import equivalent
from .descriptor import CollectionInventory, CustomIndexSpec, IndexDescriptor
from .planner import CollectionPlan, ReconciliationPlan, plan

__all__ = [
    # Model
    "IndexDescriptor",
    "CustomIndexSpec",
    "CollectionInventory",
    # Comparison and planning
    "equivalent",
    "CollectionPlan",
    "ReconciliationPlan",
    "plan",
    # Application
    "OutcomeStatus",
    "IndexCreationOutcome",
    "AppliedIndex",
    "ApplySummary",
    "DuplicateIndexMatcher",
    "ensure_collection",
    "create_index",
    "apply_plan",
    "apply_custom_indexes",
]
