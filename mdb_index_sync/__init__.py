"""
MDB_INDEX_SYNC - MongoDB index synchronization.

Reconciles secondary indexes between a source and a target MongoDB database:
reads both inventories, plans the indexes missing on the target by semantic
equivalence, and applies them idempotently with per-index outcomes.

Usage:
    from mdb_index_sync import compute_plan, apply_plan, open_connection

    async with open_connection(config.source, "source") as source, \\
            open_connection(config.target, "target") as target:
        comparison = await compute_plan(source, target)
        results = await apply_plan(target, comparison.plan)
"""

__version__ = "0.1.0"

from .config import DatabaseTarget, SyncConfig, load_config, save_config
from .core import Comparison, compute_plan
from .database import MongoIndexConnection, open_connection
from .exceptions import (
    ConfigParseError,
    ConfigurationError,
    ConnectivityError,
    CreationFailure,
    DuplicateIndexError,
    IndexSyncError,
    PartialReadWarning,
)
from .indexes import (
    AppliedIndex,
    ApplySummary,
    CollectionInventory,
    CollectionPlan,
    CustomIndexSpec,
    IndexCreationOutcome,
    IndexDescriptor,
    OutcomeStatus,
    ReconciliationPlan,
    apply_custom_indexes,
    apply_plan,
    create_index,
    ensure_collection,
    equivalent,
    plan,
)

__all__ = [
    "__version__",
    # Configuration
    "SyncConfig",
    "DatabaseTarget",
    "load_config",
    "save_config",
    # Model
    "IndexDescriptor",
    "CustomIndexSpec",
    "CollectionInventory",
    # Planning
    "equivalent",
    "plan",
    "CollectionPlan",
    "ReconciliationPlan",
    "Comparison",
    "compute_plan",
    # Application
    "OutcomeStatus",
    "IndexCreationOutcome",
    "AppliedIndex",
    "ApplySummary",
    "ensure_collection",
    "create_index",
    "apply_plan",
    "apply_custom_indexes",
    # Database
    "MongoIndexConnection",
    "open_connection",
    # Errors
    "IndexSyncError",
    "ConnectivityError",
    "ConfigurationError",
    "ConfigParseError",
    "DuplicateIndexError",
    "CreationFailure",
    "PartialReadWarning",
]
