"""
Reconciliation orchestration.

Reads the source and target inventories concurrently (they use disjoint
connections) and computes the reconciliation plan.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from ..database.connection import IndexConnection
from ..database.inventory import list_collections, read_inventory
from ..exceptions import PartialReadWarning
from ..indexes.descriptor import CollectionInventory
from ..indexes.planner import ReconciliationPlan, plan
from ..observability import log_operation

logger = logging.getLogger(__name__)


@dataclass
class Comparison:
    """A plan together with the inventories it was computed from."""

    plan: ReconciliationPlan
    source_inventory: list[CollectionInventory]
    target_collection_names: list[str]
    target_inventory: list[CollectionInventory]
    interrupted: bool = False

    @property
    def warnings(self) -> list[PartialReadWarning]:
        return [
            inv.warning
            for inv in (*self.source_inventory, *self.target_inventory)
            if inv.warning is not None
        ]


async def _read_source(
    source: IndexConnection,
    collections: Sequence[str],
    cancel_event: asyncio.Event | None,
) -> list[CollectionInventory]:
    names = await list_collections(source, collections)
    logger.info(f"Found {len(names)} collection(s) in source database.")
    return await read_inventory(source, names, cancel_event)


async def _read_target(
    target: IndexConnection,
    collections: Sequence[str],
    cancel_event: asyncio.Event | None,
) -> tuple[list[str], list[CollectionInventory]]:
    # Always enumerate: the collection filter must not hide what exists on the target
    target_names = await list_collections(target, [])
    existing = set(target_names)
    in_scope = [name for name in collections if name in existing] if collections else target_names
    return target_names, await read_inventory(target, in_scope, cancel_event)


async def compute_plan(
    source: IndexConnection,
    target: IndexConnection,
    collections: Sequence[str] = (),
    cancel_event: asyncio.Event | None = None,
) -> Comparison:
    """
    Compare source and target and compute the indexes missing on the target.

    Args:
        source: Source connection
        target: Target connection
        collections: Optional scope filter (empty = all source collections)
        cancel_event: Optional cancellation signal

    Raises:
        ConnectivityError: If either side cannot enumerate its collections
    """
    start = time.perf_counter()
    source_inventory, (target_names, target_inventory) = await asyncio.gather(
        _read_source(source, collections, cancel_event),
        _read_target(target, collections, cancel_event),
    )

    target_indexes = {inv.collection_name: inv.indexes for inv in target_inventory}
    reconciliation = plan(source_inventory, target_names, target_indexes, cancel_event)

    log_operation(
        logger,
        "plan.compute",
        duration_ms=(time.perf_counter() - start) * 1000,
        collections=len(source_inventory),
        missing_indexes=reconciliation.missing_index_count,
    )
    return Comparison(
        plan=reconciliation,
        source_inventory=source_inventory,
        target_collection_names=target_names,
        target_inventory=target_inventory,
        interrupted=cancel_event is not None and cancel_event.is_set(),
    )
