"""
Reconciliation planning.

Computes which source indexes are missing on the target, grouped by
collection. Planning is pure: it issues no database operations, so a plan
can be inspected, printed or persisted before anything is mutated.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .comparator import equivalent
from .descriptor import CollectionInventory, CustomIndexSpec, IndexDescriptor

logger = logging.getLogger(__name__)


@dataclass
class CollectionPlan:
    """Actions needed for one collection on the target."""

    collection_name: str
    collection_missing_on_target: bool = False
    indexes: list[IndexDescriptor] = field(default_factory=list)

    @property
    def needs_action(self) -> bool:
        return self.collection_missing_on_target or bool(self.indexes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "collectionMissingOnTarget": self.collection_missing_on_target,
            "indexes": [idx.to_document() for idx in self.indexes],
        }


class ReconciliationPlan:
    """
    Ordered mapping of collection name to CollectionPlan.

    An empty plan means the target is already in sync with the source.
    """

    def __init__(self, collections: Iterable[CollectionPlan] = ()) -> None:
        self._collections: dict[str, CollectionPlan] = {}
        for collection_plan in collections:
            self._collections[collection_plan.collection_name] = collection_plan

    def __iter__(self) -> Iterator[CollectionPlan]:
        return iter(self._collections.values())

    def __len__(self) -> int:
        return len(self._collections)

    def __contains__(self, collection_name: object) -> bool:
        return collection_name in self._collections

    def __getitem__(self, collection_name: str) -> CollectionPlan:
        return self._collections[collection_name]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReconciliationPlan):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"ReconciliationPlan({list(self._collections.values())!r})"

    def get(self, collection_name: str) -> CollectionPlan | None:
        return self._collections.get(collection_name)

    @property
    def collection_names(self) -> list[str]:
        return list(self._collections)

    @property
    def is_empty(self) -> bool:
        return not any(cp.needs_action for cp in self)

    @property
    def missing_index_count(self) -> int:
        return sum(len(cp.indexes) for cp in self)

    def to_custom_index_specs(self) -> list[CustomIndexSpec]:
        """Flatten the plan into custom index specs, in plan order."""
        return [
            CustomIndexSpec(collection_name=cp.collection_name, descriptor=idx)
            for cp in self
            for idx in cp.indexes
        ]

    def to_dict(self) -> dict[str, Any]:
        return {cp.collection_name: cp.to_dict() for cp in self}


def plan(
    source_inventory: Sequence[CollectionInventory],
    target_collection_names: Iterable[str],
    target_indexes_by_collection: Mapping[str, Sequence[IndexDescriptor]],
    cancel_event: asyncio.Event | None = None,
) -> ReconciliationPlan:
    """
    Compute the indexes missing on the target.

    Args:
        source_inventory: Source collections with their indexes, in enumeration order
        target_collection_names: Collections that exist on the target
        target_indexes_by_collection: Target indexes keyed by collection name
        cancel_event: Optional event checked between collections

    Returns:
        ReconciliationPlan. Collections missing on the target are always
        listed (with every non-_id_ source index); existing collections appear
        only when at least one index is missing. Missing indexes keep source
        order.
    """
    target_names = set(target_collection_names)
    collection_plans: list[CollectionPlan] = []

    for inventory in source_inventory:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Planning cancelled; returning partial plan.")
            break

        collection_name = inventory.collection_name
        source_indexes = inventory.user_indexes

        if collection_name not in target_names:
            logger.debug(
                f"[{collection_name}] Missing on target; "
                f"{len(source_indexes)} index(es) to create."
            )
            collection_plans.append(
                CollectionPlan(
                    collection_name=collection_name,
                    collection_missing_on_target=True,
                    indexes=list(source_indexes),
                )
            )
            continue

        target_indexes = [
            idx
            for idx in target_indexes_by_collection.get(collection_name, ())
            if not idx.is_system_managed
        ]
        missing = [
            src
            for src in source_indexes
            if not any(equivalent(src, tgt) for tgt in target_indexes)
        ]
        if missing:
            logger.debug(
                f"[{collection_name}] {len(missing)} index(es) missing: "
                f"{[idx.index_name for idx in missing]}"
            )
            collection_plans.append(
                CollectionPlan(collection_name=collection_name, indexes=missing)
            )

    return ReconciliationPlan(collection_plans)
