"""
Index application.

Creates missing indexes on the target. Each creation attempt ends in exactly
one outcome (created, already_exists, skipped or failed); failures are
returned as data and never abort the remaining indexes or collections.

Within one collection, ensure_collection completes before any index is
created and indexes are created sequentially. Different collections are
processed concurrently, bounded by a semaphore.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..constants import (
    DEFAULT_MAX_CONCURRENT_COLLECTIONS,
    DUPLICATE_INDEX_ERROR_CODES,
    DUPLICATE_INDEX_MESSAGES,
    ID_INDEX_NAME,
    INDEX_CONFLICT_ERROR_CODES,
    INDEX_CONFLICT_MESSAGES,
)
from ..exceptions import CreationFailure
from ..observability import log_operation
from .descriptor import CustomIndexSpec, IndexDescriptor

if TYPE_CHECKING:
    from ..database.connection import IndexConnection
    from .planner import ReconciliationPlan

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    """Terminal state of one index creation attempt."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class IndexCreationOutcome:
    """Result of one index creation attempt."""

    status: OutcomeStatus
    reason: str | None = None
    error: CreationFailure | None = None

    @classmethod
    def created(cls) -> "IndexCreationOutcome":
        return cls(OutcomeStatus.CREATED)

    @classmethod
    def already_exists(cls, reason: str | None = None) -> "IndexCreationOutcome":
        return cls(OutcomeStatus.ALREADY_EXISTS, reason=reason)

    @classmethod
    def skipped(cls, reason: str) -> "IndexCreationOutcome":
        return cls(OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, error: CreationFailure) -> "IndexCreationOutcome":
        return cls(OutcomeStatus.FAILED, reason=str(error.cause or error), error=error)

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED


@dataclass
class AppliedIndex:
    """One (collection, descriptor, outcome) row of an apply run."""

    collection_name: str
    descriptor: IndexDescriptor
    outcome: IndexCreationOutcome


@dataclass
class ApplySummary:
    """Aggregate counts of an apply run."""

    created: int = 0
    already_exists: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[AppliedIndex] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: Iterable[AppliedIndex]) -> "ApplySummary":
        summary = cls()
        for row in results:
            status = row.outcome.status
            if status is OutcomeStatus.CREATED:
                summary.created += 1
            elif status is OutcomeStatus.ALREADY_EXISTS:
                summary.already_exists += 1
            elif status is OutcomeStatus.SKIPPED:
                summary.skipped += 1
            else:
                summary.failed += 1
                summary.failures.append(row)
        return summary

    @property
    def total(self) -> int:
        return self.created + self.already_exists + self.skipped + self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "already_exists": self.already_exists,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
        }


@dataclass(frozen=True)
class DuplicateIndexMatcher:
    """
    Classifies a create-index error as a duplicate ("index already exists").

    Conflict codes and messages are checked first: an index with the same
    key under a different name, or the same name with a different spec, is a
    conflict and never a duplicate.
    """

    codes: tuple[int, ...] = DUPLICATE_INDEX_ERROR_CODES
    messages: tuple[str, ...] = DUPLICATE_INDEX_MESSAGES
    conflict_codes: tuple[int, ...] = INDEX_CONFLICT_ERROR_CODES
    conflict_messages: tuple[str, ...] = INDEX_CONFLICT_MESSAGES

    def matches(self, error: BaseException) -> bool:
        code = getattr(error, "code", None)
        message = str(error).lower()

        if code in self.conflict_codes:
            return False
        if any(fragment in message for fragment in self.conflict_messages):
            return False
        if code in self.codes:
            return True
        return any(fragment in message for fragment in self.messages)


DEFAULT_DUPLICATE_MATCHER = DuplicateIndexMatcher()


def _cancelled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


async def ensure_collection(connection: "IndexConnection", name: str) -> bool:
    """
    Create the collection if it does not exist. Idempotent.

    Returns:
        True if the collection was created by this call
    """
    if await connection.collection_exists(name):
        logger.debug(f"[{name}] Collection already exists on target.")
        return False
    await connection.create_collection(name)
    logger.info(f"[{name}] Created collection in target database.")
    return True


async def create_index(
    connection: "IndexConnection",
    collection_name: str,
    descriptor: IndexDescriptor,
    matcher: DuplicateIndexMatcher = DEFAULT_DUPLICATE_MATCHER,
) -> IndexCreationOutcome:
    """
    Attempt to create one index. Never raises for database errors.

    Returns:
        IndexCreationOutcome
    """
    log_prefix = f"[{collection_name}]"
    index_name = descriptor.index_name

    if descriptor.is_system_managed:
        logger.info(f"{log_prefix} Skipping {ID_INDEX_NAME} index (created automatically).")
        return IndexCreationOutcome.skipped(f"{ID_INDEX_NAME} reserved")

    start = time.perf_counter()
    try:
        await connection.create_index(
            collection_name, descriptor.key, descriptor.creation_options()
        )
    except Exception as e:  # any error ends this index only
        if matcher.matches(e):
            logger.warning(
                f"{log_prefix} Index '{index_name}' already exists; skipping."
            )
            return IndexCreationOutcome.already_exists(str(e))

        failure = CreationFailure(
            f"Failed to create index '{index_name}'",
            collection_name=collection_name,
            index_name=index_name,
            cause=e,
        )
        logger.error(f"{log_prefix} ❌ Failed to create index '{index_name}': {e}")
        log_operation(
            logger,
            "index.create",
            success=False,
            duration_ms=(time.perf_counter() - start) * 1000,
            collection_name=collection_name,
            index_name=index_name,
        )
        return IndexCreationOutcome.failed(failure)

    logger.info(
        f"{log_prefix} ✔️ Created index '{index_name}' with keys {descriptor.key_document}."
    )
    log_operation(
        logger,
        "index.create",
        duration_ms=(time.perf_counter() - start) * 1000,
        collection_name=collection_name,
        index_name=index_name,
    )
    return IndexCreationOutcome.created()


async def _apply_collection(
    connection: "IndexConnection",
    collection_name: str,
    items: Sequence[tuple[int, IndexDescriptor]],
    semaphore: asyncio.Semaphore,
    cancel_event: asyncio.Event | None,
    matcher: DuplicateIndexMatcher,
) -> list[tuple[int, AppliedIndex]]:
    """Ensure one collection, then create its indexes in order."""
    results: list[tuple[int, AppliedIndex]] = []
    async with semaphore:
        if _cancelled(cancel_event):
            return results

        try:
            await ensure_collection(connection, collection_name)
        except Exception as e:
            logger.error(
                f"[{collection_name}] Could not ensure collection exists: {e}. "
                f"Skipping its {len(items)} index(es)."
            )
            for position, descriptor in items:
                failure = CreationFailure(
                    f"Collection '{collection_name}' could not be created",
                    collection_name=collection_name,
                    index_name=descriptor.index_name,
                    cause=e,
                )
                results.append(
                    (
                        position,
                        AppliedIndex(
                            collection_name, descriptor, IndexCreationOutcome.failed(failure)
                        ),
                    )
                )
            return results

        for position, descriptor in items:
            if _cancelled(cancel_event):
                logger.warning(f"[{collection_name}] Cancelled; remaining indexes not attempted.")
                break
            outcome = await create_index(connection, collection_name, descriptor, matcher)
            results.append((position, AppliedIndex(collection_name, descriptor, outcome)))
    return results


async def _apply_grouped(
    connection: "IndexConnection",
    groups: dict[str, list[tuple[int, IndexDescriptor]]],
    max_concurrency: int,
    cancel_event: asyncio.Event | None,
    matcher: DuplicateIndexMatcher,
) -> list[AppliedIndex]:
    semaphore = asyncio.Semaphore(max(1, max_concurrency))
    batches = await asyncio.gather(
        *(
            _apply_collection(connection, name, items, semaphore, cancel_event, matcher)
            for name, items in groups.items()
        )
    )
    rows = [row for batch in batches for row in batch]
    rows.sort(key=lambda row: row[0])
    return [applied for _, applied in rows]


async def apply_plan(
    connection: "IndexConnection",
    plan: "ReconciliationPlan",
    max_concurrency: int = DEFAULT_MAX_CONCURRENT_COLLECTIONS,
    cancel_event: asyncio.Event | None = None,
    matcher: DuplicateIndexMatcher = DEFAULT_DUPLICATE_MATCHER,
) -> list[AppliedIndex]:
    """
    Apply a reconciliation plan to the target.

    Every collection needing action is ensured (including collections missing
    on the target with no indexes to create), then its indexes are created.

    Returns:
        One AppliedIndex per attempted index, in plan order
    """
    groups: dict[str, list[tuple[int, IndexDescriptor]]] = {}
    position = 0
    for collection_plan in plan:
        if not collection_plan.needs_action:
            continue
        items = groups.setdefault(collection_plan.collection_name, [])
        for descriptor in collection_plan.indexes:
            items.append((position, descriptor))
            position += 1

    logger.info(
        f"Applying plan: {len(groups)} collection(s), {position} index(es), "
        f"concurrency={max_concurrency}."
    )
    return await _apply_grouped(connection, groups, max_concurrency, cancel_event, matcher)


async def apply_custom_indexes(
    connection: "IndexConnection",
    custom_specs: Sequence[CustomIndexSpec],
    max_concurrency: int = DEFAULT_MAX_CONCURRENT_COLLECTIONS,
    cancel_event: asyncio.Event | None = None,
    matcher: DuplicateIndexMatcher = DEFAULT_DUPLICATE_MATCHER,
) -> list[AppliedIndex]:
    """
    Create explicitly specified indexes without comparing against the target.

    Repeat runs are idempotent through the 'already exists' outcome.

    Returns:
        One AppliedIndex per attempted spec, in input order
    """
    if not custom_specs:
        logger.info("No custom indexes defined in configuration.")
        return []

    groups: dict[str, list[tuple[int, IndexDescriptor]]] = {}
    for position, spec in enumerate(custom_specs):
        groups.setdefault(spec.collection_name, []).append((position, spec.descriptor))

    logger.info(f"Creating {len(custom_specs)} custom index(es) in {len(groups)} collection(s).")
    return await _apply_grouped(connection, groups, max_concurrency, cancel_event, matcher)
