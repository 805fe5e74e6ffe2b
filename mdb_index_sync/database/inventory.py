"""
Index inventory reader.

Enumerates collections and their index descriptors. Enumerating collections
must succeed (it decides the scope of a run); reading the indexes of one
collection may fail without aborting the others.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from pymongo.errors import PyMongoError

from ..exceptions import IndexSyncError, PartialReadWarning
from ..indexes.descriptor import CollectionInventory, IndexDescriptor
from .connection import IndexConnection

logger = logging.getLogger(__name__)

WarningHandler = Callable[[PartialReadWarning], None]


async def list_collections(
    connection: IndexConnection, explicit_names: Sequence[str] | None = None
) -> list[str]:
    """
    Collections in scope for a run.

    Args:
        connection: Database connection
        explicit_names: Caller-restricted scope, returned verbatim when non-empty
            (existence is not validated)

    Raises:
        ConnectivityError: If the collections cannot be enumerated
    """
    if explicit_names:
        return list(explicit_names)
    names = await connection.list_collection_names()
    logger.debug(f"Enumerated {len(names)} collection(s): {names}")
    return names


async def list_indexes(
    connection: IndexConnection,
    collection_name: str,
    on_warning: WarningHandler | None = None,
) -> list[IndexDescriptor]:
    """
    Indexes of one collection, in server order.

    On failure, reports a PartialReadWarning (logged and passed to
    ``on_warning``) and returns an empty list.
    """
    try:
        indexes = await connection.list_indexes(collection_name)
    except (PyMongoError, IndexSyncError, ValueError, TypeError) as e:
        warning = PartialReadWarning(collection_name, e)
        logger.warning(f"[{collection_name}] {warning}")
        if on_warning is not None:
            on_warning(warning)
        return []

    logger.info(f"[{collection_name}] Retrieved {len(indexes)} index(es).")
    return indexes


async def read_inventory(
    connection: IndexConnection,
    collection_names: Sequence[str],
    cancel_event: asyncio.Event | None = None,
) -> list[CollectionInventory]:
    """
    Read the indexes of each named collection.

    Returns:
        One CollectionInventory per collection read, in the given order.
        Collections whose read failed carry the warning and no indexes.
    """
    inventories: list[CollectionInventory] = []
    for collection_name in collection_names:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Inventory read cancelled; returning partial inventory.")
            break

        warnings: list[PartialReadWarning] = []
        indexes = await list_indexes(connection, collection_name, on_warning=warnings.append)
        inventories.append(
            CollectionInventory(
                collection_name=collection_name,
                indexes=indexes,
                warning=warnings[0] if warnings else None,
            )
        )
    return inventories
