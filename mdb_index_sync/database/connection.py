"""
MongoDB connection for index synchronization.

Wraps a Motor database handle with the small surface the reconciliation
engine needs: collection enumeration, collection creation, index listing and
index creation. Clients are owned by the invoking command and closed on every
exit path through ``open_connection``.

This module is part of MDB_INDEX_SYNC.

Usage:
    async with open_connection(config.target, role="target") as target:
        names = await target.list_collection_names()
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any, Protocol

from bson import SON
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import (
    CollectionInvalid,
    ConfigurationError,
    ConnectionFailure,
    InvalidOperation,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from ..constants import (
    APP_NAME,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    INDEX_ALREADY_EXISTS_CODE,
    SYSTEM_COLLECTION_PREFIX,
)
from ..exceptions import ConnectivityError, DuplicateIndexError
from ..indexes.descriptor import IndexDescriptor
from ..indexes.helpers import keys_to_dict

logger = logging.getLogger(__name__)

CONNECTIVITY_ERRORS = (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    OperationFailure,
    InvalidOperation,
)


class IndexConnection(Protocol):
    """Database operations the reconciliation engine depends on."""

    async def list_collection_names(self) -> list[str]: ...

    async def collection_exists(self, name: str) -> bool: ...

    async def create_collection(self, name: str) -> None: ...

    async def list_indexes(self, collection_name: str) -> list[IndexDescriptor]: ...

    async def create_index(
        self,
        collection_name: str,
        key: tuple[tuple[str, Any], ...],
        options: Mapping[str, Any],
    ) -> str: ...


class MongoIndexConnection:
    """
    IndexConnection backed by a Motor database.

    Args:
        database: AsyncIOMotorDatabase handle (already connected)
        role: "source" or "target", used in log and error messages
    """

    __slots__ = ("_db", "role")

    def __init__(self, database: AsyncIOMotorDatabase, role: str = "") -> None:
        self._db = database
        self.role = role

    @property
    def db_name(self) -> str:
        return self._db.name

    async def list_collection_names(self) -> list[str]:
        """
        List collections (views and system namespaces excluded).

        Raises:
            ConnectivityError: If the enumeration cannot be performed
        """
        try:
            names = await self._db.list_collection_names(filter={"type": {"$ne": "view"}})
        except CONNECTIVITY_ERRORS as e:
            logger.error(f"Failed to list collections of '{self.db_name}': {e}")
            raise ConnectivityError(
                f"Failed to list collections: {e}", role=self.role, db_name=self.db_name
            ) from e
        return [name for name in names if not name.startswith(SYSTEM_COLLECTION_PREFIX)]

    async def collection_exists(self, name: str) -> bool:
        names = await self._db.list_collection_names(filter={"name": name})
        return name in names

    async def create_collection(self, name: str) -> None:
        """Create a collection; a concurrent creation by someone else is fine."""
        try:
            await self._db.create_collection(name)
        except CollectionInvalid as e:
            if "already exists" not in str(e).lower():
                raise
            logger.debug(f"[{name}] Collection already exists.")

    async def list_indexes(self, collection_name: str) -> list[IndexDescriptor]:
        """
        List the indexes of a collection.

        Read errors propagate to the caller. A document that cannot be parsed
        into a descriptor is logged and skipped; its siblings are kept.
        """
        cursor = self._db[collection_name].list_indexes()
        documents = await cursor.to_list(None)
        descriptors = []
        for doc in documents:
            try:
                descriptors.append(IndexDescriptor.from_document(doc))
            except (ValueError, TypeError) as e:
                logger.warning(
                    f"[{collection_name}] Skipping unreadable index "
                    f"'{doc.get('name', '?')}' on {self.role or 'database'}: {e}"
                )
        return descriptors

    async def create_index(
        self,
        collection_name: str,
        key: tuple[tuple[str, Any], ...],
        options: Mapping[str, Any],
    ) -> str:
        """
        Create one index with the createIndexes command.

        Raises:
            DuplicateIndexError: If the server reports the index already exists
                with the same name and specification
            OperationFailure: For any other server-side rejection
        """
        spec = SON([("key", SON(keys_to_dict(key)))])
        spec.update(options)
        response = await self._db.command(
            SON([("createIndexes", collection_name), ("indexes", [spec])])
        )

        note = str(response.get("note", ""))
        before = response.get("numIndexesBefore")
        after = response.get("numIndexesAfter")
        if "already exist" in note.lower() or (
            before is not None and after is not None and before == after
        ):
            raise DuplicateIndexError(
                f"Index '{spec.get('name')}' already exists: {note or 'no new index built'}",
                code=INDEX_ALREADY_EXISTS_CODE,
                context={"collection_name": collection_name},
            )
        return spec.get("name")


def _redact_uri(uri: str) -> str:
    """Hide credentials in a connection string for logging."""
    scheme, sep, rest = uri.partition("://")
    if not sep or "@" not in rest:
        return uri
    return f"{scheme}://***@{rest.split('@', 1)[1]}"


@asynccontextmanager
async def open_connection(
    target: Any,
    role: str = "",
    server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
) -> AsyncIterator[MongoIndexConnection]:
    """
    Connect to a database and yield a MongoIndexConnection.

    The client is pinged before yielding and always closed on exit.

    Args:
        target: Object with ``uri`` and ``db_name`` attributes (DatabaseTarget)
        role: "source" or "target"
        server_selection_timeout_ms: Server selection timeout in milliseconds

    Raises:
        ConnectivityError: If the client cannot be created or the ping fails
    """
    safe_uri = _redact_uri(target.uri)
    try:
        client = AsyncIOMotorClient(
            target.uri,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            appname=APP_NAME,
        )
    except (ConfigurationError, ValueError, TypeError) as e:
        raise ConnectivityError(
            f"Invalid MongoDB connection string {safe_uri}: {e}",
            role=role,
            db_name=target.db_name,
        ) from e

    try:
        try:
            await client.admin.command("ping")
        except CONNECTIVITY_ERRORS as e:
            logger.error(f"Failed to connect to MongoDB at {safe_uri}: {e}")
            raise ConnectivityError(
                f"Failed to connect to MongoDB at {safe_uri}: {e}",
                role=role,
                db_name=target.db_name,
            ) from e

        logger.info(f"Connected to {role or 'MongoDB'} at {safe_uri} (db: {target.db_name}).")
        yield MongoIndexConnection(client[target.db_name], role=role)
    finally:
        client.close()
        logger.info(f"{(role or 'MongoDB').capitalize()} connection closed.")
