"""
Pytest configuration and shared fixtures for MDB_INDEX_SYNC tests.

This module provides:
- An in-memory IndexConnection that mimics MongoDB's index semantics
- Descriptor and configuration factories
- Testcontainers fixtures for integration tests
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import OperationFailure

from mdb_index_sync.exceptions import DuplicateIndexError
from mdb_index_sync.indexes.comparator import equivalent
from mdb_index_sync.indexes.descriptor import CollectionInventory, IndexDescriptor
from mdb_index_sync.indexes.helpers import keys_to_dict

# ============================================================================
# IN-MEMORY CONNECTION
# ============================================================================


def id_index() -> IndexDescriptor:
    return IndexDescriptor(key=(("_id", 1),), name="_id_", version=2)


class FakeIndexConnection:
    """
    In-memory IndexConnection.

    Mirrors the server behaviour the applier relies on:
    - same name and same spec -> DuplicateIndexError (code 68)
    - same spec under another name -> OperationFailure code 85
    - same name with another spec -> OperationFailure code 86
    - creating an index on a missing collection fails with code 26, so
      callers must ensure the collection first

    Every write is recorded in ``events``. With ``yield_on_write`` set, each
    write yields to the event loop once, and ``peak_in_flight`` records the
    largest number of writes that were in progress at the same time.
    """

    def __init__(self, collections: dict[str, list[IndexDescriptor]] | None = None) -> None:
        self.collections: dict[str, list[IndexDescriptor]] = {}
        for name, indexes in (collections or {}).items():
            self.add_collection(name, indexes)
        self.enumeration_error: Exception | None = None
        self.list_failures: dict[str, Exception] = {}
        self.create_collection_failures: dict[str, Exception] = {}
        self.create_calls: list[tuple[str, dict[str, Any], dict[str, Any]]] = []
        self.created_collections: list[str] = []
        self.events: list[tuple[str, str]] = []
        self.yield_on_write = False
        self.in_flight = 0
        self.peak_in_flight = 0

    def add_collection(self, name: str, indexes: list[IndexDescriptor] = ()) -> None:
        self.collections[name] = [id_index(), *indexes]

    def index_names(self, collection_name: str) -> list[str]:
        return [idx.index_name for idx in self.collections.get(collection_name, [])]

    async def list_collection_names(self) -> list[str]:
        if self.enumeration_error is not None:
            raise self.enumeration_error
        return list(self.collections)

    async def collection_exists(self, name: str) -> bool:
        return name in self.collections

    @asynccontextmanager
    async def _write(self, kind: str, collection_name: str):
        self.events.append((kind, collection_name))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.yield_on_write:
                await asyncio.sleep(0)
            yield
        finally:
            self.in_flight -= 1

    async def create_collection(self, name: str) -> None:
        async with self._write("create_collection", name):
            if name in self.create_collection_failures:
                raise self.create_collection_failures[name]
            if name not in self.collections:
                self.add_collection(name)
                self.created_collections.append(name)

    async def list_indexes(self, collection_name: str) -> list[IndexDescriptor]:
        if collection_name in self.list_failures:
            raise self.list_failures[collection_name]
        return list(self.collections.get(collection_name, []))

    async def create_index(self, collection_name, key, options) -> str:
        self.create_calls.append((collection_name, keys_to_dict(key), dict(options)))
        async with self._write("create_index", collection_name):
            if collection_name not in self.collections:
                raise OperationFailure(f"ns does not exist: {collection_name}", code=26)
            return self._add_index(collection_name, key, options)

    def _add_index(self, collection_name, key, options) -> str:
        candidate = IndexDescriptor.from_document({"key": keys_to_dict(key), **options})
        for existing in self.collections[collection_name]:
            same_name = existing.index_name == candidate.index_name
            same_spec = equivalent(existing, candidate)
            if same_name and same_spec:
                raise DuplicateIndexError(
                    f"Index '{candidate.index_name}' already exists: all indexes already exist",
                    code=68,
                )
            if same_spec:
                raise OperationFailure(
                    f"Index already exists with a different name: {existing.index_name}",
                    code=85,
                )
            if same_name:
                raise OperationFailure(
                    f"An existing index has the same name as the requested index but "
                    f"different key/options: {existing.index_name}",
                    code=86,
                )
        self.collections[collection_name].append(candidate)
        return candidate.index_name


@pytest.fixture
def make_connection():
    """Factory for FakeIndexConnection instances."""
    return FakeIndexConnection


@pytest.fixture
def email_index() -> IndexDescriptor:
    return IndexDescriptor(key=(("email", 1),), name="email_1", unique=True)


@pytest.fixture
def users_orders(email_index):
    """
    Source with users (email_1) and orders (only _id_); target with users
    (only _id_) and no orders.
    """
    source = FakeIndexConnection({"users": [email_index], "orders": []})
    target = FakeIndexConnection({"users": []})
    return source, target


def inventory(name: str, *indexes: IndexDescriptor, with_id: bool = True) -> CollectionInventory:
    """Build a CollectionInventory (with the _id_ index by default)."""
    listed = [id_index(), *indexes] if with_id else list(indexes)
    return CollectionInventory(collection_name=name, indexes=listed)


@pytest.fixture
def make_inventory():
    """Factory for CollectionInventory instances."""
    return inventory


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo configure_logging() calls made by the CLI under test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers and type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)


# ============================================================================
# MOCK MOTOR FIXTURES
# ============================================================================


@pytest.fixture
def mock_mongo_database() -> MagicMock:
    """Create a mock Motor database."""
    db = MagicMock(spec=AsyncIOMotorDatabase)
    db.name = "targetDB"
    db.list_collection_names = AsyncMock(return_value=[])
    db.create_collection = AsyncMock()
    db.command = AsyncMock(return_value={"ok": 1, "numIndexesBefore": 1, "numIndexesAfter": 2})
    return db


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment overrides that would leak into configuration tests."""
    for var in [
        "SOURCE_MONGO_URI",
        "SOURCE_DB_NAME",
        "TARGET_MONGO_URI",
        "TARGET_DB_NAME",
        "MONGO_SERVER_SELECTION_TIMEOUT_MS",
        "INDEX_SYNC_MAX_CONCURRENCY",
        "INDEX_SYNC_CONFIG",
    ]:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def config_file(tmp_path, clean_env):
    """Write a configuration file and return its path."""

    def _write(data: dict[str, Any] | None = None):
        path = tmp_path / "config.json"
        payload = data or {
            "source": {"uri": "mongodb://source:27017", "dbName": "sourceDB"},
            "target": {"uri": "mongodb://target:27017", "dbName": "targetDB"},
            "collections": [],
            "customIndexes": [],
        }
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


# ============================================================================
# TESTCONTAINERS FIXTURES (Real MongoDB for Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: container starts once and is reused for all integration tests.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[test]'")

    with MongoDbContainer(image="mongo:7.0") as container:
        yield container


@pytest.fixture
def mongodb_connection_string(mongodb_container):
    """Connection string for the test container."""
    return mongodb_container.get_connection_url()
