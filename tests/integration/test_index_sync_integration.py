"""
Integration tests for index synchronization with real MongoDB.

These tests require a running MongoDB instance (via Docker/testcontainers).
"""

import os

import pytest
from motor.motor_asyncio import AsyncIOMotorClient

from mdb_index_sync.config import DatabaseTarget
from mdb_index_sync.core import compute_plan
from mdb_index_sync.database import open_connection
from mdb_index_sync.indexes import (
    CustomIndexSpec,
    IndexDescriptor,
    OutcomeStatus,
    apply_custom_indexes,
    apply_plan,
    create_index,
)


@pytest.fixture
async def source_and_target(mongodb_connection_string):
    """Connected source and target databases, dropped after the test."""
    suffix = f"{os.getpid()}_{id(mongodb_connection_string)}"
    source_target = DatabaseTarget(mongodb_connection_string, f"sync_source_{suffix}")
    target_target = DatabaseTarget(mongodb_connection_string, f"sync_target_{suffix}")

    async with open_connection(source_target, "source") as source, open_connection(
        target_target, "target"
    ) as target:
        yield source, target
        client = AsyncIOMotorClient(mongodb_connection_string)
        await client.drop_database(source_target.db_name)
        await client.drop_database(target_target.db_name)
        client.close()


@pytest.mark.integration
@pytest.mark.asyncio
class TestIndexSync:
    """Integration tests for plan and apply."""

    async def test_migrate_then_replan_is_empty(self, source_and_target):
        source, target = source_and_target
        await source.create_collection("users")
        await source.create_collection("orders")
        await source.create_index("users", (("email", 1),), {"name": "email_1", "unique": True})
        await source.create_index(
            "users", (("bio", "text"),), {"name": "bio_text", "weights": {"bio": 5}}
        )
        await target.create_collection("users")

        comparison = await compute_plan(source, target)

        assert comparison.plan["orders"].collection_missing_on_target is True
        assert [idx.index_name for idx in comparison.plan["users"].indexes] == [
            "email_1",
            "bio_text",
        ]

        results = await apply_plan(target, comparison.plan)

        assert [r.outcome.status for r in results] == [OutcomeStatus.CREATED] * 2
        assert (await compute_plan(source, target)).plan.is_empty

    async def test_custom_index_is_idempotent(self, source_and_target):
        _, target = source_and_target
        specs = [
            CustomIndexSpec("events", IndexDescriptor(key={"at": 1}, expire_after_seconds=0))
        ]

        first = await apply_custom_indexes(target, specs)
        second = await apply_custom_indexes(target, specs)

        assert first[0].outcome.status is OutcomeStatus.CREATED
        assert second[0].outcome.status is OutcomeStatus.ALREADY_EXISTS
        indexes = await target.list_indexes("events")
        assert indexes[1].expire_after_seconds == 0

    async def test_same_key_under_other_name_fails(self, source_and_target):
        _, target = source_and_target
        await target.create_collection("products")
        await target.create_index("products", (("sku", 1),), {"name": "sku_1"})

        outcome = await create_index(
            target, "products", IndexDescriptor(key={"sku": 1}, name="sku_lookup")
        )

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.error.context["code"] == 85
