"""
Tests for CLI commands.

Runs each command through click's CliRunner with the database connections
replaced by in-memory fakes.
"""

import importlib
import json
from contextlib import asynccontextmanager

import pytest
from click.testing import CliRunner
from pymongo.errors import OperationFailure

from mdb_index_sync.cli.main import cli
from mdb_index_sync.exceptions import ConnectivityError
from mdb_index_sync.indexes.descriptor import IndexDescriptor

COMMAND_MODULES = ["compare", "create", "interactive", "listing", "migrate"]


@pytest.fixture
def databases(monkeypatch, make_connection, email_index):
    """Source/target fakes wired into every command module."""
    dbs = {
        "source": make_connection({"users": [email_index], "orders": []}),
        "target": make_connection({"users": []}),
    }

    @asynccontextmanager
    async def fake_open_connection(target, role="", server_selection_timeout_ms=5000):
        yield dbs[role]

    for name in COMMAND_MODULES:
        module = importlib.import_module(f"mdb_index_sync.cli.commands.{name}")
        monkeypatch.setattr(module, "open_connection", fake_open_connection)
    return dbs


@pytest.fixture
def unreachable(monkeypatch):
    @asynccontextmanager
    async def failing_open_connection(target, role="", server_selection_timeout_ms=5000):
        raise ConnectivityError("Failed to connect to MongoDB", role=role)
        yield  # pragma: no cover

    for name in COMMAND_MODULES:
        module = importlib.import_module(f"mdb_index_sync.cli.commands.{name}")
        monkeypatch.setattr(module, "open_connection", failing_open_connection)


@pytest.fixture
def runner():
    return CliRunner()


class TestHelp:
    """Test the help surface."""

    def test_help_command(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file()), "help"])

        assert result.exit_code == 0
        commands = ["migrate", "create", "interactive", "list-source", "list-target", "compare"]
        for command in commands:
            assert command in result.output

    def test_no_command_shows_help(self, runner, clean_env):
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "Usage" in result.output


class TestMigrate:
    """Test the migrate command."""

    def test_migrate_creates_missing_indexes(self, runner, config_file, databases):
        result = runner.invoke(cli, ["--config", str(config_file()), "migrate"])

        assert result.exit_code == 0, result.output
        assert "Summary: 1 created" in result.output
        target = databases["target"]
        assert target.index_names("users") == ["_id_", "email_1"]
        assert "orders" in target.collections

    def test_migrate_twice_is_idempotent(self, runner, config_file, databases):
        path = str(config_file())
        runner.invoke(cli, ["--config", path, "migrate"])

        result = runner.invoke(cli, ["--config", path, "migrate"])

        assert result.exit_code == 0
        assert "already in sync" in result.output

    def test_dry_run_creates_nothing(self, runner, config_file, databases):
        result = runner.invoke(cli, ["--config", str(config_file()), "migrate", "--dry-run"])

        assert result.exit_code == 0
        assert "Missing Indexes Report" in result.output
        assert "email_1" in result.output
        assert "[Collection does not exist in target database]" in result.output
        assert databases["target"].create_calls == []

    def test_index_failures_do_not_change_exit_code(self, runner, config_file, databases):
        target = databases["target"]
        target.create_collection_failures["orders"] = OperationFailure("not authorized", code=13)
        databases["source"].collections["orders"].append(IndexDescriptor(key={"total": -1}))

        result = runner.invoke(cli, ["--config", str(config_file()), "migrate"])

        assert result.exit_code == 0
        assert "1 failed" in result.output

    def test_connectivity_error_exits_non_zero(self, runner, config_file, unreachable):
        result = runner.invoke(cli, ["--config", str(config_file()), "migrate"])

        assert result.exit_code != 0
        assert "Failed to connect to MongoDB" in result.output


class TestCreate:
    """Test the create command."""

    def test_create_custom_indexes(self, runner, config_file, databases):
        path = config_file(
            {
                "customIndexes": [
                    {
                        "collectionName": "events",
                        "index": {"key": {"at": 1}, "expireAfterSeconds": 0},
                    },
                    {"collectionName": "broken", "index": {"name": "no_key"}},
                ]
            }
        )

        result = runner.invoke(cli, ["--config", str(path), "create"])

        assert result.exit_code == 0, result.output
        assert "Summary: 1 created" in result.output
        assert "1 custom index entries could not be parsed" in result.output
        assert databases["target"].index_names("events") == ["_id_", "at_1"]

        again = runner.invoke(cli, ["--config", str(path), "create"])
        assert "1 already existed" in again.output


class TestCompare:
    """Test the compare command."""

    def test_compare_no_save(self, runner, config_file, databases):
        path = config_file()
        before = path.read_text(encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(path), "compare", "--no-save"])

        assert result.exit_code == 0
        assert "Found 1 indexes missing in target database" in result.output
        assert path.read_text(encoding="utf-8") == before

    def test_compare_save_writes_custom_indexes(self, runner, config_file, databases):
        path = config_file()

        result = runner.invoke(cli, ["--config", str(path), "compare", "--save"])

        assert result.exit_code == 0, result.output
        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved["customIndexes"] == [
            {
                "collectionName": "users",
                "index": {"key": {"email": 1}, "name": "email_1", "unique": True},
            }
        ]

    def test_compare_prompts_for_save(self, runner, config_file, databases):
        path = config_file()

        result = runner.invoke(cli, ["--config", str(path), "compare"], input="y\n")

        assert result.exit_code == 0, result.output
        assert "save these missing indexes" in result.output
        assert len(json.loads(path.read_text(encoding="utf-8"))["customIndexes"]) == 1

    def test_compare_json(self, runner, config_file, databases):
        result = runner.invoke(cli, ["--config", str(config_file()), "compare", "--format", "json"])

        assert result.exit_code == 0
        assert '"collectionMissingOnTarget": true' in result.output
        assert "save these missing indexes" not in result.output

    def test_compare_in_sync(self, runner, config_file, databases, email_index):
        databases["target"].collections["users"].append(email_index)
        databases["target"].add_collection("orders")

        result = runner.invoke(cli, ["--config", str(config_file()), "compare"])

        assert result.exit_code == 0
        assert "All source indexes exist in target database!" in result.output

    def test_interrupted_compare_is_not_saved(self, runner, config_file, databases, monkeypatch):
        compare_module = importlib.import_module("mdb_index_sync.cli.commands.compare")
        real_compute_plan = compare_module.compute_plan

        async def interrupted_compute_plan(*args, **kwargs):
            comparison = await real_compute_plan(*args, **kwargs)
            comparison.interrupted = True
            return comparison

        monkeypatch.setattr(compare_module, "compute_plan", interrupted_compute_plan)
        path = config_file()
        before = path.read_text(encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(path), "compare", "--save"])

        assert result.exit_code == 0
        assert "report above is partial and was not saved" in result.output
        assert path.read_text(encoding="utf-8") == before


class TestList:
    """Test the list commands."""

    def test_list_source_pretty(self, runner, config_file, databases):
        result = runner.invoke(cli, ["--config", str(config_file()), "list-source"])

        assert result.exit_code == 0
        assert "Collection: users" in result.output
        assert "Name: email_1" in result.output
        assert "Options: unique" in result.output

    def test_list_target_json(self, runner, config_file, databases):
        result = runner.invoke(
            cli, ["--config", str(config_file()), "list-target", "--format", "json"]
        )

        assert result.exit_code == 0
        assert '"_id_"' in result.output

    def test_list_reports_unreadable_collection(self, runner, config_file, databases):
        databases["source"].list_failures["orders"] = OperationFailure("not authorized", code=13)

        result = runner.invoke(cli, ["--config", str(config_file()), "list-source"])

        assert result.exit_code == 0
        assert "Could not read indexes of collection 'orders'" in result.output


class TestInteractive:
    """Test the interactive command."""

    def test_interactive_create_and_save(self, runner, config_file, databases):
        path = config_file()
        answers = "\n".join(["users", '{"username": 1}', "", "y", "n", "n", "", "y", "y", "n"])

        result = runner.invoke(cli, ["--config", str(path), "interactive"], input=answers + "\n")

        assert result.exit_code == 0, result.output
        assert databases["target"].index_names("users") == ["_id_", "username_1"]
        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved["customIndexes"][0]["collectionName"] == "users"
        assert "1 index(es) created, 1 saved" in result.output

    def test_interactive_end_of_input(self, runner, config_file, databases):
        result = runner.invoke(cli, ["--config", str(config_file()), "interactive"], input="")

        assert result.exit_code == 0
        assert "0 index(es) created" in result.output


class TestConfigErrors:
    """Test configuration failures surface as non-zero exits."""

    def test_invalid_config(self, runner, config_file, databases):
        path = config_file({"collections": "users"})

        result = runner.invoke(cli, ["--config", str(path), "migrate"])

        assert result.exit_code != 0
        assert "Invalid configuration" in result.output
