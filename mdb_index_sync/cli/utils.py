"""
Utility functions for CLI commands.

This module provides shared utilities for CLI operations: configuration
loading, running a command coroutine with SIGINT cancellation, and console
formatting of inventories, plans and apply summaries.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio
import signal
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar

import click
from bson import json_util

from ..config import SyncConfig, load_config
from ..exceptions import ConfigurationError, ConnectivityError
from ..indexes.applier import AppliedIndex, ApplySummary, OutcomeStatus
from ..indexes.descriptor import CollectionInventory, IndexDescriptor
from ..indexes.planner import ReconciliationPlan

T = TypeVar("T")

FATAL_ERRORS = (ConnectivityError, ConfigurationError)


def load_cli_config(config_path: Path | None) -> SyncConfig:
    """
    Load and validate the configuration for a command.

    Raises:
        click.ClickException: If the configuration is invalid
    """
    try:
        config = load_config(config_path)
        config.validate()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    return config


def run_command(main: Callable[[asyncio.Event], Awaitable[T]]) -> T:
    """
    Run a command coroutine on a fresh event loop.

    SIGINT sets the cancellation event passed to ``main`` so that in-flight
    work stops at the next collection or index boundary. Connectivity and
    configuration errors exit non-zero through click.

    Raises:
        click.ClickException: On a fatal error
    """

    async def runner() -> T:
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, cancel_event.set)
            handler_installed = True
        except (NotImplementedError, RuntimeError, ValueError):
            # Not on the main thread or unsupported platform
            handler_installed = False
        try:
            return await main(cancel_event)
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGINT)

    try:
        return asyncio.run(runner())
    except FATAL_ERRORS as e:
        raise click.ClickException(str(e)) from e


def dump_json(data: Any) -> str:
    """Render data (BSON types included) as indented JSON."""
    return json_util.dumps(data, indent=2)


def format_index(descriptor: IndexDescriptor, position: int | None = None) -> list[str]:
    """Render one index as display lines."""
    prefix = f"{position}. " if position is not None else "- "
    lines = [
        f"  {prefix}Name: {descriptor.index_name}",
        f"     Key: {json_util.dumps(descriptor.key_document)}",
    ]
    options = descriptor.describe_options()
    if options:
        lines.append(f"     Options: {', '.join(options)}")
    return lines


def format_inventory(db_name: str, inventories: Iterable[CollectionInventory]) -> str:
    """Pretty listing of every collection's indexes."""
    lines = [f"\n========== Indexes in {db_name} =========="]
    for inventory in inventories:
        lines.append(f"\nCollection: {inventory.collection_name}")
        if inventory.warning is not None:
            lines.append(click.style(f"  ⚠️  {inventory.warning}", fg="yellow"))
            continue
        if not inventory.indexes:
            lines.append("  (no indexes)")
        for position, descriptor in enumerate(inventory.indexes, start=1):
            lines.extend(format_index(descriptor, position))
    return "\n".join(lines)


def inventory_to_dict(inventories: Iterable[CollectionInventory]) -> dict[str, Any]:
    return {
        inventory.collection_name: [idx.to_document() for idx in inventory.indexes]
        for inventory in inventories
    }


def format_plan(plan: ReconciliationPlan) -> str:
    """Missing-indexes report for a reconciliation plan."""
    lines = ["\n========== Missing Indexes Report =========="]
    lines.append(f"Found {plan.missing_index_count} indexes missing in target database")
    if plan.is_empty:
        lines.append(click.style("All source indexes exist in target database!", fg="green"))
        return "\n".join(lines)

    for collection_plan in plan:
        lines.append(f"\nCollection: {collection_plan.collection_name}")
        if collection_plan.collection_missing_on_target:
            lines.append("  [Collection does not exist in target database]")
        if not collection_plan.indexes:
            continue
        lines.append("  Missing indexes:")
        for position, descriptor in enumerate(collection_plan.indexes, start=1):
            lines.extend(format_index(descriptor, position))
    return "\n".join(lines)


_STATUS_STYLES = {
    OutcomeStatus.CREATED: ("✔️", "green"),
    OutcomeStatus.ALREADY_EXISTS: ("↺", None),
    OutcomeStatus.SKIPPED: ("-", None),
    OutcomeStatus.FAILED: ("❌", "red"),
}


def format_results(results: Iterable[AppliedIndex]) -> str:
    """One line per attempted index."""
    lines = []
    for row in results:
        marker, color = _STATUS_STYLES[row.outcome.status]
        line = (
            f"{marker} [{row.collection_name}] {row.descriptor.index_name}: "
            f"{row.outcome.status.value}"
        )
        if row.outcome.reason and row.outcome.status is not OutcomeStatus.CREATED:
            line += f" ({row.outcome.reason})"
        lines.append(click.style(line, fg=color) if color else line)
    return "\n".join(lines)


def format_summary(summary: ApplySummary) -> str:
    """Summary line with counts per outcome."""
    line = (
        f"Summary: {summary.created} created, {summary.already_exists} already existed, "
        f"{summary.skipped} skipped, {summary.failed} failed ({summary.total} total)"
    )
    return click.style(line, fg="red" if summary.failed else "green")
