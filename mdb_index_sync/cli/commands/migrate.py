"""
Migrate command for CLI.

Copies the secondary indexes missing on the target from the source.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio
from contextlib import AsyncExitStack

import click

from ...core import compute_plan
from ...database import open_connection
from ...indexes import ApplySummary, apply_plan
from ..utils import format_plan, format_results, format_summary, load_cli_config, run_command


@click.command()
@click.option("--dry-run", is_flag=True, help="Only report what would be created")
@click.pass_context
def migrate(ctx: click.Context, dry_run: bool) -> None:
    """
    Migrate indexes from source to target database.

    Examples:
        mdb-index-sync migrate
        mdb-index-sync migrate --dry-run
    """
    config = load_cli_config(ctx.obj.get("config_path"))

    async def _migrate(cancel_event: asyncio.Event) -> ApplySummary | None:
        async with AsyncExitStack() as stack:
            source = await stack.enter_async_context(
                open_connection(config.source, "source", config.server_selection_timeout_ms)
            )
            target = await stack.enter_async_context(
                open_connection(config.target, "target", config.server_selection_timeout_ms)
            )
            comparison = await compute_plan(source, target, config.collections, cancel_event)
            for warning in comparison.warnings:
                click.echo(click.style(f"⚠️  {warning}", fg="yellow"), err=True)
            if comparison.interrupted:
                click.echo(
                    click.style(
                        "⚠️  Interrupted while reading indexes; the plan is partial.",
                        fg="yellow",
                    ),
                    err=True,
                )

            if dry_run:
                click.echo(format_plan(comparison.plan))
                return None
            if comparison.plan.is_empty:
                click.echo("Target is already in sync; nothing to create.")
                return ApplySummary()

            results = await apply_plan(
                target,
                comparison.plan,
                max_concurrency=config.max_concurrent_collections,
                cancel_event=cancel_event,
            )
            if results:
                click.echo(format_results(results))
            return ApplySummary.from_results(results)

    summary = run_command(_migrate)
    if summary is not None:
        click.echo(format_summary(summary))
