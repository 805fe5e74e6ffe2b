"""
Create command for CLI.

Creates the custom indexes defined in the configuration file.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio

import click

from ...database import open_connection
from ...indexes import ApplySummary, apply_custom_indexes
from ..utils import format_results, format_summary, load_cli_config, run_command


@click.command()
@click.pass_context
def create(ctx: click.Context) -> None:
    """
    Create custom indexes defined in the configuration file.

    Malformed entries are reported and skipped; the others are still created.
    """
    config = load_cli_config(ctx.obj.get("config_path"))
    specs, errors = config.custom_index_specs()
    for error in errors:
        click.echo(click.style(f"❌ {error}", fg="red"), err=True)

    async def _create(cancel_event: asyncio.Event) -> ApplySummary:
        async with open_connection(
            config.target, "target", config.server_selection_timeout_ms
        ) as target:
            results = await apply_custom_indexes(
                target,
                specs,
                max_concurrency=config.max_concurrent_collections,
                cancel_event=cancel_event,
            )
        if results:
            click.echo(format_results(results))
        return ApplySummary.from_results(results)

    summary = run_command(_create)
    click.echo(format_summary(summary))
    if errors:
        click.echo(f"{len(errors)} custom index entries could not be parsed.")
