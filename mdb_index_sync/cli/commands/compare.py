"""
Compare command for CLI.

Reports the indexes missing on the target and optionally saves them to the
configuration file as custom indexes for a later ``create``.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio
from contextlib import AsyncExitStack

import click

from ...config import save_config
from ...core import Comparison, compute_plan
from ...database import open_connection
from ...exceptions import ConfigurationError
from ..utils import dump_json, format_plan, load_cli_config, run_command


@click.command()
@click.option(
    "--save/--no-save",
    default=None,
    help="Save missing indexes to the configuration file (asks when omitted)",
)
@click.option(
    "--format",
    "-f",
    "format_type",
    type=click.Choice(["pretty", "json"]),
    default="pretty",
    help="Output format",
)
@click.pass_context
def compare(ctx: click.Context, save: bool | None, format_type: str) -> None:
    """
    Compare indexes between source and target databases.

    Examples:
        mdb-index-sync compare
        mdb-index-sync compare --format json --no-save
    """
    config = load_cli_config(ctx.obj.get("config_path"))

    async def _compare(cancel_event: asyncio.Event) -> Comparison:
        async with AsyncExitStack() as stack:
            source = await stack.enter_async_context(
                open_connection(config.source, "source", config.server_selection_timeout_ms)
            )
            target = await stack.enter_async_context(
                open_connection(config.target, "target", config.server_selection_timeout_ms)
            )
            return await compute_plan(source, target, config.collections, cancel_event)

    comparison = run_command(_compare)
    for warning in comparison.warnings:
        click.echo(click.style(f"⚠️  {warning}", fg="yellow"), err=True)

    plan = comparison.plan
    if format_type == "json":
        click.echo(dump_json(plan.to_dict()))
    else:
        click.echo(format_plan(plan))

    if comparison.interrupted:
        click.echo(
            click.style(
                "⚠️  Interrupted before every collection was read; the report above is "
                "partial and was not saved.",
                fg="yellow",
            ),
            err=True,
        )
        return

    specs = plan.to_custom_index_specs()
    if not specs:
        return
    if save is None:
        # JSON output is meant for scripts; never prompt there
        save = format_type == "pretty" and click.confirm(
            "\nDo you want to save these missing indexes to the configuration file "
            "for future creation?",
            default=False,
        )
    if not save:
        return

    for spec in specs:
        config.add_custom_index(spec.collection_name, spec.descriptor)
    try:
        path = save_config(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    click.echo(click.style(f"✔️ {len(specs)} missing index(es) added to {path}", fg="green"))
