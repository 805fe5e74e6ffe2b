"""
List commands for CLI.

Lists all indexes of the source or target database.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio

import click

from ...config import DatabaseTarget
from ...database import list_collections, open_connection, read_inventory
from ..utils import dump_json, format_inventory, inventory_to_dict, load_cli_config, run_command

FORMAT_OPTION = click.option(
    "--format",
    "-f",
    "format_type",
    type=click.Choice(["pretty", "json"]),
    default="pretty",
    help="Output format",
)


def _list_indexes(target: DatabaseTarget, role: str, timeout_ms: int, format_type: str) -> None:
    async def _list(cancel_event: asyncio.Event) -> str:
        async with open_connection(target, role, timeout_ms) as connection:
            names = await list_collections(connection)
            inventories = await read_inventory(connection, names, cancel_event)
        if format_type == "json":
            return dump_json(inventory_to_dict(inventories))
        return format_inventory(target.db_name, inventories)

    click.echo(run_command(_list))


@click.command("list-source")
@FORMAT_OPTION
@click.pass_context
def list_source(ctx: click.Context, format_type: str) -> None:
    """List all indexes in source database."""
    config = load_cli_config(ctx.obj.get("config_path"))
    _list_indexes(config.source, "source", config.server_selection_timeout_ms, format_type)


@click.command("list-target")
@FORMAT_OPTION
@click.pass_context
def list_target(ctx: click.Context, format_type: str) -> None:
    """List all indexes in target database."""
    config = load_cli_config(ctx.obj.get("config_path"))
    _list_indexes(config.target, "target", config.server_selection_timeout_ms, format_type)
