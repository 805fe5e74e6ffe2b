"""
Main CLI entry point for MDB_INDEX_SYNC.

This module provides the main CLI group and registers all commands.

This module is part of MDB_INDEX_SYNC.
"""

from pathlib import Path

import click

from .. import __version__
from ..constants import CONFIG_PATH_ENV_VAR
from ..observability import configure_logging, start_run
from .commands import compare, create, interactive, list_source, list_target, migrate


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="mdb-index-sync")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=CONFIG_PATH_ENV_VAR,
    default=None,
    help="Path to the configuration file (default: ./config.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """
    MDB_INDEX_SYNC - MongoDB index synchronization tool.

    Copies secondary indexes missing on a target database from a source
    database, and lists, compares and interactively authors indexes.
    """
    configure_logging(verbose)
    start_run(ctx.invoked_subcommand or "help")
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("help")
@click.pass_context
def help_command(ctx: click.Context) -> None:
    """Show this help message."""
    click.echo(ctx.parent.get_help())


# Register commands
cli.add_command(migrate)
cli.add_command(create)
cli.add_command(interactive)
cli.add_command(list_source)
cli.add_command(list_target)
cli.add_command(compare)


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
