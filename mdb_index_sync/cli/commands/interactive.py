"""
Interactive command for CLI.

Starts the interactive index authoring session against the target.

This module is part of MDB_INDEX_SYNC.
"""

import asyncio

import click

from ...config import SyncConfig, save_config
from ...database import open_connection
from ...indexes import OutcomeStatus
from ...interactive import InteractiveSession, run_session
from ..utils import load_cli_config, run_command


def _ask(prompt: str) -> str:
    try:
        return click.prompt(prompt, default="", show_default=False, prompt_suffix="")
    except click.Abort as e:
        raise EOFError from e


@click.command()
@click.pass_context
def interactive(ctx: click.Context) -> None:
    """Start interactive index creation mode."""
    config = load_cli_config(ctx.obj.get("config_path"))

    def _save(updated: SyncConfig) -> None:
        save_config(updated)

    async def _interactive(cancel_event: asyncio.Event) -> InteractiveSession:
        async with open_connection(
            config.target, "target", config.server_selection_timeout_ms
        ) as target:
            click.echo("\n========== Interactive Index Creation ==========")
            session = InteractiveSession(target, config, save=_save)
            return await run_session(session, _ask)

    session = run_command(_interactive)
    created = sum(
        1 for _, _, outcome in session.outcomes if outcome.status is OutcomeStatus.CREATED
    )
    click.echo(
        f"Interactive session finished: {created} index(es) created, "
        f"{session.saved_count} saved to configuration."
    )
