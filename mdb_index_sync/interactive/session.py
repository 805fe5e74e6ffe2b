"""
Interactive index authoring.

A single-threaded state machine that walks a user through defining one index
at a time: collection, key fields, options, confirmation, optional save to
configuration, and whether to continue. It only suspends between states,
waiting for the next answer, so it can be driven by a terminal or by a
scripted list of answers.

This module is part of MDB_INDEX_SYNC.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import click
from pymongo.errors import PyMongoError

from ..config import SyncConfig
from ..database.connection import IndexConnection
from ..exceptions import IndexSyncError
from ..indexes.applier import IndexCreationOutcome, OutcomeStatus, create_index, ensure_collection
from ..indexes.descriptor import IndexDescriptor

logger = logging.getLogger(__name__)

EXIT_WORD = "exit"

FIELD_SPEC_HELP = (
    "Define index fields as JSON, e.g. { \"email\": 1, \"username\": 1 }\n"
    "1 for ascending, -1 for descending, \"text\" for text index"
)


class SessionState(str, Enum):
    AWAIT_COLLECTION_NAME = "await_collection_name"
    AWAIT_CREATE_COLLECTION = "await_create_collection"
    AWAIT_FIELD_SPEC = "await_field_spec"
    AWAIT_OPTIONS = "await_options"
    AWAIT_CONFIRMATION = "await_confirmation"
    AWAIT_SAVE_CHOICE = "await_save_choice"
    AWAIT_CONTINUE = "await_continue"
    DONE = "done"


# Option sub-prompts asked in AWAIT_OPTIONS, in order
OPTION_PROMPTS: tuple[tuple[str, str], ...] = (
    ("name", "Enter index name (optional, press Enter to skip): "),
    ("unique", "Should this index be unique? (y/n): "),
    ("sparse", "Should this index be sparse? (y/n): "),
    ("background", "Create index in background? (y/n): "),
    ("ttl", "Add TTL expiration in seconds (press Enter for none, 0 is allowed): "),
)


def _yes(answer: str) -> bool:
    return answer.strip().lower() in ("y", "yes")


def parse_field_spec(text: str) -> dict[str, Any]:
    """
    Parse a JSON key pattern.

    Raises:
        ValueError: If the text is not a non-empty JSON object of valid directions
    """
    try:
        fields = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON format for index fields: {e.msg}") from e
    if not isinstance(fields, dict) or not fields:
        raise ValueError("Index fields must be a non-empty JSON object")
    # Validates directions through the descriptor invariants
    IndexDescriptor(key=tuple(fields.items()))
    return fields


def parse_ttl(text: str) -> int | None:
    """
    Parse a TTL answer. Blank means no TTL; 0 is a legal TTL.

    Raises:
        ValueError: If the answer is not a non-negative integer
    """
    text = text.strip()
    if not text:
        return None
    try:
        ttl = int(text)
    except ValueError as e:
        raise ValueError(f"TTL must be a whole number of seconds, got '{text}'") from e
    if ttl < 0:
        raise ValueError(f"TTL must be >= 0, got {ttl}")
    return ttl


class InteractiveSession:
    """
    State machine for interactive index authoring.

    Args:
        connection: Target connection indexes are created on
        config: Configuration that saved indexes are appended to
        save: Persists the configuration (called only on an explicit save choice)
        echo: Output function for informational lines
    """

    def __init__(
        self,
        connection: IndexConnection,
        config: SyncConfig,
        save: Callable[[SyncConfig], Any],
        echo: Callable[[str], None] = click.echo,
    ) -> None:
        self._connection = connection
        self._config = config
        self._save = save
        self._echo = echo
        self.state = SessionState.AWAIT_COLLECTION_NAME
        self.outcomes: list[tuple[str, IndexDescriptor, IndexCreationOutcome]] = []
        self.saved_count = 0
        self._reset()

    def _reset(self) -> None:
        self.collection_name: str | None = None
        self.fields: dict[str, Any] | None = None
        self.options: dict[str, Any] = {}
        self._option_step = 0
        self.descriptor: IndexDescriptor | None = None

    @property
    def done(self) -> bool:
        return self.state is SessionState.DONE

    @property
    def prompt(self) -> str:
        """Question for the current state."""
        state = self.state
        if state is SessionState.AWAIT_COLLECTION_NAME:
            return f'Enter collection name (or "{EXIT_WORD}" to quit): '
        if state is SessionState.AWAIT_CREATE_COLLECTION:
            return f'Collection "{self.collection_name}" doesn\'t exist. Create it? (y/n): '
        if state is SessionState.AWAIT_FIELD_SPEC:
            return "Enter index fields as JSON: "
        if state is SessionState.AWAIT_OPTIONS:
            return OPTION_PROMPTS[self._option_step][1]
        if state is SessionState.AWAIT_CONFIRMATION:
            return "Create this index? (y/n): "
        if state is SessionState.AWAIT_SAVE_CHOICE:
            return "Save this index to the configuration file for future use? (y/n): "
        if state is SessionState.AWAIT_CONTINUE:
            return "Add another index? (y/n): "
        return ""

    async def feed(self, answer: str) -> SessionState:
        """
        Consume one answer and advance the state machine.

        Returns:
            The new state
        """
        handlers = {
            SessionState.AWAIT_COLLECTION_NAME: self._on_collection_name,
            SessionState.AWAIT_CREATE_COLLECTION: self._on_create_collection,
            SessionState.AWAIT_FIELD_SPEC: self._on_field_spec,
            SessionState.AWAIT_OPTIONS: self._on_option,
            SessionState.AWAIT_CONFIRMATION: self._on_confirmation,
            SessionState.AWAIT_SAVE_CHOICE: self._on_save_choice,
            SessionState.AWAIT_CONTINUE: self._on_continue,
        }
        handler = handlers.get(self.state)
        if handler is None:
            return self.state
        await handler(answer)
        return self.state

    def _enter_field_spec(self) -> None:
        self._echo(FIELD_SPEC_HELP)
        self.state = SessionState.AWAIT_FIELD_SPEC

    async def _on_collection_name(self, answer: str) -> None:
        name = answer.strip()
        if name.lower() == EXIT_WORD:
            self.state = SessionState.DONE
            return
        if not name:
            self._echo("Collection name must not be empty.")
            return
        self.collection_name = name
        try:
            exists = await self._connection.collection_exists(name)
        except (PyMongoError, IndexSyncError) as e:
            logger.error(f"[{name}] ❌ Failed to check collection: {e}")
            self._echo(f"Could not check collection {name}: {e}")
            self._reset()
            self.state = SessionState.AWAIT_COLLECTION_NAME
            return
        if exists:
            self._enter_field_spec()
        else:
            self.state = SessionState.AWAIT_CREATE_COLLECTION

    async def _on_create_collection(self, answer: str) -> None:
        if not _yes(answer):
            self._reset()
            self.state = SessionState.AWAIT_COLLECTION_NAME
            return
        try:
            await ensure_collection(self._connection, self.collection_name)
        except (PyMongoError, IndexSyncError) as e:
            logger.error(f"[{self.collection_name}] ❌ Failed to create collection: {e}")
            self._echo(f"Could not create collection {self.collection_name}: {e}")
            self._reset()
            self.state = SessionState.AWAIT_COLLECTION_NAME
            return
        self._echo(f"Created collection {self.collection_name}")
        self._enter_field_spec()

    async def _on_field_spec(self, answer: str) -> None:
        try:
            self.fields = parse_field_spec(answer)
        except (ValueError, TypeError) as e:
            self._echo(f"{e}. Try again.")
            return
        self._option_step = 0
        self.state = SessionState.AWAIT_OPTIONS

    async def _on_option(self, answer: str) -> None:
        option = OPTION_PROMPTS[self._option_step][0]
        if option == "name":
            if answer.strip():
                self.options["name"] = answer.strip()
        elif option == "ttl":
            try:
                ttl = parse_ttl(answer)
            except ValueError as e:
                self._echo(f"{e}. Try again.")
                return
            if ttl is not None:
                self.options["expireAfterSeconds"] = ttl
        elif option == "background":
            self.options["background"] = _yes(answer)
        elif _yes(answer):
            self.options[option] = True

        self._option_step += 1
        if self._option_step < len(OPTION_PROMPTS):
            return

        document = {"key": self.fields, **self.options}
        try:
            self.descriptor = IndexDescriptor.from_document(document)
        except (ValueError, TypeError) as e:
            self._echo(f"Invalid index specification: {e}")
            self._reset()
            self.state = SessionState.AWAIT_CONTINUE
            return
        self._echo("\nIndex specification:")
        self._echo(json.dumps(self.descriptor.to_document(), indent=2, default=str))
        self.state = SessionState.AWAIT_CONFIRMATION

    async def _on_confirmation(self, answer: str) -> None:
        if not _yes(answer):
            self.state = SessionState.AWAIT_CONTINUE
            return
        outcome = await create_index(self._connection, self.collection_name, self.descriptor)
        self.outcomes.append((self.collection_name, self.descriptor, outcome))
        if outcome.status is OutcomeStatus.CREATED:
            self._echo(f"Created index {self.descriptor.index_name} on {self.collection_name}")
        elif outcome.status is OutcomeStatus.ALREADY_EXISTS:
            self._echo(f"Index {self.descriptor.index_name} already exists - skipping")
        else:
            self._echo(f"Index not created ({outcome.status.value}): {outcome.reason}")
        self.state = SessionState.AWAIT_SAVE_CHOICE

    async def _on_save_choice(self, answer: str) -> None:
        if _yes(answer):
            self._config.add_custom_index(self.collection_name, self.descriptor)
            self._save(self._config)
            self.saved_count += 1
            self._echo("Index added to configuration file")
        self.state = SessionState.AWAIT_CONTINUE

    async def _on_continue(self, answer: str) -> None:
        self._reset()
        self.state = SessionState.AWAIT_COLLECTION_NAME if _yes(answer) else SessionState.DONE


async def run_session(
    session: InteractiveSession,
    ask: Callable[[str], Awaitable[str] | str],
) -> InteractiveSession:
    """
    Drive a session until it is done.

    Args:
        session: The session to drive
        ask: Returns the answer to a prompt (sync or async). Raising EOFError
             ends the session.
    """
    while not session.done:
        try:
            answer = ask(session.prompt)
            if isinstance(answer, Awaitable):
                answer = await answer
        except EOFError:
            logger.info("Input closed; ending interactive session.")
            break
        await session.feed(answer)
    return session
