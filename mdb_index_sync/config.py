"""
Configuration management for MDB_INDEX_SYNC.

The configuration is an explicit value loaded once per command and passed to
the code that needs it. Persisting it is a separate, explicit ``save_config``
call; nothing writes the file implicitly.

File format (JSON, MongoDB extended JSON accepted)::

    {
      "source": {"uri": "mongodb://...", "dbName": "sourceDB"},
      "target": {"uri": "mongodb://...", "dbName": "targetDB"},
      "collections": [],
      "customIndexes": [
        {"collectionName": "users",
         "index": {"key": {"email": 1}, "name": "email_1", "unique": true}}
      ]
    }

Environment variables override the file: SOURCE_MONGO_URI, SOURCE_DB_NAME,
TARGET_MONGO_URI, TARGET_DB_NAME, MONGO_SERVER_SELECTION_TIMEOUT_MS and
INDEX_SYNC_MAX_CONCURRENCY.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bson import json_util
from jsonschema import ValidationError, validate

from .constants import (
    CONFIG_PATH_ENV_VAR,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_MAX_CONCURRENT_COLLECTIONS,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    DEFAULT_SOURCE_DB_NAME,
    DEFAULT_SOURCE_URI,
    DEFAULT_TARGET_DB_NAME,
    DEFAULT_TARGET_URI,
    MAX_CONCURRENT_COLLECTIONS,
    MIN_SERVER_SELECTION_TIMEOUT_MS,
)
from .exceptions import ConfigParseError, ConfigurationError
from .indexes.descriptor import CustomIndexSpec, IndexDescriptor

logger = logging.getLogger(__name__)

DATABASE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "uri": {"type": "string"},
        "dbName": {"type": "string"},
    },
}

CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "source": DATABASE_SCHEMA,
        "target": DATABASE_SCHEMA,
        "collections": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "customIndexes": {"type": "array"},
    },
}

CUSTOM_INDEX_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["collectionName", "index"],
    "properties": {
        "collectionName": {"type": "string", "minLength": 1},
        "index": {
            "type": "object",
            "anyOf": [{"required": ["key"]}, {"required": ["keyPattern"]}],
            "properties": {
                "key": {"type": "object", "minProperties": 1},
                "keyPattern": {"type": "object", "minProperties": 1},
                "name": {"type": "string"},
                "unique": {"type": "boolean"},
                "sparse": {"type": "boolean"},
                "background": {"type": "boolean"},
                "expireAfterSeconds": {"type": "integer", "minimum": 0},
                "weights": {"type": "object"},
                "partialFilterExpression": {"type": "object"},
            },
        },
    },
}


def default_config_path() -> Path:
    """Config path from INDEX_SYNC_CONFIG, else ./config.json."""
    return Path(os.getenv(CONFIG_PATH_ENV_VAR, DEFAULT_CONFIG_FILENAME))


@dataclass
class DatabaseTarget:
    """Connection target of one side (source or target)."""

    uri: str
    db_name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, default_uri: str, default_db: str):
        data = data or {}
        return cls(uri=data.get("uri") or default_uri, db_name=data.get("dbName") or default_db)

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri, "dbName": self.db_name}

    def validate(self, role: str) -> None:
        """
        Raises:
            ConfigurationError: If the uri or database name is missing
        """
        if not self.uri:
            raise ConfigurationError(f"{role}.uri is required", config_key=f"{role}.uri")
        if not self.db_name:
            raise ConfigurationError(f"{role}.dbName is required", config_key=f"{role}.dbName")


@dataclass
class SyncConfig:
    """
    Index synchronization configuration.

    ``custom_indexes`` keeps the raw entries exactly as stored so that a load
    followed by a save does not rewrite entries this version cannot parse.
    """

    source: DatabaseTarget = field(
        default_factory=lambda: DatabaseTarget(DEFAULT_SOURCE_URI, DEFAULT_SOURCE_DB_NAME)
    )
    target: DatabaseTarget = field(
        default_factory=lambda: DatabaseTarget(DEFAULT_TARGET_URI, DEFAULT_TARGET_DB_NAME)
    )
    collections: list[str] = field(default_factory=list)
    custom_indexes: list[dict[str, Any]] = field(default_factory=list)
    server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS
    max_concurrent_collections: int = DEFAULT_MAX_CONCURRENT_COLLECTIONS
    path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Path | None = None) -> "SyncConfig":
        """
        Build a configuration from a parsed config document.

        Raises:
            ConfigurationError: If the document does not match the config schema
        """
        try:
            validate(instance=data, schema=CONFIG_SCHEMA)
        except ValidationError as e:
            location = ".".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigurationError(
                f"Invalid configuration at '{location}': {e.message}",
                config_key=location,
            ) from e

        return cls(
            source=DatabaseTarget.from_dict(
                data.get("source"), DEFAULT_SOURCE_URI, DEFAULT_SOURCE_DB_NAME
            ),
            target=DatabaseTarget.from_dict(
                data.get("target"), DEFAULT_TARGET_URI, DEFAULT_TARGET_DB_NAME
            ),
            collections=list(data.get("collections") or []),
            custom_indexes=list(data.get("customIndexes") or []),
            path=path,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.to_dict(),
            "target": self.target.to_dict(),
            "collections": list(self.collections),
            "customIndexes": list(self.custom_indexes),
        }

    def apply_env_overrides(self) -> None:
        """Override values from environment variables (when set)."""
        self.source.uri = os.getenv("SOURCE_MONGO_URI", self.source.uri)
        self.source.db_name = os.getenv("SOURCE_DB_NAME", self.source.db_name)
        self.target.uri = os.getenv("TARGET_MONGO_URI", self.target.uri)
        self.target.db_name = os.getenv("TARGET_DB_NAME", self.target.db_name)
        try:
            self.server_selection_timeout_ms = int(
                os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", self.server_selection_timeout_ms)
            )
            self.max_concurrent_collections = int(
                os.getenv("INDEX_SYNC_MAX_CONCURRENCY", self.max_concurrent_collections)
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment override: {e}") from e

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        self.source.validate("source")
        self.target.validate("target")

        if self.server_selection_timeout_ms < MIN_SERVER_SELECTION_TIMEOUT_MS:
            raise ConfigurationError(
                f"server_selection_timeout_ms must be >= {MIN_SERVER_SELECTION_TIMEOUT_MS}, "
                f"got {self.server_selection_timeout_ms}",
                config_key="server_selection_timeout_ms",
                config_value=self.server_selection_timeout_ms,
            )

        if not 1 <= self.max_concurrent_collections <= MAX_CONCURRENT_COLLECTIONS:
            raise ConfigurationError(
                f"max_concurrent_collections must be between 1 and "
                f"{MAX_CONCURRENT_COLLECTIONS}, got {self.max_concurrent_collections}",
                config_key="max_concurrent_collections",
                config_value=self.max_concurrent_collections,
            )

    def custom_index_specs(self) -> tuple[list[CustomIndexSpec], list[ConfigParseError]]:
        """
        Parse the custom index entries.

        Each malformed entry yields one ConfigParseError; the others are
        still returned.

        Returns:
            Tuple of (specs, errors)
        """
        specs: list[CustomIndexSpec] = []
        errors: list[ConfigParseError] = []
        for position, entry in enumerate(self.custom_indexes):
            collection_name = entry.get("collectionName") if isinstance(entry, dict) else None
            try:
                validate(instance=entry, schema=CUSTOM_INDEX_SCHEMA)
                specs.append(CustomIndexSpec.from_dict(entry))
            except ValidationError as e:
                errors.append(
                    ConfigParseError(
                        f"Invalid custom index entry: {e.message}",
                        entry_index=position,
                        collection_name=collection_name,
                    )
                )
            except (ValueError, TypeError) as e:
                errors.append(
                    ConfigParseError(
                        f"Invalid custom index entry: {e}",
                        entry_index=position,
                        collection_name=collection_name,
                    )
                )

        for error in errors:
            logger.error(str(error))
        return specs, errors

    def add_custom_index(self, collection_name: str, descriptor: IndexDescriptor) -> None:
        """Append one custom index entry (in memory; call save_config to persist)."""
        self.custom_indexes.append(
            CustomIndexSpec(collection_name=collection_name, descriptor=descriptor).to_dict()
        )


def load_config(path: Path | str | None = None, apply_env: bool = True) -> SyncConfig:
    """
    Load configuration from a JSON file.

    A missing file yields the default configuration (with a warning).

    Args:
        path: Config file path (defaults to INDEX_SYNC_CONFIG or ./config.json)
        apply_env: Apply environment variable overrides

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid config
    """
    config_path = Path(path) if path is not None else default_config_path()

    if not config_path.exists():
        logger.warning(f"{config_path} not found, using default configuration.")
        config = SyncConfig(path=config_path)
    else:
        try:
            data = json_util.loads(config_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(f"Failed to read config file {config_path}: {e}") from e
        except ValueError as e:
            raise ConfigurationError(f"Invalid JSON in config file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")
        config = SyncConfig.from_dict(data, path=config_path)
        logger.info(f"Configuration loaded from {config_path}.")

    if apply_env:
        config.apply_env_overrides()
    return config


def save_config(config: SyncConfig, path: Path | str | None = None) -> Path:
    """
    Write the configuration to disk.

    Args:
        config: Configuration to persist
        path: Destination (defaults to the path it was loaded from)

    Returns:
        The path written

    Raises:
        ConfigurationError: If the file cannot be written
    """
    config_path = Path(path) if path is not None else (config.path or default_config_path())
    try:
        config_path.write_text(json_util.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Failed to write config file {config_path}: {e}") from e
    logger.info(f"Configuration saved to {config_path}.")
    return config_path
