"""
Constants for MDB_INDEX_SYNC.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# INDEX DESCRIPTOR CONSTANTS
# ============================================================================

ID_INDEX_NAME: Final[str] = "_id_"
"""Name of the system-managed primary key index. Never compared or created."""

TEXT_INDEX_KIND: Final[str] = "text"
"""Key pattern value marking a text index field."""

INDEX_VERSION_FIELD: Final[str] = "v"
INDEX_NAMESPACE_FIELD: Final[str] = "ns"
INDEX_KEY_FIELD: Final[str] = "key"
INDEX_KEY_PATTERN_ALIAS: Final[str] = "keyPattern"

INDEX_ENVELOPE_FIELDS: Final[tuple[str, ...]] = (
    INDEX_VERSION_FIELD,
    INDEX_NAMESPACE_FIELD,
    INDEX_KEY_FIELD,
    INDEX_KEY_PATTERN_ALIAS,
)
"""Descriptor envelope fields that are never forwarded as index options."""

MIN_TTL_SECONDS: Final[int] = 0
"""Minimum TTL value in seconds. Zero is a legal value, distinct from no TTL."""

# ============================================================================
# INDEX CREATION ERROR CLASSIFICATION
# ============================================================================

# Server error codes
INDEX_ALREADY_EXISTS_CODE: Final[int] = 68
INDEX_OPTIONS_CONFLICT_CODE: Final[int] = 85
INDEX_KEY_SPECS_CONFLICT_CODE: Final[int] = 86

DUPLICATE_INDEX_ERROR_CODES: Final[tuple[int, ...]] = (INDEX_ALREADY_EXISTS_CODE,)
"""Error codes normalized to the 'already exists' outcome."""

DUPLICATE_INDEX_MESSAGES: Final[tuple[str, ...]] = (
    "all indexes already exist",
    "already exists",
)
"""Lower-case message substrings normalized to the 'already exists' outcome."""

INDEX_CONFLICT_ERROR_CODES: Final[tuple[int, ...]] = (
    INDEX_OPTIONS_CONFLICT_CODE,
    INDEX_KEY_SPECS_CONFLICT_CODE,
)
"""Error codes for same-key/different-name or same-name/different-spec conflicts."""

INDEX_CONFLICT_MESSAGES: Final[tuple[str, ...]] = (
    "different name",
    "different options",
    "but different",
)
"""Lower-case message substrings that always mean a conflict, never a duplicate."""

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

APP_NAME: Final[str] = "mdb-index-sync"
"""Application name reported to the server on connect."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

MIN_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 1000

SYSTEM_COLLECTION_PREFIX: Final[str] = "system."
"""Prefix of server-internal collections excluded from enumeration."""

# ============================================================================
# CONCURRENCY CONSTANTS
# ============================================================================

DEFAULT_MAX_CONCURRENT_COLLECTIONS: Final[int] = 4
"""Default number of collections processed concurrently when applying indexes."""

MAX_CONCURRENT_COLLECTIONS: Final[int] = 9

# ============================================================================
# CONFIGURATION CONSTANTS
# ============================================================================

DEFAULT_CONFIG_FILENAME: Final[str] = "config.json"
CONFIG_PATH_ENV_VAR: Final[str] = "INDEX_SYNC_CONFIG"

DEFAULT_SOURCE_URI: Final[str] = "mongodb://localhost:27017"
DEFAULT_SOURCE_DB_NAME: Final[str] = "sourceDB"
DEFAULT_TARGET_URI: Final[str] = "mongodb://localhost:27017"
DEFAULT_TARGET_DB_NAME: Final[str] = "targetDB"
