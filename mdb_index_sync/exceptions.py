"""
Custom exceptions for MDB_INDEX_SYNC.

Fatal errors derive from IndexSyncError (itself a RuntimeError). Per-index and
per-collection problems are carried as data (outcomes and warnings) rather
than raised past the unit of work that produced them.
"""

from typing import Any, Dict, Optional


class IndexSyncError(RuntimeError):
    """
    Base exception for index synchronization errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (collection_name,
                 index_name, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConnectivityError(IndexSyncError):
    """
    Raised when a database cannot be reached, authenticated against, or
    enumerated.

    Fatal for the invoking command.

    Attributes:
        message: Error message
        role: Which side failed ("source" or "target"), if known
        db_name: Database name (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        role: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if role:
            context["role"] = role
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.role = role
        self.db_name = db_name


class ConfigurationError(IndexSyncError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class ConfigParseError(ConfigurationError):
    """
    Raised when a single custom index entry is malformed.

    Isolated to that one entry: callers collect these and keep processing the
    remaining entries.

    Attributes:
        entry_index: Position of the entry in the customIndexes list (if known)
        collection_name: Collection named by the entry (if readable)
    """

    def __init__(
        self,
        message: str,
        entry_index: Optional[int] = None,
        collection_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if entry_index is not None:
            context["entry_index"] = entry_index
        if collection_name:
            context["collection_name"] = collection_name
        super().__init__(message, config_key="customIndexes", context=context)
        self.entry_index = entry_index
        self.collection_name = collection_name


class DuplicateIndexError(IndexSyncError):
    """
    Raised by a connection when the server reports that the requested index
    already exists with an identical name and specification.

    Never fatal: the applier normalizes it to the 'already exists' outcome.

    Attributes:
        code: Server error code (68, IndexAlreadyExists)
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.code = code


class CreationFailure(IndexSyncError):
    """
    Wraps any non-duplicate error raised while creating one index.

    Recorded in a 'failed' outcome; never raised past the per-index boundary.

    Attributes:
        collection_name: Collection the index was created on
        index_name: Index name (if available)
        cause: Original exception
    """

    def __init__(
        self,
        message: str,
        collection_name: Optional[str] = None,
        index_name: Optional[str] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if collection_name:
            context["collection_name"] = collection_name
        if index_name:
            context["index_name"] = index_name
        code = getattr(cause, "code", None)
        if code is not None:
            context["code"] = code
        super().__init__(message, context=context)
        self.collection_name = collection_name
        self.index_name = index_name
        self.cause = cause


class PartialReadWarning(UserWarning):
    """
    Reported when the indexes of one collection could not be read.

    The inventory continues with an empty index list for that collection.
    """

    def __init__(self, collection_name: str, cause: Optional[BaseException] = None) -> None:
        message = f"Could not read indexes of collection '{collection_name}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.collection_name = collection_name
        self.cause = cause
