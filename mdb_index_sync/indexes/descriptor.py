"""
Index descriptor model.

An IndexDescriptor is a normalized, origin-independent snapshot of one
secondary index: its ordered key pattern, the options that take part in its
identity (unique, sparse, TTL, text weights, partial filter), the hints that
do not (name, background) and a passthrough bag for every other option.

TTL semantics: ``expire_after_seconds=None`` means "no TTL" and ``0`` is a
legal value ("expire at the date stored in the field"). The two never compare
equal.

This module is part of MDB_INDEX_SYNC.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..constants import (
    ID_INDEX_NAME,
    INDEX_ENVELOPE_FIELDS,
    INDEX_KEY_FIELD,
    INDEX_KEY_PATTERN_ALIAS,
    INDEX_NAMESPACE_FIELD,
    INDEX_VERSION_FIELD,
    MIN_TTL_SECONDS,
)
from ..exceptions import PartialReadWarning
from .helpers import (
    canonical_value,
    generate_index_name,
    has_text_field,
    is_valid_direction,
    keys_to_dict,
    normalize_keys,
)


def _validate_ttl(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expireAfterSeconds must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expireAfterSeconds must be an integer, got {value!r}")
        value = int(value)
    if value < MIN_TTL_SECONDS:
        raise ValueError(f"expireAfterSeconds must be >= {MIN_TTL_SECONDS}, got {value}")
    return int(value)


@dataclass
class IndexDescriptor:
    """One index on one collection."""

    key: tuple[tuple[str, Any], ...]
    name: str | None = None
    unique: bool = False
    sparse: bool = False
    expire_after_seconds: int | None = None
    weights: dict[str, Any] | None = None
    partial_filter_expression: dict[str, Any] | None = None
    background: bool | None = None
    options: dict[str, Any] = field(default_factory=dict)
    # Envelope markers, kept for display only
    version: int | None = None
    namespace: str | None = None

    def __post_init__(self) -> None:
        self.key = normalize_keys(self.key)
        if not self.key:
            raise ValueError("Index key pattern must not be empty")
        for field_name, direction in self.key:
            if not field_name:
                raise ValueError("Index key field names must not be empty")
            if not is_valid_direction(direction):
                raise ValueError(
                    f"Invalid direction {direction!r} for field '{field_name}'. "
                    f"Use a non-zero number or an index kind such as \"text\"."
                )
        self.unique = bool(self.unique)
        self.sparse = bool(self.sparse)
        self.expire_after_seconds = _validate_ttl(self.expire_after_seconds)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "IndexDescriptor":
        """
        Build a descriptor from a listIndexes document or a hand-authored one.

        Args:
            doc: Index document. The key pattern is read from ``key`` (or its
                 ``keyPattern`` alias); every option not interpreted here is
                 kept verbatim in ``options``.

        Returns:
            IndexDescriptor

        Raises:
            ValueError: If the document has no usable key pattern or invalid options
            TypeError: If the key pattern has the wrong shape
        """
        if not isinstance(doc, Mapping):
            raise TypeError(f"Index document must be a mapping, got {type(doc).__name__}")

        raw_key = doc.get(INDEX_KEY_FIELD)
        if raw_key is None:
            raw_key = doc.get(INDEX_KEY_PATTERN_ALIAS)
        if not raw_key:
            raise ValueError("Index document has no 'key' pattern")

        known = {
            "name",
            "unique",
            "sparse",
            "expireAfterSeconds",
            "weights",
            "partialFilterExpression",
            "background",
            *INDEX_ENVELOPE_FIELDS,
        }
        options = {k: v for k, v in doc.items() if k not in known}

        weights = doc.get("weights")
        partial = doc.get("partialFilterExpression")
        return cls(
            key=normalize_keys(raw_key),
            name=doc.get("name") or None,
            unique=doc.get("unique", False),
            sparse=doc.get("sparse", False),
            expire_after_seconds=doc.get("expireAfterSeconds"),
            weights=dict(weights) if weights is not None else None,
            partial_filter_expression=dict(partial) if partial is not None else None,
            background=doc.get("background"),
            options=options,
            version=doc.get(INDEX_VERSION_FIELD),
            namespace=doc.get(INDEX_NAMESPACE_FIELD),
        )

    @property
    def is_system_managed(self) -> bool:
        """True for the reserved ``_id_`` index."""
        return self.name == ID_INDEX_NAME

    @property
    def has_text_field(self) -> bool:
        return has_text_field(self.key)

    @property
    def index_name(self) -> str:
        """Declared name, or the default name the server would generate."""
        return self.name or generate_index_name(self.key)

    @property
    def key_document(self) -> dict[str, Any]:
        return keys_to_dict(self.key)

    def identity(self) -> tuple:
        """
        Hashable identity key: the key pattern plus the options relevant to
        equivalence. Name, background and passthrough options are not part of it.

        Absent weights and an absent partial filter count as empty documents;
        weights only count when the key pattern has a text field.
        """
        weights = canonical_value(self.weights or {}) if self.has_text_field else None
        return (
            tuple((field_name, canonical_value(direction)) for field_name, direction in self.key),
            self.unique,
            self.sparse,
            self.expire_after_seconds,
            weights,
            canonical_value(self.partial_filter_expression or {}),
        )

    def creation_options(self) -> dict[str, Any]:
        """
        Options forwarded to the server when creating this index.

        Identity fields and passthrough options are forwarded verbatim; the
        envelope markers (v, ns) and the key pattern never are.
        """
        options: dict[str, Any] = {"name": self.index_name}
        if self.unique:
            options["unique"] = True
        if self.sparse:
            options["sparse"] = True
        if self.expire_after_seconds is not None:
            options["expireAfterSeconds"] = self.expire_after_seconds
        if self.weights is not None:
            options["weights"] = self.weights
        if self.partial_filter_expression is not None:
            options["partialFilterExpression"] = self.partial_filter_expression
        if self.background is not None:
            options["background"] = self.background
        for k, v in self.options.items():
            if k not in INDEX_ENVELOPE_FIELDS:
                options[k] = v
        return options

    def to_document(self) -> dict[str, Any]:
        """Render as an index document (``key`` first) for persistence and display."""
        doc: dict[str, Any] = {INDEX_KEY_FIELD: self.key_document}
        if self.name:
            doc["name"] = self.name
        options = self.creation_options()
        if not self.name:
            options.pop("name", None)
        doc.update(options)
        return doc

    def describe_options(self) -> list[str]:
        """Short human-readable list of the notable options."""
        parts = []
        if self.unique:
            parts.append("unique")
        if self.sparse:
            parts.append("sparse")
        if self.expire_after_seconds is not None:
            parts.append(f"TTL: {self.expire_after_seconds}s")
        if self.weights:
            parts.append(f"weights: {self.weights}")
        if self.partial_filter_expression:
            parts.append(f"filter: {self.partial_filter_expression}")
        return parts


@dataclass
class CustomIndexSpec:
    """An explicit (collection, index) pair supplied by configuration or authoring."""

    collection_name: str
    descriptor: IndexDescriptor

    @classmethod
    def from_dict(cls, entry: Mapping[str, Any]) -> "CustomIndexSpec":
        """
        Parse a ``{"collectionName": ..., "index": {...}}`` entry.

        Raises:
            ValueError / TypeError: If the entry is malformed
        """
        collection_name = entry.get("collectionName")
        if not isinstance(collection_name, str) or not collection_name:
            raise ValueError("Custom index entry is missing 'collectionName'")
        return cls(
            collection_name=collection_name,
            descriptor=IndexDescriptor.from_document(entry.get("index") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"collectionName": self.collection_name, "index": self.descriptor.to_document()}


@dataclass
class CollectionInventory:
    """A collection and its index descriptors, in the order the server returned them."""

    collection_name: str
    indexes: list[IndexDescriptor] = field(default_factory=list)
    warning: PartialReadWarning | None = None

    @property
    def user_indexes(self) -> list[IndexDescriptor]:
        """Indexes excluding the system-managed ``_id_`` index."""
        return [idx for idx in self.indexes if not idx.is_system_managed]
