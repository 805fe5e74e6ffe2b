"""
Index equivalence.

Two descriptors are equivalent when they describe the same index for
migration purposes: same ordered key pattern and same identity options.
Name and background hints are ignored. Both checks read
``IndexDescriptor.identity()``, the single definition of what identifies an
index.

This module is part of MDB_INDEX_SYNC.
"""

from .descriptor import IndexDescriptor


def keys_equal(a: IndexDescriptor, b: IndexDescriptor) -> bool:
    """Same fields, same order, same direction/kind values."""
    return a.identity()[0] == b.identity()[0]


def equivalent(a: IndexDescriptor, b: IndexDescriptor) -> bool:
    """
    Decide whether two descriptors describe the same index.

    Pure, total and symmetric. TTL ``None`` never equals ``0``.
    """
    return a.identity() == b.identity()
