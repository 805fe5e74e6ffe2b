"""
Database layer.

Provides the Motor-backed connection and the index inventory reader.
"""

from .connection import IndexConnection, MongoIndexConnection, open_connection
from .inventory import list_collections, list_indexes, read_inventory

__all__ = [
    "IndexConnection",
    "MongoIndexConnection",
    "open_connection",
    "list_collections",
    "list_indexes",
    "read_inventory",
]
