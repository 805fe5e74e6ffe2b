"""
Command-line interface for MDB_INDEX_SYNC.
"""

from .main import cli, main

__all__ = ["cli", "main"]
