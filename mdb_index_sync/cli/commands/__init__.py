"""
CLI commands.
"""

from .compare import compare
from .create import create
from .interactive import interactive
from .listing import list_source, list_target
from .migrate import migrate

__all__ = ["migrate", "create", "interactive", "list_source", "list_target", "compare"]
