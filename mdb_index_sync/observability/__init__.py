"""
Observability components.

Provides run-scoped logging.
"""

from .logging import RunContextFilter, configure_logging, current_run, log_operation, start_run

__all__ = [
    "configure_logging",
    "start_run",
    "current_run",
    "RunContextFilter",
    "log_operation",
]
