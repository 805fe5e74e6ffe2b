"""
Logging utilities for MDB_INDEX_SYNC.

Each CLI invocation gets a short run id and the name of the command it runs.
Both live in a context variable and are stamped on every record that reaches
the console handler, so interleaved output from concurrent collections can be
traced back to one run.
"""

import contextvars
import logging
import uuid
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(run_id)s %(command)s] %(name)s: %(message)s"

_run_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "run_context", default={}
)


def start_run(command: str, run_id: str | None = None) -> str:
    """
    Start the logging context of one CLI invocation.

    Returns:
        The run id (generated when not given)
    """
    run_id = run_id or uuid.uuid4().hex[:8]
    _run_context.set({"run_id": run_id, "command": command})
    return run_id


def current_run() -> dict[str, Any]:
    return dict(_run_context.get())


class RunContextFilter(logging.Filter):
    """Copy the current run id and command onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _run_context.get()
        record.run_id = context.get("run_id", "-")
        record.command = context.get("command", "-")
        return True


def configure_logging(verbose: bool = False) -> None:
    """
    Configure root logging for command-line use.

    Args:
        verbose: Log at DEBUG instead of INFO
    """
    handler = logging.StreamHandler()
    handler.addFilter(RunContextFilter())
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )
    # Driver chatter is only useful when debugging connectivity
    logging.getLogger("pymongo").setLevel(logging.INFO if verbose else logging.WARNING)


def log_operation(
    logger: logging.Logger,
    operation: str,
    success: bool = True,
    duration_ms: float | None = None,
    **fields: Any,
) -> None:
    """
    Log the completion of a timed operation.

    The operation name, outcome, duration and ``fields`` are attached to the
    record as attributes; failures are logged at WARNING.
    """
    extra: dict[str, Any] = {"operation": operation, "success": success, **fields}
    message = f"Operation {'completed' if success else 'failed'}: {operation}"
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
        message += f" ({duration_ms:.2f}ms)"
    logger.log(logging.INFO if success else logging.WARNING, message, extra=extra)
