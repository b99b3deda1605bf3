"""
Per-task log context.

Fields bound here are stamped onto every record that passes through the
memorylayer handler, so log lines from the assembler, the monitor and the
compactor can be tied back to one session and one operation.

Usage:
```python
from memorylayer.log import bind_log_context

with bind_log_context(session_id="s-1", operation="assemble"):
    logger.info("...")  # record.session_id == "s-1"
```
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

LOG_CONTEXT_FIELDS: tuple[str, ...] = ("session_id", "operation")

_current: ContextVar[tuple[tuple[str, Any], ...]] = ContextVar("memorylayer_log_context", default=())


def get_log_context() -> dict[str, Any]:
    return dict(_current.get())


def clear_log_context() -> None:
    _current.set(())


@contextmanager
def bind_log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """Add known fields to the log context for the duration of the block."""
    merged = get_log_context()
    merged.update({k: v for k, v in fields.items() if k in LOG_CONTEXT_FIELDS})
    token = _current.set(tuple(merged.items()))
    try:
        yield merged
    finally:
        _current.reset(token)


class ContextFilter(logging.Filter):
    """Fill context fields, a default ``event`` and exception details on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        bound = get_log_context()
        for name in LOG_CONTEXT_FIELDS:
            if getattr(record, name, None) is None:
                setattr(record, name, bound.get(name))

        if getattr(record, "event", None) is None:
            record.event = "log"

        exc_type = record.exc_info[0] if record.exc_info else None
        record.error_type = exc_type.__name__ if exc_type is not None else None
        return True
