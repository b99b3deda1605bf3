from memorylayer.log.config import MemoryLayerHandler, setup_logging
from memorylayer.log.context import (
    LOG_CONTEXT_FIELDS,
    ContextFilter,
    bind_log_context,
    clear_log_context,
    get_log_context,
)

__all__ = [
    "setup_logging",
    "MemoryLayerHandler",
    "ContextFilter",
    "LOG_CONTEXT_FIELDS",
    "bind_log_context",
    "clear_log_context",
    "get_log_context",
]
