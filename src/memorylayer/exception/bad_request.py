"""Invalid argument exception (budgets, limits, compaction options)."""

from memorylayer.exception.base import MemoryLayerException


class BadRequestException(MemoryLayerException):
    """Raised when a caller passes an argument the engine cannot honor."""
