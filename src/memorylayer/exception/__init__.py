"""Unified exports for the exception module."""

from memorylayer.exception.bad_request import BadRequestException
from memorylayer.exception.base import MemoryLayerException
from memorylayer.exception.history_store import HistoryStoreException

__all__ = [
    "MemoryLayerException",
    "BadRequestException",
    "HistoryStoreException",
]
