"""Health-history storage exception."""

from memorylayer.exception.base import MemoryLayerException


class HistoryStoreException(MemoryLayerException):
    """Raised by health-history stores; the health monitor swallows it."""
