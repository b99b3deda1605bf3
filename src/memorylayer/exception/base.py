"""
Exception base types.
"""

from __future__ import annotations

from typing import Any


class MemoryLayerException(Exception):
    """Engine base exception."""

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.session_id = session_id
        self.metadata = metadata or {}

    def attach_session_id(self, session_id: str) -> None:
        if self.session_id is None:
            self.session_id = session_id
