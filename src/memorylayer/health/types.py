"""
Health value types.

- ContextChunk: one tracked piece of session context
- CriticalContext: content that compaction must never touch
- ContextHealth: point-in-time health report
- HealthSnapshot: persisted history row
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from memorylayer.utils.time import utc_now

ChunkType = Literal["message", "decision", "requirement", "instruction", "code"]
CriticalType = Literal["decision", "requirement", "instruction", "custom"]


class HealthState(str, Enum):
    """Overall context health."""

    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


def _chunk_id() -> str:
    return f"chunk_{uuid.uuid4().hex[:12]}"


class ContextChunk(BaseModel):
    """A tracked piece of session context; list position is significant."""

    id: str = Field(default_factory=_chunk_id)
    content: str
    tokens: int = Field(..., ge=0)
    source: str = "session"
    chunk_type: ChunkType = "message"
    created_at: datetime = Field(default_factory=utc_now)
    relevance_score: float = Field(default=1.0, ge=0.1, le=1.0)
    is_critical: bool = False
    summarized: bool = False


class CriticalContext(BaseModel):
    """Content pinned as critical. Frozen; ``never_compress`` cannot be switched off."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: CriticalType
    content: str
    reason: str | None = None
    source: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    never_compress: Literal[True] = True


class ContextHealth(BaseModel):
    tokens_used: int
    tokens_limit: int
    utilization_percent: float
    health: HealthState
    relevance_score: float
    drift_score: float
    critical_context_count: int
    drift_detected: bool
    compaction_needed: bool
    suggestions: list[str] = Field(default_factory=list)


class HealthSnapshot(BaseModel):
    """One row of health history."""

    timestamp: datetime = Field(default_factory=utc_now)
    health: HealthState
    utilization_percent: float
    drift_score: float
    relevance_score: float = 1.0
    tokens_used: int = 0
    tokens_limit: int = 0
    compaction_triggered: bool = False

    @classmethod
    def from_health(cls, health: ContextHealth) -> HealthSnapshot:
        return cls(
            health=health.health,
            utilization_percent=health.utilization_percent,
            drift_score=health.drift_score,
            relevance_score=health.relevance_score,
            tokens_used=health.tokens_used,
            tokens_limit=health.tokens_limit,
        )
