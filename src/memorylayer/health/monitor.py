"""
ContextHealthMonitor - session-wide context tracking.

Owns the ordered chunk list and its running token total, ages chunk relevance
on every insert, and reports health against a session token limit. That limit
(default 100,000) is unrelated to the per-query ``max_tokens`` of context
assembly.

Thresholds:
- critical: utilization >= 85% or drift >= 0.5
- warning: utilization >= 70% or drift >= 0.3
- good: otherwise
"""

from __future__ import annotations

import logging
import threading

from memorylayer.exception import BadRequestException
from memorylayer.health.critical import CriticalContextManager
from memorylayer.health.history import HealthHistoryStore, InMemoryHealthHistoryStore
from memorylayer.health.types import (
    ChunkType,
    ContextChunk,
    ContextHealth,
    HealthSnapshot,
    HealthState,
)
from memorylayer.providers.token_counter import estimate_tokens as _estimate_tokens

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIMIT = 100000

UTILIZATION_WARNING = 70.0
UTILIZATION_CRITICAL = 85.0
DRIFT_WARNING = 0.3
DRIFT_CRITICAL = 0.5

CRITICAL_DECAY_RATE = 0.98
DEFAULT_DECAY_RATE = 0.95
MIN_RELEVANCE = 0.1


def classify_health(utilization_percent: float, drift_score: float) -> HealthState:
    if utilization_percent >= UTILIZATION_CRITICAL or drift_score >= DRIFT_CRITICAL:
        return HealthState.CRITICAL
    if utilization_percent >= UTILIZATION_WARNING or drift_score >= DRIFT_WARNING:
        return HealthState.WARNING
    return HealthState.GOOD


def build_suggestions(
    health: HealthState,
    utilization_percent: float,
    drift_score: float,
    critical_count: int,
) -> list[str]:
    if health == HealthState.GOOD:
        return ["Context is healthy, no action needed"]

    suggestions: list[str] = []
    if utilization_percent >= UTILIZATION_CRITICAL:
        suggestions.append("Context nearly full - compaction strongly recommended")
        suggestions.append('Consider using "aggressive" compaction strategy')
    elif utilization_percent >= UTILIZATION_WARNING:
        suggestions.append("Context getting large - consider compaction")
        suggestions.append('Use "summarize" strategy to compress old context')

    if drift_score >= DRIFT_CRITICAL:
        suggestions.append("Significant drift detected - AI may be ignoring earlier instructions")
        suggestions.append("Review critical context and add reminders if needed")
    elif drift_score >= DRIFT_WARNING:
        suggestions.append("Some drift detected - consider marking critical items")

    if critical_count == 0:
        suggestions.append("No critical context marked - consider marking important decisions/requirements")

    return suggestions


class ContextHealthMonitor:
    """
    Session chunk tracker and health reporter.

    Invariant: ``current_tokens`` always equals the sum of ``tokens`` over the
    tracked chunks. All state is guarded by one re-entrant lock.

    Args:
        critical_manager: decides criticality of new chunks and counts pinned items
        token_limit: session-wide token ceiling
        history_store: health snapshot sink; in-memory when omitted
        history_limit: default page size for ``get_health_history``
    """

    def __init__(
        self,
        critical_manager: CriticalContextManager,
        token_limit: int = DEFAULT_TOKEN_LIMIT,
        history_store: HealthHistoryStore | None = None,
        history_limit: int = 20,
    ) -> None:
        self._critical = critical_manager
        self._token_limit = self._validate_limit(token_limit)
        self._history = history_store or InMemoryHealthHistoryStore()
        self._history_limit = history_limit
        self._chunks: list[ContextChunk] = []
        self._current_tokens = 0
        self._lock = threading.RLock()

    @staticmethod
    def _validate_limit(limit: int) -> int:
        if limit <= 0:
            raise BadRequestException(
                f"token_limit must be positive, got {limit}",
                metadata={"token_limit": limit},
            )
        return limit

    @property
    def token_limit(self) -> int:
        return self._token_limit

    @token_limit.setter
    def token_limit(self, limit: int) -> None:
        limit = self._validate_limit(limit)
        with self._lock:
            self._token_limit = limit

    @property
    def current_tokens(self) -> int:
        with self._lock:
            return self._current_tokens

    @property
    def lock(self) -> threading.RLock:
        """Hold to run several monitor calls as one atomic step (compaction)."""
        return self._lock

    @property
    def history_store(self) -> HealthHistoryStore:
        return self._history

    # === Chunks ===

    def add_chunk(
        self,
        content: str,
        tokens: int | None = None,
        source: str = "session",
        chunk_type: ChunkType = "message",
    ) -> ContextChunk:
        chunk = ContextChunk(
            content=content,
            tokens=_estimate_tokens(content) if tokens is None else tokens,
            source=source,
            chunk_type=chunk_type,
            relevance_score=1.0,
            is_critical=self._critical.is_critical(content),
        )
        with self._lock:
            self._chunks.append(chunk)
            self._current_tokens += chunk.tokens
            self.decay_relevance()
        return chunk

    def decay_relevance(self) -> None:
        """Age every chunk; earlier positions fade faster, critical chunks slower."""
        with self._lock:
            total = len(self._chunks)
            for i, chunk in enumerate(self._chunks):
                rate = CRITICAL_DECAY_RATE if chunk.is_critical else DEFAULT_DECAY_RATE
                position_factor = (i + 1) / total
                chunk.relevance_score = max(
                    MIN_RELEVANCE,
                    chunk.relevance_score * rate * (0.5 + 0.5 * position_factor),
                )

    def remove_chunk(self, chunk_id: str) -> bool:
        with self._lock:
            for i, chunk in enumerate(self._chunks):
                if chunk.id == chunk_id:
                    del self._chunks[i]
                    self._current_tokens -= chunk.tokens
                    return True
        return False

    def rewrite_chunk(self, chunk_id: str, content: str, tokens: int | None = None) -> ContextChunk | None:
        """Replace a chunk's content in place, keeping position, score and criticality."""
        new_tokens = _estimate_tokens(content) if tokens is None else tokens
        with self._lock:
            for i, chunk in enumerate(self._chunks):
                if chunk.id == chunk_id:
                    rewritten = chunk.model_copy(
                        update={"content": content, "tokens": new_tokens, "summarized": True}
                    )
                    self._chunks[i] = rewritten
                    self._current_tokens += new_tokens - chunk.tokens
                    return rewritten
        return None

    def get_chunks(self) -> list[ContextChunk]:
        with self._lock:
            return [chunk.model_copy() for chunk in self._chunks]

    def clear_chunks(self) -> None:
        with self._lock:
            self._chunks = []
            self._current_tokens = 0

    # === Health ===

    def get_health(self, drift_score: float = 0.0) -> ContextHealth:
        with self._lock:
            tokens_used = self._current_tokens
            token_limit = self._token_limit
            utilization = tokens_used / token_limit * 100
            if self._chunks:
                relevance = sum(c.relevance_score for c in self._chunks) / len(self._chunks)
            else:
                relevance = 1.0

        critical_count = self._critical.get_critical_count()
        state = classify_health(utilization, drift_score)

        health = ContextHealth(
            tokens_used=tokens_used,
            tokens_limit=token_limit,
            utilization_percent=round(utilization, 1),
            health=state,
            relevance_score=round(relevance, 2),
            drift_score=round(drift_score, 2),
            critical_context_count=critical_count,
            drift_detected=drift_score >= DRIFT_WARNING,
            compaction_needed=state != HealthState.GOOD,
            suggestions=build_suggestions(state, utilization, drift_score, critical_count),
        )

        self._record(health)
        return health

    def _record(self, health: ContextHealth) -> None:
        try:
            self._history.append(HealthSnapshot.from_health(health))
        except Exception as e:
            logger.debug("Health snapshot not recorded: %s", e, extra={"event": "history.append_failed"})

    def get_health_history(self, limit: int | None = None) -> list[HealthSnapshot]:
        try:
            return self._history.recent(self._history_limit if limit is None else limit)
        except Exception as e:
            logger.debug("Health history unavailable: %s", e, extra={"event": "history.read_failed"})
            return []

    def mark_compaction(self) -> None:
        try:
            self._history.mark_compaction()
        except Exception as e:
            logger.debug("Compaction mark not recorded: %s", e, extra={"event": "history.mark_failed"})

    def estimate_tokens(self, text: str) -> int:
        return _estimate_tokens(text)
