"""
CompactionEngine - shrink the tracked session context.

Works directly on the ContextHealthMonitor's chunk list:
1. Split chunks into protected (critical, or among the most recent
   ``preserve_recent``) and eligible
2. Visit eligible chunks lowest relevance first (older first on ties)
3. Remove or summarize them according to the strategy
4. Mark the latest health snapshot as compaction-triggered

Critical chunks are never removed or rewritten, whatever the strategy.
"""

from __future__ import annotations

import logging
import math

from memorylayer.compaction.config import CompactionConfig
from memorylayer.compaction.policy import (
    CompactionOptions,
    CompactionResult,
    CompactionStrategy,
    CompactionSuggestion,
)
from memorylayer.compaction.summarizer import ExtractiveSummarizer, Summarizer
from memorylayer.health.monitor import ContextHealthMonitor
from memorylayer.health.types import ContextChunk, HealthState
from memorylayer.providers.token_counter import estimate_tokens

logger = logging.getLogger(__name__)

KEEP_THRESHOLD = 0.5
SUMMARIZE_THRESHOLD = 0.3
SUMMARY_RETENTION = 0.3


class CompactionEngine:
    """
    Context compactor

    Args:
        monitor: the session's health monitor, whose chunks are compacted
        summarizer: condenses chunk content; extractive by default
        config: compaction defaults; the process configuration when omitted
    """

    def __init__(
        self,
        monitor: ContextHealthMonitor,
        summarizer: Summarizer | None = None,
        config: CompactionConfig | None = None,
    ) -> None:
        self._monitor = monitor
        self._summarizer = summarizer or ExtractiveSummarizer()
        self._config = config

    def _utilization(self) -> float:
        return self._monitor.current_tokens / self._monitor.token_limit * 100

    def _target_reached(self, target: float | None) -> bool:
        return target is not None and self._utilization() <= target

    def trigger_compaction(self, options: CompactionOptions) -> CompactionResult:
        strategy = options.strategy
        preserve_recent = options.get_preserve_recent(self._config)
        target = options.get_target_utilization(self._config)

        with self._monitor.lock:
            chunks = self._monitor.get_chunks()
            tokens_before = self._monitor.current_tokens

            recent_ids = {c.id for c in chunks[-preserve_recent:]} if preserve_recent > 0 else set()
            critical_count = sum(1 for c in chunks if c.is_critical)
            eligible = [c for c in chunks if not c.is_critical and c.id not in recent_ids]

            if not eligible:
                logger.info(
                    "Nothing to compact: chunks=%s, critical=%s, preserve_recent=%s",
                    len(chunks),
                    critical_count,
                    preserve_recent,
                    extra={"event": "compaction.skipped"},
                )
                return CompactionResult.no_action(
                    "No eligible chunks: everything is critical or recent",
                    strategy=strategy,
                    tokens=tokens_before,
                    critical_chunks=critical_count,
                )

            # sorted() is stable, so equal scores stay oldest first
            eligible.sort(key=lambda c: c.relevance_score)

            removed = 0
            summaries: list[str] = []

            if strategy == "selective":
                removed = self._remove(eligible, target)
            elif strategy == "summarize":
                summaries = self._summarize(eligible, target)
            else:
                threshold = options.get_low_value_threshold(self._config)
                low_value = [c for c in eligible if c.relevance_score < threshold]
                rest = [c for c in eligible if c.relevance_score >= threshold]
                removed = self._remove(low_value, None)
                summaries = self._summarize(rest, None)

            tokens_after = self._monitor.current_tokens

        result = CompactionResult(
            success=True,
            strategy=strategy,
            tokens_before=tokens_before,
            tokens_after=tokens_after,
            tokens_saved=tokens_before - tokens_after,
            critical_chunks=critical_count,
            summarized_chunks=len(summaries),
            removed_chunks=removed,
            summaries=summaries,
        )
        self._monitor.mark_compaction()

        logger.info(
            "Compaction done: strategy=%s, removed=%s, summarized=%s, tokens %s -> %s",
            strategy,
            removed,
            len(summaries),
            tokens_before,
            tokens_after,
            extra={"event": "compaction.done"},
        )
        return result

    def _remove(self, chunks: list[ContextChunk], target: float | None) -> int:
        removed = 0
        for chunk in chunks:
            if self._target_reached(target):
                break
            if self._monitor.remove_chunk(chunk.id):
                removed += 1
        return removed

    def _summarize(self, chunks: list[ContextChunk], target: float | None) -> list[str]:
        summaries: list[str] = []
        for chunk in chunks:
            if self._target_reached(target):
                break
            summary = self._summarizer.summarize(chunk.content, chunk.chunk_type)
            tokens = estimate_tokens(summary)
            if tokens >= chunk.tokens:
                continue
            if self._monitor.rewrite_chunk(chunk.id, summary, tokens) is not None:
                summaries.append(summary)
        return summaries

    def auto_compact(self, drift_score: float = 0.0) -> CompactionResult:
        """Aggressive when critical, summarize when warning, nothing when good."""
        health = self._monitor.get_health(drift_score)

        strategy: CompactionStrategy
        if health.health == HealthState.CRITICAL:
            strategy = "aggressive"
        elif health.health == HealthState.WARNING:
            strategy = "summarize"
        else:
            return CompactionResult.no_action(
                "Context is healthy",
                tokens=health.tokens_used,
                critical_chunks=sum(1 for c in self._monitor.get_chunks() if c.is_critical),
            )

        logger.info(
            "Auto compaction: health=%s, strategy=%s",
            health.health.value,
            strategy,
            extra={"event": "compaction.auto"},
        )
        return self.trigger_compaction(CompactionOptions(strategy=strategy))

    def suggest_compaction(self) -> CompactionSuggestion:
        """Classify chunks without changing anything."""
        with self._monitor.lock:
            chunks = self._monitor.get_chunks()
            current_tokens = self._monitor.current_tokens
            token_limit = self._monitor.token_limit

        suggestion = CompactionSuggestion()
        for chunk in chunks:
            if chunk.is_critical or chunk.relevance_score >= KEEP_THRESHOLD:
                suggestion.keep.append(chunk)
            elif chunk.relevance_score >= SUMMARIZE_THRESHOLD:
                suggestion.summarizable.append(chunk)
            else:
                suggestion.removable.append(chunk)

        removable_tokens = sum(c.tokens for c in suggestion.removable)
        summarizable_tokens = sum(c.tokens for c in suggestion.summarizable)
        summarized_tokens = math.ceil(summarizable_tokens * SUMMARY_RETENTION)

        suggestion.tokens_saved = removable_tokens + summarizable_tokens - summarized_tokens
        suggestion.new_utilization = round(
            (current_tokens - suggestion.tokens_saved) / token_limit * 100, 1
        )
        return suggestion
