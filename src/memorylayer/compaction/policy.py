"""
Compaction options and results.

Options left unset fall back to the engine's CompactionConfig, or to the
process configuration (``memorylayer.config.get_config().compaction``) when the
engine has none.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from memorylayer.compaction.config import CompactionConfig
from memorylayer.health.types import ContextChunk

CompactionStrategy = Literal["summarize", "selective", "aggressive"]


class CompactionOptions(BaseModel):
    """
    Compaction request.

    Critical chunks are always preserved; ``preserve_critical`` exists only so
    callers can state it and cannot be set to False.
    """

    strategy: CompactionStrategy = Field(..., description="summarize | selective | aggressive")

    preserve_recent: int | None = Field(
        default=None,
        ge=0,
        description="Most recent chunks kept verbatim",
    )

    target_utilization: float | None = Field(
        default=None,
        gt=0,
        le=100,
        description="Stop once utilization (%) is at or below this",
    )

    preserve_critical: Literal[True] = True

    def _get_compaction_config(self, config: CompactionConfig | None) -> CompactionConfig:
        if config is not None:
            return config
        from memorylayer.config import get_config

        return get_config().compaction

    def get_preserve_recent(self, config: CompactionConfig | None = None) -> int:
        if self.preserve_recent is not None:
            return self.preserve_recent
        return self._get_compaction_config(config).preserve_recent

    def get_target_utilization(self, config: CompactionConfig | None = None) -> float | None:
        """Effective target for this strategy; None means no target."""
        if self.strategy == "aggressive":
            return None
        if self.target_utilization is not None:
            return self.target_utilization
        config = self._get_compaction_config(config)
        if self.strategy == "selective":
            return config.selective_target
        return config.summarize_target

    def get_low_value_threshold(self, config: CompactionConfig | None = None) -> float:
        return self._get_compaction_config(config).low_value_threshold


class CompactionResult(BaseModel):
    """Compaction result"""

    success: bool = Field(..., description="Whether anything was compacted")
    strategy: CompactionStrategy | None = None
    tokens_before: int = 0
    tokens_after: int = 0
    tokens_saved: int = 0
    preserved_critical: Literal[True] = True
    critical_chunks: int = Field(default=0, description="Critical chunks left untouched")
    summarized_chunks: int = 0
    removed_chunks: int = 0
    summaries: list[str] = Field(default_factory=list)
    reason: str | None = Field(default=None, description="Why nothing was done")

    @classmethod
    def no_action(
        cls,
        reason: str,
        *,
        strategy: CompactionStrategy | None = None,
        tokens: int = 0,
        critical_chunks: int = 0,
    ) -> CompactionResult:
        return cls(
            success=False,
            strategy=strategy,
            tokens_before=tokens,
            tokens_after=tokens,
            critical_chunks=critical_chunks,
            reason=reason,
        )


class CompactionSuggestion(BaseModel):
    """Dry-run classification of the current chunks."""

    keep: list[ContextChunk] = Field(default_factory=list)
    summarizable: list[ContextChunk] = Field(default_factory=list)
    removable: list[ContextChunk] = Field(default_factory=list)
    tokens_saved: int = 0
    new_utilization: float = 0.0
