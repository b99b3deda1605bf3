"""
Compaction module

Shrinks the tracked session context without touching critical content.
"""

from memorylayer.compaction.config import CompactionConfig
from memorylayer.compaction.engine import CompactionEngine
from memorylayer.compaction.policy import (
    CompactionOptions,
    CompactionResult,
    CompactionStrategy,
    CompactionSuggestion,
)
from memorylayer.compaction.summarizer import ExtractiveSummarizer, Summarizer

__all__ = [
    "CompactionConfig",
    "CompactionEngine",
    "CompactionOptions",
    "CompactionResult",
    "CompactionStrategy",
    "CompactionSuggestion",
    "ExtractiveSummarizer",
    "Summarizer",
]
