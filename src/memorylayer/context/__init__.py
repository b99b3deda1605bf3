"""
Context module

Per-query context assembly under a token budget:
- TokenBudget: per-request token accumulator
- RelevanceRanker: session-aware re-ranking of similarity hits
- ContextAssembler: tiered retrieval into one formatted document
"""

from memorylayer.context.assembler import (
    AssembledContext,
    AssemblyOptions,
    ContextAssembler,
)
from memorylayer.context.budget import TokenBudget
from memorylayer.context.config import AssemblyConfig
from memorylayer.context.ranker import RelevanceRanker, recency_boost

__all__ = [
    "AssemblyConfig",
    "AssemblyOptions",
    "AssembledContext",
    "ContextAssembler",
    "TokenBudget",
    "RelevanceRanker",
    "recency_boost",
]
