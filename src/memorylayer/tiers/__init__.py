"""
Tiers module

Capability interfaces for the three external memory tiers, plus in-memory
implementations.
"""

from memorylayer.tiers.base import (
    ActiveFile,
    ArchiveSummary,
    ArchiveTier,
    CodebaseTier,
    Decision,
    SearchHit,
    WorkingContext,
    WorkingMemoryTier,
)
from memorylayer.tiers.memory import (
    InMemoryArchiveTier,
    InMemoryCodebaseTier,
    InMemoryWorkingMemory,
    cosine_similarity,
)

__all__ = [
    # Interfaces
    "WorkingMemoryTier",
    "CodebaseTier",
    "ArchiveTier",
    # Models
    "ActiveFile",
    "WorkingContext",
    "SearchHit",
    "Decision",
    "ArchiveSummary",
    # In-memory tiers
    "InMemoryWorkingMemory",
    "InMemoryCodebaseTier",
    "InMemoryArchiveTier",
    "cosine_similarity",
]
