"""
Memory tier capability interfaces.

The engine reads three external tiers only through these narrow protocols:

- Tier 1, working memory: the active file and the files viewed this session
- Tier 2, indexed codebase: vector search over code and recorded decisions
- Tier 3, archive: long-term session summaries

How a tier indexes or persists its data is its own business.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, Field

from memorylayer.utils.time import utc_now

DecisionStatus = Literal["proposed", "accepted", "deprecated", "superseded"]


class ActiveFile(BaseModel):
    """The file currently open in the assistant's working memory."""

    path: str
    content: str
    language: str = ""


class WorkingContext(BaseModel):
    active_file: ActiveFile | None = None


class SearchHit(BaseModel):
    """A raw similarity-search hit from the indexed-codebase tier."""

    file: str
    preview: str
    similarity: float
    last_modified: float = Field(..., description="Epoch seconds of the file's last modification")
    line_start: int | None = None
    line_end: int | None = None
    score: float | None = Field(default=None, description="Final score after ranking")

    @property
    def effective_score(self) -> float:
        return self.score if self.score is not None else self.similarity


class Decision(BaseModel):
    """A recorded architecture decision."""

    id: str
    title: str
    description: str
    files: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    author: str | None = None
    status: DecisionStatus | None = None
    superseded_by: str | None = None


class ArchiveSummary(BaseModel):
    summary: str
    session_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


@runtime_checkable
class WorkingMemoryTier(Protocol):
    def get_context(self) -> WorkingContext:
        """Return the working context (active file, if any)."""

    def get_files_viewed(self) -> list[str]:
        """Return files viewed earlier in the session."""


@runtime_checkable
class CodebaseTier(Protocol):
    def search(self, embedding: Sequence[float], k: int) -> list[SearchHit]:
        """Top ``k`` code hits by vector similarity."""

    def search_decisions(self, embedding: Sequence[float], k: int) -> list[Decision]:
        """Top ``k`` decisions by vector similarity."""

    def get_recent_decisions(self, k: int) -> list[Decision]:
        """Most recent ``k`` decisions."""


@runtime_checkable
class ArchiveTier(Protocol):
    def search_relevant(self, query: str, k: int) -> list[ArchiveSummary]:
        """Top ``k`` archived summaries relevant to the raw query text."""
