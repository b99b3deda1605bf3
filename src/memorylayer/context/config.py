"""
Context assembly configuration.
"""

from pydantic import BaseModel, Field


class AssemblyConfig(BaseModel):
    """Per-query assembly settings."""

    max_tokens: int = Field(
        default=6000,
        gt=0,
        description="Per-query token ceiling for one assembled context",
    )

    semantic_candidates: int = Field(
        default=20,
        ge=1,
        description="Candidates fetched from the indexed-codebase tier before ranking",
    )

    archive_candidates: int = Field(
        default=3,
        ge=0,
        description="Archived summaries fetched when budget remains",
    )

    archive_min_remaining: int = Field(
        default=200,
        ge=0,
        description="The archive tier is queried only if more than this many tokens remain",
    )

    decision_candidates: int = Field(
        default=5,
        ge=0,
        description="Decisions fetched by semantic search (or recency fallback)",
    )
