"""
ContextAssembler - tiered retrieval under one token budget.

Allocation order is fixed and determines what survives a tight budget:

1. Working memory (active file): always included, never ranked, no fit check
2. Ranked semantic matches from the indexed codebase: greedy by rank, stops at
   the first hit that does not fit
3. Archive summaries: only when more than ``archive_min_remaining`` tokens are
   left; each summary that fits
4. Decisions: semantic search, falling back to the most recent decisions when
   the search fails; included if the block fits

Because step 1 skips the fit check, ``token_count`` can exceed ``max_tokens``
when the active file alone is larger than the budget. Callers that need a hard
ceiling must bound the active file themselves.
"""

from __future__ import annotations

import logging
import time

from pydantic import BaseModel, Field

from memorylayer.context.budget import TokenBudget
from memorylayer.context.config import AssemblyConfig
from memorylayer.context.ranker import RelevanceRanker
from memorylayer.providers.embedding import EmbeddingService
from memorylayer.tiers.base import (
    ActiveFile,
    ArchiveTier,
    CodebaseTier,
    Decision,
    SearchHit,
    WorkingMemoryTier,
)

logger = logging.getLogger(__name__)

LABEL_WORKING = "tier1"
LABEL_SEMANTIC = "tier2"
LABEL_ARCHIVE = "tier3"
LABEL_DECISIONS = "decisions"


class AssemblyOptions(BaseModel):
    max_tokens: int | None = Field(default=None, gt=0, description="Per-query ceiling; config default when unset")
    current_file: str | None = Field(default=None, description="File the user is editing, for directory boosts")


class AssembledContext(BaseModel):
    context: str
    sources: list[str] = Field(default_factory=list)
    token_count: int = 0
    decisions: list[Decision] = Field(default_factory=list)
    allocations: dict[str, int] = Field(default_factory=dict)


def format_working_file(active_file: ActiveFile) -> str:
    return (
        "### Working File\n"
        f"File: {active_file.path}\n"
        f"```{active_file.language}\n"
        f"{active_file.content}\n"
        "```\n"
    )


def format_search_hit(hit: SearchHit) -> str:
    return (
        f"#### {hit.file} (relevance: {hit.effective_score * 100:.0f}%)\n"
        "```\n"
        f"{hit.preview}\n"
        "```\n"
    )


def format_decision(decision: Decision) -> str:
    return f"- **{decision.title}** ({decision.created_at.date().isoformat()})\n  {decision.description}\n"


def format_decisions(decisions: list[Decision]) -> str:
    if not decisions:
        return ""
    return "\n".join(format_decision(d) for d in decisions)


class ContextAssembler:
    """Build one context document per query from the three memory tiers."""

    def __init__(
        self,
        *,
        working: WorkingMemoryTier,
        codebase: CodebaseTier,
        archive: ArchiveTier,
        embedding_service: EmbeddingService,
        config: AssemblyConfig | None = None,
        ranker: RelevanceRanker | None = None,
    ) -> None:
        self._working = working
        self._codebase = codebase
        self._archive = archive
        self._embedding_service = embedding_service
        self._config = config or AssemblyConfig()
        self._ranker = ranker or RelevanceRanker()

    @property
    def config(self) -> AssemblyConfig:
        return self._config

    async def assemble(self, query: str, options: AssemblyOptions | None = None) -> AssembledContext:
        options = options or AssemblyOptions()
        cfg = self._config
        budget = TokenBudget(options.max_tokens or cfg.max_tokens)
        started = time.monotonic()

        # Embedding errors propagate.
        query_embedding = await self._embedding_service.embed(query)

        # Step 1: working memory, exempt from the fit check
        working = self._working.get_context()
        working_text = ""
        if working.active_file is not None:
            working_text = format_working_file(working.active_file)
            budget.allocate(working_text, LABEL_WORKING)

        # Step 2: ranked semantic matches, greedy by rank
        hits = self._codebase.search(query_embedding, cfg.semantic_candidates)
        ranked = self._ranker.rank(
            hits,
            current_file=options.current_file,
            files_viewed=self._working.get_files_viewed(),
        )
        relevant: list[SearchHit] = []
        for hit in ranked:
            formatted = format_search_hit(hit)
            if not budget.can_fit(formatted):
                break
            budget.allocate(formatted, LABEL_SEMANTIC)
            relevant.append(hit)

        # Step 3: archive, only with budget to spare
        archive_texts: list[str] = []
        if budget.remaining() > cfg.archive_min_remaining and cfg.archive_candidates > 0:
            for item in self._archive.search_relevant(query, cfg.archive_candidates):
                if item.summary and budget.can_fit(item.summary):
                    budget.allocate(item.summary, LABEL_ARCHIVE)
                    archive_texts.append(item.summary)

        # Step 4: decisions
        decisions = self._fetch_decisions(query_embedding)
        decisions_text = format_decisions(decisions)
        include_decisions = False
        if decisions_text and budget.can_fit(decisions_text):
            budget.allocate(decisions_text, LABEL_DECISIONS)
            include_decisions = True

        context = self._format_final_context(
            working_text=working_text,
            relevant=relevant,
            decisions=decisions if include_decisions else [],
            archive=archive_texts,
        )

        result = AssembledContext(
            context=context,
            sources=[hit.file for hit in relevant],
            token_count=budget.used(),
            decisions=decisions,
            allocations=budget.get_allocations(),
        )

        if result.token_count > budget.max_tokens:
            logger.info(
                "Working memory exceeds the query budget: used=%s, max_tokens=%s",
                result.token_count,
                budget.max_tokens,
                extra={"event": "assemble.overflow"},
            )
        logger.debug(
            "Context assembled: sources=%s, archive=%s, decisions=%s, tokens=%s/%s, elapsed_ms=%.1f",
            len(result.sources),
            len(archive_texts),
            len(decisions),
            result.token_count,
            budget.max_tokens,
            (time.monotonic() - started) * 1000,
            extra={"event": "assemble.done"},
        )
        return result

    def _fetch_decisions(self, query_embedding: list[float]) -> list[Decision]:
        limit = self._config.decision_candidates
        if limit <= 0:
            return []
        try:
            return self._codebase.search_decisions(query_embedding, limit)
        except Exception as e:
            logger.warning(
                "Decision search failed, using recent decisions: %s",
                e,
                extra={"event": "decisions.fallback"},
            )
            return self._codebase.get_recent_decisions(limit)

    @staticmethod
    def _format_final_context(
        *,
        working_text: str,
        relevant: list[SearchHit],
        decisions: list[Decision],
        archive: list[str],
    ) -> str:
        sections = ["## Codebase Context\n"]

        if working_text:
            sections.append(working_text)

        if relevant:
            sections.append("### Relevant Code\n")
            sections.extend(format_search_hit(hit) for hit in relevant)

        if decisions:
            sections.append("### Architecture Decisions\n")
            sections.extend(format_decision(d) for d in decisions)

        if archive:
            sections.append("### Historical Context\n")
            sections.append("\n\n".join(archive))

        return "\n".join(sections).strip()
