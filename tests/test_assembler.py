"""
Context assembly tests

Module under test: memorylayer.context.assembler
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from memorylayer.context.assembler import AssemblyOptions, ContextAssembler
from memorylayer.context.config import AssemblyConfig
from memorylayer.tiers.base import (
    ActiveFile,
    ArchiveSummary,
    Decision,
    SearchHit,
    WorkingContext,
)


class _FakeEmbedding:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return [1.0, 0.0, 0.0]


class _FailingEmbedding:
    async def embed(self, text: str) -> list[float]:
        raise RuntimeError("embedding backend down")


class _FakeWorking:
    def __init__(self, active_file: ActiveFile | None = None, files_viewed: list[str] | None = None):
        self.active_file = active_file
        self.files_viewed = files_viewed or []

    def get_context(self) -> WorkingContext:
        return WorkingContext(active_file=self.active_file)

    def get_files_viewed(self) -> list[str]:
        return list(self.files_viewed)


class _FakeCodebase:
    def __init__(
        self,
        hits: list[SearchHit] | None = None,
        decisions: list[Decision] | None = None,
        recent: list[Decision] | None = None,
        fail_decisions: bool = False,
    ):
        self.hits = hits or []
        self.decisions = decisions or []
        self.recent = recent or []
        self.fail_decisions = fail_decisions
        self.search_calls: list[int] = []

    def search(self, embedding, k):
        self.search_calls.append(k)
        return self.hits[:k]

    def search_decisions(self, embedding, k):
        if self.fail_decisions:
            raise RuntimeError("decision index unavailable")
        return self.decisions[:k]

    def get_recent_decisions(self, k):
        return self.recent[:k]


class _FakeArchive:
    def __init__(self, summaries: list[str] | None = None):
        self.summaries = summaries or []
        self.calls: list[tuple[str, int]] = []

    def search_relevant(self, query, k):
        self.calls.append((query, k))
        return [ArchiveSummary(summary=s) for s in self.summaries[:k]]


def _hit(file: str, similarity: float, preview: str = "def f(): pass") -> SearchHit:
    # last_modified at the epoch: no recency boost
    return SearchHit(file=file, preview=preview, similarity=similarity, last_modified=0.0)


def _decision(title: str) -> Decision:
    return Decision(
        id=title.lower().replace(" ", "-"),
        title=title,
        description=f"{title} for every service",
        created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
    )


def _assembler(
    working=None,
    codebase=None,
    archive=None,
    embedding=None,
    config: AssemblyConfig | None = None,
) -> ContextAssembler:
    return ContextAssembler(
        working=working or _FakeWorking(),
        codebase=codebase or _FakeCodebase(),
        archive=archive or _FakeArchive(),
        embedding_service=embedding or _FakeEmbedding(),
        config=config,
    )


class TestAssembleBudget:
    """Budget behaviour of ContextAssembler.assemble"""

    @pytest.mark.asyncio
    async def test_working_memory_may_overrun_budget(self):
        """A 600-token active file is included under a 500-token budget; nothing else is."""
        working = _FakeWorking(ActiveFile(path="src/big.py", content="x" * 2400, language="python"))
        codebase = _FakeCodebase(hits=[_hit("src/a.py", 0.9)], decisions=[_decision("Use Postgres")])
        archive = _FakeArchive(["older session summary"])
        assembler = _assembler(working, codebase, archive)

        result = await assembler.assemble("refactor", AssemblyOptions(max_tokens=500))

        assert result.token_count > 500
        assert result.token_count >= 600
        assert "### Working File" in result.context
        assert "File: src/big.py" in result.context
        assert result.sources == []
        assert "### Relevant Code" not in result.context
        assert "### Architecture Decisions" not in result.context
        assert archive.calls == []

    @pytest.mark.asyncio
    async def test_semantic_results_never_overrun(self):
        hits = [_hit(f"src/m{i}.py", 0.9 - i * 0.01, preview="y" * 200) for i in range(20)]
        assembler = _assembler(codebase=_FakeCodebase(hits=hits))

        result = await assembler.assemble("query", AssemblyOptions(max_tokens=300))

        assert 0 < len(result.sources) < 20
        assert result.token_count <= 300

    @pytest.mark.asyncio
    async def test_greedy_stops_at_first_miss(self):
        """A smaller hit ranked after one that does not fit is not considered."""
        hits = [
            _hit("a.py", 0.9, preview="small"),
            _hit("b.py", 0.8, preview="y" * 1000),
            _hit("c.py", 0.7, preview="small"),
        ]
        assembler = _assembler(codebase=_FakeCodebase(hits=hits))

        result = await assembler.assemble("query", AssemblyOptions(max_tokens=100))

        assert result.sources == ["a.py"]
        assert "c.py" not in result.context

    @pytest.mark.asyncio
    async def test_allocations_match_token_count(self):
        working = _FakeWorking(ActiveFile(path="app.py", content="print('hi')"))
        codebase = _FakeCodebase(hits=[_hit("lib.py", 0.8)], decisions=[_decision("Use Redis")])
        assembler = _assembler(working, codebase, _FakeArchive(["past summary about lib"]))

        result = await assembler.assemble("query")

        assert sum(result.allocations.values()) == result.token_count
        assert set(result.allocations) == {"tier1", "tier2", "tier3", "decisions"}

    @pytest.mark.asyncio
    async def test_default_budget_from_config(self):
        working = _FakeWorking(ActiveFile(path="app.py", content="z" * 400))
        assembler = _assembler(working, config=AssemblyConfig(max_tokens=50))

        result = await assembler.assemble("query")

        # 100 tokens of content against a 50-token default
        assert result.token_count > 50


class TestAssembleRetrieval:
    """Tier retrieval of ContextAssembler.assemble"""

    @pytest.mark.asyncio
    async def test_embeds_query_once(self):
        embedding = _FakeEmbedding()
        codebase = _FakeCodebase(hits=[_hit("a.py", 0.5)], decisions=[_decision("Use gRPC")])
        assembler = _assembler(codebase=codebase, embedding=embedding)

        await assembler.assemble("how do we call services?")

        assert embedding.calls == ["how do we call services?"]
        assert codebase.search_calls == [20]

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self):
        assembler = _assembler(embedding=_FailingEmbedding())

        with pytest.raises(RuntimeError, match="embedding backend down"):
            await assembler.assemble("query")

    @pytest.mark.asyncio
    async def test_sources_follow_ranking(self):
        """A same-directory hit overtakes a slightly more similar one."""
        hits = [_hit("lib/util.py", 0.6), _hit("src/auth/token.py", 0.5)]
        assembler = _assembler(codebase=_FakeCodebase(hits=hits))

        result = await assembler.assemble("query", AssemblyOptions(current_file="src/auth/login.py"))

        assert result.sources == ["src/auth/token.py", "lib/util.py"]
        assert "#### src/auth/token.py (relevance: 75%)" in result.context
        assert "#### lib/util.py (relevance: 60%)" in result.context

    @pytest.mark.asyncio
    async def test_archive_included_with_spare_budget(self):
        archive = _FakeArchive(["Session 12 moved auth to JWT", "Session 13 added rate limits", "x", "y"])
        assembler = _assembler(archive=archive)

        result = await assembler.assemble("auth")

        assert archive.calls == [("auth", 3)]
        assert "### Historical Context" in result.context
        assert "Session 12 moved auth to JWT\n\nSession 13 added rate limits" in result.context

    @pytest.mark.asyncio
    async def test_archive_skipped_when_budget_low(self):
        """No archive lookup unless more than 200 tokens remain."""
        working = _FakeWorking(ActiveFile(path="a.py", content="q" * 1200))
        archive = _FakeArchive(["something"])
        assembler = _assembler(working, archive=archive)

        result = await assembler.assemble("query", AssemblyOptions(max_tokens=500))

        assert archive.calls == []
        assert "### Historical Context" not in result.context

    @pytest.mark.asyncio
    async def test_decision_search_failure_falls_back_to_recent(self):
        recent = [_decision("Use Postgres")]
        codebase = _FakeCodebase(fail_decisions=True, recent=recent)
        assembler = _assembler(codebase=codebase)

        result = await assembler.assemble("database")

        assert result.decisions == recent
        assert "### Architecture Decisions" in result.context
        assert "- **Use Postgres** (2024-01-15)\n  Use Postgres for every service" in result.context

    @pytest.mark.asyncio
    async def test_decisions_returned_even_when_not_rendered(self):
        working = _FakeWorking(ActiveFile(path="a.py", content="q" * 2000))
        decisions = [_decision("Use Kafka")]
        assembler = _assembler(working, codebase=_FakeCodebase(decisions=decisions))

        result = await assembler.assemble("query", AssemblyOptions(max_tokens=500))

        assert result.decisions == decisions
        assert "### Architecture Decisions" not in result.context


class TestAssembleFormatting:
    """Output format of ContextAssembler.assemble"""

    @pytest.mark.asyncio
    async def test_empty_tiers(self):
        result = await _assembler().assemble("query")

        assert result.context == "## Codebase Context"
        assert result.token_count == 0
        assert result.sources == []
        assert result.decisions == []

    @pytest.mark.asyncio
    async def test_sections_in_fixed_order(self):
        working = _FakeWorking(ActiveFile(path="src/app.py", content="run()", language="python"))
        codebase = _FakeCodebase(hits=[_hit("src/lib.py", 0.9)], decisions=[_decision("Use Redis")])
        archive = _FakeArchive(["Past session notes about caching"])
        assembler = _assembler(working, codebase, archive)

        result = await assembler.assemble("caching")
        context = result.context

        order = [
            context.index("## Codebase Context"),
            context.index("### Working File"),
            context.index("### Relevant Code"),
            context.index("### Architecture Decisions"),
            context.index("### Historical Context"),
        ]
        assert order == sorted(order)
        assert "File: src/app.py\n```python\nrun()\n```" in context
        assert "#### src/lib.py (relevance: 90%)\n```\ndef f(): pass\n```" in context
