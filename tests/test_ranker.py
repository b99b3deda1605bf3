"""
Relevance ranker tests

Module under test: memorylayer.context.ranker
"""

import pytest

from memorylayer.context.ranker import RelevanceRanker, recency_boost
from memorylayer.tiers.base import SearchHit

NOW = 1_700_000_000.0
HOUR = 3600.0


def _hit(file: str, similarity: float, hours_ago: float = 48.0) -> SearchHit:
    return SearchHit(
        file=file,
        preview=f"preview of {file}",
        similarity=similarity,
        last_modified=NOW - hours_ago * HOUR,
    )


@pytest.fixture
def ranker() -> RelevanceRanker:
    return RelevanceRanker(now_fn=lambda: NOW)


class TestRecencyBoost:
    """recency_boost tests"""

    def test_zero_hours_gives_full_boost(self):
        assert recency_boost(0) == pytest.approx(1.3)

    def test_twenty_four_hours_gives_no_boost(self):
        assert recency_boost(24) == 1.0
        assert recency_boost(100) == 1.0

    def test_linear_fade(self):
        assert recency_boost(12) == pytest.approx(1.15)

    def test_future_timestamps_clamped(self):
        """Clock skew never yields more than the full boost."""
        assert recency_boost(-5) == pytest.approx(1.3)


class TestRelevanceRanker:
    """RelevanceRanker tests"""

    def test_same_directory_beats_equal_similarity(self, ranker):
        hits = [
            _hit("lib/db.py", 0.5),
            _hit("src/auth/login.py", 0.5),
        ]

        ranked = ranker.rank(hits, current_file="src/auth/session.py")

        assert [h.file for h in ranked] == ["src/auth/login.py", "lib/db.py"]
        assert ranked[0].score == pytest.approx(0.75)
        assert ranked[1].score == pytest.approx(0.5)

    def test_viewed_files_boosted(self, ranker):
        hits = [_hit("a.py", 0.6), _hit("b.py", 0.5)]

        ranked = ranker.rank(hits, files_viewed=["b.py"])

        assert ranked[0].file == "b.py"
        assert ranked[0].score == pytest.approx(0.65)

    def test_boosts_compose_multiplicatively(self, ranker):
        hit = _hit("src/x.py", 0.4, hours_ago=0)

        score = ranker.score(hit, current_file="src/y.py", files_viewed={"src/x.py"}, now=NOW)

        assert score == pytest.approx(0.4 * 1.5 * 1.3 * 1.3)

    def test_recently_modified_file_ranks_higher(self, ranker):
        hits = [_hit("old.py", 0.5, hours_ago=30), _hit("fresh.py", 0.5, hours_ago=1)]

        ranked = ranker.rank(hits)

        assert ranked[0].file == "fresh.py"

    def test_ties_keep_input_order(self, ranker):
        hits = [_hit("first.py", 0.5), _hit("second.py", 0.5), _hit("third.py", 0.5)]

        ranked = ranker.rank(hits)

        assert [h.file for h in ranked] == ["first.py", "second.py", "third.py"]

    def test_input_hits_not_mutated(self, ranker):
        hit = _hit("a.py", 0.5)

        ranker.rank([hit], current_file="b.py")

        assert hit.score is None
