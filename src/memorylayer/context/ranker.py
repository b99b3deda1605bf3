"""
Relevance ranker for indexed-codebase hits.

Raw vector similarity is boosted by three session signals, applied
multiplicatively:

- same directory as the current file: x1.5
- modified within the last 24 hours: x(1 + 0.3 * (24 - h) / 24), fading to
  no bonus at exactly 24 hours
- already viewed this session: x1.3

Ties keep their original order.
"""

from __future__ import annotations

import os
import time
from typing import Callable, Iterable

from memorylayer.tiers.base import SearchHit
from memorylayer.utils.time import hours_between

SAME_DIRECTORY_BOOST = 1.5
RECENCY_WINDOW_HOURS = 24.0
RECENCY_MAX_BOOST = 0.3
VIEWED_BOOST = 1.3


def recency_boost(hours_since_modified: float) -> float:
    """Multiplier for a file modified ``hours_since_modified`` ago."""
    hours = max(0.0, hours_since_modified)
    if hours >= RECENCY_WINDOW_HOURS:
        return 1.0
    return 1.0 + RECENCY_MAX_BOOST * (RECENCY_WINDOW_HOURS - hours) / RECENCY_WINDOW_HOURS


def same_directory(path_a: str, path_b: str) -> bool:
    return os.path.dirname(path_a) == os.path.dirname(path_b)


class RelevanceRanker:
    """Pure re-ranking of raw similarity hits."""

    def __init__(self, now_fn: Callable[[], float] = time.time) -> None:
        self._now = now_fn

    def score(
        self,
        hit: SearchHit,
        *,
        current_file: str | None = None,
        files_viewed: set[str] | frozenset[str] = frozenset(),
        now: float | None = None,
    ) -> float:
        now = self._now() if now is None else now
        score = hit.similarity

        if current_file and same_directory(hit.file, current_file):
            score *= SAME_DIRECTORY_BOOST

        score *= recency_boost(hours_between(hit.last_modified, now))

        if hit.file in files_viewed:
            score *= VIEWED_BOOST

        return score

    def rank(
        self,
        hits: Iterable[SearchHit],
        current_file: str | None = None,
        files_viewed: Iterable[str] = (),
    ) -> list[SearchHit]:
        """Return scored copies of ``hits`` sorted by descending score (stable)."""
        now = self._now()
        viewed = frozenset(files_viewed)
        scored = [
            hit.model_copy(
                update={
                    "score": self.score(
                        hit, current_file=current_file, files_viewed=viewed, now=now
                    )
                }
            )
            for hit in hits
        ]
        # sorted() is stable with reverse=True, so equal scores keep input order
        return sorted(scored, key=lambda h: h.score or 0.0, reverse=True)
