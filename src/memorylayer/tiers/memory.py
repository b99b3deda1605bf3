"""
In-memory tier implementations.

Suitable for development, tests and embedding the engine in a single process;
nothing survives a restart.

Usage:
```python
from memorylayer.tiers import InMemoryCodebaseTier, InMemoryWorkingMemory

working = InMemoryWorkingMemory()
working.set_active_file("src/app.py", source, language="python")

codebase = InMemoryCodebaseTier()
codebase.add_file("src/db.py", preview, embedding=vector)
```
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from memorylayer.tiers.base import (
    ActiveFile,
    ArchiveSummary,
    Decision,
    SearchHit,
    WorkingContext,
)

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9_]+")


def cosine_similarity(v1: Iterable[float], v2: Iterable[float]) -> float:
    a = np.asarray(list(v1), dtype=np.float32)
    b = np.asarray(list(v2), dtype=np.float32)
    if a.shape != b.shape or a.size == 0:
        return 0.0
    denom = float(np.linalg.norm(a) * np.linalg.norm(b) + 1e-9)
    return float(np.dot(a, b) / denom)


class InMemoryWorkingMemory:
    """Tier 1: active file plus the session's view history."""

    def __init__(self) -> None:
        self._active_file: ActiveFile | None = None
        self._files_viewed: list[str] = []

    def set_active_file(self, path: str, content: str, language: str = "") -> None:
        self._active_file = ActiveFile(path=path, content=content, language=language)
        self.record_file_view(path)

    def clear_active_file(self) -> None:
        self._active_file = None

    def record_file_view(self, path: str) -> None:
        if path not in self._files_viewed:
            self._files_viewed.append(path)

    def get_context(self) -> WorkingContext:
        return WorkingContext(active_file=self._active_file)

    def get_files_viewed(self) -> list[str]:
        return list(self._files_viewed)


@dataclass
class _IndexedFile:
    file: str
    preview: str
    embedding: list[float]
    last_modified: float
    line_start: int | None
    line_end: int | None


class InMemoryCodebaseTier:
    """Tier 2: brute-force cosine search over indexed previews and decisions."""

    def __init__(self) -> None:
        self._files: list[_IndexedFile] = []
        self._decisions: list[Decision] = []
        self._decision_embeddings: dict[str, list[float]] = {}

    def add_file(
        self,
        file: str,
        preview: str,
        *,
        embedding: Sequence[float],
        last_modified: float | None = None,
        line_start: int | None = None,
        line_end: int | None = None,
    ) -> None:
        self._files.append(
            _IndexedFile(
                file=file,
                preview=preview,
                embedding=list(embedding),
                last_modified=time.time() if last_modified is None else last_modified,
                line_start=line_start,
                line_end=line_end,
            )
        )

    def add_decision(self, decision: Decision, embedding: Sequence[float] | None = None) -> None:
        self._decisions.append(decision)
        if embedding is not None:
            self._decision_embeddings[decision.id] = list(embedding)

    def search(self, embedding: Sequence[float], k: int) -> list[SearchHit]:
        scored = [
            (cosine_similarity(embedding, item.embedding), item) for item in self._files
        ]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [
            SearchHit(
                file=item.file,
                preview=item.preview,
                similarity=similarity,
                last_modified=item.last_modified,
                line_start=item.line_start,
                line_end=item.line_end,
            )
            for similarity, item in scored[:k]
        ]

    def search_decisions(self, embedding: Sequence[float], k: int) -> list[Decision]:
        scored = [
            (cosine_similarity(embedding, self._decision_embeddings[d.id]), d)
            for d in self._decisions
            if d.id in self._decision_embeddings
        ]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [decision for _, decision in scored[:k]]

    def get_recent_decisions(self, k: int) -> list[Decision]:
        ordered = sorted(self._decisions, key=lambda d: d.created_at, reverse=True)
        return ordered[:k]


class InMemoryArchiveTier:
    """Tier 3: keyword-overlap lookup over archived session summaries."""

    def __init__(self) -> None:
        self._summaries: list[ArchiveSummary] = []

    def add_summary(self, summary: str, session_id: str | None = None) -> ArchiveSummary:
        item = ArchiveSummary(summary=summary, session_id=session_id)
        self._summaries.append(item)
        return item

    def search_relevant(self, query: str, k: int) -> list[ArchiveSummary]:
        query_words = {w for w in _WORD_RE.findall(query.lower()) if len(w) >= 3}
        if not query_words:
            return []

        scored: list[tuple[int, ArchiveSummary]] = []
        for item in self._summaries:
            words = set(_WORD_RE.findall(item.summary.lower()))
            overlap = len(query_words & words)
            if overlap:
                scored.append((overlap, item))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        logger.debug("archive lookup: query_words=%s, matched=%s", len(query_words), len(scored))
        return [item for _, item in scored[:k]]
