"""
Summarizers used by the summarize and aggressive compaction strategies.
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from memorylayer.providers.token_counter import estimate_tokens, truncate_to_tokens

_SENTENCE_SPLIT = re.compile(r"[.!?]+")

IMPORTANT_WORDS = (
    "decided",
    "choose",
    "use",
    "implement",
    "because",
    "important",
    "must",
    "should",
    "require",
    "need",
    "critical",
    "key",
)

TECHNICAL_PATTERNS = (
    re.compile(r"\b[A-Z][a-z]+(?:[A-Z][a-z]+)+\b"),  # CamelCase
    re.compile(r"\b\w+\(\)"),  # call()
    re.compile(r"`[^`]+`"),  # inline code
)


@runtime_checkable
class Summarizer(Protocol):
    def summarize(self, content: str, chunk_type: str) -> str:
        """Return a condensed version of ``content``."""


def score_sentence(sentence: str) -> float:
    score = 0.0

    word_count = len(sentence.split())
    if 5 <= word_count <= 30:
        score += 1

    lowered = sentence.lower()
    score += 0.5 * sum(1 for word in IMPORTANT_WORDS if word in lowered)
    score += 0.3 * sum(1 for pattern in TECHNICAL_PATTERNS if pattern.search(sentence))
    return score


class ExtractiveSummarizer:
    """
    Keep the three highest-scoring sentences, in their original order.

    Args:
        max_sentences: sentences kept per summary
        max_tokens: hard cap on a summary's estimated size; None for no cap
    """

    def __init__(self, max_sentences: int = 3, max_tokens: int | None = None) -> None:
        self.max_sentences = max_sentences
        self.max_tokens = max_tokens

    def summarize(self, content: str, chunk_type: str) -> str:
        sentences = [s.strip() for s in _SENTENCE_SPLIT.split(content)]
        sentences = [s for s in sentences if len(s) > 10]

        if not sentences:
            summary = f"[{chunk_type}]: {content[:100]}"
        else:
            ranked = sorted(
                enumerate(sentences),
                key=lambda pair: score_sentence(pair[1]),
                reverse=True,
            )
            top = sorted(ranked[: self.max_sentences], key=lambda pair: pair[0])
            summary = f"[Summary - {chunk_type}]: " + ". ".join(s for _, s in top) + "."

        if self.max_tokens is not None and estimate_tokens(summary) > self.max_tokens:
            summary = truncate_to_tokens(summary, self.max_tokens)
        return summary
