"""
Token estimation.

A single character-based heuristic shared by every budget in the engine: the
per-query TokenBudget, the session-wide ContextHealthMonitor and compaction all
count with ``estimate_tokens`` so the two ceilings can never disagree about the
size of the same text.

Usage:
```python
from memorylayer.providers.token_counter import estimate_tokens, get_token_counter

tokens = estimate_tokens("def main(): ...")

counter = get_token_counter()
tokens = counter.count_messages([{"role": "user", "content": "hi"}])
```
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

AVG_CHARS_PER_TOKEN = 4


def estimate_tokens(text: str | None) -> int:
    """Estimate tokens as characters / 4, rounded up."""
    if not text:
        return 0
    return math.ceil(len(text) / AVG_CHARS_PER_TOKEN)


def truncate_to_tokens(text: str, max_tokens: int, suffix: str = "...") -> str:
    """Cut ``text`` so that it (with ``suffix``) estimates to at most ``max_tokens``."""
    if max_tokens <= 0:
        return ""
    if estimate_tokens(text) <= max_tokens:
        return text
    max_chars = max_tokens * AVG_CHARS_PER_TOKEN - len(suffix)
    if max_chars <= 0:
        return ""
    return text[:max_chars].rstrip() + suffix


class BaseTokenCounter(ABC):
    """Token counter interface."""

    @abstractmethod
    def count(self, text: str) -> int:
        """
        Count tokens in text.

        Args:
            text: input text

        Returns:
            token count
        """
        ...

    @abstractmethod
    def count_messages(self, messages: list[dict]) -> int:
        """
        Count tokens in a chat message list.

        Args:
            messages: ``{"role": ..., "content": ...}`` dicts

        Returns:
            token count including per-message overhead
        """
        ...


class EstimateTokenCounter(BaseTokenCounter):
    """``BaseTokenCounter`` backed by ``estimate_tokens``."""

    def __init__(self, per_message_overhead_tokens: int = 4) -> None:
        self.per_message_overhead_tokens = per_message_overhead_tokens

    def count(self, text: str) -> int:
        return estimate_tokens(text)

    def count_messages(self, messages: list[dict]) -> int:
        total = 0
        for message in messages or []:
            content = message.get("content")
            text = content if isinstance(content, str) else ("" if content is None else str(content))
            total += estimate_tokens(text) + self.per_message_overhead_tokens
        return total


_default_counter: BaseTokenCounter | None = None


def get_token_counter() -> BaseTokenCounter:
    """Return the process-wide token counter."""
    global _default_counter
    if _default_counter is None:
        _default_counter = EstimateTokenCounter()
    return _default_counter


def reset_token_counter() -> None:
    """Drop the default counter (tests)."""
    global _default_counter
    _default_counter = None
