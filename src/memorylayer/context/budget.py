"""
Token Budget - per-request token accumulator.

One budget lives for exactly one assembly request. It answers two separate
questions: does a fragment still fit (``can_fit``), and record that a fragment
was spent (``allocate``). ``allocate`` never re-checks the ceiling; the
assembler relies on that to include the working-memory section even when it
alone exceeds the budget.
"""

from __future__ import annotations

from memorylayer.exception import BadRequestException
from memorylayer.providers.token_counter import estimate_tokens


class TokenBudget:
    """
    Token budget

    Attributes:
        max_tokens: immutable ceiling for this request
        allocations: ordered ``(label, tokens)`` records, one per ``allocate`` call
    """

    def __init__(self, max_tokens: int) -> None:
        if max_tokens <= 0:
            raise BadRequestException(
                f"max_tokens must be positive, got {max_tokens}",
                metadata={"max_tokens": max_tokens},
            )
        self._max_tokens = max_tokens
        self._used = 0
        self.allocations: list[tuple[str, int]] = []

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def used(self) -> int:
        return self._used

    def remaining(self) -> int:
        return max(0, self._max_tokens - self._used)

    def can_fit(self, text: str) -> bool:
        return self._used + estimate_tokens(text) <= self._max_tokens

    def allocate(self, text: str, label: str) -> int:
        """Spend the estimate for ``text`` under ``label``; no ceiling check."""
        tokens = estimate_tokens(text)
        self._used += tokens
        self.allocations.append((label, tokens))
        return tokens

    def get_allocations(self) -> dict[str, int]:
        """Per-label totals, in first-allocation order."""
        totals: dict[str, int] = {}
        for label, tokens in self.allocations:
            totals[label] = totals.get(label, 0) + tokens
        return totals

    def __repr__(self) -> str:
        return f"TokenBudget(max_tokens={self._max_tokens}, used={self._used})"
