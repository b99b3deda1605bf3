"""
Critical context - content that is never compressed.

Items are pinned explicitly with ``mark_critical`` or recognised by phrase
patterns (instructions, decisions, requirements). Chunks judged critical decay
slower and are never touched by compaction.
"""

from __future__ import annotations

import logging
import re
import threading

from memorylayer.health.types import CriticalContext, CriticalType

logger = logging.getLogger(__name__)

CRITICAL_PATTERNS: tuple[tuple[re.Pattern[str], CriticalType], ...] = (
    # explicit instructions
    (re.compile(r"\b(always|never|must|required|mandatory)\b", re.IGNORECASE), "instruction"),
    # decisions
    (re.compile(r"\b(we decided|the decision|chose to|decided to|will use)\b", re.IGNORECASE), "decision"),
    # requirements
    (re.compile(r"\b(requirement|constraint|rule|spec|specification)\b", re.IGNORECASE), "requirement"),
    # user preferences
    (re.compile(r"\b(i prefer|i want|don't want|please don't|make sure)\b", re.IGNORECASE), "instruction"),
    # technical constraints
    (re.compile(r"\b(cannot|must not|impossible|not allowed|forbidden)\b", re.IGNORECASE), "requirement"),
    # importance markers
    (re.compile(r"\b(important|critical|essential|crucial|key point)\b", re.IGNORECASE), "instruction"),
)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")

_GROUP_HEADINGS: tuple[tuple[CriticalType, str], ...] = (
    ("decision", "DECISIONS"),
    ("requirement", "REQUIREMENTS"),
    ("instruction", "INSTRUCTIONS"),
    ("custom", "OTHER CRITICAL"),
)


def matches_critical_pattern(content: str) -> bool:
    return any(pattern.search(content) for pattern, _ in CRITICAL_PATTERNS)


class CriticalContextManager:
    """
    Registry of critical context for one session.

    Items are kept in creation order.
    """

    def __init__(self, auto_detect: bool = True) -> None:
        self._auto_detect = auto_detect
        self._items: dict[str, CriticalContext] = {}
        self._lock = threading.Lock()

    @property
    def auto_detect(self) -> bool:
        return self._auto_detect

    def mark_critical(
        self,
        content: str,
        type: CriticalType | None = None,
        reason: str | None = None,
        source: str | None = None,
    ) -> CriticalContext:
        item = CriticalContext(
            type=type or self.infer_type(content),
            content=content,
            reason=reason,
            source=source,
        )
        with self._lock:
            self._items[item.id] = item
        logger.debug(
            "Marked critical: id=%s, type=%s",
            item.id,
            item.type,
            extra={"event": "critical.marked"},
        )
        return item

    def get_critical_context(self, type: CriticalType | None = None) -> list[CriticalContext]:
        with self._lock:
            items = list(self._items.values())
        if type is None:
            return items
        return [item for item in items if item.type == type]

    def get_critical_by_id(self, critical_id: str) -> CriticalContext | None:
        with self._lock:
            return self._items.get(critical_id)

    def remove_critical(self, critical_id: str) -> bool:
        with self._lock:
            return self._items.pop(critical_id, None) is not None

    def get_critical_count(self) -> int:
        with self._lock:
            return len(self._items)

    def is_critical(self, content: str) -> bool:
        """
        Decide whether ``content`` is critical.

        True when it equals or contains a registered item's content, or (with
        auto-detection on) when it matches one of the critical phrase patterns.
        """
        with self._lock:
            registered = [item.content for item in self._items.values()]
        for critical_content in registered:
            if critical_content and critical_content in content:
                return True
        return self._auto_detect and matches_critical_pattern(content)

    def infer_type(self, content: str) -> CriticalType:
        for pattern, critical_type in CRITICAL_PATTERNS:
            if pattern.search(content):
                return critical_type
        return "custom"

    def extract_critical_from_text(self, text: str) -> list[tuple[str, CriticalType]]:
        """Split ``text`` into sentences and return the ones matching a critical pattern."""
        results: list[tuple[str, CriticalType]] = []
        for sentence in _SENTENCE_SPLIT.split(text):
            sentence = sentence.strip()
            if sentence and matches_critical_pattern(sentence):
                results.append((sentence, self.infer_type(sentence)))
        return results

    def get_all_critical_content(self) -> str:
        """Render every item grouped by type, for re-injection into a prompt."""
        items = self.get_critical_context()
        if not items:
            return ""

        parts: list[str] = []
        for critical_type, heading in _GROUP_HEADINGS:
            contents = [item.content for item in items if item.type == critical_type]
            if contents:
                parts.append(f"{heading}:\n" + "\n".join(f"- {c}" for c in contents))
        return "\n\n".join(parts)
