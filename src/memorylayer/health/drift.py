"""
DriftDetector - is the conversation still honouring its early requirements?

Drift combines three signals:
- requirement adherence: requirements stated in the first user turns whose
  keywords no longer show up in recent assistant replies
- contradictions: later assistant statements reversing earlier ones
  ("will use X" ... "use Y instead")
- topic shift: how far the topics of the last ten messages moved away from the
  first ten

score = min(1, (1 - adherence) * 0.4 + min(0.15 * contradictions, 0.3) + topic_shift * 0.3)
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from memorylayer.health.critical import CriticalContextManager
from memorylayer.health.monitor import DRIFT_WARNING
from memorylayer.health.types import CriticalContext
from memorylayer.utils.time import utc_now

logger = logging.getLogger(__name__)

MessageRole = Literal["user", "assistant", "system"]
Severity = Literal["low", "medium", "high"]

REQUIREMENT_WINDOW = 5
TOPIC_WINDOW = 10
MAX_CONTRADICTIONS = 5
MAX_REQUIREMENT_REMINDERS = 3
MAX_CRITICAL_REMINDERS = 3

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "authentication": ("auth", "login", "jwt", "session", "token", "oauth", "password"),
    "database": ("database", "db", "sql", "query", "table", "schema", "migration"),
    "api": ("api", "endpoint", "rest", "graphql", "route", "request", "response"),
    "frontend": ("react", "vue", "component", "ui", "css", "html", "dom"),
    "testing": ("test", "spec", "mock", "assert", "coverage", "jest", "vitest"),
    "deployment": ("deploy", "docker", "kubernetes", "ci", "cd", "pipeline"),
    "security": ("security", "encrypt", "hash", "vulnerability", "xss", "csrf"),
    "performance": ("performance", "optimize", "cache", "speed", "memory", "latency"),
}

# (earlier statement, later statement) pairs
CONTRADICTION_PATTERNS: tuple[tuple[re.Pattern[str], re.Pattern[str]], ...] = (
    (re.compile(r"will use (\w+)", re.IGNORECASE), re.compile(r"use (\w+) instead", re.IGNORECASE)),
    (re.compile(r"decided on (\w+)", re.IGNORECASE), re.compile(r"switch(?:ed|ing)? to (\w+)", re.IGNORECASE)),
    (re.compile(r"must (\w+)", re.IGNORECASE), re.compile(r"don't need to (\w+)", re.IGNORECASE)),
    (re.compile(r"always (\w+)", re.IGNORECASE), re.compile(r"never (\w+)", re.IGNORECASE)),
)

REQUIREMENT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:must|should|need to|have to|required to)\s+(.+?)(?:[.!?]|$)", re.IGNORECASE),
    re.compile(r"(?:make sure|ensure|always)\s+(.+?)(?:[.!?]|$)", re.IGNORECASE),
    re.compile(r"(?:don't|never|avoid)\s+(.+?)(?:[.!?]|$)", re.IGNORECASE),
)


class ConversationMessage(BaseModel):
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class Contradiction(BaseModel):
    earlier: str
    later: str
    severity: Severity


class DriftResult(BaseModel):
    drift_score: float
    drift_detected: bool
    missing_requirements: list[str] = Field(default_factory=list)
    contradictions: list[Contradiction] = Field(default_factory=list)
    suggested_reminders: list[str] = Field(default_factory=list)
    topic_shift: float = 0.0


def extract_requirements(text: str) -> list[str]:
    """Pull must/should/ensure/never style phrases out of a user message."""
    requirements: list[str] = []
    for pattern in REQUIREMENT_PATTERNS:
        for match in pattern.finditer(text):
            phrase = match.group(1)
            if phrase and 5 < len(phrase) < 200:
                requirements.append(phrase.strip())
    return requirements


def extract_topics(messages: list[ConversationMessage]) -> set[str]:
    text = " ".join(m.content.lower() for m in messages)
    return {
        topic
        for topic, keywords in TOPIC_KEYWORDS.items()
        if any(keyword in text for keyword in keywords)
    }


def topic_shift(early: list[ConversationMessage], recent: list[ConversationMessage]) -> float:
    """1 - Jaccard similarity of the two topic sets; 0 when either is empty."""
    early_topics = extract_topics(early)
    recent_topics = extract_topics(recent)
    if not early_topics or not recent_topics:
        return 0.0
    similarity = len(early_topics & recent_topics) / len(early_topics | recent_topics)
    return 1.0 - similarity


def _severity(distance: int) -> Severity:
    if distance > 10:
        return "high"
    if distance > 5:
        return "medium"
    return "low"


class DriftDetector:
    """Conversation tracker that scores drift against early requirements."""

    def __init__(self, critical_manager: CriticalContextManager) -> None:
        self._critical = critical_manager
        self._history: list[ConversationMessage] = []
        self._requirements: list[str] = []
        self._lock = threading.Lock()

    def add_message(
        self,
        role: MessageRole,
        content: str,
        timestamp: datetime | None = None,
    ) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content, timestamp=timestamp or utc_now())
        with self._lock:
            self._history.append(message)
            if role == "user" and len(self._history) <= REQUIREMENT_WINDOW:
                self._requirements.extend(extract_requirements(content))
        return message

    def add_requirement(self, requirement: str) -> None:
        with self._lock:
            self._requirements.append(requirement)

    def get_requirements(self) -> list[str]:
        with self._lock:
            return list(self._requirements)

    def get_history(self) -> list[ConversationMessage]:
        with self._lock:
            return list(self._history)

    def clear_history(self) -> None:
        with self._lock:
            self._history = []
            self._requirements = []

    def detect_drift(self) -> DriftResult:
        with self._lock:
            history = list(self._history)
            requirements = list(self._requirements)

        recent = history[-TOPIC_WINDOW:]
        early = history[:TOPIC_WINDOW]

        adherence, missing = self._check_adherence(requirements, recent)
        contradictions = self._find_contradictions(history)
        shift = topic_shift(early, recent)

        score = min(
            1.0,
            (1 - adherence) * 0.4
            + min(len(contradictions) * 0.15, 0.3)
            + shift * 0.3,
        )

        result = DriftResult(
            drift_score=round(score, 2),
            drift_detected=score >= DRIFT_WARNING,
            missing_requirements=missing,
            contradictions=contradictions,
            suggested_reminders=self._reminders(missing, self._critical.get_critical_context()),
            topic_shift=round(shift, 2),
        )
        logger.debug(
            "Drift computed: score=%s, missing=%s, contradictions=%s, topic_shift=%s",
            result.drift_score,
            len(missing),
            len(contradictions),
            result.topic_shift,
            extra={"event": "drift.detected" if result.drift_detected else "drift.checked"},
        )
        return result

    @staticmethod
    def _check_adherence(
        requirements: list[str],
        recent: list[ConversationMessage],
    ) -> tuple[float, list[str]]:
        if not requirements:
            return 1.0, []

        recent_text = " ".join(m.content.lower() for m in recent if m.role == "assistant")
        missing: list[str] = []
        found = 0
        for requirement in requirements:
            keywords = [w for w in requirement.lower().split() if len(w) > 3]
            matched = sum(1 for kw in keywords if kw in recent_text)
            if matched >= len(keywords) * 0.5:
                found += 1
            else:
                missing.append(requirement)
        return found / len(requirements), missing

    @staticmethod
    def _find_contradictions(history: list[ConversationMessage]) -> list[Contradiction]:
        contradictions: list[Contradiction] = []
        for i, earlier in enumerate(history):
            if earlier.role != "assistant":
                continue
            for j in range(i + 1, len(history)):
                later = history[j]
                if later.role != "assistant":
                    continue
                for earlier_pattern, later_pattern in CONTRADICTION_PATTERNS:
                    earlier_match = earlier_pattern.search(earlier.content)
                    later_match = later_pattern.search(later.content)
                    if not earlier_match or not later_match:
                        continue
                    if earlier_match.group(1).lower() != later_match.group(1).lower():
                        contradictions.append(
                            Contradiction(
                                earlier=earlier.content[:100],
                                later=later.content[:100],
                                severity=_severity(j - i),
                            )
                        )
        return contradictions[-MAX_CONTRADICTIONS:]

    @staticmethod
    def _reminders(missing: list[str], critical: list[CriticalContext]) -> list[str]:
        reminders = [f"Remember: {req}" for req in missing[:MAX_REQUIREMENT_REMINDERS]]
        for item in critical[:MAX_CRITICAL_REMINDERS]:
            if item.type == "decision":
                reminders.append(f"Decision: {item.content}")
            elif item.type == "requirement":
                reminders.append(f"Requirement: {item.content}")
        return reminders
