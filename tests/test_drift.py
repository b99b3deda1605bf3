"""
Drift detection tests

Module under test: memorylayer.health.drift
"""

import pytest

from memorylayer.health.critical import CriticalContextManager
from memorylayer.health.drift import DriftDetector, extract_requirements, topic_shift


@pytest.fixture
def detector() -> DriftDetector:
    return DriftDetector(CriticalContextManager())


class TestExtractRequirements:
    def test_must_phrase(self):
        assert extract_requirements("You must validate all inputs before saving.") == [
            "validate all inputs before saving"
        ]

    def test_ensure_and_never(self):
        assert extract_requirements("Please ensure the tests pass. Never push to main!") == [
            "the tests pass",
            "push to main",
        ]

    def test_short_phrases_ignored(self):
        assert extract_requirements("You must go.") == []


class TestDriftDetector:
    """DriftDetector tests"""

    def test_empty_conversation(self, detector):
        result = detector.detect_drift()

        assert result.drift_score == 0.0
        assert result.drift_detected is False
        assert result.missing_requirements == []
        assert result.contradictions == []

    def test_requirements_only_from_first_five_messages(self, detector):
        detector.add_message("user", "You must validate all inputs before saving.")
        for i in range(4):
            detector.add_message("assistant", f"Working on item {i}")
        detector.add_message("user", "You must also rotate the signing keys.")

        assert detector.get_requirements() == ["validate all inputs before saving"]

    def test_missing_requirement_raises_drift(self, detector):
        detector.add_message("user", "You must validate all inputs before saving.")
        detector.add_message("assistant", "Here is the new logging setup for the worker.")

        result = detector.detect_drift()

        assert result.drift_score == 0.4
        assert result.drift_detected is True
        assert result.missing_requirements == ["validate all inputs before saving"]
        assert result.suggested_reminders == ["Remember: validate all inputs before saving"]

    def test_adhered_requirement_has_no_drift(self, detector):
        detector.add_message("user", "You must validate all inputs before saving.")
        detector.add_message("assistant", "I now validate the inputs before saving them.")

        result = detector.detect_drift()

        assert result.drift_score == 0.0
        assert result.missing_requirements == []

    def test_explicit_requirement(self, detector):
        detector.add_requirement("encrypt customer records")
        detector.add_message("assistant", "Added the export endpoint.")

        result = detector.detect_drift()

        assert result.missing_requirements == ["encrypt customer records"]

    def test_contradiction_detected(self, detector):
        detector.add_message("assistant", "We will use postgres for storage.")
        detector.add_message("assistant", "Let's use mysql instead.")

        result = detector.detect_drift()

        assert len(result.contradictions) == 1
        assert result.contradictions[0].severity == "low"
        assert result.contradictions[0].earlier == "We will use postgres for storage."
        assert result.drift_score == 0.15
        assert result.drift_detected is False

    def test_same_subject_is_not_a_contradiction(self, detector):
        detector.add_message("assistant", "We will use postgres for storage.")
        detector.add_message("assistant", "Fine, use postgres instead of files.")

        assert detector.detect_drift().contradictions == []

    def test_user_messages_never_contradict(self, detector):
        detector.add_message("user", "We will use postgres for storage.")
        detector.add_message("user", "Let's use mysql instead.")

        assert detector.detect_drift().contradictions == []

    def test_contradiction_severity_by_distance(self, detector):
        detector.add_message("assistant", "We will use postgres for storage.")
        for i in range(6):
            detector.add_message("user", f"ok {i}")
        detector.add_message("assistant", "Let's use mysql instead.")

        assert detector.detect_drift().contradictions[0].severity == "medium"

    def test_topic_shift(self, detector):
        for _ in range(10):
            detector.add_message("user", "update the database schema migration")
        for _ in range(10):
            detector.add_message("user", "style the react component with css")

        result = detector.detect_drift()

        assert result.topic_shift == 1.0
        assert result.drift_score == 0.3
        assert result.drift_detected is True

    def test_critical_reminders(self):
        manager = CriticalContextManager()
        manager.mark_critical("Use Postgres everywhere", type="decision")
        manager.mark_critical("Respond within 200ms", type="requirement")
        manager.mark_critical("Be friendly", type="custom")
        detector = DriftDetector(manager)

        result = detector.detect_drift()

        assert result.suggested_reminders == [
            "Decision: Use Postgres everywhere",
            "Requirement: Respond within 200ms",
        ]

    def test_clear_history(self, detector):
        detector.add_message("user", "You must validate all inputs before saving.")

        detector.clear_history()

        assert detector.get_history() == []
        assert detector.get_requirements() == []


class TestTopicShift:
    def test_no_topics_means_no_shift(self):
        assert topic_shift([], []) == 0.0
