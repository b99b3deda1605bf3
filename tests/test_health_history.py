"""
Health history store tests

Module under test: memorylayer.health.history
"""

from datetime import datetime, timedelta, timezone

import pytest

from memorylayer.exception import HistoryStoreException
from memorylayer.health.history import (
    InMemoryHealthHistoryStore,
    SqliteHealthHistoryStore,
    create_history_store,
)
from memorylayer.health.types import HealthSnapshot, HealthState

BASE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _snapshot(minute: int, health: HealthState = HealthState.GOOD, utilization: float = 10.0) -> HealthSnapshot:
    return HealthSnapshot(
        timestamp=BASE + timedelta(minutes=minute),
        health=health,
        utilization_percent=utilization,
        drift_score=0.0,
        relevance_score=0.9,
        tokens_used=int(utilization * 10),
        tokens_limit=1000,
    )


class TestInMemoryHealthHistoryStore:
    """InMemoryHealthHistoryStore tests"""

    def test_recent_is_newest_first(self):
        store = InMemoryHealthHistoryStore()
        for minute in range(3):
            store.append(_snapshot(minute, utilization=float(minute)))

        recent = store.recent(2)

        assert [s.utilization_percent for s in recent] == [2.0, 1.0]

    def test_capacity_drops_oldest(self):
        store = InMemoryHealthHistoryStore(capacity=2)
        for minute in range(3):
            store.append(_snapshot(minute, utilization=float(minute)))

        assert [s.utilization_percent for s in store.recent(10)] == [2.0, 1.0]

    def test_mark_compaction_flags_latest(self):
        store = InMemoryHealthHistoryStore()
        store.append(_snapshot(0))
        store.append(_snapshot(1))

        store.mark_compaction()

        latest, previous = store.recent(2)
        assert latest.compaction_triggered is True
        assert previous.compaction_triggered is False

    def test_mark_compaction_on_empty_store(self):
        store = InMemoryHealthHistoryStore()

        store.mark_compaction()

        assert store.recent(5) == []

    def test_invalid_capacity(self):
        with pytest.raises(HistoryStoreException):
            InMemoryHealthHistoryStore(capacity=0)


class TestSqliteHealthHistoryStore:
    """SqliteHealthHistoryStore tests"""

    def test_round_trip_and_order(self, tmp_path):
        store = SqliteHealthHistoryStore(tmp_path / "health.db")
        store.append(_snapshot(0, HealthState.GOOD, 10.0))
        store.append(_snapshot(1, HealthState.WARNING, 75.0))
        store.append(_snapshot(2, HealthState.CRITICAL, 90.0))

        recent = store.recent(2)

        assert [s.health for s in recent] == [HealthState.CRITICAL, HealthState.WARNING]
        assert recent[0].utilization_percent == 90.0
        assert recent[0].tokens_limit == 1000
        assert recent[0].timestamp == BASE + timedelta(minutes=2)

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "health.db"
        SqliteHealthHistoryStore(path).append(_snapshot(0))

        reopened = SqliteHealthHistoryStore(path)

        assert len(reopened.recent(10)) == 1

    def test_mark_compaction(self, tmp_path):
        store = SqliteHealthHistoryStore(tmp_path / "health.db")
        store.append(_snapshot(0))
        store.append(_snapshot(1))

        store.mark_compaction()

        latest, previous = store.recent(2)
        assert latest.compaction_triggered is True
        assert previous.compaction_triggered is False

    def test_unopenable_path_raises_store_exception(self, tmp_path):
        """A directory is not a database file."""
        with pytest.raises(HistoryStoreException):
            SqliteHealthHistoryStore(tmp_path)


class TestCreateHistoryStore:
    def test_in_memory_without_path(self):
        assert isinstance(create_history_store(None), InMemoryHealthHistoryStore)

    def test_sqlite_with_path(self, tmp_path):
        store = create_history_store(str(tmp_path / "h.db"))

        assert isinstance(store, SqliteHealthHistoryStore)
