"""
Health history stores.

Every ``get_health`` call appends a snapshot; compaction marks the latest one.
The monitor treats the store as telemetry: store errors surface here as
``HistoryStoreException`` and are swallowed by the caller.

- InMemoryHealthHistoryStore: bounded deque, lost on restart
- SqliteHealthHistoryStore: SQLite file, table ``context_health_history``
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from memorylayer.exception import HistoryStoreException
from memorylayer.health.types import HealthSnapshot, HealthState

logger = logging.getLogger(__name__)


class HealthHistoryStore(ABC):
    """Append-only health history."""

    @abstractmethod
    def append(self, snapshot: HealthSnapshot) -> None:
        """Record one snapshot."""

    @abstractmethod
    def recent(self, limit: int) -> list[HealthSnapshot]:
        """Return up to ``limit`` snapshots, most recent first."""

    @abstractmethod
    def mark_compaction(self) -> None:
        """Flag the latest snapshot as having triggered a compaction."""


class InMemoryHealthHistoryStore(HealthHistoryStore):
    def __init__(self, capacity: int = 1000) -> None:
        if capacity <= 0:
            raise HistoryStoreException(f"capacity must be positive, got {capacity}")
        self._rows: deque[HealthSnapshot] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, snapshot: HealthSnapshot) -> None:
        with self._lock:
            self._rows.append(snapshot)

    def recent(self, limit: int) -> list[HealthSnapshot]:
        if limit <= 0:
            return []
        with self._lock:
            rows = list(self._rows)
        return rows[::-1][:limit]

    def mark_compaction(self) -> None:
        with self._lock:
            if self._rows:
                self._rows[-1] = self._rows[-1].model_copy(update={"compaction_triggered": True})


class SqliteHealthHistoryStore(HealthHistoryStore):
    """
    SQLite-backed history.

    Args:
        database_path: SQLite file; parent directories are created on demand
    """

    def __init__(self, database_path: str | Path) -> None:
        self.database_path = str(database_path)
        try:
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (OSError, sqlite3.Error) as e:
            raise HistoryStoreException(
                f"Failed to initialise health history at {self.database_path}",
                cause=e,
                metadata={"database_path": self.database_path},
            ) from e

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.database_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS context_health_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL NOT NULL,
                    tokens_used INTEGER NOT NULL,
                    tokens_limit INTEGER NOT NULL,
                    utilization_percent REAL NOT NULL,
                    drift_score REAL NOT NULL,
                    relevance_score REAL NOT NULL,
                    health TEXT NOT NULL,
                    compaction_triggered INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_context_health_timestamp ON context_health_history(timestamp)"
            )
            conn.commit()

    def append(self, snapshot: HealthSnapshot) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO context_health_history
                    (timestamp, tokens_used, tokens_limit, utilization_percent,
                     drift_score, relevance_score, health, compaction_triggered)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        snapshot.timestamp.timestamp(),
                        snapshot.tokens_used,
                        snapshot.tokens_limit,
                        snapshot.utilization_percent,
                        snapshot.drift_score,
                        snapshot.relevance_score,
                        snapshot.health.value,
                        1 if snapshot.compaction_triggered else 0,
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise HistoryStoreException("Failed to append health snapshot", cause=e) from e

    def recent(self, limit: int) -> list[HealthSnapshot]:
        if limit <= 0:
            return []
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    """
                    SELECT timestamp, health, utilization_percent, drift_score,
                           relevance_score, tokens_used, tokens_limit, compaction_triggered
                    FROM context_health_history
                    ORDER BY timestamp DESC, id DESC
                    LIMIT ?
                    """,
                    (limit,),
                ).fetchall()
        except sqlite3.Error as e:
            raise HistoryStoreException("Failed to read health history", cause=e) from e

        return [
            HealthSnapshot(
                timestamp=datetime.fromtimestamp(row[0], tz=timezone.utc),
                health=HealthState(row[1]),
                utilization_percent=row[2],
                drift_score=row[3],
                relevance_score=row[4],
                tokens_used=row[5],
                tokens_limit=row[6],
                compaction_triggered=bool(row[7]),
            )
            for row in rows
        ]

    def mark_compaction(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    UPDATE context_health_history SET compaction_triggered = 1
                    WHERE id = (SELECT MAX(id) FROM context_health_history)
                    """
                )
                conn.commit()
        except sqlite3.Error as e:
            raise HistoryStoreException("Failed to mark compaction", cause=e) from e


def create_history_store(
    database_path: str | Path | None = None,
    capacity: int = 1000,
) -> HealthHistoryStore:
    """SQLite store when a path is given, in-memory otherwise."""
    if database_path:
        logger.info(
            "Health history persisted to %s",
            database_path,
            extra={"event": "history.sqlite"},
        )
        return SqliteHealthHistoryStore(database_path)
    return InMemoryHealthHistoryStore(capacity=capacity)
