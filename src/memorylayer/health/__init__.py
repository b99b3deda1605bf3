"""
Health module

Session-wide context tracking:
- CriticalContextManager: content that is never compressed
- ContextHealthMonitor: chunk list, relevance decay, health reports
- DriftDetector: requirement adherence, contradictions, topic shift
- HealthHistoryStore: health snapshot persistence
"""

from memorylayer.health.config import CriticalConfig, HealthConfig
from memorylayer.health.critical import CriticalContextManager
from memorylayer.health.drift import (
    Contradiction,
    ConversationMessage,
    DriftDetector,
    DriftResult,
)
from memorylayer.health.history import (
    HealthHistoryStore,
    InMemoryHealthHistoryStore,
    SqliteHealthHistoryStore,
    create_history_store,
)
from memorylayer.health.monitor import ContextHealthMonitor, classify_health
from memorylayer.health.types import (
    ContextChunk,
    ContextHealth,
    CriticalContext,
    HealthSnapshot,
    HealthState,
)

__all__ = [
    # Config
    "HealthConfig",
    "CriticalConfig",
    # Critical context
    "CriticalContext",
    "CriticalContextManager",
    # Monitor
    "ContextChunk",
    "ContextHealth",
    "ContextHealthMonitor",
    "HealthState",
    "classify_health",
    # Drift
    "ConversationMessage",
    "Contradiction",
    "DriftDetector",
    "DriftResult",
    # History
    "HealthSnapshot",
    "HealthHistoryStore",
    "InMemoryHealthHistoryStore",
    "SqliteHealthHistoryStore",
    "create_history_store",
]
