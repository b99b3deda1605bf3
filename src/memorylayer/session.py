"""
MemorySession - one assistant session's memory layer.

Wires the per-query assembler and the session-wide health components together
behind one handle:

- ContextAssembler: budgeted retrieval from the three tiers (when tiers are given)
- CriticalContextManager: content that survives every compaction
- ContextHealthMonitor: tracked chunks, decay and health reports
- DriftDetector: requirement adherence over the conversation
- CompactionEngine: shrinks tracked context on demand

Usage:
```python
from memorylayer import MemorySession
from memorylayer.tiers import InMemoryArchiveTier, InMemoryCodebaseTier, InMemoryWorkingMemory

session = MemorySession.from_config(
    working=InMemoryWorkingMemory(),
    codebase=InMemoryCodebaseTier(),
    archive=InMemoryArchiveTier(),
)
session.add_message("user", "We must keep the public API backwards compatible.")
result = await session.assemble("where is the retry policy configured?")
print(session.get_context_summary())
```
"""

from __future__ import annotations

import logging
import uuid

from memorylayer.compaction import (
    CompactionEngine,
    CompactionOptions,
    CompactionResult,
    CompactionStrategy,
    CompactionSuggestion,
    Summarizer,
)
from memorylayer.config import MemoryLayerConfig, get_config
from memorylayer.context import AssembledContext, AssemblyOptions, ContextAssembler
from memorylayer.exception import MemoryLayerException
from memorylayer.health import (
    ContextChunk,
    ContextHealth,
    ContextHealthMonitor,
    CriticalContext,
    CriticalContextManager,
    DriftDetector,
    DriftResult,
    HealthSnapshot,
    create_history_store,
)
from memorylayer.health.drift import MessageRole
from memorylayer.health.types import ChunkType, CriticalType
from memorylayer.log import bind_log_context
from memorylayer.providers import EmbeddingService, create_embedding_service
from memorylayer.tiers import ArchiveTier, CodebaseTier, WorkingMemoryTier

logger = logging.getLogger(__name__)


def _format_percent(value: float) -> str:
    return f"{value:g}"


class MemorySession:
    """
    Memory layer for one session.

    Sessions are independent handles; nothing is shared between two sessions
    except the embedding instances cached by the provider factory.
    """

    def __init__(
        self,
        *,
        critical_manager: CriticalContextManager,
        monitor: ContextHealthMonitor,
        drift_detector: DriftDetector,
        compaction_engine: CompactionEngine,
        assembler: ContextAssembler | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._critical = critical_manager
        self._monitor = monitor
        self._drift = drift_detector
        self._compaction = compaction_engine
        self._assembler = assembler

    @classmethod
    def from_config(
        cls,
        config: MemoryLayerConfig | None = None,
        *,
        working: WorkingMemoryTier | None = None,
        codebase: CodebaseTier | None = None,
        archive: ArchiveTier | None = None,
        embedding_service: EmbeddingService | None = None,
        summarizer: Summarizer | None = None,
        session_id: str | None = None,
    ) -> MemorySession:
        """
        Build a session from configuration.

        The assembler is created only when all three tiers are given. Without an
        explicit ``embedding_service`` one is built from ``config.embedding``.
        """
        config = config or get_config()

        critical = CriticalContextManager(auto_detect=config.critical.auto_detect)
        monitor = ContextHealthMonitor(
            critical,
            token_limit=config.health.token_limit,
            history_store=create_history_store(
                config.health.history_path,
                capacity=config.health.history_capacity,
            ),
            history_limit=config.health.history_limit,
        )
        drift = DriftDetector(critical)
        engine = CompactionEngine(monitor, summarizer=summarizer, config=config.compaction)

        assembler = None
        if working is not None and codebase is not None and archive is not None:
            if embedding_service is None:
                config.validate_embedding()
                embedding_service = create_embedding_service(config.embedding)
            assembler = ContextAssembler(
                working=working,
                codebase=codebase,
                archive=archive,
                embedding_service=embedding_service,
                config=config.assembly,
            )

        session = cls(
            critical_manager=critical,
            monitor=monitor,
            drift_detector=drift,
            compaction_engine=engine,
            assembler=assembler,
            session_id=session_id,
        )
        logger.info(
            "Session created: session_id=%s, token_limit=%s, assembler=%s",
            session.session_id,
            monitor.token_limit,
            assembler is not None,
            extra={"event": "session.created", "session_id": session.session_id},
        )
        return session

    @property
    def monitor(self) -> ContextHealthMonitor:
        return self._monitor

    @property
    def critical_manager(self) -> CriticalContextManager:
        return self._critical

    @property
    def drift_detector(self) -> DriftDetector:
        return self._drift

    # ========== Context assembly ==========

    async def assemble(self, query: str, options: AssemblyOptions | None = None) -> AssembledContext:
        if self._assembler is None:
            raise MemoryLayerException(
                "Context assembly needs working, codebase and archive tiers",
                session_id=self.session_id,
            )
        with bind_log_context(session_id=self.session_id, operation="assemble"):
            try:
                return await self._assembler.assemble(query, options)
            except MemoryLayerException as e:
                e.attach_session_id(self.session_id)
                raise

    # ========== Context health ==========

    def get_context_health(self) -> ContextHealth:
        """Health report with drift computed from the tracked conversation."""
        drift = self._drift.detect_drift()
        return self._monitor.get_health(drift.drift_score)

    def get_health(self, drift_score: float = 0.0) -> ContextHealth:
        return self._monitor.get_health(drift_score)

    def get_health_history(self, limit: int | None = None) -> list[HealthSnapshot]:
        return self._monitor.get_health_history(limit)

    def set_token_limit(self, limit: int) -> None:
        self._monitor.token_limit = limit

    def add_context_chunk(
        self,
        content: str,
        tokens: int | None = None,
        chunk_type: ChunkType = "message",
        source: str = "session",
    ) -> ContextChunk:
        return self._monitor.add_chunk(content, tokens=tokens, source=source, chunk_type=chunk_type)

    def estimate_tokens(self, text: str) -> int:
        return self._monitor.estimate_tokens(text)

    # ========== Conversation ==========

    def add_message(self, role: MessageRole, content: str) -> ContextChunk:
        """Track a message for drift detection and as a context chunk."""
        self._drift.add_message(role, content)
        return self._monitor.add_chunk(content, source=role, chunk_type="message")

    def clear_conversation(self) -> None:
        self._drift.clear_history()
        self._monitor.clear_chunks()

    # ========== Drift ==========

    def detect_drift(self) -> DriftResult:
        return self._drift.detect_drift()

    def add_requirement(self, requirement: str) -> None:
        self._drift.add_requirement(requirement)

    def get_requirements(self) -> list[str]:
        return self._drift.get_requirements()

    # ========== Critical context ==========

    def mark_critical(
        self,
        content: str,
        type: CriticalType | None = None,
        reason: str | None = None,
        source: str | None = None,
    ) -> CriticalContext:
        return self._critical.mark_critical(content, type=type, reason=reason, source=source)

    def get_critical_context(self, type: CriticalType | None = None) -> list[CriticalContext]:
        return self._critical.get_critical_context(type)

    def remove_critical(self, critical_id: str) -> bool:
        return self._critical.remove_critical(critical_id)

    def is_critical(self, content: str) -> bool:
        return self._critical.is_critical(content)

    def extract_critical_from_text(self, text: str) -> list[tuple[str, CriticalType]]:
        return self._critical.extract_critical_from_text(text)

    def get_all_critical_content(self) -> str:
        return self._critical.get_all_critical_content()

    # ========== Compaction ==========

    def trigger_compaction(
        self,
        options: CompactionOptions | CompactionStrategy,
    ) -> CompactionResult:
        if isinstance(options, str):
            options = CompactionOptions(strategy=options)
        with bind_log_context(session_id=self.session_id, operation="compaction"):
            return self._compaction.trigger_compaction(options)

    def auto_compact(self) -> CompactionResult:
        with bind_log_context(session_id=self.session_id, operation="auto_compact"):
            return self._compaction.auto_compact()

    def suggest_compaction(self) -> CompactionSuggestion:
        return self._compaction.suggest_compaction()

    # ========== Summary ==========

    def get_context_summary(self) -> str:
        """Plain-text status block meant to be shown to the model."""
        health = self.get_context_health()
        drift = self._drift.detect_drift()
        critical = self._critical.get_all_critical_content()

        parts = [
            f"Context Health: {health.health.value.upper()} "
            f"({_format_percent(health.utilization_percent)}% used)"
        ]

        if health.drift_detected:
            parts.append(f"\nWARNING: Drift detected (score: {_format_percent(health.drift_score)})")
            if drift.missing_requirements:
                parts.append("\nMissing requirements:")
                parts.extend(f"- {req}" for req in drift.missing_requirements[:3])
            if drift.suggested_reminders:
                parts.append("\nReminders:")
                parts.extend(f"- {reminder}" for reminder in drift.suggested_reminders[:3])

        if critical:
            parts.append(f"\n{critical}")

        if health.compaction_needed:
            first = health.suggestions[0] if health.suggestions else "Consider compacting context"
            parts.append(f"\nSuggestion: {first}")

        return "\n".join(parts)
