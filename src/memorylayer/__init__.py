"""
MemoryLayer - budget-constrained working memory for AI coding assistants.

Quick start:
```python
from memorylayer import MemorySession, memorylayer_configure
from memorylayer.tiers import InMemoryArchiveTier, InMemoryCodebaseTier, InMemoryWorkingMemory

config = memorylayer_configure(assembly={"max_tokens": 4000})

session = MemorySession.from_config(
    config,
    working=InMemoryWorkingMemory(),
    codebase=InMemoryCodebaseTier(),
    archive=InMemoryArchiveTier(),
)

# Per-query context
result = await session.assemble("how are sessions persisted?")
print(result.context, result.sources, result.token_count)

# Session-wide health
session.mark_critical("We decided to use PostgreSQL for all persistence")
session.add_message("user", "Never log access tokens.")
health = session.get_context_health()
if health.compaction_needed:
    session.auto_compact()
```

Submodules:
- Context assembly: `from memorylayer.context import ContextAssembler, TokenBudget, RelevanceRanker`
- Health: `from memorylayer.health import ContextHealthMonitor, CriticalContextManager, DriftDetector`
- Compaction: `from memorylayer.compaction import CompactionEngine, CompactionOptions`
- Tiers: `from memorylayer.tiers import WorkingMemoryTier, CodebaseTier, ArchiveTier`
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Config
    "MemoryLayerConfig",
    "memorylayer_configure",
    # Core classes
    "MemorySession",
    "ContextAssembler",
    "AssemblyOptions",
    "TokenBudget",
    "ContextHealthMonitor",
    "CriticalContextManager",
    "CompactionEngine",
    "CompactionOptions",
    "estimate_tokens",
]

_EXPORTS: dict[str, tuple[str, str]] = {
    "MemoryLayerConfig": ("memorylayer.config", "MemoryLayerConfig"),
    "memorylayer_configure": ("memorylayer.config", "memorylayer_configure"),
    "MemorySession": ("memorylayer.session", "MemorySession"),
    "ContextAssembler": ("memorylayer.context.assembler", "ContextAssembler"),
    "AssemblyOptions": ("memorylayer.context.assembler", "AssemblyOptions"),
    "TokenBudget": ("memorylayer.context.budget", "TokenBudget"),
    "ContextHealthMonitor": ("memorylayer.health.monitor", "ContextHealthMonitor"),
    "CriticalContextManager": ("memorylayer.health.critical", "CriticalContextManager"),
    "CompactionEngine": ("memorylayer.compaction.engine", "CompactionEngine"),
    "CompactionOptions": ("memorylayer.compaction.policy", "CompactionOptions"),
    "estimate_tokens": ("memorylayer.providers.token_counter", "estimate_tokens"),
}


def __getattr__(name: str) -> Any:
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module_name, attr_name = target
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()).union(__all__))
