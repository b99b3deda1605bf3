"""
MemoryLayer configuration system.

Supported configuration sources (highest to lowest priority):
1. Config file (toml/yaml/json)
2. Environment variables
3. Explicit code input
4. Code defaults

Config file example (memorylayer.toml):
```toml
[assembly]
max_tokens = 8000

[health]
token_limit = 150000
history_path = "./data/health.db"

[compaction]
preserve_recent = 12

[embedding]
provider = "openai"
model = "text-embedding-3-small"
```

Environment variable example (sensitive):
```bash
export MEMORYLAYER_EMBEDDING_API_KEY="sk-xxx"
export MEMORYLAYER_HEALTH_TOKEN_LIMIT=200000
```

Code example:
```python
from memorylayer.config import memorylayer_configure

config = memorylayer_configure(
    assembly={"max_tokens": 4000},
    health={"token_limit": 50000},
)
```
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Callable

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from memorylayer.compaction.config import CompactionConfig
from memorylayer.context.config import AssemblyConfig
from memorylayer.health.config import CriticalConfig, HealthConfig
from memorylayer.log import setup_logging
from memorylayer.providers.config import EmbeddingConfig

logger = logging.getLogger(__name__)


# === Config file sources ===

CONFIG_FILE_NAMES: tuple[str, ...] = ("memorylayer", "config")
CONFIG_FILE_SUFFIXES: tuple[str, ...] = (".toml", ".yaml", ".yml", ".json")


def _config_dirs() -> list[Path]:
    cwd = Path.cwd()
    return [cwd, cwd / "config", Path.home() / ".config" / "memorylayer"]


def _find_config_file() -> Path | None:
    """First existing ``<dir>/<name><suffix>``, directories searched in priority order."""
    for directory in _config_dirs():
        for name in CONFIG_FILE_NAMES:
            for suffix in CONFIG_FILE_SUFFIXES:
                candidate = directory / f"{name}{suffix}"
                if candidate.is_file():
                    return candidate
    return None


def _parse_yaml(text: str) -> Any:
    try:
        import yaml
    except ImportError:
        logger.warning("YAML config needs PyYAML: pip install memorylayer[yaml]")
        return {}
    return yaml.safe_load(text)


_PARSERS: dict[str, Callable[[str], Any]] = {
    ".toml": tomllib.loads,
    ".json": json.loads,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
}


def _load_config_file(file_path: Path) -> dict[str, Any]:
    """Parse ``file_path`` by suffix; anything but a top-level mapping is ignored."""
    parser = _PARSERS.get(file_path.suffix.lower())
    if parser is None:
        logger.warning("Unsupported config file format: %s", file_path.suffix)
        return {}

    data = parser(file_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Config file %s must contain a mapping, got %s", file_path, type(data).__name__)
        return {}
    return data


class FileConfigSource(PydanticBaseSettingsSource):
    """Settings source backed by one toml/yaml/json file."""

    def __init__(self, settings_cls: type[BaseSettings], config_file: Path | None = None):
        super().__init__(settings_cls)
        self.config_file = config_file or _find_config_file()
        self._data: dict[str, Any] = {}
        if self.config_file is None:
            return
        try:
            self._data = _load_config_file(self.config_file)
        except (OSError, ValueError) as e:
            logger.warning(
                "Ignoring unreadable config file %s: %s",
                self.config_file,
                e,
                extra={"event": "config.file_invalid"},
            )
        else:
            logger.debug("Config file loaded: %s", self.config_file, extra={"event": "config.file"})

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


# === Main config class ===


class MemoryLayerConfig(BaseSettings):
    """
    Engine global configuration.

    Two independent token ceilings live here and must not be conflated:
    ``assembly.max_tokens`` bounds one assembled context per query, while
    ``health.token_limit`` bounds everything tracked for the whole session.
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMORYLAYER_",
        # Single underscore as nested delimiter, split once:
        # MEMORYLAYER_HEALTH_TOKEN_LIMIT -> health.token_limit
        env_nested_delimiter="_",
        env_nested_max_split=1,
        extra="ignore",
    )

    config_file: Path | None = Field(default=None, exclude=True)

    assembly: AssemblyConfig = Field(default_factory=AssemblyConfig)
    """Per-query context assembly."""

    health: HealthConfig = Field(default_factory=HealthConfig)
    """Session-wide health monitoring."""

    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    """Compaction defaults."""

    critical: CriticalConfig = Field(default_factory=CriticalConfig)
    """Critical-context detection."""

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    """Embedding service."""

    verbose: bool = Field(default=False, description="Enable verbose logging")

    log_level: str = Field(default="INFO", description="Log level")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Customize source priority (earlier overrides later).

        Priority (high to low):
        1. Config file (FileConfigSource)
        2. Environment variables
        3. Code input
        """
        init_data = init_settings()
        config_file = init_data.get("config_file")
        return (
            FileConfigSource(
                settings_cls,
                Path(config_file) if config_file else None,
            ),
            env_settings,
            init_settings,
        )

    def is_embedding_configured(self) -> bool:
        return self.embedding.is_configured()

    def validate_embedding(self) -> None:
        """Validate embedding configuration."""
        if not self.is_embedding_configured():
            raise ConfigurationError(
                "Embedding is not configured. Context assembly requires an embedding service.\n"
                "Config file example (memorylayer.toml):\n"
                "  [embedding]\n"
                "  provider = \"openai\"\n"
                "  model = \"text-embedding-3-small\"\n\n"
                "Environment variable example:\n"
                "  export MEMORYLAYER_EMBEDDING_API_KEY=\"sk-xxx\"\n"
                "  export MEMORYLAYER_EMBEDDING_MODEL=\"text-embedding-3-small\""
            )


class ConfigurationError(Exception):
    """Configuration error."""

    pass


_config: MemoryLayerConfig | None = None


def memorylayer_configure(
    config_file: str | Path | None = None,
    **kwargs,
) -> MemoryLayerConfig:
    """
    Configure the engine and install the result as the process configuration.

    Priority (high to low):
    1. Config file
    2. Environment variables (MEMORYLAYER_ prefix)
    3. Code input (**kwargs)
    4. Defaults
    """
    global _config

    config = MemoryLayerConfig(
        config_file=Path(config_file) if config_file else None,
        **kwargs,
    )

    if config.verbose:
        setup_logging(logging.DEBUG)
    else:
        setup_logging(config.log_level)

    logger.info(
        "Configuration loaded: max_tokens=%s, token_limit=%s, embedding=%s",
        config.assembly.max_tokens,
        config.health.token_limit,
        config.embedding.provider,
        extra={"event": "config.loaded"},
    )

    _config = config
    return config


def get_config() -> MemoryLayerConfig:
    """Return the process configuration, building defaults on first use."""
    global _config
    if _config is None:
        _config = MemoryLayerConfig()
    return _config


def reset_config() -> None:
    """Drop the process configuration (tests)."""
    global _config
    _config = None
