"""
Embedding provider configuration.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class EmbeddingProvider(str, Enum):
    """
    Supported embedding providers.

    - FAKE: deterministic hash embeddings from langchain_core (offline, tests)
    - OPENAI: OpenAI embeddings via langchain-openai
    """

    FAKE = "fake"
    OPENAI = "openai"

    @classmethod
    def list_supported(cls) -> list[str]:
        return [p.value for p in cls]


class EmbeddingConfig(BaseModel):
    """Embedding service configuration."""

    provider: str = Field(default="fake", description="Embedding provider: fake | openai")
    model: str | None = Field(default=None, description="Embedding model name")
    api_key: str | None = Field(default=None, description="Provider API key")
    base_url: str | None = Field(default=None, description="Provider base URL")
    dimension: int = Field(default=384, gt=0, description="Vector dimension")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        supported = set(EmbeddingProvider.list_supported())
        if v.lower() not in supported:
            raise ValueError(
                f"Unsupported embedding provider: '{v}'. Supported: {', '.join(sorted(supported))}"
            )
        return v.lower()

    def is_configured(self) -> bool:
        if self.provider == EmbeddingProvider.FAKE.value:
            return True
        return bool(self.api_key and self.model)
