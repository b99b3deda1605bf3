"""
Embedding service.

The engine needs exactly one capability from an embedding backend: turn a
query into a vector, asynchronously. Any LangChain ``Embeddings`` instance can
provide it through ``LangChainEmbeddingService``.

Usage:
```python
from memorylayer.providers.embedding import create_embedding_service
from memorylayer.providers.config import EmbeddingConfig

service = create_embedding_service(EmbeddingConfig(provider="fake", dimension=64))
vector = await service.embed("where is the retry policy configured?")
```
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Protocol, runtime_checkable

from langchain_core.embeddings import DeterministicFakeEmbedding, Embeddings

from memorylayer.providers.config import EmbeddingConfig, EmbeddingProvider

logger = logging.getLogger(__name__)


@runtime_checkable
class EmbeddingService(Protocol):
    """Single asynchronous embedding call; errors propagate to the caller."""

    async def embed(self, text: str) -> list[float]: ...


class LangChainEmbeddingService:
    """Adapt a LangChain ``Embeddings`` to ``EmbeddingService``."""

    def __init__(self, embeddings: Embeddings) -> None:
        self._embeddings = embeddings

    @property
    def embeddings(self) -> Embeddings:
        return self._embeddings

    async def embed(self, text: str) -> list[float]:
        return await self._embeddings.aembed_query(text)


class EmbeddingFactory:
    """Build LangChain embeddings from configuration."""

    @staticmethod
    def create_embeddings(config: EmbeddingConfig) -> Embeddings:
        provider = config.provider

        if provider == EmbeddingProvider.FAKE.value:
            return DeterministicFakeEmbedding(size=config.dimension)

        if provider == EmbeddingProvider.OPENAI.value:
            try:
                from langchain_openai import OpenAIEmbeddings
            except ImportError as err:
                raise ImportError(
                    "OpenAI embeddings require langchain-openai:\n"
                    "  pip install memorylayer[openai]"
                ) from err

            params: dict = {
                "model": config.model or "text-embedding-3-small",
                "api_key": config.api_key,
            }
            if config.base_url:
                params["base_url"] = config.base_url
            return OpenAIEmbeddings(**params)

        raise ValueError(f"Unsupported embedding provider: {provider}")


# ==================== Embedding instance cache ====================
_CACHE_CAPACITY = 20
_instances: OrderedDict[tuple, Embeddings] = OrderedDict()
_instances_lock = threading.Lock()


def _cache_key(config: EmbeddingConfig) -> tuple:
    return (config.provider, config.model, config.api_key, config.base_url, config.dimension)


def create_embedding_service(config: EmbeddingConfig) -> LangChainEmbeddingService:
    """
    Return an embedding service for ``config``.

    Underlying LangChain instances are shared per
    (provider, model, api_key, base_url, dimension); the least recently used
    one is evicted once the cache is full.
    """
    key = _cache_key(config)
    with _instances_lock:
        embeddings = _instances.get(key)
        if embeddings is not None:
            _instances.move_to_end(key)
            return LangChainEmbeddingService(embeddings)

        embeddings = EmbeddingFactory.create_embeddings(config)
        _instances[key] = embeddings
        if len(_instances) > _CACHE_CAPACITY:
            _instances.popitem(last=False)

    logger.info(
        "Created embeddings: provider=%s, model=%s, dimension=%s",
        config.provider,
        config.model,
        config.dimension,
        extra={"event": "embedding.created"},
    )
    return LangChainEmbeddingService(embeddings)


def clear_embedding_cache() -> None:
    """Drop cached embedding instances (tests)."""
    with _instances_lock:
        _instances.clear()
