"""
Embedding service tests

Module under test: memorylayer.providers.embedding
"""

import pytest
from langchain_core.embeddings import Embeddings

from memorylayer.providers import (
    EmbeddingConfig,
    EmbeddingFactory,
    EmbeddingService,
    LangChainEmbeddingService,
    create_embedding_service,
)


class _CountingEmbeddings(Embeddings):
    def __init__(self) -> None:
        self.calls: list[str] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        return [float(len(text)), 1.0]


class TestLangChainEmbeddingService:
    """LangChainEmbeddingService tests"""

    @pytest.mark.asyncio
    async def test_delegates_to_embeddings(self):
        embeddings = _CountingEmbeddings()
        service = LangChainEmbeddingService(embeddings)

        vector = await service.embed("abc")

        assert vector == [3.0, 1.0]
        assert embeddings.calls == ["abc"]
        assert service.embeddings is embeddings

    def test_satisfies_protocol(self):
        assert isinstance(LangChainEmbeddingService(_CountingEmbeddings()), EmbeddingService)


class TestCreateEmbeddingService:
    """create_embedding_service tests"""

    @pytest.mark.asyncio
    async def test_fake_provider_is_deterministic(self):
        service = create_embedding_service(EmbeddingConfig(provider="fake", dimension=16))

        first = await service.embed("where is the retry policy?")
        second = await service.embed("where is the retry policy?")

        assert len(first) == 16
        assert first == second

    def test_instances_cached_per_config(self):
        config = EmbeddingConfig(provider="fake", dimension=16)

        first = create_embedding_service(config)
        second = create_embedding_service(config)
        other = create_embedding_service(EmbeddingConfig(provider="fake", dimension=32))

        assert first.embeddings is second.embeddings
        assert other.embeddings is not first.embeddings

    def test_unknown_provider_rejected_by_factory(self):
        config = EmbeddingConfig.model_construct(provider="bogus", dimension=8)

        with pytest.raises(ValueError):
            EmbeddingFactory.create_embeddings(config)
