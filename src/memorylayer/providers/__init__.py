"""
Providers module

Token estimation and embedding services.
"""

from memorylayer.providers.config import EmbeddingConfig, EmbeddingProvider
from memorylayer.providers.embedding import (
    EmbeddingFactory,
    EmbeddingService,
    LangChainEmbeddingService,
    clear_embedding_cache,
    create_embedding_service,
)
from memorylayer.providers.token_counter import (
    BaseTokenCounter,
    EstimateTokenCounter,
    estimate_tokens,
    get_token_counter,
    reset_token_counter,
    truncate_to_tokens,
)

__all__ = [
    "EmbeddingConfig",
    "EmbeddingProvider",
    "EmbeddingService",
    "EmbeddingFactory",
    "LangChainEmbeddingService",
    "create_embedding_service",
    "clear_embedding_cache",
    "BaseTokenCounter",
    "EstimateTokenCounter",
    "get_token_counter",
    "reset_token_counter",
    "estimate_tokens",
    "truncate_to_tokens",
]
