"""
Embeddings module - providers and the content-addressed cache.
"""

from ai_eval_engine.embeddings.openai_embeddings import (
    OpenAIEmbeddings,
    MockEmbeddings,
    get_embedding_provider,
)
from ai_eval_engine.embeddings.cache import CacheStats, EmbeddingCache

__all__ = [
    "OpenAIEmbeddings",
    "MockEmbeddings",
    "get_embedding_provider",
    "CacheStats",
    "EmbeddingCache",
]
