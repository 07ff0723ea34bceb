"""
Embedding providers - Single Responsibility: convert text to vectors.

SOLID PRINCIPLE: Single Responsibility
- This module ONLY handles embedding generation
- No caching, no similarity math
- Easy to swap for different embedding providers

Provider failures surface as EmbeddingProviderError. A provider never returns
a zero vector in place of an error, since that would silently turn an
infrastructure problem into a low similarity score.
"""

from __future__ import annotations

import hashlib
import logging

import numpy as np
from openai import AsyncOpenAI, OpenAIError

from ai_eval_engine.core.errors import EmbeddingProviderError
from ai_eval_engine.core.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAIEmbeddings:
    """
    OpenAI-based embedding provider.

    Speaks the JSON embeddings API (`{model, input}` -> `{data: [{embedding}]}`),
    so any OpenAI-compatible endpoint works via ``base_url``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def embed(self, text: str, model: str) -> np.ndarray:
        """Generate the embedding for a single text."""
        try:
            response = await self._client.embeddings.create(input=text, model=model)
        except OpenAIError as e:
            raise EmbeddingProviderError(
                f"Embedding request failed for model '{model}': {e}",
                {"model": model, "error_type": type(e).__name__},
            ) from e

        if not response.data:
            raise EmbeddingProviderError(
                f"Embedding response for model '{model}' contained no data",
                {"model": model},
            )
        return np.asarray(response.data[0].embedding, dtype=np.float64)


class MockEmbeddings:
    """
    Mock embedding provider for testing without API calls.

    Generates deterministic pseudo-embeddings seeded from the text hash.
    Identical texts map to identical vectors; different texts are close to
    orthogonal. NOT for production use - only for testing/development.
    """

    def __init__(self, dimensions: int = 256):
        self._dimensions = dimensions
        self.calls: list[tuple[str, str]] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str, model: str) -> np.ndarray:
        """Generate deterministic pseudo-embedding from the model and text hash."""
        self.calls.append((model, text))
        digest = hashlib.sha256(f"{model}\0{text}".encode()).digest()
        rng = np.random.default_rng(int.from_bytes(digest[:8], "big"))
        return rng.standard_normal(self._dimensions)


def get_embedding_provider(
    use_mock: bool = False,
    api_key: str | None = None,
    base_url: str | None = None,
) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        use_mock: If True, return MockEmbeddings (for testing)
        api_key: OpenAI key (falls back to the SDK's OPENAI_API_KEY lookup)
        base_url: Alternate OpenAI-compatible endpoint
    """
    if use_mock:
        logger.info("Using mock embeddings (deterministic, offline)")
        return MockEmbeddings()
    return OpenAIEmbeddings(api_key=api_key, base_url=base_url)
