"""
Content-addressed embedding cache.

Key is ``(model, text)`` verbatim. Vectors are stored read-only, so a value
handed out once can never be changed under another caller. The cache is an
optimization only: ``use_cache=False`` must give the same answers.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import numpy as np

from ai_eval_engine.core.errors import EmbeddingProviderError
from ai_eval_engine.core.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    keys: list[tuple[str, str]]


class EmbeddingCache:
    """Process-lifetime text -> vector map in front of an EmbeddingProvider."""

    def __init__(self, provider: EmbeddingProvider, default_model: str = "text-embedding-3-small"):
        self.provider = provider
        self.default_model = default_model
        self._entries: dict[tuple[str, str], np.ndarray] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    async def get_embedding(
        self,
        text: str,
        model: str | None = None,
        use_cache: bool = True,
    ) -> np.ndarray:
        """
        Return the embedding for ``text``, calling the provider on a miss.

        Raises:
            EmbeddingProviderError: the provider call failed
        """
        model = model or self.default_model
        key = (model, text)

        if use_cache:
            with self._lock:
                cached = self._entries.get(key)
                if cached is not None:
                    self._hits += 1
            if cached is not None:
                logger.debug(f"Embedding cache hit ({model}, {len(text)} chars)")
                return cached

        vector = await self._fetch(text, model)

        if use_cache:
            with self._lock:
                self._misses += 1
                # Concurrent misses on the same key produce the same vector; keep the first
                vector = self._entries.setdefault(key, vector)
            logger.debug(f"Embedding cache miss ({model}, {len(text)} chars)")
        return vector

    async def _fetch(self, text: str, model: str) -> np.ndarray:
        try:
            raw = await self.provider.embed(text, model)
        except EmbeddingProviderError:
            raise
        except Exception as e:
            raise EmbeddingProviderError(
                f"Embedding provider failed for model '{model}': {e}",
                {"model": model, "error_type": type(e).__name__},
            ) from e

        vector = np.array(raw, dtype=np.float64)
        if vector.ndim != 1 or vector.size == 0:
            raise EmbeddingProviderError(
                f"Embedding provider returned an invalid vector of shape {vector.shape}",
                {"model": model, "shape": list(vector.shape)},
            )
        vector.flags.writeable = False
        return vector

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                keys=list(self._entries),
            )

    def __len__(self) -> int:
        return len(self._entries)
