"""
Semantic similarity - compare outputs by meaning, not exact string match.

cosine_similarity is the pure vector primitive. SimilarityScorer fetches
embeddings through an EmbeddingCache and turns scores into verdicts.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ai_eval_engine.core.errors import DimensionMismatch, SemanticMismatch
from ai_eval_engine.embeddings.cache import EmbeddingCache

DEFAULT_SEMANTIC_THRESHOLD = 0.8


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatch: the vectors have different lengths
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape != vb.shape:
        raise DimensionMismatch(va.size, vb.size)

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    return min(1.0, max(-1.0, similarity))


def clamp_unit(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True)
class SemanticMatchResult:
    similarity: float
    threshold: float

    @property
    def passed(self) -> bool:
        return self.similarity >= self.threshold


def semantic_mismatch_error(
    result: SemanticMatchResult,
    actual: str,
    expected: str,
    negated: bool = False,
) -> SemanticMismatch:
    relation = "<" if negated else ">="
    message = (
        f"Semantic match failed{' (negated)' if negated else ''}.\n"
        f"Expected similarity: {relation} {result.threshold}\n"
        f"Actual similarity: {result.similarity:.4f}\n\n"
        f"Actual text:\n{actual}\n\n"
        f"Expected {'not ' if negated else ''}to match:\n{expected}"
    )
    return SemanticMismatch(
        message, result.similarity, result.threshold, actual, expected, negated=negated
    )


class SimilarityScorer:
    """Scores text pairs by embedding similarity."""

    def __init__(
        self,
        cache: EmbeddingCache,
        default_threshold: float = DEFAULT_SEMANTIC_THRESHOLD,
    ):
        self.cache = cache
        self.default_threshold = default_threshold

    async def semantic_similarity(
        self,
        text_a: str,
        text_b: str,
        model: str | None = None,
        use_cache: bool = True,
    ) -> float:
        """Similarity of two texts, clamped to [0, 1]."""
        embedding_a, embedding_b = await asyncio.gather(
            self.cache.get_embedding(text_a, model, use_cache),
            self.cache.get_embedding(text_b, model, use_cache),
        )
        return clamp_unit(cosine_similarity(embedding_a, embedding_b))

    async def check_semantic_match(
        self,
        actual: str,
        expected: str,
        threshold: float | None = None,
        model: str | None = None,
        use_cache: bool = True,
    ) -> SemanticMatchResult:
        similarity = await self.semantic_similarity(actual, expected, model, use_cache)
        return SemanticMatchResult(
            similarity=similarity,
            threshold=self.default_threshold if threshold is None else threshold,
        )

    async def assert_semantic_match(
        self,
        actual: str,
        expected: str,
        threshold: float | None = None,
        model: str | None = None,
        use_cache: bool = True,
    ) -> float:
        """
        Fail with SemanticMismatch when similarity is below ``threshold``.

        Returns the similarity on success.
        """
        result = await self.check_semantic_match(actual, expected, threshold, model, use_cache)
        if not result.passed:
            raise semantic_mismatch_error(result, actual, expected)
        return result.similarity
