"""
Quality scoring - per-metric scores for a text relative to a reference.

Two paths, and the result always says which one produced the numbers:
- JUDGED: one LLM judge call, scores clamped to [0, 1], omitted metrics absent
- FALLBACK_ESTIMATED: the judge is not configured or its call failed, so the
  embedding similarity of text and reference stands in for every metric

The fallback is a degraded mode, not a per-metric judgment. It conflates all
quality dimensions into one similarity number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ai_eval_engine.core.errors import JudgeProviderError
from ai_eval_engine.core.protocols import JudgeClient
from ai_eval_engine.regression.judge import parse_judge_response
from ai_eval_engine.regression.prompts import format_quality_prompt
from ai_eval_engine.semantic.similarity import SimilarityScorer

logger = logging.getLogger(__name__)

METRIC_NAMES: tuple[str, ...] = ("coherence", "coverage", "conciseness", "accuracy", "relevance")

DEFAULT_REGRESSION_METRICS: tuple[str, ...] = ("coherence", "relevance")


class ScoringSource(str, Enum):
    JUDGED = "judged"
    FALLBACK_ESTIMATED = "fallback_estimated"


@dataclass(frozen=True)
class QualityResult:
    """Partial metric map tagged with the scoring path that produced it."""

    metrics: dict[str, float]
    source: ScoringSource
    reason: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source is ScoringSource.FALLBACK_ESTIMATED

    def get(self, metric: str) -> float | None:
        return self.metrics.get(metric)


def validate_metric_names(metrics: Sequence[str]) -> list[str]:
    unknown = [m for m in metrics if m not in METRIC_NAMES]
    if unknown:
        raise ValueError(f"Unknown quality metric(s) {unknown}; expected any of {list(METRIC_NAMES)}")
    if not metrics:
        raise ValueError("At least one quality metric is required")
    return list(metrics)


class QualityScorer:
    """Scores text quality with an optional LLM judge and a similarity fallback."""

    def __init__(self, similarity: SimilarityScorer, judge: JudgeClient | None = None):
        self.similarity = similarity
        self.judge = judge
        self._warned_no_judge = False

    async def evaluate_quality(
        self,
        text: str,
        reference: str,
        metrics: Sequence[str] = METRIC_NAMES,
    ) -> QualityResult:
        """
        Score ``text`` against ``reference`` for the requested metrics.

        Raises:
            EmbeddingProviderError: the fallback path could not embed the texts
        """
        metrics = validate_metric_names(metrics)

        if self.judge is None:
            if not self._warned_no_judge:
                logger.warning(
                    "No quality judge configured; scoring by embedding similarity "
                    "(fallback_estimated) for every metric"
                )
                self._warned_no_judge = True
            return await self._fallback(text, reference, metrics, "judge not configured")

        try:
            raw = await self.judge.complete(format_quality_prompt(text, reference, metrics))
            scores = parse_judge_response(raw)
        except JudgeProviderError as e:
            logger.warning(f"Quality judge failed, falling back to similarity scoring: {e.message}")
            return await self._fallback(text, reference, metrics, e.message)

        return QualityResult(metrics=scores.clamped(metrics), source=ScoringSource.JUDGED)

    async def _fallback(
        self,
        text: str,
        reference: str,
        metrics: list[str],
        reason: str,
    ) -> QualityResult:
        similarity = await self.similarity.semantic_similarity(text, reference)
        return QualityResult(
            metrics={metric: similarity for metric in metrics},
            source=ScoringSource.FALLBACK_ESTIMATED,
            reason=reason,
        )
