"""
Regression evaluator - detect when AI outputs get worse over time.

FLOW:
-----
1. No baseline for the id: score the output against itself, store it as
   version 1 and pass. The first run for any id never fails.
2. Otherwise score the output against the stored baseline text.
3. Each metric must reach max(threshold, baseline_score - 0.1). The 0.1 dip
   absorbs judge noise; the hard floor stops slow drift.
4. Optionally replace the baseline, but only if every metric is at least as
   good as the stored one (monotonic improvement, version + 1).

INTERVIEW TALKING POINT:
------------------------
"The dual bound is the key: a baseline at 0.95 tolerates a 0.88 run, but a
baseline at 0.86 can never let a run below the 0.85 floor through. Scores
only ever ratchet upward because updates require improvement everywhere."
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Literal, Sequence

from ai_eval_engine.core.errors import RegressionFailed
from ai_eval_engine.core.protocols import BaselineStore
from ai_eval_engine.regression.baseline import Baseline
from ai_eval_engine.regression.quality import (
    DEFAULT_REGRESSION_METRICS,
    METRIC_NAMES,
    QualityResult,
    QualityScorer,
    validate_metric_names,
)

logger = logging.getLogger(__name__)

DEFAULT_REGRESSION_THRESHOLD = 0.85

# Allowed absolute dip below the baseline score (never below the threshold)
ALLOWED_DIP = 0.1

# Totals must differ by more than this to declare a winner
VERSION_TIE_MARGIN = 0.05

EXCERPT_CHARS = 500


def _excerpt(text: str) -> str:
    if len(text) > EXCERPT_CHARS:
        return text[:EXCERPT_CHARS] + "..."
    return text


# ---------------------------------------------------------------------------
# RESULT TYPES
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricViolation:
    metric: str
    current: float | None
    baseline: float
    min_acceptable: float

    def describe(self) -> str:
        current = "not scored" if self.current is None else f"{self.current:.2f}"
        return (
            f"{self.metric}: {current} < {self.min_acceptable:.2f} "
            f"(baseline: {self.baseline:.2f})"
        )

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "current": self.current,
            "baseline": self.baseline,
            "min_acceptable": self.min_acceptable,
        }


@dataclass
class RegressionResult:
    baseline_id: str
    baseline: Baseline
    metrics: list[str]
    quality: QualityResult
    violations: list[MetricViolation] = field(default_factory=list)
    created: bool = False

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def pass_count(self) -> int:
        return len(self.metrics) - len(self.violations)


@dataclass(frozen=True)
class VersionComparison:
    version1_scores: dict[str, float]
    version2_scores: dict[str, float]
    winner: Literal["version1", "version2", "tie"]
    differences: dict[str, float]
    version1_total: float
    version2_total: float

    def to_dict(self) -> dict:
        return {
            "version1_scores": self.version1_scores,
            "version2_scores": self.version2_scores,
            "winner": self.winner,
            "differences": self.differences,
            "version1_total": self.version1_total,
            "version2_total": self.version2_total,
        }


def regression_failed_error(
    result: RegressionResult,
    actual: str,
    negated: bool = False,
) -> RegressionFailed:
    if negated:
        message = (
            f"Expected regression test for \"{result.baseline_id}\" to fail, "
            f"but all {len(result.metrics)} metrics passed.\n\n"
            f"Current output:\n{_excerpt(actual)}\n\n"
            f"Baseline output:\n{_excerpt(result.baseline.text)}"
        )
    else:
        failures = "\n".join(f"  - {v.describe()}" for v in result.violations)
        message = (
            f"Regression test failed for \"{result.baseline_id}\".\n"
            f"{result.pass_count}/{len(result.metrics)} metrics passed.\n\n"
            f"Failures:\n{failures}\n\n"
            f"Current output:\n{_excerpt(actual)}\n\n"
            f"Baseline output:\n{_excerpt(result.baseline.text)}"
        )
    return RegressionFailed(
        message,
        result.baseline_id,
        [v.to_dict() for v in result.violations],
        actual[:EXCERPT_CHARS],
        result.baseline.text[:EXCERPT_CHARS],
        negated=negated,
    )


# ---------------------------------------------------------------------------
# EVALUATOR
# ---------------------------------------------------------------------------


class RegressionEvaluator:
    """Versioned baselines plus the regression check against them."""

    def __init__(
        self,
        scorer: QualityScorer,
        store: BaselineStore,
        default_threshold: float = DEFAULT_REGRESSION_THRESHOLD,
    ):
        self.scorer = scorer
        self.store = store
        self.default_threshold = default_threshold

    def load_baseline(self, baseline_id: str) -> Baseline | None:
        return self.store.load(baseline_id)

    def save_baseline(self, baseline: Baseline) -> None:
        self.store.save(baseline)

    def list_baselines(self) -> list[Baseline]:
        return self.store.list()

    def delete_baseline(self, baseline_id: str) -> bool:
        deleted = self.store.delete(baseline_id)
        if deleted:
            logger.info(f"Deleted regression baseline '{baseline_id}'")
        return deleted

    async def check_regression(
        self,
        actual: str,
        baseline_id: str,
        metrics: Sequence[str] = DEFAULT_REGRESSION_METRICS,
        threshold: float | None = None,
    ) -> RegressionResult:
        """Score ``actual`` against its baseline, creating the baseline on first run."""
        metrics = validate_metric_names(metrics)
        threshold = self.default_threshold if threshold is None else threshold

        baseline = self.store.load(baseline_id)
        if baseline is None:
            quality = await self.scorer.evaluate_quality(actual, actual, metrics)
            baseline = Baseline(
                id=baseline_id,
                text=actual,
                metrics=dict(quality.metrics),
                scoring=quality.source.value,
            )
            self.store.save(baseline)
            logger.info(
                f"Created regression baseline '{baseline_id}' (v1, {quality.source.value}); "
                "first run passes without comparison"
            )
            return RegressionResult(baseline_id, baseline, metrics, quality, created=True)

        quality = await self.scorer.evaluate_quality(actual, baseline.text, metrics)

        violations = []
        for metric in metrics:
            baseline_score = baseline.metrics.get(metric, 0.0)
            current_score = quality.get(metric)
            min_acceptable = max(threshold, baseline_score - ALLOWED_DIP)
            if current_score is None or current_score < min_acceptable:
                violations.append(
                    MetricViolation(metric, current_score, baseline_score, min_acceptable)
                )

        return RegressionResult(baseline_id, baseline, metrics, quality, violations)

    def maybe_update_baseline(self, result: RegressionResult, actual: str) -> Baseline | None:
        """
        Replace the baseline if every metric improved or held.

        Returns the new baseline, or None if the update was declined.
        """
        if result.created:
            return None

        baseline = result.baseline
        for metric in result.metrics:
            current = result.quality.get(metric)
            if current is None or current < baseline.metrics.get(metric, 0.0):
                logger.debug(
                    f"Baseline '{baseline.id}' not updated: {metric} did not improve "
                    f"({current} vs {baseline.metrics.get(metric, 0.0)})"
                )
                return None

        updated = baseline.updated(actual, result.quality.metrics, result.quality.source.value)
        self.store.save(updated)
        logger.info(f"Updated regression baseline '{baseline.id}' (v{updated.version})")
        return updated

    async def assert_passes_regression(
        self,
        actual: str,
        baseline_id: str,
        metrics: Sequence[str] = DEFAULT_REGRESSION_METRICS,
        threshold: float | None = None,
        update_baseline: bool = False,
    ) -> RegressionResult:
        """
        Fail with RegressionFailed when any metric violates its bound.

        The first call for an id creates the baseline and passes.
        """
        result = await self.check_regression(actual, baseline_id, metrics, threshold)
        if not result.passed:
            raise regression_failed_error(result, actual)
        if update_baseline:
            self.maybe_update_baseline(result, actual)
        return result

    async def compare_versions(
        self,
        version1: str,
        version2: str,
        reference: str,
    ) -> VersionComparison:
        """Score both versions on all metrics; a winner needs a lead above the tie margin."""
        v1, v2 = await asyncio.gather(
            self.scorer.evaluate_quality(version1, reference, METRIC_NAMES),
            self.scorer.evaluate_quality(version2, reference, METRIC_NAMES),
        )

        differences = {}
        v1_total = 0.0
        v2_total = 0.0
        for metric in METRIC_NAMES:
            s1 = v1.metrics.get(metric, 0.0)
            s2 = v2.metrics.get(metric, 0.0)
            differences[metric] = s2 - s1
            v1_total += s1
            v2_total += s2

        if v1_total > v2_total + VERSION_TIE_MARGIN:
            winner = "version1"
        elif v2_total > v1_total + VERSION_TIE_MARGIN:
            winner = "version2"
        else:
            winner = "tie"

        return VersionComparison(
            version1_scores=dict(v1.metrics),
            version2_scores=dict(v2.metrics),
            winner=winner,
            differences=differences,
            version1_total=v1_total,
            version2_total=v2_total,
        )
