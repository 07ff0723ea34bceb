"""
StatisticsEngine - verdicts over repeated non-deterministic runs.

Each check has a ``check_*`` method returning a result object and an
``assert_*`` method raising on failure. The matcher layer uses the check form
so negation can flip the verdict while keeping the matcher's own error type.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from ai_eval_engine.core.errors import (
    ConsistencyFailed,
    DistributionMismatch,
    StatisticalMismatch,
    VarianceExceeded,
)
from ai_eval_engine.semantic.similarity import SimilarityScorer
from ai_eval_engine.stats.chi_squared import ApproximateGamma, GammaStrategy, chi_squared_test
from ai_eval_engine.stats.descriptive import (
    canonical_key,
    match_percentage,
    mean,
    standard_deviation,
    value_counts,
)
from ai_eval_engine.stats.sampling import SampleFn, run_times, run_times_parallel

DEFAULT_MOSTLY_THRESHOLD = 0.8
DEFAULT_CONSISTENCY_THRESHOLD = 0.8
DEFAULT_SIGNIFICANCE_LEVEL = 0.05

# A single run may fall this far below the consistency threshold
OUTLIER_TOLERANCE = 0.1


# ---------------------------------------------------------------------------
# RESULT TYPES
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MostlyResult:
    expected: Any
    match_percentage: float
    threshold: float
    distribution: dict[str, int]
    sample_size: int

    @property
    def passed(self) -> bool:
        return self.match_percentage >= self.threshold


@dataclass(frozen=True)
class VarianceResult:
    std_dev: float
    max_std_dev: float
    mean: float
    minimum: float
    maximum: float

    @property
    def passed(self) -> bool:
        return self.std_dev <= self.max_std_dev


@dataclass(frozen=True)
class ConsistencyResult:
    mean_similarity: float
    min_similarity: float
    threshold: float
    similarities: list[float] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        if not self.similarities:
            return True
        return (
            self.mean_similarity >= self.threshold
            and self.min_similarity >= self.threshold - OUTLIER_TOLERANCE
        )


@dataclass(frozen=True)
class DistributionResult:
    statistic: float
    p_value: float
    significance_level: float
    table: list[dict[str, Any]]

    @property
    def passed(self) -> bool:
        return self.p_value >= self.significance_level


# ---------------------------------------------------------------------------
# ERROR BUILDERS
# ---------------------------------------------------------------------------


def statistical_mismatch_error(result: MostlyResult, negated: bool = False) -> StatisticalMismatch:
    n = result.sample_size
    distribution = "\n".join(
        f"  - {value}: {count}/{n} ({count / n * 100:.1f}%)"
        for value, count in result.distribution.items()
    )
    bound = "fewer than" if negated else "at least"
    message = (
        "Statistical assertion failed.\n"
        f"Expected {bound} {result.threshold * 100:.0f}% to be: {canonical_key(result.expected)}\n"
        f"Actual percentage: {result.match_percentage * 100:.1f}%\n\n"
        f"Distribution:\n{distribution}"
    )
    return StatisticalMismatch(
        message,
        result.expected,
        result.match_percentage,
        result.threshold,
        result.distribution,
        negated=negated,
    )


def variance_exceeded_error(result: VarianceResult, negated: bool = False) -> VarianceExceeded:
    relation = ">" if negated else "<="
    message = (
        "Variance assertion failed.\n"
        f"Expected standard deviation: {relation} {result.max_std_dev}\n"
        f"Actual standard deviation: {result.std_dev:.4f}\n"
        f"Mean: {result.mean:.4f}\n"
        f"Min: {result.minimum}\n"
        f"Max: {result.maximum}"
    )
    return VarianceExceeded(
        message,
        result.std_dev,
        result.max_std_dev,
        result.mean,
        result.minimum,
        result.maximum,
        negated=negated,
    )


def consistency_failed_error(result: ConsistencyResult, negated: bool = False) -> ConsistencyFailed:
    if negated:
        summary = "Expected outputs to vary between runs, but they were consistent."
    else:
        summary = "This means the AI output varies too much between runs."
    message = (
        "Consistency assertion failed.\n"
        f"Expected average similarity: {'<' if negated else '>='} {result.threshold}\n"
        f"Actual average similarity: {result.mean_similarity:.4f}\n"
        f"Minimum similarity: {result.min_similarity:.4f}\n\n"
        f"{summary}"
    )
    return ConsistencyFailed(
        message,
        result.mean_similarity,
        result.min_similarity,
        result.threshold,
        list(result.similarities),
        negated=negated,
    )


def distribution_mismatch_error(result: DistributionResult, negated: bool = False) -> DistributionMismatch:
    rows = "\n".join(
        f"  - {row['category']}: expected {row['expected']:.1f}, got {row['observed']}"
        for row in result.table
    )
    relation = ">=" if negated else "<"
    message = (
        "Distribution assertion failed.\n"
        f"Chi-squared statistic: {result.statistic:.4f}\n"
        f"P-value: {result.p_value:.4f} {relation} {result.significance_level}\n\n"
        f"Distribution:\n{rows}"
    )
    return DistributionMismatch(
        message,
        result.statistic,
        result.p_value,
        result.significance_level,
        result.table,
        negated=negated,
    )


# ---------------------------------------------------------------------------
# ENGINE
# ---------------------------------------------------------------------------


class StatisticsEngine:
    """Statistical checks for repeated AI outputs.

    The similarity scorer is only needed for consistency checks.
    """

    def __init__(
        self,
        scorer: SimilarityScorer | None = None,
        gamma: GammaStrategy | None = None,
    ):
        self.scorer = scorer
        self.gamma = gamma or ApproximateGamma()

    async def run_times(self, n: int, fn: SampleFn) -> list[Any]:
        return await run_times(n, fn)

    async def run_times_parallel(self, n: int, fn: SampleFn, max_concurrency: int = 5) -> list[Any]:
        return await run_times_parallel(n, fn, max_concurrency)

    # --- mostly be -------------------------------------------------------

    def check_mostly_be(
        self,
        results: Sequence[Any],
        expected: Any,
        threshold: float = DEFAULT_MOSTLY_THRESHOLD,
    ) -> MostlyResult:
        return MostlyResult(
            expected=expected,
            match_percentage=match_percentage(results, expected),
            threshold=threshold,
            distribution=value_counts(results),
            sample_size=len(results),
        )

    def assert_mostly_be(
        self,
        results: Sequence[Any],
        expected: Any,
        threshold: float = DEFAULT_MOSTLY_THRESHOLD,
    ) -> MostlyResult:
        result = self.check_mostly_be(results, expected, threshold)
        if not result.passed:
            raise statistical_mismatch_error(result)
        return result

    # --- variance --------------------------------------------------------

    def check_low_variance(self, results: Sequence[float], max_std_dev: float) -> VarianceResult:
        values = [float(v) for v in results]
        return VarianceResult(
            std_dev=standard_deviation(values),
            max_std_dev=max_std_dev,
            mean=mean(values),
            minimum=min(values, default=0.0),
            maximum=max(values, default=0.0),
        )

    def assert_low_variance(self, results: Sequence[float], max_std_dev: float) -> VarianceResult:
        result = self.check_low_variance(results, max_std_dev)
        if not result.passed:
            raise variance_exceeded_error(result)
        return result

    # --- consistency -----------------------------------------------------

    async def check_consistent(
        self,
        results: Sequence[str],
        threshold: float = DEFAULT_CONSISTENCY_THRESHOLD,
    ) -> ConsistencyResult:
        """Compare every result to the first; fewer than two results is trivially consistent."""
        if len(results) < 2:
            return ConsistencyResult(1.0, 1.0, threshold)
        if self.scorer is None:
            raise RuntimeError("Consistency checks need a SimilarityScorer")

        reference = results[0]
        similarities = list(
            await asyncio.gather(
                *(self.scorer.semantic_similarity(reference, other) for other in results[1:])
            )
        )
        return ConsistencyResult(
            mean_similarity=mean(similarities),
            min_similarity=min(similarities),
            threshold=threshold,
            similarities=similarities,
        )

    async def assert_consistent(
        self,
        results: Sequence[str],
        threshold: float = DEFAULT_CONSISTENCY_THRESHOLD,
    ) -> ConsistencyResult:
        """
        Fail when the mean similarity is below ``threshold`` or any single
        result is below ``threshold - 0.1``.
        """
        result = await self.check_consistent(results, threshold)
        if not result.passed:
            raise consistency_failed_error(result)
        return result

    # --- distribution ----------------------------------------------------

    def check_distribution(
        self,
        results: Sequence[str],
        expected_distribution: Mapping[str, float],
        significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL,
    ) -> DistributionResult:
        counts: dict[str, int] = {}
        for r in results:
            counts[r] = counts.get(r, 0) + 1

        total = len(results)
        categories = list(expected_distribution)
        observed = [counts.get(c, 0) for c in categories]
        expected = [expected_distribution[c] * total for c in categories]

        chi = chi_squared_test(observed, expected, self.gamma)
        table = [
            {"category": c, "expected": e, "observed": o}
            for c, e, o in zip(categories, expected, observed)
        ]
        return DistributionResult(chi.statistic, chi.p_value, significance_level, table)

    def assert_distribution(
        self,
        results: Sequence[str],
        expected_distribution: Mapping[str, float],
        significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL,
    ) -> DistributionResult:
        result = self.check_distribution(results, expected_distribution, significance_level)
        if not result.passed:
            raise distribution_mismatch_error(result)
        return result
