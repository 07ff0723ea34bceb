"""
Statistics module - sampling, descriptive stats, chi-squared, StatisticsEngine.
"""

from ai_eval_engine.stats.sampling import run_times, run_times_parallel
from ai_eval_engine.stats.descriptive import (
    canonical_key,
    value_counts,
    mode,
    mean,
    standard_deviation,
    match_percentage,
)
from ai_eval_engine.stats.chi_squared import (
    GammaStrategy,
    ApproximateGamma,
    PreciseGamma,
    ChiSquaredResult,
    chi_squared_test,
)
from ai_eval_engine.stats.engine import (
    DEFAULT_MOSTLY_THRESHOLD,
    DEFAULT_CONSISTENCY_THRESHOLD,
    DEFAULT_SIGNIFICANCE_LEVEL,
    MostlyResult,
    VarianceResult,
    ConsistencyResult,
    DistributionResult,
    StatisticsEngine,
    statistical_mismatch_error,
    variance_exceeded_error,
    consistency_failed_error,
    distribution_mismatch_error,
)

__all__ = [
    "run_times",
    "run_times_parallel",
    "canonical_key",
    "value_counts",
    "mode",
    "mean",
    "standard_deviation",
    "match_percentage",
    "GammaStrategy",
    "ApproximateGamma",
    "PreciseGamma",
    "ChiSquaredResult",
    "chi_squared_test",
    "DEFAULT_MOSTLY_THRESHOLD",
    "DEFAULT_CONSISTENCY_THRESHOLD",
    "DEFAULT_SIGNIFICANCE_LEVEL",
    "MostlyResult",
    "VarianceResult",
    "ConsistencyResult",
    "DistributionResult",
    "StatisticsEngine",
    "statistical_mismatch_error",
    "variance_exceeded_error",
    "consistency_failed_error",
    "distribution_mismatch_error",
]
