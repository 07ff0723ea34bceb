"""
Regression module - quality baselines, LLM judge, quality scoring.

ARCHITECTURE:
-------------
- baseline.py: Baseline record, file and in-memory stores
- prompts.py: judge rubric (externalized)
- judge.py: OpenAI judge client + JudgeScores schema
- quality.py: QualityScorer with judged / fallback_estimated results
- evaluator.py: RegressionEvaluator (bootstrap, bounds, monotonic update, compare)
"""

from ai_eval_engine.regression.baseline import (
    Baseline,
    FileBaselineStore,
    InMemoryBaselineStore,
    get_baseline_store,
)
from ai_eval_engine.regression.prompts import (
    QUALITY_JUDGE_PROMPT,
    METRIC_DESCRIPTIONS,
    format_quality_prompt,
)
from ai_eval_engine.regression.judge import (
    JudgeScores,
    OpenAIJudgeClient,
    get_judge_client,
    parse_judge_response,
)
from ai_eval_engine.regression.quality import (
    METRIC_NAMES,
    DEFAULT_REGRESSION_METRICS,
    ScoringSource,
    QualityResult,
    QualityScorer,
    validate_metric_names,
)
from ai_eval_engine.regression.evaluator import (
    DEFAULT_REGRESSION_THRESHOLD,
    ALLOWED_DIP,
    VERSION_TIE_MARGIN,
    MetricViolation,
    RegressionResult,
    VersionComparison,
    RegressionEvaluator,
    regression_failed_error,
)

__all__ = [
    # Baselines
    "Baseline",
    "FileBaselineStore",
    "InMemoryBaselineStore",
    "get_baseline_store",
    # Judge
    "QUALITY_JUDGE_PROMPT",
    "METRIC_DESCRIPTIONS",
    "format_quality_prompt",
    "JudgeScores",
    "OpenAIJudgeClient",
    "get_judge_client",
    "parse_judge_response",
    # Quality
    "METRIC_NAMES",
    "DEFAULT_REGRESSION_METRICS",
    "ScoringSource",
    "QualityResult",
    "QualityScorer",
    "validate_metric_names",
    # Regression
    "DEFAULT_REGRESSION_THRESHOLD",
    "ALLOWED_DIP",
    "VERSION_TIE_MARGIN",
    "MetricViolation",
    "RegressionResult",
    "VersionComparison",
    "RegressionEvaluator",
    "regression_failed_error",
]
