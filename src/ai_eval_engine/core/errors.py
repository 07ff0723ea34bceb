"""
Error taxonomy for the evaluation engine.

Every error carries a ``details`` dict with the structured diagnostic payload,
so callers (and reports) never have to parse message strings.

Two families matter to callers:
- ProviderError: infrastructure failed (network, auth, bad payload). Never a verdict.
- EvalAssertionError: the output was judged and failed. Subclasses AssertionError
  so pytest reports these as ordinary assertion failures.
"""

from __future__ import annotations

from typing import Any


class EvalError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}


# ---------------------------------------------------------------------------
# PROVIDER ERRORS
# ---------------------------------------------------------------------------


class ProviderError(EvalError):
    """A call to an embedding or judge endpoint failed."""


class EmbeddingProviderError(ProviderError):
    """The embedding provider failed or returned an unusable payload."""


class JudgeProviderError(ProviderError):
    """The judge provider failed or returned an unusable payload."""


class DimensionMismatch(EvalError, ValueError):
    """Two vectors of different length were compared."""

    def __init__(self, left_dim: int, right_dim: int):
        super().__init__(
            f"Vectors must have same length (got {left_dim} and {right_dim})",
            {"left_dim": left_dim, "right_dim": right_dim},
        )
        self.left_dim = left_dim
        self.right_dim = right_dim


# ---------------------------------------------------------------------------
# LEDGER ERRORS
# ---------------------------------------------------------------------------


class LedgerClosedError(EvalError, RuntimeError):
    """Usage was recorded on a ledger that has already ended."""


class NoActiveLedgerError(EvalError, RuntimeError):
    """A cost assertion ran without any ledger to read from."""

    def __init__(self):
        super().__init__(
            "No cost tracking data available. Run inside an AITestSession "
            "or pass a CostLedger to expect()."
        )


# ---------------------------------------------------------------------------
# ASSERTION FAILURES
# ---------------------------------------------------------------------------


class EvalAssertionError(EvalError, AssertionError):
    """Base class for verdict failures raised by assertions and matchers."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        negated: bool = False,
    ):
        details = dict(details or {})
        details["negated"] = negated
        super().__init__(message, details)
        self.negated = negated


class ExpectationFailed(EvalAssertionError):
    """A structural matcher (to_be, to_equal, ...) failed."""


class CostExceeded(EvalAssertionError):
    """Accumulated cost is above the allowed maximum."""

    def __init__(
        self,
        message: str,
        actual_usd: float,
        max_usd: float,
        usage: dict[str, Any],
        negated: bool = False,
    ):
        super().__init__(
            message,
            {"actual_usd": actual_usd, "max_usd": max_usd, "usage": usage},
            negated=negated,
        )
        self.actual_usd = actual_usd
        self.max_usd = max_usd
        self.usage = usage


class TokenBudgetExceeded(EvalAssertionError):
    """Token usage for the requested scope is above the allowed maximum."""

    def __init__(
        self,
        message: str,
        scope: str,
        actual_tokens: int,
        max_tokens: int,
        usage: dict[str, Any],
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "scope": scope,
                "actual_tokens": actual_tokens,
                "max_tokens": max_tokens,
                "usage": usage,
            },
            negated=negated,
        )
        self.scope = scope
        self.actual_tokens = actual_tokens
        self.max_tokens = max_tokens
        self.usage = usage


class SemanticMismatch(EvalAssertionError):
    """Similarity between actual and expected text is below threshold."""

    def __init__(
        self,
        message: str,
        similarity: float,
        threshold: float,
        actual: str,
        expected: str,
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "similarity": similarity,
                "threshold": threshold,
                "actual": actual,
                "expected": expected,
            },
            negated=negated,
        )
        self.similarity = similarity
        self.threshold = threshold
        self.actual = actual
        self.expected = expected


class SnapshotMismatch(EvalAssertionError):
    """Current output drifted away from its stored semantic snapshot."""

    def __init__(
        self,
        message: str,
        snapshot_id: str,
        similarity: float,
        threshold: float,
        actual: str,
        snapshot_text: str,
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "snapshot_id": snapshot_id,
                "similarity": similarity,
                "threshold": threshold,
                "actual": actual,
                "snapshot_text": snapshot_text,
            },
            negated=negated,
        )
        self.snapshot_id = snapshot_id
        self.similarity = similarity
        self.threshold = threshold


class RegressionFailed(EvalAssertionError):
    """One or more quality metrics fell below their bound."""

    def __init__(
        self,
        message: str,
        baseline_id: str,
        violations: list[dict[str, Any]],
        actual_excerpt: str,
        baseline_excerpt: str,
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "baseline_id": baseline_id,
                "violations": violations,
                "actual_excerpt": actual_excerpt,
                "baseline_excerpt": baseline_excerpt,
            },
            negated=negated,
        )
        self.baseline_id = baseline_id
        self.violations = violations


class StatisticalMismatch(EvalAssertionError):
    """Too few repeated results matched the expected value."""

    def __init__(
        self,
        message: str,
        expected: Any,
        match_percentage: float,
        threshold: float,
        distribution: dict[str, int],
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "expected": expected,
                "match_percentage": match_percentage,
                "threshold": threshold,
                "distribution": distribution,
            },
            negated=negated,
        )
        self.match_percentage = match_percentage
        self.threshold = threshold
        self.distribution = distribution


class VarianceExceeded(EvalAssertionError):
    """Standard deviation of numeric results is above the allowed maximum."""

    def __init__(
        self,
        message: str,
        std_dev: float,
        max_std_dev: float,
        mean: float,
        minimum: float,
        maximum: float,
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "std_dev": std_dev,
                "max_std_dev": max_std_dev,
                "mean": mean,
                "min": minimum,
                "max": maximum,
            },
            negated=negated,
        )
        self.std_dev = std_dev
        self.max_std_dev = max_std_dev


class ConsistencyFailed(EvalAssertionError):
    """Repeated text outputs are not semantically consistent."""

    def __init__(
        self,
        message: str,
        mean_similarity: float,
        min_similarity: float,
        threshold: float,
        similarities: list[float],
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "mean_similarity": mean_similarity,
                "min_similarity": min_similarity,
                "threshold": threshold,
                "similarities": similarities,
            },
            negated=negated,
        )
        self.mean_similarity = mean_similarity
        self.min_similarity = min_similarity


class DistributionMismatch(EvalAssertionError):
    """Observed category counts do not fit the expected distribution."""

    def __init__(
        self,
        message: str,
        statistic: float,
        p_value: float,
        significance_level: float,
        table: list[dict[str, Any]],
        negated: bool = False,
    ):
        super().__init__(
            message,
            {
                "statistic": statistic,
                "p_value": p_value,
                "significance_level": significance_level,
                "table": table,
            },
            negated=negated,
        )
        self.statistic = statistic
        self.p_value = p_value


class SchemaMismatch(EvalAssertionError):
    """Value does not conform to the JSON schema."""

    def __init__(self, message: str, errors: list[str], negated: bool = False):
        super().__init__(message, {"errors": errors}, negated=negated)
        self.errors = errors


# ---------------------------------------------------------------------------
# EXECUTION ERRORS
# ---------------------------------------------------------------------------


class EvalTimeout(EvalError, TimeoutError):
    """A test body exceeded its deadline."""

    def __init__(self, test_name: str, timeout_s: float):
        super().__init__(
            f"Test '{test_name}' timed out after {timeout_s:g}s",
            {"test_name": test_name, "timeout_s": timeout_s},
        )
        self.test_name = test_name
        self.timeout_s = timeout_s
