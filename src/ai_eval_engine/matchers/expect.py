"""
Expectation - the ``expect(value)`` matcher surface.

Structural matchers are synchronous. AI matchers are coroutines that
delegate to the engine's cost, semantic, regression and statistics
components.

NEGATION:
---------
``.not_`` returns a NEW Expectation with the negation flag flipped; the
original is untouched, so holding on to an intermediate expectation never
changes its meaning. Every matcher computes its own pass/fail verdict and
then raises when ``passed == negated``. Nothing catches and re-raises, so a
negated failure still carries the matcher's own error type, and provider
errors always propagate unchanged.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from ai_eval_engine.core.errors import (
    EvalAssertionError,
    ExpectationFailed,
    NoActiveLedgerError,
    SchemaMismatch,
)
from ai_eval_engine.cost.context import current_ledger
from ai_eval_engine.cost.ledger import CostLedger, TokenScope, cost_exceeded_error, token_budget_error
from ai_eval_engine.matchers.pii import find_pii
from ai_eval_engine.matchers.schema import validate_schema
from ai_eval_engine.regression.evaluator import regression_failed_error
from ai_eval_engine.regression.quality import DEFAULT_REGRESSION_METRICS
from ai_eval_engine.semantic.similarity import semantic_mismatch_error
from ai_eval_engine.semantic.snapshot import snapshot_mismatch_error
from ai_eval_engine.stats.engine import (
    DEFAULT_CONSISTENCY_THRESHOLD,
    DEFAULT_MOSTLY_THRESHOLD,
    DEFAULT_SIGNIFICANCE_LEVEL,
    consistency_failed_error,
    distribution_mismatch_error,
    statistical_mismatch_error,
    variance_exceeded_error,
)

if TYPE_CHECKING:
    from ai_eval_engine.engine import EvaluationEngine

_SCALARS = (int, float, complex, str, bytes, bool, type(None))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same(value: Any, expected: Any) -> bool:
    if value is expected:
        return True
    if type(value) is not type(expected) or not isinstance(value, _SCALARS):
        return False
    if isinstance(value, float) and math.isnan(value) and math.isnan(expected):
        return True
    return value == expected


class Expectation:
    """Immutable matcher view over one value."""

    def __init__(
        self,
        value: Any,
        engine: EvaluationEngine | None = None,
        ledger: CostLedger | None = None,
        negated: bool = False,
    ):
        self._value = value
        self._engine = engine
        self._ledger = ledger
        self._negated = negated

    @property
    def value(self) -> Any:
        return self._value

    @property
    def negated(self) -> bool:
        return self._negated

    @property
    def not_(self) -> "Expectation":
        return Expectation(self._value, self._engine, self._ledger, not self._negated)

    def __repr__(self) -> str:
        return f"Expectation({self._value!r}, negated={self._negated})"

    # --- plumbing --------------------------------------------------------

    def _verdict(self, passed: bool, make_error: Callable[[bool], EvalAssertionError]) -> None:
        if passed == self._negated:
            raise make_error(self._negated)

    def _structural(self, passed: bool, description: str, **details: Any) -> None:
        def make_error(negated: bool) -> ExpectationFailed:
            message = f"Expected {self._value!r} {'not ' if negated else ''}{description}"
            return ExpectationFailed(message, {"actual": self._value, **details}, negated=negated)

        self._verdict(passed, make_error)

    @property
    def engine(self) -> EvaluationEngine:
        if self._engine is None:
            from ai_eval_engine.engine import get_engine

            self._engine = get_engine()
        return self._engine

    def _resolve_ledger(self) -> CostLedger:
        if self._ledger is not None:
            return self._ledger
        if isinstance(self._value, CostLedger):
            return self._value
        ledger = current_ledger()
        if ledger is None:
            raise NoActiveLedgerError()
        return ledger

    def _text(self) -> str:
        return self._value if isinstance(self._value, str) else str(self._value)

    def _sample(self, matcher: str) -> list[Any]:
        if not isinstance(self._value, (list, tuple)):
            raise TypeError(f"{matcher} expects a list of results, got {type(self._value).__name__}")
        return list(self._value)

    # ---------------------------------------------------------------------
    # STRUCTURAL MATCHERS
    # ---------------------------------------------------------------------

    def to_be(self, expected: Any) -> None:
        """Identity, or equality of two scalars of the same type."""
        self._structural(_same(self._value, expected), f"to be {expected!r}", expected=expected)

    def to_equal(self, expected: Any) -> None:
        """Deep equality."""
        self._structural(self._value == expected, f"to equal {expected!r}", expected=expected)

    def to_be_defined(self) -> None:
        self._structural(self._value is not None, "to be defined")

    def to_be_undefined(self) -> None:
        self._structural(self._value is None, "to be undefined")

    def to_be_truthy(self) -> None:
        self._structural(bool(self._value), "to be truthy")

    def to_be_falsy(self) -> None:
        self._structural(not self._value, "to be falsy")

    def to_contain(self, item: Any) -> None:
        try:
            passed = item in self._value
        except TypeError:
            passed = False
        self._structural(passed, f"to contain {item!r}", expected=item)

    def to_match(self, pattern: str | re.Pattern[str]) -> None:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        passed = isinstance(self._value, str) and regex.search(self._value) is not None
        self._structural(passed, f"to match {regex.pattern!r}", pattern=regex.pattern)

    def to_be_greater_than(self, expected: float) -> None:
        passed = _is_number(self._value) and self._value > expected
        self._structural(passed, f"to be greater than {expected!r}", expected=expected)

    def to_be_less_than(self, expected: float) -> None:
        passed = _is_number(self._value) and self._value < expected
        self._structural(passed, f"to be less than {expected!r}", expected=expected)

    def to_be_close_to(self, expected: float, precision: int = 2) -> None:
        passed = _is_number(self._value) and abs(self._value - expected) < 10 ** -precision / 2
        self._structural(
            passed,
            f"to be close to {expected!r} (precision {precision})",
            expected=expected,
            precision=precision,
        )

    def to_throw(self, expected: str | re.Pattern[str] | type[BaseException] | None = None) -> None:
        """
        The value must be a callable that raises when called with no arguments.

        ``expected`` narrows the match: a substring of the message, a regex
        searched in the message, or an exception class.
        """
        error: Exception | None = None
        if callable(self._value):
            try:
                self._value()
            except Exception as e:
                error = e

        passed = error is not None
        if passed and expected is not None:
            if isinstance(expected, type):
                passed = isinstance(error, expected)
            elif isinstance(expected, re.Pattern):
                passed = expected.search(str(error)) is not None
            else:
                passed = expected in str(error)

        suffix = "" if expected is None else f" {getattr(expected, 'pattern', expected)!r}"
        self._structural(
            passed,
            f"to throw{suffix}",
            raised=None if error is None else repr(error),
        )

    # ---------------------------------------------------------------------
    # AI MATCHERS
    # ---------------------------------------------------------------------

    async def to_semantic_match(
        self,
        expected: str,
        threshold: float | None = None,
        model: str | None = None,
        use_cache: bool = True,
    ) -> None:
        actual = self._text()
        result = await self.engine.similarity.check_semantic_match(
            actual, expected, threshold, model, use_cache
        )
        self._verdict(result.passed, lambda n: semantic_mismatch_error(result, actual, expected, n))

    async def to_pass_regression(
        self,
        baseline_id: str,
        metrics: Sequence[str] = DEFAULT_REGRESSION_METRICS,
        threshold: float | None = None,
        update_baseline: bool = False,
    ) -> None:
        actual = self._text()
        regression = self.engine.regression
        result = await regression.check_regression(actual, baseline_id, metrics, threshold)
        self._verdict(result.passed, lambda n: regression_failed_error(result, actual, n))
        if update_baseline and result.passed and not self._negated:
            regression.maybe_update_baseline(result, actual)

    async def to_cost_less_than(self, max_usd: float) -> None:
        ledger = self._resolve_ledger()
        passed = ledger.total_cost_usd <= max_usd
        self._verdict(passed, lambda n: cost_exceeded_error(ledger, max_usd, n))

    async def to_use_fewer_tokens_than(self, max_tokens: int, scope: TokenScope = "total") -> None:
        ledger = self._resolve_ledger()
        passed = ledger.tokens(scope) <= max_tokens
        self._verdict(passed, lambda n: token_budget_error(ledger, max_tokens, scope, n))

    async def to_match_schema(self, schema: dict[str, Any]) -> None:
        errors = validate_schema(self._value, schema)

        def make_error(negated: bool) -> SchemaMismatch:
            if negated:
                message = f"Expected {self._value!r} not to match schema"
            else:
                details = "\n".join(f"  - {e}" for e in errors)
                message = f"Expected {self._value!r} to match schema:\n{details}"
            return SchemaMismatch(message, errors, negated=negated)

        self._verdict(not errors, make_error)

    async def to_mostly_be(self, expected: Any, threshold: float = DEFAULT_MOSTLY_THRESHOLD) -> None:
        results = self._sample("to_mostly_be")
        result = self.engine.statistics.check_mostly_be(results, expected, threshold)
        self._verdict(result.passed, lambda n: statistical_mismatch_error(result, n))

    async def to_contain_pii(self) -> None:
        found = find_pii(self._text())

        def make_error(negated: bool) -> ExpectationFailed:
            if negated:
                kinds = ", ".join(sorted(found))
                message = f"Expected output not to contain PII, found: {kinds}"
            else:
                message = "Expected output to contain PII, found none"
            return ExpectationFailed(message, {"pii": found}, negated=negated)

        self._verdict(bool(found), make_error)

    async def to_match_semantic_snapshot(self, snapshot_id: str, threshold: float | None = None) -> None:
        actual = self._text()
        result = await self.engine.snapshots.check_snapshot(actual, snapshot_id, threshold)
        self._verdict(result.passed, lambda n: snapshot_mismatch_error(result, actual, n))

    async def to_be_consistent(self, threshold: float = DEFAULT_CONSISTENCY_THRESHOLD) -> None:
        results = [str(r) for r in self._sample("to_be_consistent")]
        result = await self.engine.statistics.check_consistent(results, threshold)
        self._verdict(result.passed, lambda n: consistency_failed_error(result, n))

    async def to_have_low_variance(self, max_std_dev: float) -> None:
        results = self._sample("to_have_low_variance")
        result = self.engine.statistics.check_low_variance(results, max_std_dev)
        self._verdict(result.passed, lambda n: variance_exceeded_error(result, n))

    async def to_match_distribution(
        self,
        expected_distribution: Mapping[str, float],
        significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL,
    ) -> None:
        results = [str(r) for r in self._sample("to_match_distribution")]
        result = self.engine.statistics.check_distribution(
            results, expected_distribution, significance_level
        )
        self._verdict(result.passed, lambda n: distribution_mismatch_error(result, n))
