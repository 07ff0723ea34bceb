"""
Chi-squared goodness-of-fit with a pluggable incomplete gamma function.

The p-value is the upper tail of the chi-squared distribution,
Q(df/2, statistic/2), where Q is the regularized upper incomplete gamma
function. Q is computed with the usual pair of expansions: a power series
for x < a + 1 and a continued fraction otherwise.

Two strategies:
- ApproximateGamma (default): Stirling's log-gamma, loose convergence. Good
  enough for test-harness significance checks, not for publication.
- PreciseGamma: math.lgamma and tight convergence, for callers that need
  tighter significance bounds.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

_FPMIN = 1e-300


@runtime_checkable
class GammaStrategy(Protocol):
    def log_gamma(self, x: float) -> float:
        ...

    def regularized_upper(self, a: float, x: float) -> float:
        """Q(a, x) = 1 - P(a, x)."""
        ...


class _IncompleteGamma(ABC):
    max_iterations = 100
    epsilon = 1e-10

    @abstractmethod
    def log_gamma(self, x: float) -> float:
        ...

    def _prefactor(self, a: float, x: float) -> float:
        return math.exp(-x + a * math.log(x) - self.log_gamma(a))

    def _series_lower(self, a: float, x: float) -> float:
        term = 1.0 / a
        total = term
        ap = a
        for _ in range(self.max_iterations):
            ap += 1
            term *= x / ap
            total += term
            if abs(term) < abs(total) * self.epsilon:
                break
        return total * self._prefactor(a, x)

    def _continued_fraction_upper(self, a: float, x: float) -> float:
        # Modified Lentz evaluation
        b = x + 1 - a
        c = 1 / _FPMIN
        d = 1 / b
        h = d
        for i in range(1, self.max_iterations + 1):
            an = -i * (i - a)
            b += 2
            d = an * d + b
            if abs(d) < _FPMIN:
                d = _FPMIN
            c = b + an / c
            if abs(c) < _FPMIN:
                c = _FPMIN
            d = 1 / d
            delta = d * c
            h *= delta
            if abs(delta - 1) < self.epsilon:
                break
        return h * self._prefactor(a, x)

    def regularized_lower(self, a: float, x: float) -> float:
        return 1.0 - self.regularized_upper(a, x)

    def regularized_upper(self, a: float, x: float) -> float:
        if a <= 0:
            raise ValueError(f"Shape parameter must be positive, got {a}")
        if x <= 0:
            return 1.0
        if x < a + 1:
            value = 1.0 - self._series_lower(a, x)
        else:
            value = self._continued_fraction_upper(a, x)
        return min(1.0, max(0.0, value))


class ApproximateGamma(_IncompleteGamma):
    """Stirling's approximation for log-gamma (default)."""

    # Stirling is poor for small arguments; shift up with the recurrence first
    _SHIFT_BELOW = 7.0

    def log_gamma(self, x: float) -> float:
        if x <= 0:
            raise ValueError(f"log_gamma requires x > 0, got {x}")
        shift = 0.0
        while x < self._SHIFT_BELOW:
            shift += math.log(x)
            x += 1
        stirling = 0.5 * math.log(2 * math.pi) + (x - 0.5) * math.log(x) - x + 1 / (12 * x)
        return stirling - shift


class PreciseGamma(_IncompleteGamma):
    """math.lgamma with tight convergence."""

    max_iterations = 1000
    epsilon = 1e-15

    def log_gamma(self, x: float) -> float:
        return math.lgamma(x)


@dataclass(frozen=True)
class ChiSquaredResult:
    statistic: float
    p_value: float
    degrees_of_freedom: int


def chi_squared_test(
    observed: Sequence[float],
    expected: Sequence[float],
    gamma: GammaStrategy | None = None,
) -> ChiSquaredResult:
    """
    Pearson's statistic sum((O - E)^2 / E) and its p-value.

    Categories with expected count 0 are skipped in the sum. With fewer than
    two categories there are no degrees of freedom and the p-value is 1.0.

    Raises:
        ValueError: observed and expected have different lengths
    """
    if len(observed) != len(expected):
        raise ValueError(
            f"Observed and expected must have the same length "
            f"(got {len(observed)} and {len(expected)})"
        )

    statistic = 0.0
    for o, e in zip(observed, expected):
        if e > 0:
            statistic += (o - e) ** 2 / e

    df = len(observed) - 1
    if df < 1:
        return ChiSquaredResult(statistic, 1.0, 0)

    gamma = gamma or ApproximateGamma()
    p_value = gamma.regularized_upper(df / 2, statistic / 2)
    return ChiSquaredResult(statistic, p_value, df)
