"""
Descriptive statistics over a sample of repeated outputs.

Values are compared structurally through a canonical JSON serialization, so
``{"a": 1, "b": 2}`` and ``{"b": 2, "a": 1}`` count as the same value.
"""

from __future__ import annotations

import json
import math
import statistics
from typing import Any, Iterable, Sequence


def canonical_key(value: Any) -> str:
    """Stable structural key for deep-equality counting."""
    return json.dumps(value, sort_keys=True, default=repr)


def value_counts(items: Iterable[Any]) -> dict[str, int]:
    """Canonical value -> occurrence count, in first-seen order."""
    counts: dict[str, int] = {}
    for item in items:
        key = canonical_key(item)
        counts[key] = counts.get(key, 0) + 1
    return counts


def mode(items: Sequence[Any]) -> Any:
    """
    Most frequent value by deep equality, or None for an empty sample.

    Ties go to the value seen first.
    """
    firsts: dict[str, Any] = {}
    counts: dict[str, int] = {}
    for item in items:
        key = canonical_key(item)
        if key not in firsts:
            firsts[key] = item
        counts[key] = counts.get(key, 0) + 1

    best_key = None
    best_count = 0
    for key, count in counts.items():
        if count > best_count:
            best_key, best_count = key, count
    return firsts[best_key] if best_key is not None else None


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sample."""
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 for fewer than two samples."""
    if len(values) < 2:
        return 0.0
    return statistics.pstdev(values)


def match_percentage(items: Sequence[Any], expected: Any) -> float:
    """Fraction of items structurally equal to ``expected``; 0.0 when empty."""
    if not items:
        return 0.0
    expected_key = canonical_key(expected)
    matches = sum(1 for item in items if canonical_key(item) == expected_key)
    return matches / len(items)
