"""
Eval sets and model comparison

An eval set is a fixed list of (input, expected) pairs run against a
producer function, the lightweight cousin of a full Suite: no ledger, no
hooks, just a pass rate.

MATCH TYPES:
------------
- exact: output == expected
- contains (default): case-insensitive substring
- regex: re.search(expected, output)
- semantic: embedding similarity >= 0.8

Eval sets are usually checked into the repo as JSON:

    [
        {"input": "2+2?", "expected": "4"},
        {"input": "Capital of France?", "expected": "Paris", "type": "exact"},
        {"input": "Greet me", "expected": "a friendly hello", "type": "semantic",
         "tags": ["tone"]}
    ]
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Mapping, Sequence, Union

from pydantic import BaseModel, Field

from ai_eval_engine.harness.session import call_maybe_async
from ai_eval_engine.stats.descriptive import mean

if TYPE_CHECKING:
    from ai_eval_engine.engine import EvaluationEngine

logger = logging.getLogger(__name__)

SEMANTIC_PASS_THRESHOLD = 0.8

MatchType = Literal["exact", "contains", "regex", "semantic"]
Producer = Callable[[str], Union[str, Awaitable[str]]]


class EvalItem(BaseModel):
    """One input and the output it should produce."""

    input: str
    expected: str
    type: MatchType = "contains"
    tags: list[str] = Field(default_factory=list)


@dataclass
class EvalItemResult:
    input: str
    expected: str
    actual: str
    passed: bool
    match_type: MatchType
    similarity: float | None = None

    def to_dict(self) -> dict:
        data = {
            "input": self.input,
            "expected": self.expected,
            "actual": self.actual,
            "passed": self.passed,
            "type": self.match_type,
        }
        if self.similarity is not None:
            data["similarity"] = self.similarity
        return data


@dataclass
class EvalSetResult:
    results: list[EvalItemResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    @property
    def pass_rate(self) -> float:
        return self.passed / len(self.results) if self.results else 0.0

    def to_dict(self) -> dict:
        return {
            "pass_rate": self.pass_rate,
            "passed": self.passed,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


class EvalSet:
    """A fixed list of EvalItems that can be run against any producer."""

    def __init__(self, items: Sequence[EvalItem | dict[str, Any]]):
        self.items = [
            item if isinstance(item, EvalItem) else EvalItem.model_validate(item)
            for item in items
        ]

    def __len__(self) -> int:
        return len(self.items)

    def with_tag(self, tag: str) -> "EvalSet":
        return EvalSet([item for item in self.items if tag in item.tags])

    async def run(self, produce: Producer, engine: "EvaluationEngine | None" = None) -> EvalSetResult:
        """
        Run every item through ``produce`` in order and grade the outputs.

        ``engine`` is only needed for semantic items; it defaults to the
        process engine.
        """
        result = EvalSetResult()
        for item in self.items:
            actual = str(await call_maybe_async(produce, item.input))
            similarity = None

            if item.type == "exact":
                passed = actual == item.expected
            elif item.type == "contains":
                passed = item.expected.lower() in actual.lower()
            elif item.type == "regex":
                passed = re.search(item.expected, actual) is not None
            else:
                if engine is None:
                    from ai_eval_engine.engine import get_engine

                    engine = get_engine()
                similarity = await engine.similarity.semantic_similarity(actual, item.expected)
                passed = similarity >= SEMANTIC_PASS_THRESHOLD

            result.results.append(
                EvalItemResult(item.input, item.expected, actual, passed, item.type, similarity)
            )

        logger.info(f"Eval set: {result.passed}/{len(result.results)} passed ({result.pass_rate:.1%})")
        return result


def load_eval_set(path: str | Path) -> EvalSet:
    """Load an eval set from a JSON file holding a list of items."""
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError(f"Eval set file {path} must contain a JSON list")
    return EvalSet(data)


# ---------------------------------------------------------------------------
# MODEL COMPARISON / A-B TESTING
# ---------------------------------------------------------------------------

# A/B confidence is a heuristic: spread of average scores scaled by run count
AB_MAX_CONFIDENCE = 0.99
AB_WINNER_CONFIDENCE = 0.8


@dataclass
class ModelSummary:
    model: str
    avg_score: float
    avg_latency_ms: float
    runs: int


@dataclass
class ModelComparison:
    summaries: dict[str, ModelSummary]
    best_quality: str
    fastest: str

    def to_dict(self) -> dict:
        return {
            "results": {
                name: {"avg_score": s.avg_score, "avg_latency_ms": s.avg_latency_ms, "runs": s.runs}
                for name, s in self.summaries.items()
            },
            "recommendation": {"best_quality": self.best_quality, "fastest": self.fastest},
        }


@dataclass
class ABTestResult:
    """Per-variant averages, the confidence heuristic and the winner, if any.

    ``winner`` is None unless confidence exceeds AB_WINNER_CONFIDENCE.
    """

    name: str
    summaries: dict[str, ModelSummary]
    confidence: float
    winner: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "results": {
                variant: {"avg_score": s.avg_score, "avg_latency_ms": s.avg_latency_ms, "runs": s.runs}
                for variant, s in self.summaries.items()
            },
            "winner": self.winner,
            "confidence": self.confidence,
        }


async def _measure(
    label: str,
    arg: Any,
    produce: Callable[[Any], Union[str, Awaitable[str]]],
    evaluate: Callable[[str], Union[float, Awaitable[float]]],
    runs: int,
) -> ModelSummary:
    """Run ``produce(arg)`` ``runs`` times; latency covers ``produce`` only."""
    scores: list[float] = []
    latencies: list[float] = []
    for _ in range(runs):
        start = time.perf_counter()
        output = await call_maybe_async(produce, arg)
        latencies.append((time.perf_counter() - start) * 1000)
        scores.append(float(await call_maybe_async(evaluate, output)))

    summary = ModelSummary(label, mean(scores), mean(latencies), runs)
    logger.debug(f"{label}: avg_score={summary.avg_score:.3f}, avg_latency={summary.avg_latency_ms:.0f}ms")
    return summary


async def compare_models(
    models: Sequence[str],
    produce: Callable[[str], Union[str, Awaitable[str]]],
    evaluate: Callable[[str], Union[float, Awaitable[float]]],
    runs: int = 5,
) -> ModelComparison:
    """
    Run ``produce(model)`` ``runs`` times per model and score each output.

    Latency covers ``produce`` only, not ``evaluate``. Ties go to the model
    listed first.
    """
    if not models:
        raise ValueError("compare_models needs at least one model")
    if runs < 1:
        raise ValueError(f"runs must be >= 1, got {runs}")

    summaries = {model: await _measure(model, model, produce, evaluate, runs) for model in models}

    ordered = list(summaries.values())
    best_quality = max(ordered, key=lambda s: s.avg_score).model
    fastest = min(ordered, key=lambda s: s.avg_latency_ms).model
    return ModelComparison(summaries, best_quality, fastest)


async def ab_test(
    name: str,
    variants: Mapping[str, Any],
    produce: Callable[[Any], Union[str, Awaitable[str]]],
    evaluate: Callable[[str], Union[float, Awaitable[float]]],
    runs: int = 5,
) -> ABTestResult:
    """
    Compare prompt (or config) variants by average evaluated score.

    Each variant value is passed to ``produce`` ``runs`` times, sequentially.
    Confidence is ``min(0.99, (best_avg - worst_avg) * runs / 10)``; a winner
    is only named above 0.8, so one variant or a narrow spread yields None.
    Ties go to the variant listed first.
    """
    if not variants:
        raise ValueError("ab_test needs at least one variant")
    if runs < 1:
        raise ValueError(f"runs must be >= 1, got {runs}")

    summaries = {
        label: await _measure(label, value, produce, evaluate, runs)
        for label, value in variants.items()
    }

    scores = [s.avg_score for s in summaries.values()]
    confidence = min(AB_MAX_CONFIDENCE, (max(scores) - min(scores)) * runs / 10)
    best = max(summaries.values(), key=lambda s: s.avg_score).model
    winner = best if confidence > AB_WINNER_CONFIDENCE else None

    logger.info(f"A/B test '{name}': winner={winner or 'none'} (confidence {confidence:.2f})")
    return ABTestResult(name, summaries, confidence, winner)
