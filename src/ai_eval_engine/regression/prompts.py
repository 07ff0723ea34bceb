"""
Quality judge prompts - externalized for versioning and testing.

Keeping the rubric out of the scorer means the prompt can be reviewed on its
own and formatting can be tested without API calls.
"""

from __future__ import annotations

from typing import Sequence

# ---------------------------------------------------------------------------
# METRIC RUBRIC
# ---------------------------------------------------------------------------

METRIC_DESCRIPTIONS: dict[str, str] = {
    "coherence": "logically structured, consistent, easy to follow",
    "coverage": "addresses everything the reference/context calls for",
    "conciseness": "no padding, repetition or irrelevant detail",
    "accuracy": "factually consistent with the reference/context",
    "relevance": "stays on the topic of the reference/context",
}

QUALITY_JUDGE_PROMPT = """You are an AI output quality evaluator. Rate the following text on a scale of 0.0 to 1.0 for each metric.

TEXT TO EVALUATE:
{text}

REFERENCE/CONTEXT:
{reference}

METRICS TO EVALUATE:
{metric_lines}

Respond with ONLY a JSON object containing the scores, like:
{example}

Be strict but fair. A score of 0.8+ is good, 0.9+ is excellent."""


def format_quality_prompt(text: str, reference: str, metrics: Sequence[str]) -> str:
    """Render the judge prompt for the requested metrics."""
    metric_lines = "\n".join(
        f"- {m}: {METRIC_DESCRIPTIONS[m]}" if m in METRIC_DESCRIPTIONS else f"- {m}"
        for m in metrics
    )
    example = "{" + ", ".join(f'"{m}": 0.85' for m in metrics[:2]) + "}"
    return QUALITY_JUDGE_PROMPT.format(
        text=text,
        reference=reference,
        metric_lines=metric_lines,
        example=example,
    )
