"""
LLM judge client and the schema of its response.

DEPENDENCY INJECTION:
---------------------
OpenAIJudgeClient accepts an optional AsyncOpenAI client, so tests can inject
a fake and verify parsing without any API calls. Anything implementing
core.protocols.JudgeClient (``async complete(prompt) -> str``) can stand in.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ai_eval_engine.core.errors import JudgeProviderError
from ai_eval_engine.core.protocols import JudgeClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JUDGE OUTPUT SCHEMA
# ---------------------------------------------------------------------------


class JudgeScores(BaseModel):
    """Scores returned by the judge.

    Every metric is optional: omitted or non-numeric values become None and
    are dropped by the scorer, never replaced with a made-up number.
    """

    model_config = ConfigDict(extra="ignore")

    coherence: float | None = None
    coverage: float | None = None
    conciseness: float | None = None
    accuracy: float | None = None
    relevance: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _numeric_or_none(cls, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if math.isnan(value):
            return None
        return float(value)

    def clamped(self, metrics: list[str]) -> dict[str, float]:
        """Requested metrics the judge actually scored, each clamped to [0, 1]."""
        scores = {}
        for metric in metrics:
            value = getattr(self, metric, None)
            if value is not None:
                scores[metric] = min(1.0, max(0.0, value))
        return scores


def parse_judge_response(raw: str) -> JudgeScores:
    """
    Parse the judge's JSON object.

    Raises:
        JudgeProviderError: the response is not a JSON object
    """
    try:
        data = json.loads(raw)
        return JudgeScores.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise JudgeProviderError(
            f"Judge returned an unparseable response: {e}",
            {"raw_excerpt": raw[:200]},
        ) from e


# ---------------------------------------------------------------------------
# OPENAI JUDGE CLIENT
# ---------------------------------------------------------------------------


class OpenAIJudgeClient:
    """Production judge client using OpenAI chat completions in JSON mode."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        base_url: str | None = None,
    ):
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def complete(self, prompt: str) -> str:
        logger.debug(f"Judge request to {self._model} ({len(prompt)} chars)")
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise JudgeProviderError(
                f"Judge request failed for model '{self._model}': {e}",
                {"model": self._model, "error_type": type(e).__name__},
            ) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise JudgeProviderError(
                f"Judge model '{self._model}' returned an empty response",
                {"model": self._model},
            )
        return content


def get_judge_client(
    enabled: bool,
    model: str = "gpt-4o-mini",
    api_key: str | None = None,
    base_url: str | None = None,
) -> JudgeClient | None:
    """
    Factory for the judge client.

    Returns None when judging is disabled, which puts the quality scorer in
    similarity-fallback mode.
    """
    if not enabled:
        return None
    return OpenAIJudgeClient(model=model, api_key=api_key, base_url=base_url)
