"""
Shared fixtures: deterministic providers and an engine wired to in-memory stores.

No test touches the network. FakeEmbeddings maps known texts to fixed vectors
so similarity values are exact; MockEmbeddings covers "any text" cases.
"""

from __future__ import annotations

import math

import pytest

from ai_eval_engine.config import EngineConfig, reset_config
from ai_eval_engine.engine import EvaluationEngine, reset_engine
from ai_eval_engine.embeddings import MockEmbeddings
from ai_eval_engine.observability import reset_tracer, reset_tracing_config
from ai_eval_engine.regression.baseline import InMemoryBaselineStore
from ai_eval_engine.semantic.snapshot import InMemorySnapshotStore


def unit(similarity: float) -> list[float]:
    """2-d unit vector whose cosine with [1, 0] is ``similarity``."""
    return [similarity, math.sqrt(max(0.0, 1 - similarity ** 2))]


class FakeEmbeddings:
    """Embedding provider returning fixed vectors for known texts."""

    def __init__(self, vectors: dict[str, list[float]] | None = None):
        self.vectors = dict(vectors or {})
        self.calls: list[tuple[str, str]] = []

    async def embed(self, text: str, model: str) -> list[float]:
        self.calls.append((model, text))
        if text not in self.vectors:
            raise KeyError(f"no vector for {text!r}")
        return list(self.vectors[text])


class FakeJudge:
    """Judge client replaying canned responses (an Exception entry is raised)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Keep env-driven singletons from leaking between tests."""
    for name in ("AI_EVAL_TRACING_ENABLED", "OTEL_EXPORTER_OTLP_ENDPOINT", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    reset_engine()
    reset_tracing_config()
    reset_tracer()
    yield
    reset_config()
    reset_engine()
    reset_tracing_config()
    reset_tracer()


@pytest.fixture
def config(tmp_path) -> EngineConfig:
    return EngineConfig(home_dir=tmp_path / ".ai-eval")


@pytest.fixture
def make_engine(config):
    """Build an engine with in-memory stores and no judge unless given."""

    def _make(embeddings=None, judge=None, **kwargs) -> EvaluationEngine:
        return EvaluationEngine(
            config=config,
            embedding_provider=embeddings or MockEmbeddings(),
            judge_client=judge,
            baseline_store=kwargs.pop("baseline_store", None) or InMemoryBaselineStore(),
            snapshot_store=kwargs.pop("snapshot_store", None) or InMemorySnapshotStore(),
            **kwargs,
        )

    return _make


@pytest.fixture
def engine(make_engine) -> EvaluationEngine:
    return make_engine()
