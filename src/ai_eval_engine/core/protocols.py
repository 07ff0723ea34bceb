"""
Core protocols defining the engine's external boundaries.

Every boundary that leaves the process (embedding endpoint, judge endpoint,
durable storage) is a Protocol, so tests inject in-process doubles and
production wires the OpenAI/file implementations.

PATTERN:
- Protocol defines the contract
- Production implementation (OpenAI client, files on disk)
- Test double (mock embeddings, in-memory store)
- Factory function for instantiation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from ai_eval_engine.regression.baseline import Baseline


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - OpenAIEmbeddings (production)
    - MockEmbeddings (testing)

    Failures must raise EmbeddingProviderError, never return a zero vector.
    """

    async def embed(self, text: str, model: str) -> np.ndarray:
        """Generate the embedding for a single text."""
        ...


# ---------------------------------------------------------------------------
# JUDGE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class JudgeClient(Protocol):
    """
    Contract for the LLM judge.

    Takes a fully-rendered prompt, returns the raw completion text, which is
    expected to be a JSON object mapping metric name to a float.
    """

    async def complete(self, prompt: str) -> str:
        """Run the judge prompt and return the raw response text."""
        ...


# ---------------------------------------------------------------------------
# BASELINE STORE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class BaselineStore(Protocol):
    """
    Contract for regression baseline persistence.

    Implementations:
    - FileBaselineStore (production, one JSON file per id)
    - InMemoryBaselineStore (testing)
    """

    def load(self, baseline_id: str) -> Baseline | None:
        """Load a baseline. Returns None if not found."""
        ...

    def save(self, baseline: Baseline) -> None:
        """Persist a baseline, replacing any previous record atomically."""
        ...

    def list(self) -> list[Baseline]:
        """All baselines, most recently updated first."""
        ...

    def delete(self, baseline_id: str) -> bool:
        """Remove a baseline. Returns False if it did not exist."""
        ...
