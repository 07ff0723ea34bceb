"""
EvaluationEngine - the long-lived owner of every evaluation component.

One engine holds the embedding cache, the scorers and the stores, so state
that should outlive a single test (cached embeddings, the judge client) lives
on an explicit object instead of module globals. Per-test state (the cost
ledger) is never stored here; it travels with the Expectation or the active
ledger context.

PATTERN:
--------
Every dependency can be injected. Anything not injected is built from
EngineConfig with the same factories the CLI uses:

    engine = EvaluationEngine()                         # from environment
    engine = EvaluationEngine(embedding_provider=MockEmbeddings(),
                              baseline_store=InMemoryBaselineStore())
"""

from __future__ import annotations

import logging
from typing import Any

from ai_eval_engine.config import EngineConfig, get_config
from ai_eval_engine.core.protocols import BaselineStore, EmbeddingProvider, JudgeClient
from ai_eval_engine.cost.ledger import CostLedger
from ai_eval_engine.cost.pricing import MODEL_PRICING, PricingTable
from ai_eval_engine.embeddings.cache import EmbeddingCache
from ai_eval_engine.embeddings.openai_embeddings import get_embedding_provider
from ai_eval_engine.matchers.expect import Expectation
from ai_eval_engine.regression.baseline import get_baseline_store
from ai_eval_engine.regression.evaluator import RegressionEvaluator
from ai_eval_engine.regression.judge import get_judge_client
from ai_eval_engine.regression.quality import QualityScorer
from ai_eval_engine.semantic.similarity import SimilarityScorer
from ai_eval_engine.semantic.snapshot import SemanticSnapshots, SnapshotStore, get_snapshot_store
from ai_eval_engine.stats.chi_squared import GammaStrategy
from ai_eval_engine.stats.engine import StatisticsEngine

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class EvaluationEngine:
    """Wires pricing, embeddings, similarity, regression and statistics together."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        judge_client: JudgeClient | None = _UNSET,
        baseline_store: BaselineStore | None = None,
        snapshot_store: SnapshotStore | None = None,
        pricing: PricingTable | None = None,
        gamma: GammaStrategy | None = None,
    ):
        self.config = config or get_config()
        cfg = self.config

        self.pricing = pricing or PricingTable(MODEL_PRICING, cfg.default_pricing_model)

        self.embedding_provider = embedding_provider or get_embedding_provider(
            use_mock=cfg.use_mock_embeddings,
            api_key=cfg.api_key,
            base_url=cfg.base_url,
        )
        self.cache = EmbeddingCache(self.embedding_provider, cfg.embedding_model)
        self.similarity = SimilarityScorer(self.cache, cfg.semantic_threshold)
        self.snapshots = SemanticSnapshots(
            self.similarity,
            snapshot_store or get_snapshot_store(directory=cfg.snapshot_dir),
            cfg.snapshot_threshold,
        )

        # Passing judge_client=None explicitly forces fallback scoring
        if judge_client is _UNSET:
            judge_client = get_judge_client(
                cfg.judge_enabled,
                model=cfg.judge_model,
                api_key=cfg.api_key,
                base_url=cfg.base_url,
            )
        self.judge = judge_client
        self.quality = QualityScorer(self.similarity, self.judge)
        self.regression = RegressionEvaluator(
            self.quality,
            baseline_store or get_baseline_store(directory=cfg.baseline_dir),
            cfg.regression_threshold,
        )

        self.statistics = StatisticsEngine(self.similarity, gamma)

        logger.debug(
            f"Engine ready: embeddings={type(self.embedding_provider).__name__}, "
            f"judge={type(self.judge).__name__ if self.judge else 'fallback'}"
        )

    def new_ledger(self) -> CostLedger:
        """A fresh, active ledger priced with this engine's table."""
        return CostLedger(pricing=self.pricing)

    def expect(self, value: Any, ledger: CostLedger | None = None) -> Expectation:
        return Expectation(value, engine=self, ledger=ledger)


# Global engine singleton
_engine: EvaluationEngine | None = None


def get_engine() -> EvaluationEngine:
    """Get the process default engine (lazily built from the environment)."""
    global _engine
    if _engine is None:
        _engine = EvaluationEngine()
    return _engine


def set_engine(engine: EvaluationEngine | None) -> None:
    """Install ``engine`` as the process default (None resets it)."""
    global _engine
    _engine = engine


def reset_engine() -> None:
    """Reset the default engine (useful for testing)."""
    set_engine(None)


def expect(
    value: Any,
    *,
    ledger: CostLedger | None = None,
    engine: EvaluationEngine | None = None,
) -> Expectation:
    """
    Start an expectation on ``value``.

    Example:
        await expect(output).to_semantic_match("a friendly greeting")
        await expect(output).not_.to_contain_pii()
        expect(result["status"]).to_equal("ok")

    Cost matchers read ``ledger``, else the value itself when it is a
    CostLedger, else the ledger of the running AITestSession.
    """
    if engine is None:
        return Expectation(value, ledger=ledger)
    return engine.expect(value, ledger)
