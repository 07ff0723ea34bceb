"""
Engine configuration

Loads settings from environment variables. Credentials are the only
required external configuration; everything else has a working default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

_TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class EngineConfig:
    """Configuration for the evaluation engine.

    Environment Variables:
        OPENAI_API_KEY: Credential for embedding and judge calls
        OPENAI_BASE_URL: Alternate OpenAI-compatible endpoint (optional)
        AI_EVAL_EMBEDDING_MODEL: Embedding model (default: text-embedding-3-small)
        AI_EVAL_JUDGE_MODEL: Judge model (default: gpt-4o-mini)
        AI_EVAL_JUDGE_ENABLED: Use the LLM judge (default: true when a key is set)
        AI_EVAL_USE_MOCK_EMBEDDINGS: Use deterministic offline embeddings (default: false)
        AI_EVAL_HOME: Root for baselines/ and snapshots/ (default: .ai-eval)
        AI_EVAL_SEMANTIC_THRESHOLD: Default semantic match threshold (default: 0.8)
        AI_EVAL_SNAPSHOT_THRESHOLD: Default snapshot threshold (default: 0.9)
        AI_EVAL_REGRESSION_THRESHOLD: Hard floor for regression metrics (default: 0.85)
        AI_EVAL_TEST_TIMEOUT_S: Per-test deadline in seconds (default: 30)
        AI_EVAL_DEFAULT_PRICING_MODEL: Pricing entry used for unknown models (default: gpt-4o-mini)
    """

    api_key: str | None = None
    base_url: str | None = None
    embedding_model: str = "text-embedding-3-small"
    judge_model: str = "gpt-4o-mini"
    judge_enabled: bool = False
    use_mock_embeddings: bool = False
    home_dir: Path = field(default_factory=lambda: Path(".ai-eval"))
    semantic_threshold: float = 0.8
    snapshot_threshold: float = 0.9
    regression_threshold: float = 0.85
    test_timeout_s: float = 30.0
    default_pricing_model: str = "gpt-4o-mini"

    @property
    def baseline_dir(self) -> Path:
        return Path(self.home_dir) / "baselines"

    @property
    def snapshot_dir(self) -> Path:
        return Path(self.home_dir) / "snapshots"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load config from environment variables."""
        api_key = os.environ.get("OPENAI_API_KEY") or None
        return cls(
            api_key=api_key,
            base_url=os.environ.get("OPENAI_BASE_URL") or None,
            embedding_model=os.environ.get("AI_EVAL_EMBEDDING_MODEL", "text-embedding-3-small"),
            judge_model=os.environ.get("AI_EVAL_JUDGE_MODEL", "gpt-4o-mini"),
            # The judge needs a credential; without one the scorer runs in fallback mode
            judge_enabled=_env_bool("AI_EVAL_JUDGE_ENABLED", api_key is not None),
            use_mock_embeddings=_env_bool("AI_EVAL_USE_MOCK_EMBEDDINGS", False),
            home_dir=Path(os.environ.get("AI_EVAL_HOME", ".ai-eval")),
            semantic_threshold=_env_float("AI_EVAL_SEMANTIC_THRESHOLD", 0.8),
            snapshot_threshold=_env_float("AI_EVAL_SNAPSHOT_THRESHOLD", 0.9),
            regression_threshold=_env_float("AI_EVAL_REGRESSION_THRESHOLD", 0.85),
            test_timeout_s=_env_float("AI_EVAL_TEST_TIMEOUT_S", 30.0),
            default_pricing_model=os.environ.get("AI_EVAL_DEFAULT_PRICING_MODEL", "gpt-4o-mini"),
        )


# Global config singleton
_config: EngineConfig | None = None


def get_config() -> EngineConfig:
    """Get the global engine config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
