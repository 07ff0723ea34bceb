"""
Semantic module - cosine similarity, semantic matching, semantic snapshots.
"""

from ai_eval_engine.semantic.similarity import (
    DEFAULT_SEMANTIC_THRESHOLD,
    SemanticMatchResult,
    SimilarityScorer,
    clamp_unit,
    cosine_similarity,
    semantic_mismatch_error,
)
from ai_eval_engine.semantic.snapshot import (
    DEFAULT_SNAPSHOT_THRESHOLD,
    Snapshot,
    SnapshotStore,
    FileSnapshotStore,
    InMemorySnapshotStore,
    get_snapshot_store,
    SnapshotResult,
    SemanticSnapshots,
    snapshot_mismatch_error,
)

__all__ = [
    "DEFAULT_SEMANTIC_THRESHOLD",
    "SemanticMatchResult",
    "SimilarityScorer",
    "clamp_unit",
    "cosine_similarity",
    "semantic_mismatch_error",
    "DEFAULT_SNAPSHOT_THRESHOLD",
    "Snapshot",
    "SnapshotStore",
    "FileSnapshotStore",
    "InMemorySnapshotStore",
    "get_snapshot_store",
    "SnapshotResult",
    "SemanticSnapshots",
    "snapshot_mismatch_error",
]
