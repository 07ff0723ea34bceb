"""
Semantic snapshots - single-vector drift detection.

The first check for a snapshot id stores ``{text, embedding, model, createdAt}``
and passes. Every later check compares the current output's embedding to the
stored one. This is the narrow sibling of regression testing: one vector, no
multi-metric judge.

Following the store pattern used for baselines:
1. Protocol defines the interface
2. FileSnapshotStore for production (one JSON file per id)
3. InMemorySnapshotStore for testing
4. Factory function for convenience
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ai_eval_engine.core.errors import SnapshotMismatch
from ai_eval_engine.core.files import (
    iter_json_records,
    read_json,
    record_filename,
    write_json_atomic,
)
from ai_eval_engine.semantic.similarity import SimilarityScorer, clamp_unit, cosine_similarity

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_THRESHOLD = 0.9


# ---------------------------------------------------------------------------
# SNAPSHOT DATA MODEL
# ---------------------------------------------------------------------------


@dataclass
class Snapshot:
    id: str
    text: str
    embedding: list[float]
    model: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "embedding": list(self.embedding),
            "model": self.model,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], snapshot_id: str | None = None) -> "Snapshot":
        return cls(
            id=data.get("id", snapshot_id or ""),
            text=data["text"],
            embedding=[float(x) for x in data["embedding"]],
            model=data.get("model", ""),
            created_at=datetime.fromisoformat(data["createdAt"]),
        )


# ---------------------------------------------------------------------------
# SNAPSHOT STORE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class SnapshotStore(Protocol):
    def load(self, snapshot_id: str) -> Snapshot | None:
        ...

    def save(self, snapshot: Snapshot) -> None:
        ...

    def list(self) -> list[Snapshot]:
        ...

    def delete(self, snapshot_id: str) -> bool:
        ...


class FileSnapshotStore:
    """Production snapshot store, one JSON file per id under ``directory``."""

    def __init__(self, directory: Path | str = ".ai-eval/snapshots"):
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, snapshot_id: str) -> Path:
        return self._dir / record_filename(snapshot_id)

    def load(self, snapshot_id: str) -> Snapshot | None:
        data = read_json(self.path_for(snapshot_id))
        if data is None:
            return None
        if data.get("id", snapshot_id) != snapshot_id:
            logger.warning(
                f"Ignoring {self.path_for(snapshot_id)}: "
                f"it holds snapshot '{data.get('id')}', not '{snapshot_id}'"
            )
            return None
        return Snapshot.from_dict(data, snapshot_id)

    def save(self, snapshot: Snapshot) -> None:
        write_json_atomic(self.path_for(snapshot.id), snapshot.to_dict())

    def list(self) -> list[Snapshot]:
        snapshots = []
        for path, data in iter_json_records(self._dir):
            try:
                snapshots.append(Snapshot.from_dict(data, path.stem))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable snapshot file {path}: {e}")
        return sorted(snapshots, key=lambda s: s.created_at, reverse=True)

    def delete(self, snapshot_id: str) -> bool:
        path = self.path_for(snapshot_id)
        if not path.exists():
            return False
        path.unlink()
        return True


class InMemorySnapshotStore:
    """Test snapshot store - no file I/O."""

    def __init__(self, snapshots: list[Snapshot] | None = None):
        self._snapshots = {s.id: s for s in snapshots or []}

    def load(self, snapshot_id: str) -> Snapshot | None:
        return self._snapshots.get(snapshot_id)

    def save(self, snapshot: Snapshot) -> None:
        self._snapshots[snapshot.id] = snapshot

    def list(self) -> list[Snapshot]:
        return sorted(self._snapshots.values(), key=lambda s: s.created_at, reverse=True)

    def delete(self, snapshot_id: str) -> bool:
        return self._snapshots.pop(snapshot_id, None) is not None


def get_snapshot_store(
    use_file: bool = True,
    directory: Path | str = ".ai-eval/snapshots",
) -> SnapshotStore:
    if use_file:
        return FileSnapshotStore(directory)
    return InMemorySnapshotStore()


# ---------------------------------------------------------------------------
# SNAPSHOT ASSERTION
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SnapshotResult:
    snapshot_id: str
    similarity: float
    threshold: float
    snapshot_text: str
    created: bool = False

    @property
    def passed(self) -> bool:
        return self.created or self.similarity >= self.threshold


def snapshot_mismatch_error(result: SnapshotResult, actual: str, negated: bool = False) -> SnapshotMismatch:
    relation = "<" if negated else ">="
    message = (
        f"Semantic snapshot mismatch for \"{result.snapshot_id}\"{' (negated)' if negated else ''}.\n"
        f"Expected similarity: {relation} {result.threshold}\n"
        f"Actual similarity: {result.similarity:.4f}\n\n"
        f"Current output:\n{actual}\n\n"
        f"Original output:\n{result.snapshot_text}"
    )
    return SnapshotMismatch(
        message,
        result.snapshot_id,
        result.similarity,
        result.threshold,
        actual,
        result.snapshot_text,
        negated=negated,
    )


class SemanticSnapshots:
    """Creates and checks semantic snapshots against a SnapshotStore."""

    def __init__(
        self,
        scorer: SimilarityScorer,
        store: SnapshotStore,
        default_threshold: float = DEFAULT_SNAPSHOT_THRESHOLD,
    ):
        self.scorer = scorer
        self.store = store
        self.default_threshold = default_threshold

    async def check_snapshot(
        self,
        actual: str,
        snapshot_id: str,
        threshold: float | None = None,
    ) -> SnapshotResult:
        threshold = self.default_threshold if threshold is None else threshold
        cache = self.scorer.cache
        existing = self.store.load(snapshot_id)
        if existing is None:
            embedding = await cache.get_embedding(actual)
            self.store.save(
                Snapshot(
                    id=snapshot_id,
                    text=actual,
                    embedding=embedding.tolist(),
                    model=cache.default_model,
                )
            )
            logger.info(f"Created semantic snapshot '{snapshot_id}' (first run passes)")
            return SnapshotResult(snapshot_id, 1.0, threshold, actual, created=True)

        # Vectors from different models are not comparable
        embedding = await cache.get_embedding(actual, model=existing.model or None)
        similarity = clamp_unit(cosine_similarity(embedding, existing.embedding))
        return SnapshotResult(snapshot_id, similarity, threshold, existing.text)

    async def assert_semantic_snapshot(
        self,
        actual: str,
        snapshot_id: str,
        threshold: float | None = None,
    ) -> SnapshotResult:
        """Fail with SnapshotMismatch when ``actual`` drifted from the stored snapshot."""
        result = await self.check_snapshot(actual, snapshot_id, threshold)
        if not result.passed:
            raise snapshot_mismatch_error(result, actual)
        return result

    def list_snapshots(self) -> list[Snapshot]:
        return self.store.list()

    def delete_snapshot(self, snapshot_id: str) -> bool:
        deleted = self.store.delete(snapshot_id)
        if deleted:
            logger.info(f"Deleted semantic snapshot '{snapshot_id}'")
        return deleted
