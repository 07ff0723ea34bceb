"""
Baseline storage - Protocol implementations for regression baselines.

Following the gold standard pattern:
1. Protocol defines the interface (core.protocols.BaselineStore)
2. FileBaselineStore for production (persistent, one JSON file per id)
3. InMemoryBaselineStore for testing (fast, no I/O)
4. Factory function for convenience
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ai_eval_engine.core.files import (
    iter_json_records,
    read_json,
    record_filename,
    write_json_atomic,
)
from ai_eval_engine.core.protocols import BaselineStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# BASELINE DATA MODEL
# ---------------------------------------------------------------------------


@dataclass
class Baseline:
    """Stored "known good" output plus its quality scores.

    Created on the first regression check for an id (version 1, scored
    against itself). Replaced only through an update whose scores are at
    least as good on every compared metric, which bumps ``version``.
    """

    id: str
    text: str
    metrics: dict[str, float]
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    version: int = 1
    # "judged" or "fallback_estimated": which scoring path produced ``metrics``
    scoring: str = "judged"

    def __post_init__(self):
        if self.version < 1:
            raise ValueError(f"Baseline version must be >= 1, got {self.version}")

    def updated(self, text: str, metrics: dict[str, float], scoring: str) -> "Baseline":
        """Next version of this baseline with new text and scores."""
        return replace(
            self,
            text=text,
            metrics=dict(metrics),
            updated_at=_utcnow(),
            version=self.version + 1,
            scoring=scoring,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "metrics": dict(self.metrics),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "version": self.version,
            "scoring": self.scoring,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Baseline":
        return cls(
            id=data["id"],
            text=data["text"],
            metrics={k: float(v) for k, v in data.get("metrics", {}).items()},
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data["updatedAt"]),
            version=int(data.get("version", 1)),
            scoring=data.get("scoring", "judged"),
        )


# ---------------------------------------------------------------------------
# FILE-BASED IMPLEMENTATION (Production)
# ---------------------------------------------------------------------------


class FileBaselineStore:
    """Production baseline store, one JSON file per baseline id.

    Text and metrics are written together through a temp file and an atomic
    rename, so concurrent readers never observe a half-written baseline.
    """

    def __init__(self, directory: Path | str = ".ai-eval/baselines"):
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        """Get the baseline directory."""
        return self._dir

    def path_for(self, baseline_id: str) -> Path:
        return self._dir / record_filename(baseline_id)

    def load(self, baseline_id: str) -> Baseline | None:
        """Load a baseline, None if it has never been created."""
        data = read_json(self.path_for(baseline_id))
        if data is None:
            return None
        if data.get("id") != baseline_id:
            logger.warning(
                f"Ignoring {self.path_for(baseline_id)}: "
                f"it holds baseline '{data.get('id')}', not '{baseline_id}'"
            )
            return None
        return Baseline.from_dict(data)

    def save(self, baseline: Baseline) -> None:
        write_json_atomic(self.path_for(baseline.id), baseline.to_dict())

    def list(self) -> list[Baseline]:
        baselines = []
        for path, data in iter_json_records(self._dir):
            try:
                baselines.append(Baseline.from_dict(data))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping unreadable baseline file {path}: {e}")
        return sorted(baselines, key=lambda b: b.updated_at, reverse=True)

    def delete(self, baseline_id: str) -> bool:
        path = self.path_for(baseline_id)
        if not path.exists():
            return False
        path.unlink()
        return True


# ---------------------------------------------------------------------------
# IN-MEMORY IMPLEMENTATION (Testing)
# ---------------------------------------------------------------------------


class InMemoryBaselineStore:
    """Test baseline store - no file I/O.

    Perfect for unit tests that need to verify regression
    detection logic without touching the filesystem.
    """

    def __init__(self, baselines: list[Baseline] | None = None):
        self._baselines: dict[str, Baseline] = {b.id: b for b in baselines or []}
        self._save_count = 0

    @property
    def save_called(self) -> bool:
        """Check if save was called (for test assertions)."""
        return self._save_count > 0

    @property
    def save_count(self) -> int:
        return self._save_count

    def load(self, baseline_id: str) -> Baseline | None:
        return self._baselines.get(baseline_id)

    def save(self, baseline: Baseline) -> None:
        self._baselines[baseline.id] = baseline
        self._save_count += 1

    def list(self) -> list[Baseline]:
        return sorted(self._baselines.values(), key=lambda b: b.updated_at, reverse=True)

    def delete(self, baseline_id: str) -> bool:
        return self._baselines.pop(baseline_id, None) is not None


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_baseline_store(
    use_file: bool = True,
    directory: Path | str = ".ai-eval/baselines",
    baselines: list[Baseline] | None = None,
) -> BaselineStore:
    """
    Factory function for baseline stores.

    Args:
        use_file: If True, use FileBaselineStore. If False, use InMemoryBaselineStore.
        directory: Directory for FileBaselineStore.
        baselines: Initial baselines for InMemoryBaselineStore.

    Example:
        # Production
        store = get_baseline_store(directory=config.baseline_dir)

        # Testing
        store = get_baseline_store(use_file=False, baselines=[Baseline(...)])
    """
    if use_file:
        return FileBaselineStore(directory)
    return InMemoryBaselineStore(baselines)
