"""
Tests for embedding providers, the embedding cache, cosine similarity and
semantic snapshots.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from conftest import FakeEmbeddings, unit

from ai_eval_engine.core.errors import (
    DimensionMismatch,
    EmbeddingProviderError,
    SemanticMismatch,
    SnapshotMismatch,
)
from ai_eval_engine.embeddings import (
    EmbeddingCache,
    MockEmbeddings,
    OpenAIEmbeddings,
    get_embedding_provider,
)
from ai_eval_engine.semantic import (
    FileSnapshotStore,
    InMemorySnapshotStore,
    SemanticSnapshots,
    SimilarityScorer,
    Snapshot,
    cosine_similarity,
)


# ---------------------------------------------------------------------------
# COSINE SIMILARITY
# ---------------------------------------------------------------------------


class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)

    def test_zero_vector_gives_zero(self):
        assert cosine_similarity([0, 0], [1, 1]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch) as exc_info:
            cosine_similarity([1, 2, 3], [1, 2])
        assert exc_info.value.details == {"left_dim": 3, "right_dim": 2}

    def test_bounds_on_random_vectors(self):
        rng = np.random.default_rng(7)
        for _ in range(50):
            a, b = rng.normal(size=16), rng.normal(size=16)
            assert -1.0 <= cosine_similarity(a, b) <= 1.0
            assert cosine_similarity(a, a) == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# PROVIDERS
# ---------------------------------------------------------------------------


class TestMockEmbeddings:

    def test_deterministic(self):
        provider = MockEmbeddings(dimensions=32)
        a = asyncio.run(provider.embed("hello", "m"))
        b = asyncio.run(provider.embed("hello", "m"))

        assert a.shape == (32,)
        assert np.array_equal(a, b)

    def test_different_texts_differ(self):
        provider = MockEmbeddings()
        a = asyncio.run(provider.embed("hello", "m"))
        b = asyncio.run(provider.embed("goodbye", "m"))
        assert not np.array_equal(a, b)

    def test_factory(self):
        assert isinstance(get_embedding_provider(use_mock=True), MockEmbeddings)
        assert isinstance(get_embedding_provider(use_mock=False, api_key="sk-test"), OpenAIEmbeddings)


class TestOpenAIEmbeddings:

    def test_parses_response(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            return_value=MagicMock(data=[MagicMock(embedding=[0.1, 0.2, 0.3])])
        )
        provider = OpenAIEmbeddings(client=client)

        vector = asyncio.run(provider.embed("text", "text-embedding-3-small"))

        assert vector.tolist() == [0.1, 0.2, 0.3]
        client.embeddings.create.assert_awaited_once_with(input="text", model="text-embedding-3-small")

    def test_empty_response_is_provider_error(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=MagicMock(data=[]))

        with pytest.raises(EmbeddingProviderError):
            asyncio.run(OpenAIEmbeddings(client=client).embed("text", "m"))


# ---------------------------------------------------------------------------
# CACHE
# ---------------------------------------------------------------------------


class TestEmbeddingCache:

    def test_second_call_hits_cache(self):
        provider = MockEmbeddings()
        cache = EmbeddingCache(provider, "model-a")

        first = asyncio.run(cache.get_embedding("hello"))
        second = asyncio.run(cache.get_embedding("hello"))

        assert len(provider.calls) == 1
        assert np.array_equal(first, second)
        stats = cache.stats()
        assert (stats.size, stats.hits, stats.misses) == (1, 1, 1)
        assert stats.keys == [("model-a", "hello")]

    def test_key_includes_model(self):
        provider = MockEmbeddings()
        cache = EmbeddingCache(provider)

        asyncio.run(cache.get_embedding("hello", "model-a"))
        asyncio.run(cache.get_embedding("hello", "model-b"))

        assert len(provider.calls) == 2
        assert len(cache) == 2

    def test_bypass_cache(self):
        provider = MockEmbeddings()
        cache = EmbeddingCache(provider)

        a = asyncio.run(cache.get_embedding("hello", use_cache=False))
        b = asyncio.run(cache.get_embedding("hello", use_cache=False))

        assert len(provider.calls) == 2
        assert len(cache) == 0
        assert np.array_equal(a, b)

    def test_cached_vectors_are_read_only(self):
        cache = EmbeddingCache(MockEmbeddings())
        vector = asyncio.run(cache.get_embedding("hello"))

        with pytest.raises(ValueError):
            vector[0] = 42.0

    def test_clear(self):
        cache = EmbeddingCache(MockEmbeddings())
        asyncio.run(cache.get_embedding("hello"))
        cache.clear()

        assert cache.stats().size == 0
        assert cache.stats().hits == 0

    def test_provider_failure_is_wrapped(self):
        cache = EmbeddingCache(FakeEmbeddings())

        with pytest.raises(EmbeddingProviderError) as exc_info:
            asyncio.run(cache.get_embedding("unknown text"))
        assert exc_info.value.details["error_type"] == "KeyError"
        assert len(cache) == 0

    def test_invalid_vector_rejected(self):
        cache = EmbeddingCache(FakeEmbeddings({"empty": []}))
        with pytest.raises(EmbeddingProviderError):
            asyncio.run(cache.get_embedding("empty"))


# ---------------------------------------------------------------------------
# SIMILARITY SCORER
# ---------------------------------------------------------------------------


def make_scorer(vectors) -> SimilarityScorer:
    return SimilarityScorer(EmbeddingCache(FakeEmbeddings(vectors)))


class TestSimilarityScorer:

    def test_similarity_from_vectors(self):
        scorer = make_scorer({"a": [1, 0], "b": unit(0.6)})
        assert asyncio.run(scorer.semantic_similarity("a", "b")) == pytest.approx(0.6)

    def test_negative_similarity_clamped_to_zero(self):
        scorer = make_scorer({"a": [1, 0], "b": [-1, 0]})
        assert asyncio.run(scorer.semantic_similarity("a", "b")) == 0.0

    def test_assert_passes_at_threshold(self):
        scorer = make_scorer({"a": [1, 0], "b": unit(0.9)})
        similarity = asyncio.run(scorer.assert_semantic_match("a", "b", threshold=0.9 - 1e-9))
        assert similarity == pytest.approx(0.9)

    def test_assert_fails_below_threshold(self):
        scorer = make_scorer({"a": [1, 0], "b": unit(0.5)})

        with pytest.raises(SemanticMismatch) as exc_info:
            asyncio.run(scorer.assert_semantic_match("a", "b"))

        error = exc_info.value
        assert error.similarity == pytest.approx(0.5)
        assert error.threshold == 0.8
        assert error.actual == "a"
        assert error.expected == "b"

    def test_provider_error_is_not_a_mismatch(self):
        scorer = make_scorer({"a": [1, 0]})
        with pytest.raises(EmbeddingProviderError):
            asyncio.run(scorer.assert_semantic_match("a", "missing"))

    def test_mismatched_dimensions(self):
        scorer = make_scorer({"a": [1, 0], "b": [1, 0, 0]})
        with pytest.raises(DimensionMismatch):
            asyncio.run(scorer.semantic_similarity("a", "b"))


# ---------------------------------------------------------------------------
# SNAPSHOTS
# ---------------------------------------------------------------------------


class TestSemanticSnapshots:

    def make_snapshots(self, vectors, store=None) -> SemanticSnapshots:
        return SemanticSnapshots(make_scorer(vectors), store or InMemorySnapshotStore())

    def test_first_run_creates_snapshot(self, caplog):
        snapshots = self.make_snapshots({"hello there": [1, 0]})

        with caplog.at_level("INFO"):
            result = asyncio.run(snapshots.assert_semantic_snapshot("hello there", "greeting"))

        assert result.created
        assert result.passed
        stored = snapshots.store.load("greeting")
        assert stored.text == "hello there"
        assert stored.embedding == [1.0, 0.0]
        assert "greeting" in caplog.text

    def test_similar_output_passes(self):
        snapshots = self.make_snapshots({"v1": [1, 0], "v2": unit(0.95)})
        asyncio.run(snapshots.check_snapshot("v1", "s"))

        result = asyncio.run(snapshots.assert_semantic_snapshot("v2", "s"))

        assert not result.created
        assert result.similarity == pytest.approx(0.95)

    def test_drifted_output_fails(self):
        snapshots = self.make_snapshots({"v1": [1, 0], "v2": unit(0.7)})
        asyncio.run(snapshots.check_snapshot("v1", "s"))

        with pytest.raises(SnapshotMismatch) as exc_info:
            asyncio.run(snapshots.assert_semantic_snapshot("v2", "s"))

        assert exc_info.value.snapshot_id == "s"
        assert exc_info.value.similarity == pytest.approx(0.7)
        # The stored snapshot is never overwritten by a check
        assert snapshots.store.load("s").text == "v1"

    def test_custom_threshold(self):
        snapshots = self.make_snapshots({"v1": [1, 0], "v2": unit(0.7)})
        asyncio.run(snapshots.check_snapshot("v1", "s"))
        asyncio.run(snapshots.assert_semantic_snapshot("v2", "s", threshold=0.6))

    def test_list_and_delete(self):
        snapshots = self.make_snapshots({"a": [1, 0], "b": [0, 1]})
        asyncio.run(snapshots.check_snapshot("a", "one"))
        asyncio.run(snapshots.check_snapshot("b", "two"))

        assert {s.id for s in snapshots.list_snapshots()} == {"one", "two"}
        assert snapshots.delete_snapshot("one")
        assert not snapshots.delete_snapshot("one")
        assert [s.id for s in snapshots.list_snapshots()] == ["two"]

    def test_compares_with_the_model_the_snapshot_was_stored_with(self):
        store = InMemorySnapshotStore()
        provider = MockEmbeddings()

        small = SemanticSnapshots(SimilarityScorer(EmbeddingCache(provider, "m-small")), store)
        asyncio.run(small.check_snapshot("same text", "s1"))

        large = SemanticSnapshots(SimilarityScorer(EmbeddingCache(provider, "m-large")), store)
        result = asyncio.run(large.assert_semantic_snapshot("same text", "s1"))

        assert result.similarity == pytest.approx(1.0)
        assert provider.calls[-1] == ("m-small", "same text")
        assert store.load("s1").model == "m-small"


class TestFileSnapshotStore:

    def test_round_trip_on_disk(self, tmp_path):
        store = FileSnapshotStore(tmp_path / "snapshots")
        store.save(Snapshot(id="welcome/email", text="Hi!", embedding=[0.5, 0.5], model="m"))

        path = store.path_for("welcome/email")
        assert path.parent == tmp_path / "snapshots"
        assert path.name.startswith("welcome_email~")

        loaded = store.load("welcome/email")
        assert loaded.id == "welcome/email"
        assert loaded.text == "Hi!"
        assert loaded.embedding == [0.5, 0.5]

    def test_missing_snapshot(self, tmp_path):
        assert FileSnapshotStore(tmp_path).load("nope") is None

    def test_no_temp_files_left(self, tmp_path):
        store = FileSnapshotStore(tmp_path)
        store.save(Snapshot(id="s", text="t", embedding=[1.0], model="m"))
        assert [p.name for p in tmp_path.iterdir()] == ["s.json"]

    def test_file_uses_camel_case_created_at(self, tmp_path):
        store = FileSnapshotStore(tmp_path)
        store.save(Snapshot(id="s", text="t", embedding=[1.0], model="m"))
        assert '"createdAt"' in (tmp_path / "s.json").read_text()

    def test_similar_ids_get_separate_files(self, tmp_path):
        store = FileSnapshotStore(tmp_path)
        store.save(Snapshot(id="team/a", text="alpha", embedding=[1.0], model="m"))
        store.save(Snapshot(id="team_a", text="beta", embedding=[0.5], model="m"))

        assert store.path_for("team/a") != store.path_for("team_a")
        assert store.load("team/a").text == "alpha"
        assert store.load("team_a").text == "beta"
        assert len(list(tmp_path.iterdir())) == 2

    def test_record_for_another_id_is_ignored(self, tmp_path, caplog):
        store = FileSnapshotStore(tmp_path)
        store.save(Snapshot(id="other", text="t", embedding=[1.0], model="m"))
        store.path_for("other").rename(store.path_for("mine"))

        with caplog.at_level("WARNING"):
            assert store.load("mine") is None
        assert "holds snapshot 'other'" in caplog.text

    def test_list_skips_unreadable_records(self, tmp_path, caplog):
        store = FileSnapshotStore(tmp_path)
        store.save(Snapshot(id="good", text="t", embedding=[1.0], model="m"))
        (tmp_path / "missing-fields.json").write_text('{"id": "missing-fields"}')
        (tmp_path / "not-json.json").write_text("{")

        with caplog.at_level("WARNING"):
            snapshots = store.list()

        assert [s.id for s in snapshots] == ["good"]
        assert "missing-fields.json" in caplog.text
        assert "not-json.json" in caplog.text
