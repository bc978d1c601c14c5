"""
Tests specific to the in-memory vector store.
"""

import random

import pytest

from pocketrag.core.errors import DimensionMismatch
from pocketrag.vector.index import SimpleInMemoryVectorStore
from conftest import FakeEmbeddings


class TestSimpleInMemoryVectorStore:
    """Dimension lifecycle and provider lifecycle of the in-memory store."""

    @pytest.fixture
    def embeddings(self):
        return FakeEmbeddings(dim=3)

    @pytest.fixture
    def store(self, embeddings):
        return SimpleInMemoryVectorStore(embeddings).load()

    def test_dimension_unset_until_first_insert(self, store):
        assert store.dimension is None

        store.add(ids=["a"], documents=["alpha"], embeddings=[[1, 0, 0, 0]])

        assert store.dimension == 4

    def test_failed_first_batch_does_not_fix_dimension(self, store):
        """A mixed-length first batch is rejected and the dimension stays open."""
        with pytest.raises(DimensionMismatch):
            store.add(ids=["a", "b"], documents=["alpha", "beta"], embeddings=[[1, 0], [1, 0, 0]])

        assert store.dimension is None
        assert store.count() == 0

        store.add(ids=["c"], documents=["gamma"], embeddings=[[1, 0, 0, 0, 0]])
        assert store.dimension == 5

    def test_query_does_not_fix_dimension(self, store):
        assert store.query(query_embeddings=[[1, 0]]) == [[]]
        assert store.dimension is None

    def test_load_and_unload_drive_provider(self, embeddings):
        store = SimpleInMemoryVectorStore(embeddings)

        assert store.load() is store
        assert embeddings.loaded

        store.unload()
        assert embeddings.unload_count == 1
        assert not embeddings.loaded

    def test_injected_rng_makes_ids_reproducible(self, embeddings):
        first = SimpleInMemoryVectorStore(embeddings, id_rng=random.Random(7))
        second = SimpleInMemoryVectorStore(FakeEmbeddings(dim=3), id_rng=random.Random(7))

        assert first.add(documents=["alpha", "beta"]) == second.add(documents=["alpha", "beta"])

    def test_provider_error_leaves_store_unchanged(self, store, embeddings):
        """An embedding failure mid-batch propagates and nothing is stored."""
        calls = []

        def flaky_embed(text):
            calls.append(text)
            if len(calls) == 2:
                raise RuntimeError("model crashed")
            return [1.0, 2.0, 3.0]

        embeddings.embed = flaky_embed

        with pytest.raises(RuntimeError, match="model crashed"):
            store.add(ids=["a", "b"], documents=["alpha", "beta"])

        assert store.count() == 0
