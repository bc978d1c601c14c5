"""
Tests specific to the libSQL-backed vector store: persistence, schema, index and lifecycle.
"""

import pytest

from pocketrag.core import db
from pocketrag.core.errors import DimensionMismatch, InvalidArgument, StoreNotLoaded
from pocketrag.vector.sqlite_store import INDEX_NAME, SqliteVectorStore
from conftest import FakeEmbeddings


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "nested" / "vectors.db")


def test_operations_before_load_raise(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3))

    with pytest.raises(StoreNotLoaded):
        store.count()


def test_load_measures_dimension_and_creates_schema(db_path):
    embeddings = FakeEmbeddings(dim=4)
    store = SqliteVectorStore(db_path, embeddings).load()

    assert store.dimension == 4
    assert embeddings.loaded
    assert embeddings.embed_calls == ["dummy"]

    columns = store.conn.execute("PRAGMA table_info(vectors)").fetchall()
    assert [c[1] for c in columns] == ["id", "document", "embedding", "metadata"]
    assert db.declared_dimension(columns[2][2]) == 4
    assert db.health_check(db_path)
    store.unload()


def test_load_creates_similarity_index_with_parameters(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3), max_neighbors=32, compress_neighbors="float16").load()

    row = store.conn.execute(
        "SELECT sql FROM sqlite_master WHERE type='index' AND name=?", (INDEX_NAME,)
    ).fetchone()

    assert row is not None
    assert "libsql_vector_idx(embedding" in row[0]
    assert "'max_neighbors=32'" in row[0]
    assert "'compress_neighbors=float16'" in row[0]
    assert "'metric=cosine'" in row[0]
    store.unload()


def test_default_index_options():
    store = SqliteVectorStore(":memory:", FakeEmbeddings(dim=3))

    assert store.index_options() == ["metric=cosine", "compress_neighbors=float8", "max_neighbors=100"]

    bare = SqliteVectorStore(":memory:", FakeEmbeddings(dim=3), max_neighbors=None, compress_neighbors=None)
    assert bare.index_options() == ["metric=cosine"]


@pytest.mark.parametrize("kwargs", [{"max_neighbors": 0}, {"compress_neighbors": "int4"}])
def test_invalid_index_options_rejected(kwargs):
    with pytest.raises(InvalidArgument):
        SqliteVectorStore(":memory:", FakeEmbeddings(dim=3), **kwargs)


def test_records_persist_across_reload(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3)).load()
    store.add(ids=["a"], documents=["alpha"], embeddings=[[1, 2, 3]], metadatas=[{"source": "doc.txt"}])
    store.unload()

    reopened = SqliteVectorStore(db_path, FakeEmbeddings(dim=3)).load()
    record = reopened.get(["a"])[0]

    assert record.document == "alpha"
    assert record.embedding == [1.0, 2.0, 3.0]
    assert record.metadata == {"source": "doc.txt"}
    reopened.unload()


def test_reload_with_other_dimension_rejected(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3)).load()
    store.unload()

    with pytest.raises(DimensionMismatch):
        SqliteVectorStore(db_path, FakeEmbeddings(dim=5)).load()


def test_unload_closes_connection(db_path):
    embeddings = FakeEmbeddings(dim=3)
    store = SqliteVectorStore(db_path, embeddings).load()

    store.unload()

    assert embeddings.unload_count == 1
    with pytest.raises(StoreNotLoaded):
        store.query(query_embeddings=[[1, 0, 0]])


def test_delete_vector_store_drops_table_until_reload(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3)).load()
    store.add(ids=["a", "b"], documents=["alpha", "beta"])

    store.delete_vector_store()

    assert not db.health_check(db_path)
    assert store.dimension is None
    with pytest.raises(StoreNotLoaded):
        store.count()
    with pytest.raises(StoreNotLoaded):
        store.add(ids=["c"], documents=["gamma"])

    store.load()
    assert store.count() == 0
    store.add(ids=["c"], documents=["gamma"])
    assert store.count() == 1
    store.unload()


def test_dropped_store_accepts_new_dimension(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3)).load()
    store.add(ids=["a"], documents=["alpha"])
    store.delete_vector_store()

    wider = SqliteVectorStore(db_path, FakeEmbeddings(dim=5)).load()

    assert wider.dimension == 5
    wider.unload()


def test_query_pushes_limit_without_predicate(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3)).load()
    store.add(ids=["a", "b", "c"], documents=["alpha", "beta", "gamma"],
              embeddings=[[1, 0, 0], [1, 1, 0], [0, 1, 0]])

    ranked = store.query(query_embeddings=[[1, 0, 0]], n_results=2)[0]

    assert [r.id for r in ranked] == ["a", "b"]
    assert ranked[1].similarity == pytest.approx(0.70710678, rel=1e-5)
    store.unload()


def test_approximate_query_uses_index(db_path):
    store = SqliteVectorStore(db_path, FakeEmbeddings(dim=3), approximate=True).load()
    store.add(ids=["a", "b", "c"], documents=["alpha", "beta", "gamma"],
              embeddings=[[1, 0, 0], [0, 1, 0], [0, 0, 1]])

    ranked = store.query(query_embeddings=[[0, 1, 0.1]], n_results=1)[0]

    assert [r.id for r in ranked] == ["b"]
    assert store.query(query_embeddings=[[0, 1, 0]], n_results=0) == [[]]
    store.unload()


def test_memory_database():
    store = SqliteVectorStore(":memory:", FakeEmbeddings(dim=3)).load()
    store.add(ids=["a"], documents=["alpha"])

    assert store.count() == 1
    store.unload()


class TestDbHelpers:
    """Encoding helpers shared by the store."""

    def test_vector_literal_format(self):
        assert db.vector_literal([1, 2.5, -3]) == "[1.0,2.5,-3.0]"

    def test_blob_decoding(self):
        blob = b"".join(
            bytes.fromhex(h) for h in ["0000803f", "00002040", "000040c0"]
        )
        assert db.blob_to_list(blob) == [1.0, 2.5, -3.0]

    def test_declared_dimension(self):
        assert db.declared_dimension("F32_BLOB(384)") == 384
        assert db.declared_dimension("f32_blob( 8 )") == 8
        assert db.declared_dimension("BLOB") is None

    def test_health_check_missing_table(self, tmp_path):
        assert not db.health_check(str(tmp_path / "empty.db"))
