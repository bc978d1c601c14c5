"""
libSQL-backed implementation of IVectorStore.

Records are rows of the `vectors` table:

    id TEXT PRIMARY KEY, document TEXT, embedding F32_BLOB(dim), metadata JSON

with a libsql_vector_idx similarity index on the embedding column. The table
layout is part of the on-disk format and must stay stable across versions.
Embeddings are bound as vector literals and parsed by libSQL's vector();
ranking and id restriction run in SQL, the Python predicate is applied to the
ranked rows afterwards.
"""

import json
import random
from typing import Any, Dict, List, Optional, Sequence

from ..core import db
from ..core.errors import DimensionMismatch, DuplicateId, InvalidArgument, NotFound, StoreNotLoaded
from ..util.logging import logger
from .embeddings import IEmbeddingProvider
from .index import IVectorStore
from .types import QueryResult, Record

INDEX_NAME = "idx_vectors_embedding"

COMPRESSION_TYPES = ("float1bit", "float8", "float16", "floatb16", "float32")

_COLUMNS = "id, document, embedding, metadata"


def _placeholders(n: int) -> str:
    return ",".join("?" for _ in range(n))


class SqliteVectorStore(IVectorStore):
    """Persisted vector store on a local libSQL database file.

    >>> store = SqliteVectorStore("./data/vectors.db", embeddings).load()
    >>> store.add(documents=["hello world"])
    >>> store.query(query_texts=["hello"], n_results=1)

    Args:
        db_path: Database file, or ":memory:" for a throwaway database.
        embeddings: Embedding provider used for documents and query texts.
        max_neighbors: Graph degree of the similarity index (None for the engine default).
        compress_neighbors: Storage type of neighbour vectors inside the index,
            one of COMPRESSION_TYPES (None keeps them uncompressed).
        approximate: Answer unrestricted, predicate-free queries from the
            index (vector_top_k) instead of an exact ranked scan.
    """

    def __init__(
        self,
        db_path: str,
        embeddings: IEmbeddingProvider,
        id_rng: Optional[random.Random] = None,
        max_neighbors: Optional[int] = 100,
        compress_neighbors: Optional[str] = "float8",
        approximate: bool = False,
    ):
        super().__init__(embeddings, id_rng)
        if max_neighbors is not None and max_neighbors < 1:
            raise InvalidArgument(f"max_neighbors must be positive, got {max_neighbors}")
        if compress_neighbors is not None and compress_neighbors not in COMPRESSION_TYPES:
            raise InvalidArgument(
                f"compress_neighbors must be one of {', '.join(COMPRESSION_TYPES)}, got {compress_neighbors!r}"
            )
        self.db_path = db_path
        self.max_neighbors = max_neighbors
        self.compress_neighbors = compress_neighbors
        self.approximate = approximate
        self._conn = None

    @property
    def conn(self):
        if self._conn is None:
            raise StoreNotLoaded(f"vector store at {self.db_path} is not loaded")
        return self._conn

    def index_options(self) -> List[str]:
        """libsql_vector_idx settings, in the engine's 'key=value' form."""
        options = ["metric=cosine"]
        if self.compress_neighbors is not None:
            options.append(f"compress_neighbors={self.compress_neighbors}")
        if self.max_neighbors is not None:
            options.append(f"max_neighbors={int(self.max_neighbors)}")
        return options

    def load(self) -> "SqliteVectorStore":
        """Load the provider, measure its dimension and ensure table and index exist."""
        self.embeddings.load()
        embedded_dim = len(self.embeddings.embed("dummy"))

        with self._lock:
            if self._conn is None:
                self._conn = db.connect(self.db_path)

            stored_dim = self._table_dimension()
            if stored_dim is not None and stored_dim != embedded_dim:
                raise DimensionMismatch(expected=stored_dim, received=embedded_dim)

            options = ", ".join(f"'{o}'" for o in self.index_options())
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS vectors ("
                "id TEXT PRIMARY KEY, "
                "document TEXT, "
                f"embedding F32_BLOB({embedded_dim}) NOT NULL, "
                "metadata JSON DEFAULT NULL)"
            )
            self._conn.execute(
                f"CREATE INDEX IF NOT EXISTS {INDEX_NAME} ON vectors("
                f"libsql_vector_idx(embedding, {options}))"
            )
            self._conn.commit()
            self.dimension = embedded_dim

        logger.log_vector_operation(
            "load", [], {"db_path": self.db_path, "dimension": self.dimension, "index": self.index_options()}
        )
        return self

    def unload(self) -> None:
        """Unload the provider and close the database connection."""
        self.embeddings.unload()
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        logger.log_vector_operation("unload", [], {"db_path": self.db_path})

    def add(self, documents, ids=None, embeddings=None, metadatas=None) -> List[str]:
        with self._lock, self._logged_failure("add"):
            n = len(documents)
            self._check_lengths(n, ids=ids, embeddings=embeddings, metadatas=metadatas)
            record_ids = self._assign_ids(documents, ids)

            existing = self._existing_ids(record_ids)
            if existing:
                raise DuplicateId([i for i in record_ids if i in existing])

            checked_metadata = self._check_metadatas(record_ids, metadatas)
            vectors = self._resolve_new_embeddings(record_ids, documents, embeddings)

            rows = [
                (
                    record_ids[i],
                    documents[i],
                    db.vector_literal(vectors[i]),
                    json.dumps(checked_metadata[i]) if checked_metadata[i] is not None else None,
                )
                for i in range(n)
            ]
            if rows:
                with db.transaction(self.conn):
                    self.conn.executemany(
                        "INSERT INTO vectors(id, document, embedding, metadata) VALUES (?, ?, vector(?), ?)",
                        rows,
                    )
            self._commit_dimension(vectors)

        logger.log_vector_operation("add", record_ids, {"dimension": self.dimension})
        return record_ids

    def update(self, ids, embeddings=None, documents=None, metadatas=None) -> None:
        with self._lock, self._logged_failure("update"):
            n = len(ids)
            self._check_lengths(n, embeddings=embeddings, documents=documents, metadatas=metadatas)

            current = {r.id: r for r in self._fetch(ids)}
            missing = [i for i in ids if i not in current]
            if missing:
                raise NotFound(missing)

            checked_metadata = self._check_metadatas(ids, metadatas)

            rows = []
            for i, record_id in enumerate(ids):
                row = current[record_id]
                document = documents[i] if documents is not None and documents[i] is not None else row.document
                if embeddings is not None and embeddings[i] is not None:
                    vector = embeddings[i]
                elif documents is not None and documents[i] is not None:
                    vector = self.embeddings.embed(documents[i])
                else:
                    vector = row.embedding
                vector = self._check_vector(vector, self.dimension, record_id)
                metadata = checked_metadata[i] if checked_metadata[i] is not None else row.metadata
                rows.append((
                    document,
                    db.vector_literal(vector),
                    json.dumps(metadata) if metadata is not None else None,
                    record_id,
                ))

            if rows:
                with db.transaction(self.conn):
                    self.conn.executemany(
                        "UPDATE vectors SET document = ?, embedding = vector(?), metadata = ? WHERE id = ?",
                        rows,
                    )

        logger.log_vector_operation("update", list(ids))

    def delete(self, ids=None, predicate=None) -> None:
        with self._lock, self._logged_failure("delete"):
            if ids is None and predicate is None:
                raise InvalidArgument("delete requires ids, a predicate, or both")

            if ids is not None:
                existing = self._existing_ids(ids)
                missing = [i for i in ids if i not in existing]
                if missing:
                    raise NotFound(missing)

            if predicate is None:
                to_delete = list(dict.fromkeys(ids))
            else:
                candidates = self._fetch(ids) if ids is not None else self._fetch_all()
                to_delete = [r.id for r in candidates if predicate(r)]

            if to_delete:
                with db.transaction(self.conn):
                    self.conn.execute(
                        f"DELETE FROM vectors WHERE id IN ({_placeholders(len(to_delete))})",
                        tuple(to_delete),
                    )

        logger.log_vector_operation("delete", to_delete, {"predicate": predicate is not None})

    def query(self, query_texts=None, query_embeddings=None, n_results=None, ids=None, predicate=None) -> List[List[QueryResult]]:
        with self._lock, self._logged_failure("query"):
            self._check_query_args(query_texts, query_embeddings, n_results)

            if ids is not None:
                existing = self._existing_ids(ids)
                missing = [i for i in ids if i not in existing]
                if missing:
                    raise NotFound(missing)

            queries = self._embed_queries(query_texts, query_embeddings)
            restrict = list(dict.fromkeys(ids)) if ids else []

            results = []
            for q in queries:
                literal = db.vector_literal(q)
                if self.approximate and not restrict and predicate is None and n_results is not None:
                    scored = self._top_k(literal, n_results)
                else:
                    scored = self._ranked_scan(literal, restrict, None if predicate else n_results)
                if predicate is not None:
                    scored = [r for r in scored if predicate(r)]
                    if n_results is not None:
                        scored = scored[:n_results]
                results.append(scored)

        return results

    def get(self, ids) -> List[Record]:
        with self._lock:
            found = {r.id: r for r in self._fetch(ids)}
            missing = [i for i in ids if i not in found]
            if missing:
                raise NotFound(missing)
            return [found[i] for i in ids]

    def count(self) -> int:
        with self._lock:
            return self.conn.execute("SELECT COUNT(*) FROM vectors").fetchone()[0]

    def delete_vector_store(self) -> None:
        """Drop the vectors table and its index. Destructive and not recoverable.

        The connection is closed and the dimension forgotten: every operation
        raises StoreNotLoaded until load() recreates the schema.
        """
        with self._lock:
            self.conn.execute(f"DROP INDEX IF EXISTS {INDEX_NAME}")
            self.conn.execute("DROP TABLE IF EXISTS vectors")
            self.conn.commit()
            self._conn.close()
            self._conn = None
            self.dimension = None
        logger.log_vector_operation("drop", [], {"db_path": self.db_path})

    # Ranking

    def _ranked_scan(self, literal: str, restrict: List[str], limit: Optional[int]) -> List[QueryResult]:
        """Exact cosine ranking over the table (or the restricted ids)."""
        sql = (
            f"SELECT {_COLUMNS}, "
            "(1.0 - vector_distance_cos(embedding, vector(?))) AS similarity "
            "FROM vectors"
        )
        params: List[Any] = [literal]
        if restrict:
            sql += f" WHERE id IN ({_placeholders(len(restrict))})"
            params.extend(restrict)
        sql += " ORDER BY similarity DESC, rowid ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._to_result(row) for row in self.conn.execute(sql, tuple(params)).fetchall()]

    def _top_k(self, literal: str, k: int) -> List[QueryResult]:
        """Approximate nearest neighbours from the similarity index."""
        if k == 0:
            return []
        sql = (
            "SELECT v.id, v.document, v.embedding, v.metadata, "
            "(1.0 - vector_distance_cos(v.embedding, vector(?))) AS similarity "
            f"FROM vector_top_k('{INDEX_NAME}', vector(?), ?) AS top "
            "JOIN vectors AS v ON v.rowid = top.id "
            "ORDER BY similarity DESC, v.rowid ASC"
        )
        rows = self.conn.execute(sql, (literal, literal, k)).fetchall()
        return [self._to_result(row) for row in rows]

    # Row helpers

    def _table_dimension(self) -> Optional[int]:
        for row in self._conn.execute("PRAGMA table_info(vectors)").fetchall():
            if row[1] == "embedding":
                return db.declared_dimension(row[2])
        return None

    def _existing_ids(self, ids: Sequence[str]) -> set:
        unique = list(dict.fromkeys(ids))
        if not unique:
            return set()
        rows = self.conn.execute(
            f"SELECT id FROM vectors WHERE id IN ({_placeholders(len(unique))})",
            tuple(unique),
        ).fetchall()
        return {row[0] for row in rows}

    def _fetch(self, ids: Sequence[str]) -> List[Record]:
        unique = list(dict.fromkeys(ids))
        if not unique:
            return []
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM vectors WHERE id IN ({_placeholders(len(unique))}) ORDER BY rowid",
            tuple(unique),
        ).fetchall()
        return [Record(**self._row_fields(row)) for row in rows]

    def _fetch_all(self) -> List[Record]:
        rows = self.conn.execute(f"SELECT {_COLUMNS} FROM vectors ORDER BY rowid").fetchall()
        return [Record(**self._row_fields(row)) for row in rows]

    def _to_result(self, row) -> QueryResult:
        return QueryResult(**self._row_fields(row), similarity=float(row[4]))

    @staticmethod
    def _row_fields(row) -> Dict[str, Any]:
        return {
            "id": row[0],
            "document": row[1],
            "embedding": db.blob_to_list(row[2]),
            "metadata": json.loads(row[3]) if row[3] is not None else None,
        }
