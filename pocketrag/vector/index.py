"""
Vector store contract and the in-memory reference implementation.

All variants share the validation rules in IVectorStore: every batch is fully
validated (cardinalities, ids, embeddings, dimension) before anything is
mutated, so a failing call never leaves the store partially updated.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
import copy
import json
import random
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.errors import DimensionMismatch, DuplicateId, InvalidArgument, NotFound, RagError
from ..util.logging import logger
from .embeddings import IEmbeddingProvider
from .ids import uuid4_str
from .math import cosine, is_zero_vector
from .types import QueryResult, Record

RecordPredicate = Callable[[Record], bool]
ResultPredicate = Callable[[QueryResult], bool]


class IVectorStore(ABC):
    """Abstract interface for vector storage operations.

    A store is bound to one embedding provider. load() must be called before
    any other operation; unload() releases the provider (and any backing
    connection). Mutations and queries on one instance are serialised by a
    per-store lock.
    """

    def __init__(self, embeddings: IEmbeddingProvider, id_rng: Optional[random.Random] = None):
        self.embeddings = embeddings
        self.dimension: Optional[int] = None
        self._id_rng = id_rng
        self._lock = threading.RLock()

    def load(self) -> "IVectorStore":
        """Warm up the embedding provider."""
        self.embeddings.load()
        return self

    def unload(self) -> None:
        """Release the embedding provider."""
        self.embeddings.unload()

    @abstractmethod
    def add(
        self,
        documents: Sequence[Optional[str]],
        ids: Optional[Sequence[Optional[str]]] = None,
        embeddings: Optional[Sequence[Optional[Sequence[float]]]] = None,
        metadatas: Optional[Sequence[Optional[Dict[str, Any]]]] = None,
    ) -> List[str]:
        """Insert new records; returns the assigned ids in input order."""
        pass

    @abstractmethod
    def update(
        self,
        ids: Sequence[str],
        embeddings: Optional[Sequence[Optional[Sequence[float]]]] = None,
        documents: Optional[Sequence[Optional[str]]] = None,
        metadatas: Optional[Sequence[Optional[Dict[str, Any]]]] = None,
    ) -> None:
        """Update existing records in place."""
        pass

    @abstractmethod
    def delete(self, ids: Optional[Sequence[str]] = None, predicate: Optional[RecordPredicate] = None) -> None:
        """Delete records by id, by predicate, or by predicate over the given ids."""
        pass

    @abstractmethod
    def query(
        self,
        query_texts: Optional[Sequence[str]] = None,
        query_embeddings: Optional[Sequence[Sequence[float]]] = None,
        n_results: Optional[int] = None,
        ids: Optional[Sequence[str]] = None,
        predicate: Optional[ResultPredicate] = None,
    ) -> List[List[QueryResult]]:
        """Rank records by cosine similarity, one result list per query."""
        pass

    @abstractmethod
    def get(self, ids: Sequence[str]) -> List[Record]:
        """Fetch records by id, in the order given."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored records."""
        pass

    # Shared validation helpers

    def _check_lengths(self, n: int, **arrays: Optional[Sequence[Any]]) -> None:
        """Reject every batch argument whose length differs from n, in one error."""
        problems = [
            f"{name} has {len(arr)} entries, expected {n}"
            for name, arr in arrays.items()
            if arr is not None and len(arr) != n
        ]
        if problems:
            raise InvalidArgument("array length must match ids length", problems)

    def _check_query_args(self, query_texts, query_embeddings, n_results) -> None:
        if (query_texts is None) == (query_embeddings is None):
            raise InvalidArgument("Exactly one of query_texts or query_embeddings must be provided")
        if n_results is not None and n_results < 0:
            raise InvalidArgument(f"n_results must be non-negative, got {n_results}")

    def _assign_ids(self, documents: Sequence[Optional[str]], ids: Optional[Sequence[Optional[str]]]) -> List[str]:
        """Fill in generated ids and reject duplicates within the batch."""
        if ids is None:
            assigned = [uuid4_str(self._id_rng) for _ in documents]
        else:
            assigned = [i if i is not None else uuid4_str(self._id_rng) for i in ids]

        seen = set()
        repeated = []
        for record_id in assigned:
            if record_id in seen:
                repeated.append(record_id)
            seen.add(record_id)
        if repeated:
            raise DuplicateId(repeated)
        return assigned

    def _check_vector(self, vector: Sequence[float], expected: Optional[int], label: str) -> List[float]:
        """Validate one embedding and return it as a plain list of floats."""
        if vector is None or len(vector) == 0:
            raise InvalidArgument(f"embedding must be a non-empty vector ({label})")
        values = [float(v) for v in vector]
        if expected is not None and len(values) != expected:
            raise DimensionMismatch(expected=expected, received=len(values), record_id=label)
        if is_zero_vector(values):
            raise InvalidArgument(f"embedding must not be an all-zero vector ({label})")
        return values

    def _check_metadatas(
        self,
        record_ids: Sequence[str],
        metadatas: Optional[Sequence[Optional[Dict[str, Any]]]],
    ) -> List[Optional[Dict[str, Any]]]:
        """Accept only metadata that survives a JSON round trip unchanged.

        Both stores therefore accept exactly the same values: the SQLite
        store persists metadata as JSON, and tuples, non-string keys or NaN
        would otherwise come back altered. Returns an independent copy of
        each entry (None where no metadata was given).
        """
        if metadatas is None:
            return [None] * len(record_ids)

        checked = []
        problems = []
        for record_id, metadata in zip(record_ids, metadatas):
            if metadata is None:
                checked.append(None)
                continue
            if not isinstance(metadata, dict):
                problems.append(f"id {record_id}: metadata must be a dict, got {type(metadata).__name__}")
                checked.append(None)
                continue
            try:
                restored = json.loads(json.dumps(metadata, allow_nan=False))
            except (TypeError, ValueError) as exc:
                problems.append(f"id {record_id}: {exc}")
                checked.append(None)
                continue
            if restored != metadata:
                problems.append(f"id {record_id}: metadata is altered by JSON encoding")
            checked.append(restored)

        if problems:
            raise InvalidArgument("metadata must be JSON-compatible", problems)
        return checked

    @contextmanager
    def _logged_failure(self, operation: str):
        """Log a rejected call with status "failed" before re-raising it."""
        try:
            yield
        except RagError as exc:
            logger.log_vector_operation(
                operation, [], {"error": type(exc).__name__, "message": str(exc)}, status="failed"
            )
            raise

    def _resolve_new_embeddings(
        self,
        record_ids: List[str],
        documents: Sequence[Optional[str]],
        embeddings: Optional[Sequence[Optional[Sequence[float]]]],
    ) -> List[List[float]]:
        """Embed missing entries, then validate every vector against one dimension.

        Returns the validated vectors. Does not touch self.dimension; the
        caller commits the dimension only after the mutation succeeds.
        """
        missing = [
            record_ids[i] for i in range(len(record_ids))
            if (embeddings is None or embeddings[i] is None) and documents[i] is None
        ]
        if missing:
            raise InvalidArgument("each entry needs a document or an embedding", [f"id {i}" for i in missing])

        raw = []
        for i, record_id in enumerate(record_ids):
            if embeddings is not None and embeddings[i] is not None:
                raw.append(embeddings[i])
            else:
                raw.append(self.embeddings.embed(documents[i]))

        expected = self.dimension
        vectors = []
        for record_id, vector in zip(record_ids, raw):
            values = self._check_vector(vector, expected, record_id)
            if expected is None:
                expected = len(values)
            vectors.append(values)
        return vectors

    def _embed_queries(self, query_texts, query_embeddings) -> List[List[float]]:
        if query_embeddings is not None:
            raw = list(query_embeddings)
        else:
            raw = [self.embeddings.embed(text) for text in query_texts]
        return [self._check_vector(q, self.dimension, f"query {i}") for i, q in enumerate(raw)]

    def _commit_dimension(self, vectors: List[List[float]]) -> None:
        if self.dimension is None and vectors:
            self.dimension = len(vectors[0])


class SimpleInMemoryVectorStore(IVectorStore):
    """In-memory implementation of IVectorStore using exact cosine similarity.

    Records live in an insertion-ordered dict, so ties in similarity rank in
    insertion order and repeated queries are deterministic.
    """

    def __init__(self, embeddings: IEmbeddingProvider, id_rng: Optional[random.Random] = None):
        super().__init__(embeddings, id_rng)
        self._records: Dict[str, Record] = {}  # record_id -> Record

    def add(self, documents, ids=None, embeddings=None, metadatas=None) -> List[str]:
        with self._lock, self._logged_failure("add"):
            n = len(documents)
            self._check_lengths(n, ids=ids, embeddings=embeddings, metadatas=metadatas)
            record_ids = self._assign_ids(documents, ids)

            existing = [i for i in record_ids if i in self._records]
            if existing:
                raise DuplicateId(existing)

            checked_metadata = self._check_metadatas(record_ids, metadatas)
            vectors = self._resolve_new_embeddings(record_ids, documents, embeddings)

            for i, record_id in enumerate(record_ids):
                self._records[record_id] = Record(
                    id=record_id,
                    embedding=vectors[i],
                    document=documents[i],
                    metadata=checked_metadata[i],
                )
            self._commit_dimension(vectors)

        logger.log_vector_operation("add", record_ids, {"dimension": self.dimension})
        return record_ids

    def update(self, ids, embeddings=None, documents=None, metadatas=None) -> None:
        with self._lock, self._logged_failure("update"):
            n = len(ids)
            self._check_lengths(n, embeddings=embeddings, documents=documents, metadatas=metadatas)

            missing = [i for i in ids if i not in self._records]
            if missing:
                raise NotFound(missing)

            checked_metadata = self._check_metadatas(ids, metadatas)

            updated = []
            for i, record_id in enumerate(ids):
                row = self._records[record_id]
                document = documents[i] if documents is not None and documents[i] is not None else row.document
                if embeddings is not None and embeddings[i] is not None:
                    vector = embeddings[i]
                elif documents is not None and documents[i] is not None:
                    vector = self.embeddings.embed(documents[i])
                else:
                    vector = row.embedding
                vector = self._check_vector(vector, self.dimension, record_id)
                metadata = checked_metadata[i] if checked_metadata[i] is not None else row.metadata
                updated.append(Record(id=record_id, embedding=vector, document=document, metadata=metadata))

            for record in updated:
                self._records[record.id] = record
            self._commit_dimension([r.embedding for r in updated])

        logger.log_vector_operation("update", list(ids))

    def delete(self, ids=None, predicate=None) -> None:
        with self._lock, self._logged_failure("delete"):
            if ids is None and predicate is None:
                raise InvalidArgument("delete requires ids, a predicate, or both")

            if ids is not None:
                missing = [i for i in ids if i not in self._records]
                if missing:
                    raise NotFound(missing)
                candidates = [self._records[i] for i in ids]
            else:
                candidates = list(self._records.values())

            if predicate is not None:
                to_delete = [r.id for r in candidates if predicate(self._copy(r))]
            else:
                to_delete = [r.id for r in candidates]

            for record_id in to_delete:
                self._records.pop(record_id, None)

        logger.log_vector_operation("delete", to_delete, {"predicate": predicate is not None})

    def query(self, query_texts=None, query_embeddings=None, n_results=None, ids=None, predicate=None) -> List[List[QueryResult]]:
        with self._lock, self._logged_failure("query"):
            self._check_query_args(query_texts, query_embeddings, n_results)

            if ids is not None:
                missing = [i for i in ids if i not in self._records]
                if missing:
                    raise NotFound(missing)

            queries = self._embed_queries(query_texts, query_embeddings)

            # An empty ids list searches the whole store
            pool = [self._records[i] for i in dict.fromkeys(ids)] if ids else list(self._records.values())

            results = []
            for q in queries:
                scored = [
                    QueryResult(
                        id=r.id,
                        embedding=list(r.embedding),
                        document=r.document,
                        metadata=copy.deepcopy(r.metadata),
                        similarity=cosine(q, r.embedding),
                    )
                    for r in pool
                ]
                if predicate is not None:
                    scored = [r for r in scored if predicate(r)]
                # sorted() is stable, so ties keep pool order
                scored = sorted(scored, key=lambda r: r.similarity, reverse=True)
                if n_results is not None:
                    scored = scored[:n_results]
                results.append(scored)

        logger.debug(f"vector.query: {len(queries)} queries over {len(pool)} candidates")
        return results

    def get(self, ids) -> List[Record]:
        with self._lock:
            missing = [i for i in ids if i not in self._records]
            if missing:
                raise NotFound(missing)
            return [self._copy(self._records[i]) for i in ids]

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    @staticmethod
    def _copy(record: Record) -> Record:
        return Record(
            id=record.id,
            embedding=list(record.embedding),
            document=record.document,
            metadata=copy.deepcopy(record.metadata),
        )
