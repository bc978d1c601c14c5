"""
Vector storage: records, embedding providers and similarity search.
"""

from .index import IVectorStore, SimpleInMemoryVectorStore
from .sqlite_store import SqliteVectorStore
from .types import Record, QueryResult
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding, OllamaEmbedding
from .ids import uuid4_str
from .math import cosine, dot_product, magnitude

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'SqliteVectorStore',
    'Record',
    'QueryResult',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'OllamaEmbedding',
    'uuid4_str',
    'cosine',
    'dot_product',
    'magnitude',
]
