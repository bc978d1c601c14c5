"""
Record types shared by every vector store implementation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Record:
    """A stored document with its embedding."""

    id: str
    """Unique identifier, immutable once assigned"""

    embedding: List[float]
    """Embedding vector, length equal to the store dimension"""

    document: Optional[str] = None
    """Text content; absent only for embedding-only records"""

    metadata: Optional[Dict[str, Any]] = None
    """Caller metadata, opaque to the store"""


@dataclass
class QueryResult(Record):
    """A record ranked against a query vector."""

    similarity: float = field(default=0.0)
    """Cosine similarity to the query (1.0 = identical direction)"""
