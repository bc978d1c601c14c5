"""
libSQL connection helpers for the persisted vector store.

libSQL ships the vector column types (F32_BLOB(n)), the vector(...) literal
parser, vector_distance_cos and the libsql_vector_idx similarity index, so the
store only has to encode embeddings into literals and decode stored blobs.
"""

from contextlib import contextmanager
from pathlib import Path
import re
from typing import Generator, List, Optional, Sequence

import libsql
import numpy as np

_F32_BLOB_RE = re.compile(r"F32_BLOB\s*\(\s*(\d+)\s*\)", re.IGNORECASE)


def vector_literal(values: Sequence[float]) -> str:
    """Encode an embedding in the bracketed, comma-separated literal syntax."""
    return "[" + ",".join(repr(float(v)) for v in values) + "]"


def blob_to_list(blob: bytes) -> List[float]:
    """Decode an F32_BLOB column value into Python floats."""
    usable = len(blob) - len(blob) % 4
    return np.frombuffer(blob[:usable], dtype="<f4").astype(np.float64).tolist()


def declared_dimension(column_type: str) -> Optional[int]:
    """Dimension of an F32_BLOB(n) column type, or None for other types."""
    match = _F32_BLOB_RE.search(column_type or "")
    return int(match.group(1)) if match else None


def ensure_db_directory(db_path: str) -> None:
    """Ensure the database directory exists."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def connect(db_path: str):
    """Open a libSQL connection on a local database file."""
    ensure_db_directory(db_path)
    return libsql.connect(db_path)


@contextmanager
def transaction(conn) -> Generator[None, None, None]:
    """Commit on success, roll back and re-raise on failure."""
    try:
        yield
    except Exception:
        conn.rollback()
        raise
    conn.commit()


@contextmanager
def get_db(db_path: str):
    """Get a short-lived libSQL connection."""
    conn = connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


def health_check(db_path: str) -> bool:
    """Check that the database opens and holds a vectors table."""
    try:
        with get_db(db_path) as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='vectors'"
            ).fetchone()
            return row is not None
    except Exception:
        return False
