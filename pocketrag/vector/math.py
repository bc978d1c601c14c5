"""
Vector math used for similarity ranking.
"""

from typing import Sequence

import numpy as np

from ..core.errors import DimensionMismatch


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    """Sum of pairwise products. Raises DimensionMismatch if lengths differ."""
    if len(a) != len(b):
        raise DimensionMismatch(expected=len(a), received=len(b))
    return float(np.dot(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64)))


def magnitude(a: Sequence[float]) -> float:
    """Euclidean (L2) norm of a vector."""
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64)))


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Both vectors must be non-zero; stores reject all-zero embeddings before
    they ever reach this function.
    """
    return dot_product(a, b) / (magnitude(a) * magnitude(b))


def is_zero_vector(a: Sequence[float]) -> bool:
    return not np.any(np.asarray(a, dtype=np.float64))
