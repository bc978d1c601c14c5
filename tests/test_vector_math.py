"""
Tests for the vector math helpers.
"""

import math

import pytest

from pocketrag.core.errors import DimensionMismatch
from pocketrag.vector.math import cosine, dot_product, is_zero_vector, magnitude


def test_dot_product():
    assert dot_product([1, 2, 3], [4, 5, 6]) == 32


def test_dot_product_length_mismatch():
    with pytest.raises(DimensionMismatch) as exc_info:
        dot_product([1, 2, 3], [1, 2])
    assert exc_info.value.expected == 3
    assert exc_info.value.received == 2


def test_magnitude():
    assert magnitude([3, 4]) == 5
    assert magnitude([0, 0, 0]) == 0


def test_cosine_identical_opposite_orthogonal():
    assert cosine([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert cosine([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine([1, 0], [0, 1]) == pytest.approx(0.0)


def test_cosine_range():
    value = cosine([0.3, -1.2, 5.0], [2.0, 0.1, -0.4])
    assert -1.0 <= value <= 1.0
    assert value == pytest.approx(
        (0.6 - 0.12 - 2.0) / (math.sqrt(0.09 + 1.44 + 25.0) * math.sqrt(4.0 + 0.01 + 0.16))
    )


def test_is_zero_vector():
    assert is_zero_vector([0, 0.0, -0.0])
    assert not is_zero_vector([0, 1e-9])
