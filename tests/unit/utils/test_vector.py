"""Unit tests for vector utilities."""

import math

import pytest

from retainer.utils.vector import cosine_similarity, l2_norm, normalize


class TestNormalize:
    """Tests for normalize."""

    def test_unit_length(self) -> None:
        """Normalized vectors have norm 1."""
        result = normalize([3.0, 4.0])
        assert result == pytest.approx([0.6, 0.8])
        assert l2_norm(result) == pytest.approx(1.0)

    def test_zero_vector_maps_to_uniform(self) -> None:
        """The zero vector becomes the uniform unit vector."""
        result = normalize([0.0, 0.0, 0.0, 0.0])
        assert result == pytest.approx([0.5, 0.5, 0.5, 0.5])

    def test_nan_maps_to_uniform(self) -> None:
        """A NaN component does not leak into the result."""
        result = normalize([math.nan, 1.0])
        assert l2_norm(result) == pytest.approx(1.0)

    def test_empty_raises(self) -> None:
        """Empty vectors are rejected."""
        with pytest.raises(ValueError):
            normalize([])


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self) -> None:
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_zero_vector_is_zero(self) -> None:
        """Zero-norm input yields 0.0 instead of dividing by zero."""
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_length_mismatch_raises(self) -> None:
        with pytest.raises(ValueError, match="same length"):
            cosine_similarity([1.0], [1.0, 0.0])
