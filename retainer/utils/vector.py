"""Vector utility functions."""

import math


def l2_norm(vec: list[float]) -> float:
    """Return the Euclidean length of a vector."""
    return math.sqrt(sum(x * x for x in vec))


def normalize(vec: list[float]) -> list[float]:
    """Scale a vector to unit length.

    The zero vector has no direction; it maps to the uniform unit vector
    so that every embedding keeps norm 1.
    """
    if not vec:
        raise ValueError("Vectors cannot be empty")

    magnitude = l2_norm(vec)
    if magnitude == 0 or math.isnan(magnitude):
        uniform = 1.0 / math.sqrt(len(vec))
        return [uniform] * len(vec)

    return [x / magnitude for x in vec]


def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        vec_a: First vector
        vec_b: Second vector (must be same length as vec_a)

    Returns:
        Similarity between -1 and 1, or 0.0 when either vector has zero norm

    Raises:
        ValueError: If vectors have different lengths
    """
    if len(vec_a) != len(vec_b):
        raise ValueError(f"Vectors must have same length: got {len(vec_a)} and {len(vec_b)}")

    norm_a = l2_norm(vec_a)
    norm_b = l2_norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    return dot_product / (norm_a * norm_b)
