"""Vector similarity helpers."""

from collections.abc import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity between two vectors.

    Returns 0.0 when either vector has zero norm or the dimensions differ.
    """
    if len(a) != len(b):
        return 0.0

    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if norm == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / norm)


def cosine_similarities(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
    """Cosine similarity of every row of ``matrix`` against ``vector``.

    Rows with zero norm, or a zero query vector, score 0.0.

    Args:
        matrix: Array of shape (n, d).
        vector: Array of shape (d,).

    Returns:
        Array of shape (n,).
    """
    dots = matrix @ vector
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(vector)
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)


def is_zero_vector(vector: Sequence[float]) -> bool:
    """True for the "embeddings unavailable" sentinel (and for empty vectors)."""
    return not np.any(np.asarray(vector, dtype=np.float64))
