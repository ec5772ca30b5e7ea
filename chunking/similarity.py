"""
Pairwise cosine similarity over sentence embeddings.

O(N^2) in the number of sentences; this is the dominant cost of semantic
chunking for long documents.
"""

from typing import Sequence

import numpy as np


def _as_matrix(embeddings) -> np.ndarray:
    try:
        matrix = np.asarray(embeddings, dtype=np.float64)
    except ValueError as e:
        raise ValueError(f"Embeddings must all have the same dimension: {e}") from e

    if matrix.size == 0:
        return matrix.reshape(0, 0)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2-D array of embeddings, got shape {matrix.shape}")
    return matrix


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Cosine similarity of two vectors. Zero-norm vectors score 0."""
    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))


def similarity_matrix(embeddings) -> np.ndarray:
    """
    Build the symmetric N x N cosine similarity matrix.

    Rows and columns of zero-norm embeddings are 0 instead of NaN.
    The diagonal is always 1.0.

    Args:
        embeddings: Sequence of N equal-length vectors, or an (N, dim) array

    Returns:
        float64 array of shape (N, N) with values in [-1, 1]
    """
    matrix = _as_matrix(embeddings)
    n = matrix.shape[0]
    if n == 0:
        return np.zeros((0, 0), dtype=np.float64)

    norms = np.linalg.norm(matrix, axis=1)
    nonzero = norms > 0

    unit = np.zeros_like(matrix)
    unit[nonzero] = matrix[nonzero] / norms[nonzero, np.newaxis]

    sims = unit @ unit.T
    # Symmetrize to remove rounding asymmetry from the matmul
    sims = (sims + sims.T) / 2.0
    np.clip(sims, -1.0, 1.0, out=sims)
    np.fill_diagonal(sims, 1.0)
    return sims
