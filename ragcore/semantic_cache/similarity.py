"""Vector similarity for semantic cache matching."""

from collections.abc import Sequence

import numpy as np

from ..errors import DimensionMismatchError

SIMILARITY_TOLERANCE = 1e-9


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """
    Cosine similarity ``dot(a, b) / (|a| * |b|)``.

    Symmetric, range [-1, 1]. A zero vector has no direction and scores 0.0
    against everything.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()

    if va.shape[0] != vb.shape[0]:
        raise DimensionMismatchError(va.shape[0], vb.shape[0], context="cosine_similarity")

    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0

    # Rounding can push identical directions just past +/-1
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


def meets_threshold(similarity: float, threshold: float) -> bool:
    """``similarity >= threshold``, forgiving float rounding so a vector always matches itself at 1.0."""
    return similarity >= threshold - SIMILARITY_TOLERANCE
