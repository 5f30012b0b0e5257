"""Exact cosine similarity over a dense matrix.

This is a brute-force ``O(rows x D)`` scan with no index; it is the
reference ranking that any faster search must agree with.
"""

from __future__ import annotations

import math
import warnings
from collections.abc import Sequence

import numpy as np

from .exceptions import DimensionMismatchError, ZeroVectorError, ZeroVectorWarning


def as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """Return ``values`` as a flat float64 array."""
    return np.asarray(values, dtype=np.float64).reshape(-1)


def _safe_norm(v: np.ndarray) -> float:
    n = float(np.linalg.norm(v))
    if not math.isfinite(n):
        return 0.0
    return n


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine similarity of two vectors.

    Raises:
        DimensionMismatchError: if the vectors differ in length.
        ZeroVectorError: if either vector has zero norm.
    """
    va, vb = as_vector(a), as_vector(b)
    if va.size != vb.size:
        raise DimensionMismatchError(va.size, vb.size)
    na, nb = _safe_norm(va), _safe_norm(vb)
    if na == 0 or nb == 0:
        raise ZeroVectorError("one of the vectors is a zero vector")
    return float(np.dot(va, vb) / (na * nb))


def normalize_vector(vector: Sequence[float] | np.ndarray) -> np.ndarray:
    """Rescale ``vector`` to unit Euclidean norm.

    A zero vector cannot be normalized; it is returned unchanged and a
    :class:`ZeroVectorWarning` is issued.
    """
    v = as_vector(vector)
    norm = _safe_norm(v)
    if norm == 0:
        warnings.warn("zero vector cannot be normalized", ZeroVectorWarning, stacklevel=2)
        return v.copy()
    return v / norm


def rank_rows(matrix: np.ndarray, query: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Rank the rows of ``matrix`` by cosine similarity to ``query``.

    Returns ``(row_indices, scores)`` in descending score order, ties kept in
    row order. Rows with zero norm are left out; a zero-norm query ranks
    nothing.
    """
    rows = matrix.shape[0]
    if query.size != matrix.shape[1]:
        raise DimensionMismatchError(matrix.shape[1], query.size)
    empty = (np.empty(0, dtype=np.intp), np.empty(0, dtype=np.float64))
    if rows == 0:
        return empty
    qn = _safe_norm(query)
    if qn == 0:
        return empty
    denom = np.linalg.norm(matrix, axis=1)
    valid = np.flatnonzero(np.isfinite(denom) & (denom > 0))
    if valid.size == 0:
        return empty
    scores = (matrix[valid] @ query) / (denom[valid] * qn)
    order = np.argsort(-scores, kind="stable")
    return valid[order], scores[order]


__all__ = ["as_vector", "cosine_similarity", "normalize_vector", "rank_rows"]
