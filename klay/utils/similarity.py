"""Cosine similarity helpers shared by every vector store backend.

``score = dot(a, b) / (|a| * |b|)``, defined as ``0.0`` when either vector
has zero norm, and clamped to ``[-1.0, 1.0]`` to absorb floating point
drift (``score(v, v)`` may otherwise come out as ``1.0000000000000002``).
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of two equal-length vectors."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        msg = f"Vectors differ in length: {va.shape[0]} != {vb.shape[0]}"
        raise ValueError(msg)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, score))


def cosine_scores(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Score *query* against every row of *matrix* in one pass.

    Rows with zero norm, and every row when the query itself has zero
    norm, score ``0.0``.
    """
    if matrix.size == 0:
        return np.zeros(0, dtype=np.float64)
    q = np.asarray(query, dtype=np.float64)
    q_norm = float(np.linalg.norm(q))
    row_norms = np.linalg.norm(matrix, axis=1)
    if q_norm == 0.0:
        return np.zeros(matrix.shape[0], dtype=np.float64)
    denom = row_norms * q_norm
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(denom > 0.0, dots / np.where(denom > 0.0, denom, 1.0), 0.0)
    return np.clip(scores, -1.0, 1.0)


def l2_normalize(vector: Sequence[float]) -> list[float]:
    """Return *vector* scaled to unit length (zero vectors are returned as-is)."""
    v = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(v))
    if norm == 0.0:
        return v.tolist()
    return (v / norm).tolist()
