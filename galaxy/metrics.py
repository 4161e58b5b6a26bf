# galaxy/metrics.py
"""
Trait-vector metrics.

Compatibility measures how well a node matches the central preference
vector; similarity measures how alike two nodes are. Both use the same
normalized L1 distance over the shared prefix of the two vectors, but they
answer different questions and are kept as separate entry points.
"""
from typing import Sequence

import numpy as np

from .config import Config

HASH_MOD = 2 ** 32


def _alignment(a: Sequence[float], b: Sequence[float]) -> float:
    n = min(len(a), len(b))
    if n == 0:
        return 0.0
    a = np.asarray(a[:n], dtype=np.float64)
    b = np.asarray(b[:n], dtype=np.float64)
    total = float(np.abs(a - b).sum())
    return max(0.0, 1.0 - total / (n * Config.core.TRAIT_MAX))


def compatibility(prefs: Sequence[float], attrs: Sequence[float]) -> float:
    """Alignment of a node's attributes with the central preferences, in [0, 1]."""
    return _alignment(prefs, attrs)


def similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Alignment between two nodes' attributes, in [0, 1]."""
    return _alignment(a, b)


def compatibility_scores(prefs: Sequence[float], attributes: np.ndarray) -> np.ndarray:
    """
    Vectorized compatibility of every row of `attributes` [N, L] against `prefs`.
    """
    attributes = np.asarray(attributes, dtype=np.float64)
    if attributes.ndim != 2 or attributes.shape[0] == 0:
        return np.zeros(attributes.shape[0] if attributes.ndim else 0)
    n = min(len(prefs), attributes.shape[1])
    if n == 0:
        return np.zeros(attributes.shape[0])
    p = np.asarray(prefs[:n], dtype=np.float64)
    total = np.abs(attributes[:, :n] - p).sum(axis=1)
    return np.maximum(0.0, 1.0 - total / (n * Config.core.TRAIT_MAX))


def similarity_matrix(attributes: np.ndarray) -> np.ndarray:
    """Pairwise similarity [N, N] between the rows of `attributes` [N, L]."""
    attributes = np.asarray(attributes, dtype=np.float64)
    if attributes.ndim != 2 or attributes.shape[1] == 0:
        size = attributes.shape[0] if attributes.ndim else 0
        return np.zeros((size, size))
    n = attributes.shape[1]
    total = np.abs(attributes[:, None, :] - attributes[None, :, :]).sum(axis=2)
    return np.maximum(0.0, 1.0 - total / (n * Config.core.TRAIT_MAX))


def trait_hash(values: Sequence[float]) -> int:
    """
    Order-sensitive polynomial hash of a trait vector.
    Stable across runs, so identical vectors always land in the same place.
    """
    h = 0
    for v in values:
        h = (h * 31 + int(round(v))) % HASH_MOD
    return h
