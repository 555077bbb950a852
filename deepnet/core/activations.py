"""Activation utilities for deepnet."""

from __future__ import annotations

import numpy as np

from .matrix import apply
from .types import Array


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_deriv(x: Array) -> Array:
    """Slope of ReLU; exactly zero counts as inactive."""

    return (x > 0).astype(np.float64)


def sigmoid(x: Array) -> Array:
    return 1.0 / (1.0 + np.exp(-x))


def sigmoid_deriv(x: Array) -> Array:
    """Slope of the sigmoid, computed from the activated value ``s * (1 - s)``."""

    return apply(lambda s: s * (1.0 - s), sigmoid(x))


def softmax(z: Array) -> Array:
    """Row-wise normalized exponential."""

    shifted = z - np.max(z, axis=1, keepdims=True)
    e = np.exp(shifted)
    return e / np.sum(e, axis=1, keepdims=True)


def softmax_collapsed_deriv(z: Array) -> Array:
    """Collapse each row's softmax Jacobian into one value per column.

    Column ``j`` accumulates the diagonal term ``s_j (1 - s_j)`` and the
    off-diagonal terms ``-s_j s_k`` for every ``k != j``.
    """

    s = softmax(z)
    row_total = np.sum(s, axis=1, keepdims=True)
    diagonal = s * (1.0 - s)
    off_diagonal = s * (row_total - s)
    return diagonal - off_diagonal


def softmax_jacobian_product(z: Array, upstream: Array) -> Array:
    """Exact ``J^T g`` per row for the softmax Jacobian ``J``."""

    s = softmax(z)
    weighted = np.sum(upstream * s, axis=1, keepdims=True)
    return s * (upstream - weighted)


__all__ = [
    "relu",
    "relu_deriv",
    "sigmoid",
    "sigmoid_deriv",
    "softmax",
    "softmax_collapsed_deriv",
    "softmax_jacobian_product",
]
