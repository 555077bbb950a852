"""Dense 2-D matrix primitives used by layers and losses.

Every function returns a new ``float64`` array and leaves its operands
untouched.  Shape violations raise :class:`~deepnet.core.errors.ShapeMismatch`.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Sequence

import numpy as np

from .errors import ShapeMismatch
from .types import Array


class Axis(IntEnum):
    """Reduction direction for :func:`mean_along_axis`.

    ``ROWS`` keeps one value per row (averages across columns), ``COLUMNS``
    keeps one value per column (averages across rows, i.e. over the batch).
    The integer values are the numpy axis that gets reduced.
    """

    ROWS = 1
    COLUMNS = 0


def as_matrix(values: Sequence[Sequence[float]] | Array) -> Array:
    """Return ``values`` as a 2-D ``float64`` array."""

    matrix = np.array(values, dtype=np.float64)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.ndim != 2:
        raise ShapeMismatch(f"Expected a 2-D matrix, got an array with shape {matrix.shape}")
    return matrix


def as_vector(values: Sequence[float] | Array) -> Array:
    """Return ``values`` as a 1-D ``float64`` array."""

    vector = np.array(values, dtype=np.float64)
    if vector.ndim != 1:
        raise ShapeMismatch(f"Expected a 1-D vector, got an array with shape {vector.shape}")
    return vector


def _require_2d(name: str, matrix: Array) -> None:
    if matrix.ndim != 2:
        raise ShapeMismatch(f"{name} must be 2-D, got shape {matrix.shape}")


def multiply(a: Array, b: Array) -> Array:
    """Standard matrix product ``a @ b``."""

    _require_2d("left operand", a)
    _require_2d("right operand", b)
    if a.shape[1] != b.shape[0]:
        raise ShapeMismatch(
            f"Cannot multiply {a.shape[0]}x{a.shape[1]} by {b.shape[0]}x{b.shape[1]}: "
            "inner dimensions differ"
        )
    return np.matmul(a, b).astype(np.float64, copy=False)


def hadamard(a: Array, b: Array) -> Array:
    """Elementwise product of two identically shaped arrays."""

    if a.shape != b.shape:
        raise ShapeMismatch(f"Hadamard product needs identical shapes, got {a.shape} and {b.shape}")
    return np.multiply(a, b, dtype=np.float64)


def transpose(a: Array) -> Array:
    _require_2d("operand", a)
    return np.array(a.T, dtype=np.float64)


def apply(func: Callable[[float], float], a: Array) -> Array:
    """Apply the scalar function ``func`` to every element of ``a``."""

    if a.size == 0:
        return np.array(a, dtype=np.float64)
    return np.vectorize(func, otypes=[np.float64])(a)


def mean_along_axis(a: Array, axis: Axis) -> Array:
    """Average ``a`` in the direction selected by ``axis``."""

    _require_2d("operand", a)
    return np.mean(a, axis=int(Axis(axis)), dtype=np.float64)


__all__ = [
    "Axis",
    "apply",
    "as_matrix",
    "as_vector",
    "hadamard",
    "mean_along_axis",
    "multiply",
    "transpose",
]
