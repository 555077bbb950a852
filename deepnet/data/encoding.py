"""One-hot encoding of string labels."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from sklearn.preprocessing import LabelEncoder

from ..core.types import Array


def one_hot_encode(labels: Sequence[object]) -> Tuple[Array, List[str]]:
    """Encode ``labels`` as one-hot rows.

    Returns the ``(len(labels), num_classes)`` matrix and the class names in
    column order (sorted, as :class:`~sklearn.preprocessing.LabelEncoder`
    orders them).
    """

    if len(labels) == 0:
        raise ValueError("Cannot one-hot encode an empty label sequence")
    encoder = LabelEncoder()
    encoded = encoder.fit_transform(np.asarray(labels).astype(str))
    num_classes = len(encoder.classes_)
    matrix = np.eye(num_classes, dtype=np.float64)[encoded]
    return matrix, [str(name) for name in encoder.classes_]


def decode_one_hot(rows: Array, classes: Sequence[str]) -> List[str]:
    """Map each row back to the class with the largest value."""

    rows = np.atleast_2d(np.asarray(rows, dtype=np.float64))
    if rows.shape[1] != len(classes):
        raise ValueError(f"Rows have {rows.shape[1]} columns but {len(classes)} classes were given")
    return [str(classes[idx]) for idx in np.argmax(rows, axis=1)]


__all__ = ["decode_one_hot", "one_hot_encode"]
