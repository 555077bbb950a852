"""Shuffling and batching policy for the training loop."""

from __future__ import annotations

from typing import Iterator, List

import numpy as np

from ..core.errors import InvalidConfiguration, ShapeMismatch
from ..core.types import Batch, Dataset


def shuffle_in_place(data: Dataset, rng: np.random.Generator) -> Dataset:
    """Fisher-Yates shuffle of ``data``, walking from the last index to the first.

    Each position ``i`` swaps with a uniform draw from ``[0, i]``.  Input and
    output vectors move together because whole pairs are swapped.
    """

    for i in range(len(data) - 1, -1, -1):
        j = int(rng.integers(0, i + 1))
        data[i], data[j] = data[j], data[i]
    return data


def batch_sizes(num_examples: int, batch_size: int, truncate: bool = True) -> List[int]:
    """Sizes of the batches :func:`make_batches` would produce."""

    if batch_size < 1:
        raise InvalidConfiguration(f"batch_size must be positive, got {batch_size}")
    full, remainder = divmod(num_examples, batch_size)
    sizes = [batch_size] * full
    if remainder and not truncate:
        sizes.append(remainder)
    return sizes


def _stack(rows: List[np.ndarray], label: str) -> np.ndarray:
    widths = {np.shape(row) for row in rows}
    if len(widths) != 1:
        raise ShapeMismatch(f"Dataset {label} vectors have inconsistent widths: {sorted(widths)}")
    return np.array(rows, dtype=np.float64).reshape(len(rows), -1)


def iter_batches(data: Dataset, batch_size: int, truncate: bool = True) -> Iterator[Batch]:
    """Yield consecutive batches of ``data`` in its current order.

    With ``truncate`` the trailing ``len(data) % batch_size`` examples are
    skipped; otherwise they form a final short batch.
    """

    start = 0
    for size in batch_sizes(len(data), batch_size, truncate):
        chunk = data[start : start + size]
        start += size
        yield Batch(
            inputs=_stack([pair[0] for pair in chunk], "input"),
            targets=_stack([pair[1] for pair in chunk], "output"),
        )


def make_batches(data: Dataset, batch_size: int, truncate: bool = True) -> List[Batch]:
    return list(iter_batches(data, batch_size, truncate))


__all__ = ["batch_sizes", "iter_batches", "make_batches", "shuffle_in_place"]
