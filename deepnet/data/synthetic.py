"""Generated datasets for demos, presets and tests."""

from __future__ import annotations

import itertools

import numpy as np

from .registry import DatasetSpec, examples_from_arrays, register_dataset


def boolean_target(a: int, b: int, c: int, d: int) -> int:
    """``((a & b) | (c & d)) & (not a | d) & c & b`` on 0/1 integers."""

    return ((a & b) | (c & d)) & ((1 - a) | d) & c & b


@register_dataset("boolean_logic")
def make_boolean_logic() -> DatasetSpec:
    """All 16 assignments of four bits with the :func:`boolean_target` label.

    Row ``r`` holds the bits of ``r`` in little-endian order ``(a, b, c, d)``.
    """

    rows = []
    targets = []
    for d, c, b, a in itertools.product((0, 1), repeat=4):
        rows.append((a, b, c, d))
        targets.append(boolean_target(a, b, c, d))
    inputs = np.array(rows, dtype=np.float64)
    outputs = np.array(targets, dtype=np.float64).reshape(-1, 1)
    return DatasetSpec(
        name="boolean_logic",
        examples=examples_from_arrays(inputs, outputs),
        task_type="binary",
        provenance={"generator": "boolean_logic", "rows": len(rows)},
    )


@register_dataset("linear_demo")
def make_linear_demo(
    *,
    n_points: int = 256,
    noise: float = 0.0,
    seed: int = 0,
) -> DatasetSpec:
    """Three inputs in ``[0, 1)`` mapped linearly to one output."""

    rng = np.random.default_rng(seed)
    inputs = rng.random((n_points, 3))
    outputs = inputs @ np.array([0.5, 0.3, -0.2]) + 0.1
    if noise:
        outputs = outputs + noise * rng.standard_normal(n_points)
    return DatasetSpec(
        name="linear_demo",
        examples=examples_from_arrays(inputs, outputs.reshape(-1, 1)),
        task_type="regression",
        provenance={"generator": "linear_demo", "n_points": n_points, "noise": noise, "seed": seed},
    )


@register_dataset("blobs")
def make_blobs(
    *,
    n_points: int = 150,
    num_classes: int = 3,
    num_features: int = 2,
    spread: float = 0.5,
    seed: int = 0,
) -> DatasetSpec:
    """Gaussian clusters with one-hot class targets."""

    if num_classes < 2:
        raise ValueError("blobs needs at least two classes")
    rng = np.random.default_rng(seed)
    centers = rng.uniform(-3.0, 3.0, size=(num_classes, num_features))
    labels = np.arange(n_points) % num_classes
    inputs = centers[labels] + spread * rng.standard_normal((n_points, num_features))
    outputs = np.eye(num_classes, dtype=np.float64)[labels]
    return DatasetSpec(
        name="blobs",
        examples=examples_from_arrays(inputs, outputs),
        task_type="multiclass",
        provenance={
            "generator": "blobs",
            "n_points": n_points,
            "num_classes": num_classes,
            "num_features": num_features,
            "spread": spread,
            "seed": seed,
        },
    )


__all__ = ["boolean_target", "make_blobs", "make_boolean_logic", "make_linear_demo"]
