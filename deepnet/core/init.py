"""Activation-aware weight initialization."""

from __future__ import annotations

import math

import numpy as np

from .errors import InvalidConfiguration
from .types import Array


def init_limit(num_inputs: int, num_outputs: int, activation_kind: str) -> float:
    """Half-width of the uniform range used for ``activation_kind``."""

    kind = activation_kind.lower()
    if kind == "relu":
        return math.sqrt(2.0 / num_inputs)
    if kind == "softmax":
        return math.sqrt(6.0 / (num_inputs + num_outputs))
    if kind in {"sigmoid", "dropout"}:
        return 1.0 / math.sqrt(num_inputs)
    raise InvalidConfiguration(f"No weight initialization scheme for activation {activation_kind!r}")


def initialize_weights(
    num_inputs: int,
    num_outputs: int,
    activation_kind: str,
    rng: np.random.Generator | None = None,
) -> Array:
    """Draw a ``(num_inputs, num_outputs)`` weight matrix uniformly in ``[-limit, limit]``."""

    if num_inputs < 1 or num_outputs < 1:
        raise InvalidConfiguration(
            f"Layer dimensions must be positive, got {num_inputs}x{num_outputs}"
        )
    limit = init_limit(num_inputs, num_outputs, activation_kind)
    rng = rng if rng is not None else np.random.default_rng()
    return rng.uniform(-limit, limit, size=(num_inputs, num_outputs)).astype(np.float64)


__all__ = ["init_limit", "initialize_weights"]
