"""Per-layer optimizers.

An optimizer turns a raw gradient into the update a layer subtracts from its
parameters.  Each instance belongs to exactly one layer; stateful variants
allocate their running statistics lazily from the first gradient they see.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Protocol

import numpy as np

from .errors import InvalidConfiguration, ShapeMismatch
from .types import Array


class Optimizer(Protocol):
    """Protocol implemented by every update rule."""

    name: str

    def optimize_weights(self, gradient: Array) -> Array:
        """Return the update to subtract from the weight matrix."""

    def optimize_bias(self, gradient: Array) -> Array:
        """Return the update to subtract from the bias vector."""

    def reset(self) -> None:
        """Forget all running state."""


def _state_like(state: Array | None, gradient: Array, label: str) -> Array:
    if state is None:
        return np.zeros_like(gradient, dtype=np.float64)
    if state.shape != gradient.shape:
        raise ShapeMismatch(
            f"{label} gradient has shape {gradient.shape}, optimizer state was "
            f"allocated for {state.shape}"
        )
    return state


@dataclass
class SGD:
    """Plain stochastic gradient descent, no momentum."""

    learning_rate: float = 0.01
    name: str = field(default="sgd", init=False)

    def optimize_weights(self, gradient: Array) -> Array:
        return self.learning_rate * gradient

    def optimize_bias(self, gradient: Array) -> Array:
        return self.learning_rate * gradient

    def reset(self) -> None:
        return None


@dataclass
class RMSprop:
    """Scale each step by a running root-mean-square of past gradients."""

    learning_rate: float = 0.001
    decay_rate: float = 0.9
    epsilon: float = 1e-8
    name: str = field(default="rmsprop", init=False)
    _cache: Array | None = field(default=None, init=False, repr=False)
    _cache_bias: Array | None = field(default=None, init=False, repr=False)

    def _step(self, cache: Array, gradient: Array) -> Array:
        cache *= self.decay_rate
        cache += (1.0 - self.decay_rate) * np.square(gradient)
        return self.learning_rate * gradient / (np.sqrt(cache) + self.epsilon)

    def optimize_weights(self, gradient: Array) -> Array:
        self._cache = _state_like(self._cache, gradient, "weight")
        return self._step(self._cache, gradient)

    def optimize_bias(self, gradient: Array) -> Array:
        self._cache_bias = _state_like(self._cache_bias, gradient, "bias")
        return self._step(self._cache_bias, gradient)

    def reset(self) -> None:
        self._cache = None
        self._cache_bias = None


@dataclass
class Adam:
    """Adam with bias-corrected moments.

    ``t`` counts every call, weight and bias alike, so both bias corrections
    advance together.  ``weight_decay`` inflates the weight gradient before the
    moments are updated; the bias path never decays.
    """

    learning_rate: float = 0.001
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    weight_decay: float = 0.01
    name: str = field(default="adam", init=False)
    t: int = field(default=0, init=False)
    _m: Array | None = field(default=None, init=False, repr=False)
    _v: Array | None = field(default=None, init=False, repr=False)
    _m_bias: Array | None = field(default=None, init=False, repr=False)
    _v_bias: Array | None = field(default=None, init=False, repr=False)

    def _step(self, m: Array, v: Array, gradient: Array) -> Array:
        self.t += 1
        m *= self.beta1
        m += (1.0 - self.beta1) * gradient
        v *= self.beta2
        v += (1.0 - self.beta2) * np.square(gradient)
        m_hat = m / (1.0 - self.beta1**self.t)
        v_hat = v / (1.0 - self.beta2**self.t)
        return self.learning_rate * m_hat / (np.sqrt(v_hat) + self.epsilon)

    def optimize_weights(self, gradient: Array) -> Array:
        self._m = _state_like(self._m, gradient, "weight")
        self._v = _state_like(self._v, gradient, "weight")
        decayed = gradient + self.weight_decay * gradient
        return self._step(self._m, self._v, decayed)

    def optimize_bias(self, gradient: Array) -> Array:
        self._m_bias = _state_like(self._m_bias, gradient, "bias")
        self._v_bias = _state_like(self._v_bias, gradient, "bias")
        return self._step(self._m_bias, self._v_bias, gradient)

    def reset(self) -> None:
        self.t = 0
        self._m = self._v = None
        self._m_bias = self._v_bias = None


OPTIMIZERS: Dict[str, Callable[..., Optimizer]] = {
    "sgd": SGD,
    "rmsprop": RMSprop,
    "adam": Adam,
}


def available_optimizers() -> Iterable[str]:
    return sorted(OPTIMIZERS)


def build_optimizer(name: str, **params: float) -> Optimizer:
    """Instantiate the optimizer registered as ``name``."""

    key = name.lower()
    if key not in OPTIMIZERS:
        available = ", ".join(available_optimizers())
        raise KeyError(f"Unknown optimizer {name!r}. Available optimizers: {available}")
    try:
        return OPTIMIZERS[key](**params)
    except TypeError as exc:
        raise InvalidConfiguration(f"Bad parameters for optimizer {name!r}: {exc}") from exc


__all__ = [
    "Adam",
    "OPTIMIZERS",
    "Optimizer",
    "RMSprop",
    "SGD",
    "available_optimizers",
    "build_optimizer",
]
