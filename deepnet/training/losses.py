"""Loss functions and the registry used to build them by name."""

from __future__ import annotations

from typing import Callable, Dict, Iterable

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.matrix import as_matrix
from ..core.types import Array


class LossFunction:
    """Scalar batch loss plus its per-element derivative.

    ``calc_loss`` sums the per-element loss and divides by the batch size.
    ``deriv_loss`` is not batch-averaged; layers average when they form their
    weight gradients.
    """

    name = "loss"

    def calc_loss(self, output: Array, expected: Array) -> float:
        output, expected = self._operands(output, expected)
        with np.errstate(divide="ignore", invalid="ignore"):
            total = float(np.sum(self._elementwise_loss(output, expected)))
        return total / output.shape[0]

    def deriv_loss(self, output: Array, expected: Array) -> Array:
        output, expected = self._operands(output, expected)
        with np.errstate(divide="ignore", invalid="ignore"):
            return self._elementwise_deriv(output, expected)

    def __call__(self, output: Array, expected: Array) -> tuple[float, Array]:
        return self.calc_loss(output, expected), self.deriv_loss(output, expected)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def _elementwise_loss(self, output: Array, expected: Array) -> Array:
        raise NotImplementedError

    def _elementwise_deriv(self, output: Array, expected: Array) -> Array:
        raise NotImplementedError

    @staticmethod
    def _operands(output: Array, expected: Array) -> tuple[Array, Array]:
        output = as_matrix(output)
        expected = as_matrix(expected)
        if output.shape != expected.shape:
            raise ShapeMismatch(
                f"Output shape {output.shape} must match expected shape {expected.shape}"
            )
        return output, expected


class MeanSquaredError(LossFunction):
    name = "mse"

    def _elementwise_loss(self, output: Array, expected: Array) -> Array:
        return np.square(expected - output)

    def _elementwise_deriv(self, output: Array, expected: Array) -> Array:
        return 2.0 * (output - expected)


class HuberLoss(LossFunction):
    """Quadratic near zero, linear beyond ``delta``."""

    name = "huber"

    def __init__(self, delta: float = 1.0) -> None:
        self.delta = float(delta)

    def __repr__(self) -> str:
        return f"HuberLoss(delta={self.delta})"

    def _elementwise_loss(self, output: Array, expected: Array) -> Array:
        error = np.abs(expected - output)
        return np.where(
            error < self.delta,
            0.5 * np.square(error),
            self.delta * (error - 0.5 * self.delta),
        )

    def _elementwise_deriv(self, output: Array, expected: Array) -> Array:
        error = output - expected
        return np.where(np.abs(error) < self.delta, error, self.delta * np.sign(error))


class BinaryCrossEntropy(LossFunction):
    """Expects outputs strictly inside (0, 1); nothing is clipped."""

    name = "bce"

    def _elementwise_loss(self, output: Array, expected: Array) -> Array:
        return -(expected * np.log(output) + (1.0 - expected) * np.log(1.0 - output))

    def _elementwise_deriv(self, output: Array, expected: Array) -> Array:
        return (output - expected) / (output * (1.0 - output))


class CategoricalCrossEntropy(LossFunction):
    """Expects outputs strictly inside (0, 1); nothing is clipped."""

    name = "cce"

    def _elementwise_loss(self, output: Array, expected: Array) -> Array:
        return -expected * np.log(output)

    def _elementwise_deriv(self, output: Array, expected: Array) -> Array:
        return output - expected


LossFactory = Callable[..., LossFunction]


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, LossFactory] = {}

    def register(self, name: str, factory: LossFactory) -> None:
        self._registry[name] = factory

    def get(self, name: str) -> LossFactory:
        try:
            return self._registry[name]
        except KeyError as exc:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}") from exc

    def create(self, name: str, **params: float) -> LossFunction:
        return self.get(name)(**params)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str, *, task_type: str, **params: float) -> LossFunction:
        if name == "auto":
            if task_type == "regression":
                name = "mse"
            elif task_type == "multiclass":
                name = "cce"
            elif task_type in {"binary", "multilabel"}:
                name = "bce"
            else:
                raise ValueError(f"Unknown task type: {task_type}")
        return self.create(name, **params)


REGISTRY = LossRegistry()

REGISTRY.register("mse", MeanSquaredError)
REGISTRY.register("huber", HuberLoss)
REGISTRY.register("bce", BinaryCrossEntropy)
REGISTRY.register("cce", CategoricalCrossEntropy)
# Long-form aliases used by config files
REGISTRY.register("mean_squared_error", MeanSquaredError)
REGISTRY.register("binary_cross_entropy", BinaryCrossEntropy)
REGISTRY.register("categorical_cross_entropy", CategoricalCrossEntropy)

__all__ = [
    "BinaryCrossEntropy",
    "CategoricalCrossEntropy",
    "HuberLoss",
    "LossFunction",
    "LossRegistry",
    "MeanSquaredError",
    "REGISTRY",
]
