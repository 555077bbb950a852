"""Trainable fully connected layers.

A layer owns a ``(num_inputs, num_outputs)`` weight matrix, a bias vector,
one optimizer and the caches of its most recent forward pass.  The caches tie
a training forward pass to the backward pass that follows it::

    layer.forward_propagation(batch, training=True)   # IDLE -> FORWARD_DONE
    layer.back_propagation(upstream_gradient)         # FORWARD_DONE -> IDLE

Calling :meth:`Layer.back_propagation` in any other order raises
:class:`~deepnet.core.errors.UndefinedState`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Iterable, Type

import numpy as np

from .activations import (
    relu,
    relu_deriv,
    sigmoid,
    sigmoid_deriv,
    softmax,
    softmax_collapsed_deriv,
    softmax_jacobian_product,
)
from .errors import InvalidConfiguration, ShapeMismatch, UndefinedState
from .init import initialize_weights
from .matrix import Axis, as_matrix, as_vector, hadamard, mean_along_axis, multiply, transpose
from .optimizers import Optimizer
from .types import Array


class LayerState(Enum):
    IDLE = "idle"
    FORWARD_DONE = "forward_done"


class Layer(ABC):
    """Base class for every activation variant."""

    kind: str = ""

    def __init__(
        self,
        num_outputs: int,
        optimizer: Optimizer,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        if int(num_outputs) < 1:
            raise InvalidConfiguration(f"num_outputs must be positive, got {num_outputs}")
        self.num_outputs = int(num_outputs)
        self.optimizer = optimizer
        self.rng = rng if rng is not None else np.random.default_rng()
        self.num_inputs: int | None = None
        self.weights: Array | None = None
        self.bias: Array = np.zeros(self.num_outputs, dtype=np.float64)
        self.last_inputs: Array | None = None
        self.last_pre_activation: Array | None = None
        self.state = LayerState.IDLE

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(num_inputs={self.num_inputs}, "
            f"num_outputs={self.num_outputs}, optimizer={self.optimizer.name})"
        )

    # ------------------------------------------------------------------
    # Wiring

    @property
    def is_bound(self) -> bool:
        return self.weights is not None

    def bind(self, num_inputs: int, weights: Array | None = None) -> None:
        """Fix the fan-in and install the initial weights.

        Happens exactly once, when the owning network wires the layer.  The
        optimizer starts from empty state sized by the first gradient.
        """

        if self.is_bound:
            raise InvalidConfiguration(f"{self!r} is already attached to a network")
        if int(num_inputs) < 1:
            raise InvalidConfiguration(f"num_inputs must be positive, got {num_inputs}")
        if weights is None:
            weights = initialize_weights(int(num_inputs), self.num_outputs, self.kind, self.rng)
        weights = np.array(weights, dtype=np.float64)
        expected = (int(num_inputs), self.num_outputs)
        if weights.shape != expected:
            raise InvalidConfiguration(
                f"Initial weights for {type(self).__name__} must have shape {expected}, "
                f"got {weights.shape}"
            )
        self.num_inputs = int(num_inputs)
        self.weights = weights
        self.bias = np.zeros(self.num_outputs, dtype=np.float64)
        self.optimizer.reset()

    def parameter_count(self) -> int:
        weights = 0 if self.weights is None else int(self.weights.size)
        return weights + int(self.bias.size)

    def _require_bound(self) -> None:
        if not self.is_bound:
            raise InvalidConfiguration(
                f"{type(self).__name__} layer has no inputs yet; add it to a network first"
            )

    # ------------------------------------------------------------------
    # Activation hooks

    @abstractmethod
    def activation(self, pre_activation: Array, training: bool) -> Array:
        """Map pre-activation values to layer outputs."""

    @abstractmethod
    def derivative(self, pre_activation: Array) -> Array:
        """Slope of :meth:`activation` at ``pre_activation``."""

    def _delta(self, gradients: Array) -> Array:
        return hadamard(gradients, self.derivative(self.last_pre_activation))

    # ------------------------------------------------------------------
    # Propagation

    def forward_propagation(self, inputs: Array, training: bool = False) -> Array:
        """Propagate a ``(batch, num_inputs)`` matrix through the layer."""

        self._require_bound()
        inputs = as_matrix(inputs)
        pre_activation = multiply(inputs, self.weights) + self.bias
        self.last_inputs = inputs
        self.last_pre_activation = pre_activation
        self.state = LayerState.FORWARD_DONE if training else LayerState.IDLE
        return self.activation(pre_activation, training)

    def predict(self, inputs: Array) -> Array:
        """Single-example forward pass returning a flat vector."""

        row = as_vector(inputs).reshape(1, -1)
        return mean_along_axis(self.forward_propagation(row, training=False), Axis.COLUMNS)

    def back_propagation(self, gradients: Array) -> Array:
        """Update the parameters from ``gradients`` and return dL/d(inputs).

        ``gradients`` is the derivative of the loss with respect to this
        layer's activated output, shaped ``(batch, num_outputs)``.
        """

        if self.state is not LayerState.FORWARD_DONE:
            raise UndefinedState(
                f"{type(self).__name__} layer must run a training forward pass "
                "before back-propagating"
            )
        gradients = as_matrix(gradients)
        batch_size = self.last_inputs.shape[0]

        deltas = self._delta(gradients)
        next_gradients = multiply(deltas, transpose(self.weights))

        weight_gradients = multiply(transpose(self.last_inputs), deltas) / batch_size
        bias_gradients = mean_along_axis(deltas, Axis.COLUMNS)

        self.weights -= self.optimizer.optimize_weights(weight_gradients)
        self.bias -= self.optimizer.optimize_bias(bias_gradients)

        self.state = LayerState.IDLE
        return next_gradients


class ReLU(Layer):
    kind = "relu"

    def activation(self, pre_activation: Array, training: bool) -> Array:
        return relu(pre_activation)

    def derivative(self, pre_activation: Array) -> Array:
        return relu_deriv(pre_activation)


class Sigmoid(Layer):
    kind = "sigmoid"

    def activation(self, pre_activation: Array, training: bool) -> Array:
        return sigmoid(pre_activation)

    def derivative(self, pre_activation: Array) -> Array:
        return sigmoid_deriv(pre_activation)


class Softmax(Layer):
    """Row-wise softmax output layer.

    ``jacobian="full"`` back-propagates the exact Jacobian-vector product.
    ``jacobian="collapsed"`` multiplies the upstream gradient elementwise by
    :meth:`derivative`, whose rows sum the Jacobian into a single vector.
    """

    kind = "softmax"
    JACOBIAN_MODES = ("full", "collapsed")

    def __init__(
        self,
        num_outputs: int,
        optimizer: Optimizer,
        *,
        jacobian: str = "full",
        rng: np.random.Generator | None = None,
    ) -> None:
        if jacobian not in self.JACOBIAN_MODES:
            raise InvalidConfiguration(
                f"jacobian must be one of {self.JACOBIAN_MODES}, got {jacobian!r}"
            )
        super().__init__(num_outputs, optimizer, rng=rng)
        self.jacobian = jacobian

    def activation(self, pre_activation: Array, training: bool) -> Array:
        return softmax(pre_activation)

    def derivative(self, pre_activation: Array) -> Array:
        return softmax_collapsed_deriv(pre_activation)

    def _delta(self, gradients: Array) -> Array:
        if self.jacobian == "collapsed":
            return super()._delta(gradients)
        if gradients.shape != self.last_pre_activation.shape:
            raise ShapeMismatch(
                f"Softmax gradient shape {gradients.shape} does not match "
                f"its output shape {self.last_pre_activation.shape}"
            )
        return softmax_jacobian_product(self.last_pre_activation, gradients)


class Dropout(Layer):
    """Linear layer that silences whole output columns while training.

    One keep/drop decision is drawn per column for each training forward pass
    and reused by the backward pass that follows it.  Kept values are not
    rescaled.
    """

    kind = "dropout"

    def __init__(
        self,
        num_outputs: int,
        optimizer: Optimizer,
        rate: float = 0.5,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        if not 0.0 <= float(rate) < 1.0:
            raise InvalidConfiguration(f"Dropout rate must lie in [0, 1), got {rate}")
        super().__init__(num_outputs, optimizer, rng=rng)
        self.rate = float(rate)
        self.mask: Array | None = None

    def activation(self, pre_activation: Array, training: bool) -> Array:
        if not training:
            self.mask = None
            return np.array(pre_activation, dtype=np.float64)
        self.mask = self.rng.random(pre_activation.shape[1]) >= self.rate
        return pre_activation * self.mask

    def derivative(self, pre_activation: Array) -> Array:
        if self.mask is None:
            raise UndefinedState("Dropout mask is only defined after a training forward pass")
        return np.broadcast_to(self.mask, pre_activation.shape).astype(np.float64)

    def back_propagation(self, gradients: Array) -> Array:
        next_gradients = super().back_propagation(gradients)
        self.mask = None
        return next_gradients


LAYER_TYPES: Dict[str, Type[Layer]] = {
    "relu": ReLU,
    "sigmoid": Sigmoid,
    "softmax": Softmax,
    "dropout": Dropout,
}


def available_layers() -> Iterable[str]:
    return sorted(LAYER_TYPES)


def build_layer(kind: str, num_outputs: int, optimizer: Optimizer, **params: object) -> Layer:
    """Instantiate the layer registered as ``kind``."""

    key = kind.lower()
    if key not in LAYER_TYPES:
        available = ", ".join(available_layers())
        raise KeyError(f"Unknown layer kind {kind!r}. Available layers: {available}")
    try:
        return LAYER_TYPES[key](num_outputs, optimizer, **params)
    except TypeError as exc:
        raise InvalidConfiguration(f"Bad parameters for layer {kind!r}: {exc}") from exc


__all__ = [
    "Dropout",
    "LAYER_TYPES",
    "Layer",
    "LayerState",
    "ReLU",
    "Sigmoid",
    "Softmax",
    "available_layers",
    "build_layer",
]
