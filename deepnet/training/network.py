"""Network orchestrator: layer wiring, propagation and the training loop."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np

from ..core.errors import InvalidConfiguration
from ..core.init import initialize_weights
from ..core.layers import Layer, build_layer
from ..core.matrix import as_matrix, as_vector
from ..core.optimizers import Optimizer, build_optimizer
from ..core.types import Array, Dataset
from .batching import iter_batches, make_batches, shuffle_in_place
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import LossFunction

logger = logging.getLogger(__name__)


class Network:
    """Ordered stack of layers trained against a single loss function.

    ``rng`` drives weight initialization and the per-epoch shuffle.  Callbacks
    exposing ``on_epoch(epoch, metrics)`` (or plain callables) receive the mean
    training loss after every epoch.
    """

    def __init__(
        self,
        input_width: int,
        loss: LossFunction | str,
        *,
        rng: np.random.Generator | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if int(input_width) < 1:
            raise InvalidConfiguration(f"input_width must be positive, got {input_width}")
        self.input_width = int(input_width)
        self.loss = LOSS_REGISTRY.create(loss) if isinstance(loss, str) else loss
        self.rng = rng if rng is not None else np.random.default_rng()
        self.callbacks = list(callbacks or [])
        self.layers: List[Layer] = []
        self.epochs_trained = 0

    def __repr__(self) -> str:
        layers = ", ".join(repr(layer) for layer in self.layers)
        return f"Network(input_width={self.input_width}, loss={self.loss!r}, layers=[{layers}])"

    # ------------------------------------------------------------------
    # Wiring

    @property
    def output_width(self) -> int:
        if not self.layers:
            return self.input_width
        return self.layers[-1].num_outputs

    def add_layer(self, layer: Layer) -> Layer:
        """Append ``layer``, binding its fan-in to the current output width."""

        if any(existing.optimizer is layer.optimizer for existing in self.layers):
            raise InvalidConfiguration(
                "Optimizer instances hold per-layer state and cannot be shared between layers"
            )
        num_inputs = self.output_width
        weights = initialize_weights(num_inputs, layer.num_outputs, layer.kind, self.rng)
        layer.bind(num_inputs, weights)
        self.layers.append(layer)
        logger.info(
            "Added %s layer %d: %d -> %d (%s)",
            layer.kind,
            len(self.layers) - 1,
            num_inputs,
            layer.num_outputs,
            layer.optimizer.name,
        )
        return layer

    def add(
        self,
        kind: str,
        num_outputs: int,
        optimizer: Optimizer | str = "sgd",
        optimizer_params: Mapping[str, float] | None = None,
        **layer_params: Any,
    ) -> Layer:
        """Build a layer and its optimizer by name, then append it."""

        if isinstance(optimizer, str):
            optimizer = build_optimizer(optimizer, **dict(optimizer_params or {}))
        elif optimizer_params:
            raise InvalidConfiguration("optimizer_params only apply when optimizer is given by name")
        layer_params.setdefault("rng", self.rng)
        return self.add_layer(build_layer(kind, num_outputs, optimizer, **layer_params))

    def parameter_count(self) -> int:
        return sum(layer.parameter_count() for layer in self.layers)

    def summary(self) -> List[Dict[str, object]]:
        return [
            {
                "kind": layer.kind,
                "num_inputs": layer.num_inputs,
                "num_outputs": layer.num_outputs,
                "optimizer": layer.optimizer.name,
            }
            for layer in self.layers
        ]

    def _require_layers(self) -> None:
        if not self.layers:
            raise InvalidConfiguration("Network has no layers; add at least one before propagating")

    # ------------------------------------------------------------------
    # Propagation

    def forward_propagation(self, inputs: Array, training: bool = False) -> Array:
        """Fold ``inputs`` through every layer.

        A 2-D ``(batch, input_width)`` matrix returns a matrix.  A 1-D vector
        is treated as one example and returns the prediction vector; that path
        is inference only and rejects ``training=True``.
        """

        self._require_layers()
        values = np.asarray(inputs, dtype=np.float64)
        if values.ndim == 1:
            if training:
                raise InvalidConfiguration(
                    "Single-example propagation is inference only; pass a 2-D batch to train"
                )
            current = as_vector(values)
            for layer in self.layers:
                current = layer.predict(current)
            return current

        current = as_matrix(values)
        for idx, layer in enumerate(self.layers):
            current = layer.forward_propagation(current, training=training)
            logger.debug("Forward pass - layer %d output shape: %s", idx, current.shape)
        return current

    def back_propagation(self, gradients: Array) -> Array:
        """Push ``gradients`` through the layers in reverse order."""

        self._require_layers()
        gradient = as_matrix(gradients)
        for idx in range(len(self.layers) - 1, -1, -1):
            gradient = self.layers[idx].back_propagation(gradient)
            logger.debug("Backward pass - layer %d passing gradient shape: %s", idx, gradient.shape)
        return gradient

    # ------------------------------------------------------------------
    # Training

    def train(
        self,
        data: Dataset,
        batch_size: int,
        epochs: int,
        truncate: bool = True,
    ) -> List[float]:
        """Train for ``epochs`` passes over ``data`` and return per-epoch mean losses.

        ``data`` is shuffled in place at the start of every epoch.
        """

        self._require_layers()
        if not data:
            raise InvalidConfiguration("Cannot train on an empty dataset")
        if int(batch_size) < 1:
            raise InvalidConfiguration(f"batch_size must be positive, got {batch_size}")
        if int(epochs) < 0:
            raise InvalidConfiguration(f"epochs must be non-negative, got {epochs}")
        if truncate and len(data) < batch_size:
            raise InvalidConfiguration(
                f"batch_size {batch_size} exceeds the {len(data)} available examples "
                "and truncation would leave no batches"
            )

        loss_per_epoch: List[float] = []
        for _ in range(int(epochs)):
            shuffle_in_place(data, self.rng)
            batches = make_batches(data, int(batch_size), truncate)
            num_batches = len(batches)
            total = 0.0
            for batch in batches:
                outputs = self.forward_propagation(batch.inputs, training=True)
                total += self.loss.calc_loss(outputs, batch.targets)
                self.back_propagation(self.loss.deriv_loss(outputs, batch.targets))
            epoch_loss = total / num_batches
            loss_per_epoch.append(epoch_loss)
            self.epochs_trained += 1
            logger.debug(
                "Epoch %d: loss=%.6f over %d batches", self.epochs_trained, epoch_loss, num_batches
            )
            self._emit_epoch(self.epochs_trained, {"loss": epoch_loss, "batches": num_batches})

        if loss_per_epoch:
            logger.info(
                "Trained %d epochs (batch_size=%d, truncate=%s), final loss %.6f",
                len(loss_per_epoch),
                batch_size,
                truncate,
                loss_per_epoch[-1],
            )
        return loss_per_epoch

    def average_loss(self, data: Dataset) -> float:
        """Mean loss over ``data`` evaluated one example at a time, in order."""

        self._require_layers()
        if not data:
            raise InvalidConfiguration("Cannot evaluate the loss of an empty dataset")
        total = 0.0
        count = 0
        for batch in iter_batches(data, 1):
            outputs = self.forward_propagation(batch.inputs, training=False)
            total += self.loss.calc_loss(outputs, batch.targets)
            count += 1
        return total / count

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["Network"]
