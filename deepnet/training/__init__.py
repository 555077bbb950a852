"""Training loop, losses and config-driven pipelines."""

from .batching import batch_sizes, iter_batches, make_batches, shuffle_in_place
from .losses import (
    REGISTRY,
    BinaryCrossEntropy,
    CategoricalCrossEntropy,
    HuberLoss,
    LossFunction,
    MeanSquaredError,
)
from .network import Network

__all__ = [
    "BinaryCrossEntropy",
    "CategoricalCrossEntropy",
    "HuberLoss",
    "LossFunction",
    "MeanSquaredError",
    "Network",
    "REGISTRY",
    "batch_sizes",
    "iter_batches",
    "make_batches",
    "shuffle_in_place",
]
