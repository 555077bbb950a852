"""deepnet public API."""

from .core.errors import DeepNetError, InvalidConfiguration, ShapeMismatch, UndefinedState
from .core.init import initialize_weights
from .core.layers import Dropout, Layer, ReLU, Sigmoid, Softmax
from .core.optimizers import SGD, Adam, RMSprop
from .core.types import Batch, RunResult
from .training.losses import (
    BinaryCrossEntropy,
    CategoricalCrossEntropy,
    HuberLoss,
    LossFunction,
    MeanSquaredError,
)
from .training.network import Network
from .training.pipelines import load_preset, presets, run_pipeline

__all__ = [
    "Adam",
    "Batch",
    "BinaryCrossEntropy",
    "CategoricalCrossEntropy",
    "DeepNetError",
    "Dropout",
    "HuberLoss",
    "InvalidConfiguration",
    "Layer",
    "LossFunction",
    "MeanSquaredError",
    "Network",
    "RMSprop",
    "ReLU",
    "RunResult",
    "SGD",
    "ShapeMismatch",
    "Sigmoid",
    "Softmax",
    "UndefinedState",
    "initialize_weights",
    "load_preset",
    "presets",
    "run_pipeline",
]
