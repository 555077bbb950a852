"""Core numerical primitives for deepnet."""

from . import activations, errors, init, layers, matrix, optimizers, types

__all__ = ["activations", "errors", "init", "layers", "matrix", "optimizers", "types"]
