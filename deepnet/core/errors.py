"""Error taxonomy for deepnet."""

from __future__ import annotations


class DeepNetError(Exception):
    """Base class for every error raised by the engine."""


class ShapeMismatch(DeepNetError, ValueError):
    """Operand dimensions are incompatible for the requested operation."""


class InvalidConfiguration(DeepNetError, ValueError):
    """A network, layer or optimizer was wired or parameterised incorrectly."""


class UndefinedState(DeepNetError, RuntimeError):
    """A layer was asked to back-propagate without a cached training forward pass."""


__all__ = ["DeepNetError", "ShapeMismatch", "InvalidConfiguration", "UndefinedState"]
