"""Core typing contracts for deepnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, MutableSequence, Tuple

import numpy as np

Array = np.ndarray

# (inputs, outputs) pair; both are 1-D float vectors of fixed width per dataset.
Example = Tuple[Array, Array]
Dataset = MutableSequence[Example]


@dataclass(frozen=True)
class Batch:
    """A single mini-batch of data."""

    inputs: Array
    targets: Array

    def __len__(self) -> int:
        return int(self.inputs.shape[0])


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`deepnet.training.pipelines.run_pipeline`."""

    epochs: int
    final_loss: float
    metrics_path: str
    manifest_path: str
    losses: List[float] = field(default_factory=list)
