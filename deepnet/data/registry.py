"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, MutableMapping

import numpy as np

from ..core.types import Array, Example

TASK_TYPES = frozenset({"regression", "multiclass", "binary", "multilabel"})


@dataclass
class DatasetSpec:
    """An in-memory dataset of ``(inputs, outputs)`` pairs.

    Attributes
    ----------
    name:
        Registry identifier of the loader that produced the data.
    examples:
        Mutable list of pairs; training shuffles it in place.
    task_type:
        One of ``{"regression", "multiclass", "binary", "multilabel"}``.  Used
        to pick a default loss.
    provenance:
        Free-form metadata recorded in run manifests.
    """

    name: str
    examples: List[Example]
    task_type: str = "regression"
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def input_width(self) -> int:
        return int(self.examples[0][0].shape[0])

    @property
    def output_width(self) -> int:
        return int(self.examples[0][1].shape[0])

    def __len__(self) -> int:
        return len(self.examples)


def examples_from_arrays(inputs: Array, outputs: Array) -> List[Example]:
    """Pair the rows of two 2-D arrays into a list of float vectors."""

    inputs = np.asarray(inputs, dtype=np.float64)
    outputs = np.asarray(outputs, dtype=np.float64)
    if outputs.ndim == 1:
        outputs = outputs.reshape(-1, 1)
    if inputs.shape[0] != outputs.shape[0]:
        raise ValueError(
            f"Inputs have {inputs.shape[0]} rows but outputs have {outputs.shape[0]}"
        )
    return [(inputs[i].copy(), outputs[i].copy()) for i in range(inputs.shape[0])]


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("blobs")
        def make_blobs(**kwargs):
            ...

    or directly::

        register_dataset("blobs", make_blobs)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` built by the loader registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset: {dataset}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.task_type not in TASK_TYPES:
        raise ValueError(f"Invalid task type: {spec.task_type}")
    if not spec.examples:
        raise ValueError(f"Dataset {spec.name!r} is empty")
    in_width, out_width = spec.input_width, spec.output_width
    for idx, (inputs, outputs) in enumerate(spec.examples):
        if inputs.shape != (in_width,) or outputs.shape != (out_width,):
            raise ValueError(
                f"Example {idx} of {spec.name!r} has widths "
                f"{inputs.shape}/{outputs.shape}, expected ({in_width},)/({out_width},)"
            )


__all__ = [
    "DatasetSpec",
    "TASK_TYPES",
    "available_datasets",
    "examples_from_arrays",
    "get_dataset",
    "register_dataset",
]
