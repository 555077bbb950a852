"""Dataset registry and loader helpers."""

# Ensure built-in datasets register themselves when the package is imported.
from . import csv_numeric as _csv_numeric  # noqa: F401
from . import synthetic as _synthetic  # noqa: F401
from .encoding import decode_one_hot, one_hot_encode
from .registry import (
    DatasetSpec,
    available_datasets,
    examples_from_arrays,
    get_dataset,
    register_dataset,
)

__all__ = [
    "DatasetSpec",
    "available_datasets",
    "decode_one_hot",
    "examples_from_arrays",
    "get_dataset",
    "one_hot_encode",
    "register_dataset",
]
