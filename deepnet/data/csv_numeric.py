"""CSV loaders producing ``(inputs, outputs)`` example lists."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.types import Example
from .encoding import one_hot_encode
from .registry import DatasetSpec, examples_from_arrays, register_dataset

logger = logging.getLogger(__name__)

FIXTURE_DIR = Path(__file__).resolve().parent / "_fixtures"

# Inclusive ``(first, last)`` column positions; negative values count from the end.
ColumnRange = Tuple[int, int]


def _resolve_range(columns: Sequence[int], width: int, label: str) -> slice:
    if len(columns) != 2:
        raise ValueError(f"{label} columns must be a (first, last) pair, got {columns!r}")
    first, last = (int(c) + width if int(c) < 0 else int(c) for c in columns)
    if not 0 <= first <= last < width:
        raise ValueError(
            f"{label} columns {tuple(columns)} are out of range for a CSV with {width} columns"
        )
    return slice(first, last + 1)


def _read_frame(path: str | Path, has_headers: bool) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    return pd.read_csv(path, header=0 if has_headers else None)


def read_numeric_csv(
    path: str | Path,
    input_columns: ColumnRange,
    output_columns: ColumnRange,
    *,
    has_headers: bool = True,
) -> List[Example]:
    """Read a numeric CSV into a list of ``(inputs, outputs)`` pairs.

    ``input_columns`` and ``output_columns`` are inclusive column ranges, e.g.
    ``(0, 2)`` and ``(3, 3)`` for three inputs followed by one output.
    """

    frame = _read_frame(path, has_headers)
    width = frame.shape[1]
    in_slice = _resolve_range(input_columns, width, "Input")
    out_slice = _resolve_range(output_columns, width, "Output")
    try:
        inputs = frame.iloc[:, in_slice].to_numpy(dtype=np.float64)
        outputs = frame.iloc[:, out_slice].to_numpy(dtype=np.float64)
    except ValueError as exc:
        raise ValueError(f"{path}: selected columns must be numeric ({exc})") from exc
    logger.debug("Read %d rows from %s", frame.shape[0], path)
    return examples_from_arrays(inputs, outputs)


@register_dataset("csv")
def load_csv(
    *,
    csv_path: str | Path | None = None,
    input_columns: ColumnRange = (0, -2),
    output_columns: ColumnRange = (-1, -1),
    has_headers: bool = True,
    task_type: str = "regression",
) -> DatasetSpec:
    """Load a numeric CSV; by default every column but the last is an input."""

    path = Path(csv_path) if csv_path else FIXTURE_DIR / "demo.csv"
    examples = read_numeric_csv(
        path,
        tuple(input_columns),  # type: ignore[arg-type]
        tuple(output_columns),  # type: ignore[arg-type]
        has_headers=has_headers,
    )
    provenance = {
        "path": str(path),
        "input_columns": list(input_columns),
        "output_columns": list(output_columns),
        "has_headers": has_headers,
    }
    return DatasetSpec(name="csv", examples=examples, task_type=task_type, provenance=provenance)


@register_dataset("csv_classification")
def load_csv_classification(
    *,
    csv_path: str | Path | None = None,
    target_col: str = "target",
) -> DatasetSpec:
    """Load numeric feature columns plus one string label column, one-hot encoded."""

    path = Path(csv_path) if csv_path else FIXTURE_DIR / "classification.csv"
    frame = _read_frame(path, has_headers=True)
    if target_col not in frame.columns:
        raise KeyError(f"Target column {target_col!r} not found in CSV")
    labels = frame.pop(target_col).tolist()
    inputs = frame.to_numpy(dtype=np.float64)
    outputs, classes = one_hot_encode(labels)
    provenance = {"path": str(path), "target_col": target_col, "classes": classes}
    return DatasetSpec(
        name="csv_classification",
        examples=examples_from_arrays(inputs, outputs),
        task_type="multiclass",
        provenance=provenance,
    )


__all__ = ["ColumnRange", "load_csv", "load_csv_classification", "read_numeric_csv"]
