"""Epoch-level metric sinks.

Sinks are handed to :class:`~deepnet.training.network.Network` as callbacks and
receive ``(epoch, metrics)`` after every epoch.  Each sink starts from an empty
file, so a run directory only ever holds the metrics of its latest run.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Dict, List, Mapping

# Columns every record carries ahead of the metric values.
RECORD_KEYS = ("epoch", "split")


def _numeric(metrics: Mapping[str, object]) -> Dict[str, float]:
    return {
        key: float(value)
        for key, value in metrics.items()
        if isinstance(value, (int, float)) and not isinstance(value, bool)
    }


class _EpochSink:
    def __init__(self, path: str | Path, *, split: str) -> None:
        self.path = Path(path)
        self.split = split
        self.records_written = 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def record(self, epoch: int, metrics: Mapping[str, object]) -> Dict[str, object]:
        row: Dict[str, object] = {"epoch": int(epoch), "split": self.split}
        row.update(_numeric(metrics))
        return row

    def on_epoch(self, epoch: int, metrics: Mapping[str, object]) -> None:
        self._append(self.record(epoch, metrics))
        self.records_written += 1

    def __call__(self, epoch: int, metrics: Mapping[str, object]) -> None:
        self.on_epoch(epoch, metrics)

    def _append(self, row: Dict[str, object]) -> None:
        raise NotImplementedError


class JsonlSink(_EpochSink):
    """One JSON object per epoch, tagged with the run seed."""

    def __init__(self, path: str | Path, *, split: str = "train", seed: int | None = None) -> None:
        super().__init__(path, split=split)
        self.seed = seed

    def record(self, epoch: int, metrics: Mapping[str, object]) -> Dict[str, object]:
        row = super().record(epoch, metrics)
        row["seed"] = self.seed
        return row

    def _append(self, row: Dict[str, object]) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(row) + "\n")


class CsvSink(_EpochSink):
    """CSV rows whose header is fixed by the first record."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        super().__init__(path, split=split)
        self.fieldnames: List[str] | None = None

    def _append(self, row: Dict[str, object]) -> None:
        if self.fieldnames is None:
            metric_keys = sorted(key for key in row if key not in RECORD_KEYS)
            self.fieldnames = list(RECORD_KEYS) + metric_keys
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=self.fieldnames, extrasaction="ignore")
            if self.records_written == 0:
                writer.writeheader()
            writer.writerow(row)


def read_jsonl(path: str | Path) -> List[Dict[str, object]]:
    """Load every record written by a :class:`JsonlSink`."""

    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines if line.strip()]


__all__ = ["CsvSink", "JsonlSink", "RECORD_KEYS", "read_jsonl"]
