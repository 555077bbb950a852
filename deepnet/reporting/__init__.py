"""Metric sinks, loss curves and run manifests."""

from .artifacts import library_versions, write_manifest
from .metrics import CsvSink, JsonlSink, read_jsonl
from .plots import LossCurvePlot

__all__ = ["CsvSink", "JsonlSink", "LossCurvePlot", "library_versions", "read_jsonl", "write_manifest"]
