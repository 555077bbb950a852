"""Pipeline assembly: build a network from a config mapping and train it."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np
import yaml

from ..core.errors import InvalidConfiguration
from ..core.types import RunResult
from ..data import registry
from ..data.encoding import decode_one_hot
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import LossCurvePlot
from .losses import REGISTRY as LOSS_REGISTRY
from .network import Network

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = frozenset({"data", "model", "train"})

_PRESETS: Dict[str, Mapping[str, object]] = {
    "boolean-logic-adam": {
        "data": {"name": "boolean_logic", "options": {}},
        "model": {
            "loss": "mse",
            "layers": [
                {"kind": "relu", "units": 4, "optimizer": "adam"},
                {"kind": "sigmoid", "units": 1, "optimizer": "adam"},
            ],
        },
        "train": {
            "epochs": 500,
            "batch_size": 16,
            "seed": 7,
            "run_dir": "runs/boolean-logic-adam",
            "enable_plots": False,
        },
    },
    "demo-relu-sgd": {
        "data": {
            "name": "csv",
            "options": {"input_columns": [0, 2], "output_columns": [3, 3]},
        },
        "model": {
            "loss": "mse",
            "layers": [
                {"kind": "relu", "units": 10, "optimizer": "sgd", "optimizer_params": {"learning_rate": 0.01}},
                {"kind": "relu", "units": 5, "optimizer": "sgd", "optimizer_params": {"learning_rate": 0.01}},
                {"kind": "relu", "units": 1, "optimizer": "sgd", "optimizer_params": {"learning_rate": 0.01}},
            ],
        },
        "train": {
            "epochs": 20,
            "rounds": 5,
            "batch_size": 32,
            "seed": 3,
            "run_dir": "runs/demo-relu-sgd",
            "enable_plots": False,
            "preview": 10,
        },
    },
    "blobs-softmax": {
        "data": {"name": "blobs", "options": {"n_points": 150, "num_classes": 3, "seed": 0}},
        "model": {
            "loss": "cce",
            "layers": [
                {"kind": "relu", "units": 8, "optimizer": "adam", "optimizer_params": {"learning_rate": 0.01}},
                {"kind": "softmax", "units": 3, "optimizer": "adam", "optimizer_params": {"learning_rate": 0.01}},
            ],
        },
        "train": {
            "epochs": 40,
            "batch_size": 16,
            "truncate": False,
            "seed": 11,
            "run_dir": "runs/blobs-softmax",
            "enable_plots": False,
        },
    },
}

PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
CONFIG_SUFFIXES = (".yaml", ".yml", ".json")


def check_sections(config: Mapping[str, object], source: str = "Config") -> None:
    missing = sorted(REQUIRED_SECTIONS - set(config))
    if missing:
        raise KeyError(f"{source} is missing required sections: {', '.join(missing)}")


def read_config_file(path: Path) -> Mapping[str, object]:
    """Decode a JSON or YAML config file into a mapping."""

    path = Path(path)
    if path.suffix.lower() not in CONFIG_SUFFIXES:
        raise ValueError(f"Unsupported config file type {path.suffix!r}; use one of {CONFIG_SUFFIXES}")
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        decoded = json.loads(raw) if raw.strip() else {}
    else:
        decoded = yaml.safe_load(raw) or {}
    if not isinstance(decoded, Mapping):
        raise TypeError(f"{path.name} must hold a mapping at the top level")
    return decoded


def merge_config(base: dict, override: Mapping[str, object]) -> dict:
    """Recursively merge ``override`` into ``base`` (dicts merge, everything else replaces)."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = merge_config(dict(base[key]), value)
        else:
            base[key] = deepcopy(value)
    return base


def _expand_file_preset(path: Path) -> Dict[str, object]:
    # ``extends: <built-in preset>`` starts from that preset and merges the file on top.
    body = dict(read_config_file(path))
    parent = body.pop("extends", None)
    if parent is not None:
        if parent not in _PRESETS:
            raise KeyError(f"Preset {path.name} extends unknown built-in preset {parent!r}")
        body = merge_config(deepcopy(dict(_PRESETS[parent])), body)
    check_sections(body, f"Preset {path.name}")
    return json.loads(json.dumps(body))


@lru_cache(maxsize=1)
def _file_presets() -> Mapping[str, Mapping[str, object]]:
    if not PRESET_DIR.is_dir():
        return {}
    return {
        path.stem: _expand_file_preset(path)
        for path in sorted(PRESET_DIR.iterdir())
        if path.suffix.lower() in CONFIG_SUFFIXES
    }


def presets() -> Dict[str, Dict[str, object]]:
    """Built-in presets plus ``configs/presets`` files; files win on name clashes."""

    catalog = {**_PRESETS, **_file_presets()}
    return {name: deepcopy(dict(cfg)) for name, cfg in catalog.items()}


def load_preset(name: str) -> Dict[str, object]:
    catalog = presets()
    if name not in catalog:
        raise KeyError(f"Unknown preset {name!r}. Available presets: {', '.join(sorted(catalog))}")
    return catalog[name]


def build_network(
    model_cfg: Mapping[str, object],
    *,
    input_width: int,
    task_type: str = "regression",
    rng: np.random.Generator | None = None,
    callbacks: Sequence[object] | None = None,
) -> Network:
    """Construct a :class:`Network` from the ``model`` section of a config."""

    loss = LOSS_REGISTRY.resolve(
        str(model_cfg.get("loss", "auto")),
        task_type=task_type,
        **dict(model_cfg.get("loss_params", {})),  # type: ignore[arg-type]
    )
    network = Network(int(model_cfg.get("input_width", input_width)), loss, rng=rng, callbacks=callbacks)
    layers = model_cfg.get("layers") or []
    if not layers:
        raise InvalidConfiguration("Model config must list at least one layer")
    for idx, layer_cfg in enumerate(layers):  # type: ignore[union-attr]
        params = dict(layer_cfg)
        try:
            kind = str(params.pop("kind"))
            units = int(params.pop("units"))
        except KeyError as exc:
            raise InvalidConfiguration(f"Layer {idx} is missing required key {exc}") from exc
        optimizer = str(params.pop("optimizer", "sgd"))
        optimizer_params = dict(params.pop("optimizer_params", {}) or {})
        network.add(kind, units, optimizer, optimizer_params, **params)
    return network


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    check_sections(config)
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    examples = dataset.examples

    seed = train_cfg.get("seed")
    rng = np.random.default_rng(None if seed is None else int(seed))
    epochs = int(train_cfg.get("epochs", 1))
    rounds = int(train_cfg.get("rounds", 1))
    if rounds < 1:
        raise InvalidConfiguration(f"rounds must be at least 1, got {rounds}")
    batch_size = int(train_cfg.get("batch_size", 1))
    truncate = bool(train_cfg.get("truncate", True))
    preview = int(train_cfg.get("preview", 5))

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    train_jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics.csv", split="train")
    eval_jsonl = JsonlSink(run_dir / "metrics_eval.jsonl", split="eval", seed=seed)
    plots = LossCurvePlot(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    network = build_network(
        model_cfg,
        input_width=dataset.input_width,
        task_type=dataset.task_type,
        rng=rng,
        callbacks=[train_jsonl, train_csv, plots],
    )
    if network.input_width != dataset.input_width:
        raise InvalidConfiguration(
            f"Configured input_width={network.input_width} but the dataset has "
            f"{dataset.input_width} inputs"
        )
    if network.output_width != dataset.output_width:
        raise InvalidConfiguration(
            f"Network produces {network.output_width} outputs but the dataset has "
            f"{dataset.output_width}"
        )

    _print_startup_summary(dataset, network, f"{rounds} x {epochs} epochs, batch size {batch_size}")

    initial_loss = network.average_loss(examples)
    eval_jsonl.on_epoch(0, {"loss": initial_loss})
    plots.on_eval(0, {"loss": initial_loss})
    logger.info("Loss before training: %.6f", initial_loss)

    losses: List[float] = []
    eval_loss = initial_loss
    for round_idx in range(rounds):
        losses.extend(network.train(examples, batch_size, epochs, truncate=truncate))
        eval_loss = network.average_loss(examples)
        eval_jsonl.on_epoch(network.epochs_trained, {"loss": eval_loss})
        plots.on_eval(network.epochs_trained, {"loss": eval_loss})
        logger.info("Loss after %d epochs: %.6f", (round_idx + 1) * epochs, eval_loss)

    classes = dataset.provenance.get("classes")
    predictions: List[dict] = []
    for inputs, outputs in examples[: max(0, preview)]:
        predicted = network.forward_propagation(inputs)
        row = {
            "inputs": inputs.tolist(),
            "expected": outputs.tolist(),
            "predicted": predicted.tolist(),
        }
        if classes:
            row["expected_class"] = decode_one_hot(outputs, classes)[0]
            row["predicted_class"] = decode_one_hot(predicted, classes)[0]
        predictions.append(row)
    (run_dir / "predictions.json").write_text(json.dumps(predictions, indent=2))
    plot_path = plots.close()

    safe_config = json.loads(json.dumps(config, default=str))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        network_summary=network.summary(),
        results={
            "epochs": network.epochs_trained,
            "initial_loss": initial_loss,
            "final_loss": eval_loss,
            "parameters": network.parameter_count(),
            "plot": None if plot_path is None else str(plot_path),
        },
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    return RunResult(
        epochs=network.epochs_trained,
        final_loss=float(eval_loss),
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        losses=losses,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    configured = train_cfg.get("run_dir")
    if configured:
        return Path(str(configured))
    return Path("runs") / dataset / time.strftime("%Y%m%d-%H%M%S")


def _print_startup_summary(dataset: registry.DatasetSpec, network: Network, schedule: str) -> None:
    rows = [
        ("Dataset", f"{dataset.name} ({len(dataset)} examples, {dataset.task_type})"),
        ("Input width", str(network.input_width)),
    ]
    rows.extend(
        ("Layer", f"{layer['kind']} {layer['num_inputs']} -> {layer['num_outputs']} ({layer['optimizer']})")
        for layer in network.summary()
    )
    rows += [
        ("Loss", repr(network.loss)),
        ("Schedule", schedule),
        ("Parameters", str(network.parameter_count())),
    ]
    print("=== deepnet run ===")
    for label, value in rows:
        print(f"{label:<14}: {value}")
    print("=" * 19)


__all__ = [
    "REQUIRED_SECTIONS",
    "build_network",
    "check_sections",
    "load_preset",
    "merge_config",
    "presets",
    "read_config_file",
    "run_pipeline",
]
