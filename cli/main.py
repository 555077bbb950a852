"""Train a deepnet network from a preset or config file."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np

from deepnet.core.types import RunResult
from deepnet.data import available_datasets, get_dataset
from deepnet.training import pipelines

TRAIN_OVERRIDES = ("epochs", "rounds", "batch_size", "truncate", "seed", "run_dir")


def _summary_line(result: RunResult) -> str:
    return json.dumps(
        {
            "epochs": result.epochs,
            "final_loss": result.final_loss,
            "manifest": result.manifest_path,
            "metrics": result.metrics_path,
        },
        sort_keys=True,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deepnet", description=__doc__)

    source = parser.add_argument_group("configuration")
    source.add_argument(
        "--preset",
        choices=sorted(pipelines.presets()),
        default="boolean-logic-adam",
        help="Preset to start from",
    )
    source.add_argument(
        "--config",
        type=Path,
        help="JSON/YAML file merged over the preset (a complete config replaces it)",
    )
    source.add_argument("--dump-config", type=Path, help="Write the resolved config as JSON")

    data = parser.add_argument_group("data")
    data.add_argument("--dataset", help="Registered dataset to train on")
    data.add_argument("--csv-path", help="CSV file for the csv and csv_classification datasets")
    data.add_argument("--target-col", help="Label column for csv_classification")

    train = parser.add_argument_group("training")
    train.add_argument("--loss", help="Loss name, or 'auto' to pick one from the task type")
    train.add_argument("--epochs", type=int, help="Epochs per round")
    train.add_argument("--rounds", type=int, help="Train/evaluate rounds")
    train.add_argument("--batch-size", type=int, help="Mini-batch size")
    train.add_argument(
        "--truncate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Skip the trailing partial batch of every epoch",
    )
    train.add_argument("--seed", type=int, help="Seed for weight init, shuffling and dropout")
    train.add_argument("--run-dir", help="Directory receiving metrics and the manifest")
    train.add_argument("--enable-plots", action="store_true", help="Render loss.png")

    info = parser.add_argument_group("inspection")
    info.add_argument("--list-presets", action="store_true", help="Print preset names and exit")
    info.add_argument("--list-datasets", action="store_true", help="Print dataset names and exit")
    info.add_argument(
        "--describe",
        action="store_true",
        help="Print the network the config builds, without training",
    )
    info.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    return _build_parser().parse_args(None if argv is None else list(argv))


def resolve_config(args: argparse.Namespace) -> dict:
    """Apply the config file and command line overrides to the chosen preset."""

    config = dict(pipelines.load_preset(args.preset))
    if args.config:
        override = dict(pipelines.read_config_file(args.config))
        if pipelines.REQUIRED_SECTIONS <= set(override):
            config = override
        else:
            config = pipelines.merge_config(config, override)
    config = json.loads(json.dumps(config))

    if args.dataset:
        config["data"] = {"name": args.dataset, "options": {}}
    options = config.setdefault("data", {}).setdefault("options", {})
    if args.csv_path:
        options["csv_path"] = args.csv_path
    if args.target_col:
        options["target_col"] = args.target_col

    if args.loss:
        config.setdefault("model", {})["loss"] = args.loss

    train_cfg = config.setdefault("train", {})
    for key in TRAIN_OVERRIDES:
        value = getattr(args, key)
        if value is not None:
            train_cfg[key] = value
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    return config


def describe(config: dict) -> list:
    dataset = get_dataset(str(config["data"]["name"]), **dict(config["data"].get("options", {})))
    network = pipelines.build_network(
        config["model"],
        input_width=dataset.input_width,
        task_type=dataset.task_type,
        rng=np.random.default_rng(config["train"].get("seed")),
    )
    return network.summary()


def _print_names(names: Sequence[str]) -> None:
    print("\n".join(names))
    raise SystemExit(0)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_presets:
        _print_names(sorted(pipelines.presets()))
    if args.list_datasets:
        _print_names(list(available_datasets()))

    config = resolve_config(args)
    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    if args.describe:
        print(json.dumps(describe(config), indent=2))
        return

    result = pipelines.run_pipeline(config)
    print(_summary_line(result))


if __name__ == "__main__":
    main()
