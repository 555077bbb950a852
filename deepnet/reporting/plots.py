"""Loss curve rendering for run directories."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Tuple

Series = List[Tuple[int, float]]


class LossCurvePlot:
    """Track train and eval losses by epoch and draw them into ``loss.png``.

    Training losses arrive through :meth:`on_epoch` like any other network
    callback; the pipeline reports round-end evaluations with :meth:`on_eval`.
    Nothing is recorded unless ``enable_plots`` is set.
    """

    filename = "loss.png"

    def __init__(self, run_dir: str | Path, enable_plots: bool = False) -> None:
        self.run_dir = Path(run_dir)
        self.enable_plots = enable_plots
        self.series: Dict[str, Series] = {"train": [], "eval": []}

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self._track("train", epoch, metrics)

    def on_eval(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self._track("eval", epoch, metrics)

    __call__ = on_epoch

    def _track(self, split: str, epoch: int, metrics: Mapping[str, float]) -> None:
        if self.enable_plots and "loss" in metrics:
            self.series[split].append((int(epoch), float(metrics["loss"])))

    def close(self) -> Path | None:
        """Render the collected series; returns the image path or ``None``."""

        if not self.enable_plots or not self.series["train"]:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # deferred so headless imports stay cheap

        fig, ax = plt.subplots()
        train_epochs, train_losses = zip(*self.series["train"])
        ax.plot(train_epochs, train_losses, label="train (epoch mean)")
        if self.series["eval"]:
            eval_epochs, eval_losses = zip(*self.series["eval"])
            ax.plot(eval_epochs, eval_losses, "o--", label="eval (average loss)")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Loss")
        ax.legend()
        self.run_dir.mkdir(parents=True, exist_ok=True)
        plot_path = self.run_dir / self.filename
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path


__all__ = ["LossCurvePlot"]
