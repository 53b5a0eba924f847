"""
Trainer for the scratchformer classifier.

Runs forward -> loss -> backward -> optimizer step one batch at a time, with
gradient monitoring, optional global-norm clipping, NaN skipping, early
stopping, and MLflow logging.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import math
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List

import mlflow
import numpy as np
from tqdm import tqdm

from ..data.dataloader import Batch
from ..models.classifier import TransformerClassifier
from ..utils.logging import get_logger
from .early_stopping import EarlyStopping
from .gradient_monitor import GradientMonitor, clip_grad_norm, find_non_finite
from .losses import CrossEntropyLoss
from .metrics import accuracy
from .optimizers import Optimizer

logger = get_logger(__name__)


# --------------- Configuration ---------------


@dataclass
class TrainerConfig:
    """Training hyperparameters."""

    max_epochs: int = 1
    gradient_clip_norm: float | None = None  # None = disabled
    experiment_name: str = "scratchformer"
    run_name: str | None = None
    # Early stopping
    early_stopping_patience: int | None = None  # None = disabled
    early_stopping_min_delta: float = 0.001
    # Gradient monitoring
    log_grad_norm_frequency: int = 100  # Log gradient norms every N steps
    max_nan_skips: int = 10


# --------------- Trainer ---------------
class Trainer:
    """Sequential single-task trainer."""

    def __init__(
        self,
        model: TransformerClassifier,
        optimizer: Optimizer,
        config: TrainerConfig,
        loss_fn: CrossEntropyLoss | None = None,
    ) -> None:
        self.model = model
        self.optimizer = optimizer
        self.config = config
        self.loss_fn = loss_fn or CrossEntropyLoss()
        self.global_step = 0

        self.nan_skip_count = 0
        self.grad_monitor = GradientMonitor(model, log_frequency=config.log_grad_norm_frequency)

        self.early_stopping: EarlyStopping | None = None
        if config.early_stopping_patience is not None:
            self.early_stopping = EarlyStopping(
                patience=config.early_stopping_patience,
                min_delta=config.early_stopping_min_delta,
                mode="min",  # Lower loss is better
            )

        mlflow.set_experiment(config.experiment_name)

    # --------------- Training Loop ---------------

    def fit(
        self,
        train_loader: Iterable[Batch],
        val_loader: Iterable[Batch] | None = None,
        checkpoint_callback: Callable | None = None,
        start_epoch: int = 1,
    ) -> Dict[str, Dict[str, float]]:
        """Train for ``max_epochs`` epochs; returns per-epoch train/val metrics."""
        history: Dict[str, Dict[str, float]] = {}
        total_start = time.perf_counter()

        with mlflow.start_run(run_name=self.config.run_name):
            self._log_config()

            epoch_pbar = tqdm(
                range(start_epoch, self.config.max_epochs + 1),
                desc="Training",
                unit="epoch",
                position=0,
                file=sys.stderr,
                dynamic_ncols=True,
            )

            for epoch in epoch_pbar:
                epoch_start = time.perf_counter()

                train_metrics = self._run_epoch(train_loader, train=True, epoch=epoch)
                history[f"train_epoch_{epoch}"] = train_metrics
                self._log_metrics(train_metrics, "train", epoch)

                stop = False
                if val_loader is not None:
                    val_metrics = self._run_epoch(val_loader, train=False, epoch=epoch)
                    history[f"val_epoch_{epoch}"] = val_metrics
                    self._log_metrics(val_metrics, "val", epoch)

                    if self.early_stopping is not None:
                        stop = self.early_stopping(val_metrics.get("loss", float("inf")))

                # Checkpoint every completed epoch, including the one that stops training
                if checkpoint_callback:
                    checkpoint_callback(epoch, self.model, history)

                epoch_time = time.perf_counter() - epoch_start
                total_time = time.perf_counter() - total_start
                desc = f"Epoch {epoch}/{self.config.max_epochs}"
                if "loss" in train_metrics:
                    desc += f" | loss={train_metrics['loss']:.3f}"
                epoch_pbar.set_description(desc)
                epoch_pbar.set_postfix({"time": f"{epoch_time:.1f}s", "total": f"{total_time:.1f}s"})

                if stop and self.early_stopping is not None:
                    tqdm.write(f"\n⚠ Early stopping triggered at epoch {epoch}")
                    tqdm.write(f"  Best validation loss: {self.early_stopping.best_value:.4f}")
                    tqdm.write(f"  Patience exhausted ({self.early_stopping.patience} epochs)")
                    break

        total_time = time.perf_counter() - total_start
        logger.info("Training complete in %.1fs", total_time)
        return history

    def _log_config(self) -> None:
        """Log config to MLflow."""
        mlflow.log_params(
            {
                "max_epochs": self.config.max_epochs,
                "gradient_clip_norm": self.config.gradient_clip_norm,
                "optimizer": type(self.optimizer).__name__,
                "learning_rate": self.optimizer.lr,
                "num_parameters": self.model.num_parameters(),
            }
        )

    def _log_metrics(self, metrics: Dict[str, float], prefix: str, epoch: int) -> None:
        """Log metrics to MLflow."""
        for k, v in metrics.items():
            if k != "epoch":
                mlflow.log_metric(f"{prefix}_{k}", v, step=epoch)

    # --------------- Steps ---------------

    def train_step(self, batch: Batch) -> tuple[float, np.ndarray] | None:
        """One forward/backward/update cycle.

        Returns (loss, logits) from the forward pass, or None if the batch was skipped.
        """
        logits = self.model(batch.input_ids)
        loss = self.loss_fn(logits, batch.labels)

        if not math.isfinite(loss):
            self._register_skip(f"non-finite loss ({loss})")
            return None

        self.model.backward(self.loss_fn.backward())
        if self._optimizer_step():
            self.global_step += 1
        return loss, logits

    def eval_step(self, batch: Batch) -> tuple[float, np.ndarray]:
        """Forward only: (loss, logits)."""
        logits = self.model(batch.input_ids)
        return self.loss_fn(logits, batch.labels), logits

    def _register_skip(self, reason: str) -> None:
        self.nan_skip_count += 1
        tqdm.write(f"⚠ Skipping batch at step {self.global_step}: {reason}")
        if self.nan_skip_count > self.config.max_nan_skips:
            raise RuntimeError("Training diverging - too many non-finite losses or gradients")

    def _optimizer_step(self) -> bool:
        """Monitor, clip and apply gradients. Returns False when the step was skipped."""
        grad_stats = self.grad_monitor.log_gradients(self.global_step)
        if grad_stats is not None:
            tqdm.write(
                f"  [Step {self.global_step}] "
                f"Grad norm: {grad_stats['grad_norm']:.4f}, "
                f"Max: {grad_stats['grad_norm_max']:.4f}"
            )
            for key, val in grad_stats.items():
                mlflow.log_metric(f"grad_{key}", val, step=self.global_step)

        gradients = self.model.gradient_set()
        bad_param = find_non_finite(gradients)
        if bad_param is not None:
            self._register_skip(f"non-finite gradient in {bad_param}")
            return False

        if self.config.gradient_clip_norm is not None:
            clip_grad_norm(gradients, self.config.gradient_clip_norm)

        self.optimizer.step(self.model.parameter_set(), gradients)
        return True

    # --------------- Epoch Execution ---------------

    def _run_epoch(self, loader: Iterable[Batch], *, train: bool, epoch: int) -> Dict[str, float]:
        """Run one epoch with progress bar."""
        phase = "Train" if train else "Val"

        total_loss = 0.0
        total_examples = 0
        predictions: List[int] = []
        targets: List[int] = []

        pbar = tqdm(
            loader,
            desc=f"  {phase}",
            unit="batch",
            leave=False,
            position=1,
            file=sys.stderr,
            dynamic_ncols=True,
        )

        for batch in pbar:
            if train:
                result = self.train_step(batch)
                if result is None:
                    continue
                loss, logits = result
            else:
                loss, logits = self.eval_step(batch)
                if not math.isfinite(loss):
                    continue
            preds = np.argmax(logits, axis=-1)

            total_loss += loss * batch.size
            total_examples += batch.size
            predictions.extend(int(p) for p in preds)
            targets.extend(int(t) for t in batch.labels)
            pbar.set_postfix({"loss": f"{loss:.3f}"})

        metrics: Dict[str, float] = {}
        if total_examples:
            metrics["loss"] = total_loss / total_examples
            metrics["accuracy"] = accuracy(predictions, targets)
        metrics["epoch"] = float(epoch)

        summary = f"[{phase.lower()}] epoch {epoch}: "
        summary += ", ".join(f"{k}={v:.4f}" for k, v in metrics.items() if k != "epoch")
        tqdm.write(summary)

        return metrics
