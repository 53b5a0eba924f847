"""Held-out evaluation: loss plus classification metrics, forward pass only."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

import numpy as np

from ..data.dataloader import Batch
from ..models.classifier import TransformerClassifier
from ..training.losses import CrossEntropyLoss
from ..training.metrics import (
    classification_metrics,
    classification_report_dict,
    get_confusion_matrix,
)


@dataclass
class EvaluationResult:
    loss: float
    metrics: Dict[str, float]
    confusion: np.ndarray
    report: Dict[str, Any] = field(default_factory=dict)


def evaluate(
    model: TransformerClassifier,
    loader: Iterable[Batch],
    class_names: Sequence[str] | None = None,
) -> EvaluationResult:
    """Average loss (weighted by batch size), accuracy, macro P/R/F1 and confusion matrix."""
    loss_fn = CrossEntropyLoss()
    total_loss = 0.0
    total = 0
    predictions: List[int] = []
    targets: List[int] = []

    for batch in loader:
        logits = model(batch.input_ids)
        total_loss += loss_fn(logits, batch.labels) * batch.size
        total += batch.size
        predictions.extend(int(p) for p in np.argmax(logits, axis=-1))
        targets.extend(int(t) for t in batch.labels)

    if total == 0:
        raise ValueError("Cannot evaluate on an empty loader")

    return EvaluationResult(
        loss=total_loss / total,
        metrics=classification_metrics(predictions, targets),
        confusion=get_confusion_matrix(predictions, targets, num_classes=model.num_classes),
        report=classification_report_dict(
            predictions, targets, labels=list(class_names) if class_names else None
        ),
    )
