"""Metric helpers used during training and evaluation."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple, cast

import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix, precision_recall_fscore_support


def accuracy(predictions: Sequence[int | str], targets: Sequence[int | str]) -> float:
    return cast(float, accuracy_score(targets, predictions))


def precision_recall_f1(
    predictions: Sequence[int | str], targets: Sequence[int | str]
) -> Tuple[float, float, float]:
    """Macro-averaged precision, recall and F1 (empty classes score zero)."""
    precision, recall, f1, _ = precision_recall_fscore_support(
        targets, predictions, average="macro", zero_division=0
    )
    return float(precision), float(recall), float(f1)


def classification_metrics(
    predictions: Sequence[int | str], targets: Sequence[int | str]
) -> Dict[str, float]:
    precision, recall, f1 = precision_recall_f1(predictions, targets)
    return {
        "accuracy": accuracy(predictions, targets),
        "precision": precision,
        "recall": recall,
        "f1": f1,
    }


def classification_report_dict(
    predictions: Sequence[int], targets: Sequence[int], labels: List[str] | None = None
) -> Dict[str, Any]:
    """Per-class and macro-averaged scores.

    ``labels`` are display names for class indices 0..len(labels)-1.
    """
    label_ids = list(range(len(labels))) if labels else None
    precision, recall, f1, support = precision_recall_fscore_support(
        targets, predictions, labels=label_ids, average=None, zero_division=0
    )
    # Type hint help for static analysis since average=None returns arrays
    precision = cast(np.ndarray, precision)
    recall = cast(np.ndarray, recall)
    f1 = cast(np.ndarray, f1)
    support = cast(np.ndarray, support)

    report: Dict[str, Any] = {}
    if labels:
        for i, label in enumerate(labels):
            report[label] = {
                "precision": float(precision[i]),
                "recall": float(recall[i]),
                "f1-score": float(f1[i]),
                "support": int(support[i]),
            }

    report["macro avg"] = {
        "precision": float(np.mean(precision)),
        "recall": float(np.mean(recall)),
        "f1-score": float(np.mean(f1)),
        "support": int(np.sum(support)),
    }

    return report


def get_confusion_matrix(
    predictions: Sequence[int], targets: Sequence[int], num_classes: int | None = None
) -> np.ndarray:
    """Compute confusion matrix; rows are true classes, columns predictions."""
    labels = list(range(num_classes)) if num_classes is not None else None
    return cast(np.ndarray, confusion_matrix(targets, predictions, labels=labels))
