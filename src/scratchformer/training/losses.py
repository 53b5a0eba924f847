"""Cross-entropy loss with a hand-derived gradient."""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from ..models.functional import softmax
from ..utils.errors import DimensionMismatch, InvalidIndex, report_instability

# Floor applied to the true-class probability before taking the log.
PROBABILITY_FLOOR = 1e-12


class CrossEntropyLoss:
    """Mean negative log-likelihood of the true class under softmax(logits).

    ``forward`` caches the probabilities so ``backward`` can return
    (probs - one_hot) / batch without recomputing them.
    """

    def __init__(self) -> None:
        self._cache: Optional[Tuple[np.ndarray, np.ndarray]] = None

    def __call__(self, logits: np.ndarray, labels: np.ndarray) -> float:
        return self.forward(logits, labels)

    def forward(self, logits: np.ndarray, labels: np.ndarray) -> float:
        labels = np.asarray(labels)
        if logits.ndim != 2:
            raise DimensionMismatch("CrossEntropyLoss.forward", "(batch, num_classes)", logits.shape)
        if labels.ndim != 1 or labels.shape[0] != logits.shape[0]:
            raise DimensionMismatch("CrossEntropyLoss.forward[labels]", (logits.shape[0],), labels.shape)
        if not np.issubdtype(labels.dtype, np.integer):
            raise InvalidIndex(f"Labels must be integers, got dtype {labels.dtype}")
        num_classes = logits.shape[1]
        bad = (labels < 0) | (labels >= num_classes)
        if bad.any():
            raise InvalidIndex(f"Label {int(labels[bad][0])} out of range for {num_classes} classes")

        probs = softmax(logits, axis=-1)
        true_probs = probs[np.arange(labels.shape[0]), labels]
        if np.any(true_probs < PROBABILITY_FLOOR):
            report_instability(
                "CrossEntropyLoss.forward",
                f"true-class probability clamped to {PROBABILITY_FLOOR:g}",
            )
            true_probs = np.maximum(true_probs, PROBABILITY_FLOOR)

        self._cache = (probs, labels)
        return float(-np.mean(np.log(true_probs)))

    def backward(self) -> np.ndarray:
        """Gradient of the mean loss with respect to the logits."""
        if self._cache is None:
            raise RuntimeError("CrossEntropyLoss.backward called before forward")
        probs, labels = self._cache
        batch_size = labels.shape[0]
        grad = probs.copy()
        grad[np.arange(batch_size), labels] -= 1.0
        return grad / batch_size
