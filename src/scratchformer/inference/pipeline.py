"""
Inference pipeline for scratchformer.

Tokenizes raw texts, runs the classifier forward in batches and maps the
argmax back to class names. Never touches gradients or optimizer state.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from ..data.tokenization import Tokenizer
from ..models.classifier import TransformerClassifier

# --------------- Configuration ---------------


@dataclass
class InferenceConfig:
    """Pipeline settings."""

    batch_size: int = 32
    max_length: int | None = None  # None = tokenizer default


@dataclass
class ClassPrediction:
    label: str
    confidence: float
    probabilities: List[float]


# --------------- Pipeline ---------------


class InferencePipeline:
    """Batched text classification."""

    def __init__(
        self,
        model: TransformerClassifier,
        tokenizer: Tokenizer,
        *,
        class_names: Sequence[str] | None = None,
        config: InferenceConfig | None = None,
    ) -> None:
        self.model = model
        self.tokenizer = tokenizer
        self.config = config or InferenceConfig()
        if class_names is None:
            class_names = [str(i) for i in range(model.num_classes)]
        if len(class_names) != model.num_classes:
            raise ValueError(
                f"Expected {model.num_classes} class names, got {len(class_names)}"
            )
        self.class_names = list(class_names)

    def predict_proba(self, texts: Sequence[str]) -> np.ndarray:
        """(len(texts), num_classes) probabilities."""
        if not texts:
            return np.zeros((0, self.model.num_classes))
        chunks = []
        for start in range(0, len(texts), self.config.batch_size):
            batch = texts[start : start + self.config.batch_size]
            ids = self.tokenizer.encode_batch(batch, max_length=self.config.max_length)
            chunks.append(self.model.predict_proba(ids))
        return np.concatenate(chunks, axis=0)

    def predict(self, texts: Sequence[str]) -> List[ClassPrediction]:
        probs = self.predict_proba(texts)
        results = []
        for row in probs:
            best = int(np.argmax(row))
            results.append(
                ClassPrediction(
                    label=self.class_names[best],
                    confidence=float(row[best]),
                    probabilities=[float(p) for p in row],
                )
            )
        return results
