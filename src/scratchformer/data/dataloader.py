"""
DataLoader builders for scratchformer.

Collates ClassificationExamples into fixed-shape id matrices and yields them
in a stable order, or in a seeded shuffled order that changes every epoch.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterator, List

import numpy as np

from ..utils.errors import DimensionMismatch
from .dataset import ClassificationDataset, ClassificationExample
from .tokenization import Tokenizer


@dataclass
class Batch:
    """input_ids: (batch, seq_len) int64, labels: (batch,) int64."""

    input_ids: np.ndarray
    labels: np.ndarray

    def __post_init__(self) -> None:
        if self.input_ids.ndim != 2:
            raise DimensionMismatch("Batch.input_ids", "(batch, seq_len)", self.input_ids.shape)
        if self.labels.shape != (self.input_ids.shape[0],):
            raise DimensionMismatch("Batch.labels", (self.input_ids.shape[0],), self.labels.shape)

    @property
    def size(self) -> int:
        return int(self.input_ids.shape[0])


# --------------- Collators ---------------


class ClassificationCollator:
    """Prepare batches for single-label classification."""

    def __init__(
        self, tokenizer: Tokenizer, dataset: ClassificationDataset, *, max_length: int | None = None
    ) -> None:
        self.tokenizer = tokenizer
        self.dataset = dataset
        self.max_length = max_length

    def __call__(self, batch: List[ClassificationExample]) -> Batch:
        texts = [ex.text for ex in batch]
        input_ids = self.tokenizer.encode_batch(texts, max_length=self.max_length)
        labels = self.dataset.encode_labels([ex.label for ex in batch])
        return Batch(input_ids=input_ids, labels=labels)


# --------------- Loader ---------------


class DataLoader:
    """Iterate a dataset in batches; the last batch may be smaller."""

    def __init__(
        self,
        dataset: ClassificationDataset,
        *,
        batch_size: int,
        collate_fn: Callable[[List[ClassificationExample]], Batch],
        shuffle: bool = False,
        seed: int = 0,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.dataset = dataset
        self.batch_size = batch_size
        self.collate_fn = collate_fn
        self.shuffle = shuffle
        self._rng = np.random.default_rng(seed)

    def __len__(self) -> int:
        return math.ceil(len(self.dataset) / self.batch_size)

    def __iter__(self) -> Iterator[Batch]:
        order = np.arange(len(self.dataset))
        if self.shuffle:
            self._rng.shuffle(order)
        for start in range(0, len(order), self.batch_size):
            indices = order[start : start + self.batch_size]
            yield self.collate_fn([self.dataset[int(i)] for i in indices])


# --------------- Factory Functions ---------------


def build_classification_dataloader(
    dataset: ClassificationDataset,
    tokenizer: Tokenizer,
    *,
    batch_size: int = 32,
    shuffle: bool = False,
    seed: int = 0,
    max_length: int | None = None,
) -> DataLoader:
    """Create dataloader for sequence classification."""
    collator = ClassificationCollator(tokenizer, dataset, max_length=max_length)
    return DataLoader(
        dataset,
        batch_size=batch_size,
        shuffle=shuffle,
        collate_fn=collator,
        seed=seed,
    )
