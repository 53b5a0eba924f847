"""Helpers to assemble an inference pipeline from saved artifacts."""
from __future__ import annotations

from pathlib import Path

from ..data.tokenization import Tokenizer
from ..utils.io import restore_model
from ..utils.labels import load_label_metadata
from .pipeline import InferenceConfig, InferencePipeline


def create_inference_pipeline(
    checkpoint_path: str | Path,
    tokenizer_path: str | Path,
    labels_path: str | Path,
    *,
    config: InferenceConfig | None = None,
) -> InferencePipeline:
    """Build an :class:`InferencePipeline` from a checkpoint, tokenizer and label file."""

    checkpoint = Path(checkpoint_path)
    if not checkpoint.exists():
        raise FileNotFoundError(f"Checkpoint not found: {checkpoint}")

    labels = load_label_metadata(labels_path)
    tokenizer = Tokenizer.load(tokenizer_path)
    model = restore_model(checkpoint)

    if model.config is not None and model.config.vocab_size != tokenizer.vocab_size:
        raise ValueError(
            f"Tokenizer vocab_size {tokenizer.vocab_size} does not match "
            f"checkpoint vocab_size {model.config.vocab_size}"
        )

    return InferencePipeline(model, tokenizer, class_names=labels.classes, config=config)
