"""
Evaluation script for scratchformer.

Computes loss, accuracy, macro precision/recall/F1 and the confusion matrix of
a trained checkpoint on a labelled dataset.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from scratchformer.data.dataloader import build_classification_dataloader
from scratchformer.data.dataset import (
    ClassificationDataset,
    label_encoder_from_classes,
    load_examples,
)
from scratchformer.data.tokenization import Tokenizer
from scratchformer.inference.evaluation import evaluate
from scratchformer.utils.io import restore_model
from scratchformer.utils.labels import load_label_metadata


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate a scratchformer checkpoint.")
    parser.add_argument("data", type=Path, help="Labelled .csv/.json/.jsonl file.")
    parser.add_argument("--checkpoint", type=Path, default=Path("checkpoints/best.npz"))
    parser.add_argument("--tokenizer", type=Path, default=Path("artifacts/tokenizer.json"))
    parser.add_argument("--labels", type=Path, default=Path("artifacts/labels.json"))
    parser.add_argument("--batch-size", type=int, default=32)
    parser.add_argument("--output", type=Path, default=None, help="Optional JSON report path.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    start = time.perf_counter()

    labels = load_label_metadata(args.labels)
    tokenizer = Tokenizer.load(args.tokenizer)
    model = restore_model(args.checkpoint)

    # Reuse the class order saved at training time.
    dataset = ClassificationDataset(
        load_examples(args.data), encoder=label_encoder_from_classes(labels.classes)
    )
    loader = build_classification_dataloader(dataset, tokenizer, batch_size=args.batch_size)

    result = evaluate(model, loader, class_names=labels.classes)

    print(f"Loss:      {result.loss:.4f}")
    for name, value in result.metrics.items():
        print(f"{name.capitalize():<10} {value:.4f}")
    print("Confusion matrix (rows = true, cols = predicted):")
    print(result.confusion)
    print(f"\n✓ Evaluated {len(dataset)} examples in {time.perf_counter() - start:.1f}s")

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "loss": result.loss,
            "metrics": result.metrics,
            "confusion_matrix": result.confusion.tolist(),
            "report": result.report,
        }
        with args.output.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)


if __name__ == "__main__":
    main()
