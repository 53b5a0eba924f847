"""
Inference script for the scratchformer classifier.

Command-line interface for classifying arbitrary text inputs with a trained
checkpoint.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from scratchformer.inference import InferenceConfig, create_inference_pipeline


def _load_texts(positional: List[str], file_path: Path | None) -> List[str]:
    texts = [text for text in positional if text]
    if file_path is not None:
        if not file_path.exists():
            raise FileNotFoundError(file_path)
        with file_path.open("r", encoding="utf-8") as handle:
            texts.extend([line.strip() for line in handle if line.strip()])
    if not texts:
        raise ValueError("No input texts provided. Pass text arguments or use --file.")
    return texts


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify texts with a scratchformer checkpoint.")
    parser.add_argument("text", nargs="*", help="Input text(s) to classify.")
    parser.add_argument("--file", type=Path, help="Path to a file containing one text per line.")
    parser.add_argument(
        "--checkpoint",
        type=Path,
        default=Path("checkpoints/best.npz"),
        help="Path to the model checkpoint produced during training.",
    )
    parser.add_argument(
        "--tokenizer",
        type=Path,
        default=Path("artifacts/tokenizer.json"),
        help="Tokenizer vocabulary saved during training.",
    )
    parser.add_argument(
        "--labels",
        type=Path,
        default=Path("artifacts/labels.json"),
        help="JSON file containing the class names.",
    )
    parser.add_argument("--batch-size", type=int, default=32, help="Inference batch size.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    texts = _load_texts(args.text, args.file)

    pipeline = create_inference_pipeline(
        checkpoint_path=args.checkpoint,
        tokenizer_path=args.tokenizer,
        labels_path=args.labels,
        config=InferenceConfig(batch_size=args.batch_size),
    )

    packaged = []
    for text, prediction in zip(texts, pipeline.predict(texts)):
        packaged.append(
            {
                "text": text,
                "label": prediction.label,
                "confidence": prediction.confidence,
                "probabilities": dict(zip(pipeline.class_names, prediction.probabilities)),
            }
        )

    print(json.dumps(packaged, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
