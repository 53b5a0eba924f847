"""
Label metadata utilities for scratchformer.

Persists the class-name vocabulary produced during training so inference can
map predicted indices back to labels.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List


@dataclass
class LabelMetadata:
    """Container for class names persisted after training."""

    classes: List[str]

    @property
    def num_classes(self) -> int:
        return len(self.classes)


def load_label_metadata(path: str | Path) -> LabelMetadata:
    """Load class names from a JSON file."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Label metadata file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    classes = payload.get("classes") if isinstance(payload, dict) else None
    if not isinstance(classes, list) or not all(isinstance(item, str) for item in classes):
        raise ValueError("Label metadata missing 'classes' list of strings")

    return LabelMetadata(classes=classes)


def save_label_metadata(metadata: LabelMetadata, path: str | Path) -> None:
    """Persist class names to JSON."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump({"classes": metadata.classes}, handle, ensure_ascii=False, indent=2)
