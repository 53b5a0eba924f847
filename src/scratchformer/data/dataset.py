"""Dataset definitions for the scratchformer classification pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Sequence, TypeVar

import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder


@dataclass
class ClassificationExample:
    """Container for a single text and its class label."""

    text: str
    label: str


class ClassificationDataset:
    """Dataset that owns a LabelEncoder mapping class names to ids."""

    def __init__(
        self,
        examples: Iterable[ClassificationExample],
        *,
        encoder: LabelEncoder | None = None,
    ) -> None:
        self._examples = list(examples)
        labels = [example.label for example in self._examples]
        if encoder is None:
            if not labels:
                raise ValueError("Cannot fit a LabelEncoder on an empty dataset")
            self._encoder = LabelEncoder().fit(labels)
        else:
            self._encoder = encoder
            if not hasattr(self._encoder, "classes_"):
                raise ValueError(
                    "Provided LabelEncoder must be pre-fitted with 'classes_' attribute."
                )

    def __len__(self) -> int:
        return len(self._examples)

    def __getitem__(self, index: int) -> ClassificationExample:
        return self._examples[index]

    @property
    def examples(self) -> List[ClassificationExample]:
        return list(self._examples)

    @property
    def encoder(self) -> LabelEncoder:
        return self._encoder

    @property
    def classes(self) -> List[str]:
        return [str(label) for label in self._encoder.classes_]

    @property
    def num_classes(self) -> int:
        return len(self._encoder.classes_)

    def encode_labels(self, labels: Sequence[str]) -> np.ndarray:
        """Class names to int64 ids; unseen names raise ValueError."""
        return np.asarray(self._encoder.transform(list(labels)), dtype=np.int64)


T = TypeVar("T")


def _safe_json_load(handle, path: Path) -> object:
    try:
        return json.load(handle)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse JSON in '{path}': {exc}") from exc


def _safe_json_loads(data: str, path: Path, line_number: int) -> object:
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse JSON in '{path}' at line {line_number}: {exc}") from exc


def _validate_keys(
    payload: dict,
    required_keys: Sequence[str],
    position: int,
    *,
    path: Path,
    is_array: bool = False,
) -> None:
    missing = [key for key in required_keys if key not in payload]
    if missing:
        keys = ", ".join(sorted(missing))
        location = "index" if is_array else "line"
        raise KeyError(f"Missing required keys ({keys}) at {location} {position} of '{path}'")


def _check_file(path: str | Path) -> Path:
    data_path = Path(path)
    if not data_path.exists():
        raise FileNotFoundError(f"Dataset file '{data_path}' does not exist")
    if not data_path.is_file():
        raise ValueError(f"Dataset path '{data_path}' is not a file")
    return data_path


def _load_json_generic(
    path: str | Path,
    constructor: Callable[[dict], T],
    required_keys: Sequence[str],
) -> List[T]:
    """Read either a JSON array of objects or one JSON object per line."""
    data_path = _check_file(path)

    items: List[T] = []
    with data_path.open("r", encoding="utf-8") as handle:
        first_non_ws = ""
        while True:
            pos = handle.tell()
            char = handle.read(1)
            if not char:
                break
            if not char.isspace():
                first_non_ws = char
                handle.seek(pos)
                break
        if not first_non_ws:
            raise ValueError(f"Dataset file '{data_path}' is empty or contains only whitespace")

        if first_non_ws == "[":
            payloads = _safe_json_load(handle, data_path)
            if not isinstance(payloads, list):
                raise ValueError(
                    f"Expected a JSON array in '{data_path}' but found {type(payloads).__name__}"
                )
            for idx, payload in enumerate(payloads):
                if not isinstance(payload, dict):
                    raise ValueError(
                        f"Expected objects in array for '{data_path}', found {type(payload).__name__} at index {idx}"
                    )
                _validate_keys(payload, required_keys, idx, path=data_path, is_array=True)
                items.append(constructor(payload))
        else:
            handle.seek(0)
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                payload = _safe_json_loads(line, data_path, line_number)
                if not isinstance(payload, dict):
                    raise ValueError(
                        f"Expected JSON object per line in '{data_path}', found {type(payload).__name__} at line {line_number}"
                    )
                _validate_keys(payload, required_keys, line_number, path=data_path)
                items.append(constructor(payload))

    return items


def _load_csv(path: str | Path) -> List[ClassificationExample]:
    data_path = _check_file(path)
    frame = pd.read_csv(data_path, dtype=str, keep_default_na=False)
    if {"text", "label"}.issubset(frame.columns):
        texts, labels = frame["text"], frame["label"]
    elif frame.shape[1] >= 2:
        # Headerless-style files: first column is text, second is label.
        texts, labels = frame.iloc[:, 0], frame.iloc[:, 1]
    else:
        raise ValueError(f"CSV dataset '{data_path}' needs 'text' and 'label' columns")
    return [
        ClassificationExample(text=str(text), label=str(label))
        for text, label in zip(texts, labels)
    ]


def load_examples(path: str | Path) -> List[ClassificationExample]:
    """Load labelled texts from .csv, .json or .jsonl."""
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return _load_csv(path)
    if suffix in (".json", ".jsonl"):
        return _load_json_generic(
            path,
            lambda payload: ClassificationExample(
                text=str(payload["text"]), label=str(payload["label"])
            ),
            required_keys=("text", "label"),
        )
    raise ValueError(f"Unsupported dataset format '{suffix}' for '{path}'")


def label_encoder_from_classes(classes: Sequence[str]) -> LabelEncoder:
    """Rebuild the encoder saved at training time from its class names."""
    if list(classes) != sorted(classes):
        raise ValueError("Class names must be in LabelEncoder (sorted) order")
    return LabelEncoder().fit(list(classes))
