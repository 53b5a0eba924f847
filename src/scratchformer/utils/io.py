"""
Checkpoint I/O utilities for scratchformer.

A checkpoint is a single ``.npz`` archive holding every parameter array under
``param/<name>`` plus the architecture (JSON) and a format version. Files are
written to a temporary sibling and atomically renamed into place, so a reader
never sees a partial checkpoint. Any failure surfaces as SerializationError.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import json
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, Tuple

import numpy as np

from ..models.classifier import TransformerClassifier
from ..models.factory import ModelConfig, build_model
from .errors import ConfigurationError, DimensionMismatch, SerializationError
from .logging import get_logger

logger = get_logger(__name__)

FORMAT_VERSION = 1
_ARCHITECTURE_KEY = "__architecture__"
_VERSION_KEY = "__format_version__"
_PARAM_PREFIX = "param/"


def save_checkpoint(
    model: TransformerClassifier, path: str | Path, *, overwrite: bool = False
) -> Path:
    """Write parameters and architecture to ``path``; existing files are kept unless ``overwrite``."""

    destination = Path(path)
    if destination.exists() and not overwrite:
        raise SerializationError(f"Checkpoint already exists: {destination}")
    try:
        architecture = model.architecture()
    except ValueError as exc:
        raise SerializationError(f"Cannot checkpoint '{destination}': {exc}") from exc

    arrays: Dict[str, np.ndarray] = {
        f"{_PARAM_PREFIX}{name}": value for name, value in model.parameter_set().items()
    }
    arrays[_ARCHITECTURE_KEY] = np.array(json.dumps(architecture, sort_keys=True))
    arrays[_VERSION_KEY] = np.array(FORMAT_VERSION)

    tmp_name = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp", delete=False
        ) as handle:
            tmp_name = handle.name
            np.savez(handle, **arrays)
        os.replace(tmp_name, destination)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise SerializationError(f"Failed to write checkpoint '{destination}': {exc}") from exc

    logger.info("Saved checkpoint to %s", destination)
    return destination


def load_checkpoint(path: str | Path) -> Tuple[ModelConfig, Dict[str, np.ndarray]]:
    """Read a checkpoint into (architecture, parameter state)."""

    source = Path(path)
    try:
        with np.load(source, allow_pickle=False) as archive:
            version = int(archive[_VERSION_KEY])
            if version != FORMAT_VERSION:
                raise SerializationError(
                    f"Unsupported checkpoint format version {version} in '{source}'"
                )
            architecture = json.loads(str(archive[_ARCHITECTURE_KEY].item()))
            state = {
                key[len(_PARAM_PREFIX):]: archive[key]
                for key in archive.files
                if key.startswith(_PARAM_PREFIX)
            }
        config = ModelConfig.from_dict(architecture)
    except SerializationError:
        raise
    except (OSError, EOFError, ValueError, KeyError, TypeError, zipfile.BadZipFile) as exc:
        # ConfigurationError is a ValueError: incompatible metadata lands here too.
        raise SerializationError(f"Failed to read checkpoint '{source}': {exc}") from exc
    return config, state


def load_state(model: TransformerClassifier, path: str | Path) -> None:
    """Load checkpoint weights into an existing model with the same architecture.

    Nothing is assigned unless every parameter name and shape matches.
    """

    config, state = load_checkpoint(path)
    if model.config is not None:
        expected = {k: v for k, v in model.config.to_dict().items() if k != "seed"}
        found = {k: v for k, v in config.to_dict().items() if k != "seed"}
        if expected != found:
            raise SerializationError(
                f"Checkpoint architecture {found} does not match model architecture {expected}"
            )
    try:
        model.load_state_dict(state)
    except (KeyError, DimensionMismatch) as exc:
        raise SerializationError(f"Incompatible checkpoint '{path}': {exc}") from exc


def restore_model(path: str | Path) -> TransformerClassifier:
    """Rebuild a classifier from a checkpoint alone."""

    config, state = load_checkpoint(path)
    try:
        model = build_model(config)
        model.load_state_dict(state)
    except (ConfigurationError, KeyError, DimensionMismatch) as exc:
        raise SerializationError(f"Incompatible checkpoint '{path}': {exc}") from exc
    return model
