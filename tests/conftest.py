"""Shared fixtures. Makes ``src/`` importable when the package is not installed."""

import sys
from pathlib import Path

import numpy as np
import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from scratchformer.models.factory import ModelConfig, build_model  # noqa: E402


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def tiny_config():
    return ModelConfig(
        vocab_size=11, num_classes=3, d_model=4, num_layers=2, num_heads=2, ffn_dim=6, seed=7
    )


@pytest.fixture
def tiny_model(tiny_config):
    return build_model(tiny_config)
