"""Factory helpers to assemble the classifier for inference/training."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from ..utils.config import load_yaml
from ..utils.errors import ConfigurationError
from .classifier import TransformerClassifier
from .encoder import TransformerEncoder
from .heads import ClassificationHead

_SUPPORTED_DTYPES = ("float64", "float32")


@dataclass
class ModelConfig:
    """Configuration describing the transformer architecture."""

    vocab_size: int
    num_classes: int
    d_model: int = 64
    num_layers: int = 2
    num_heads: int = 4
    ffn_dim: int = 128
    layer_norm_eps: float = 1e-5
    embedding_init_range: float = 0.1
    dtype: str = "float64"
    seed: int = 0

    def __post_init__(self):
        if self.vocab_size <= 0 or self.num_classes <= 0:
            raise ConfigurationError("vocab_size and num_classes must be positive")
        if self.d_model <= 0 or self.num_layers <= 0:
            raise ConfigurationError("Model dimensions must be positive")
        if self.num_heads <= 0 or self.ffn_dim <= 0:
            raise ConfigurationError("Model dimensions must be positive")
        if self.d_model % self.num_heads != 0:
            raise ConfigurationError(
                f"d_model ({self.d_model}) must be divisible by num_heads ({self.num_heads})"
            )
        if self.layer_norm_eps <= 0:
            raise ConfigurationError(f"layer_norm_eps must be positive, got {self.layer_norm_eps}")
        if self.dtype not in _SUPPORTED_DTYPES:
            raise ConfigurationError(f"dtype must be one of {_SUPPORTED_DTYPES}, got {self.dtype}")

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.dtype)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown model config keys: {unknown}")
        return cls(**data)


def load_model_config(
    path: Optional[str | Path], *, vocab_size: int, num_classes: int
) -> ModelConfig:
    """Load the architecture from YAML; vocabulary and class counts come from the data."""

    if path is None:
        return ModelConfig(vocab_size=vocab_size, num_classes=num_classes)

    config = load_yaml(str(path))
    # Either a bare architecture file or a full run config with a `model` section.
    data = config.section("model") or config.data
    return ModelConfig(
        vocab_size=vocab_size,
        num_classes=num_classes,
        d_model=int(data.get("d_model", 64)),
        num_layers=int(data.get("num_layers", 2)),
        num_heads=int(data.get("num_heads", 4)),
        ffn_dim=int(data.get("ffn_dim", 128)),
        layer_norm_eps=float(data.get("layer_norm_eps", 1e-5)),
        embedding_init_range=float(data.get("embedding_init_range", 0.1)),
        dtype=str(data.get("dtype", "float64")),
        seed=int(data.get("seed", 0)),
    )


def build_model(config: ModelConfig) -> TransformerClassifier:
    """Instantiate a freshly initialised classifier; same config and seed give same weights."""

    rng = np.random.default_rng(config.seed)
    dtype = config.numpy_dtype
    encoder = TransformerEncoder(
        vocab_size=config.vocab_size,
        rng=rng,
        d_model=config.d_model,
        num_layers=config.num_layers,
        num_heads=config.num_heads,
        d_ff=config.ffn_dim,
        layer_norm_eps=config.layer_norm_eps,
        embedding_init_range=config.embedding_init_range,
        dtype=dtype,
    )
    head = ClassificationHead(config.d_model, config.num_classes, rng, dtype=dtype)
    return TransformerClassifier(encoder=encoder, head=head, config=config)
