"""
Positional Encoding for Transformer models.

Provides sinusoidal position embeddings that inject sequential order information
into token representations. Required because self-attention is permutation-invariant
and has no inherent notion of token position.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from ..utils.errors import DimensionMismatch
from .module import Module


@lru_cache(maxsize=32)
def sinusoidal_encoding(seq_len: int, d_model: int) -> np.ndarray:
    """
    Sinusoidal encoding table from "Attention Is All You Need".

    Formula:
        PE(pos, 2i)   = sin(pos / 10000^(2i/d_model))
        PE(pos, 2i+1) = cos(pos / 10000^(2i/d_model))

    The result is cached per (seq_len, d_model) and returned read-only.

    Returns:
        (seq_len, d_model) float64 array
    """
    if seq_len < 0 or d_model <= 0:
        raise ValueError(f"Invalid encoding size: seq_len={seq_len}, d_model={d_model}")
    position = np.arange(seq_len, dtype=np.float64)[:, None]
    pair_index = (np.arange(d_model) // 2).astype(np.float64)
    angles = position / np.power(10000.0, 2.0 * pair_index / d_model)
    pe = np.empty((seq_len, d_model), dtype=np.float64)
    pe[:, 0::2] = np.sin(angles[:, 0::2])  # Even indices
    pe[:, 1::2] = np.cos(angles[:, 1::2])  # Odd indices
    pe.setflags(write=False)
    return pe


class PositionalEncoding(Module):
    """
    Adds the sinusoidal table to a batch of embeddings.

    No learnable state; backward is the identity.

    Shape:
        Input: (batch, seq_len, d_model)
        Output: (batch, seq_len, d_model)
    """

    def __init__(self, d_model: int) -> None:
        self.d_model = d_model

    def forward(self, x: np.ndarray) -> np.ndarray:
        if x.ndim != 3 or x.shape[-1] != self.d_model:
            raise DimensionMismatch(
                "PositionalEncoding.forward", f"(batch, seq_len, {self.d_model})", x.shape
            )
        pe = sinusoidal_encoding(x.shape[1], self.d_model)
        return x + pe.astype(x.dtype, copy=False)

    def backward(self, grad: np.ndarray) -> np.ndarray:
        return grad
