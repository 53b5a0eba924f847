"""
Prediction heads for Transformer models.

Includes:
- ClassificationHead: sequence-level classification over the mean of the token states.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..utils.errors import DimensionMismatch
from .module import Linear, Module


class ClassificationHead(Module):
    """
    Sequence-level classification head with average pooling.

    Args:
        d_model: hidden size from the encoder
        num_labels: number of output classes
        rng: generator for Xavier-uniform init of the output projection
    """

    def __init__(
        self,
        d_model: int,
        num_labels: int,
        rng: np.random.Generator,
        dtype: np.dtype = np.float64,
    ) -> None:
        self.d_model = d_model
        self.num_labels = num_labels
        self.out_proj = Linear(d_model, num_labels, rng, dtype=dtype)
        self._seq_len: Optional[int] = None

    def forward(self, x: np.ndarray) -> np.ndarray:
        """
        x: (batch, seq_len, d_model)
        returns: (batch, num_labels)
        """
        if x.ndim != 3 or x.shape[-1] != self.d_model or x.shape[1] == 0:
            raise DimensionMismatch(
                "ClassificationHead.forward", f"(batch, seq_len>0, {self.d_model})", x.shape
            )
        self._seq_len = x.shape[1]
        pooled = x.mean(axis=1)
        return self.out_proj(pooled)

    def backward(self, grad: np.ndarray) -> np.ndarray:
        if self._seq_len is None:
            raise RuntimeError("ClassificationHead.backward called before forward")
        d_pooled = self.out_proj.backward(grad)  # (batch, d_model)
        # Mean pooling spreads the gradient evenly over every position.
        return np.repeat(d_pooled[:, None, :] / self._seq_len, self._seq_len, axis=1)
