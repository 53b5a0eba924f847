"""Position-wise Feed-Forward Network.

FFN(x) = max(0, xW1 + b1)W2 + b2, applied independently to every token row.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .functional import relu, relu_backward
from .module import Linear, Module


class FeedForward(Module):
    """
    Two Xavier-initialised linear layers with a ReLU in between.

    Args:
        d_model: input and output width
        d_ff: hidden width
    """

    def __init__(
        self, d_model: int, d_ff: int, rng: np.random.Generator, dtype: np.dtype = np.float64
    ) -> None:
        self.d_model = d_model
        self.d_ff = d_ff
        self.linear1 = Linear(d_model, d_ff, rng, dtype=dtype)  # w_1
        self.linear2 = Linear(d_ff, d_model, rng, dtype=dtype)  # w_2
        self._pre_activation: Optional[np.ndarray] = None

    def forward(self, x: np.ndarray) -> np.ndarray:
        """
        x: (batch, seq_len, d_model)
        returns: (batch, seq_len, d_model)
        """
        hidden = self.linear1(x)  # (batch, seq_len, d_ff)
        self._pre_activation = hidden
        return self.linear2(relu(hidden))  # (batch, seq_len, d_model)

    def backward(self, grad: np.ndarray) -> np.ndarray:
        if self._pre_activation is None:
            raise RuntimeError("FeedForward.backward called before forward")
        d_hidden = self.linear2.backward(grad)
        d_hidden = relu_backward(self._pre_activation, d_hidden)
        return self.linear1.backward(d_hidden)
