"""
Token embedding lookup.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..utils.errors import DimensionMismatch, InvalidIndex
from .module import Module, Parameter


class TokenEmbedding(Module):
    """
    Lookup table mapping token ids to d_model-sized vectors.

    Args:
        vocab_size: number of rows in the table
        d_model: embedding width
        rng: generator for the Uniform(-init_range, init_range) init
        init_range: half-width of the uniform init interval

    Shape:
        Input: (batch, seq_len) integer ids
        Output: (batch, seq_len, d_model)
    """

    def __init__(
        self,
        vocab_size: int,
        d_model: int,
        rng: np.random.Generator,
        init_range: float = 0.1,
        dtype: np.dtype = np.float64,
    ) -> None:
        self.vocab_size = vocab_size
        self.d_model = d_model
        self.weight = Parameter(
            rng.uniform(-init_range, init_range, size=(vocab_size, d_model)).astype(dtype)
        )
        self._ids: Optional[np.ndarray] = None

    def forward(self, ids: np.ndarray) -> np.ndarray:
        ids = np.asarray(ids)
        if ids.ndim != 2 or ids.shape[1] == 0:
            raise DimensionMismatch("TokenEmbedding.forward", "(batch, seq_len>0)", ids.shape)
        if not np.issubdtype(ids.dtype, np.integer):
            raise InvalidIndex(f"Token ids must be integers, got dtype {ids.dtype}")
        bad = (ids < 0) | (ids >= self.vocab_size)
        if bad.any():
            raise InvalidIndex(
                f"Token id {int(ids[bad][0])} out of range for vocab_size {self.vocab_size}"
            )
        self._ids = ids
        return self.weight.value[ids]

    def backward(self, grad: np.ndarray) -> None:
        """Scatter-add ``grad`` into the rows that were looked up.

        Rows never referenced keep a zero gradient; repeated ids accumulate.
        Token ids are discrete, so there is no input gradient to return.
        """
        if self._ids is None:
            raise RuntimeError("TokenEmbedding.backward called before forward")
        expected = self._ids.shape + (self.d_model,)
        if grad.shape != expected:
            raise DimensionMismatch("TokenEmbedding.backward", expected, grad.shape)
        table_grad = np.zeros_like(self.weight.value)
        np.add.at(table_grad, self._ids, grad)
        self.weight.grad = table_grad
        return None
