"""
Attention mechanisms for Transformer architecture.

This module implements the core attention mechanisms used in the Transformer model:
- ScaledDotProductAttention: Fundamental attention operation
- MultiHeadAttention: Parallel attention with learned projections

Both layers cache what their backward pass needs during forward and derive
gradients by hand, including the exact softmax Jacobian contraction.

Author: Oliver Perrin
Date: 2025-10-23
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

from ..utils.errors import ConfigurationError, DimensionMismatch
from .functional import matmul, softmax, softmax_backward
from .module import Linear, Module


class ScaledDotProductAttention(Module):
    """
    softmax(Q K^T / sqrt(d_k)) V over the last two axes.

    Inputs may carry any number of leading batch axes as long as Q, K and V
    agree on them.
    """

    def __init__(self) -> None:
        self._cache: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, float]] = None

    def forward(
        self,
        query: np.ndarray,
        key: np.ndarray,
        value: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Args:
            query: (batch, num_heads, seq_q, d_k)
            key: (batch, num_heads, seq_k, d_k)
            value: (batch, num_heads, seq_k, d_v)

        Returns:
            output: (batch, num_heads, seq_q, d_v)
            attention_weights: (batch, num_heads, seq_q, seq_k)
        """
        if key.shape[-2] != value.shape[-2]:
            raise DimensionMismatch(
                "ScaledDotProductAttention.forward[key/value rows]", key.shape, value.shape
            )
        scale = 1.0 / math.sqrt(query.shape[-1])
        scores = matmul(query, np.swapaxes(key, -1, -2), "ScaledDotProductAttention.scores") * scale
        weights = softmax(scores, axis=-1)
        output = matmul(weights, value, "ScaledDotProductAttention.output")
        self._cache = (query, key, value, weights, scale)
        return output, weights

    def backward(self, grad: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Returns gradients with respect to (query, key, value)."""
        if self._cache is None:
            raise RuntimeError("ScaledDotProductAttention.backward called before forward")
        query, key, value, weights, scale = self._cache
        expected = weights.shape[:-1] + (value.shape[-1],)
        if grad.shape != expected:
            raise DimensionMismatch("ScaledDotProductAttention.backward", expected, grad.shape)

        d_value = matmul(np.swapaxes(weights, -1, -2), grad, "ScaledDotProductAttention.dV")
        d_weights = matmul(grad, np.swapaxes(value, -1, -2), "ScaledDotProductAttention.dW")
        d_scores = softmax_backward(weights, d_weights) * scale
        d_query = matmul(d_scores, key, "ScaledDotProductAttention.dQ")
        d_key = matmul(np.swapaxes(d_scores, -1, -2), query, "ScaledDotProductAttention.dK")
        return d_query, d_key, d_value


# --------------- Multi-Head Attention ---------------


class MultiHeadAttention(Module):
    """
    Multi-Head Attention mechanism.

    Allows the model to jointly attend to information from different
    representation subspaces at different positions. Head h reads columns
    [h*d_k, (h+1)*d_k) of the Q/K/V projections, so the per-head projection
    matrices are stored side by side in one d_model x d_model weight each.

    Args:
        d_model: Dimension of model
        num_heads: Number of attention heads; must divide d_model
        rng: generator for Xavier-uniform projection init
    """

    def __init__(
        self,
        d_model: int,
        num_heads: int,
        rng: np.random.Generator,
        dtype: np.dtype = np.float64,
    ) -> None:
        if num_heads <= 0 or d_model % num_heads != 0:
            raise ConfigurationError(
                f"d_model ({d_model}) must be divisible by num_heads ({num_heads})"
            )

        # Assume d_v always equals d_k
        self.d_model = d_model
        self.num_heads = num_heads
        self.d_k = d_model // num_heads

        self.W_Q = Linear(d_model, d_model, rng, dtype=dtype)
        self.W_K = Linear(d_model, d_model, rng, dtype=dtype)
        self.W_V = Linear(d_model, d_model, rng, dtype=dtype)
        self.W_O = Linear(d_model, d_model, rng, dtype=dtype)
        self.attention = ScaledDotProductAttention()

    def _split_heads(self, x: np.ndarray) -> np.ndarray:
        # (batch, seq_len, d_model) -> (batch, num_heads, seq_len, d_k)
        batch_size, seq_len, _ = x.shape
        return x.reshape(batch_size, seq_len, self.num_heads, self.d_k).transpose(0, 2, 1, 3)

    def _merge_heads(self, x: np.ndarray) -> np.ndarray:
        # (batch, num_heads, seq_len, d_k) -> (batch, seq_len, d_model)
        batch_size, _, seq_len, _ = x.shape
        return x.transpose(0, 2, 1, 3).reshape(batch_size, seq_len, self.d_model)

    def _check_input(self, name: str, x: np.ndarray) -> None:
        if x.ndim != 3 or x.shape[-1] != self.d_model:
            raise DimensionMismatch(
                f"MultiHeadAttention.forward[{name}]", f"(batch, seq_len, {self.d_model})", x.shape
            )

    def forward(
        self,
        query: np.ndarray,
        key: np.ndarray,
        value: np.ndarray,
        return_attn_weights: bool = False,
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Args:
            query: (batch, seq_q, d_model)
            key: (batch, seq_k, d_model)
            value: (batch, seq_k, d_model)

        Returns:
            output: (batch, seq_q, d_model)
            attention_weights: (batch, num_heads, seq_q, seq_k) if requested
        """
        self._check_input("query", query)
        self._check_input("key", key)
        self._check_input("value", value)
        if key.shape[:2] != value.shape[:2] or query.shape[0] != key.shape[0]:
            raise DimensionMismatch(
                "MultiHeadAttention.forward", (query.shape, key.shape), value.shape
            )

        Q = self._split_heads(self.W_Q(query))
        K = self._split_heads(self.W_K(key))
        V = self._split_heads(self.W_V(value))
        # Now all are: (batch, num_heads, seq_len, d_k)

        heads, weights = self.attention(Q, K, V)
        output = self.W_O(self._merge_heads(heads))
        return output, (weights if return_attn_weights else None)

    def backward(self, grad: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Returns gradients for the query, key and value inputs.

        Self-attention callers pass the same tensor three times and must sum
        the three results.
        """
        d_heads = self._split_heads(self.W_O.backward(grad))
        d_q, d_k, d_v = self.attention.backward(d_heads)
        d_query = self.W_Q.backward(self._merge_heads(d_q))
        d_key = self.W_K.backward(self._merge_heads(d_k))
        d_value = self.W_V.backward(self._merge_heads(d_v))
        return d_query, d_key, d_value
