"""
Transformer encoder implementation (Post-LN).

Contains:
- TransformerEncoderLayer: one encoder block (self-attention + FFN, each followed by residual add + LayerNorm)
- TransformerEncoder: embedding + positional encoding + stack of encoder layers

Design choices:
- Post-LN: the residual sum is normalized, Z1 = LN(X + MHA(X)), Z2 = LN(Z1 + FFN(Z1)).
- The FeedForward module is position-wise and does NOT include residuals or normalization.
- No attention masks: padding positions attend and are attended to like any other token.
- Optionally collect attention weights by passing collect_attn=True to forward().
"""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

import numpy as np

from .attention import MultiHeadAttention
from .embedding import TokenEmbedding
from .feedforward import FeedForward
from .functional import add
from .layer_norm import LayerNorm
from .module import Module
from .positional_encoding import PositionalEncoding


class TransformerEncoderLayer(Module):
    """
    Single Transformer encoder layer (Post-LN).

    Args:
        d_model: model hidden size
        num_heads: number of attention heads
        d_ff: hidden dimension of the position-wise feed-forward network
        rng: generator for weight init
        layer_norm_eps: epsilon for both LayerNorms
    """

    def __init__(
        self,
        d_model: int,
        num_heads: int,
        d_ff: int,
        rng: np.random.Generator,
        layer_norm_eps: float = 1e-5,
        dtype: np.dtype = np.float64,
    ) -> None:
        self.self_attn = MultiHeadAttention(d_model=d_model, num_heads=num_heads, rng=rng, dtype=dtype)
        self.norm1 = LayerNorm(d_model, eps=layer_norm_eps, dtype=dtype)
        self.ffn = FeedForward(d_model=d_model, d_ff=d_ff, rng=rng, dtype=dtype)
        self.norm2 = LayerNorm(d_model, eps=layer_norm_eps, dtype=dtype)

    def forward(
        self, x: np.ndarray, collect_attn: bool = False
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Args:
            x: (batch, seq_len, d_model)
            collect_attn: whether to return attention weights

        Returns:
            x: (batch, seq_len, d_model)
            attn_weights: (batch, num_heads, seq_len, seq_len) or None
        """
        attn_out, attn_weights = self.self_attn(x, x, x, return_attn_weights=collect_attn)
        z1 = self.norm1(add(x, attn_out, "TransformerEncoderLayer.residual1"))
        ffn_out = self.ffn(z1)
        z2 = self.norm2(add(z1, ffn_out, "TransformerEncoderLayer.residual2"))
        return z2, attn_weights

    def backward(self, grad: np.ndarray) -> np.ndarray:
        # Second residual: dZ1 collects the skip path and the FFN path.
        d_sum2 = self.norm2.backward(grad)
        d_z1 = d_sum2 + self.ffn.backward(d_sum2)

        # First residual: dX collects the skip path and all three attention inputs.
        d_sum1 = self.norm1.backward(d_z1)
        d_query, d_key, d_value = self.self_attn.backward(d_sum1)
        return d_sum1 + d_query + d_key + d_value


class TransformerEncoder(Module):
    """
    Full encoder: token embedding + positional encoding + N encoder layers.

    Args:
        vocab_size: vocabulary size
        d_model: model hidden size
        num_layers: number of encoder layers to stack
        num_heads: number of attention heads
        d_ff: hidden dimension in FFN
        rng: generator for weight init
        layer_norm_eps: epsilon used by every LayerNorm
        embedding_init_range: half-width of the uniform embedding init
    """

    def __init__(
        self,
        vocab_size: int,
        rng: np.random.Generator,
        d_model: int = 64,
        num_layers: int = 2,
        num_heads: int = 4,
        d_ff: int = 128,
        layer_norm_eps: float = 1e-5,
        embedding_init_range: float = 0.1,
        dtype: np.dtype = np.float64,
    ) -> None:
        self.d_model = d_model
        self.num_layers = num_layers
        self.embedding = TokenEmbedding(
            vocab_size, d_model, rng, init_range=embedding_init_range, dtype=dtype
        )
        self.pos_encoder = PositionalEncoding(d_model)
        self.layers: List[TransformerEncoderLayer] = [
            TransformerEncoderLayer(d_model, num_heads, d_ff, rng, layer_norm_eps, dtype=dtype)
            for _ in range(num_layers)
        ]

    def forward(
        self, input_ids: np.ndarray, collect_attn: bool = False
    ) -> Union[np.ndarray, Tuple[np.ndarray, List[np.ndarray]]]:
        """
        Args:
            input_ids: (batch, seq_len) integer token ids
            collect_attn: if True, also return the per-layer attention weights

        Returns:
            (batch, seq_len, d_model), plus a list of (batch, heads, seq, seq) arrays
            when collect_attn is set
        """
        x = self.pos_encoder(self.embedding(input_ids))
        attn_weights_per_layer: List[np.ndarray] = []
        for layer in self.layers:
            x, attn = layer(x, collect_attn=collect_attn)
            if collect_attn and attn is not None:
                attn_weights_per_layer.append(attn)
        if collect_attn:
            return x, attn_weights_per_layer
        return x

    def backward(self, grad: np.ndarray) -> None:
        for layer in reversed(self.layers):
            grad = layer.backward(grad)
        grad = self.pos_encoder.backward(grad)
        self.embedding.backward(grad)
