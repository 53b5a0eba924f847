"""
scratchformer transformer models.

This package provides a from-scratch transformer encoder on numpy arrays with:
- TokenEmbedding, PositionalEncoding, MultiHeadAttention, FeedForward, LayerNorm
- TransformerEncoderLayer / TransformerEncoder (Post-LN)
- ClassificationHead (mean pooling) and the TransformerClassifier composition
- Every layer exposes forward() and a hand-derived backward()
"""

from .attention import MultiHeadAttention, ScaledDotProductAttention
from .classifier import TransformerClassifier
from .embedding import TokenEmbedding
from .encoder import TransformerEncoder, TransformerEncoderLayer
from .factory import ModelConfig, build_model, load_model_config
from .feedforward import FeedForward
from .heads import ClassificationHead
from .layer_norm import LayerNorm
from .module import Linear, Module, Parameter
from .positional_encoding import PositionalEncoding, sinusoidal_encoding

__all__ = [
    "ClassificationHead",
    "FeedForward",
    "LayerNorm",
    "Linear",
    "ModelConfig",
    "Module",
    "MultiHeadAttention",
    "Parameter",
    "PositionalEncoding",
    "ScaledDotProductAttention",
    "TokenEmbedding",
    "TransformerClassifier",
    "TransformerEncoder",
    "TransformerEncoderLayer",
    "build_model",
    "load_model_config",
    "sinusoidal_encoding",
]
