"""
Encoder-only sequence classifier.

Composes the encoder stack with a mean-pooling classification head and routes
the loss gradient back through both. Inference helpers (probabilities,
argmax labels) run the forward path only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .encoder import TransformerEncoder
from .functional import softmax
from .heads import ClassificationHead
from .module import Module

if TYPE_CHECKING:
    from .factory import ModelConfig


class TransformerClassifier(Module):
    """
    Token ids -> encoder -> mean pool -> logits.

    Args:
        encoder: embedding + positional encoding + encoder layers
        head: classification head producing (batch, num_classes) logits
        config: architecture description, stored with checkpoints
    """

    def __init__(
        self,
        encoder: TransformerEncoder,
        head: ClassificationHead,
        config: Optional["ModelConfig"] = None,
    ) -> None:
        self.encoder = encoder
        self.head = head
        # Plain attribute, not a Module: excluded from parameter discovery.
        self.config = config

    @property
    def num_classes(self) -> int:
        return self.head.num_labels

    def architecture(self) -> Dict[str, Any]:
        if self.config is None:
            raise ValueError("Model was built without a ModelConfig; architecture is unknown")
        return self.config.to_dict()

    def forward(
        self, input_ids: np.ndarray, collect_attn: bool = False
    ) -> Union[np.ndarray, Tuple[np.ndarray, List[np.ndarray]]]:
        """
        input_ids: (batch, seq_len)
        returns: logits (batch, num_classes), plus attention weights if collect_attn
        """
        if collect_attn:
            hidden, attn = self.encoder(input_ids, collect_attn=True)
            return self.head(hidden), attn
        hidden = self.encoder(input_ids)
        return self.head(hidden)

    def backward(self, grad: np.ndarray) -> None:
        """Populate every parameter gradient from d(loss)/d(logits)."""
        self.encoder.backward(self.head.backward(grad))

    def predict_proba(self, input_ids: np.ndarray) -> np.ndarray:
        return softmax(self.forward(input_ids), axis=-1)

    def predict(self, input_ids: np.ndarray) -> np.ndarray:
        return np.argmax(self.forward(input_ids), axis=-1)
