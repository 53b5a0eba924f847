from .dataloader import Batch, ClassificationCollator, DataLoader, build_classification_dataloader
from .dataset import (
    ClassificationDataset,
    ClassificationExample,
    label_encoder_from_classes,
    load_examples,
)
from .tokenization import SPECIAL_TOKENS, Tokenizer, TokenizerConfig

__all__ = [
    "Batch",
    "ClassificationCollator",
    "ClassificationDataset",
    "ClassificationExample",
    "DataLoader",
    "SPECIAL_TOKENS",
    "Tokenizer",
    "TokenizerConfig",
    "build_classification_dataloader",
    "label_encoder_from_classes",
    "load_examples",
]
