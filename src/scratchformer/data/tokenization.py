"""
Word-level tokenizer facade for scratchformer.

Wraps a HuggingFace ``tokenizers`` WordLevel model trained on the training
texts. The normalizer lowercases (optional) and strips everything but
letters, digits and whitespace; the pre-tokenizer splits on whitespace;
unknown words map to [UNK]; every sequence is right-padded with [PAD] or
truncated to ``max_length``.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence

import numpy as np
from tokenizers import Regex, normalizers, pre_tokenizers
from tokenizers import Tokenizer as HFTokenizer
from tokenizers.models import WordLevel
from tokenizers.trainers import WordLevelTrainer

PAD_TOKEN = "[PAD]"
UNK_TOKEN = "[UNK]"
CLS_TOKEN = "[CLS]"
SEP_TOKEN = "[SEP]"
SPECIAL_TOKENS = (PAD_TOKEN, UNK_TOKEN, CLS_TOKEN, SEP_TOKEN)

# Anything that is not a letter, digit or whitespace (underscore included).
_STRIP_PATTERN = r"[^\w\s]|_"
# WordLevelTrainer always takes a cap; this one is never reached.
_UNBOUNDED_VOCAB = 2**31 - 1


@dataclass
class TokenizerConfig:
    max_length: int = 128
    lower: bool = True
    max_vocab_size: int | None = None


def _backend_pipeline(backend: HFTokenizer, lower: bool) -> HFTokenizer:
    steps = [normalizers.Lowercase()] if lower else []
    steps.append(normalizers.Replace(Regex(_STRIP_PATTERN), ""))
    backend.normalizer = normalizers.Sequence(steps)
    backend.pre_tokenizer = pre_tokenizers.WhitespaceSplit()
    return backend


class Tokenizer:
    """Lightweight facade over a HuggingFace WordLevel tokenizer."""

    def __init__(self, vocab: Mapping[str, int], config: TokenizerConfig | None = None) -> None:
        self.config = config or TokenizerConfig()
        if self.config.max_length <= 0:
            raise ValueError(f"max_length must be positive, got {self.config.max_length}")
        for expected_id, token in enumerate(SPECIAL_TOKENS):
            if vocab.get(token) != expected_id:
                raise ValueError(f"Special token {token} must have id {expected_id}")
        if sorted(vocab.values()) != list(range(len(vocab))):
            raise ValueError("Vocabulary ids must be contiguous from 0")
        self._vocab: Dict[str, int] = dict(vocab)

        backend = HFTokenizer(WordLevel(vocab=self._vocab, unk_token=UNK_TOKEN))
        self._tokenizer = _backend_pipeline(backend, self.config.lower)
        self._tokenizer.add_special_tokens(list(SPECIAL_TOKENS))
        self._length: int | None = None
        self._set_length(self.config.max_length)

    # --------------- Construction ---------------

    @classmethod
    def build(cls, texts: Iterable[str], config: TokenizerConfig | None = None) -> "Tokenizer":
        """Train a vocabulary: special tokens first, then words by descending frequency.

        WordLevelTrainer breaks frequency ties alphabetically, so the same corpus
        always gives the same ids. ``max_vocab_size`` caps the total number of
        entries, special tokens included.
        """
        cfg = config or TokenizerConfig()
        if cfg.max_vocab_size is not None and cfg.max_vocab_size < len(SPECIAL_TOKENS):
            raise ValueError(
                f"max_vocab_size must be at least {len(SPECIAL_TOKENS)}, got {cfg.max_vocab_size}"
            )
        backend = _backend_pipeline(HFTokenizer(WordLevel(unk_token=UNK_TOKEN)), cfg.lower)
        trainer = WordLevelTrainer(
            vocab_size=cfg.max_vocab_size or _UNBOUNDED_VOCAB,
            min_frequency=0,
            show_progress=False,
            special_tokens=list(SPECIAL_TOKENS),
        )
        backend.train_from_iterator(texts, trainer=trainer)
        return cls(backend.get_vocab(with_added_tokens=True), cfg)

    # --------------- Properties ---------------

    @property
    def tokenizer(self) -> HFTokenizer:
        return self._tokenizer

    @property
    def vocab_size(self) -> int:
        return len(self._vocab)

    @property
    def pad_token_id(self) -> int:
        return self._vocab[PAD_TOKEN]

    @property
    def unk_token_id(self) -> int:
        return self._vocab[UNK_TOKEN]

    @property
    def vocab(self) -> Dict[str, int]:
        return dict(self._vocab)

    # --------------- Encoding ---------------

    def _set_length(self, length: int) -> None:
        if length == self._length:
            return
        self._tokenizer.enable_padding(
            direction="right", pad_id=self.pad_token_id, pad_token=PAD_TOKEN, length=length
        )
        self._tokenizer.enable_truncation(max_length=length)
        self._length = length

    def tokenize(self, text: str) -> List[str]:
        normalized = self._tokenizer.normalizer.normalize_str(text)
        return [word for word, _ in self._tokenizer.pre_tokenizer.pre_tokenize_str(normalized)]

    def encode(self, text: str, max_length: int | None = None) -> List[int]:
        """Exactly ``max_length`` ids: truncated, or right-padded with [PAD]."""
        self._set_length(max_length or self.config.max_length)
        return list(self._tokenizer.encode(text, add_special_tokens=False).ids)

    def encode_batch(self, texts: Sequence[str], max_length: int | None = None) -> np.ndarray:
        """(batch, max_length) int64 matrix."""
        length = max_length or self.config.max_length
        if not texts:
            return np.zeros((0, length), dtype=np.int64)
        self._set_length(length)
        encodings = self._tokenizer.encode_batch(list(texts), add_special_tokens=False)
        return np.asarray([enc.ids for enc in encodings], dtype=np.int64)

    def decode(self, ids: Iterable[int], skip_special_tokens: bool = True) -> str:
        ids = [int(idx) for idx in ids]
        for idx in ids:
            if not 0 <= idx < self.vocab_size:
                raise IndexError(f"Token id {idx} out of range for vocab_size {self.vocab_size}")
        return self._tokenizer.decode(ids, skip_special_tokens=skip_special_tokens)

    # --------------- Persistence ---------------

    def save(self, path: str | Path) -> None:
        """Write the HuggingFace tokenizer JSON (vocab, normalizer, padding)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._set_length(self.config.max_length)
        self._tokenizer.save(str(path))

    @classmethod
    def load(cls, path: str | Path) -> "Tokenizer":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Tokenizer file not found: {path}")
        try:
            backend = HFTokenizer.from_file(str(path))
        except Exception as exc:
            raise ValueError(f"Failed to read tokenizer file '{path}': {exc}") from exc

        # max_length and lowercasing are recovered from the saved pipeline.
        state = json.loads(backend.to_str())
        truncation = state.get("truncation") or {}
        steps = (state.get("normalizer") or {}).get("normalizers", [])
        config = TokenizerConfig(
            max_length=int(truncation.get("max_length", TokenizerConfig.max_length)),
            lower=any(step.get("type") == "Lowercase" for step in steps),
        )
        return cls(backend.get_vocab(with_added_tokens=True), config)
