"""
Training script for scratchformer.

Orchestrates dataset loading, vocabulary building, model construction and
training with per-epoch checkpoints.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import json
import sys
import time
import warnings
from pathlib import Path
from typing import Dict, List

warnings.filterwarnings("ignore", category=FutureWarning, module="mlflow")

import hydra
from omegaconf import DictConfig, OmegaConf

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from scratchformer.data.dataloader import build_classification_dataloader
from scratchformer.data.dataset import ClassificationDataset, ClassificationExample, load_examples
from scratchformer.data.tokenization import Tokenizer, TokenizerConfig
from scratchformer.models.classifier import TransformerClassifier
from scratchformer.models.factory import ModelConfig, build_model
from scratchformer.training.optimizers import build_optimizer
from scratchformer.training.trainer import Trainer, TrainerConfig
from scratchformer.utils.io import save_checkpoint
from scratchformer.utils.labels import LabelMetadata, save_label_metadata
from scratchformer.utils.logging import configure_logging
from scratchformer.utils.random import set_seed

# --------------- Data Loading ---------------


def limit_samples(
    examples: List[ClassificationExample], limit: int | None, split: str
) -> List[ClassificationExample]:
    """Apply sample limits for dev/debug runs."""
    if limit and len(examples) > limit:
        print(f"  {split}: limited to {limit} samples")
        return examples[: int(limit)]
    return examples


# --------------- Main ---------------


@hydra.main(version_base=None, config_path="../configs", config_name="config")
def main(cfg: DictConfig) -> None:
    start_time = time.perf_counter()
    configure_logging()
    print(OmegaConf.to_yaml(cfg))
    set_seed(int(cfg.seed))

    data_cfg = cfg.data
    trainer_cfg = cfg.training.get("trainer", {})

    # --------------- Load Data ---------------

    print("\nLoading datasets...")
    train_examples = limit_samples(
        load_examples(data_cfg.train), trainer_cfg.get("max_train_samples"), "train"
    )
    val_examples = limit_samples(
        load_examples(data_cfg.val), trainer_cfg.get("max_val_samples"), "val"
    )

    # --------------- Tokenizer & Datasets ---------------

    tok_cfg = data_cfg.get("tokenizer", {})
    max_vocab = tok_cfg.get("max_vocab_size")
    tokenizer = Tokenizer.build(
        (ex.text for ex in train_examples),
        TokenizerConfig(
            max_length=int(tok_cfg.get("max_length", 128)),
            lower=bool(tok_cfg.get("lower", True)),
            max_vocab_size=int(max_vocab) if max_vocab is not None else None,
        ),
    )
    print(f"✓ Vocabulary: {tokenizer.vocab_size} tokens")

    train_set = ClassificationDataset(train_examples)
    val_set = ClassificationDataset(val_examples, encoder=train_set.encoder)

    # --------------- DataLoaders ---------------

    dl_cfg = cfg.training.get("dataloader", {})
    batch_size = int(dl_cfg.get("batch_size", 32))
    train_loader = build_classification_dataloader(
        train_set,
        tokenizer,
        batch_size=batch_size,
        shuffle=bool(dl_cfg.get("shuffle", True)),
        seed=int(cfg.seed),
    )
    val_loader = build_classification_dataloader(val_set, tokenizer, batch_size=batch_size)

    # --------------- Model ---------------

    print("\nBuilding model...")
    model_cfg = ModelConfig(
        vocab_size=tokenizer.vocab_size,
        num_classes=train_set.num_classes,
        d_model=int(cfg.model.d_model),
        num_layers=int(cfg.model.num_layers),
        num_heads=int(cfg.model.num_heads),
        ffn_dim=int(cfg.model.ffn_dim),
        layer_norm_eps=float(cfg.model.layer_norm_eps),
        embedding_init_range=float(cfg.model.get("embedding_init_range", 0.1)),
        dtype=str(cfg.model.get("dtype", "float64")),
        seed=int(cfg.seed),
    )
    model = build_model(model_cfg)
    print(f"✓ Model: {model.num_parameters():,} parameters")

    # --------------- Optimizer & Trainer ---------------

    opt_cfg = dict(cfg.training.get("optimizer", {}))
    optimizer = build_optimizer(opt_cfg.pop("name", "adam"), **opt_cfg)

    clip = trainer_cfg.get("gradient_clip_norm")
    patience = trainer_cfg.get("early_stopping_patience")
    trainer = Trainer(
        model=model,
        optimizer=optimizer,
        config=TrainerConfig(
            max_epochs=int(trainer_cfg.get("max_epochs", 1)),
            gradient_clip_norm=float(clip) if clip is not None else None,
            experiment_name=str(cfg.get("experiment_name", "scratchformer")),
            early_stopping_patience=int(patience) if patience is not None else None,
            early_stopping_min_delta=float(trainer_cfg.get("early_stopping_min_delta", 0.001)),
            log_grad_norm_frequency=int(trainer_cfg.get("log_grad_norm_frequency", 100)),
            max_nan_skips=int(trainer_cfg.get("max_nan_skips", 10)),
        ),
    )

    # --------------- Train ---------------

    checkpoint_dir = Path(cfg.checkpoint_dir)
    best_val_loss = {"value": float("inf"), "saved": False}

    def checkpoint_epoch(epoch: int, model: TransformerClassifier, history: Dict) -> None:
        save_checkpoint(model, checkpoint_dir / f"epoch_{epoch}.npz", overwrite=True)
        val_loss = history.get(f"val_epoch_{epoch}", {}).get("loss")
        if val_loss is not None and val_loss < best_val_loss["value"]:
            best_val_loss.update(value=val_loss, saved=True)
            save_checkpoint(model, cfg.checkpoint_out, overwrite=True)

    print("\nStarting training...")
    history = trainer.fit(train_loader, val_loader, checkpoint_callback=checkpoint_epoch)

    # --------------- Save Outputs ---------------

    if not best_val_loss["saved"]:
        save_checkpoint(model, cfg.checkpoint_out, overwrite=True)
    tokenizer.save(cfg.tokenizer_out)
    save_label_metadata(LabelMetadata(classes=train_set.classes), cfg.labels_out)

    history_path = Path(cfg.history_out)
    history_path.parent.mkdir(parents=True, exist_ok=True)
    with history_path.open("w") as f:
        json.dump(history, f, indent=2)

    total_time = time.perf_counter() - start_time
    print(f"\n✓ Done in {total_time:.1f}s. Checkpoint: {cfg.checkpoint_out}")


if __name__ == "__main__":
    main()
