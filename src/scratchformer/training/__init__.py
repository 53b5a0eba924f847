"""Training utilities for scratchformer."""

from .early_stopping import EarlyStopping
from .gradcheck import GradientCheckResult, check_input_gradient, gradient_check, numerical_gradient
from .gradient_monitor import GradientMonitor, clip_grad_norm, find_non_finite
from .losses import CrossEntropyLoss
from .metrics import (
    accuracy,
    classification_metrics,
    classification_report_dict,
    get_confusion_matrix,
    precision_recall_f1,
)
from .optimizers import SGD, Adam, AdamState, Optimizer, adam_update, build_optimizer
from .trainer import Trainer, TrainerConfig

__all__ = [
    "Adam",
    "AdamState",
    "CrossEntropyLoss",
    "EarlyStopping",
    "GradientCheckResult",
    "GradientMonitor",
    "Optimizer",
    "SGD",
    "Trainer",
    "TrainerConfig",
    "accuracy",
    "adam_update",
    "build_optimizer",
    "check_input_gradient",
    "classification_metrics",
    "classification_report_dict",
    "clip_grad_norm",
    "find_non_finite",
    "get_confusion_matrix",
    "gradient_check",
    "numerical_gradient",
    "precision_recall_f1",
]
