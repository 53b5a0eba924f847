"""
Gradient-descent optimizers operating on parameter/gradient sets.

Both optimizers take the model's live parameter arrays and the gradients from
the latest backward call, validate that the two sets line up, then update the
parameters in place. Adam keeps its moments and global step counter in an
explicit AdamState owned by the optimizer instance.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

import numpy as np

from ..utils.errors import ConfigurationError, DimensionMismatch


class Optimizer:
    """Base class: validate, then apply an in-place update to every parameter."""

    def __init__(self, lr: float) -> None:
        if lr <= 0:
            raise ConfigurationError(f"Learning rate must be positive, got {lr}")
        self.lr = lr

    def step(self, params: Mapping[str, np.ndarray], grads: Mapping[str, np.ndarray]) -> None:
        _validate_sets(params, grads)
        self._apply(params, grads)

    def _apply(self, params: Mapping[str, np.ndarray], grads: Mapping[str, np.ndarray]) -> None:
        raise NotImplementedError


def _validate_sets(params: Mapping[str, np.ndarray], grads: Mapping[str, np.ndarray]) -> None:
    # Checked up front so a bad pair never leaves parameters half-updated.
    if set(params) != set(grads):
        missing = sorted(set(params) - set(grads))
        extra = sorted(set(grads) - set(params))
        raise DimensionMismatch(
            "Optimizer.step[keys]", f"gradients for {len(params)} parameters",
            f"missing={missing}, unexpected={extra}",
        )
    for name, value in params.items():
        if grads[name].shape != value.shape:
            raise DimensionMismatch(f"Optimizer.step[{name}]", value.shape, grads[name].shape)


# --------------- SGD ---------------


class SGD(Optimizer):
    """param <- param - lr * grad"""

    def __init__(self, lr: float = 0.01) -> None:
        super().__init__(lr)

    def _apply(self, params: Mapping[str, np.ndarray], grads: Mapping[str, np.ndarray]) -> None:
        for name, value in params.items():
            np.subtract(value, self.lr * grads[name], out=value)


# --------------- Adam ---------------


@dataclass
class AdamState:
    """Global step counter plus per-parameter first and second moments."""

    step: int = 0
    first_moment: Dict[str, np.ndarray] = field(default_factory=dict)
    second_moment: Dict[str, np.ndarray] = field(default_factory=dict)


def adam_update(
    param: np.ndarray,
    grad: np.ndarray,
    m: np.ndarray,
    v: np.ndarray,
    t: int,
    lr: float = 1e-3,
    beta1: float = 0.9,
    beta2: float = 0.999,
    eps: float = 1e-8,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """One bias-corrected Adam update. Pure: returns (new_param, new_m, new_v)."""
    if t < 1:
        raise ValueError(f"Adam step counter starts at 1, got {t}")
    new_m = beta1 * m + (1.0 - beta1) * grad
    new_v = beta2 * v + (1.0 - beta2) * grad * grad
    m_hat = new_m / (1.0 - beta1**t)
    v_hat = new_v / (1.0 - beta2**t)
    new_param = param - lr * m_hat / (np.sqrt(v_hat) + eps)
    return new_param, new_m, new_v


class Adam(Optimizer):
    """
    Adam with bias correction.

    Args:
        lr: learning rate
        beta1: decay of the first-moment estimate
        beta2: decay of the second-moment estimate
        eps: added to the denominator
    """

    def __init__(
        self, lr: float = 1e-3, beta1: float = 0.9, beta2: float = 0.999, eps: float = 1e-8
    ) -> None:
        super().__init__(lr)
        if not (0.0 <= beta1 < 1.0 and 0.0 <= beta2 < 1.0):
            raise ConfigurationError(f"Adam betas must lie in [0, 1), got ({beta1}, {beta2})")
        self.beta1 = beta1
        self.beta2 = beta2
        self.eps = eps
        self.state = AdamState()

    def _apply(self, params: Mapping[str, np.ndarray], grads: Mapping[str, np.ndarray]) -> None:
        # One shared counter per step() call, whatever the number of parameters.
        self.state.step += 1
        t = self.state.step
        for name, value in params.items():
            m = self.state.first_moment.get(name)
            v = self.state.second_moment.get(name)
            if m is None or v is None:
                m = np.zeros_like(value)
                v = np.zeros_like(value)
            new_value, m, v = adam_update(
                value, grads[name], m, v, t, self.lr, self.beta1, self.beta2, self.eps
            )
            value[...] = new_value
            self.state.first_moment[name] = m
            self.state.second_moment[name] = v


def build_optimizer(name: str, **kwargs: Any) -> Optimizer:
    """Select an optimizer by name ("sgd" or "adam")."""
    key = name.lower()
    if key == "sgd":
        return SGD(**kwargs)
    if key == "adam":
        return Adam(**kwargs)
    raise ConfigurationError(f"Unknown optimizer '{name}', expected 'sgd' or 'adam'")
