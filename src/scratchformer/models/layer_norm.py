"""
Layer normalization over the model dimension.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..utils.errors import DimensionMismatch
from .module import Module, Parameter


class LayerNorm(Module):
    """
    y = gamma * (x - mean) / sqrt(var + eps) + beta, per row of the last axis.

    Variance is the biased estimator. gamma starts at 1 and beta at 0.

    Args:
        d_model: normalized dimension
        eps: added to the variance before the square root
    """

    def __init__(self, d_model: int, eps: float = 1e-5, dtype: np.dtype = np.float64) -> None:
        self.d_model = d_model
        self.eps = eps
        self.gamma = Parameter(np.ones(d_model, dtype=dtype))
        self.beta = Parameter(np.zeros(d_model, dtype=dtype))
        self._normalized: Optional[np.ndarray] = None
        self._inv_std: Optional[np.ndarray] = None

    def forward(self, x: np.ndarray) -> np.ndarray:
        if x.shape[-1] != self.d_model:
            raise DimensionMismatch("LayerNorm.forward", f"(..., {self.d_model})", x.shape)
        mean = x.mean(axis=-1, keepdims=True)
        var = x.var(axis=-1, keepdims=True)
        inv_std = 1.0 / np.sqrt(var + self.eps)
        normalized = (x - mean) * inv_std
        self._normalized = normalized
        self._inv_std = inv_std
        return self.gamma.value * normalized + self.beta.value

    def backward(self, grad: np.ndarray) -> np.ndarray:
        if self._normalized is None or self._inv_std is None:
            raise RuntimeError("LayerNorm.backward called before forward")
        x_hat = self._normalized
        if grad.shape != x_hat.shape:
            raise DimensionMismatch("LayerNorm.backward", x_hat.shape, grad.shape)

        reduce_axes = tuple(range(grad.ndim - 1))
        self.gamma.grad = np.sum(grad * x_hat, axis=reduce_axes)
        self.beta.grad = np.sum(grad, axis=reduce_axes)

        # Every output of a row depends on every input of that row through
        # the mean and variance, hence the two row-sum correction terms.
        d = self.d_model
        dx_hat = grad * self.gamma.value
        sum_dx_hat = dx_hat.sum(axis=-1, keepdims=True)
        sum_dx_hat_xhat = (dx_hat * x_hat).sum(axis=-1, keepdims=True)
        return (self._inv_std / d) * (d * dx_hat - sum_dx_hat - x_hat * sum_dx_hat_xhat)
