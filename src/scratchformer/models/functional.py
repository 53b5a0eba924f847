"""
Shape-checked tensor primitives used by every layer.

All activations are plain numpy arrays. Nothing here broadcasts silently:
operands are compared up front and a DimensionMismatch names the operation
that was attempted. The single allowed pattern is a 2D weight applied to the
last axis of a stack of rows, which is how every Linear layer works.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import numpy as np

from ..utils.errors import DimensionMismatch, report_instability

# Largest magnitude a non-finite pre-softmax value is replaced with.
_SANITIZE_LIMIT = 1e30


def matmul(a: np.ndarray, b: np.ndarray, operation: str = "matmul") -> np.ndarray:
    """Matrix product with explicit shape validation.

    Supported forms:
        (m, k) @ (k, n)                 -> (m, n)
        (..., m, k) @ (k, n)            -> (..., m, n)   weight applied per row
        (..., m, k) @ (..., k, n)       -> (..., m, n)   identical leading dims
    """
    if a.ndim < 2 or b.ndim < 2:
        raise DimensionMismatch(operation, "at least 2D operands", (a.shape, b.shape))
    if a.shape[-1] != b.shape[-2]:
        raise DimensionMismatch(
            operation, f"inner dims equal ({a.shape[-1]} vs {b.shape[-2]})", (a.shape, b.shape)
        )
    if b.ndim > 2 and (a.ndim != b.ndim or a.shape[:-2] != b.shape[:-2]):
        raise DimensionMismatch(operation, "matching leading dims", (a.shape, b.shape))
    return np.matmul(a, b)


def check_same_shape(a: np.ndarray, b: np.ndarray, operation: str) -> None:
    if a.shape != b.shape:
        raise DimensionMismatch(operation, a.shape, b.shape)


def add(a: np.ndarray, b: np.ndarray, operation: str = "add") -> np.ndarray:
    """Elementwise sum of two arrays of identical shape (residual connections)."""
    check_same_shape(a, b, operation)
    return a + b


def softmax(x: np.ndarray, axis: int = -1) -> np.ndarray:
    """Numerically stable softmax along ``axis``.

    Non-finite inputs are replaced (NaN -> 0, +/-inf -> +/-1e30) and reported as
    a NumericInstability warning rather than propagated.
    """
    if not np.all(np.isfinite(x)):
        report_instability("softmax", "non-finite input values were sanitised")
        x = np.nan_to_num(x, nan=0.0, posinf=_SANITIZE_LIMIT, neginf=-_SANITIZE_LIMIT)
    shifted = x - np.max(x, axis=axis, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=axis, keepdims=True)


def softmax_backward(weights: np.ndarray, grad: np.ndarray) -> np.ndarray:
    """Contract the softmax Jacobian diag(w) - w w^T with ``grad`` row by row."""
    check_same_shape(weights, grad, "softmax_backward")
    inner = np.sum(grad * weights, axis=-1, keepdims=True)
    return weights * (grad - inner)


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(x, 0.0)


def relu_backward(pre_activation: np.ndarray, grad: np.ndarray) -> np.ndarray:
    # Zero counts as inactive.
    check_same_shape(pre_activation, grad, "relu_backward")
    return grad * (pre_activation > 0)


def xavier_uniform(
    rng: np.random.Generator, fan_in: int, fan_out: int, dtype: np.dtype = np.float64
) -> np.ndarray:
    """Glorot uniform init, shape (fan_in, fan_out)."""
    limit = np.sqrt(6.0 / (fan_in + fan_out))
    return rng.uniform(-limit, limit, size=(fan_in, fan_out)).astype(dtype)
