"""
Finite-difference gradient checking.

Compares the analytic gradients produced by backward() against central
differences (f(x + eps) - f(x - eps)) / 2eps. Only meaningful in float64.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

import numpy as np

from ..models.classifier import TransformerClassifier
from .losses import CrossEntropyLoss


@dataclass
class GradientCheckResult:
    """Outcome of checking one array."""

    name: str
    max_abs_error: float
    max_rel_error: float
    passed: bool


def numerical_gradient(
    objective: Callable[[], float], array: np.ndarray, eps: float = 1e-6
) -> np.ndarray:
    """Central-difference gradient of ``objective`` with respect to ``array``.

    ``array`` is perturbed in place, one element at a time, and restored.
    """
    grad = np.zeros_like(array, dtype=np.float64)
    for index in np.ndindex(array.shape):
        original = array[index]
        array[index] = original + eps
        plus = objective()
        array[index] = original - eps
        minus = objective()
        array[index] = original
        grad[index] = (plus - minus) / (2.0 * eps)
    return grad


def compare_gradients(
    name: str,
    analytic: np.ndarray,
    numeric: np.ndarray,
    rtol: float = 1e-4,
    atol: float = 1e-6,
) -> GradientCheckResult:
    abs_err = np.abs(analytic - numeric)
    denom = np.maximum(np.abs(analytic) + np.abs(numeric), 1e-12)
    return GradientCheckResult(
        name=name,
        max_abs_error=float(abs_err.max(initial=0.0)),
        max_rel_error=float((abs_err / denom).max(initial=0.0)),
        passed=bool(np.allclose(analytic, numeric, rtol=rtol, atol=atol)),
    )


def check_input_gradient(
    forward: Callable[[np.ndarray], np.ndarray],
    backward: Callable[[np.ndarray], np.ndarray],
    x: np.ndarray,
    rng: np.random.Generator,
    eps: float = 1e-6,
    rtol: float = 1e-4,
    atol: float = 1e-6,
) -> GradientCheckResult:
    """Check d(sum(forward(x) * U))/dx for a fixed random upstream gradient U."""
    x = np.array(x, dtype=np.float64)
    upstream = rng.standard_normal(forward(x).shape)

    def objective() -> float:
        return float(np.sum(forward(x) * upstream))

    forward(x)
    analytic = np.array(backward(upstream), dtype=np.float64)
    numeric = numerical_gradient(objective, x, eps)
    return compare_gradients("input", analytic, numeric, rtol, atol)


def gradient_check(
    model: TransformerClassifier,
    input_ids: np.ndarray,
    labels: np.ndarray,
    *,
    names: Optional[Iterable[str]] = None,
    eps: float = 1e-6,
    rtol: float = 1e-4,
    atol: float = 1e-6,
) -> List[GradientCheckResult]:
    """Check every learnable parameter (or the subset in ``names``) of ``model``."""
    loss_fn = CrossEntropyLoss()
    loss_fn(model(input_ids), labels)
    model.backward(loss_fn.backward())
    analytic = {name: grad.copy() for name, grad in model.gradient_set().items()}

    def objective() -> float:
        return loss_fn(model(input_ids), labels)

    wanted = set(names) if names is not None else None
    results: List[GradientCheckResult] = []
    for name, value in model.parameter_set().items():
        if wanted is not None and name not in wanted:
            continue
        numeric = numerical_gradient(objective, value, eps)
        results.append(compare_gradients(name, analytic[name], numeric, rtol, atol))
    return results
