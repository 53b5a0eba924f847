"""
Parameter and Module building blocks.

A Module owns Parameters (value + gradient pairs) and child Modules. It
exposes ``forward`` and a hand-derived ``backward``; ``backward`` receives the
gradient of the loss with respect to the module output, writes fresh
gradients into every Parameter it owns and returns the gradient with respect
to its input. Gradients are assigned, never accumulated across calls.

Parameters are discovered by walking instance attributes in definition order,
which gives stable dotted names such as ``layers.0.self_attn.W_Q.weight``.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..utils.errors import DimensionMismatch
from .functional import matmul, xavier_uniform


class Parameter:
    """A learnable array and the gradient computed for it by the last backward."""

    def __init__(self, value: np.ndarray) -> None:
        self.value = value
        self.grad = np.zeros_like(value)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.value.shape

    def zero_grad(self) -> None:
        self.grad = np.zeros_like(self.value)

    def __repr__(self) -> str:
        return f"Parameter(shape={self.value.shape}, dtype={self.value.dtype})"


class Module:
    """Base class for layers with explicit forward and backward passes."""

    def forward(self, *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError

    def backward(self, grad: np.ndarray) -> Any:
        raise NotImplementedError

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.forward(*args, **kwargs)

    # --------------- Parameter discovery ---------------

    def named_parameters(self, prefix: str = "") -> Iterator[Tuple[str, Parameter]]:
        for name, attr in vars(self).items():
            full = f"{prefix}{name}"
            if isinstance(attr, Parameter):
                yield full, attr
            elif isinstance(attr, Module):
                yield from attr.named_parameters(prefix=f"{full}.")
            elif isinstance(attr, (list, tuple)):
                for idx, item in enumerate(attr):
                    if isinstance(item, Module):
                        yield from item.named_parameters(prefix=f"{full}.{idx}.")

    def parameters(self) -> List[Parameter]:
        return [p for _, p in self.named_parameters()]

    def num_parameters(self) -> int:
        return int(sum(p.value.size for p in self.parameters()))

    def zero_grad(self) -> None:
        for p in self.parameters():
            p.zero_grad()

    # --------------- Parameter / Gradient sets ---------------

    def parameter_set(self) -> "OrderedDict[str, np.ndarray]":
        """Live views of every parameter array, keyed by dotted name."""
        return OrderedDict((name, p.value) for name, p in self.named_parameters())

    def gradient_set(self) -> "OrderedDict[str, np.ndarray]":
        """Gradients from the latest backward call, same keys as ``parameter_set``."""
        return OrderedDict((name, p.grad) for name, p in self.named_parameters())

    def state_dict(self) -> "OrderedDict[str, np.ndarray]":
        """Copies of every parameter array."""
        return OrderedDict((name, p.value.copy()) for name, p in self.named_parameters())

    def load_state_dict(self, state: Dict[str, np.ndarray]) -> None:
        """Copy arrays into the parameters in place.

        Every key and shape is validated before any parameter is touched, so a
        failed load leaves the module unchanged.
        """
        params = dict(self.named_parameters())
        missing = sorted(set(params) - set(state))
        unexpected = sorted(set(state) - set(params))
        if missing or unexpected:
            raise KeyError(f"State mismatch: missing={missing}, unexpected={unexpected}")
        for name, param in params.items():
            if state[name].shape != param.value.shape:
                raise DimensionMismatch(f"load_state_dict[{name}]", param.value.shape, state[name].shape)
        for name, param in params.items():
            param.value[...] = state[name]


# --------------- Linear ---------------


class Linear(Module):
    """
    Affine map y = x W + b applied to the last axis.

    Args:
        in_features: size of each input row
        out_features: size of each output row
        rng: generator used for Xavier-uniform weight init
        bias: whether to learn an additive bias (initialised to zero)
    """

    def __init__(
        self,
        in_features: int,
        out_features: int,
        rng: np.random.Generator,
        bias: bool = True,
        dtype: np.dtype = np.float64,
    ) -> None:
        self.in_features = in_features
        self.out_features = out_features
        self.weight = Parameter(xavier_uniform(rng, in_features, out_features, dtype))
        self.bias: Optional[Parameter] = (
            Parameter(np.zeros(out_features, dtype=dtype)) if bias else None
        )
        self._input: Optional[np.ndarray] = None

    def forward(self, x: np.ndarray) -> np.ndarray:
        out = matmul(x, self.weight.value, "Linear.forward")
        if self.bias is not None:
            out = out + self.bias.value
        self._input = x
        return out

    def backward(self, grad: np.ndarray) -> np.ndarray:
        if self._input is None:
            raise RuntimeError("Linear.backward called before forward")
        x = self._input
        expected = x.shape[:-1] + (self.out_features,)
        if grad.shape != expected:
            raise DimensionMismatch("Linear.backward", expected, grad.shape)
        # Flatten leading dims so the weight gradient is a single matmul.
        x2 = x.reshape(-1, self.in_features)
        g2 = grad.reshape(-1, self.out_features)
        self.weight.grad = matmul(x2.T, g2, "Linear.backward[weight]")
        if self.bias is not None:
            self.bias.grad = g2.sum(axis=0)
        return matmul(grad, self.weight.value.T, "Linear.backward[input]")
