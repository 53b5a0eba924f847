"""Tests for Parameter/Module plumbing and the Linear layer."""

from collections import OrderedDict

import numpy as np
import pytest

from scratchformer.models.module import Linear, Module, Parameter
from scratchformer.training.gradcheck import check_input_gradient
from scratchformer.utils.errors import DimensionMismatch


class _Pair(Module):
    def __init__(self, rng):
        self.first = Linear(3, 2, rng)
        self.blocks = [Linear(2, 2, rng, bias=False)]
        self.scale = Parameter(np.ones(1))


def test_named_parameters_are_dotted_and_ordered(rng):
    names = [name for name, _ in _Pair(rng).named_parameters()]
    assert names == ["first.weight", "first.bias", "blocks.0.weight", "scale"]


def test_parameter_set_exposes_live_arrays(rng):
    module = _Pair(rng)
    params = module.parameter_set()
    params["scale"][0] = 5.0
    assert module.scale.value[0] == 5.0


def test_state_dict_round_trip_and_validation(rng):
    module = _Pair(rng)
    state = module.state_dict()
    original = state["first.weight"].copy()
    module.first.weight.value[...] = 0.0
    module.load_state_dict(state)
    np.testing.assert_array_equal(module.first.weight.value, original)

    bad = OrderedDict(state)
    bad["first.bias"] = np.zeros(5)
    before = module.state_dict()
    with pytest.raises(DimensionMismatch):
        module.load_state_dict(bad)
    # Nothing was assigned.
    for name, value in module.state_dict().items():
        np.testing.assert_array_equal(value, before[name])

    with pytest.raises(KeyError):
        module.load_state_dict({"first.weight": original})


class TestLinear:
    def test_forward_is_affine(self, rng):
        layer = Linear(4, 3, rng)
        layer.bias.value[...] = [1.0, 2.0, 3.0]
        x = rng.standard_normal((2, 5, 4))
        np.testing.assert_allclose(layer(x), x @ layer.weight.value + layer.bias.value)

    def test_backward_gradients(self, rng):
        layer = Linear(4, 3, rng)
        x = rng.standard_normal((2, 5, 4))
        grad = rng.standard_normal((2, 5, 3))
        layer(x)
        dx = layer.backward(grad)
        np.testing.assert_allclose(dx, grad @ layer.weight.value.T)
        np.testing.assert_allclose(
            layer.weight.grad, np.einsum("bli,blo->io", x, grad)
        )
        np.testing.assert_allclose(layer.bias.grad, grad.sum(axis=(0, 1)))

    def test_input_gradient_numerically(self, rng):
        layer = Linear(4, 3, rng)
        result = check_input_gradient(layer.forward, layer.backward, rng.standard_normal((2, 4)), rng)
        assert result.passed, result

    def test_backward_before_forward(self, rng):
        with pytest.raises(RuntimeError):
            Linear(2, 2, rng).backward(np.zeros((1, 2)))

    def test_backward_rejects_wrong_gradient_shape(self, rng):
        layer = Linear(4, 3, rng)
        layer(rng.standard_normal((2, 4)))
        with pytest.raises(DimensionMismatch):
            layer.backward(np.zeros((2, 4)))

    def test_gradients_are_assigned_not_accumulated(self, rng):
        layer = Linear(2, 2, rng)
        x = rng.standard_normal((3, 2))
        grad = rng.standard_normal((3, 2))
        layer(x)
        layer.backward(grad)
        first = layer.weight.grad.copy()
        layer(x)
        layer.backward(grad)
        np.testing.assert_allclose(layer.weight.grad, first)
