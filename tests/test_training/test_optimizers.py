"""
Tests for SGD and Adam.

Run with: pytest tests/test_training/test_optimizers.py -v
"""

from collections import OrderedDict

import numpy as np
import pytest

from scratchformer.training.optimizers import SGD, Adam, AdamState, adam_update, build_optimizer
from scratchformer.utils.errors import ConfigurationError, DimensionMismatch


def _sets(value=1.0, grad=0.5):
    params = OrderedDict(w=np.full((2, 2), value), b=np.full(3, value))
    grads = OrderedDict(w=np.full((2, 2), grad), b=np.full(3, grad))
    return params, grads


class TestSGD:
    def test_step(self):
        params, grads = _sets()
        w = params["w"]
        SGD(lr=0.1).step(params, grads)
        np.testing.assert_allclose(params["w"], 0.95)
        assert params["w"] is w  # updated in place

    def test_key_mismatch_leaves_params_untouched(self):
        params, grads = _sets()
        del grads["b"]
        with pytest.raises(DimensionMismatch):
            SGD(lr=0.1).step(params, grads)
        np.testing.assert_allclose(params["w"], 1.0)

    def test_shape_mismatch(self):
        params, grads = _sets()
        grads["b"] = np.zeros(4)
        with pytest.raises(DimensionMismatch):
            SGD(lr=0.1).step(params, grads)
        np.testing.assert_allclose(params["w"], 1.0)

    def test_invalid_lr(self):
        with pytest.raises(ConfigurationError):
            SGD(lr=0.0)


class TestAdam:
    def test_first_step_closed_form(self):
        # At t=1 the bias-corrected update is lr * g / (|g| + eps).
        params, grads = _sets(grad=0.5)
        Adam(lr=0.01).step(params, grads)
        expected = 1.0 - 0.01 * 0.5 / (0.5 + 1e-8)
        np.testing.assert_allclose(params["w"], expected, rtol=0, atol=1e-12)

    def test_matches_pure_update_over_several_steps(self, rng):
        param = rng.standard_normal(4)
        reference = param.copy()
        m = np.zeros(4)
        v = np.zeros(4)
        adam = Adam(lr=0.05, beta1=0.8, beta2=0.95, eps=1e-6)
        for t in range(1, 4):
            grad = rng.standard_normal(4)
            adam.step({"p": param}, {"p": grad})
            reference, m, v = adam_update(reference, grad, m, v, t, 0.05, 0.8, 0.95, 1e-6)
        np.testing.assert_array_equal(param, reference)
        np.testing.assert_array_equal(adam.state.first_moment["p"], m)
        np.testing.assert_array_equal(adam.state.second_moment["p"], v)

    def test_shared_step_counter(self):
        params, grads = _sets()
        adam = Adam()
        adam.step(params, grads)
        adam.step(params, grads)
        assert adam.state.step == 2

    def test_deterministic(self):
        results = []
        for _ in range(2):
            params, grads = _sets()
            adam = Adam(lr=0.1)
            for _ in range(3):
                adam.step(params, grads)
            results.append(params["w"].copy())
        np.testing.assert_array_equal(results[0], results[1])

    def test_two_steps_differ_from_sgd(self):
        adam_params, grads = _sets(grad=0.5)
        sgd_params, _ = _sets(grad=0.5)
        adam = Adam(lr=0.1)
        sgd = SGD(lr=0.1)
        for _ in range(2):
            adam.step(adam_params, grads)
            sgd.step(sgd_params, grads)
        assert not np.allclose(adam_params["w"], sgd_params["w"])

    def test_independent_state_per_instance(self):
        params, grads = _sets()
        first = Adam()
        first.step(params, grads)
        assert Adam().state == AdamState()

    def test_pure_update_rejects_step_zero(self):
        with pytest.raises(ValueError):
            adam_update(np.zeros(1), np.zeros(1), np.zeros(1), np.zeros(1), 0)

    def test_invalid_betas(self):
        with pytest.raises(ConfigurationError):
            Adam(beta1=1.0)


def test_build_optimizer():
    assert isinstance(build_optimizer("adam", lr=0.01), Adam)
    assert isinstance(build_optimizer("SGD", lr=0.01), SGD)
    with pytest.raises(ConfigurationError):
        build_optimizer("rmsprop")
