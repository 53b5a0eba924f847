"""
Tests for the shape-checked tensor primitives.

Run with: pytest tests/test_models/test_functional.py -v
"""

import warnings

import numpy as np
import pytest

from scratchformer.models.functional import (
    add,
    matmul,
    relu,
    relu_backward,
    softmax,
    softmax_backward,
    xavier_uniform,
)
from scratchformer.utils.errors import DimensionMismatch, NumericInstability


class TestMatmul:
    def test_2d(self, rng):
        a = rng.standard_normal((3, 4))
        b = rng.standard_normal((4, 5))
        np.testing.assert_allclose(matmul(a, b), a @ b)

    def test_weight_applied_per_row(self, rng):
        a = rng.standard_normal((2, 3, 4))
        w = rng.standard_normal((4, 5))
        out = matmul(a, w)
        assert out.shape == (2, 3, 5)
        np.testing.assert_allclose(out[1], a[1] @ w)

    def test_inner_dimension_mismatch(self, rng):
        with pytest.raises(DimensionMismatch) as excinfo:
            matmul(rng.standard_normal((3, 4)), rng.standard_normal((5, 2)), "proj")
        assert "proj" in str(excinfo.value)

    def test_leading_dims_must_match(self, rng):
        a = rng.standard_normal((2, 3, 4))
        b = rng.standard_normal((1, 4, 3))
        with pytest.raises(DimensionMismatch):
            matmul(a, b)

    def test_rejects_vectors(self, rng):
        with pytest.raises(DimensionMismatch):
            matmul(rng.standard_normal(4), rng.standard_normal((4, 2)))


def test_add_requires_identical_shapes(rng):
    with pytest.raises(DimensionMismatch):
        add(rng.standard_normal((2, 3)), rng.standard_normal((3,)))


class TestSoftmax:
    def test_rows_sum_to_one(self, rng):
        x = rng.standard_normal((4, 5, 7)) * 10
        probs = softmax(x)
        assert np.all(probs >= 0)
        np.testing.assert_allclose(probs.sum(axis=-1), 1.0, atol=1e-12)

    def test_stable_for_large_inputs(self):
        probs = softmax(np.array([[1000.0, 1000.0, -1000.0]]))
        np.testing.assert_allclose(probs, [[0.5, 0.5, 0.0]], atol=1e-12)

    def test_non_finite_input_is_sanitised_with_warning(self):
        x = np.array([[np.nan, 1.0, np.inf]])
        with pytest.warns(NumericInstability):
            probs = softmax(x)
        assert np.all(np.isfinite(probs))
        np.testing.assert_allclose(probs.sum(), 1.0)
        assert probs[0, 2] == pytest.approx(1.0)

    def test_finite_input_emits_no_warning(self, rng):
        with warnings.catch_warnings():
            warnings.simplefilter("error", NumericInstability)
            softmax(rng.standard_normal((2, 3)))

    def test_backward_matches_explicit_jacobian(self, rng):
        w = softmax(rng.standard_normal((1, 5)))[0]
        g = rng.standard_normal(5)
        jacobian = np.diag(w) - np.outer(w, w)
        np.testing.assert_allclose(softmax_backward(w[None], g[None])[0], jacobian @ g)


def test_relu_backward_treats_zero_as_inactive():
    pre = np.array([-1.0, 0.0, 2.0])
    grad = np.array([5.0, 5.0, 5.0])
    np.testing.assert_array_equal(relu(pre), [0.0, 0.0, 2.0])
    np.testing.assert_array_equal(relu_backward(pre, grad), [0.0, 0.0, 5.0])


def test_xavier_uniform_bounds(rng):
    w = xavier_uniform(rng, 10, 6)
    limit = np.sqrt(6.0 / 16)
    assert w.shape == (10, 6)
    assert np.all(np.abs(w) <= limit)
