import numpy as np

from scratchformer.training.gradcheck import check_input_gradient, compare_gradients, numerical_gradient


def test_numerical_gradient_of_quadratic():
    x = np.array([1.0, -2.0, 3.0])
    grad = numerical_gradient(lambda: float(np.sum(x**2)), x)
    np.testing.assert_allclose(grad, 2 * x, atol=1e-8)
    # Input restored after probing.
    np.testing.assert_array_equal(x, [1.0, -2.0, 3.0])


def test_compare_gradients_flags_wrong_gradient():
    good = compare_gradients("g", np.array([1.0, 2.0]), np.array([1.0, 2.0 + 1e-9]))
    bad = compare_gradients("g", np.array([1.0, 2.0]), np.array([1.0, 2.5]))
    assert good.passed
    assert not bad.passed
    assert bad.max_abs_error == 0.5


def test_check_input_gradient_detects_bug(rng):
    def forward(x):
        return x**2

    result = check_input_gradient(forward, lambda g: 2 * g, rng.standard_normal(4), rng)
    assert not result.passed
