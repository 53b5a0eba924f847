import numpy as np

from scratchformer.models.feedforward import FeedForward
from scratchformer.training.gradcheck import check_input_gradient


def test_output_shape(rng):
    ffn = FeedForward(d_model=8, d_ff=16, rng=rng)
    assert ffn(rng.standard_normal((2, 5, 8))).shape == (2, 5, 8)


def test_matches_closed_form(rng):
    ffn = FeedForward(d_model=4, d_ff=6, rng=rng)
    x = rng.standard_normal((3, 4))
    w1, b1 = ffn.linear1.weight.value, ffn.linear1.bias.value
    w2, b2 = ffn.linear2.weight.value, ffn.linear2.bias.value
    expected = np.maximum(x @ w1 + b1, 0) @ w2 + b2
    np.testing.assert_allclose(ffn(x), expected)


def test_biases_start_at_zero(rng):
    ffn = FeedForward(d_model=4, d_ff=6, rng=rng)
    assert not ffn.linear1.bias.value.any()
    assert not ffn.linear2.bias.value.any()


def test_input_gradient(rng):
    ffn = FeedForward(d_model=4, d_ff=6, rng=rng)
    result = check_input_gradient(ffn.forward, ffn.backward, rng.standard_normal((2, 3, 4)), rng)
    assert result.passed, result


def test_inactive_units_block_gradient(rng):
    ffn = FeedForward(d_model=2, d_ff=3, rng=rng)
    ffn.linear1.weight.value[...] = 0.0
    ffn.linear1.bias.value[...] = -1.0  # every unit inactive
    x = rng.standard_normal((1, 2))
    ffn(x)
    dx = ffn.backward(np.ones((1, 2)))
    assert not dx.any()
    assert not ffn.linear1.weight.grad.any()
