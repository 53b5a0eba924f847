"""
Tests for attention mechanisms.

Run with: pytest tests/test_models/test_attention.py -v
"""

import numpy as np
import pytest

from scratchformer.models.attention import MultiHeadAttention, ScaledDotProductAttention
from scratchformer.training.gradcheck import check_input_gradient
from scratchformer.utils.errors import ConfigurationError, DimensionMismatch


class TestScaledDotProductAttention:
    """ScaledDotProductAttention expects (batch, num_heads, seq, d_k) inputs."""

    def test_output_shape(self, rng):
        attention = ScaledDotProductAttention()
        Q = rng.standard_normal((2, 3, 5, 4))
        K = rng.standard_normal((2, 3, 7, 4))
        V = rng.standard_normal((2, 3, 7, 6))
        output, weights = attention(Q, K, V)
        assert output.shape == (2, 3, 5, 6)
        assert weights.shape == (2, 3, 5, 7)

    def test_attention_weights_sum_to_one(self, rng):
        attention = ScaledDotProductAttention()
        Q = K = V = rng.standard_normal((2, 4, 6, 8))
        _, weights = attention(Q, K, V)
        np.testing.assert_allclose(weights.sum(axis=-1), 1.0, atol=1e-12)

    def test_matches_reference(self, rng):
        attention = ScaledDotProductAttention()
        Q, K, V = (rng.standard_normal((3, 4)) for _ in range(3))
        scores = Q @ K.T / 2.0
        w = np.exp(scores - scores.max(axis=-1, keepdims=True))
        w /= w.sum(axis=-1, keepdims=True)
        output, _ = attention(Q, K, V)
        np.testing.assert_allclose(output, w @ V)

    def test_key_value_row_mismatch(self, rng):
        attention = ScaledDotProductAttention()
        with pytest.raises(DimensionMismatch):
            attention(
                rng.standard_normal((1, 3, 4)),
                rng.standard_normal((1, 5, 4)),
                rng.standard_normal((1, 6, 4)),
            )

    def test_query_key_width_mismatch(self, rng):
        attention = ScaledDotProductAttention()
        with pytest.raises(DimensionMismatch):
            attention(
                rng.standard_normal((1, 3, 4)),
                rng.standard_normal((1, 5, 3)),
                rng.standard_normal((1, 5, 4)),
            )

    @pytest.mark.parametrize("which", [0, 1, 2])
    def test_input_gradients(self, rng, which):
        attention = ScaledDotProductAttention()
        inputs = [rng.standard_normal((2, 1, 3, 4)) for _ in range(3)]

        def forward(x):
            args = list(inputs)
            args[which] = x
            return attention(*args)[0]

        def backward(grad):
            return attention.backward(grad)[which]

        result = check_input_gradient(forward, backward, inputs[which], rng)
        assert result.passed, result


class TestMultiHeadAttention:
    """Test suite for MultiHeadAttention."""

    def test_output_shape(self, rng):
        mha = MultiHeadAttention(d_model=8, num_heads=2, rng=rng)
        x = rng.standard_normal((2, 5, 8))
        output, attn_weights = mha(x, x, x, return_attn_weights=True)
        assert output.shape == (2, 5, 8)
        assert attn_weights.shape == (2, 2, 5, 5)

    def test_weights_not_returned_by_default(self, rng):
        mha = MultiHeadAttention(d_model=8, num_heads=2, rng=rng)
        x = rng.standard_normal((1, 3, 8))
        _, attn_weights = mha(x, x, x)
        assert attn_weights is None

    def test_indivisible_heads_rejected(self, rng):
        with pytest.raises(ConfigurationError):
            MultiHeadAttention(d_model=10, num_heads=3, rng=rng)

    def test_head_uses_its_own_column_block(self, rng):
        mha = MultiHeadAttention(d_model=4, num_heads=2, rng=rng)
        x = rng.standard_normal((1, 3, 4))
        _, weights = mha(x, x, x, return_attn_weights=True)
        # Head 1 attention computed by hand from columns 2:4 of the projections.
        q = (x[0] @ mha.W_Q.weight.value + mha.W_Q.bias.value)[:, 2:4]
        k = (x[0] @ mha.W_K.weight.value + mha.W_K.bias.value)[:, 2:4]
        scores = q @ k.T / np.sqrt(2)
        expected = np.exp(scores - scores.max(axis=-1, keepdims=True))
        expected /= expected.sum(axis=-1, keepdims=True)
        np.testing.assert_allclose(weights[0, 1], expected)

    def test_wrong_width_rejected(self, rng):
        mha = MultiHeadAttention(d_model=4, num_heads=2, rng=rng)
        x = rng.standard_normal((1, 3, 6))
        with pytest.raises(DimensionMismatch):
            mha(x, x, x)

    def test_self_attention_input_gradient(self, rng):
        mha = MultiHeadAttention(d_model=4, num_heads=2, rng=rng)

        def forward(x):
            return mha(x, x, x)[0]

        def backward(grad):
            return sum(mha.backward(grad))

        result = check_input_gradient(forward, backward, rng.standard_normal((2, 3, 4)), rng)
        assert result.passed, result

    def test_cross_attention_gradients_are_separate(self, rng):
        mha = MultiHeadAttention(d_model=4, num_heads=2, rng=rng)
        memory = rng.standard_normal((1, 5, 4))

        def forward(x):
            return mha(x, memory, memory)[0]

        def backward(grad):
            d_query, d_key, d_value = mha.backward(grad)
            assert d_key.shape == memory.shape and d_value.shape == memory.shape
            return d_query

        result = check_input_gradient(forward, backward, rng.standard_normal((1, 2, 4)), rng)
        assert result.passed, result
