import numpy as np
import pytest

from scratchformer.models.embedding import TokenEmbedding
from scratchformer.utils.errors import DimensionMismatch, InvalidIndex


def test_lookup_shape_and_values(rng):
    emb = TokenEmbedding(vocab_size=10, d_model=4, rng=rng)
    ids = np.array([[1, 2, 3], [9, 0, 1]])
    out = emb(ids)
    assert out.shape == (2, 3, 4)
    np.testing.assert_array_equal(out[1, 0], emb.weight.value[9])


def test_uniform_init_range(rng):
    emb = TokenEmbedding(vocab_size=50, d_model=8, rng=rng)
    assert np.all(np.abs(emb.weight.value) <= 0.1)


def test_last_index_is_valid_and_vocab_size_is_not(rng):
    emb = TokenEmbedding(vocab_size=10, d_model=4, rng=rng)
    emb(np.array([[9]]))
    with pytest.raises(InvalidIndex):
        emb(np.array([[10]]))
    with pytest.raises(InvalidIndex):
        emb(np.array([[-1]]))


def test_rejects_non_integer_and_wrong_rank(rng):
    emb = TokenEmbedding(vocab_size=10, d_model=4, rng=rng)
    with pytest.raises(InvalidIndex):
        emb(np.array([[1.0, 2.0]]))
    with pytest.raises(DimensionMismatch):
        emb(np.array([1, 2, 3]))


def test_backward_scatter_adds_repeated_ids(rng):
    emb = TokenEmbedding(vocab_size=6, d_model=3, rng=rng)
    ids = np.array([[1, 1, 4]])
    emb(ids)
    grad = np.arange(9, dtype=np.float64).reshape(1, 3, 3)
    emb.backward(grad)
    np.testing.assert_allclose(emb.weight.grad[1], grad[0, 0] + grad[0, 1])
    np.testing.assert_allclose(emb.weight.grad[4], grad[0, 2])
    untouched = [0, 2, 3, 5]
    assert not emb.weight.grad[untouched].any()


def test_rejects_empty_sequence(rng):
    emb = TokenEmbedding(vocab_size=10, d_model=4, rng=rng)
    with pytest.raises(DimensionMismatch, match="TokenEmbedding.forward"):
        emb(np.zeros((2, 0), dtype=np.int64))
