import math

import numpy as np
import pytest

from scratchformer.training.losses import CrossEntropyLoss
from scratchformer.utils.errors import DimensionMismatch, InvalidIndex, NumericInstability


def _reference_loss(logits, labels):
    shifted = logits - logits.max(axis=1, keepdims=True)
    log_probs = shifted - np.log(np.exp(shifted).sum(axis=1, keepdims=True))
    return -log_probs[np.arange(len(labels)), labels].mean()


def test_known_values():
    logits = np.array([[1.0, 2.0, 3.0], [1.0, 1.0, 1.0]])
    labels = np.array([2, 1])
    loss_fn = CrossEntropyLoss()
    loss = loss_fn(logits, labels)
    assert loss == pytest.approx(_reference_loss(logits, labels))
    # Uniform row contributes log(3).
    p_true = math.exp(3) / (math.exp(1) + math.exp(2) + math.exp(3))
    assert loss == pytest.approx((-math.log(p_true) + math.log(3)) / 2)


def test_non_negative(rng):
    loss_fn = CrossEntropyLoss()
    for _ in range(5):
        logits = rng.standard_normal((4, 6)) * 5
        assert loss_fn(logits, rng.integers(0, 6, size=4)) >= 0.0


def test_backward_is_probs_minus_one_hot_over_batch():
    logits = np.array([[1.0, 2.0, 3.0], [1.0, 1.0, 1.0]])
    labels = np.array([2, 1])
    loss_fn = CrossEntropyLoss()
    loss_fn(logits, labels)
    grad = loss_fn.backward()
    probs = np.exp(logits) / np.exp(logits).sum(axis=1, keepdims=True)
    expected = probs.copy()
    expected[[0, 1], [2, 1]] -= 1.0
    np.testing.assert_allclose(grad, expected / 2)
    np.testing.assert_allclose(grad.sum(axis=1), 0.0, atol=1e-15)


def test_label_out_of_range():
    loss_fn = CrossEntropyLoss()
    with pytest.raises(InvalidIndex):
        loss_fn(np.zeros((2, 3)), np.array([0, 3]))
    with pytest.raises(InvalidIndex):
        loss_fn(np.zeros((2, 3)), np.array([0, -1]))


def test_row_mismatch():
    with pytest.raises(DimensionMismatch):
        CrossEntropyLoss()(np.zeros((2, 3)), np.array([0, 1, 2]))


def test_clamp_warns_and_stays_finite():
    logits = np.array([[0.0, 100.0]])
    loss_fn = CrossEntropyLoss()
    with pytest.warns(NumericInstability):
        loss = loss_fn(logits, np.array([0]))
    assert loss == pytest.approx(-math.log(1e-12))


def test_backward_before_forward():
    with pytest.raises(RuntimeError):
        CrossEntropyLoss().backward()
