from collections import OrderedDict

import numpy as np

from scratchformer.training.gradient_monitor import GradientMonitor, clip_grad_norm, find_non_finite


def test_compute_grad_norm(tiny_model):
    for grad in tiny_model.gradient_set().values():
        grad[...] = 0.0
    tiny_model.head.out_proj.bias.grad = np.array([3.0, 4.0, 0.0])
    monitor = GradientMonitor(tiny_model, log_frequency=1)
    stats = monitor.compute_grad_norm()
    assert stats["grad_norm"] == 5.0
    assert stats["grad_norm_max"] == 5.0
    issues = monitor.check_gradients()
    assert issues["zero_grads"] == len(tiny_model.parameter_set()) - 1
    assert issues["nan_grads"] == 0


def test_log_frequency(tiny_model):
    monitor = GradientMonitor(tiny_model, log_frequency=3)
    logged = [monitor.log_gradients(step) is not None for step in range(6)]
    assert logged == [True, False, False, True, False, False]


def test_find_non_finite():
    grads = OrderedDict(a=np.zeros(2), b=np.array([1.0, np.inf]))
    assert find_non_finite(grads) == "b"
    assert find_non_finite(OrderedDict(a=np.zeros(2))) is None


def test_clip_grad_norm_scales_in_place():
    grads = OrderedDict(a=np.array([3.0]), b=np.array([4.0]))
    norm = clip_grad_norm(grads, max_norm=1.0)
    assert norm == 5.0
    total = np.sqrt(grads["a"][0] ** 2 + grads["b"][0] ** 2)
    assert total <= 1.0 + 1e-6
    np.testing.assert_allclose(grads["a"] / grads["b"], 0.75)


def test_clip_grad_norm_no_op_below_threshold():
    grads = OrderedDict(a=np.array([0.3]))
    clip_grad_norm(grads, max_norm=1.0)
    assert grads["a"][0] == 0.3
