import math

import numpy as np
import pytest

from deepnet.core.errors import InvalidConfiguration, ShapeMismatch
from deepnet.core.optimizers import SGD, Adam, RMSprop, build_optimizer


def test_sgd_with_zero_learning_rate_returns_zeros():
    rng = np.random.default_rng(0)
    gradient = rng.standard_normal((3, 4))
    update = SGD(learning_rate=0.0).optimize_weights(gradient)
    np.testing.assert_array_equal(update, np.zeros((3, 4)))


def test_sgd_scales_gradient_without_mutating_it():
    gradient = np.array([[1.0, -2.0]])
    update = SGD(learning_rate=0.1).optimize_weights(gradient)
    np.testing.assert_allclose(update, [[0.1, -0.2]])
    np.testing.assert_allclose(gradient, [[1.0, -2.0]])
    np.testing.assert_allclose(SGD(learning_rate=0.5).optimize_bias(np.array([4.0])), [2.0])


def test_rmsprop_first_step():
    opt = RMSprop(learning_rate=0.01, decay_rate=0.9, epsilon=1e-8)
    update = opt.optimize_weights(np.array([[2.0]]))
    expected = 0.01 * 2.0 / (math.sqrt(0.1 * 4.0) + 1e-8)
    assert update[0, 0] == pytest.approx(expected)


def test_rmsprop_cache_persists_between_calls():
    opt = RMSprop(learning_rate=0.01, decay_rate=0.9, epsilon=0.0)
    opt.optimize_bias(np.array([1.0]))
    update = opt.optimize_bias(np.array([1.0]))
    cache = 0.9 * 0.1 + 0.1
    assert update[0] == pytest.approx(0.01 / math.sqrt(cache))


def test_rmsprop_rejects_gradient_of_a_different_shape():
    opt = RMSprop()
    opt.optimize_weights(np.ones((2, 2)))
    with pytest.raises(ShapeMismatch):
        opt.optimize_weights(np.ones((3, 2)))


def test_adam_first_step_is_learning_rate_times_sign():
    opt = Adam(learning_rate=0.05, weight_decay=0.0)
    update = opt.optimize_weights(np.array([[3.0, -0.5]]))
    np.testing.assert_allclose(update, [[0.05, -0.05]], rtol=1e-6)


def test_adam_weight_and_bias_share_one_step_counter():
    opt = Adam(learning_rate=0.1, beta1=0.9, beta2=0.999, epsilon=1e-8, weight_decay=0.0)
    opt.optimize_weights(np.ones((2, 1)))
    update = opt.optimize_bias(np.array([2.0]))
    assert opt.t == 2

    m_hat = (0.1 * 2.0) / (1 - 0.9**2)
    v_hat = (0.001 * 4.0) / (1 - 0.999**2)
    expected = 0.1 * m_hat / (math.sqrt(v_hat) + 1e-8)
    assert update[0] == pytest.approx(expected)


def test_adam_weight_decay_inflates_gradient_before_moments():
    opt = Adam(learning_rate=0.1, weight_decay=1.0)
    opt.optimize_weights(np.array([[1.0]]))
    assert opt._m[0, 0] == pytest.approx(0.1 * 2.0)
    assert opt._v[0, 0] == pytest.approx(0.001 * 4.0)


def test_adam_bias_path_skips_weight_decay():
    opt = Adam(learning_rate=0.1, weight_decay=1.0)
    opt.optimize_bias(np.array([1.0]))
    assert opt._m_bias[0] == pytest.approx(0.1)


def test_adam_reset_clears_state():
    opt = Adam()
    opt.optimize_weights(np.ones((1, 1)))
    opt.reset()
    assert opt.t == 0
    assert opt._m is None


def test_build_optimizer_by_name():
    opt = build_optimizer("Adam", learning_rate=0.2)
    assert isinstance(opt, Adam)
    assert opt.learning_rate == 0.2
    assert build_optimizer("rmsprop").name == "rmsprop"
    with pytest.raises(KeyError):
        build_optimizer("adagrad")
    with pytest.raises(InvalidConfiguration):
        build_optimizer("sgd", momentum=0.9)
