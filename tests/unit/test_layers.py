import numpy as np
import pytest

from deepnet.core.activations import (
    relu_deriv,
    sigmoid,
    sigmoid_deriv,
    softmax,
    softmax_collapsed_deriv,
    softmax_jacobian_product,
)
from deepnet.core.errors import InvalidConfiguration, UndefinedState
from deepnet.core.init import init_limit, initialize_weights
from deepnet.core.layers import Dropout, LayerState, ReLU, Sigmoid, Softmax, build_layer
from deepnet.core.optimizers import SGD, Adam


def _bound(layer, weights):
    layer.bind(np.asarray(weights).shape[0], weights)
    return layer


def test_relu_backward_updates_parameters_and_returns_input_gradient():
    layer = _bound(ReLU(1, SGD(learning_rate=1.0)), [[0.5], [0.25]])
    out = layer.forward_propagation(np.array([[1.0, 2.0]]), training=True)
    np.testing.assert_allclose(out, [[1.0]])
    assert layer.state is LayerState.FORWARD_DONE

    next_grad = layer.back_propagation(np.array([[2.0]]))

    np.testing.assert_allclose(next_grad, [[1.0, 0.5]])
    np.testing.assert_allclose(layer.weights, [[-1.5], [-3.75]])
    np.testing.assert_allclose(layer.bias, [-2.0])
    assert layer.state is LayerState.IDLE


def test_back_propagation_requires_training_forward():
    layer = _bound(ReLU(1, SGD()), [[1.0]])
    with pytest.raises(UndefinedState):
        layer.back_propagation(np.array([[1.0]]))

    layer.forward_propagation(np.array([[1.0]]), training=False)
    with pytest.raises(UndefinedState):
        layer.back_propagation(np.array([[1.0]]))


def test_second_backward_without_forward_is_rejected():
    layer = _bound(Sigmoid(1, SGD()), [[1.0]])
    layer.forward_propagation(np.array([[0.0]]), training=True)
    layer.back_propagation(np.array([[1.0]]))
    with pytest.raises(UndefinedState):
        layer.back_propagation(np.array([[1.0]]))


def test_predict_returns_flat_vector():
    layer = _bound(Sigmoid(2, SGD()), [[0.0, 0.0], [0.0, 0.0]])
    prediction = layer.predict(np.array([3.0, -1.0]))
    assert prediction.shape == (2,)
    np.testing.assert_allclose(prediction, [0.5, 0.5])


def test_bind_is_single_shot_and_checks_shape():
    layer = ReLU(3, SGD())
    with pytest.raises(InvalidConfiguration):
        layer.forward_propagation(np.ones((1, 2)))
    with pytest.raises(InvalidConfiguration):
        layer.bind(2, np.zeros((3, 2)))
    layer.bind(2)
    assert layer.weights.shape == (2, 3)
    assert layer.parameter_count() == 9
    with pytest.raises(InvalidConfiguration):
        layer.bind(2)


def test_relu_derivative_treats_zero_as_inactive():
    np.testing.assert_array_equal(relu_deriv(np.array([[-1.0, 0.0, 2.0]])), [[0.0, 0.0, 1.0]])


def test_sigmoid_derivative_uses_activated_value():
    z = np.array([[0.0, 2.0]])
    s = sigmoid(z)
    np.testing.assert_allclose(sigmoid_deriv(z), s * (1.0 - s))
    assert sigmoid_deriv(np.array([[0.0]]))[0, 0] == pytest.approx(0.25)


def test_softmax_rows_sum_to_one_and_resist_overflow():
    z = np.array([[1000.0, 1000.0], [1.0, 2.0]])
    s = softmax(z)
    np.testing.assert_allclose(s.sum(axis=1), [1.0, 1.0])
    np.testing.assert_allclose(s[0], [0.5, 0.5])
    assert np.all((s > 0.0) & (s < 1.0))


def test_softmax_collapsed_derivative_vanishes():
    z = np.array([[0.3, -1.2, 2.0]])
    np.testing.assert_allclose(softmax_collapsed_deriv(z), np.zeros((1, 3)), atol=1e-12)


def test_softmax_jacobian_product_matches_explicit_jacobian():
    z = np.array([[0.3, -1.2, 2.0]])
    g = np.array([[1.0, -2.0, 0.5]])
    s = softmax(z)[0]
    jacobian = np.diag(s) - np.outer(s, s)
    np.testing.assert_allclose(softmax_jacobian_product(z, g)[0], jacobian @ g[0])


def test_softmax_layer_full_jacobian_moves_weights():
    layer = _bound(Softmax(2, SGD(learning_rate=1.0)), [[0.1, -0.1]])
    layer.forward_propagation(np.array([[1.0]]), training=True)
    before = layer.weights.copy()
    layer.back_propagation(np.array([[1.0, -1.0]]))
    assert not np.allclose(layer.weights, before)


def test_softmax_layer_collapsed_jacobian_leaves_weights_alone():
    layer = _bound(Softmax(2, SGD(learning_rate=1.0), jacobian="collapsed"), [[0.1, -0.1]])
    layer.forward_propagation(np.array([[1.0]]), training=True)
    before = layer.weights.copy()
    next_grad = layer.back_propagation(np.array([[1.0, -1.0]]))
    np.testing.assert_allclose(layer.weights, before, atol=1e-12)
    np.testing.assert_allclose(layer.bias, [0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(next_grad, [[0.0]], atol=1e-12)
    assert layer.state is LayerState.IDLE


def test_softmax_rejects_unknown_jacobian_mode():
    with pytest.raises(InvalidConfiguration):
        Softmax(2, SGD(), jacobian="diagonal")


def test_dropout_mask_is_shared_by_forward_and_backward():
    rng = np.random.default_rng(1)
    layer = _bound(Dropout(4, SGD(learning_rate=1.0), rate=0.5, rng=rng), np.eye(4))
    out = layer.forward_propagation(np.ones((3, 4)), training=True)
    mask = layer.mask.copy()

    for row in out:
        np.testing.assert_array_equal(row, mask.astype(np.float64))

    next_grad = layer.back_propagation(np.ones((3, 4)))
    np.testing.assert_array_equal(next_grad[0], mask.astype(np.float64))
    assert layer.mask is None


def test_dropout_is_identity_in_eval_mode():
    layer = _bound(Dropout(3, SGD(), rate=0.9), np.eye(3))
    x = np.array([[1.0, -2.0, 3.0]])
    np.testing.assert_array_equal(layer.forward_propagation(x, training=False), x)
    assert layer.mask is None


def test_dropout_rate_zero_keeps_every_column():
    layer = _bound(Dropout(5, SGD(), rate=0.0), np.eye(5))
    layer.forward_propagation(np.ones((1, 5)), training=True)
    assert layer.mask.all()


def test_dropout_rate_bounds():
    with pytest.raises(InvalidConfiguration):
        Dropout(2, SGD(), rate=1.0)
    with pytest.raises(InvalidConfiguration):
        Dropout(2, SGD(), rate=-0.1)


def test_dropout_derivative_needs_mask():
    layer = _bound(Dropout(2, SGD()), np.eye(2))
    with pytest.raises(UndefinedState):
        layer.derivative(np.zeros((1, 2)))


def test_initialization_ranges():
    rng = np.random.default_rng(0)
    relu_weights = initialize_weights(8, 4, "relu", rng)
    assert relu_weights.shape == (8, 4)
    assert np.abs(relu_weights).max() <= np.sqrt(2.0 / 8)
    assert init_limit(4, 2, "softmax") == pytest.approx(1.0)
    assert init_limit(4, 2, "sigmoid") == pytest.approx(0.5)
    with pytest.raises(InvalidConfiguration):
        initialize_weights(0, 3, "relu")
    with pytest.raises(InvalidConfiguration):
        init_limit(2, 2, "tanh")


def test_build_layer_by_kind():
    layer = build_layer("Dropout", 3, SGD(), rate=0.2)
    assert isinstance(layer, Dropout)
    assert layer.rate == 0.2
    with pytest.raises(KeyError):
        build_layer("conv", 3, SGD())
    with pytest.raises(InvalidConfiguration):
        build_layer("relu", 3, SGD(), rate=0.2)


def test_bind_starts_optimizer_from_empty_state():
    optimizer = Adam()
    optimizer.optimize_weights(np.ones((3, 3)))
    layer = _bound(ReLU(2, optimizer), np.ones((1, 2)))
    assert optimizer.t == 0
    layer.forward_propagation(np.array([[1.0]]), training=True)
    layer.back_propagation(np.array([[1.0, 1.0]]))
    assert optimizer._m.shape == (1, 2)
