import numpy as np
import pytest

from deepnet.core.errors import ShapeMismatch
from deepnet.core.matrix import (
    Axis,
    apply,
    as_matrix,
    as_vector,
    hadamard,
    mean_along_axis,
    multiply,
    transpose,
)


def test_multiply_shape_and_values():
    a = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    b = np.arange(12, dtype=np.float64).reshape(3, 4)
    result = multiply(a, b)
    assert result.shape == (2, 4)
    np.testing.assert_allclose(result, a @ b)
    assert result.dtype == np.float64


def test_multiply_rejects_inner_dimension_mismatch():
    with pytest.raises(ShapeMismatch):
        multiply(np.ones((2, 3)), np.ones((2, 3)))


def test_shape_mismatch_is_a_value_error():
    with pytest.raises(ValueError):
        multiply(np.ones((1, 2)), np.ones((3, 1)))


def test_hadamard_requires_identical_shapes():
    a = np.array([[1.0, 2.0], [3.0, 4.0]])
    np.testing.assert_allclose(hadamard(a, a), [[1.0, 4.0], [9.0, 16.0]])
    with pytest.raises(ShapeMismatch):
        hadamard(a, np.ones((2, 3)))


def test_transpose_round_trip():
    rng = np.random.default_rng(0)
    a = rng.standard_normal((3, 5))
    t = transpose(a)
    assert t.shape == (5, 3)
    assert t[4, 1] == a[1, 4]
    np.testing.assert_array_equal(transpose(t), a)


def test_transpose_returns_a_copy():
    a = np.zeros((2, 2))
    t = transpose(a)
    t[0, 1] = 5.0
    assert a[1, 0] == 0.0


def test_apply_maps_every_element_without_mutating():
    a = np.array([[1.0, -2.0], [3.0, -4.0]])
    result = apply(lambda x: x * 2.0, a)
    np.testing.assert_allclose(result, [[2.0, -4.0], [6.0, -8.0]])
    np.testing.assert_allclose(a, [[1.0, -2.0], [3.0, -4.0]])


def test_mean_along_axis_directions():
    a = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
    np.testing.assert_allclose(mean_along_axis(a, Axis.ROWS), [1.5, 3.5, 5.5])
    np.testing.assert_allclose(mean_along_axis(a, Axis.COLUMNS), [3.0, 4.0])


def test_mean_of_single_row_is_that_row():
    row = np.array([[0.25, -1.0, 7.0]])
    np.testing.assert_allclose(mean_along_axis(row, Axis.COLUMNS), row[0])


def test_coercion_helpers():
    assert as_matrix([1.0, 2.0]).shape == (1, 2)
    assert as_matrix([[1, 2], [3, 4]]).dtype == np.float64
    assert as_vector([1, 2, 3]).shape == (3,)
    with pytest.raises(ShapeMismatch):
        as_vector([[1.0, 2.0]])
    with pytest.raises(ShapeMismatch):
        as_matrix(np.zeros((2, 2, 2)))
