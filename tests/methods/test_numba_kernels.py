"""
Tests for the Numba-optimized kernels.
"""

import numpy as np

from monet_stager.methods import _numba_kernels


def test_compute_axis_weights():
    """Test bracketing indices and fractions inside the source range."""
    coord = np.array([0.0, 1.0, 2.0, 4.0])
    targets = np.array([0.0, 0.25, 1.0, 3.0, 4.0])

    lower, frac, valid = _numba_kernels.compute_axis_weights(coord, targets, True)

    np.testing.assert_array_equal(lower, [0, 0, 1, 2, 2])
    np.testing.assert_allclose(frac, [0.0, 0.25, 0.0, 0.5, 1.0])
    assert valid.all()


def test_compute_axis_weights_outside_range():
    """Test clamped and invalid targets outside the source range."""
    coord = np.array([0.0, 1.0, 2.0])
    targets = np.array([-1.0, 3.0, np.nan])

    lower, frac, valid = _numba_kernels.compute_axis_weights(coord, targets, True)
    np.testing.assert_array_equal(lower[:2], [0, 1])
    np.testing.assert_allclose(frac[:2], [0.0, 1.0])
    np.testing.assert_array_equal(valid, [True, True, False])

    _, _, valid = _numba_kernels.compute_axis_weights(coord, targets, False)
    np.testing.assert_array_equal(valid, [False, False, False])


def test_compute_axis_weights_singleton():
    """Test that a singleton axis maps every target onto its only node."""
    lower, frac, valid = _numba_kernels.compute_axis_weights(np.array([5.0]), np.array([-3.0, 5.0, 12.0]), False)
    np.testing.assert_array_equal(lower, [0, 0, 0])
    np.testing.assert_array_equal(frac, [0.0, 0.0, 0.0])
    assert valid.all()


def test_apply_weights_1d():
    """Test the apply_weights_1d kernel."""
    values = np.array([[0.0, 1.0], [10.0, 2.0], [20.0, 3.0]])
    lower = np.array([0, 1, 1], dtype=np.int64)
    frac = np.array([0.5, 0.0, 1.0])
    valid = np.array([True, True, False])

    result = _numba_kernels.apply_weights_1d(values, lower, frac, valid)

    expected = np.array([[5.0, 1.5], [10.0, 2.0], [np.nan, np.nan]])
    np.testing.assert_allclose(result, expected)


def test_apply_weights_2d():
    """Test the apply_weights_2d kernel against hand-computed bilinear values."""
    values = np.array([[1.0, 2.0], [3.0, 4.0]])[..., np.newaxis]
    lower = np.zeros(2, dtype=np.int64)
    frac_a = np.array([0.5, 1.0])
    frac_b = np.array([0.5, 0.0])
    valid = np.array([True, True])

    result = _numba_kernels.apply_weights_2d(values, lower, frac_a, lower, frac_b, valid)

    np.testing.assert_allclose(result[:, 0], [2.5, 3.0])


def test_apply_weights_3d():
    """Test the apply_weights_3d kernel on a field linear in every axis."""
    a, b, c = np.meshgrid([0.0, 1.0], [0.0, 1.0], [0.0, 1.0], indexing="ij")
    values = (a + 10 * b + 100 * c)[..., np.newaxis]
    lower = np.zeros(1, dtype=np.int64)

    result = _numba_kernels.apply_weights_3d(
        values,
        lower,
        np.array([0.25]),
        lower,
        np.array([0.5]),
        lower,
        np.array([0.75]),
        np.array([True]),
    )

    np.testing.assert_allclose(result[0, 0], 0.25 + 5.0 + 75.0)


def test_node_values_are_exact():
    """Test that zero-weight corners do not contaminate node values."""
    values = np.array([[np.inf], [7.0]])
    result = _numba_kernels.apply_weights_1d(
        values, np.array([0], dtype=np.int64), np.array([1.0]), np.array([True])
    )
    assert result[0, 0] == 7.0
