import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from runtime.linalg import default_tol, positive_cholesky


def test_spd_matrix_is_left_unchanged():
    A = np.array([[4.0, 2.0, 0.0], [2.0, 5.0, 1.0], [0.0, 1.0, 3.0]])
    F = positive_cholesky(A)
    np.testing.assert_allclose(F.L, np.linalg.cholesky(A))
    np.testing.assert_array_equal(F.signs, [1, 1, 1])
    assert not F.is_modified
    b = np.array([1.0, -1.0, 2.0])
    np.testing.assert_allclose(F.solve(b), np.linalg.solve(A, b))


def test_negative_pivot_is_flipped():
    F = positive_cholesky(np.diag([-2.0, 3.0]))
    np.testing.assert_array_equal(F.signs, [-1, 1])
    np.testing.assert_allclose(F.matrix, np.diag([2.0, 3.0]))
    assert F.is_modified


def test_zero_pivot_becomes_unit():
    F = positive_cholesky(np.diag([0.0, 4.0]))
    np.testing.assert_array_equal(F.signs, [0, 1])
    np.testing.assert_allclose(F.L, np.diag([1.0, 2.0]))


def test_indefinite_matrix_gives_descent_direction():
    A = np.array([[1.0, 2.0], [2.0, 1.0]])  # eigenvalues 3 and -1
    F = positive_cholesky(A)
    assert F.is_modified
    assert np.all(np.linalg.eigvalsh(F.matrix) > 0)
    for g in (np.array([1.0, 0.0]), np.array([0.3, -2.0]), np.array([-1.0, -1.0])):
        s = -F.solve(g)
        assert g @ s < 0


def test_default_tol_scales_with_diagonal():
    assert default_tol(np.diag([1.0, 100.0])) == pytest.approx(100.0 * np.sqrt(np.finfo(float).eps))
    assert default_tol(np.zeros((2, 2))) == np.finfo(float).eps


def test_non_square_input_is_rejected():
    with pytest.raises(ValueError):
        positive_cholesky(np.ones((2, 3)))
