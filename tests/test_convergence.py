import os
import sys

import numpy as np

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from runtime.convergence import assess_convergence, maxdiff


def test_maxdiff():
    assert maxdiff(np.array([1.0, 2.0]), np.array([1.5, -1.0])) == 3.0
    assert maxdiff(np.array([]), np.array([])) == 0.0


def test_step_criterion():
    x_conv, f_conv, g_conv, conv = assess_convergence(
        np.array([1.0, 1.0]), np.array([1.0, 1.0 + 1e-12]), 1.0, 2.0, np.ones(2), 1e-10, 0.0, 0.0
    )
    assert (x_conv, f_conv, g_conv, conv) == (True, False, False, True)


def test_relative_value_criterion():
    _, f_conv, _, conv = assess_convergence(
        np.zeros(1), np.ones(1), 1.0, 1.0 + 1e-10, np.ones(1), 0.0, 1e-8, 0.0
    )
    assert f_conv and conv


def test_value_increase_counts_as_converged():
    _, f_conv, _, _ = assess_convergence(
        np.zeros(1), np.ones(1), 2.0, 1.0, np.ones(1), 0.0, 0.0, 0.0
    )
    assert f_conv


def test_zero_value_with_zero_tolerance_does_not_divide_by_zero():
    _, f_conv, _, _ = assess_convergence(
        np.zeros(1), np.ones(1), 0.0, 1.0, np.ones(1), 0.0, 0.0, 0.0
    )
    assert not f_conv


def test_gradient_criterion_uses_sup_norm():
    _, _, g_conv, conv = assess_convergence(
        np.zeros(2), np.ones(2), 0.0, 1.0, np.array([1e-9, -5e-9]), 0.0, 0.0, 1e-8
    )
    assert g_conv and conv
    _, _, g_conv, conv = assess_convergence(
        np.zeros(2), np.ones(2), 0.0, 1.0, np.array([1e-9, -5e-8]), 0.0, 0.0, 1e-8
    )
    assert not g_conv and not conv


def test_nothing_converged():
    result = assess_convergence(
        np.zeros(2), np.ones(2), 1.0, 5.0, np.ones(2), 1e-32, 1e-32, 1e-8
    )
    assert result == (False, False, False, False)
