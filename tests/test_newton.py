import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import InvalidOptionError
from runtime.minimizer import optimize
from runtime.objective import Objective
from runtime.steppers.newton import Newton
from sample_problems import quadratic_fg, quadratic_objective


def _double_well():
    """f = x1^2 + (x2^2 - 1)^2, indefinite for |x2| < 1/sqrt(3)."""

    def fg(x):
        r = x[1] ** 2 - 1.0
        return x[0] ** 2 + r**2, np.array([2.0 * x[0], 4.0 * x[1] * r])

    def h(x):
        return np.array([[2.0, 0.0], [0.0, 12.0 * x[1] ** 2 - 4.0]])

    return Objective(fg=fg, h=h)


def test_newton_solves_quadratic_in_one_iteration():
    result = optimize(quadratic_objective(), [1.0, 1.0], Newton())

    assert result.converged
    assert result.g_converged
    assert result.iterations == 1
    np.testing.assert_allclose(result.minimizer, [0.0, 0.0], atol=1e-10)
    assert result.h_calls == 2


def test_newton_unit_step_on_quadratic():
    df = quadratic_objective()
    method = Newton()
    state = method.initialize_state(df, np.array([1.0, 1.0]))
    method.update(df, state)
    assert state.alpha == pytest.approx(1.0)
    assert state.linesearch_converged


def test_newton_handles_indefinite_hessian():
    df = _double_well()
    method = Newton()
    state = method.initialize_state(df, np.array([1.0, 0.1]))
    assert np.linalg.eigvalsh(state.H).min() < 0

    f0 = state.f_x
    method.update(df, state)
    assert state.f_x < f0

    result = optimize(df, [1.0, 0.1], Newton())
    assert result.converged
    np.testing.assert_allclose(result.minimizer, [0.0, 1.0], atol=1e-6)


def test_zero_gradient_stops_newton():
    df = Objective(fg=lambda x: (1.0, np.zeros_like(x)), h=lambda x: np.eye(2))
    method = Newton()
    state = method.initialize_state(df, np.array([0.5, 0.5]))

    assert method.update(df, state) is True
    np.testing.assert_array_equal(state.x, [0.5, 0.5])
    assert state.f_calls == 1
    assert state.h_calls == 1
    assert len(state.lsr) == 0


def test_newton_requires_a_hessian():
    df = Objective(fg=quadratic_fg)
    with pytest.raises(InvalidOptionError, match="Hessian"):
        optimize(df, [1.0, 1.0], Newton())


def test_extended_trace_includes_hessian():
    result = optimize(
        quadratic_objective(),
        [1.0, 1.0],
        Newton(),
        {"store_trace": True, "extended_trace": True},
    )
    first = result.trace[0]
    assert set(first.metadata) == {"x", "g(x)", "h(x)"}
    np.testing.assert_array_equal(first.metadata["h(x)"], np.diag([2.0, 20.0]))
