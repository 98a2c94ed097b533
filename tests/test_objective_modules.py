import math
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from modules.objectives import barrier, quadratic, rosenbrock
from runtime.problem_manager import ProblemModuleManager


def _fd_gradient(fn, x, params, h=1e-6):
    g = np.zeros_like(x)
    for i in range(x.size):
        e = np.zeros_like(x)
        e[i] = h
        g[i] = (fn(x + e, params)[0] - fn(x - e, params)[0]) / (2 * h)
    return g


def _fd_hessian(fn, x, params, h=1e-6):
    H = np.zeros((x.size, x.size))
    for i in range(x.size):
        e = np.zeros_like(x)
        e[i] = h
        H[:, i] = (fn(x + e, params)[1] - fn(x - e, params)[1]) / (2 * h)
    return H


@pytest.mark.parametrize("dimension", [2, 5])
def test_rosenbrock_derivatives(dimension):
    params = {"dimension": dimension}
    x = np.linspace(-1.0, 1.5, dimension)
    _, g = rosenbrock.value_and_gradient(x, params)
    np.testing.assert_allclose(g, _fd_gradient(rosenbrock.value_and_gradient, x, params), rtol=1e-6, atol=1e-5)
    np.testing.assert_allclose(
        rosenbrock.hessian(x, params),
        _fd_hessian(rosenbrock.value_and_gradient, x, params),
        rtol=1e-5,
        atol=1e-4,
    )
    assert rosenbrock.value_and_gradient(np.ones(dimension), params)[0] == 0.0


def test_rosenbrock_default_start():
    np.testing.assert_array_equal(rosenbrock.default_x0({}), [-1.2, 1.0])
    np.testing.assert_array_equal(rosenbrock.default_x0({"dimension": 4}), [-1.2, 1.0, -1.2, 1.0])


def test_quadratic_matrix_and_center():
    params = {"matrix": [[2.0, 1.0], [1.0, 3.0]], "center": [1.0, -1.0]}
    f, g = quadratic.value_and_gradient(np.array([1.0, -1.0]), params)
    assert f == 0.0
    np.testing.assert_array_equal(g, [0.0, 0.0])
    x = np.array([0.3, 0.7])
    np.testing.assert_allclose(
        quadratic.value_and_gradient(x, params)[1],
        _fd_gradient(quadratic.value_and_gradient, x, params),
        atol=1e-6,
    )


def test_barrier_outside_box_is_infinite():
    f, g = barrier.value_and_gradient(np.array([-0.1, 0.0]), {})
    assert math.isinf(f)
    assert np.all(np.isnan(g))


def test_barrier_alphamax_is_distance_to_edge():
    x = np.array([1.0, 1.0])
    assert barrier.alphamax(x, np.array([-4.0, 0.0]), {}) == 0.25
    assert math.isinf(barrier.alphamax(x, np.array([1.0, -3.0]), {}))


def test_manager_builds_objective_and_alphamax():
    manager = ProblemModuleManager(["barrier", "quadratic"])
    df = manager.build_objective("quadratic", {"diagonal": [2.0, 4.0]})
    out = np.empty(2)
    assert df.value_gradient(np.array([1.0, 1.0]), out) == 3.0
    np.testing.assert_array_equal(out, [2.0, 4.0])
    assert df.has_hessian

    amax = manager.alphamax_function("barrier")
    assert amax(np.array([0.5, 0.0]), np.array([-1.0, 0.0])) == 0.5
    assert manager.alphamax_function("quadratic") is None


def test_manager_unknown_module():
    with pytest.raises(ImportError):
        ProblemModuleManager(["no_such_problem"])
    with pytest.raises(KeyError):
        ProblemModuleManager(["quadratic"]).get_module("rosenbrock")
