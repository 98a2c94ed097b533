"""Convex quadratic objective.

    f(x) = 0.5 * (x - c)^T A (x - c)

``A`` is taken from the ``matrix`` parameter (a square, symmetric list of
lists) or from ``diagonal``; the default ``diagonal=[2, 20]`` gives
``f(x) = x1^2 + 10 x2^2``. ``center`` defaults to the origin.
"""

from __future__ import annotations

import numpy as np


def _matrix(params) -> np.ndarray:
    if params.get("matrix") is not None:
        A = np.asarray(params["matrix"], dtype=float)
    else:
        A = np.diag(np.asarray(params.get("diagonal", [2.0, 20.0]), dtype=float))
    return A


def _center(params, n: int) -> np.ndarray:
    c = params.get("center")
    if c is None:
        return np.zeros(n, dtype=float)
    return np.asarray(c, dtype=float)


def value_and_gradient(x: np.ndarray, params) -> tuple[float, np.ndarray]:
    A = _matrix(params)
    d = x - _center(params, x.size)
    Ad = A @ d
    return 0.5 * float(np.dot(d, Ad)), Ad


def hessian(x: np.ndarray, params) -> np.ndarray:
    return _matrix(params)


def default_x0(params) -> np.ndarray:
    return np.ones(_matrix(params).shape[0], dtype=float)
