"""Shifted quadratic restricted to a box ``x >= lower``.

    f(x) = sum_i (x_i - target_i)^2    if all x_i >= lower_i
    f(x) = inf                         otherwise

With the default ``target = [-1, 1]`` and ``lower = [0, -inf]`` the
unconstrained minimizer lies outside the box, so the solution sits on the
boundary ``x1 = 0``. :func:`alphamax` gives the exact distance to the
boundary along a search direction.
"""

from __future__ import annotations

import math

import numpy as np


def _target(params, n: int) -> np.ndarray:
    return np.asarray(params.get("target", [-1.0, 1.0]), dtype=float)[:n]


def _lower(params, n: int) -> np.ndarray:
    lower = params.get("lower", [0.0, -math.inf])
    return np.asarray(lower, dtype=float)[:n]


def value_and_gradient(x: np.ndarray, params) -> tuple[float, np.ndarray]:
    d = x - _target(params, x.size)
    if np.any(x < _lower(params, x.size)):
        return math.inf, np.full_like(x, math.nan)
    return float(np.dot(d, d)), 2.0 * d


def hessian(x: np.ndarray, params) -> np.ndarray:
    return 2.0 * np.eye(x.size)


def alphamax(x: np.ndarray, s: np.ndarray, params) -> float:
    """Largest ``alpha`` with ``x + alpha*s >= lower``."""
    lower = _lower(params, x.size)
    moving = (s < 0) & np.isfinite(lower)
    if not np.any(moving):
        return math.inf
    return float(np.min((x[moving] - lower[moving]) / -s[moving]))


def default_x0(params) -> np.ndarray:
    return np.ones(_target(params, 2).size, dtype=float)
