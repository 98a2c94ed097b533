"""Extended Rosenbrock function.

    f(x) = sum_i b (x_{i+1} - x_i^2)^2 + (a - x_i)^2

with ``a=1`` and ``b=100`` by default; minimum ``f=0`` at ``x = (a, a^2, ...)``
in two dimensions and ``x = (1, ..., 1)`` for ``a=1``.
"""

from __future__ import annotations

import numpy as np


def value_and_gradient(x: np.ndarray, params) -> tuple[float, np.ndarray]:
    a = float(params.get("a", 1.0))
    b = float(params.get("b", 100.0))
    head, tail = x[:-1], x[1:]
    r = tail - head**2
    value = float(np.sum(b * r**2 + (a - head) ** 2))

    grad = np.zeros_like(x)
    grad[:-1] += -4.0 * b * head * r - 2.0 * (a - head)
    grad[1:] += 2.0 * b * r
    return value, grad


def hessian(x: np.ndarray, params) -> np.ndarray:
    b = float(params.get("b", 100.0))
    n = x.size
    H = np.zeros((n, n), dtype=float)
    head, tail = x[:-1], x[1:]
    idx = np.arange(n - 1)
    H[idx, idx] += 12.0 * b * head**2 - 4.0 * b * tail + 2.0
    H[idx + 1, idx + 1] += 2.0 * b
    H[idx, idx + 1] = -4.0 * b * head
    H[idx + 1, idx] = -4.0 * b * head
    return H


def default_x0(params) -> np.ndarray:
    n = int(params.get("dimension", 2))
    x0 = np.ones(n, dtype=float)
    x0[::2] = -1.2
    return x0
