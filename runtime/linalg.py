# runtime/linalg.py
"""Positive-definite Cholesky factorization for modified Newton steps.

Instead of shifting an indefinite Hessian by a multiple of the identity,
each Cholesky pivot is replaced by its magnitude. Along an eigen-direction
of negative curvature the factorized matrix therefore carries the absolute
curvature, so ``-F^{-1} g`` is always a descent direction while the step
length still reflects the local scale of the problem.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.linalg import cho_solve


@dataclass
class PositiveFactorization:
    """Lower-triangular ``L`` with ``L L^T`` positive definite.

    ``signs[j]`` records how pivot ``j`` was treated: ``1`` unchanged,
    ``-1`` flipped from negative, ``0`` replaced by a unit pivot because it
    was numerically zero.
    """

    L: np.ndarray
    signs: np.ndarray

    def solve(self, b: np.ndarray) -> np.ndarray:
        return cho_solve((self.L, True), b)

    @property
    def matrix(self) -> np.ndarray:
        return self.L @ self.L.T

    @property
    def is_modified(self) -> bool:
        return bool(np.any(self.signs != 1))


def default_tol(A: np.ndarray) -> float:
    diag = np.abs(np.diag(A))
    scale = float(diag.max()) if diag.size else 0.0
    eps = np.finfo(float).eps
    return np.sqrt(eps) * scale if scale > 0 else eps


def positive_cholesky(A, tol: float | None = None) -> PositiveFactorization:
    """Factor symmetric ``A`` as ``L L^T`` with magnitude-corrected pivots."""
    A = np.array(A, dtype=float)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {A.shape}")
    n = A.shape[0]
    if tol is None:
        tol = default_tol(A)

    L = np.zeros_like(A)
    signs = np.ones(n, dtype=np.int8)
    for j in range(n):
        pivot = A[j, j] - np.dot(L[j, :j], L[j, :j])
        if pivot > tol:
            pass
        elif pivot < -tol:
            signs[j] = -1
            pivot = -pivot
        else:
            # Zero curvature: unit pivot, decouple the column
            signs[j] = 0
            L[j, j] = 1.0
            continue
        ljj = np.sqrt(pivot)
        L[j, j] = ljj
        if j + 1 < n:
            L[j + 1 :, j] = (A[j + 1 :, j] - L[j + 1 :, :j] @ L[j, :j]) / ljj
    return PositiveFactorization(L=L, signs=signs)


__all__ = ["PositiveFactorization", "positive_cholesky", "default_tol"]
