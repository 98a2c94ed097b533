"""Preconditioners for the conjugate gradient stepper.

A preconditioner ``P`` approximates the Hessian. The stepper only needs
three operations from it:

* ``prepare(x)``: refresh any cached factorization at the point ``x``;
* ``apply_inverse(out, v)``: solve ``P z = v`` and write ``z`` into ``out``;
* ``quadratic_form(v)``: return ``<v, P v>``.

``None`` is accepted everywhere and behaves as the identity. A dense
symmetric positive-definite ``np.ndarray`` is accepted as well and is
factorized on demand.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from scipy.linalg import cho_factor, cho_solve

from core.exceptions import InvalidOptionError


class Preconditioner(ABC):
    """Interface for preconditioners used by :class:`ConjugateGradient`."""

    def prepare(self, x: np.ndarray) -> None:
        """Update the preconditioner for the point ``x`` (no-op by default)."""

    @abstractmethod
    def apply_inverse(self, out: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Write ``P^{-1} v`` into ``out`` and return it."""

    @abstractmethod
    def quadratic_form(self, v: np.ndarray) -> float:
        """Return ``<v, P v>``."""

    def __repr__(self) -> str:  # pragma: no cover - simple utility
        params = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{self.__class__.__name__}({params})"


class IdentityPreconditioner(Preconditioner):
    def apply_inverse(self, out, v):
        out[:] = v
        return out

    def quadratic_form(self, v):
        return float(np.dot(v, v))


class DiagonalPreconditioner(Preconditioner):
    """``P = diag(d)`` with strictly positive entries."""

    def __init__(self, diagonal) -> None:
        self.diagonal = np.asarray(diagonal, dtype=float).copy()
        if np.any(~np.isfinite(self.diagonal)) or np.any(self.diagonal <= 0):
            raise InvalidOptionError(
                "P", diagonal, "Diagonal preconditioner entries must be finite and positive."
            )

    def apply_inverse(self, out, v):
        np.divide(v, self.diagonal, out=out)
        return out

    def quadratic_form(self, v):
        return float(np.dot(v, self.diagonal * v))


class MatrixPreconditioner(Preconditioner):
    """Dense symmetric positive-definite ``P`` solved by Cholesky."""

    def __init__(self, matrix) -> None:
        self.matrix = np.asarray(matrix, dtype=float)
        self._factor = None

    def prepare(self, x):
        if self._factor is None:
            self._factor = cho_factor(self.matrix, lower=True)

    def apply_inverse(self, out, v):
        self.prepare(None)
        out[:] = cho_solve(self._factor, v)
        return out

    def quadratic_form(self, v):
        return float(np.dot(v, self.matrix @ v))


def as_preconditioner(P) -> Preconditioner:
    """Normalize ``None`` / ndarray / Preconditioner into a Preconditioner."""
    if P is None:
        return IdentityPreconditioner()
    if isinstance(P, Preconditioner):
        return P
    arr = np.asarray(P, dtype=float)
    if arr.ndim == 1:
        return DiagonalPreconditioner(arr)
    if arr.ndim == 2 and arr.shape[0] == arr.shape[1]:
        return MatrixPreconditioner(arr)
    raise InvalidOptionError("P", P, f"Cannot use an array of shape {arr.shape} as a preconditioner.")


__all__ = [
    "Preconditioner",
    "IdentityPreconditioner",
    "DiagonalPreconditioner",
    "MatrixPreconditioner",
    "as_preconditioner",
]
