# runtime/objective.py
"""Wrapper around user-supplied objective, gradient and Hessian callbacks."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from core.exceptions import InvalidOptionError

ArrayFn = Callable[[np.ndarray], np.ndarray]


class Objective:
    """Uniform access to ``f``, ``grad f`` and ``hess f`` at a point.

    Any of the following may be supplied:

    * ``fg(x) -> (f, g)``: value and gradient together (preferred; avoids
      duplicate work for objectives that share intermediate results),
    * ``f(x) -> float`` and ``g(x) -> ndarray`` separately,
    * ``h(x) -> ndarray`` for the Hessian (Newton only).

    The engine writes gradients and Hessians into caller-owned buffers, so
    callbacks are free to return fresh arrays or views.
    """

    def __init__(
        self,
        f: Optional[Callable[[np.ndarray], float]] = None,
        g: Optional[ArrayFn] = None,
        fg: Optional[Callable[[np.ndarray], tuple[float, np.ndarray]]] = None,
        h: Optional[ArrayFn] = None,
    ) -> None:
        if fg is None and (f is None or g is None):
            raise InvalidOptionError(
                "objective",
                None,
                "An objective needs either `fg` or both `f` and `g`.",
            )
        self._f = f
        self._g = g
        self._fg = fg
        self._h = h

    @property
    def has_hessian(self) -> bool:
        return self._h is not None

    def value(self, x: np.ndarray) -> float:
        if self._f is not None:
            return float(self._f(x))
        val, _ = self._fg(x)
        return float(val)

    def value_gradient(self, x: np.ndarray, out: np.ndarray) -> float:
        """Return ``f(x)`` and write ``grad f(x)`` into ``out``."""
        if self._fg is not None:
            val, grad = self._fg(x)
        else:
            val, grad = self._f(x), self._g(x)
        out[:] = np.asarray(grad, dtype=float).reshape(out.shape)
        return float(val)

    def hessian(self, x: np.ndarray, out: np.ndarray) -> None:
        if self._h is None:
            raise InvalidOptionError(
                "hessian", None, "This objective does not provide a Hessian."
            )
        out[:, :] = np.asarray(self._h(x), dtype=float)

    def __repr__(self) -> str:  # pragma: no cover - simple utility
        parts = [
            name
            for name, fn in (("f", self._f), ("g", self._g), ("fg", self._fg), ("h", self._h))
            if fn is not None
        ]
        return f"{self.__class__.__name__}({', '.join(parts)})"
