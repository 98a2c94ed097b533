"""Newton stepper on a positive-definite modification of the Hessian."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict

import numpy as np

from core.exceptions import InvalidOptionError
from runtime.linalg import positive_cholesky
from runtime.objective import Objective
from runtime.steppers.base import (
    AlphaMax,
    BaseStepper,
    check_initial_evaluation,
    check_step_value,
)
from runtime.steppers.line_search import LineSearchResults, alphainit, hz_linesearch

logger = logging.getLogger("cg_descent")


@dataclass
class NewtonState:
    n: int
    x: np.ndarray
    x_previous: np.ndarray
    g: np.ndarray
    f_x: float
    f_x_previous: float
    H: np.ndarray
    s: np.ndarray
    x_ls: np.ndarray
    g_ls: np.ndarray
    alpha: float
    mayterminate: bool = False
    f_calls: int = 1
    g_calls: int = 1
    h_calls: int = 1
    lsr: LineSearchResults = field(default_factory=LineSearchResults)
    linesearch_converged: bool = True


class Newton(BaseStepper):
    """Newton's method with Hager-Zhang line search.

    The search direction is ``-F^{-1} g`` where ``F`` replaces the negative
    curvatures of the Hessian by their magnitudes (see
    :func:`runtime.linalg.positive_cholesky`) rather than adding a multiple
    of the identity.
    """

    method_name = "Newton's Method"

    def __init__(
        self,
        linesearch: Callable = hz_linesearch,
        alphamax: AlphaMax = math.inf,
    ) -> None:
        self.linesearch = linesearch
        self.alphamax = alphamax

    def initialize_state(self, df: Objective, initial_x) -> NewtonState:
        if not df.has_hessian:
            raise InvalidOptionError(
                "method", "newton", "Newton's method requires an objective with a Hessian."
            )
        x = np.array(initial_x, dtype=float)
        n = x.size
        g = np.empty_like(x)
        f_x = df.value_gradient(x, g)
        check_initial_evaluation(f_x, g)
        H = np.empty((n, n), dtype=float)
        df.hessian(x, H)

        return NewtonState(
            n=n,
            x=x,
            x_previous=x.copy(),
            g=g,
            f_x=f_x,
            f_x_previous=math.nan,
            H=H,
            s=np.empty_like(x),
            x_ls=np.empty_like(x),
            g_ls=np.empty_like(x),
            alpha=alphainit(1.0, x, g, f_x),
        )

    def trace_metadata(self, state: NewtonState, extended: bool) -> Dict[str, np.ndarray]:
        meta = super().trace_metadata(state, extended)
        if extended:
            meta["h(x)"] = state.H.copy()
        return meta

    def update(self, df: Objective, state: NewtonState) -> bool:
        """Take one modified-Newton step; returns True only at an exact stationary point."""
        F = positive_cholesky(state.H)
        if F.is_modified:
            logger.debug(
                "Hessian not positive definite: %d pivot(s) flipped, %d zero pivot(s).",
                int(np.sum(F.signs == -1)),
                int(np.sum(F.signs == 0)),
            )
        state.s[:] = -F.solve(state.g)

        # Refresh the line search cache
        dphi0 = float(np.dot(state.g, state.s))
        if dphi0 == 0.0:
            logger.debug("Zero gradient; no Newton step possible.")
            return True
        state.lsr.clear()
        state.lsr.push(0.0, state.f_x, dphi0)

        result = self.linesearch(
            df,
            state.x,
            state.s,
            state.x_ls,
            state.g_ls,
            state.lsr,
            state.alpha,
            state.mayterminate,
            alphamax=self.resolve_alphamax(state.x, state.s),
        )
        state.alpha, f_update, g_update = result[0], result[1], result[2]
        state.linesearch_converged = bool(getattr(result, "converged", True))
        state.f_calls += f_update
        state.g_calls += g_update

        state.x_previous[:] = state.x
        state.x += state.alpha * state.s

        state.f_x_previous, state.f_x = state.f_x, df.value_gradient(state.x, state.g)
        state.f_calls += 1
        state.g_calls += 1
        check_step_value(state.f_x)

        df.hessian(state.x, state.H)
        state.h_calls += 1
        return False
