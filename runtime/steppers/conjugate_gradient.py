# runtime/steppers/conjugate_gradient.py
"""Preconditioned nonlinear conjugate gradient (CG_DESCENT).

Independent implementation of

    W. W. Hager and H. Zhang (2006) Algorithm 851: CG_DESCENT, a conjugate
    gradient method with guaranteed descent. ACM TOMS 32: 113-137.

with the preconditioned beta rule and its lower bound from

    W. W. Hager and H. Zhang (2012) The limited memory conjugate gradient
    method.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from runtime.objective import Objective
from runtime.steppers.base import (
    AlphaMax,
    BaseStepper,
    check_initial_evaluation,
    check_step_value,
)
from runtime.steppers.line_search import (
    LineSearchResults,
    alphainit,
    alphatry,
    hz_linesearch,
)
from runtime.steppers.preconditioners import Preconditioner, as_preconditioner

logger = logging.getLogger("cg_descent")


@dataclass
class ConjugateGradientState:
    """Buffers owned by one CG run; every vector is updated in place."""

    n: int
    x: np.ndarray
    x_previous: np.ndarray
    y: np.ndarray  # g - g_previous
    py: np.ndarray  # pg - pg_previous
    pg: np.ndarray  # P^{-1} g
    g: np.ndarray
    g_previous: np.ndarray
    f_x: float
    f_x_previous: float
    s: np.ndarray
    x_ls: np.ndarray
    g_ls: np.ndarray
    alpha: float
    mayterminate: bool = False
    f_calls: int = 1
    g_calls: int = 1
    lsr: LineSearchResults = field(default_factory=LineSearchResults)
    linesearch_converged: bool = True


class ConjugateGradient(BaseStepper):
    """Conjugate gradient stepper with Hager-Zhang line search.

    Parameters
    ----------
    eta : float
        Lower-bound factor of the HZ2012 beta safeguard.
    P : Preconditioner | np.ndarray | None
        Preconditioner; ``None`` is the identity, a 1-D array a diagonal and
        a 2-D array a dense SPD matrix.
    precondprep : callable, optional
        ``precondprep(P, x)`` called before ``P`` is used at a new point.
        Defaults to ``P.prepare(x)``.
    linesearch : callable
        Line search with the signature of :func:`hz_linesearch`.
    alphamax : float or callable
        Largest admissible step, or ``alphamax(x, s)`` returning it.
    """

    method_name = "Conjugate Gradient"

    def __init__(
        self,
        eta: float = 0.4,
        P: Preconditioner | np.ndarray | None = None,
        precondprep: Optional[Callable[[Preconditioner, np.ndarray], None]] = None,
        linesearch: Callable = hz_linesearch,
        alphamax: AlphaMax = math.inf,
    ) -> None:
        self.eta = float(eta)
        self.P = as_preconditioner(P)
        self.precondprep = precondprep
        self.linesearch = linesearch
        self.alphamax = alphamax

    def _prepare(self, x: np.ndarray) -> None:
        if self.precondprep is not None:
            self.precondprep(self.P, x)
        else:
            self.P.prepare(x)

    def initialize_state(self, df: Objective, initial_x) -> ConjugateGradientState:
        x = np.array(initial_x, dtype=float)
        g = np.empty_like(x)
        f_x = df.value_gradient(x, g)
        check_initial_evaluation(f_x, g)

        # Initial search direction is the preconditioned steepest descent
        self._prepare(x)
        pg = np.empty_like(g)
        self.P.apply_inverse(pg, g)
        s = -pg

        return ConjugateGradientState(
            n=x.size,
            x=x,
            x_previous=x.copy(),
            y=np.empty_like(x),
            py=np.empty_like(x),
            pg=pg,
            g=g,
            g_previous=g.copy(),
            f_x=f_x,
            f_x_previous=math.nan,
            s=s,
            x_ls=np.empty_like(x),
            g_ls=np.empty_like(x),
            alpha=alphainit(1.0, x, g, f_x),
        )

    def update(self, df: Objective, state: ConjugateGradientState) -> bool:
        """Take one CG step.

        Returns True when even the preconditioned steepest-descent direction
        fails to be a descent direction, in which case the run must stop.
        """
        # Reset the search direction if it becomes corrupted
        dphi0 = float(np.dot(state.g, state.s))
        if not dphi0 < 0:
            logger.debug("Non-descent CG direction (dphi0=%.3e); resetting to -P^{-1}g.", dphi0)
            np.negative(state.pg, out=state.s)
            dphi0 = float(np.dot(state.g, state.s))
            if not dphi0 < 0:
                logger.info(
                    "Preconditioned steepest descent is not a descent direction "
                    "(dphi0=%.3e); stopping.",
                    dphi0,
                )
                return True

        # Refresh the line search cache
        state.lsr.clear()
        state.lsr.push(0.0, state.f_x, dphi0)
        alphamax = self.resolve_alphamax(state.x, state.s)

        # Pick the initial step size (HZ, stages I1-I2)
        state.alpha, state.mayterminate, f_update, g_update = alphatry(
            state.alpha,
            df,
            state.x,
            state.s,
            state.x_ls,
            state.g_ls,
            state.lsr,
            alphamax=alphamax,
        )
        state.f_calls += f_update
        state.g_calls += g_update

        # Determine the distance of movement along the search line
        result = self.linesearch(
            df,
            state.x,
            state.s,
            state.x_ls,
            state.g_ls,
            state.lsr,
            state.alpha,
            state.mayterminate,
            alphamax=alphamax,
        )
        state.alpha, f_update, g_update = result[0], result[1], result[2]
        state.linesearch_converged = bool(getattr(result, "converged", True))
        state.f_calls += f_update
        state.g_calls += g_update

        state.x_previous[:] = state.x
        state.x += state.alpha * state.s
        state.g_previous[:] = state.g

        state.f_x_previous, state.f_x = state.f_x, df.value_gradient(state.x, state.g)
        state.f_calls += 1
        state.g_calls += 1
        check_step_value(state.f_x)

        # Next search direction from the HZ2012 beta; py = pg - pg_previous
        self._prepare(state.x)
        dPd = self.P.quadratic_form(state.s)
        np.subtract(state.g, state.g_previous, out=state.y)
        ydots = float(np.dot(state.y, state.s))
        state.py[:] = state.pg
        self.P.apply_inverse(state.pg, state.g)
        np.subtract(state.pg, state.py, out=state.py)

        beta = 0.0
        if ydots != 0 and dPd != 0:
            etak = self.eta * float(np.dot(state.s, state.g_previous)) / dPd
            betak = (
                float(np.dot(state.y, state.pg))
                - float(np.dot(state.y, state.py)) * float(np.dot(state.g, state.s)) / ydots
            ) / ydots
            beta = max(betak, etak)
        if not math.isfinite(beta):
            beta = 0.0
        if beta == 0.0:
            logger.debug("CG beta degenerate (ydots=%.3e, dPd=%.3e); restarting.", ydots, dPd)
        state.s *= beta
        state.s -= state.pg
        return False
