# runtime/minimizer.py

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from core.parameters.options import OptimizationOptions
from runtime.convergence import assess_convergence
from runtime.objective import Objective
from runtime.steppers.base import BaseStepper
from runtime.steppers.conjugate_gradient import ConjugateGradient
from runtime.trace import OptimizationTrace, update_trace

logger = logging.getLogger("cg_descent")


@dataclass
class OptimizationResults:
    method: str
    initial_x: np.ndarray
    minimizer: np.ndarray
    minimum: float
    iterations: int
    iteration_converged: bool
    x_converged: bool
    x_tol: float
    f_converged: bool
    f_tol: float
    g_converged: bool
    g_tol: float
    trace: OptimizationTrace = field(repr=False)
    f_calls: int
    g_calls: int
    h_calls: int = 0
    terminated_early: bool = False

    @property
    def converged(self) -> bool:
        return self.x_converged or self.f_converged or self.g_converged

    def summary(self) -> str:
        lines = [
            "Results of Optimization Algorithm",
            f" * Algorithm: {self.method}",
            f" * Starting Point: {np.array2string(self.initial_x, separator=', ')}",
            f" * Minimizer: {np.array2string(self.minimizer, separator=', ')}",
            f" * Minimum: {self.minimum:e}",
            f" * Iterations: {self.iterations}",
            " * Convergence: " + str(self.converged),
            f"   * |x - x'| < {self.x_tol:.1e}: {self.x_converged}",
            f"   * |f(x) - f(x')| / |f(x)| < {self.f_tol:.1e}: {self.f_converged}",
            f"   * |g(x)| < {self.g_tol:.1e}: {self.g_converged}",
            f"   * Reached Maximum Number of Iterations: {self.iteration_converged}",
            f" * Objective Function Calls: {self.f_calls}",
            f" * Gradient Calls: {self.g_calls}",
        ]
        if self.h_calls:
            lines.append(f" * Hessian Calls: {self.h_calls}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """JSON-friendly view of the result."""
        return {
            "method": self.method,
            "initial_x": self.initial_x.tolist(),
            "minimizer": self.minimizer.tolist(),
            "minimum": float(self.minimum),
            "iterations": int(self.iterations),
            "converged": bool(self.converged),
            "x_converged": bool(self.x_converged),
            "f_converged": bool(self.f_converged),
            "g_converged": bool(self.g_converged),
            "iteration_converged": bool(self.iteration_converged),
            "terminated_early": bool(self.terminated_early),
            "f_calls": int(self.f_calls),
            "g_calls": int(self.g_calls),
            "h_calls": int(self.h_calls),
        }


def _apply_method_options(method: BaseStepper, options: OptimizationOptions) -> None:
    """Copy run-level step options onto ``method``.

    A finite ``alphamax`` only replaces an unbounded stepper bound; a callable
    bound is kept. ``eta`` is applied to CG only when the caller gave it.
    """
    current = getattr(method, "alphamax", None)
    if (
        math.isfinite(options.alphamax)
        and isinstance(current, (int, float))
        and math.isinf(current)
    ):
        logger.debug("Bounding %s steps by alphamax=%.3e.", method.method_name, options.alphamax)
        method.alphamax = options.alphamax
    if isinstance(method, ConjugateGradient) and options.is_explicit("eta"):
        logger.debug("Using eta=%.3e for %s.", options.eta, method.method_name)
        method.eta = float(options.eta)


def optimize(
    df: Objective,
    initial_x,
    method: BaseStepper,
    options: Optional[OptimizationOptions] = None,
) -> OptimizationResults:
    """Run ``method`` from ``initial_x`` until a stopping test fires.

    The loop stops when any convergence criterion holds, when the iteration
    limit is reached, when the stepper reports that it cannot continue, or
    when the trace callback returns True.
    """
    if options is None:
        options = OptimizationOptions()
    elif isinstance(options, dict):
        options = OptimizationOptions(options)
    _apply_method_options(method, options)

    initial_x = np.array(initial_x, dtype=float)
    state = method.initialize_state(df, initial_x)

    iteration = 0
    tr = OptimizationTrace(method.method_name)
    tracing = options.tracing

    def _trace() -> bool:
        if not tracing:
            return False
        return update_trace(
            tr,
            iteration,
            state.f_x,
            float(np.max(np.abs(state.g))),
            method.trace_metadata(state, options.extended_trace),
            options.store_trace,
            options.show_trace,
            options.show_every,
            options.callback,
        )

    x_converged, f_converged = False, False
    g_converged = float(np.max(np.abs(state.g))) < options.g_tol
    converged = g_converged
    stopped = _trace()
    terminated_early = False

    logger.debug(
        "Starting %s: n=%d, f=%.6e, |g|=%.3e",
        method.method_name,
        state.n,
        state.f_x,
        float(np.max(np.abs(state.g))),
    )

    while not converged and not stopped and iteration < options.iterations:
        iteration += 1
        if method.update(df, state):
            terminated_early = True
            break

        x_converged, f_converged, g_converged, converged = assess_convergence(
            state.x,
            state.x_previous,
            state.f_x,
            state.f_x_previous,
            state.g,
            options.x_tol,
            options.f_tol,
            options.g_tol,
        )
        logger.debug(
            "Iteration %d: f=%.6e, |g|=%.3e, alpha=%.3e",
            iteration,
            state.f_x,
            float(np.max(np.abs(state.g))),
            state.alpha,
        )
        stopped = _trace()

    if converged:
        logger.info("Converged in %d iterations; f=%.6e", iteration, state.f_x)
    elif terminated_early:
        logger.info("%s terminated after %d iterations.", method.method_name, iteration)

    return OptimizationResults(
        method=method.method_name,
        initial_x=initial_x,
        minimizer=state.x.copy(),
        minimum=float(state.f_x),
        iterations=iteration,
        iteration_converged=iteration == options.iterations,
        x_converged=x_converged,
        x_tol=options.x_tol,
        f_converged=f_converged,
        f_tol=options.f_tol,
        g_converged=g_converged,
        g_tol=options.g_tol,
        trace=tr,
        f_calls=state.f_calls,
        g_calls=state.g_calls,
        h_calls=getattr(state, "h_calls", 0),
        terminated_early=terminated_early or stopped,
    )
