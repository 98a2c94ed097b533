# runtime/convergence.py

import math

import numpy as np


def maxdiff(x, y) -> float:
    """Return ``max |x_i - y_i|``."""
    if np.size(x) == 0:
        return 0.0
    return float(np.max(np.abs(np.asarray(x) - np.asarray(y))))


def assess_convergence(x, x_previous, f_x, f_x_previous, g, x_tol, f_tol, g_tol):
    """Evaluate the step, value and gradient stopping tests.

    Returns ``(x_converged, f_converged, g_converged, converged)``; any one
    criterion is enough for ``converged``. The value test is relative and
    also fires when ``f`` failed to decrease.
    """
    x_converged, f_converged, g_converged = False, False, False

    if maxdiff(x, x_previous) < x_tol:
        x_converged = True

    denom = abs(f_x) + f_tol
    if (
        denom > 0 and abs(f_x - f_x_previous) / denom < f_tol
    ) or np.nextafter(f_x, math.inf) >= f_x_previous:
        f_converged = True

    if float(np.max(np.abs(g))) < g_tol:
        g_converged = True

    converged = x_converged or f_converged or g_converged
    return x_converged, f_converged, g_converged, converged
