import logging
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from runtime.trace import OptimizationTrace

logger = logging.getLogger("cg_descent")


def plot_trace(
    trace: OptimizationTrace,
    ax=None,
    log_scale: bool = True,
    title: Optional[str] = None,
    show: bool = True,
):
    """
    Plot objective value and gradient sup-norm against iteration.

    Parameters
    ----------
    trace : OptimizationTrace
        Trace recorded with ``store_trace=True``.
    ax : matplotlib.axes.Axes, optional
        Axis to draw into. If omitted, a new figure and axis are created.
    log_scale : bool, optional
        Use a logarithmic y axis (default). Non-positive values are dropped
        from the value curve in that case.
    title : str, optional
        Axis title; defaults to the method name stored on the trace.
    show : bool, optional
        Call ``plt.show()`` when done.

    Returns
    -------
    matplotlib.axes.Axes
        The axis that was drawn into.
    """
    if ax is None:
        _, ax = plt.subplots()

    if len(trace) == 0:
        logger.warning("Empty trace; enable store_trace to record iterations.")
        return ax

    iterations = trace.iterations()
    values = trace.values()
    g_norms = trace.g_norms()

    if log_scale:
        mask = values > 0
        ax.semilogy(iterations[mask], values[mask], "o-", label="f(x)")
        gmask = g_norms > 0
        ax.semilogy(iterations[gmask], g_norms[gmask], "s--", label="|g(x)|_inf")
    else:
        ax.plot(iterations, values, "o-", label="f(x)")
        ax.plot(iterations, g_norms, "s--", label="|g(x)|_inf")

    ax.set_xlabel("iteration")
    ax.set_title(title if title is not None else trace.method_name)
    ax.set_xticks(np.unique(np.linspace(iterations.min(), iterations.max(), num=min(len(iterations), 10)).astype(int)))
    ax.legend()

    if show:
        plt.show()
    return ax
