"""Direction-updating steppers and the Hager-Zhang line search."""

from .line_search import LineSearchResults, alphainit, alphatry, hz_linesearch
from .conjugate_gradient import ConjugateGradient, ConjugateGradientState
from .newton import Newton, NewtonState

__all__ = [
    "ConjugateGradient",
    "ConjugateGradientState",
    "LineSearchResults",
    "Newton",
    "NewtonState",
    "alphainit",
    "alphatry",
    "hz_linesearch",
]
