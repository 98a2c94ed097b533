# runtime/steppers/base.py
"""Abstract base class for direction-updating steppers."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Union

import numpy as np

from core.exceptions import NonFiniteValueError
from runtime.objective import Objective

AlphaMax = Union[float, Callable[[np.ndarray, np.ndarray], float]]


class BaseStepper(ABC):
    """Base interface for classes advancing an optimizer state in place."""

    method_name = "Stepper"

    @abstractmethod
    def initialize_state(self, df: Objective, initial_x: np.ndarray) -> Any:
        """Evaluate the objective at ``initial_x`` and allocate all buffers.

        Raises
        ------
        NonFiniteValueError
            If the starting value or gradient is not finite.
        """

    @abstractmethod
    def update(self, df: Objective, state) -> bool:
        """Take one line-search step and compute the next direction.

        Returns
        -------
        bool
            True if the stepper cannot continue and the outer loop must stop.
        """

    def trace_metadata(self, state, extended: bool) -> Dict[str, np.ndarray]:
        """Per-iteration data stored in the trace."""
        if not extended:
            return {}
        return {"x": state.x.copy(), "g(x)": state.g.copy()}

    def resolve_alphamax(self, x: np.ndarray, s: np.ndarray) -> float:
        """Largest admissible step along ``s`` from ``x``."""
        alphamax = getattr(self, "alphamax", math.inf)
        if callable(alphamax):
            alphamax = alphamax(x, s)
        alphamax = float(alphamax)
        if math.isnan(alphamax):
            return math.inf
        return max(alphamax, 0.0)

    def __repr__(self) -> str:  # pragma: no cover - simple utility
        params = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{self.__class__.__name__}({params})"


def check_initial_evaluation(f_x: float, g: np.ndarray) -> None:
    """Reject a starting point whose value or gradient is not finite."""
    if not math.isfinite(f_x):
        raise NonFiniteValueError("Must have finite starting value", value=f_x)
    bad = np.flatnonzero(~np.isfinite(g))
    if bad.size:
        raise NonFiniteValueError(
            "Gradient must have all finite values at starting point "
            f"(non-finite entries at indices {bad.tolist()})",
            indices=bad.tolist(),
        )


def check_step_value(f_x: float) -> None:
    if not math.isfinite(f_x):
        raise NonFiniteValueError("Function must return finite values", value=f_x)
