# runtime/trace.py
"""Per-iteration history of an optimization run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

import numpy as np

logger = logging.getLogger("cg_descent")


@dataclass
class OptimizationState:
    iteration: int
    value: float
    g_norm: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.iteration:6d}   {self.value:14.6e}   {self.g_norm:14.6e}"


class OptimizationTrace:
    """Ordered list of :class:`OptimizationState` records."""

    def __init__(self, method_name: str = "") -> None:
        self.method_name = method_name
        self.states: List[OptimizationState] = []

    def push(self, state: OptimizationState) -> None:
        self.states.append(state)

    def __len__(self) -> int:
        return len(self.states)

    def __getitem__(self, i: int) -> OptimizationState:
        return self.states[i]

    def __iter__(self) -> Iterator[OptimizationState]:
        return iter(self.states)

    def values(self) -> np.ndarray:
        return np.array([st.value for st in self.states], dtype=float)

    def g_norms(self) -> np.ndarray:
        return np.array([st.g_norm for st in self.states], dtype=float)

    def iterations(self) -> np.ndarray:
        return np.array([st.iteration for st in self.states], dtype=int)

    def __repr__(self) -> str:  # pragma: no cover - simple utility
        return f"OptimizationTrace({self.method_name!r}, {len(self)} states)"


def update_trace(
    tr: OptimizationTrace,
    iteration: int,
    f_x: float,
    grnorm: float,
    metadata: Dict[str, Any],
    store_trace: bool,
    show_trace: bool,
    show_every: int = 1,
    callback: Optional[Callable[[Any], Any]] = None,
) -> bool:
    """Record one iteration and invoke ``callback``.

    The callback receives the whole trace when ``store_trace`` is set and
    the latest state otherwise. Returns True when the callback asks to stop.
    """
    record = OptimizationState(iteration, float(f_x), float(grnorm), metadata)
    if store_trace:
        tr.push(record)
    if show_trace and iteration % show_every == 0:
        logger.info("Iter %s", record)
        for key, value in metadata.items():
            logger.info(" * %s: %s", key, value)
    stopped = False
    if callback is not None and iteration % show_every == 0:
        stopped = bool(callback(tr if store_trace else record))
    return stopped
