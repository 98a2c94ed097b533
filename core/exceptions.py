"""Custom exception types for the optimizer."""

from __future__ import annotations

from typing import Sequence


class OptimizerError(Exception):
    """Base class for domain-specific errors."""


class NonFiniteValueError(OptimizerError):
    """Raised when the objective returns NaN/Inf where a finite value is required."""

    def __init__(
        self,
        message: str,
        *,
        value: float | None = None,
        indices: Sequence[int] | None = None,
    ) -> None:
        super().__init__(message)
        self.value = value
        self.indices = tuple(indices) if indices is not None else ()


class LineSearchError(OptimizerError):
    """Raised when the line search receives data it cannot bracket.

    This signals a broken contract (e.g. a gradient inconsistent with the
    objective), not ordinary numerical difficulty.
    """

    def __init__(self, message: str, *, alpha: float | None = None) -> None:
        super().__init__(message)
        self.alpha = alpha


class InvalidOptionError(OptimizerError, ValueError):
    """Raised when an option or problem definition is malformed."""

    def __init__(self, key: str, value, message: str | None = None) -> None:
        if message is None:
            message = f"Invalid value {value!r} for option '{key}'."
        super().__init__(message)
        self.key = key
        self.value = value


__all__ = [
    "OptimizerError",
    "NonFiniteValueError",
    "LineSearchError",
    "InvalidOptionError",
]
