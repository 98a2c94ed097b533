# options.py

import math

from core.exceptions import InvalidOptionError

_FLOAT_KEYS = ("x_tol", "f_tol", "g_tol", "eta", "alphamax")
_INT_KEYS = ("iterations", "show_every")
_BOOL_KEYS = ("store_trace", "show_trace", "extended_trace")


class OptimizationOptions:
    def __init__(self, initial_options=None):
        """
        all options are defined with underscore, _, instead of spaces
        """
        self._params = {
            # Convergence thresholds. The step and value tests are effectively
            # disabled by default; the gradient sup-norm is the usual stop.
            "x_tol": 1e-32,
            "f_tol": 1e-32,
            "g_tol": 1e-8,
            "iterations": 1000,
            # Lower bound factor of the HZ2012 beta safeguard.
            "eta": 0.4,
            # Largest step for which the objective is known to be finite.
            "alphamax": math.inf,
            "store_trace": False,
            "show_trace": False,
            "extended_trace": False,
            "show_every": 1,
            # Called as callback(state) after every iteration; returning True
            # stops the run.
            "callback": None,
        }
        self._explicit = set()
        if initial_options:
            self.update(initial_options)

    def __getattr__(self, name):
        """Attribute-style access for known option keys."""
        params = self.__dict__.get("_params")
        if params is not None and name in params:
            return params[name]
        raise AttributeError(
            f"{type(self).__name__!s} object has no attribute {name!r}"
        )

    def __setattr__(self, name, value):
        if name in ("_params", "_explicit"):
            object.__setattr__(self, name, value)
            return
        params = self.__dict__.get("_params")
        if params is not None and name in params:
            params[name] = self._coerce(name, value)
            self._explicit.add(name)
            return
        object.__setattr__(self, name, value)

    @staticmethod
    def _coerce(key, value):
        """Coerce YAML-style strings and validate ranges."""
        if key in _FLOAT_KEYS:
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise InvalidOptionError(key, value) from None
            if math.isnan(value) or value < 0:
                raise InvalidOptionError(
                    key, value, f"Option '{key}' must be non-negative; got {value!r}."
                )
            if key == "alphamax" and value == 0:
                raise InvalidOptionError(key, value, "Option 'alphamax' must be positive.")
        elif key in _INT_KEYS:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise InvalidOptionError(key, value) from None
            if value <= 0:
                raise InvalidOptionError(
                    key, value, f"Option '{key}' must be a positive integer; got {value!r}."
                )
        elif key in _BOOL_KEYS:
            if isinstance(value, str):
                value = value.strip().lower() in {"1", "true", "yes", "on"}
            else:
                value = bool(value)
        elif key == "callback" and value is not None and not callable(value):
            raise InvalidOptionError(key, value, "Option 'callback' must be callable.")
        return value

    def get(self, key, default=None):
        """Retrieve an option value, or return a default if not found."""
        return self._params.get(key, default)

    def set(self, key, value):
        """Set or update an option."""
        self._params[key] = self._coerce(key, value)
        self._explicit.add(key)

    def is_explicit(self, key):
        """True when `key` was given by the caller rather than left at its default."""
        return key in self._explicit

    def update(self, params):
        """Update multiple options at once."""
        for key, value in dict(params).items():
            self.set(key, value)

    @property
    def tracing(self):
        return (
            self.store_trace
            or self.show_trace
            or self.extended_trace
            or self.callback is not None
        )

    def __contains__(self, key):
        return key in self._params

    def __repr__(self):
        return f"OptimizationOptions({self._params})"

    def to_dict(self):
        """Convert the options to a dictionary for serialization."""
        return {k: v for k, v in self._params.items() if k != "callback"}
