# runtime/problem_io.py
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass

import numpy as np
import yaml

from core.exceptions import InvalidOptionError
from core.parameters.options import OptimizationOptions
from runtime.objective import Objective
from runtime.problem_manager import ProblemModuleManager
from runtime.steppers.base import BaseStepper
from runtime.steppers.conjugate_gradient import ConjugateGradient
from runtime.steppers.newton import Newton

logger = logging.getLogger("cg_descent")

METHOD_ALIASES = {
    "cg": "cg",
    "conjugate_gradient": "cg",
    "conjugategradient": "cg",
    "newton": "newton",
}


@dataclass
class Problem:
    name: str
    objective: Objective
    initial_x: np.ndarray
    method: BaseStepper
    options: OptimizationOptions


def load_data(filename):
    """Load a problem definition from a JSON or YAML file.

    Expected format::

        problem: rosenbrock          # module in modules/objectives
        parameters: {b: 100.0}       # passed to the module
        initial_x: [-1.2, 1.0]       # optional; module default otherwise
        method: cg                   # cg | newton
        method_options:              # optional
          preconditioner: [1.0, 1.0] # CG only: diagonal or dense matrix
        options: {g_tol: 1.0e-8, iterations: 200, eta: 0.4}
    """
    filename_str = str(filename)
    with open(filename_str, "r") as f:
        if filename_str.endswith((".yaml", ".yml")):
            data = yaml.safe_load(f)
        elif filename_str.endswith(".json"):
            data = json.load(f)
        else:
            logger.error(f"Unsupported file format for: {filename_str}")
            raise ValueError(f"Unsupported file format for: {filename_str}")

    return data


def build_method(name, options: OptimizationOptions, method_options=None, alphamax_fn=None):
    """Instantiate the stepper called ``name``."""
    key = METHOD_ALIASES.get(str(name).strip().lower())
    if key is None:
        raise InvalidOptionError(
            "method", name, f"Unknown method {name!r}; expected one of {sorted(METHOD_ALIASES)}."
        )
    method_options = dict(method_options or {})

    alphamax = options.alphamax
    if math.isinf(alphamax) and alphamax_fn is not None:
        alphamax = alphamax_fn

    if key == "cg":
        return ConjugateGradient(
            eta=options.eta,
            P=method_options.get("preconditioner"),
            alphamax=alphamax,
        )
    return Newton(alphamax=alphamax)


def parse_problem(data: dict, manager: ProblemModuleManager | None = None) -> Problem:
    if not isinstance(data, dict) or "problem" not in data:
        raise InvalidOptionError("problem", None, "Problem file must define a 'problem' entry.")
    name = str(data["problem"])
    params = data.get("parameters", {}) or {}

    if manager is None:
        manager = ProblemModuleManager([name])

    options = OptimizationOptions(data.get("options", {}) or {})

    if data.get("initial_x") is not None:
        initial_x = np.asarray(data["initial_x"], dtype=float)
    else:
        initial_x = manager.default_x0(name, params)
    if initial_x.ndim != 1 or initial_x.size == 0:
        raise InvalidOptionError("initial_x", data.get("initial_x"), "initial_x must be a non-empty vector.")

    method = build_method(
        data.get("method", "cg"),
        options,
        data.get("method_options"),
        alphamax_fn=manager.alphamax_function(name, params),
    )
    objective = manager.build_objective(name, params)
    return Problem(name=name, objective=objective, initial_x=initial_x, method=method, options=options)


def save_result(result, filename, compact: bool = False):
    """Write an :class:`OptimizationResults` to JSON."""
    with open(str(filename), "w") as f:
        if compact:
            json.dump(result.to_dict(), f, separators=(",", ":"))
        else:
            json.dump(result.to_dict(), f, indent=2)
    logger.info(f"Saved result to {filename}")
