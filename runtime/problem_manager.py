# runtime/problem_manager.py

import importlib
import logging
from collections import Counter

import numpy as np

from runtime.objective import Objective

logger = logging.getLogger("cg_descent")


class ProblemModuleManager:
    """Load objective modules from ``modules.objectives`` by name."""

    def __init__(self, module_names):
        self.modules = {}
        counted = Counter(module_names)
        for name, count in counted.items():
            if count > 1:
                logger.warning(f"Objective module '{name}' specified {count} times; using only one instance.")

            try:
                self.modules[name] = importlib.import_module(f"modules.objectives.{name}")
                logger.info(f"Loaded objective module: {name}")
            except ImportError as e:
                logger.error(f"Could not load objective module '{name}': {e}")
                raise

    def get_module(self, mod):
        """
        Retrieve a loaded objective module by name.
        """
        if mod in self.modules.keys():
            return self.modules[mod]
        raise KeyError(f"Objective module '{mod}' not found.")

    def build_objective(self, name, params=None):
        """Wrap module ``name`` into an :class:`Objective` bound to ``params``."""
        module = self.get_module(name)
        params = dict(params or {})

        def fg(x):
            return module.value_and_gradient(np.asarray(x, dtype=float), params)

        h = None
        if hasattr(module, "hessian"):
            def h(x):
                return module.hessian(np.asarray(x, dtype=float), params)

        return Objective(fg=fg, h=h)

    def alphamax_function(self, name, params=None):
        """Return ``alphamax(x, s)`` for module ``name``, or None if it has none."""
        module = self.get_module(name)
        if not hasattr(module, "alphamax"):
            return None
        params = dict(params or {})
        return lambda x, s: module.alphamax(x, s, params)

    def default_x0(self, name, params=None):
        return np.asarray(self.get_module(name).default_x0(dict(params or {})), dtype=float)
