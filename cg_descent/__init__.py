"""Package utilities for cg-descent.

The optimizer core lives in top-level packages like `core/`, `runtime/` and
`modules/`. This package exists to expose the distribution version.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cg-descent")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
