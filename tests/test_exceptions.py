import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import (
    InvalidOptionError,
    LineSearchError,
    NonFiniteValueError,
    OptimizerError,
)


def test_hierarchy():
    for exc_type in (InvalidOptionError, LineSearchError, NonFiniteValueError):
        assert issubclass(exc_type, OptimizerError)
    assert issubclass(InvalidOptionError, ValueError)


def test_payloads():
    err = NonFiniteValueError("bad", value=float("inf"), indices=[3, 1])
    assert err.indices == (3, 1)
    assert str(err) == "bad"

    err = LineSearchError("nope", alpha=0.5)
    assert err.alpha == 0.5

    err = InvalidOptionError("eta", -1)
    assert err.key == "eta" and err.value == -1
    assert "eta" in str(err)
