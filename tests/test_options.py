import math
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import InvalidOptionError
from core.parameters.options import OptimizationOptions


def test_defaults():
    opts = OptimizationOptions()
    assert opts.x_tol == 1e-32
    assert opts.f_tol == 1e-32
    assert opts.g_tol == 1e-8
    assert opts.iterations == 1000
    assert opts.eta == 0.4
    assert math.isinf(opts.alphamax)
    assert opts.show_every == 1
    assert opts.callback is None
    assert not opts.tracing


def test_initial_options_and_attribute_access():
    opts = OptimizationOptions({"g_tol": "1e-6", "iterations": "25", "store_trace": "yes"})
    assert opts.g_tol == 1e-6
    assert opts.iterations == 25
    assert opts.store_trace is True
    assert opts.tracing

    opts.eta = 0.1
    assert opts.get("eta") == 0.1
    assert "eta" in opts


def test_explicit_keys_are_tracked():
    opts = OptimizationOptions({"g_tol": 1e-6})
    assert opts.is_explicit("g_tol")
    assert not opts.is_explicit("eta")

    opts.eta = 0.4
    assert opts.is_explicit("eta")
    opts.set("alphamax", 1.0)
    assert opts.is_explicit("alphamax")


def test_unknown_attribute_raises():
    with pytest.raises(AttributeError):
        OptimizationOptions().not_an_option


@pytest.mark.parametrize(
    "key, value",
    [
        ("g_tol", -1.0),
        ("x_tol", float("nan")),
        ("eta", "abc"),
        ("alphamax", 0.0),
        ("iterations", 0),
        ("show_every", "many"),
        ("callback", 42),
    ],
)
def test_invalid_values_raise(key, value):
    with pytest.raises(InvalidOptionError) as excinfo:
        OptimizationOptions({key: value})
    assert excinfo.value.key == key
    assert isinstance(excinfo.value, ValueError)


def test_callback_enables_tracing():
    opts = OptimizationOptions({"callback": lambda state: False})
    assert opts.tracing
    assert "callback" not in opts.to_dict()


def test_update_and_to_dict_roundtrip():
    opts = OptimizationOptions()
    opts.update({"iterations": 10, "show_trace": False})
    data = opts.to_dict()
    assert data["iterations"] == 10
    assert OptimizationOptions(data).to_dict() == data
