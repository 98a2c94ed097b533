import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import InvalidOptionError
from runtime.objective import Objective
from runtime.trace import OptimizationTrace, update_trace


def test_update_trace_stores_only_when_requested():
    tr = OptimizationTrace("Test")
    assert update_trace(tr, 0, 1.0, 2.0, {}, False, False) is False
    assert len(tr) == 0
    update_trace(tr, 1, 0.5, 1.0, {"x": np.zeros(2)}, True, False)
    assert len(tr) == 1
    assert tr[0].value == 0.5
    np.testing.assert_array_equal(tr.values(), [0.5])
    np.testing.assert_array_equal(tr.g_norms(), [1.0])


def test_callback_respects_show_every():
    calls = []
    tr = OptimizationTrace()
    for it in range(5):
        update_trace(tr, it, 1.0, 1.0, {}, False, False, 2, lambda st: calls.append(st.iteration))
    assert calls == [0, 2, 4]


def test_callback_return_value_stops():
    tr = OptimizationTrace()
    assert update_trace(tr, 3, 1.0, 1.0, {}, False, False, callback=lambda st: True) is True


def test_objective_from_separate_callbacks():
    df = Objective(f=lambda x: float(x @ x), g=lambda x: 2.0 * x)
    out = np.empty(2)
    assert df.value(np.array([1.0, 2.0])) == 5.0
    assert df.value_gradient(np.array([1.0, 2.0]), out) == 5.0
    np.testing.assert_array_equal(out, [2.0, 4.0])
    assert not df.has_hessian


def test_objective_writes_hessian_in_place():
    df = Objective(fg=lambda x: (0.0, x), h=lambda x: np.eye(2) * 3.0)
    H = np.zeros((2, 2))
    df.hessian(np.zeros(2), H)
    np.testing.assert_array_equal(H, 3.0 * np.eye(2))


def test_objective_requires_gradient():
    with pytest.raises(InvalidOptionError):
        Objective(f=lambda x: 0.0)
    with pytest.raises(InvalidOptionError):
        Objective(fg=lambda x: (0.0, x)).hessian(np.zeros(2), np.zeros((2, 2)))
