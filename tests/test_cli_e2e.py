import json
import os
import subprocess
import sys
from pathlib import Path

import yaml

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import main as cli


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _write_problem(tmp_path: Path, **overrides) -> Path:
    data = {
        "problem": "quadratic",
        "parameters": {"diagonal": [2.0, 20.0]},
        "initial_x": [1.0, 1.0],
        "method": "cg",
    }
    data.update(overrides)
    path = tmp_path / "problem.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_main_writes_result_json(tmp_path):
    problem = _write_problem(tmp_path)
    out = tmp_path / "result.json"

    assert cli.main(["-i", str(problem), "-o", str(out), "-q"]) == 0

    data = json.loads(out.read_text())
    assert data["converged"] is True
    assert data["method"] == "Conjugate Gradient"
    assert max(abs(v) for v in data["minimizer"]) < 1e-6


def test_main_resolves_missing_extension(tmp_path):
    problem = _write_problem(tmp_path)
    out = tmp_path / "result.json"
    stem = str(problem)[: -len(".yaml")]
    assert cli.main(["-i", stem, "-o", str(out), "-q", "--compact-output-json"]) == 0
    assert "\n" not in out.read_text()


def test_main_method_override_and_summary(tmp_path, capsys):
    problem = _write_problem(tmp_path, problem="rosenbrock", parameters={}, initial_x=[-1.2, 1.0])
    assert cli.main(["-i", str(problem), "--method", "newton", "--iterations", "100"]) == 0
    captured = capsys.readouterr()
    assert "Newton's Method" in captured.out
    assert "Convergence: True" in captured.out


def test_main_missing_input_returns_one(tmp_path, capsys):
    assert cli.main([]) == 1
    assert cli.main(["-i", str(tmp_path / "nope")]) == 1
    assert "Cannot find file" in capsys.readouterr().err


def test_main_bad_problem_returns_two(tmp_path):
    problem = _write_problem(tmp_path, problem="no_such_problem")
    assert cli.main(["-i", str(problem), "-q"]) == 2
    problem = _write_problem(tmp_path, method="bfgs")
    assert cli.main(["-i", str(problem), "-q"]) == 2


def test_main_log_file_and_plot(tmp_path):
    problem = _write_problem(tmp_path)
    log = tmp_path / "run.log"
    plot = tmp_path / "trace.png"

    assert cli.main(["-i", str(problem), "-q", "--log", str(log), "--plot", str(plot)]) == 0

    assert plot.exists() and plot.stat().st_size > 0
    assert "Converged" in log.read_text()


def test_main_script_entry_point(tmp_path):
    problem = _write_problem(tmp_path)
    config_dir = tmp_path / "mplconfig"
    config_dir.mkdir()
    env = dict(os.environ)
    env["MPLCONFIGDIR"] = str(config_dir)
    env.setdefault("MPLBACKEND", "Agg")

    proc = subprocess.run(
        [sys.executable, str(_repo_root() / "main.py"), "-i", str(problem), "--g-tol", "1e-6"],
        cwd=_repo_root(),
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0, proc.stderr
    assert "Results of Optimization Algorithm" in proc.stdout
