import argparse
import logging
import os
import sys

from core.exceptions import OptimizerError
from runtime.logging_config import setup_logging
from runtime.minimizer import optimize
from runtime.problem_io import build_method, load_data, parse_problem, save_result
from runtime.problem_manager import ProblemModuleManager

logger = logging.getLogger("cg_descent")


def resolve_problem_path(path: str) -> str:
    """Return a valid problem file path, allowing a path without extension."""
    if os.path.isfile(path):
        return path
    for ext in (".yaml", ".yml", ".json"):
        alt = path + ext
        if os.path.isfile(alt):
            return alt
    raise FileNotFoundError(f"Cannot find file '{path}' (.yaml/.yml/.json)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hager-Zhang CG / Newton optimizer driver")
    parser.add_argument("-i", "--input", help="Problem definition (YAML or JSON)")
    parser.add_argument("-o", "--output", default=None, help="Write the result as JSON")
    parser.add_argument(
        "--compact-output-json",
        action="store_true",
        help="Write output JSON in compact (single-line) form.",
    )
    parser.add_argument(
        "--method",
        choices=["cg", "newton"],
        default=None,
        help="Override the method named in the problem file.",
    )
    parser.add_argument("--eta", type=float, default=None, help="CG beta safeguard factor")
    parser.add_argument("--iterations", type=int, default=None, help="Maximum iterations")
    parser.add_argument("--g-tol", type=float, default=None, help="Gradient sup-norm tolerance")
    parser.add_argument(
        "--show-trace", action="store_true", help="Log every iteration"
    )
    parser.add_argument(
        "--plot",
        default=None,
        metavar="PATH",
        help="Save a convergence plot (value and gradient norm) to PATH.",
    )
    parser.add_argument("--log", default=None, help="Optional log file")
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Suppress console output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable verbose debug logging"
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.input:
        parser.print_usage(sys.stderr)
        print("An input problem file is required (-i/--input).", file=sys.stderr)
        return 1
    try:
        args.input = resolve_problem_path(args.input)
    except FileNotFoundError as exc:
        print(exc, file=sys.stderr)
        return 1

    global logger
    logger = setup_logging(args.log, quiet=args.quiet, debug=args.debug)

    try:
        data = load_data(args.input)
        for key, value in (
            ("eta", args.eta),
            ("iterations", args.iterations),
            ("g_tol", args.g_tol),
        ):
            if value is not None:
                data.setdefault("options", {})[key] = value
        if args.show_trace:
            data.setdefault("options", {})["show_trace"] = True
        if args.plot:
            data.setdefault("options", {})["store_trace"] = True

        manager = ProblemModuleManager([data.get("problem")])
        problem = parse_problem(data, manager)
        if args.method:
            problem.method = build_method(
                args.method,
                problem.options,
                data.get("method_options"),
                alphamax_fn=manager.alphamax_function(problem.name, data.get("parameters")),
            )

        logger.info("Minimizing '%s' with %s", problem.name, problem.method.method_name)
        result = optimize(problem.objective, problem.initial_x, problem.method, problem.options)
    except (OptimizerError, ValueError, KeyError, ImportError) as exc:
        logger.error("Optimization failed: %s", exc)
        return 2

    if not args.quiet:
        print(result.summary())

    if args.output:
        save_result(result, args.output, compact=args.compact_output_json)

    if args.plot:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        from visualization.plotting import plot_trace

        plot_trace(result.trace, show=False)
        plt.gcf().savefig(args.plot, bbox_inches="tight")
        plt.close(plt.gcf())
        logger.info("Saved convergence plot to %s", args.plot)

    return 0


if __name__ == "__main__":
    sys.exit(main())
