"""Command line interface for hybrid type 2 design calculations."""

from __future__ import annotations

import argparse
import logging
import sys

from pycrtdesign.coprimary import DEFAULT_CONFIG, DesignError, run_hybrid2_design


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser.

    Returns:
        Configured argument parser for the design calculator CLI.
    """
    parser = argparse.ArgumentParser(
        prog="pycrtdesign",
        description=(
            "Power, clusters per arm (K) or cluster size (m) for cluster "
            "randomized trials with two co-primary endpoints."
        ),
    )
    parser.add_argument(
        "--output",
        choices=["power", "K", "m"],
        required=True,
        help="Quantity to solve for.",
    )
    parser.add_argument("--power", type=float, default=None, help="Desired power.")
    parser.add_argument("--K", type=float, default=None, help="Clusters in the treatment arm.")
    parser.add_argument("--m", type=float, default=None, help="Individuals per cluster.")

    nuisance = parser.add_argument_group("design parameters")
    for flag, help_text in (
        ("--beta1", "Effect size for the first outcome."),
        ("--beta2", "Effect size for the second outcome."),
        ("--var-y1", "Total variance of the first outcome."),
        ("--var-y2", "Total variance of the second outcome."),
        ("--rho01", "ICC of the first outcome."),
        ("--rho02", "ICC of the second outcome."),
        ("--rho1", "Inter-subject between-outcome correlation."),
        ("--rho2", "Intra-subject between-outcome correlation."),
    ):
        nuisance.add_argument(flag, type=float, required=True, help=help_text)

    parser.add_argument(
        "--alpha",
        type=float,
        default=DEFAULT_CONFIG.alpha,
        help="Type I error rate. Default is %(default)s.",
    )
    parser.add_argument(
        "--dist",
        choices=["Chi2", "F"],
        default=DEFAULT_CONFIG.dist,
        help="Reference distribution for the disjunctive 2-df test.",
    )
    parser.add_argument(
        "--r",
        type=float,
        default=DEFAULT_CONFIG.r,
        help="Allocation ratio, K2 = r * K1. Default is %(default)s.",
    )
    parser.add_argument(
        "--max-search",
        type=int,
        default=DEFAULT_CONFIG.max_search,
        help="Ceiling for iterative K and m searches.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint.

    Args:
        argv: Optional explicit CLI args. Uses `sys.argv` when omitted.

    Returns:
        Exit code (`0` for success, `2` for validation failures).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        report = run_hybrid2_design(
            args.output,
            power=args.power,
            K=args.K,
            m=args.m,
            beta1=args.beta1,
            beta2=args.beta2,
            var_y1=args.var_y1,
            var_y2=args.var_y2,
            rho01=args.rho01,
            rho02=args.rho02,
            rho1=args.rho1,
            rho2=args.rho2,
            alpha=args.alpha,
            dist=args.dist,
            r=args.r,
            max_search=args.max_search,
        )
    except DesignError as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return 2

    print(report.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
