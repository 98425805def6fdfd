"""Command line entry point: ``nested-hysteresis``.

Builds the ``n``-site scheme, stabilizes it with ``q = 1/s`` (unless
``--no-stabilize``), solves for the steady state and checks the uniform bound
against the Hill function of order ``--hill`` at ``--s``. Prints the report as
JSON. Exit status: 0 bound holds, 1 bound fails, 2 inconclusive.
"""
from __future__ import annotations

import argparse
import json
import sys
import time

import sympy as sp

from . import debug
from .config import load_config
from .convergence import DEFAULT_CONSTANT, analyze, fully_bound_probability
from .errors import ConvergenceCheckInconclusive
from .generator import build_generator
from .graph_builder import build_scheme
from .parameters import s as S
from .parameters import x as X
from .providers import get_provider, list_providers
from .steady_state import steady_state

EXIT_HOLDS, EXIT_FAILS, EXIT_INCONCLUSIVE = 0, 1, 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nested-hysteresis",
        description="Check convergence of a nested hysteresis scheme to a Hill function.",
    )
    parser.add_argument("-n", "--sites", type=int, default=3,
                        help="Number of binding sites")
    parser.add_argument("--hill", type=int, default=None,
                        help="Reference Hill exponent (default 2**n - 1)")
    parser.add_argument("-s", "--s", dest="s_value", type=float, default=1000.0,
                        help="Time-scale factor at which the uniform bound is checked")
    parser.add_argument("-C", "--constant", type=float, default=float(DEFAULT_CONSTANT),
                        help="Claimed constant C in sup|P - H| <= C / sqrt(s)")
    parser.add_argument("--no-stabilize", action="store_true",
                        help="Skip slowing the exits of the extreme states")
    parser.add_argument("--provider", choices=list_providers(), default=None,
                        help="Math provider (default from NESTED_HYSTERESIS_PROVIDER or 'symbolic')")
    parser.add_argument("--at-x", type=float, default=1.0,
                        help="Point at which a numeric provider evaluates the limits")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Seconds allowed for the bound search")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        debug.enable(True)

    config = load_config()
    provider = get_provider(args.provider, config)
    hill = args.hill if args.hill is not None else 2 ** args.sites - 1
    q = None if args.no_stabilize else 1 / S

    # the steady state is always exact; providers only differ in the analysis
    graph = build_scheme(args.sites, S, X, q, config=config)
    pi = steady_state(build_generator(graph), get_provider("symbolic", config), config)
    P = fully_bound_probability(pi)

    deadline = None if args.timeout is None else time.monotonic() + args.timeout
    s_value = sp.Rational(repr(args.s_value))
    try:
        report = analyze(P, hill, s_value, sp.Rational(repr(args.constant)), at_x=args.at_x,
                         provider=provider, config=config, deadline=deadline)
    except ConvergenceCheckInconclusive as exc:
        json.dump({"sites": args.sites, "hill": hill, "inconclusive": exc.verdict.as_dict()},
                  sys.stdout, indent=2)
        sys.stdout.write("\n")
        return EXIT_INCONCLUSIVE

    out = {"sites": args.sites, "hill": hill, "provider": provider.name}
    out.update(report.as_dict())
    json.dump(out, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return EXIT_HOLDS if report.bound_holds else EXIT_FAILS


__all__ = ["main", "build_parser"]
