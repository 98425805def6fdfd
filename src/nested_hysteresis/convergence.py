"""Convergence of the fully-bound probability to a Hill function.

For a stabilized ``n``-site scheme the fully-bound probability ``P(x, s)``
tends, as ``s -> oo``, to the Hill function ``x**m / (1 + x**m)`` with
``m = 2**n - 1``. This module computes the pointwise limits and checks the
uniform rate

    sup_{x > 0} |P(x, s) - H(x)| <= C / sqrt(s)

for a claimed constant ``C`` at a given ``s``. The supremum is taken over all
``x > 0`` by the Math Provider's certified extremum search, never over a grid,
so a ``holds`` verdict is a proof for that ``s`` and a ``fails`` verdict comes
with an ``x`` where the gap exceeds the threshold.
"""
from __future__ import annotations

import math
import threading
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np
import sympy as sp

from .config import EngineConfig, load_config
from .debug import dbg
from .errors import ConvergenceCheckInconclusive, InvalidParameter
from .parameters import check_positive
from .parameters import s as S
from .parameters import x as X
from .providers import MathProvider, resolve_provider
from .providers.base import expired, stop_if_expired

log = dbg("convergence")

DEFAULT_CONSTANT = sp.Rational(1, 2)


class Status(str, Enum):
    HOLDS = "holds"
    FAILS = "fails"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class BoundVerdict:
    """Outcome of a uniform-bound check.

    ``sup_lower``/``sup_upper`` enclose ``sup |P - H|``; ``observed_constant``
    is ``sup_upper * sqrt(s)``, the smallest constant the search certified.
    """

    status: Status
    constant: Optional[float]
    threshold: float
    sup_lower: float
    sup_upper: float
    observed_constant: float
    counterexample_x: Optional[float]
    iterations: int
    reason: str

    @property
    def bound_holds(self) -> Optional[bool]:
        if self.status is Status.INCONCLUSIVE:
            return None
        return self.status is Status.HOLDS

    def require_definite(self) -> "BoundVerdict":
        if self.status is Status.INCONCLUSIVE:
            raise ConvergenceCheckInconclusive(self)
        return self

    def as_dict(self) -> dict:
        out = asdict(self)
        out["status"] = self.status.value
        out["bound_holds"] = self.bound_holds
        return out


@dataclass(frozen=True)
class ConvergenceReport:
    limit_value: Any
    derivative_limit: Any
    bound_constant: Optional[float]
    bound_holds: bool
    counterexample_x: Optional[float]
    verdict: Optional[BoundVerdict] = None

    def as_dict(self) -> dict:
        def _plain(v):
            if isinstance(v, sp.Basic):
                return float(v) if v.is_number else str(v)
            return v

        return {
            "limit_value": _plain(self.limit_value),
            "derivative_limit": _plain(self.derivative_limit),
            "bound_constant": self.bound_constant,
            "bound_holds": self.bound_holds,
            "counterexample_x": self.counterexample_x,
            "verdict": None if self.verdict is None else self.verdict.as_dict(),
        }


# ----------------------------------------------------------------------
# Pointwise quantities
# ----------------------------------------------------------------------
def fully_bound_probability(pi):
    """Return the last entry of a steady-state vector (the all-one state)."""
    if len(pi) == 0:
        raise InvalidParameter("pi", pi, "steady-state vector is empty")
    return pi[-1]


def reference_hill(n_eff, x=X):
    check_positive("n_eff", n_eff)
    return x ** n_eff / (1 + x ** n_eff)


def limit_value(P, s=S, provider=None, config: Optional[EngineConfig] = None, *,
                deadline: Optional[float] = None, cancel: Optional[threading.Event] = None):
    """``lim_{s -> oo} P``."""
    provider = resolve_provider(provider, config)
    value = provider.limit(P, s, sp.oo, deadline=deadline, cancel=cancel)
    stop_if_expired(deadline, cancel, "limit")
    return value


def derivative_limit(P, x=X, s=S, provider=None, config: Optional[EngineConfig] = None, *,
                     deadline: Optional[float] = None, cancel: Optional[threading.Event] = None):
    """``lim_{s -> oo} dP/dx``."""
    provider = resolve_provider(provider, config)
    dP = provider.differentiate(P, x, deadline=deadline, cancel=cancel)
    value = provider.limit(dP, s, sp.oo, deadline=deadline, cancel=cancel)
    stop_if_expired(deadline, cancel, "derivative limit")
    return value


def effective_hill_coefficient(P, x=X, at=1):
    """Log-odds slope ``x P' / (P (1 - P))``; equals ``n`` for a Hill function of order ``n``.

    Returns the expression when ``at`` is ``None``.
    """
    slope = sp.cancel(x * sp.diff(P, x) / (P * (1 - P)))
    if at is None:
        return slope
    return sp.cancel(slope.subs(x, at))


def sample_fully_bound(P, xs, ss, x=X, s=S) -> np.ndarray:
    """Evaluate ``P`` on the grid ``ss x xs``; result has shape ``(len(ss), len(xs))``."""
    xs = np.asarray(xs, dtype=float)
    ss = np.asarray(ss, dtype=float)
    if np.any(xs <= 0) or np.any(ss <= 0):
        raise InvalidParameter("grid", (xs.min(initial=1.0), ss.min(initial=1.0)), "x and s must be positive")
    f = sp.lambdify((x, s), P, "numpy")
    XX, SS = np.meshgrid(xs, ss)
    out = f(XX, SS)
    return np.broadcast_to(np.asarray(out, dtype=float), XX.shape).copy()


# ----------------------------------------------------------------------
# Uniform bound
# ----------------------------------------------------------------------
def _exact_number(name: str, value):
    check_positive(name, value)
    if isinstance(value, sp.Basic):
        return value
    if isinstance(value, float):
        return sp.Rational(repr(value))
    return sp.sympify(value)


def _threshold(s_value, constant):
    s_exact = _exact_number("s_value", s_value)
    c_exact = _exact_number("constant", constant)
    return s_exact, c_exact, c_exact / sp.sqrt(s_exact)


def _stopped(threshold: float, reason: str) -> BoundVerdict:
    return BoundVerdict(Status.INCONCLUSIVE, None, threshold, 0.0, math.inf, math.inf, None, 0, reason)


def _root_order(expr, x) -> int:
    """Least ``r`` such that every power of ``x`` in ``expr`` has an exponent in ``Z / r``."""
    r = 1
    for p in expr.atoms(sp.Pow):
        if p.base == x and p.exp.is_Rational:
            r = sp.ilcm(r, p.exp.q)
    return int(r)


def check_uniform_bound(
    P,
    H,
    s_value,
    constant=DEFAULT_CONSTANT,
    *,
    x=X,
    s=S,
    tolerance: Optional[float] = None,
    provider=None,
    config: Optional[EngineConfig] = None,
    deadline: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
) -> BoundVerdict:
    """Check ``sup_{x>0} |P(x, s_value) - H(x)| <= constant / sqrt(s_value)``.

    Returns a :class:`BoundVerdict`; running out of budget, hitting
    ``deadline`` (a ``time.monotonic()`` value) or ``cancel`` being set gives
    ``Status.INCONCLUSIVE``.

    Fractional powers ``x**(p/r)`` (a non-integer Hill exponent) are searched
    in ``t = x**(1/r)``, which maps ``x > 0`` onto ``t > 0`` and leaves the
    supremum unchanged.
    """
    config = config or load_config()
    provider = resolve_provider(provider, config)
    s_exact, c_exact, threshold = _threshold(s_value, constant)
    T = float(threshold)
    root_s = math.sqrt(float(s_exact))

    if expired(deadline, cancel):
        return _stopped(T, "cancelled before the search started")

    gap = sp.sympify(P).subs(s, s_exact) - sp.sympify(H)
    if gap.has(sp.Float):
        gap = sp.nsimplify(gap, rational=True)
    r = _root_order(gap, x)
    if r > 1:
        t = sp.Dummy("t", positive=True)
        gap = sp.powdenest(gap.subs(x, t ** r), force=True).subs(t, x)
        log.debug("bound: fractional powers of %s, searching in %s**(1/%d)", x, x, r)

    result = provider.sup_abs(gap, x, threshold=threshold, tolerance=tolerance,
                              deadline=deadline, cancel=cancel)
    log.debug("bound at s=%s: sup in [%.6g, %.6g], threshold %.6g (%d iterations)",
              s_exact, result.lower, result.upper, T, result.iterations)

    observed = result.upper * root_s
    if result.upper <= T:
        return BoundVerdict(Status.HOLDS, float(c_exact), T, result.lower, result.upper, observed,
                            None, result.iterations, f"sup <= {result.upper:.6g} <= {T:.6g}")
    if result.lower > T:
        xc = None if result.argmax is None else result.argmax ** r
        return BoundVerdict(Status.FAILS, None, T, result.lower, result.upper, observed,
                            xc, result.iterations,
                            f"|P - H| = {result.lower:.6g} > {T:.6g} at x = {xc}")
    why = "search stopped early" if result.exhausted else "bounds straddle the threshold"
    return BoundVerdict(Status.INCONCLUSIVE, None, T, result.lower, result.upper, observed,
                        None, result.iterations, f"sup in [{result.lower:.6g}, {result.upper:.6g}]: {why}")


def analyze(
    P,
    n_eff,
    s_value,
    constant=DEFAULT_CONSTANT,
    *,
    x=X,
    s=S,
    at_x=None,
    provider=None,
    config: Optional[EngineConfig] = None,
    deadline: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
) -> ConvergenceReport:
    """Limits of ``P`` as ``s -> oo`` and the uniform bound against ``reference_hill(n_eff)``.

    An exact provider returns the limits as functions of ``x``; a numeric one
    needs ``at_x`` and returns them at that point. Raises
    :class:`ConvergenceCheckInconclusive` when the bound search cannot decide
    or ``deadline``/``cancel`` stops the limits first.
    """
    config = config or load_config()
    provider: MathProvider = resolve_provider(provider, config)
    H = reference_hill(n_eff, x)
    T = float(_threshold(s_value, constant)[2])
    if not provider.exact:
        if at_x is None:
            raise InvalidParameter("at_x", at_x, f"the {provider.name} provider evaluates limits at a given x")
        check_positive("at_x", at_x)

    if expired(deadline, cancel):
        raise ConvergenceCheckInconclusive(_stopped(T, "cancelled before the limits"))
    try:
        if provider.exact:
            lim = limit_value(P, s, provider, deadline=deadline, cancel=cancel)
            dlim = derivative_limit(P, x, s, provider, deadline=deadline, cancel=cancel)
        else:
            dP = provider.differentiate(P, x, deadline=deadline, cancel=cancel)
            lim = limit_value(sp.sympify(P).subs(x, at_x), s, provider, deadline=deadline, cancel=cancel)
            dlim = limit_value(dP.subs(x, at_x), s, provider, deadline=deadline, cancel=cancel)
    except ConvergenceCheckInconclusive as exc:
        if exc.verdict is not None:
            raise
        raise ConvergenceCheckInconclusive(_stopped(T, str(exc))) from exc

    verdict = check_uniform_bound(P, H, s_value, constant, x=x, s=s, provider=provider,
                                  config=config, deadline=deadline, cancel=cancel)
    verdict.require_definite()
    return ConvergenceReport(
        limit_value=lim,
        derivative_limit=dlim,
        bound_constant=verdict.constant,
        bound_holds=bool(verdict.bound_holds),
        counterexample_x=verdict.counterexample_x,
        verdict=verdict,
    )


__all__ = [
    "DEFAULT_CONSTANT",
    "Status",
    "BoundVerdict",
    "ConvergenceReport",
    "fully_bound_probability",
    "reference_hill",
    "limit_value",
    "derivative_limit",
    "effective_hill_coefficient",
    "sample_fully_bound",
    "check_uniform_bound",
    "analyze",
]
