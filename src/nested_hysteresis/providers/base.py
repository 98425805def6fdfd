"""Math Provider capability interface.

The engine only talks to this interface for the algebra it needs:
simplification, differentiation, limits, null spaces, and the supremum of
``|f(x)|`` over ``x > 0``. Providers subclass :class:`MathProvider`; an exact
backend returns closed forms, a numeric one returns tolerance-bounded values.

Supremum searches take a ``threshold`` and may stop as soon as the supremum
is certified to lie on one side of it. They also take a ``deadline`` (a
``time.monotonic()`` value) and a ``cancel`` event; running out of either, or
of the iteration budget, returns a result flagged ``exhausted`` rather than
raising. Limits and derivatives take the same signals and raise
:class:`~nested_hysteresis.errors.ConvergenceCheckInconclusive` once they
have fired.
"""
from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import sympy as sp

from ..config import EngineConfig, load_config
from ..errors import ConvergenceCheckInconclusive, InvalidParameter


@dataclass(frozen=True)
class ExtremumResult:
    """Certified enclosure of ``sup_{x>0} |f(x)|``.

    Attributes
    ----------
    lower:
        A value ``|f(argmax)|`` actually attained, so a lower bound.
    upper:
        An upper bound on the supremum (including limits at ``0`` and ``oo``).
    argmax:
        The point attaining ``lower``; ``None`` if no point was evaluated.
    iterations:
        Work units spent (boxes or root candidates).
    exhausted:
        True when budget, deadline or cancellation stopped the search early.
    """

    lower: float
    upper: float
    argmax: Optional[float]
    iterations: int
    exhausted: bool = False

    @property
    def gap(self) -> float:
        return self.upper - self.lower


class MathProvider(ABC):
    name = "abstract"
    exact = False

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or load_config()

    @abstractmethod
    def simplify(self, expr):
        ...

    @abstractmethod
    def differentiate(self, expr, var, *, deadline=None, cancel=None):
        ...

    @abstractmethod
    def limit(self, expr, var, point=sp.oo, *, deadline=None, cancel=None):
        """Limit of ``expr`` as ``var -> point``.

        Raises :class:`~nested_hysteresis.errors.ConvergenceCheckInconclusive`
        when ``deadline`` has passed or ``cancel`` is set.
        """

    @abstractmethod
    def nullspace(self, matrix) -> list:
        """Return a basis of the null space as a list of column vectors."""

    @abstractmethod
    def sup_abs(self, expr, var, *, threshold=None, tolerance=None, budget=None,
                deadline=None, cancel=None) -> ExtremumResult:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} exact={self.exact}>"


# ----------------------------------------------------------------------
# Shared helpers
# ----------------------------------------------------------------------
def expired(deadline: Optional[float], cancel) -> bool:
    if cancel is not None and cancel.is_set():
        return True
    return deadline is not None and time.monotonic() >= deadline


def stop_if_expired(deadline: Optional[float], cancel, what: str) -> None:
    if expired(deadline, cancel):
        raise ConvergenceCheckInconclusive(reason=f"{what} stopped by deadline or cancellation")


def rational_parts(expr, var) -> Tuple[sp.Poly, sp.Poly]:
    """Split a rational function of ``var`` into numerator/denominator polys over QQ."""
    expr = sp.sympify(expr)
    extra = expr.free_symbols - {var}
    if extra:
        names = ", ".join(sorted(str(sym) for sym in extra))
        raise InvalidParameter("expr", expr, f"bind {names} before searching over {var}")
    if expr.has(sp.Float):
        expr = sp.nsimplify(expr, rational=True)
    num, den = sp.fraction(sp.cancel(sp.together(expr)))
    try:
        return sp.Poly(num, var, domain=sp.QQ), sp.Poly(den, var, domain=sp.QQ)
    except sp.PolynomialError as exc:
        raise InvalidParameter("expr", expr, f"not a rational function of {var}") from exc


def to_float(value) -> float:
    if value is sp.oo or value == sp.oo:
        return math.inf
    return float(value)


__all__ = [
    "ExtremumResult",
    "MathProvider",
    "expired",
    "stop_if_expired",
    "rational_parts",
    "to_float",
]
