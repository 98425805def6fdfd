"""Exact Math Provider backed by sympy.

Steady states are solved over the fraction field ``QQ(x, s)`` with
:class:`~sympy.polys.matrices.DomainMatrix`, which stays tractable for the
``2**n``-state generators where ``Matrix.nullspace`` with ``simplify`` does
not.

The supremum of ``|f|`` over ``x > 0`` for a rational ``f = N/D`` is found by
isolating the positive roots of ``N'D - ND'`` with rational intervals and
evaluating ``f`` exactly at each one, plus the limits at ``0`` and ``oo``.
"""
from __future__ import annotations

import math

import sympy as sp
from sympy.polys.matrices import DomainMatrix
from sympy.polys.polyerrors import CoercionFailed

from ..debug import dbg
from .base import ExtremumResult, MathProvider, expired, rational_parts, stop_if_expired, to_float

log = dbg("providers.symbolic")

# width of the isolating intervals around critical points
_ROOT_EPS = sp.Rational(1, 10 ** 12)
# endpoint probes go out to 2**k; beyond this the values are indistinguishable in float
_MAX_PROBE = 128


class SymbolicProvider(MathProvider):
    name = "symbolic"
    exact = True

    def simplify(self, expr):
        return sp.cancel(sp.together(sp.sympify(expr)))

    def differentiate(self, expr, var, *, deadline=None, cancel=None):
        stop_if_expired(deadline, cancel, "derivative")
        return sp.cancel(sp.diff(expr, var))

    def limit(self, expr, var, point=sp.oo, *, deadline=None, cancel=None):
        stop_if_expired(deadline, cancel, "limit")
        expr = sp.sympify(expr)
        if point is sp.oo:
            num, den = sp.fraction(sp.cancel(sp.together(expr)))
            if num.is_polynomial(var) and den.is_polynomial(var):
                pn, pd = sp.Poly(num, var), sp.Poly(den, var)
                if pn.is_zero:
                    return sp.Integer(0)
                if pn.degree() < pd.degree():
                    return sp.Integer(0)
                if pn.degree() == pd.degree():
                    return sp.cancel(pn.LC() / pd.LC())
        stop_if_expired(deadline, cancel, "limit")
        return sp.limit(expr, var, point)

    def nullspace(self, matrix) -> list:
        M = sp.Matrix(matrix)
        try:
            basis = DomainMatrix.from_Matrix(M).to_field().nullspace().to_Matrix()
        except (CoercionFailed, NotImplementedError):
            log.debug("nullspace: DomainMatrix unavailable, falling back to Matrix.nullspace")
            return [sp.Matrix(v) for v in M.nullspace(simplify=True)]
        return [basis.row(i).T for i in range(basis.rows)]

    def sup_abs(self, expr, var, *, threshold=None, tolerance=None, budget=None,
                deadline=None, cancel=None) -> ExtremumResult:
        tolerance = self.config.search_tolerance if tolerance is None else tolerance
        budget = self.config.search_budget if budget is None else budget
        N, D = rational_parts(expr, var)

        if N.is_zero:
            return ExtremumResult(0.0, 0.0, 1.0, 0)
        if D.count_roots(0) > 0 or N.degree() > D.degree():
            log.debug("sup_abs: unbounded on x > 0")
            return ExtremumResult(math.inf, math.inf, None, 0)

        at_zero = abs(N.eval(0) / D.eval(0))
        at_inf = abs(N.LC() / D.LC()) if N.degree() == D.degree() else sp.Integer(0)

        crit = N.diff() * D - N * D.diff()
        if crit.is_zero:
            # f is constant
            return ExtremumResult(to_float(at_zero), to_float(at_zero), 1.0, 1)

        def f_abs(t):
            return abs(N.eval(t) / D.eval(t))

        def fprime_abs(t):
            return abs(crit.eval(t) / D.eval(t) ** 2)

        lower, upper, argmax = sp.Integer(0), sp.Integer(0), None
        iterations = 0
        for (a, b), _mult in crit.intervals(eps=_ROOT_EPS, inf=0):
            if b <= 0:
                continue
            if expired(deadline, cancel):
                log.debug("sup_abs: stopped after %d critical points", iterations)
                return ExtremumResult(to_float(lower), math.inf, _arg(argmax), iterations, exhausted=True)
            iterations += 1
            mid = (a + b) / 2 if a > 0 else b
            val = f_abs(mid)
            slack = (b - a) * max(fprime_abs(a), fprime_abs(b)) if a > 0 else (b - a) * fprime_abs(b)
            if val > lower:
                lower, argmax = val, mid
            upper = max(upper, val + slack)

        upper = max(upper, at_zero, at_inf)
        log.debug("sup_abs: %d critical points, max %s, limits %s / %s",
                  iterations, sp.N(lower, 6), sp.N(at_zero, 6), sp.N(at_inf, 6))

        # the supremum is only approached at an endpoint: attain values near it
        exhausted = False
        sides = [side for side, lim in ((-1, at_zero), (1, at_inf)) if lim > lower]
        k = 0
        while sides and upper - lower > tolerance:
            if threshold is not None and lower > threshold:
                break
            if k >= min(budget, _MAX_PROBE) or expired(deadline, cancel):
                exhausted = k < _MAX_PROBE
                break
            k += 1
            for side in sides:
                point = sp.Integer(2) ** (side * k)
                val = f_abs(point)
                iterations += 1
                if val > lower:
                    lower, argmax = val, point

        return ExtremumResult(to_float(lower), to_float(upper), _arg(argmax), iterations, exhausted)


def _arg(point):
    return None if point is None else float(point)


__all__ = ["SymbolicProvider"]
