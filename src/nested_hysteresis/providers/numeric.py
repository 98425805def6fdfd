"""Numeric Math Provider: mpmath limits, numpy null spaces, interval search.

Results are floats accurate to the configured precision. The supremum search
is a branch-and-bound over the compactified variable ``u = x / (1 + x)`` on
``[0, 1]``: with ``m`` the larger of the degrees of ``N`` and ``D``,

    f(x) = N(x) / D(x) = sum_k n_k u^k (1-u)^(m-k) / sum_k d_k u^k (1-u)^(m-k)

and each term ``u^k (1-u)^(m-k)`` is monotone in both factors on a box, which
gives cheap rigorous enclosures. Enclosures are evaluated in exact rationals
(``QQ``) so the certified bounds do not depend on float round-off.
"""
from __future__ import annotations

import heapq
import itertools
import math

import mpmath
import numpy as np
import sympy as sp

from ..debug import dbg
from ..errors import InvalidParameter
from .base import ExtremumResult, MathProvider, expired, rational_parts, stop_if_expired

log = dbg("providers.numeric")


class NumericProvider(MathProvider):
    name = "numeric"
    exact = False

    def simplify(self, expr):
        return sp.sympify(expr).evalf(self.config.precision)

    def differentiate(self, expr, var, *, deadline=None, cancel=None):
        stop_if_expired(deadline, cancel, "derivative")
        return sp.diff(expr, var)

    def limit(self, expr, var, point=sp.oo, *, deadline=None, cancel=None):
        stop_if_expired(deadline, cancel, "limit")
        expr = sp.sympify(expr)
        extra = expr.free_symbols - {var}
        if extra:
            names = ", ".join(sorted(str(sym) for sym in extra))
            raise InvalidParameter("expr", expr, f"numeric limits need {names} bound to numbers")
        f = sp.lambdify(var, expr, "mpmath")
        with mpmath.mp.workdps(self.config.precision):
            target = mpmath.inf if point is sp.oo else mpmath.mpf(str(point))
            return float(mpmath.limit(f, target))

    def nullspace(self, matrix) -> list:
        A = _as_float_array(matrix)
        _, sv, vh = np.linalg.svd(A)
        tol = sv.max(initial=0.0) * max(A.shape) * np.finfo(float).eps
        rank = int((sv > tol).sum())
        basis = vh[rank:].conj().T
        return [basis[:, i] for i in range(basis.shape[1])]

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

        search = _BoxSearch(N, D)
        thr = None if threshold is None else _to_qq(threshold)
        tol = _to_qq(tolerance)

        lower, argmax = sp.QQ(0), None
        heap = []
        counter = itertools.count()

        def push(lo, hi):
            nonlocal lower, argmax
            mid = (lo + hi) / 2
            val = search.value(mid)
            if val > lower:
                lower, argmax = val, mid
            bound = search.upper(lo, hi)
            key = -math.inf if bound is None else -float(bound)
            heapq.heappush(heap, (key, next(counter), lo, hi, bound))

        push(sp.QQ(0), sp.QQ(1))
        iterations, exhausted = 1, False
        while True:
            upper = heap[0][4]
            if thr is not None and (lower > thr or (upper is not None and upper <= thr)):
                break
            if upper is not None and upper - lower <= tol:
                break
            if iterations >= budget or expired(deadline, cancel):
                exhausted = True
                break
            _, _, lo, hi, _ = heapq.heappop(heap)
            mid = (lo + hi) / 2
            push(lo, mid)
            push(mid, hi)
            iterations += 1

        upper = math.inf if upper is None else float(upper)
        log.debug("sup_abs: %d boxes, bounds [%.6g, %.6g]%s",
                  iterations, float(lower), upper, " (exhausted)" if exhausted else "")

        x_at = None if argmax is None else float(argmax / (1 - argmax))
        return ExtremumResult(float(lower), upper, x_at, iterations, exhausted)


class _BoxSearch:
    """Enclosures of ``|N/D|`` in the compactified variable."""

    def __init__(self, N: sp.Poly, D: sp.Poly):
        self.m = max(N.degree(), D.degree())
        self.num = self._coeffs(N)
        self.den = self._coeffs(D)

    def _coeffs(self, poly: sp.Poly) -> list:
        # all_coeffs is highest degree first
        raw = [sp.QQ.from_sympy(c) for c in reversed(poly.all_coeffs())]
        return raw + [sp.QQ(0)] * (self.m + 1 - len(raw))

    def _eval(self, coeffs, u):
        v = 1 - u
        return sum(a * u ** k * v ** (self.m - k) for k, a in enumerate(coeffs) if a)

    def _enclose(self, coeffs, lo, hi):
        m = self.m
        total_lo = total_hi = sp.QQ(0)
        for k, a in enumerate(coeffs):
            if not a:
                continue
            t_lo = lo ** k * (1 - hi) ** (m - k)
            t_hi = hi ** k * (1 - lo) ** (m - k)
            if a > 0:
                total_lo += a * t_lo
                total_hi += a * t_hi
            else:
                total_lo += a * t_hi
                total_hi += a * t_lo
        return total_lo, total_hi

    def value(self, u):
        return abs(self._eval(self.num, u) / self._eval(self.den, u))

    def upper(self, lo, hi):
        n_lo, n_hi = self._enclose(self.num, lo, hi)
        d_lo, d_hi = self._enclose(self.den, lo, hi)
        if d_lo <= 0 <= d_hi:
            return None
        return max(abs(n_lo), abs(n_hi)) / min(abs(d_lo), abs(d_hi))


def _to_qq(value):
    return sp.QQ.from_sympy(sp.Rational(sp.N(value, 30)))


def _as_float_array(matrix) -> np.ndarray:
    if isinstance(matrix, np.ndarray):
        return matrix.astype(float, copy=False)
    M = sp.Matrix(matrix)
    if M.free_symbols:
        names = ", ".join(sorted(str(sym) for sym in M.free_symbols))
        raise InvalidParameter("matrix", M.shape, f"numeric null space needs {names} bound to numbers")
    return np.array(M.evalf(), dtype=float)


__all__ = ["NumericProvider"]
