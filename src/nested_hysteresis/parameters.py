"""Model parameters: ligand concentration ``x``, time-scale factor ``s``.

Parameters are passed explicitly to every operation. The symbols here are
conveniences for building the symbolic scheme; numbers work the same way.
"""
from __future__ import annotations

import numbers
from typing import Tuple

import sympy as sp

from .errors import InvalidParameter

x = sp.Symbol("x", positive=True)
s = sp.Symbol("s", positive=True)


def default_symbols() -> Tuple[sp.Symbol, sp.Symbol]:
    return x, s


def check_positive(name: str, value):
    """Reject parameters that are provably not positive.

    Numbers must be ``> 0``. Sympy values are rejected only when sympy can
    decide they are non-positive, so plain ``Symbol('x')`` passes.
    """
    if isinstance(value, sp.Basic):
        if value.is_positive is False:
            raise InvalidParameter(name, value, "must be positive")
        if value.is_number and value.is_real is False:
            raise InvalidParameter(name, value, "must be real")
        return value
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(name, value, "must be a real number or sympy expression")
    if not value > 0:
        raise InvalidParameter(name, value, "must be positive")
    return value


def check_sites(n, *, max_sites: int, warn_sites: int, logger=None) -> int:
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 1:
        raise InvalidParameter("n", n, "site count must be a positive integer")
    if n > max_sites:
        raise InvalidParameter("n", n, f"exceeds the configured ceiling of {max_sites} sites ({2 ** n} states)")
    if n > warn_sites and logger is not None:
        logger.warning("building %d-site scheme: %d states, %d edges", n, 2 ** n, 2 ** (n + 1) - 2)
    return int(n)


__all__ = ["x", "s", "default_symbols", "check_positive", "check_sites"]
