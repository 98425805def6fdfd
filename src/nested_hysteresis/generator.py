"""Markov generator (Laplacian) of a kinetic graph.

``M[target, source]`` holds the rate of ``source -> target`` and the diagonal
holds minus the total exit rate, so every column sums to zero and the
stationary distribution spans the null space of ``M``. Rows and columns follow
the graph's vertex order.
"""
from __future__ import annotations

from typing import Optional, Union

import numpy as np
import sympy as sp

from .debug import dbg
from .graph import KineticGraph, validate_graph

log = dbg("generator")

Generator = Union[sp.Matrix, np.ndarray]


def _is_exact(weight) -> bool:
    return isinstance(weight, sp.Basic)


def build_generator(graph: KineticGraph, exact: Optional[bool] = None) -> Generator:
    """Return the generator matrix of ``graph``.

    With ``exact=None`` the result is a :class:`sympy.Matrix` as soon as any
    weight is a sympy object (symbolic or an exact number), otherwise a float
    :class:`numpy.ndarray`. Raises :class:`MalformedGraph` for graphs that
    break the structural invariants.
    """
    validate_graph(graph)
    edges = graph.edges
    if exact is None:
        exact = any(_is_exact(e.weight) for e in edges)

    size = len(graph)
    pos = graph.index()
    if exact:
        M = sp.zeros(size, size)
    else:
        M = np.zeros((size, size), dtype=float)

    exits = [0] * size
    for e in edges:
        i, j = pos[e.target], pos[e.source]
        w = sp.sympify(e.weight) if exact else float(e.weight)
        M[i, j] = w
        exits[j] = exits[j] + w
    for j in range(size):
        M[j, j] = -exits[j]

    log.debug("generator: %dx%d (%s)", size, size, "exact" if exact else "float64")
    return M


def column_sums(M: Generator):
    """Column sums of a generator (all zero for a valid one)."""
    if isinstance(M, np.ndarray):
        return M.sum(axis=0)
    return [sp.simplify(sum(M.col(j))) for j in range(M.cols)]


__all__ = ["build_generator", "column_sums", "Generator"]
