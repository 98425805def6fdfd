"""Steady-state distribution of a generator matrix.

Two paths, chosen by the matrix type:

* ``sympy.Matrix``: the null space is computed exactly by the Math Provider
  and the single basis vector is normalised to sum to one. Entries are
  rational functions of ``x`` and ``s`` in cancelled form.
* ``numpy.ndarray``: the null-space dimension is read off the transition
  structure (one per closed communicating class), never from a float rank.
  One balance equation is then replaced by the normalization row
  ``sum(pi) = 1`` and the square system is solved directly; the replaced row
  is the best-conditioned choice among the rows with the largest diagonal
  magnitude. When no choice is within ``condition_limit`` (stiff schemes at
  large ``s``), the vector is computed by Grassmann-Taksar-Heyman state
  reduction instead, which uses no subtractions and keeps every entry to
  full relative precision whatever the spread of the rates.
"""
from __future__ import annotations

from typing import Optional

import networkx as nx
import numpy as np
import sympy as sp

from .config import EngineConfig, load_config
from .debug import dbg
from .errors import InvalidParameter, NumericInstability, SingularSystem
from .providers import MathProvider, resolve_provider

log = dbg("steady_state")

# condition numbers beyond this are numerically singular in float64
_SINGULAR = 1.0 / np.finfo(float).eps
# relative column-sum slack for a float matrix to count as a generator
_BALANCE_RTOL = 1e-9


def steady_state(matrix, provider=None, config: Optional[EngineConfig] = None):
    """Return the stationary vector ``pi`` with ``M pi = 0`` and ``sum(pi) = 1``.

    ``provider`` is a :class:`MathProvider`, a registered name, or ``None`` for
    ``config.provider``. Raises :class:`SingularSystem` when the null space is
    not one-dimensional and :class:`NumericInstability` when a numeric solve
    cannot be carried out to full precision.
    """
    config = config or load_config()
    provider = resolve_provider(provider, config)

    if isinstance(matrix, np.ndarray):
        return _solve_numeric(np.asarray(matrix, dtype=float), config)

    M = sp.Matrix(matrix)
    if not provider.exact:
        if M.free_symbols:
            names = ", ".join(sorted(str(sym) for sym in M.free_symbols))
            raise InvalidParameter(
                "provider", provider.name,
                f"symbolic generator in {names} needs an exact provider; substitute numbers first",
            )
        return _solve_numeric(np.array(M.evalf(), dtype=float), config)
    return _solve_exact(M, provider)


def _solve_exact(M: sp.Matrix, provider: MathProvider) -> sp.Matrix:
    _check_square(M.shape)
    basis = provider.nullspace(M)
    if len(basis) != 1:
        raise SingularSystem(len(basis), M.rows)
    v = sp.Matrix(basis[0])
    total = sp.cancel(sum(v))
    if total == 0:
        raise SingularSystem(1, M.rows, "null-space basis vector sums to zero; cannot normalise")
    pi = v.applyfunc(lambda e: sp.cancel(e / total))
    log.debug("exact steady state: %d entries", pi.rows)
    return pi


def _solve_numeric(A: np.ndarray, config: EngineConfig) -> np.ndarray:
    _check_square(A.shape)
    _check_generator(A)
    size = A.shape[0]

    closed = _closed_classes(A)
    if len(closed) != 1:
        raise SingularSystem(len(closed), size)
    members = np.array(sorted(closed[0]))
    if len(members) < size:
        log.debug("numeric steady state: %d transient states carry no mass", size - len(members))
    sub = A[np.ix_(members, members)]

    pi = np.zeros(size)
    pi[members] = _solve_irreducible(sub, config)
    return pi


def _solve_irreducible(A: np.ndarray, config: EngineConfig) -> np.ndarray:
    size = A.shape[0]
    if size == 1:
        return np.ones(1)

    order = np.argsort(-np.abs(np.diag(A)), kind="stable")
    best_row, best_cond = None, np.inf
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for row in order[: config.pivot_candidates]:
            B = A.copy()
            B[row, :] = 1.0
            try:
                cond = np.linalg.cond(B)
            except np.linalg.LinAlgError:
                continue
            if cond < _SINGULAR and cond < best_cond:
                best_row, best_cond = int(row), float(cond)

    if best_row is not None and best_cond <= config.condition_limit:
        B = A.copy()
        B[best_row, :] = 1.0
        rhs = np.zeros(size)
        rhs[best_row] = 1.0
        pi = np.linalg.solve(B, rhs)
        log.debug("numeric steady state: row %d, cond %.3e", best_row, best_cond)
        if pi.min() >= -config.negative_tolerance:
            pi = np.clip(pi, 0.0, None)
            return pi / pi.sum()
        log.debug("numeric steady state: negative entry %.3e, switching to state reduction", pi.min())
    else:
        log.debug("numeric steady state: cond %.3e over limit %.3e, switching to state reduction",
                  best_cond, config.condition_limit)
    return _state_reduction(A, best_cond, config.condition_limit)


def _state_reduction(A: np.ndarray, cond: float, limit: float) -> np.ndarray:
    """Grassmann-Taksar-Heyman elimination on an irreducible generator.

    States are censored out from the last one down; each pivot is the total
    rate from the eliminated state back into the kept ones, a sum of
    non-negative terms.
    """
    size = A.shape[0]
    R = A.T.copy()                      # R[i, j]: rate i -> j
    np.fill_diagonal(R, 0.0)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore", under="ignore"):
        for k in range(size - 1, 0, -1):
            pivot = R[k, :k].sum()
            if not (np.isfinite(pivot) and pivot > 0.0):
                raise NumericInstability(cond, limit, f"state reduction pivot {pivot!r} at state {k}")
            R[:k, k] /= pivot
            R[:k, :k] += np.outer(R[:k, k], R[k, :k])

        pi = np.zeros(size)
        pi[0] = 1.0
        for k in range(1, size):
            pi[k] = pi[:k] @ R[:k, k]
        total = pi.sum()
    if not np.isfinite(total):
        raise NumericInstability(cond, limit, "state reduction overflowed; rates span too wide a range")
    return pi / total


def _closed_classes(A: np.ndarray) -> list:
    """Communicating classes that no transition leaves; one per null-space dimension."""
    G = nx.DiGraph()
    G.add_nodes_from(range(A.shape[0]))
    targets, sources = np.nonzero(A)
    G.add_edges_from((int(j), int(i)) for i, j in zip(targets, sources) if i != j)
    C = nx.condensation(G)
    return [C.nodes[c]["members"] for c in C.nodes if C.out_degree(c) == 0]


def _check_generator(A: np.ndarray):
    if not np.all(np.isfinite(A)):
        raise InvalidParameter("matrix", A.shape, "generator has non-finite entries")
    off = A - np.diag(np.diag(A))
    if (off < 0).any():
        raise InvalidParameter("matrix", A.shape, "generator has negative off-diagonal rates")
    slack = _BALANCE_RTOL * np.abs(A).sum(axis=0)
    if (np.abs(A.sum(axis=0)) > slack).any():
        raise InvalidParameter("matrix", A.shape, "generator columns do not sum to zero")


def _check_square(shape):
    if len(shape) != 2 or shape[0] != shape[1] or shape[0] == 0:
        raise InvalidParameter("matrix", shape, "generator must be a non-empty square matrix")


__all__ = ["steady_state"]
