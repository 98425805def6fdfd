"""Recursive construction of nested hysteresis schemes.

The ``n + 1``-site scheme is built from the ``n``-site one by doubling:

* The 0-copy appends a ``0`` to every vertex, the 1-copy appends a ``1``.
  Vertices of the 0-copy are inserted first, so the all-zero state stays the
  first vertex and the all-one state becomes the last.
* Every copied edge keeps its endpoints (with the new coordinate appended) and
  has its weight multiplied by ``s``. Older coordinates therefore run on
  faster time scales as ``s`` grows.
* Two unscaled linking edges join the copies along the new coordinate. With
  the old vertices sorted by Hamming weight, ``first`` (fewest occupied sites)
  gets an unbinding edge ``first+1 -> first+0`` of weight ``1`` and ``last``
  (most occupied) gets a binding edge ``last+0 -> last+1`` of weight ``x``.

The new site can thus only bind when every older site is bound and only
unbind when every older site is empty. Selection uses the Hamming order of
the graph *before* doubling; the convergence behaviour depends on exactly
this construction.
"""
from __future__ import annotations

from typing import Optional

import networkx as nx

from .config import EngineConfig, load_config
from .debug import dbg, sample
from .errors import InvalidParameter
from .graph import KineticGraph, hamming_weight
from .parameters import check_positive, check_sites
from .parameters import x as X
from .stabilizer import stabilize_extremes

log = dbg("graph_builder")


def build_base(x=X) -> KineticGraph:
    """Single-site scheme: bind at rate ``x``, unbind at rate ``1``."""
    check_positive("x", x)
    g = nx.DiGraph()
    g.add_node((0,))
    g.add_node((1,))
    g.add_edge((0,), (1,), weight=x)
    g.add_edge((1,), (0,), weight=1)
    return KineticGraph(g)


def step(graph: KineticGraph, s, x=X) -> KineticGraph:
    """Double ``graph`` into the scheme with one more site."""
    check_positive("s", s)
    check_positive("x", x)
    old = graph.to_networkx()
    if old.number_of_nodes() == 0:
        raise InvalidParameter("graph", graph, "cannot double an empty graph")

    # sorted() is stable, so ties keep construction order
    sortverts = sorted(old.nodes, key=hamming_weight)
    first, last = sortverts[0], sortverts[-1]

    doubled = nx.DiGraph()
    for bit in (0, 1):
        doubled.add_nodes_from(v + (bit,) for v in old.nodes)
    for bit in (0, 1):
        for u, v, data in old.edges(data=True):
            doubled.add_edge(u + (bit,), v + (bit,), weight=data["weight"] * s)

    doubled.add_edge(first + (1,), first + (0,), weight=1)
    doubled.add_edge(last + (0,), last + (1,), weight=x)

    log.debug(
        "step: %d -> %d vertices, linking %s and %s",
        old.number_of_nodes(), doubled.number_of_nodes(), first, last,
    )
    return KineticGraph(doubled)


def iterate(base: KineticGraph, s, x=X, k: int = 0, *, config: Optional[EngineConfig] = None) -> KineticGraph:
    """Apply :func:`step` ``k`` times to ``base``.

    Returns the ``(n0 + k)``-site scheme where ``n0`` is the site count of
    ``base`` (``k + 1`` sites when starting from :func:`build_base`).
    """
    config = config or load_config()
    if isinstance(k, bool) or not isinstance(k, int) or k < 0:
        raise InvalidParameter("k", k, "iteration count must be a non-negative integer")
    check_sites(base.n_sites + k, max_sites=config.max_sites, warn_sites=config.warn_sites, logger=log)

    graph = base
    for _ in range(k):
        graph = step(graph, s, x)
    log.debug("iterate: %d sites, vertices %s", graph.n_sites, sample(graph.vertices))
    return graph


def build_scheme(n: int, s, x=X, q=None, *, config: Optional[EngineConfig] = None) -> KineticGraph:
    """Build the ``n``-site scheme, stabilized by ``q`` when given."""
    config = config or load_config()
    check_sites(n, max_sites=config.max_sites, warn_sites=config.warn_sites)
    graph = iterate(build_base(x), s, x, n - 1, config=config)
    if q is not None:
        graph = stabilize_extremes(graph, q)
    return graph


__all__ = ["build_base", "step", "iterate", "build_scheme"]
