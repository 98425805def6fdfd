"""Slow down the exits from the two extreme occupancy states.

In every nested hysteresis scheme the all-empty state has a single outgoing
edge (binding the base site, index 0) and the all-full state has a single
outgoing edge (unbinding the base site). Multiplying both by ``q`` (typically
``1/s``) lets the chain dwell in the extreme states, which is what drives the
fully-bound probability towards a Hill function of coefficient ``2**n - 1``.
"""
from __future__ import annotations

import networkx as nx

from .debug import dbg
from .errors import MalformedGraph
from .graph import KineticGraph, StateVertex, validate_graph
from .parameters import check_positive

log = dbg("stabilizer")


def extreme_exit_edges(n: int) -> tuple[tuple[StateVertex, StateVertex], tuple[StateVertex, StateVertex]]:
    """Return the (empty exit, full exit) edges of an ``n``-site scheme."""
    zero, full = (0,) * n, (1,) * n
    return (zero, (1,) + zero[1:]), (full, (0,) + full[1:])


def stabilize_extremes(graph: KineticGraph, q) -> KineticGraph:
    n = validate_graph(graph)
    check_positive("q", q)
    targets = extreme_exit_edges(n)

    g = nx.DiGraph(graph.to_networkx())
    for u, v in targets:
        if not g.has_edge(u, v):
            raise MalformedGraph(f"expected exit edge {u}->{v} is missing", vertex_count=len(graph), edge=(u, v))
        g.edges[u, v]["weight"] = g.edges[u, v]["weight"] * q
    log.debug("stabilized %s and %s by %s", *targets, q)
    return KineticGraph(g)


__all__ = ["stabilize_extremes", "extreme_exit_edges"]
