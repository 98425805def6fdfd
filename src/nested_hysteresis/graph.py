"""Kinetic graph data model.

A kinetic scheme is a weighted directed graph over binary occupancy states.
Vertices are tuples of 0/1 site occupancies; each edge binds or unbinds one
site and carries a rate weight (a sympy expression in ``x`` and ``s`` or a
plain number).

:class:`KineticGraph` wraps a frozen :class:`networkx.DiGraph`. Vertex order is
the insertion order of construction (all-zero vertex first, all-one vertex
last) and is the indexing contract for generator matrices and steady-state
vectors. Graphs are values: builders return new graphs and never edit one in
place.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Tuple

import networkx as nx

from .errors import MalformedGraph

StateVertex = Tuple[int, ...]


@dataclass(frozen=True)
class WeightedEdge:
    source: StateVertex
    target: StateVertex
    weight: Any

    @property
    def site(self) -> int:
        """Index of the single coordinate this edge flips."""
        return _flipped_site(self.source, self.target)

    @property
    def binding(self) -> bool:
        return self.target[self.site] == 1


def _flipped_site(u: StateVertex, v: StateVertex) -> int:
    diff = [i for i, (a, b) in enumerate(zip(u, v)) if a != b]
    if len(u) != len(v) or len(diff) != 1:
        raise MalformedGraph(f"edge {u}->{v} must flip exactly one site", edge=(u, v))
    return diff[0]


def hamming_weight(v: StateVertex) -> int:
    return sum(v)


class KineticGraph:
    """Immutable weighted occupancy graph."""

    __slots__ = ("_graph",)

    def __init__(self, graph: nx.DiGraph):
        self._graph = nx.freeze(graph.copy())

    @classmethod
    def from_edges(cls, vertices: Iterable[StateVertex], edges: Iterable) -> "KineticGraph":
        """Build a graph from externally supplied vertices and edges.

        ``edges`` holds :class:`WeightedEdge` values or ``(source, target,
        weight)`` triples. Endpoints must be listed in ``vertices``; structural
        checks (power-of-two size, one-site flips) run when the graph is
        stabilized or turned into a generator.
        """
        g = nx.DiGraph()
        for v in vertices:
            g.add_node(tuple(int(c) for c in v))
        for edge in edges:
            if isinstance(edge, WeightedEdge):
                u, v, w = edge.source, edge.target, edge.weight
            else:
                u, v, w = edge
            u, v = tuple(u), tuple(v)
            if u not in g or v not in g:
                raise MalformedGraph(f"edge {u}->{v} references an unknown vertex",
                                     vertex_count=g.number_of_nodes(), edge=(u, v))
            g.add_edge(u, v, weight=w)
        return cls(g)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def vertices(self) -> Tuple[StateVertex, ...]:
        return tuple(self._graph.nodes)

    @property
    def edges(self) -> Tuple[WeightedEdge, ...]:
        return tuple(WeightedEdge(u, v, d["weight"]) for u, v, d in self._graph.edges(data=True))

    @property
    def n_sites(self) -> int:
        first = next(iter(self._graph.nodes), ())
        return len(first)

    def weight(self, source: StateVertex, target: StateVertex):
        return self._graph.edges[source, target]["weight"]

    def has_edge(self, source: StateVertex, target: StateVertex) -> bool:
        return self._graph.has_edge(source, target)

    def out_edges(self, vertex: StateVertex) -> Tuple[WeightedEdge, ...]:
        return tuple(WeightedEdge(u, v, d["weight"]) for u, v, d in self._graph.out_edges(vertex, data=True))

    def index(self) -> dict:
        """Map each vertex to its position in the canonical order."""
        return {v: i for i, v in enumerate(self._graph.nodes)}

    def to_networkx(self) -> nx.DiGraph:
        """Return the underlying frozen graph (read-only)."""
        return self._graph

    def is_strongly_connected(self) -> bool:
        return self._graph.number_of_nodes() > 0 and nx.is_strongly_connected(self._graph)

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def __iter__(self) -> Iterator[StateVertex]:
        return iter(self._graph.nodes)

    def __repr__(self) -> str:
        return f"KineticGraph(sites={self.n_sites}, vertices={len(self)}, edges={self._graph.number_of_edges()})"


def validate_graph(graph: KineticGraph) -> int:
    """Check the structural invariants and return the site count ``n``.

    Raises :class:`MalformedGraph` when the vertex count is not ``2**n`` with
    ``n >= 1``, a vertex is not a 0/1 tuple of length ``n``, an extreme state
    is missing, or an edge flips other than exactly one site.
    """
    count = len(graph)
    if count < 2 or count & (count - 1):
        raise MalformedGraph(f"vertex count {count} is not a power of two >= 2", vertex_count=count)
    n = count.bit_length() - 1
    for v in graph.vertices:
        if len(v) != n or any(c not in (0, 1) for c in v):
            raise MalformedGraph(f"vertex {v!r} is not a {n}-site occupancy state", vertex_count=count)
    zero, full = (0,) * n, (1,) * n
    g = graph.to_networkx()
    if zero not in g or full not in g:
        raise MalformedGraph("graph lacks the all-empty or all-full state", vertex_count=count)
    for u, v in g.edges():
        try:
            _flipped_site(u, v)
        except MalformedGraph as exc:
            exc.vertex_count = count
            raise
    return n


__all__ = [
    "StateVertex",
    "WeightedEdge",
    "KineticGraph",
    "hamming_weight",
    "validate_graph",
]
