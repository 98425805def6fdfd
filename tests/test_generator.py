import numpy as np
import pytest
import sympy as sp

from nested_hysteresis import MalformedGraph, build_base, build_generator, build_scheme
from nested_hysteresis.generator import column_sums
from nested_hysteresis.graph import KineticGraph
from nested_hysteresis.parameters import s, x


def test_base_generator():
    M = build_generator(build_base())
    assert isinstance(M, sp.MatrixBase)
    assert M == sp.Matrix([[-x, 1], [x, -1]])


@pytest.mark.parametrize("n", [1, 2, 3])
def test_symbolic_columns_sum_to_zero(n):
    M = build_generator(build_scheme(n, s, x, 1 / s))
    assert M.shape == (2 ** n, 2 ** n)
    assert all(c == 0 for c in column_sums(M))


def test_entries_follow_vertex_order():
    g = build_scheme(2, s, x, 1 / s)
    M = build_generator(g)
    pos = g.index()
    for e in g.edges:
        assert M[pos[e.target], pos[e.source]] == e.weight
    assert M[pos[(0, 1)], pos[(0, 0)]] == 0


def test_float_generator():
    M = build_generator(build_scheme(3, 10.0, 2.0, 0.1))
    assert isinstance(M, np.ndarray)
    assert M.dtype == float
    np.testing.assert_allclose(column_sums(M), 0.0, atol=1e-9)
    off = M - np.diag(np.diag(M))
    assert (off >= 0).all()
    assert (np.diag(M) < 0).all()


def test_exact_flag_forces_sympy():
    M = build_generator(build_scheme(2, 10, 2), exact=True)
    assert isinstance(M, sp.MatrixBase)
    assert all(c == 0 for c in column_sums(M))


def test_rejects_malformed_graph():
    g = KineticGraph.from_edges([(0, 0), (1, 0), (1, 1)], [((0, 0), (1, 0), 1)])
    with pytest.raises(MalformedGraph):
        build_generator(g)
