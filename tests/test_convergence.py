import math
import threading
import time

import numpy as np
import pytest
import sympy as sp

from nested_hysteresis import (
    ConvergenceCheckInconclusive,
    EngineConfig,
    InvalidParameter,
    Status,
    analyze,
    check_uniform_bound,
    derivative_limit,
    effective_hill_coefficient,
    fully_bound_probability,
    get_provider,
    limit_value,
    reference_hill,
    sample_fully_bound,
)
from nested_hysteresis.parameters import s, x


def _same(a, b):
    return sp.cancel(sp.together(a - b)) == 0


def test_fully_bound_is_last_entry(pi2):
    assert fully_bound_probability(pi2) == pi2[3]
    assert fully_bound_probability(np.array([0.25, 0.75])) == 0.75
    with pytest.raises(InvalidParameter):
        fully_bound_probability([])


def test_reference_hill():
    assert _same(reference_hill(3), x ** 3 / (1 + x ** 3))
    assert reference_hill(2, sp.Integer(3)) == sp.Rational(9, 10)
    with pytest.raises(InvalidParameter):
        reference_hill(0)


def test_two_site_limits(P2):
    assert _same(limit_value(P2), x ** 3 / (1 + x ** 3))
    assert _same(derivative_limit(P2), 3 * x ** 2 / (1 + x ** 3) ** 2)


def test_three_site_limits(P3):
    assert _same(limit_value(P3, s, "symbolic"), x ** 7 / (1 + x ** 7))
    assert _same(derivative_limit(P3, x, s, "symbolic"), 7 * x ** 6 / (1 + x ** 7) ** 2)


def test_effective_hill_coefficient(P3):
    assert effective_hill_coefficient(reference_hill(4), at=2) == 4
    assert effective_hill_coefficient(limit_value(P3)) == 7
    # finite s stays below the limiting cooperativity
    at_finite = effective_hill_coefficient(P3.subs(s, 1000), at=1)
    assert 1 < at_finite < 7


@pytest.mark.parametrize("xv", [1, 2, 5])
def test_pointwise_convergence_rate(P3, xv):
    H = reference_hill(7, sp.Integer(xv))
    errors = []
    for sv in (10, 100, 1000, 10000):
        err = abs(float(P3.subs({x: xv, s: sv}) - H))
        errors.append(err)
        assert 1e-4 <= err * math.sqrt(sv) <= 100
    assert all(a > b for a, b in zip(errors, errors[1:]))


def test_three_site_closed_form_error_at_one(P3):
    # |P(1, s) - 1/2| = (3 s^2 + 2 s + 1) / (2 (s^3 + 5 s^2 + 4 s + 2))
    gap = sp.Rational(1, 2) - P3.subs(x, 1)
    assert _same(gap, (3 * s ** 2 + 2 * s + 1) / (2 * (s ** 3 + 5 * s ** 2 + 4 * s + 2)))


def test_uniform_bound_hill_seven_holds(P3):
    verdict = check_uniform_bound(P3, reference_hill(7), 1000)
    assert verdict.status is Status.HOLDS
    assert verdict.bound_holds is True
    assert verdict.constant == 0.5
    assert verdict.counterexample_x is None
    assert verdict.sup_upper <= verdict.threshold
    assert verdict.sup_lower <= verdict.sup_upper
    assert verdict.observed_constant < 0.5


def test_uniform_bound_hill_six_fails(P3):
    verdict = check_uniform_bound(P3, reference_hill(6), 1000)
    assert verdict.status is Status.FAILS
    assert verdict.bound_holds is False
    assert verdict.constant is None
    xc = verdict.counterexample_x
    assert xc is not None and xc > 0
    gap = abs(float(P3.subs({s: 1000}).subs(x, sp.Rational(xc)) - reference_hill(6, sp.Rational(xc))))
    assert gap > 0.5 / math.sqrt(1000)


@pytest.mark.parametrize("provider", ["symbolic", "numeric"])
def test_two_site_bound_both_providers(P2, provider):
    holds = check_uniform_bound(P2, reference_hill(3), 1000, provider=provider)
    assert holds.status is Status.HOLDS
    fails = check_uniform_bound(P2, reference_hill(2), 1000, provider=provider)
    assert fails.status is Status.FAILS
    assert fails.sup_lower > fails.threshold


def test_bound_rejects_bad_inputs(P2):
    with pytest.raises(InvalidParameter):
        check_uniform_bound(P2, reference_hill(3), 0)
    with pytest.raises(InvalidParameter):
        check_uniform_bound(P2, reference_hill(3), 1000, constant=-1)


def test_cancel_gives_inconclusive(P2):
    event = threading.Event()
    event.set()
    verdict = check_uniform_bound(P2, reference_hill(3), 1000, cancel=event)
    assert verdict.status is Status.INCONCLUSIVE
    assert verdict.bound_holds is None
    with pytest.raises(ConvergenceCheckInconclusive) as info:
        verdict.require_definite()
    assert info.value.verdict is verdict


def test_expired_deadline_gives_inconclusive(P2):
    verdict = check_uniform_bound(P2, reference_hill(3), 1000, provider="numeric",
                                  deadline=time.monotonic() - 1.0)
    assert verdict.status is Status.INCONCLUSIVE


def test_exhausted_budget_gives_inconclusive(P2):
    config = EngineConfig(search_budget=1)
    verdict = check_uniform_bound(P2, reference_hill(3), 1000, provider="numeric", config=config)
    assert verdict.status is Status.INCONCLUSIVE
    assert "stopped early" in verdict.reason


def test_analyze_exact(P2):
    report = analyze(P2, 3, 1000)
    assert _same(report.limit_value, x ** 3 / (1 + x ** 3))
    assert _same(report.derivative_limit, 3 * x ** 2 / (1 + x ** 3) ** 2)
    assert report.bound_holds is True
    assert report.bound_constant == 0.5
    assert report.counterexample_x is None
    out = report.as_dict()
    assert out["bound_holds"] is True
    assert out["verdict"]["status"] == "holds"


def test_analyze_reports_counterexample(P2):
    report = analyze(P2, 2, 1000)
    assert report.bound_holds is False
    assert report.bound_constant is None
    assert report.counterexample_x > 0


def test_analyze_numeric_needs_point(P2):
    with pytest.raises(InvalidParameter):
        analyze(P2, 3, 1000, provider="numeric")
    report = analyze(P2, 3, 1000, provider="numeric", at_x=2)
    assert report.limit_value == pytest.approx(8 / 9, abs=1e-6)
    assert report.derivative_limit == pytest.approx(12 / 81, abs=1e-6)
    assert report.bound_holds is True


def test_analyze_raises_when_inconclusive(P2):
    event = threading.Event()
    event.set()
    with pytest.raises(ConvergenceCheckInconclusive):
        analyze(P2, 3, 1000, cancel=event)


def test_sample_fully_bound(P2):
    xs = [0.5, 1.0, 2.0]
    ss = [10.0, 100.0]
    grid = sample_fully_bound(P2, xs, ss)
    assert grid.shape == (2, 3)
    for i, sv in enumerate(ss):
        for j, xv in enumerate(xs):
            assert grid[i, j] == pytest.approx(float(P2.subs({x: xv, s: sv})), rel=1e-12)
        assert np.all(np.diff(grid[i]) > 0)
    with pytest.raises(InvalidParameter):
        sample_fully_bound(P2, [-1.0], ss)


def test_analyze_stops_before_limits(P2, monkeypatch):
    provider = get_provider("symbolic")
    calls = []
    monkeypatch.setattr(provider, "limit", lambda *a, **k: calls.append(a))
    event = threading.Event()
    event.set()
    with pytest.raises(ConvergenceCheckInconclusive) as info:
        analyze(P2, 3, 1000, provider=provider, cancel=event)
    assert calls == []
    assert info.value.verdict.status is Status.INCONCLUSIVE
    assert "limits" in info.value.verdict.reason


def test_analyze_stops_between_limits(P2, monkeypatch):
    provider = get_provider("symbolic")
    event = threading.Event()
    real_limit = provider.limit
    calls = []

    def limit_then_cancel(*args, **kwargs):
        calls.append(args)
        value = real_limit(*args, **kwargs)
        event.set()
        return value

    monkeypatch.setattr(provider, "limit", limit_then_cancel)
    with pytest.raises(ConvergenceCheckInconclusive) as info:
        analyze(P2, 3, 1000, provider=provider, cancel=event)
    assert len(calls) == 1
    assert info.value.verdict.bound_holds is None


def test_limits_respect_deadline(P2):
    past = time.monotonic() - 1.0
    with pytest.raises(ConvergenceCheckInconclusive):
        limit_value(P2, deadline=past)
    with pytest.raises(ConvergenceCheckInconclusive):
        derivative_limit(P2, deadline=past)


@pytest.mark.parametrize("provider", ["symbolic", "numeric"])
@pytest.mark.parametrize("n_eff", [sp.Rational(7, 2), 3.5])
def test_fractional_hill_exponent_fails(P3, provider, n_eff):
    verdict = check_uniform_bound(P3, reference_hill(n_eff), 1000, provider=provider)
    assert verdict.status is Status.FAILS
    xc = verdict.counterexample_x
    assert xc is not None and xc > 0
    p = float(P3.subs({s: 1000}).subs(x, sp.Rational(xc)))
    assert abs(p - xc ** 3.5 / (1 + xc ** 3.5)) > 0.5 / math.sqrt(1000)


@pytest.mark.parametrize("provider", ["symbolic", "numeric"])
def test_fractional_hill_exponent_holds(provider):
    H = reference_hill(sp.Rational(7, 2))
    # sup |H / s| = 1 / s, approached as x -> oo
    verdict = check_uniform_bound(H * (1 + 1 / s), H, 1000, provider=provider)
    assert verdict.status is Status.HOLDS
    assert verdict.sup_upper >= 1e-3 - 1e-9
