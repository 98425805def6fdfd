import logging

import pytest
import sympy as sp

from nested_hysteresis import EngineConfig, InvalidParameter, debug, load_config
from nested_hysteresis.config import ENV_PREFIX
from nested_hysteresis.parameters import check_positive, check_sites


def test_defaults():
    cfg = load_config({})
    assert cfg == EngineConfig()
    assert cfg.provider == "symbolic"
    assert cfg.max_sites == 8


def test_environment_overrides():
    cfg = load_config({
        ENV_PREFIX + "MAX_SITES": "6",
        ENV_PREFIX + "CONDITION_LIMIT": "1e10",
        ENV_PREFIX + "PROVIDER": "numeric",
        ENV_PREFIX + "SEARCH_BUDGET": "",
    })
    assert cfg.max_sites == 6
    assert cfg.condition_limit == 1e10
    assert cfg.provider == "numeric"
    assert cfg.search_budget == EngineConfig().search_budget


def test_environment_from_os(monkeypatch):
    monkeypatch.setenv(ENV_PREFIX + "PRECISION", "50")
    assert load_config().precision == 50


def test_bad_values():
    with pytest.raises(InvalidParameter):
        load_config({ENV_PREFIX + "MAX_SITES": "many"})
    with pytest.raises(InvalidParameter):
        EngineConfig(max_sites=0)
    with pytest.raises(InvalidParameter):
        EngineConfig(condition_limit=-1.0)


def test_with_overrides_is_a_copy():
    base = EngineConfig()
    tuned = base.with_overrides(search_budget=10)
    assert tuned.search_budget == 10
    assert base.search_budget == 20000


def test_check_positive():
    y = sp.Symbol("y")
    assert check_positive("y", y) is y
    assert check_positive("v", 2.5) == 2.5
    for bad in (0, -1, sp.Integer(-2), sp.I, True, None, "1"):
        with pytest.raises(InvalidParameter):
            check_positive("v", bad)


def test_check_sites():
    assert check_sites(3, max_sites=4, warn_sites=2) == 3
    with pytest.raises(InvalidParameter):
        check_sites(5, max_sites=4, warn_sites=2)
    with pytest.raises(InvalidParameter):
        check_sites(1.5, max_sites=4, warn_sites=2)


def test_debug_helpers():
    assert debug.dbg("solver").name == "nested_hysteresis.solver"
    assert debug.sample([1, 2]) == "[1, 2]"
    preview = debug.sample(range(10))
    assert "..." in preview and "(n=10)" in preview


def test_debug_toggle():
    was = debug.is_enabled()
    try:
        debug.enable(True)
        assert debug.is_enabled()
        assert logging.getLogger(debug.ROOT).level == logging.DEBUG
        debug.enable(False)
        assert not debug.is_enabled()
        assert logging.getLogger(debug.ROOT).propagate
    finally:
        debug.enable(was)


@pytest.mark.parametrize("raw", ["8.7", "inf", "nan"])
def test_integer_settings_must_be_whole(raw):
    with pytest.raises(InvalidParameter):
        load_config({ENV_PREFIX + "MAX_SITES": raw})


def test_integer_settings_accept_float_spelling():
    assert load_config({ENV_PREFIX + "MAX_SITES": "6.0"}).max_sites == 6
