import pytest

from nested_hysteresis import build_generator, build_scheme, steady_state
from nested_hysteresis.parameters import s, x


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        help="Run tests that solve large symbolic schemes",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "slow: tests that solve large symbolic schemes",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-slow"):
        return
    skip = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)


# ---------------------------------------------------------------------------
# Exact steady states of the stabilized schemes (q = 1/s)
# ---------------------------------------------------------------------------


def _exact_pi(n):
    graph = build_scheme(n, s, x, 1 / s)
    return steady_state(build_generator(graph), provider="symbolic")


@pytest.fixture(scope="session")
def pi2():
    return _exact_pi(2)


@pytest.fixture(scope="session")
def pi3():
    return _exact_pi(3)


@pytest.fixture(scope="session")
def P2(pi2):
    return pi2[-1]


@pytest.fixture(scope="session")
def P3(pi3):
    return pi3[-1]
