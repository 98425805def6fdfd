"""Nested hysteresis kinetic engine.

Pipeline: build the ``n``-site scheme, stabilize its extreme states, form the
generator, solve for the steady state, and compare the fully-bound
probability with a Hill function as the time-scale factor ``s`` grows.
"""

from .config import EngineConfig, load_config
from .convergence import (
    BoundVerdict,
    ConvergenceReport,
    Status,
    analyze,
    check_uniform_bound,
    derivative_limit,
    effective_hill_coefficient,
    fully_bound_probability,
    limit_value,
    reference_hill,
    sample_fully_bound,
)
from .errors import (
    ConvergenceCheckInconclusive,
    HysteresisError,
    InvalidParameter,
    MalformedGraph,
    NumericInstability,
    SingularSystem,
)
from .generator import build_generator
from .graph import KineticGraph, StateVertex, WeightedEdge
from .graph_builder import build_base, build_scheme, iterate, step
from .parameters import s, x
from .providers import MathProvider, get_provider, list_providers, register_provider
from .stabilizer import stabilize_extremes
from .steady_state import steady_state

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "load_config",
    "BoundVerdict",
    "ConvergenceReport",
    "Status",
    "analyze",
    "check_uniform_bound",
    "derivative_limit",
    "effective_hill_coefficient",
    "fully_bound_probability",
    "limit_value",
    "reference_hill",
    "sample_fully_bound",
    "ConvergenceCheckInconclusive",
    "HysteresisError",
    "InvalidParameter",
    "MalformedGraph",
    "NumericInstability",
    "SingularSystem",
    "build_generator",
    "KineticGraph",
    "StateVertex",
    "WeightedEdge",
    "build_base",
    "build_scheme",
    "iterate",
    "step",
    "s",
    "x",
    "MathProvider",
    "get_provider",
    "list_providers",
    "register_provider",
    "stabilize_extremes",
    "steady_state",
]
