"""Engine configuration.

Defaults live on :class:`EngineConfig`; :func:`load_config` overlays
``NESTED_HYSTERESIS_*`` environment variables, e.g.::

    NESTED_HYSTERESIS_MAX_SITES=6
    NESTED_HYSTERESIS_CONDITION_LIMIT=1e10
    NESTED_HYSTERESIS_PROVIDER=numeric

Every public operation accepts ``config=None`` and falls back to
``load_config()`` so no parameter state is shared between calls.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from .errors import InvalidParameter

ENV_PREFIX = "NESTED_HYSTERESIS_"


@dataclass(frozen=True)
class EngineConfig:
    """Tunable limits for construction, solving and bound searches.

    Attributes
    ----------
    max_sites:
        Largest site count the builder accepts; the state count is ``2**n``.
    warn_sites:
        Site counts above this log a warning (symbolic solves get slow).
    condition_limit:
        Largest condition estimate accepted for the direct numeric
        steady-state solve; stiffer systems go through state reduction.
    negative_tolerance:
        Round-off negatives in a direct numeric solve down to ``-tol`` are
        clipped to zero; anything below sends the solve to state reduction.
    pivot_candidates:
        How many rows (largest diagonal first) are tried as the normalization
        row of the numeric solve.
    search_budget:
        Iteration budget of the uniform-bound searches (boxes for the
        numeric branch-and-bound, endpoint probes for the symbolic one).
    search_tolerance:
        Target gap between certified lower and upper bounds on a supremum.
    precision:
        Decimal digits for mpmath evaluations.
    provider:
        Name of the default Math Provider.
    """

    max_sites: int = 8
    warn_sites: int = 4
    condition_limit: float = 1e12
    negative_tolerance: float = 1e-12
    pivot_candidates: int = 8
    search_budget: int = 20000
    search_tolerance: float = 1e-12
    precision: int = 30
    provider: str = "symbolic"

    def __post_init__(self):
        if self.max_sites < 1:
            raise InvalidParameter("max_sites", self.max_sites, "must be at least 1")
        if self.pivot_candidates < 1:
            raise InvalidParameter("pivot_candidates", self.pivot_candidates, "must be at least 1")
        if self.search_budget < 1:
            raise InvalidParameter("search_budget", self.search_budget, "must be at least 1")
        if self.condition_limit <= 0:
            raise InvalidParameter("condition_limit", self.condition_limit, "must be positive")

    def with_overrides(self, **changes) -> "EngineConfig":
        return replace(self, **changes)


def load_config(environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Build an :class:`EngineConfig` from defaults plus environment overrides."""
    environ = os.environ if environ is None else environ
    changes = {}
    for f in fields(EngineConfig):
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is None or raw == "":
            continue
        changes[f.name] = _parse(ENV_PREFIX + f.name.upper(), raw, type(f.default))
    return EngineConfig(**changes)


def _parse(name: str, raw: str, kind: type):
    try:
        if kind is not int:
            return kind(raw)
        value = float(raw)
    except ValueError as exc:
        raise InvalidParameter(name, raw, f"expected {kind.__name__}") from exc
    if not value.is_integer():
        raise InvalidParameter(name, raw, "expected a whole number")
    return int(value)


__all__ = ["EngineConfig", "load_config", "ENV_PREFIX"]
