"""Error kinds raised by the engine.

Every error carries the context needed to reproduce it (offending parameter,
vertex count or edge, null-space dimension, condition estimate, or the search
verdict) as attributes in addition to the message.
"""
from __future__ import annotations

from typing import Any, Optional


class HysteresisError(Exception):
    """Base class for all engine errors."""


class InvalidParameter(HysteresisError, ValueError):
    def __init__(self, name: str, value: Any, reason: str):
        self.name = name
        self.value = value
        super().__init__(f"invalid {name}={value!r}: {reason}")


class MalformedGraph(HysteresisError, ValueError):
    def __init__(self, message: str, *, vertex_count: Optional[int] = None, edge: Any = None):
        self.vertex_count = vertex_count
        self.edge = edge
        super().__init__(message)


class SingularSystem(HysteresisError, ArithmeticError):
    """Null space of the generator is not one-dimensional.

    Graphs produced by the builder are strongly connected, so this signals a
    broken construction rather than a runtime condition.
    """

    def __init__(self, dimension: int, size: int, message: Optional[str] = None):
        self.dimension = dimension
        self.size = size
        super().__init__(
            message or f"generator of size {size} has null space of dimension {dimension}, expected 1"
        )


class NumericInstability(HysteresisError, ArithmeticError):
    def __init__(self, condition: float, limit: float, message: Optional[str] = None):
        self.condition = condition
        self.limit = limit
        super().__init__(
            message or f"condition estimate {condition:.3e} exceeds limit {limit:.3e}"
        )


class ConvergenceCheckInconclusive(HysteresisError):
    """The analysis ran out of budget or was cancelled before reaching a verdict.

    ``verdict`` is the inconclusive :class:`BoundVerdict` when one was formed;
    a provider call stopped by its deadline raises with ``verdict=None``.
    """

    def __init__(self, verdict: Any = None, reason: Optional[str] = None):
        self.verdict = verdict
        if verdict is not None:
            reason = f"uniform bound search inconclusive after {verdict.iterations} iterations: {verdict.reason}"
        super().__init__(reason or "analysis stopped before a verdict")


__all__ = [
    "HysteresisError",
    "InvalidParameter",
    "MalformedGraph",
    "SingularSystem",
    "NumericInstability",
    "ConvergenceCheckInconclusive",
]
