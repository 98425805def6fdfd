"""Namespaced debug logging for the engine.

Use `enable(True)` (or set env NESTED_HYSTERESIS_DEBUG=1) to see graph
construction sizes, solver pivot choices and uniform-bound search progress.

Helpers:
- dbg(name): logger under "nested_hysteresis.<name>"
- enable(flag): turn logging on/off for the whole package
- is_enabled(): check the global flag
- sample(seq, n): preview first/last items of long vertex or edge lists

Quiet by default. Warnings (site counts near the ceiling) still reach the
root logger through propagation when debug output is off.
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Iterable

ROOT = "nested_hysteresis"

_ENABLED = os.getenv("NESTED_HYSTERESIS_DEBUG", "0") not in ("0", "false", "False", "no", "")
_LOCK = threading.Lock()
_HANDLER: logging.Handler | None = None


def enable(flag: bool = True, *, level: int = logging.DEBUG) -> None:
    """Enable or disable debug output for the package."""
    global _ENABLED, _HANDLER
    with _LOCK:
        _ENABLED = bool(flag)
        lg = logging.getLogger(ROOT)
        if _ENABLED:
            if _HANDLER is None:
                _HANDLER = logging.StreamHandler()
                fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
                _HANDLER.setFormatter(logging.Formatter(fmt=fmt, datefmt="%H:%M:%S"))
                lg.addHandler(_HANDLER)
            lg.setLevel(level)
            lg.propagate = False
        else:
            if _HANDLER is not None:
                lg.removeHandler(_HANDLER)
                _HANDLER = None
            lg.setLevel(logging.WARNING)
            lg.propagate = True


def is_enabled() -> bool:
    return _ENABLED


def dbg(name: str) -> logging.Logger:
    """Return a child logger under the package namespace."""
    if _ENABLED and _HANDLER is None:
        enable(True)
    return logging.getLogger(f"{ROOT}.{name}")


def sample(seq: Iterable[Any], n: int = 4) -> str:
    """Return a short preview of a sequence for log lines."""
    lst = list(seq)
    if len(lst) <= n:
        return repr(lst)
    head = ", ".join(repr(x) for x in lst[: n // 2])
    tail = ", ".join(repr(x) for x in lst[-(n - n // 2):])
    return f"[{head}, ..., {tail}] (n={len(lst)})"


__all__ = ["enable", "is_enabled", "dbg", "sample"]
