"""Math Provider registry.

- register_provider: make a provider class available by name
- list_providers, get_provider: query helpers

``symbolic`` (sympy, exact) and ``numeric`` (mpmath/numpy, tolerance-bounded)
are registered on import.
"""
from __future__ import annotations

from typing import Dict, Optional, Type

from ..config import EngineConfig, load_config
from ..errors import InvalidParameter
from .base import ExtremumResult, MathProvider
from .numeric import NumericProvider
from .symbolic import SymbolicProvider

_REGISTRY: Dict[str, Type[MathProvider]] = {}


def register_provider(name: str, provider_cls: Type[MathProvider]) -> None:
    if name in _REGISTRY:
        raise ValueError(f"provider already registered: {name}")
    if not (isinstance(provider_cls, type) and issubclass(provider_cls, MathProvider)):
        raise TypeError(f"{provider_cls!r} is not a MathProvider subclass")
    _REGISTRY[name] = provider_cls


def list_providers() -> list[str]:
    return list(_REGISTRY.keys())


def get_provider(name: Optional[str] = None, config: Optional[EngineConfig] = None) -> MathProvider:
    """Instantiate the provider called ``name`` (default: ``config.provider``)."""
    config = config or load_config()
    name = name or config.provider
    cls = _REGISTRY.get(name)
    if cls is None:
        raise InvalidParameter("provider", name, f"unknown provider; choose from {list_providers()}")
    return cls(config)


def resolve_provider(provider, config: Optional[EngineConfig] = None) -> MathProvider:
    """Accept a provider instance, a registered name, or ``None``."""
    if isinstance(provider, MathProvider):
        return provider
    return get_provider(provider, config)


register_provider(SymbolicProvider.name, SymbolicProvider)
register_provider(NumericProvider.name, NumericProvider)


__all__ = [
    "ExtremumResult",
    "MathProvider",
    "SymbolicProvider",
    "NumericProvider",
    "register_provider",
    "list_providers",
    "get_provider",
    "resolve_provider",
]
