from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from ..errors import UnsupportedStorageError
from ..utils import uri_scheme
from .adapters import OffChainDataAdapter


@dataclass(frozen=True)
class AdapterSpec:
    """How to build an adapter: ``create(**options)``."""

    create: Callable[..., OffChainDataAdapter]
    options: dict[str, Any] = field(default_factory=dict)

    def build(self) -> OffChainDataAdapter:
        return self.create(**self.options)


class OffChainDataClient:
    """
    Registry of off-chain adapters keyed by URI scheme.

    Passed explicitly to every storage pointer and entity; two clients never
    share configuration. Scheme keys are case-insensitive.
    """

    def __init__(self, adapters: Optional[Mapping[str, AdapterSpec]] = None) -> None:
        self._adapters: dict[str, AdapterSpec] = {}
        self.setup(adapters)

    def setup(self, adapters: Optional[Mapping[str, AdapterSpec]]) -> None:
        """
        Replace the adapter map.

        Raises:
            ValueError: If a scheme is declared twice (ignoring case)
        """
        normalized: dict[str, AdapterSpec] = {}
        for key, spec in (adapters or {}).items():
            scheme = key.lower()
            if scheme in normalized:
                raise ValueError(f"Adapter declared twice: {scheme}")
            normalized[scheme] = spec
        self._adapters = normalized

    def reset(self) -> None:
        """Drop every configured adapter."""
        self._adapters = {}

    @property
    def schemes(self) -> list[str]:
        return sorted(self._adapters)

    def get_adapter(self, scheme: Optional[str]) -> OffChainDataAdapter:
        """
        Return a fresh adapter for a scheme.

        Raises:
            UnsupportedStorageError: If no adapter is configured for the scheme
        """
        scheme = scheme.lower() if scheme else None
        if not scheme or scheme not in self._adapters:
            raise UnsupportedStorageError(f"Unsupported data storage type: {scheme or 'null'}")
        return self._adapters[scheme].build()

    def adapter_for(self, uri: str) -> OffChainDataAdapter:
        return self.get_adapter(uri_scheme(uri))
