"""
Configuration for wtlibs.

Values come from the process environment, optionally seeded from a .env
file (python-dotenv). Every setting has a default except the index address
and the off-chain locations, which enable optional features.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .pointer.storage_pointer import DEFAULT_MAX_DEPTH
from .chain.rpc import DEFAULT_RPC_URL
from .chain.tx import DEFAULT_GAS_COEFFICIENT

WTLIBS_DIR = Path.home() / ".wtlibs"
WTLIBS_ENV = WTLIBS_DIR / ".env"


@dataclass(frozen=True)
class WTLibsConfig:
    """
    Attributes:
        rpc_url: Ethereum JSON-RPC endpoint
        index_address: Address of the WTIndex contract
        default_data_storage: URI scheme used when uploading new documents
        offchain_root: Directory served under ``file://``
        http_storage_url: Base URL that ``https://`` uploads are PUT under
        gas_coefficient: Multiplier applied to gas estimates
        max_pointer_depth: Maximum nesting of linked documents
    """

    rpc_url: str = DEFAULT_RPC_URL
    index_address: Optional[str] = None
    default_data_storage: str = "json"
    offchain_root: Optional[Path] = None
    http_storage_url: Optional[str] = None
    gas_coefficient: float = DEFAULT_GAS_COEFFICIENT
    max_pointer_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "WTLibsConfig":
        """
        Load configuration from the environment.

        Args:
            env_path: .env file loaded first if it exists (default: ~/.wtlibs/.env).
                Variables already present in the environment take precedence.

        Raises:
            ConfigError: If a numeric setting cannot be parsed
        """
        env_path = env_path or WTLIBS_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        offchain_root = os.environ.get("WT_OFFCHAIN_ROOT")
        return cls(
            rpc_url=os.environ.get("WT_RPC_URL", DEFAULT_RPC_URL),
            index_address=os.environ.get("WT_INDEX_ADDRESS") or None,
            default_data_storage=os.environ.get("WT_DEFAULT_DATA_STORAGE", "json").lower(),
            offchain_root=Path(offchain_root).expanduser() if offchain_root else None,
            http_storage_url=os.environ.get("WT_HTTP_STORAGE_URL") or None,
            gas_coefficient=_parse_number(
                "WT_GAS_COEFFICIENT", float, DEFAULT_GAS_COEFFICIENT
            ),
            max_pointer_depth=_parse_number("WT_MAX_POINTER_DEPTH", int, DEFAULT_MAX_DEPTH),
        )


def _parse_number(name: str, kind: type, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid {name}: {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"Invalid {name}: must be positive")
    return value
