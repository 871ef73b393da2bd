from __future__ import annotations

from typing import Any, Mapping, Optional

from .chain.rpc import JsonRpcClient
from .config import WTLibsConfig
from .errors import ConfigError
from .models import WTIndex
from .offchain import (
    AdapterSpec,
    HttpAdapter,
    InMemoryAdapter,
    LocalDirAdapter,
    OffChainDataAdapter,
    OffChainDataClient,
)
from .pointer import StoragePointer


def default_adapters(config: WTLibsConfig) -> dict[str, AdapterSpec]:
    """Adapters enabled by a configuration: json always, file and http(s) when configured."""
    adapters = {"json": AdapterSpec(InMemoryAdapter, {"storage": {}})}
    if config.offchain_root is not None:
        adapters["file"] = AdapterSpec(LocalDirAdapter, {"root": config.offchain_root})
    http = AdapterSpec(HttpAdapter, {"base_url": config.http_storage_url})
    adapters["http"] = http
    adapters["https"] = http
    return adapters


class WTLibs:
    """Entry point tying the RPC client, the adapter registry and the index together."""

    def __init__(
        self,
        config: WTLibsConfig,
        rpc: Optional[JsonRpcClient] = None,
        offchain: Optional[OffChainDataClient] = None,
    ) -> None:
        self.config = config
        self.rpc = rpc or JsonRpcClient(config.rpc_url)
        self.offchain = offchain or OffChainDataClient(default_adapters(config))

    @classmethod
    def from_config(
        cls,
        config: Optional[WTLibsConfig] = None,
        adapters: Optional[Mapping[str, AdapterSpec]] = None,
    ) -> "WTLibs":
        config = config or WTLibsConfig.from_env()
        offchain = OffChainDataClient(adapters) if adapters is not None else None
        return cls(config, offchain=offchain)

    async def __aenter__(self) -> "WTLibs":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.rpc.aclose()

    def get_index(self, address: Optional[str] = None) -> WTIndex:
        address = address or self.config.index_address
        if not address:
            raise ConfigError("No WT index address configured (WT_INDEX_ADDRESS)")
        return WTIndex(
            address,
            self.rpc,
            self.offchain,
            gas_coefficient=self.config.gas_coefficient,
            max_pointer_depth=self.config.max_pointer_depth,
        )

    def get_offchain_data_client(self, scheme: Optional[str] = None) -> OffChainDataAdapter:
        return self.offchain.get_adapter(scheme or self.config.default_data_storage)

    def storage_pointer(self, uri: str, fields: Any = ()) -> StoragePointer:
        return StoragePointer(uri, fields, self.offchain, max_depth=self.config.max_pointer_depth)
