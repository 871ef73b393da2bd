"""
WT index - the registry contract of hotels and airlines.

Hands out OnChainHotel and OnChainAirline wrappers and prepares the
index-level transactions (add, update, remove). Transactions are never sent
from here.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping, Optional

from ..chain.abi import to_checksum_address, wt_index_abi
from ..chain.rpc import JsonRpcClient
from ..chain.tx import DEFAULT_GAS_COEFFICIENT, PreparedTransaction
from ..errors import (
    AirlineNotFoundError,
    HotelNotFoundError,
    HotelNotInstantiableError,
    InputDataError,
    RpcError,
    WTLibsError,
)
from ..logging_config import get_logger
from ..offchain.client import OffChainDataClient
from ..pointer import DEFAULT_MAX_DEPTH
from ..utils import is_address, is_zero_address
from .airline import OnChainAirline
from .hotel import OnChainHotel

_LOGGER = get_logger(__name__)


class WTIndex:
    def __init__(
        self,
        address: str,
        rpc: JsonRpcClient,
        offchain: OffChainDataClient,
        *,
        gas_coefficient: float = DEFAULT_GAS_COEFFICIENT,
        max_pointer_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.address = address
        self.rpc = rpc
        self.offchain = offchain
        self.gas_coefficient = gas_coefficient
        self.max_pointer_depth = max_pointer_depth

    def __repr__(self) -> str:
        return f"WTIndex(address={self.address!r})"

    async def _ensure_listed(
        self, address: str, index_function: str, kind: str, not_found: type[WTLibsError]
    ) -> None:
        if not is_address(address):
            raise not_found(f"Cannot find {kind} at {address}: malformed address")
        try:
            position = await self.rpc.call_contract(
                self.address, index_function, [to_checksum_address(address)], abi=wt_index_abi()
            )
        except RpcError as exc:
            raise WTLibsError(f"Cannot find {kind} at {address}: {exc}") from exc
        # Position 0 is reserved as empty when the index is deployed
        if not position:
            raise not_found(f"Cannot find {kind} at {address}: Not found in {kind} list")

    async def _get_all(
        self, list_function: str, kind: str, get_one: Callable[[str], Any]
    ) -> list[Any]:
        addresses = await self.rpc.call_contract(self.address, list_function, abi=wt_index_abi())
        candidates = [addr for addr in (addresses or []) if not is_zero_address(addr)]
        results = await asyncio.gather(
            *(get_one(addr) for addr in candidates), return_exceptions=True
        )
        records: list[Any] = []
        for addr, result in zip(candidates, results):
            if isinstance(result, WTLibsError):
                _LOGGER.warning("index.record_skipped", kind=kind, address=addr, error=str(result))
                continue
            if isinstance(result, BaseException):
                raise result
            records.append(result)
        return records

    # ============ Hotels ============

    def _create_hotel_instance(self, address: Optional[str] = None) -> OnChainHotel:
        return OnChainHotel(
            self.rpc,
            self.address,
            self.offchain,
            address,
            gas_coefficient=self.gas_coefficient,
            max_pointer_depth=self.max_pointer_depth,
        )

    async def add_hotel(self, hotel_data: Mapping[str, Any]) -> PreparedTransaction:
        """
        Prepare registration of a new hotel.

        Returns:
            PreparedTransaction whose ``entity`` is the new OnChainHotel. The
            hotel gets its address once the receipt callbacks run.

        Raises:
            InputDataError: When manager or dataUri is missing or malformed
        """
        if not hotel_data.get("manager"):
            raise InputDataError("Cannot add hotel: Missing manager")
        if not hotel_data.get("dataUri"):
            raise InputDataError("Cannot add hotel: Missing dataUri")
        hotel = self._create_hotel_instance()
        hotel.set_local_data(hotel_data)
        return await hotel.create_on_chain_data({"from": hotel_data["manager"]})

    async def get_hotel(self, address: str) -> OnChainHotel:
        """
        Raises:
            HotelNotFoundError: When the address is malformed or not registered
            HotelNotInstantiableError: When the wrapper cannot be created
            WTLibsError: When the index cannot be queried
        """
        await self._ensure_listed(address, "hotelsIndex", "hotel", HotelNotFoundError)
        try:
            return self._create_hotel_instance(address)
        except Exception as exc:
            raise HotelNotInstantiableError(f"Cannot find hotel at {address}: {exc}") from exc

    async def get_all_hotels(self) -> list[OnChainHotel]:
        """All registered hotels; inaccessible ones are skipped."""
        return await self._get_all("getHotels", "hotel", self.get_hotel)

    async def update_hotel(self, hotel: OnChainHotel) -> list[PreparedTransaction]:
        """Prepare one transaction per changed group of on-chain fields."""
        return await hotel.update_on_chain_data({"from": await hotel.manager, "to": self.address})

    async def remove_hotel(self, hotel: OnChainHotel) -> PreparedTransaction:
        if not hotel.address:
            raise InputDataError("Cannot remove hotel without address")
        return await hotel.remove_on_chain_data({"from": await hotel.manager, "to": self.address})

    # ============ Airlines ============

    def _create_airline_instance(self, address: Optional[str] = None) -> OnChainAirline:
        return OnChainAirline(
            self.rpc, self.address, address, gas_coefficient=self.gas_coefficient
        )

    async def add_airline(self, airline_data: Mapping[str, Any]) -> PreparedTransaction:
        """
        Prepare registration of a new airline.

        Raises:
            InputDataError: When manager, endpoint or token is missing or malformed
        """
        for key in ("manager", "endpoint", "token"):
            if not airline_data.get(key):
                raise InputDataError(f"Cannot add airline: Missing {key}")
        airline = self._create_airline_instance()
        airline.set_local_data(airline_data)
        return await airline.create_on_chain_data({"from": airline_data["manager"]})

    async def get_airline(self, address: str) -> OnChainAirline:
        """
        Raises:
            AirlineNotFoundError: When the address is malformed or not registered
            WTLibsError: When the index cannot be queried
        """
        await self._ensure_listed(address, "airlinesIndex", "airline", AirlineNotFoundError)
        return self._create_airline_instance(address)

    async def get_all_airlines(self) -> list[OnChainAirline]:
        return await self._get_all("getAirlines", "airline", self.get_airline)

    async def update_airline(self, airline: OnChainAirline) -> list[PreparedTransaction]:
        return await airline.update_on_chain_data(
            {"from": await airline.manager, "to": self.address}
        )

    async def transfer_airline(
        self, airline: OnChainAirline, new_manager: str
    ) -> PreparedTransaction:
        return await airline.transfer_on_chain_ownership(
            new_manager, {"from": await airline.manager, "to": self.address}
        )

    async def remove_airline(self, airline: OnChainAirline) -> PreparedTransaction:
        if not airline.address:
            raise InputDataError("Cannot remove airline without address")
        return await airline.remove_on_chain_data(
            {"from": await airline.manager, "to": self.address}
        )
