"""
JSON-backed WT index - an in-memory stand-in for the index contract.

Hotels live in a plain ``{"hotels": {address: record}}`` mapping, so tests
and fixtures can seed the index directly. Addresses and transaction ids are
synthetic, but they stay meaningful within one instance: an address returned
by ``add_hotel`` resolves through ``get_hotel``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..errors import HotelNotFoundError, InputDataError
from ..logging_config import get_logger
from ..utils import is_uri
from .hotel import validate_hotel_data

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class IndexWriteResult:
    address: str
    transaction_ids: list[str]


class JsonHotel:
    """A detached copy of one stored hotel record."""

    def __init__(self, record: Mapping[str, Any]) -> None:
        self.record = copy.deepcopy(dict(record))

    def __repr__(self) -> str:
        return f"JsonHotel(address={self.address!r})"

    @property
    def address(self) -> Optional[str]:
        return self.record.get("address")

    @property
    def manager(self) -> Optional[str]:
        return self.record.get("manager")

    @property
    def data_uri(self) -> Optional[str]:
        return self.record.get("dataUri")

    @data_uri.setter
    def data_uri(self, new_data_uri: str) -> None:
        if not is_uri(new_data_uri):
            raise InputDataError("Cannot update hotel: Cannot set dataUri with invalid format")
        self.record["dataUri"] = new_data_uri

    async def to_plain_object(self) -> dict[str, Any]:
        return copy.deepcopy(self.record)


class JsonWTIndex:
    def __init__(self, source: Optional[dict[str, Any]] = None) -> None:
        self.source = source if source is not None else {}
        self.source.setdefault("hotels", {})
        self._next_id = len(self.source["hotels"])

    def __repr__(self) -> str:
        return f"JsonWTIndex(hotels={len(self.hotels)})"

    @property
    def hotels(self) -> dict[str, dict[str, Any]]:
        return self.source["hotels"]

    def _new_address(self) -> str:
        while True:
            self._next_id += 1
            address = "0x" + format(self._next_id, "040x")
            if address not in self.hotels:
                return address

    async def add_hotel(self, hotel_data: Mapping[str, Any]) -> IndexWriteResult:
        """
        Store a new hotel under a synthetic address.

        Raises:
            InputDataError: When manager is missing or the data is malformed
        """
        if not hotel_data.get("manager"):
            raise InputDataError("Cannot add hotel: Missing manager")
        validate_hotel_data(hotel_data)
        address = self._new_address()
        self.hotels[address] = {**copy.deepcopy(dict(hotel_data)), "address": address}
        _LOGGER.debug("json_index.hotel_added", address=address)
        return IndexWriteResult(address=address, transaction_ids=[f"tx-add-{address}"])

    async def get_hotel(self, address: str) -> JsonHotel:
        """
        Raises:
            HotelNotFoundError: When nothing is stored at ``address``
        """
        record = self.hotels.get(address)
        if record is None:
            raise HotelNotFoundError(f"Cannot find hotel at {address}: Not found in hotel list")
        return JsonHotel(record)

    async def get_all_hotels(self) -> list[JsonHotel]:
        return [JsonHotel(record) for record in self.hotels.values()]

    async def update_hotel(self, hotel: JsonHotel) -> list[str]:
        """
        Write a modified copy back to the store.

        Raises:
            HotelNotFoundError: When the hotel is not stored
        """
        address = hotel.address
        if not address or address not in self.hotels:
            raise HotelNotFoundError(
                f"Cannot update hotel at {address or '~unknown~'}: not found"
            )
        self.hotels[address].update(copy.deepcopy(hotel.record))
        return [f"tx-update-{address}"]

    async def remove_hotel(self, hotel: JsonHotel) -> list[str]:
        """
        Raises:
            HotelNotFoundError: When the hotel is not stored under its manager
        """
        address = hotel.address
        stored = self.hotels.get(address) if address else None
        if stored is None or stored.get("manager") != hotel.manager:
            raise HotelNotFoundError(
                f"Cannot remove hotel at {address or 'unknown'}: Hotel does not exist"
            )
        del self.hotels[address]
        return [f"tx-remove-{address}"]
