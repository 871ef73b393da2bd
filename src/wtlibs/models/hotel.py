"""
On-chain hotel - a hotel contract holding a ``dataUri`` pointer to its data.

The on-chain fields are served by a RemotelyBackedDataset; the off-chain
document graph behind ``dataUri`` is exposed as a StoragePointer under
``data_index``. Every mutation of the ledger is returned as a
PreparedTransaction and only takes effect once its receipt callbacks run.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Awaitable, Iterable, Mapping, Optional

import jsonschema
from jsonschema import FormatChecker

from ..chain.abi import encode_call, decode_event_logs, hotel_abi, wt_index_abi
from ..chain.rpc import JsonRpcClient
from ..chain.tx import DEFAULT_GAS_COEFFICIENT, PreparedTransaction, build_contract_tx
from ..dataset import FieldBinding, RemotelyBackedDataset
from ..errors import InputDataError, SmartContractInstantiationError
from ..logging_config import get_logger
from ..offchain.client import OffChainDataClient
from ..pointer import DEFAULT_MAX_DEPTH, FieldSchema, StoragePointer
from ..utils import is_uri
from .base import track_operation

_LOGGER = get_logger(__name__)

# Keep in line with the published hotel description format.
HOTEL_DESCRIPTION_FIELDS = (
    "location",
    "name",
    "description",
    "roomTypes",
    "contacts",
    "address",
    "timezone",
    "currency",
    "images",
    "amenities",
    "updatedAt",
)

HOTEL_DATA_INDEX_SCHEMA = (
    FieldSchema.pointer("descriptionUri", HOTEL_DESCRIPTION_FIELDS),
)

HOTEL_INPUT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "manager": {"type": "string", "pattern": "^0x[0-9a-fA-F]{40}$"},
        "dataUri": {"type": "string", "pattern": "^[a-zA-Z][a-zA-Z0-9+.-]*://"},
    },
}


def validate_hotel_data(data: Mapping[str, Any]) -> None:
    """
    Raises:
        InputDataError: With one message per schema violation
    """
    validator_cls = jsonschema.validators.validator_for(HOTEL_INPUT_SCHEMA)
    validator = validator_cls(HOTEL_INPUT_SCHEMA, format_checker=FormatChecker())
    errors = sorted(validator.iter_errors(dict(data)), key=lambda e: list(e.path))
    if errors:
        formatted = [
            f"{'/'.join(str(part) for part in err.path) or '<root>'}: {err.message}"
            for err in errors
        ]
        raise InputDataError("Cannot update hotel: invalid hotel data", errors=formatted)


class OnChainHotel:
    def __init__(
        self,
        rpc: JsonRpcClient,
        index_address: str,
        offchain: OffChainDataClient,
        address: Optional[str] = None,
        *,
        gas_coefficient: float = DEFAULT_GAS_COEFFICIENT,
        max_pointer_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """
        Args:
            rpc: JSON-RPC client
            index_address: WTIndex contract the hotel is registered in
            offchain: Adapter registry used to resolve ``data_index``
            address: Hotel contract address. Without it the hotel is local-only
                until ``create_on_chain_data`` is mined.
        """
        self.address = address
        self.rpc = rpc
        self.index_address = index_address
        self.offchain = offchain
        self.gas_coefficient = gas_coefficient
        self.max_pointer_depth = max_pointer_depth
        self._data_index: Optional[StoragePointer] = None

        self.dataset = RemotelyBackedDataset(label=f"hotel:{address or 'new'}")
        self.dataset.bind_fields(
            [
                FieldBinding("data_uri", self._fetch_data_uri, setter_group="edit_info"),
                FieldBinding("manager", self._fetch_manager),
            ],
            setters={"edit_info": self._edit_info_on_chain},
        )
        if address:
            self.dataset.mark_deployed()

    def __repr__(self) -> str:
        return f"OnChainHotel(address={self.address!r}, state={self.dataset.state.value})"

    def _contract_address(self) -> str:
        if not self.address:
            raise SmartContractInstantiationError("Cannot get hotel instance without address")
        return self.address

    async def _fetch_data_uri(self) -> str:
        return await self.rpc.call_contract(self._contract_address(), "dataUri", abi=hotel_abi())

    async def _fetch_manager(self) -> str:
        return await self.rpc.call_contract(self._contract_address(), "manager", abi=hotel_abi())

    # ============ Properties ============

    @property
    def data_uri(self) -> Awaitable[str]:
        return self.dataset.get("data_uri")

    @data_uri.setter
    def data_uri(self, new_data_uri: str) -> None:
        if not new_data_uri:
            raise InputDataError("Cannot update hotel: Cannot set dataUri when it is not provided")
        if not is_uri(new_data_uri):
            raise InputDataError("Cannot update hotel: Cannot set dataUri with invalid format")
        if new_data_uri != self.dataset.peek("data_uri"):
            self._data_index = None
        self.dataset.set("data_uri", new_data_uri)

    @property
    def manager(self) -> Awaitable[str]:
        return self.dataset.get("manager")

    @manager.setter
    def manager(self, new_manager: str) -> None:
        if not new_manager:
            raise InputDataError("Cannot update hotel: Cannot set manager to null")
        if self.address:
            raise InputDataError("Cannot update hotel: Cannot set manager when hotel is deployed")
        self.dataset.set("manager", new_manager)

    @property
    def data_index(self) -> Awaitable[StoragePointer]:
        """Awaitable StoragePointer over the current ``data_uri``."""
        return self._get_data_index()

    async def _get_data_index(self) -> StoragePointer:
        if self._data_index is None:
            data_uri = await self.data_uri
            # data_uri may have been replaced while we were waiting
            data_uri = self.dataset.peek("data_uri", data_uri)
            if self._data_index is None or self._data_index.ref != data_uri:
                self._data_index = StoragePointer(
                    data_uri,
                    HOTEL_DATA_INDEX_SCHEMA,
                    self.offchain,
                    max_depth=self.max_pointer_depth,
                )
        return self._data_index

    def set_local_data(self, new_data: Mapping[str, Any]) -> None:
        """
        Update manager and dataUri locally. Neither can be nulled; manager can
        only change while the hotel is not deployed.
        """
        validate_hotel_data(new_data)
        if new_data.get("manager"):
            self.manager = new_data["manager"]
        if new_data.get("dataUri"):
            self.data_uri = new_data["dataUri"]

    async def to_plain_object(self, resolved_fields: Optional[Iterable[str]] = None) -> dict[str, Any]:
        """
        Plain representation of the hotel.

        Off-chain data is resolved recursively by default; ``resolved_fields``
        limits it to the given dot-notation paths (``descriptionUri.location``).
        Documents appear as ``{"ref": uri, "contents": {...}}``.
        """
        data_index = await self.data_index
        return {
            "manager": await self.manager,
            "address": self.address,
            "dataUri": await data_index.to_plain_object(resolved_fields),
        }

    # ============ Transactions ============

    def _sender(self, options: Mapping[str, Any]) -> str:
        sender = options.get("from") or self.dataset.peek("manager")
        if not sender:
            raise InputDataError("Cannot prepare hotel transaction: no sender")
        return sender

    async def _edit_info_on_chain(
        self, fields: dict[str, Any], options: dict[str, Any]
    ) -> PreparedTransaction:
        """Remote setter of the ``edit_info`` group."""
        calldata = encode_call(hotel_abi(), "editInfo", [fields["data_uri"]])
        tx = await build_contract_tx(
            self.rpc,
            self.index_address,
            "callHotel",
            [self._contract_address(), bytes.fromhex(calldata[2:])],
            wt_index_abi(),
            self._sender(options),
            gas_coefficient=self.gas_coefficient,
        )
        return PreparedTransaction(transaction_data=tx, entity=self)

    async def create_on_chain_data(self, options: Mapping[str, Any]) -> PreparedTransaction:
        """
        Prepare the ``registerHotel`` transaction.

        Once mined, the receipt sets ``address`` from the HotelRegistered log,
        marks the hotel deployed and clears the fields the transaction carried.
        """
        if not self.dataset.peek("data_uri"):
            raise InputDataError("Cannot create hotel: dataUri is not set")
        if self.address:
            raise SmartContractInstantiationError("Cannot create hotel: already deployed")
        tx = await build_contract_tx(
            self.rpc,
            self.index_address,
            "registerHotel",
            [self.dataset.peek("data_uri")],
            wt_index_abi(),
            self._sender(options),
            gas_coefficient=self.gas_coefficient,
        )
        prepared = PreparedTransaction(transaction_data=tx, entity=self)
        prepared.callbacks.on_receipt.append(partial(self._on_created, self.dataset.generations()))
        return prepared

    def _on_created(self, generations: Mapping[str, int], receipt: dict) -> None:
        events = decode_event_logs(wt_index_abi(), "HotelRegistered", receipt.get("logs") or [])
        if events:
            self.address = events[0]["hotel"]
            self.dataset.label = f"hotel:{self.address}"
        self.dataset.mark_deployed()
        # Fields written after the transaction was prepared stay dirty.
        self.dataset.mark_clean(generations)
        _LOGGER.debug("hotel.created", address=self.address)

    async def update_on_chain_data(self, options: Mapping[str, Any]) -> list[PreparedTransaction]:
        """
        Prepare one transaction per dirty setter group.

        A receipt confirms the covered fields; an executor error rejects them
        and they stay dirty for the next update.

        Raises:
            SmartContractInstantiationError: When the hotel is not deployed
        """
        self._contract_address()
        operations = await self.dataset.update_remote_data(options)
        return [track_operation(operation) for operation in operations]

    async def remove_on_chain_data(self, options: Mapping[str, Any]) -> PreparedTransaction:
        """Prepare ``deleteHotel``; the receipt marks the hotel obsolete."""
        if not self.dataset.is_deployed():
            raise SmartContractInstantiationError("Cannot remove hotel: not deployed")
        tx = await build_contract_tx(
            self.rpc,
            self.index_address,
            "deleteHotel",
            [self._contract_address()],
            wt_index_abi(),
            self._sender(options),
            gas_coefficient=self.gas_coefficient,
        )
        prepared = PreparedTransaction(transaction_data=tx, entity=self)
        prepared.callbacks.on_receipt.append(lambda receipt: self.dataset.mark_obsolete())
        return prepared
