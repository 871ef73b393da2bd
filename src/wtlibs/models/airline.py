"""
On-chain airline - an airline contract holding its booking ``endpoint`` and
the ``token`` used to authenticate against it.

``endpoint`` and ``token`` share the ``edit_info`` setter group: editing
either one, or both, produces a single ``editInfo`` transaction.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Awaitable, Mapping, Optional

import jsonschema
from jsonschema import FormatChecker

from ..chain.abi import airline_abi, decode_event_logs, encode_call, wt_index_abi
from ..chain.rpc import JsonRpcClient
from ..chain.tx import DEFAULT_GAS_COEFFICIENT, PreparedTransaction, build_contract_tx
from ..dataset import FieldBinding, RemotelyBackedDataset
from ..errors import InputDataError, SmartContractInstantiationError
from ..logging_config import get_logger
from ..utils import is_address, is_uri
from .base import track_operation

_LOGGER = get_logger(__name__)

AIRLINE_INPUT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "manager": {"type": "string", "pattern": "^0x[0-9a-fA-F]{40}$"},
        "endpoint": {"type": "string", "pattern": "^[a-zA-Z][a-zA-Z0-9+.-]*://"},
        "token": {"type": "string", "minLength": 1},
    },
}


def validate_airline_data(data: Mapping[str, Any]) -> None:
    validator_cls = jsonschema.validators.validator_for(AIRLINE_INPUT_SCHEMA)
    validator = validator_cls(AIRLINE_INPUT_SCHEMA, format_checker=FormatChecker())
    errors = sorted(validator.iter_errors(dict(data)), key=lambda e: list(e.path))
    if errors:
        formatted = [
            f"{'/'.join(str(part) for part in err.path) or '<root>'}: {err.message}"
            for err in errors
        ]
        raise InputDataError("Cannot update airline: invalid airline data", errors=formatted)


class OnChainAirline:
    def __init__(
        self,
        rpc: JsonRpcClient,
        index_address: str,
        address: Optional[str] = None,
        *,
        gas_coefficient: float = DEFAULT_GAS_COEFFICIENT,
    ) -> None:
        self.address = address
        self.rpc = rpc
        self.index_address = index_address
        self.gas_coefficient = gas_coefficient

        self.dataset = RemotelyBackedDataset(label=f"airline:{address or 'new'}")
        self.dataset.bind_fields(
            [
                FieldBinding("endpoint", partial(self._call, "endpoint"), setter_group="edit_info"),
                FieldBinding("token", partial(self._call, "token"), setter_group="edit_info"),
                FieldBinding("manager", partial(self._call, "manager")),
            ],
            setters={"edit_info": self._edit_info_on_chain},
        )
        if address:
            self.dataset.mark_deployed()

    def __repr__(self) -> str:
        return f"OnChainAirline(address={self.address!r}, state={self.dataset.state.value})"

    def _contract_address(self) -> str:
        if not self.address:
            raise SmartContractInstantiationError("Cannot get airline instance without address")
        return self.address

    async def _call(self, function_name: str) -> Any:
        return await self.rpc.call_contract(
            self._contract_address(), function_name, abi=airline_abi()
        )

    # ============ Properties ============

    @property
    def endpoint(self) -> Awaitable[str]:
        return self.dataset.get("endpoint")

    @endpoint.setter
    def endpoint(self, new_endpoint: str) -> None:
        if not new_endpoint:
            raise InputDataError("Cannot update airline: Cannot set endpoint when it is not provided")
        if not is_uri(new_endpoint):
            raise InputDataError("Cannot update airline: Cannot set endpoint with invalid format")
        self.dataset.set("endpoint", new_endpoint)

    @property
    def token(self) -> Awaitable[str]:
        return self.dataset.get("token")

    @token.setter
    def token(self, new_token: str) -> None:
        if not new_token or not isinstance(new_token, str):
            raise InputDataError("Cannot update airline: Cannot set token to null")
        self.dataset.set("token", new_token)

    @property
    def manager(self) -> Awaitable[str]:
        return self.dataset.get("manager")

    @manager.setter
    def manager(self, new_manager: str) -> None:
        if not new_manager:
            raise InputDataError("Cannot update airline: Cannot set manager to null")
        if self.address:
            raise InputDataError(
                "Cannot update airline: Cannot set manager when airline is deployed"
            )
        self.dataset.set("manager", new_manager)

    def set_local_data(self, new_data: Mapping[str, Any]) -> None:
        validate_airline_data(new_data)
        if new_data.get("manager"):
            self.manager = new_data["manager"]
        if new_data.get("endpoint"):
            self.endpoint = new_data["endpoint"]
        if new_data.get("token"):
            self.token = new_data["token"]

    async def to_plain_object(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "manager": await self.manager,
            "endpoint": await self.endpoint,
            "token": await self.token,
        }

    # ============ Transactions ============

    def _sender(self, options: Mapping[str, Any]) -> str:
        sender = options.get("from") or self.dataset.peek("manager")
        if not sender:
            raise InputDataError("Cannot prepare airline transaction: no sender")
        return sender

    async def _index_tx(
        self, function_name: str, args: list, options: Mapping[str, Any]
    ) -> PreparedTransaction:
        tx = await build_contract_tx(
            self.rpc,
            self.index_address,
            function_name,
            args,
            wt_index_abi(),
            self._sender(options),
            gas_coefficient=self.gas_coefficient,
        )
        return PreparedTransaction(transaction_data=tx, entity=self)

    async def _edit_info_on_chain(
        self, fields: dict[str, Any], options: dict[str, Any]
    ) -> PreparedTransaction:
        """Remote setter of the ``edit_info`` group; the untouched field keeps its remote value."""
        endpoint = fields["endpoint"] if "endpoint" in fields else await self.endpoint
        token = fields["token"] if "token" in fields else await self.token
        calldata = encode_call(airline_abi(), "editInfo", [endpoint, token])
        return await self._index_tx(
            "callAirline", [self._contract_address(), bytes.fromhex(calldata[2:])], options
        )

    async def create_on_chain_data(self, options: Mapping[str, Any]) -> PreparedTransaction:
        """
        Prepare the ``registerAirline`` transaction.

        Once mined, the receipt sets ``address`` from the AirlineRegistered
        log and marks the airline deployed.
        """
        endpoint = self.dataset.peek("endpoint")
        token = self.dataset.peek("token")
        if not endpoint or not token:
            raise InputDataError("Cannot create airline: endpoint and token must be set")
        if self.address:
            raise SmartContractInstantiationError("Cannot create airline: already deployed")
        prepared = await self._index_tx("registerAirline", [endpoint, token], options)
        prepared.callbacks.on_receipt.append(partial(self._on_created, self.dataset.generations()))
        return prepared

    def _on_created(self, generations: Mapping[str, int], receipt: dict) -> None:
        events = decode_event_logs(wt_index_abi(), "AirlineRegistered", receipt.get("logs") or [])
        if events:
            self.address = events[0]["airline"]
            self.dataset.label = f"airline:{self.address}"
        self.dataset.mark_deployed()
        self.dataset.mark_clean(generations)
        _LOGGER.debug("airline.created", address=self.address)

    async def update_on_chain_data(self, options: Mapping[str, Any]) -> list[PreparedTransaction]:
        """
        Raises:
            SmartContractInstantiationError: When the airline is not deployed
        """
        self._contract_address()
        operations = await self.dataset.update_remote_data(options)
        return [track_operation(operation) for operation in operations]

    async def transfer_on_chain_ownership(
        self, new_manager: str, options: Mapping[str, Any]
    ) -> PreparedTransaction:
        """
        Prepare ``transferAirline``. Kept apart from ``update_on_chain_data``
        since handing the airline over cannot be undone by its current manager.

        The receipt records ``new_manager`` as the airline's manager.

        Raises:
            SmartContractInstantiationError: When the airline is not deployed
            InputDataError: When ``new_manager`` is not an address
        """
        if not self.dataset.is_deployed():
            raise SmartContractInstantiationError("Cannot transfer airline: not deployed")
        if not is_address(new_manager):
            raise InputDataError(f"Cannot transfer airline: invalid manager {new_manager!r}")
        prepared = await self._index_tx(
            "transferAirline", [self._contract_address(), new_manager], options
        )
        prepared.callbacks.on_receipt.append(
            lambda receipt: self.dataset.sync("manager", new_manager)
        )
        return prepared

    async def remove_on_chain_data(self, options: Mapping[str, Any]) -> PreparedTransaction:
        """Prepare ``deleteAirline``; the receipt marks the airline obsolete."""
        if not self.dataset.is_deployed():
            raise SmartContractInstantiationError("Cannot remove airline: not deployed")
        prepared = await self._index_tx("deleteAirline", [self._contract_address()], options)
        prepared.callbacks.on_receipt.append(lambda receipt: self.dataset.mark_obsolete())
        return prepared
