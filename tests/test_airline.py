"""
OnChainAirline tests, driven through WTIndex against an in-process ledger.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest
from eth_abi import encode

from wtlibs.chain.abi import airline_abi, encode_call, event_topic, wt_index_abi
from wtlibs.errors import (
    AirlineNotFoundError,
    InputDataError,
    ObsoleteRecordError,
    RpcError,
    SmartContractInstantiationError,
)
from wtlibs.models import OnChainAirline, WTIndex, validate_airline_data
from wtlibs.offchain import AdapterSpec, InMemoryAdapter, OffChainDataClient
from wtlibs.utils import ZERO_ADDRESS

INDEX = "0x" + "11" * 20
MANAGER = "0x" + "22" * 20
NEW_MANAGER = "0x" + "33" * 20
AIRLINE = "0x" + "a1" * 20
NEW_AIRLINE = "0x" + "a2" * 20
GHOST = "0x" + "cc" * 20


class AirlineLedger:
    """Index and airline contracts answering eth_call-style reads."""

    def __init__(self) -> None:
        self.airlines: dict[str, dict[str, Any]] = {
            AIRLINE: {"endpoint": "https://ndc.example.com", "token": "secret", "manager": MANAGER},
        }
        self.calls: list[tuple[str, str]] = []

    async def call_contract(
        self, address: str, function_name: str, args: Optional[list] = None, abi: Optional[list] = None
    ) -> Any:
        self.calls.append((address.lower(), function_name))
        await asyncio.sleep(0)
        if function_name == "airlinesIndex":
            return 1 if args[0].lower() in self.airlines else 0
        if function_name == "getAirlines":
            return [ZERO_ADDRESS, AIRLINE, GHOST]
        if address.lower() not in self.airlines:
            raise RpcError("execution reverted")
        return self.airlines[address.lower()][function_name]

    async def estimate_gas(self, tx: dict) -> int:
        return 40000

    async def get_nonce(self, address: str) -> int:
        return 1

    def reads(self, function_name: str) -> int:
        return sum(1 for _, fn in self.calls if fn == function_name)


@pytest.fixture()
def ledger() -> AirlineLedger:
    return AirlineLedger()


@pytest.fixture()
def index(ledger: AirlineLedger) -> WTIndex:
    offchain = OffChainDataClient({"json": AdapterSpec(InMemoryAdapter, {"storage": {}})})
    return WTIndex(INDEX, ledger, offchain)


def edit_info_call(endpoint: str, token: str) -> str:
    edit = encode_call(airline_abi(), "editInfo", [endpoint, token])
    return encode_call(wt_index_abi(), "callAirline", [AIRLINE, bytes.fromhex(edit[2:])])


# ============ Reading ============


class TestReading:
    def test_get_airline(self, index: WTIndex) -> None:
        async def scenario():
            airline = await index.get_airline(AIRLINE)
            return await airline.to_plain_object()

        assert asyncio.run(scenario()) == {
            "address": AIRLINE,
            "manager": MANAGER,
            "endpoint": "https://ndc.example.com",
            "token": "secret",
        }

    def test_unknown_airline(self, index: WTIndex) -> None:
        with pytest.raises(AirlineNotFoundError, match="Not found"):
            asyncio.run(index.get_airline(GHOST))

    def test_get_all_airlines_skips_missing(self, index: WTIndex) -> None:
        airlines = asyncio.run(index.get_all_airlines())
        assert [a.address for a in airlines] == [AIRLINE]

    def test_validation(self) -> None:
        with pytest.raises(InputDataError) as excinfo:
            validate_airline_data({"endpoint": "nope", "token": ""})
        assert len(excinfo.value.errors) == 2


# ============ Transactions ============


class TestAddAirline:
    def test_add_airline(self, index: WTIndex) -> None:
        prepared = asyncio.run(
            index.add_airline(
                {"manager": MANAGER, "endpoint": "https://ndc.example.com", "token": "t0"}
            )
        )
        airline = prepared.entity
        assert isinstance(airline, OnChainAirline)
        assert prepared.transaction_data["data"] == encode_call(
            wt_index_abi(), "registerAirline", ["https://ndc.example.com", "t0"]
        )

        receipt = {
            "status": "0x1",
            "logs": [
                {
                    "topics": [event_topic(wt_index_abi(), "AirlineRegistered")],
                    "data": "0x" + encode(["address", "uint256"], [NEW_AIRLINE, 2]).hex(),
                }
            ],
        }
        prepared.callbacks.fire_receipt(receipt)

        assert airline.address.lower() == NEW_AIRLINE
        assert airline.dataset.is_deployed()
        assert airline.dataset.dirty_fields() == []

    def test_missing_token(self, index: WTIndex) -> None:
        with pytest.raises(InputDataError, match="Missing token"):
            asyncio.run(index.add_airline({"manager": MANAGER, "endpoint": "https://x"}))


class TestUpdateAirline:
    def test_endpoint_and_token_share_one_transaction(self, index: WTIndex) -> None:
        async def scenario():
            airline = await index.get_airline(AIRLINE)
            airline.endpoint = "https://ndc2.example.com"
            airline.token = "rotated"
            return airline, await index.update_airline(airline)

        airline, prepared = asyncio.run(scenario())
        assert len(prepared) == 1
        assert prepared[0].transaction_data["data"] == edit_info_call(
            "https://ndc2.example.com", "rotated"
        )

        prepared[0].callbacks.fire_receipt({"status": "0x1", "logs": []})
        assert airline.dataset.dirty_fields() == []

    def test_single_field_keeps_remote_value(self, index: WTIndex, ledger: AirlineLedger) -> None:
        async def scenario():
            airline = await index.get_airline(AIRLINE)
            airline.token = "rotated"
            return await index.update_airline(airline)

        (tx,) = asyncio.run(scenario())
        assert tx.transaction_data["data"] == edit_info_call("https://ndc.example.com", "rotated")
        assert ledger.reads("endpoint") == 1

    def test_failed_update_stays_dirty(self, index: WTIndex) -> None:
        async def scenario():
            airline = await index.get_airline(AIRLINE)
            airline.endpoint = "https://ndc2.example.com"
            return airline, await index.update_airline(airline)

        airline, (tx,) = asyncio.run(scenario())
        tx.callbacks.fire_error(RpcError("nonce too low"))
        assert airline.dataset.dirty_fields() == ["endpoint"]

    def test_invalid_endpoint(self, ledger: AirlineLedger) -> None:
        airline = OnChainAirline(ledger, INDEX, AIRLINE)
        with pytest.raises(InputDataError, match="invalid format"):
            airline.endpoint = "ndc.example.com"

    def test_update_undeployed(self, ledger: AirlineLedger) -> None:
        airline = OnChainAirline(ledger, INDEX)
        airline.set_local_data({"manager": MANAGER, "endpoint": "https://x", "token": "t"})
        with pytest.raises(SmartContractInstantiationError):
            asyncio.run(airline.update_on_chain_data({"from": MANAGER}))


class TestTransferAirline:
    def test_transfer_updates_manager_on_receipt(self, index: WTIndex, ledger: AirlineLedger) -> None:
        async def scenario():
            airline = await index.get_airline(AIRLINE)
            return airline, await index.transfer_airline(airline, NEW_MANAGER)

        airline, prepared = asyncio.run(scenario())
        assert prepared.transaction_data["from"] == MANAGER
        assert prepared.transaction_data["data"] == encode_call(
            wt_index_abi(), "transferAirline", [AIRLINE, NEW_MANAGER]
        )
        assert asyncio.run(airline.manager) == MANAGER

        prepared.callbacks.fire_receipt({"status": "0x1", "logs": []})

        assert asyncio.run(airline.manager) == NEW_MANAGER
        assert airline.dataset.dirty_fields() == []
        assert ledger.reads("manager") == 1

    def test_transfer_requires_deployment(self, ledger: AirlineLedger) -> None:
        airline = OnChainAirline(ledger, INDEX)
        with pytest.raises(SmartContractInstantiationError):
            asyncio.run(airline.transfer_on_chain_ownership(NEW_MANAGER, {"from": MANAGER}))

    def test_transfer_to_invalid_address(self, ledger: AirlineLedger) -> None:
        airline = OnChainAirline(ledger, INDEX, AIRLINE)
        with pytest.raises(InputDataError):
            asyncio.run(airline.transfer_on_chain_ownership("bob", {"from": MANAGER}))


class TestRemoveAirline:
    def test_remove_marks_obsolete(self, index: WTIndex) -> None:
        async def scenario():
            airline = await index.get_airline(AIRLINE)
            return airline, await index.remove_airline(airline)

        airline, prepared = asyncio.run(scenario())
        assert prepared.transaction_data["data"] == encode_call(
            wt_index_abi(), "deleteAirline", [AIRLINE]
        )
        prepared.callbacks.fire_receipt({"status": "0x1", "logs": []})
        with pytest.raises(ObsoleteRecordError):
            asyncio.run(airline.endpoint)
