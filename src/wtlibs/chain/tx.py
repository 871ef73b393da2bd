"""
Transaction Builder - Prepare, sign, and send Ethereum transactions.

Entities only ever *prepare* transactions: a PreparedTransaction holds the
unsigned transaction data plus callbacks that must run once the network
confirms it (e.g. marking a record deployed). Executing it is up to the
caller; ``sign_and_send`` is the stock executor for an eth-account account.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable

from eth_account.signers.local import LocalAccount

from ..errors import TransactionFailedError
from ..logging_config import get_logger
from .abi import encode_call, to_checksum_address
from .rpc import JsonRpcClient

_LOGGER = get_logger(__name__)

DEFAULT_GAS_COEFFICIENT = 2.0


@dataclass
class TransactionCallbacks:
    on_transaction_hash: list[Callable[[str], None]] = field(default_factory=list)
    on_receipt: list[Callable[[dict], None]] = field(default_factory=list)
    on_error: list[Callable[[BaseException], None]] = field(default_factory=list)

    def fire_transaction_hash(self, tx_hash: str) -> None:
        for callback in self.on_transaction_hash:
            callback(tx_hash)

    def fire_receipt(self, receipt: dict) -> None:
        for callback in self.on_receipt:
            callback(receipt)

    def fire_error(self, error: BaseException) -> None:
        for callback in self.on_error:
            callback(error)


@dataclass
class PreparedTransaction:
    """
    Unsigned transaction plus what to do when it is mined.

    Attributes:
        transaction_data: Unsigned tx dict (nonce, data, from, to, gas, value)
        callbacks: Hooks fired by the executor
        entity: The entity the transaction belongs to (e.g. an OnChainHotel)
    """

    transaction_data: dict[str, Any]
    callbacks: TransactionCallbacks = field(default_factory=TransactionCallbacks)
    entity: Any = None


def apply_gas_coefficient(estimate: int, coefficient: float = DEFAULT_GAS_COEFFICIENT) -> int:
    return int(math.ceil(estimate * coefficient))


async def build_contract_tx(
    rpc: JsonRpcClient,
    contract_address: str,
    function_name: str,
    args: list,
    abi: list,
    sender: str,
    value: int = 0,
    gas_coefficient: float = DEFAULT_GAS_COEFFICIENT,
) -> dict[str, Any]:
    """
    Build a contract call transaction (unsigned).

    Args:
        rpc: JSON-RPC client used for nonce and gas estimation
        contract_address: 0x-prefixed contract address
        function_name: Function to call
        args: Function arguments
        abi: Contract ABI
        sender: Address the transaction will be sent from
        value: ETH value in wei (default: 0)
        gas_coefficient: Multiplier applied to the node's gas estimate

    Returns:
        Unsigned transaction dict
    """
    calldata = encode_call(abi, function_name, args)
    to = to_checksum_address(contract_address)
    estimate = await rpc.estimate_gas({"from": sender, "to": to, "data": calldata})
    nonce = await rpc.get_nonce(sender)

    return {
        "nonce": nonce,
        "data": calldata,
        "from": sender,
        "to": to,
        "value": value,
        "gas": apply_gas_coefficient(estimate, gas_coefficient),
    }


async def sign_and_send(
    rpc: JsonRpcClient,
    prepared: PreparedTransaction,
    account: LocalAccount,
    wait: bool = True,
    timeout: float = 120,
    poll_interval: float = 2.0,
) -> dict:
    """
    Sign a prepared transaction, send it, and fire its callbacks.

    on_error fires when the node refuses the transaction or it reverts; a
    receipt timeout fires nothing since the transaction may still be mined.

    Args:
        rpc: JSON-RPC client
        prepared: Transaction produced by an entity
        account: eth-account account owning the ``from`` address
        wait: Whether to wait for the receipt (on_receipt only fires if True)
        timeout: Receipt wait timeout
        poll_interval: Receipt polling interval

    Returns:
        Dict with tx_hash and optionally receipt and status

    Raises:
        ValueError: If the account does not match the transaction sender
        TransactionFailedError: If the mined transaction reverted
    """
    tx = dict(prepared.transaction_data)
    sender = tx.pop("from", account.address)
    if sender.lower() != account.address.lower():
        raise ValueError(f"Transaction is from {sender}, cannot sign as {account.address}")
    if "gasPrice" not in tx:
        tx["gasPrice"] = await rpc.get_gas_price()
    if "chainId" not in tx:
        tx["chainId"] = await rpc.get_chain_id()

    signed = account.sign_transaction(tx)
    raw_tx = "0x" + bytes(signed.raw_transaction).hex()

    try:
        tx_hash = await rpc.send_raw_transaction(raw_tx)
    except Exception as exc:
        prepared.callbacks.fire_error(exc)
        raise
    _LOGGER.debug("tx.sent", tx_hash=tx_hash, to=tx.get("to"))
    prepared.callbacks.fire_transaction_hash(tx_hash)
    result: dict[str, Any] = {"tx_hash": tx_hash}

    if wait:
        receipt = await rpc.wait_for_receipt(tx_hash, timeout=timeout, poll_interval=poll_interval)
        status = int(receipt.get("status", "0x0"), 16)
        result["receipt"] = receipt
        result["status"] = status
        if status != 1:
            _LOGGER.warning("tx.reverted", tx_hash=tx_hash)
            error = TransactionFailedError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash)
            prepared.callbacks.fire_error(error)
            raise error
        prepared.callbacks.fire_receipt(receipt)

    return result
