"""
JSON-RPC Client for an Ethereum node.

Lightweight alternative to web3.py: uses httpx for HTTP + eth-abi for encoding.
Supports read-only contract calls, nonce/gas queries, raw transaction
submission and receipt polling. All calls are async.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from typing import Any, Optional

import httpx

from ..errors import RpcError
from ..logging_config import get_logger
from .abi import decode_result, encode_call

_LOGGER = get_logger(__name__)

DEFAULT_RPC_URL = "http://localhost:8545"


class JsonRpcClient:
    """
    Async JSON-RPC client.

    One underlying httpx.AsyncClient is opened lazily and reused; call
    ``aclose()`` (or use ``async with``) to release it.
    """

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def request(self, method: str, params: list) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_call")
            params: RPC parameters

        Returns:
            Result field from the RPC response

        Raises:
            RpcError: If the transport fails or the node returns an error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        _LOGGER.debug("rpc.call", method=method)
        try:
            response = await self._http().post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RpcError(f"RPC transport error on {method}: {exc}") from exc

        if "error" in data:
            raise RpcError(f"RPC error: {data['error']}")

        return data.get("result")

    async def call_contract(
        self,
        contract_address: str,
        function_name: str,
        args: Optional[list] = None,
        abi: Optional[list] = None,
    ) -> Any:
        """
        Read from a smart contract (eth_call).

        Returns:
            Decoded return value(s), None for an empty result
        """
        if abi is None:
            raise ValueError("abi must be provided")
        calldata = encode_call(abi, function_name, args or [])
        result = await self.request(
            "eth_call", [{"to": contract_address, "data": calldata}, "latest"]
        )
        if result is None or result == "0x":
            return None
        return decode_result(abi, function_name, result)

    async def get_nonce(self, address: str) -> int:
        result = await self.request("eth_getTransactionCount", [address, "latest"])
        return int(result, 16)

    async def get_gas_price(self) -> int:
        result = await self.request("eth_gasPrice", [])
        return int(result, 16)

    async def get_chain_id(self) -> int:
        result = await self.request("eth_chainId", [])
        return int(result, 16)

    async def estimate_gas(self, tx: dict) -> int:
        result = await self.request("eth_estimateGas", [tx])
        return int(result, 16)

    async def send_raw_transaction(self, raw_tx: str) -> str:
        return await self.request("eth_sendRawTransaction", [raw_tx])

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
        poll_interval: float = 2.0,
    ) -> dict:
        """
        Wait for a transaction receipt.

        Raises:
            TimeoutError: If receipt not found within timeout
        """
        start = time.monotonic()
        while time.monotonic() - start < timeout:
            receipt = await self.request("eth_getTransactionReceipt", [tx_hash])
            if receipt is not None:
                return receipt
            await asyncio.sleep(poll_interval)

        raise TimeoutError(f"Transaction {tx_hash} not confirmed within {timeout}s")
