"""
ABI Loader - Contract ABIs and calldata encoding.

Single source of truth: the JSON artifacts shipped in ``wtlibs/chain/abis``.
Encoding uses eth-abi; selectors use Keccak-256 from eth-hash.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from eth_abi import decode, encode
from eth_hash.auto import keccak

ABI_DIR = Path(__file__).resolve().parent / "abis"


@lru_cache(maxsize=16)
def load_abi(contract_name: str) -> list[dict[str, Any]]:
    """
    Load ABI for a contract from the packaged artifacts.

    Args:
        contract_name: Contract name (e.g., "WTIndex", "Hotel")

    Returns:
        ABI as a list of dicts

    Raises:
        FileNotFoundError: If ABI file not found
    """
    abi_path = ABI_DIR / f"{contract_name}.json"
    if not abi_path.exists():
        raise FileNotFoundError(f"ABI not found: {abi_path}")

    with abi_path.open("r", encoding="utf-8") as f:
        artifact = json.load(f)

    return artifact["abi"]


def wt_index_abi() -> list[dict[str, Any]]:
    """Load WTIndex ABI."""
    return load_abi("WTIndex")


def hotel_abi() -> list[dict[str, Any]]:
    """Load Hotel ABI."""
    return load_abi("Hotel")


def airline_abi() -> list[dict[str, Any]]:
    """Load Airline ABI."""
    return load_abi("Airline")


def _find_entry(abi: list, entry_type: str, name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == entry_type and entry.get("name") == name:
            return entry
    raise ValueError(f"{entry_type.capitalize()} {name} not found in ABI")


def encode_call(abi: list, function_name: str, args: list) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex encoded calldata
    """
    func = _find_entry(abi, "function", function_name)
    input_types = [inp["type"] for inp in func.get("inputs", [])]
    sig = f"{function_name}({','.join(input_types)})"

    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    selector = keccak(sig.encode("utf-8"))[:4]
    encoded_args = encode(input_types, args) if args else b""

    return "0x" + selector.hex() + encoded_args.hex()


def decode_result(abi: list, function_name: str, data: str) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        Decoded result (single value or tuple), None for functions without outputs
    """
    func = _find_entry(abi, "function", function_name)
    output_types = [out["type"] for out in func.get("outputs", [])]
    if not output_types:
        return None

    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    decoded = decode(output_types, raw)

    if len(decoded) == 1:
        return decoded[0]
    return decoded


def event_topic(abi: list, event_name: str) -> str:
    event = _find_entry(abi, "event", event_name)
    input_types = [inp["type"] for inp in event.get("inputs", [])]
    sig = f"{event_name}({','.join(input_types)})"
    return "0x" + keccak(sig.encode("utf-8")).hex()


def decode_event_logs(abi: list, event_name: str, logs: list[dict]) -> list[dict[str, Any]]:
    """
    Decode receipt logs of one event with only non-indexed inputs.

    Returns:
        One dict per matching log, keyed by input name
    """
    event = _find_entry(abi, "event", event_name)
    topic = event_topic(abi, event_name)
    names = [inp["name"] for inp in event.get("inputs", [])]
    types = [inp["type"] for inp in event.get("inputs", [])]

    decoded: list[dict[str, Any]] = []
    for log in logs:
        topics = log.get("topics") or []
        if not topics or topics[0].lower() != topic:
            continue
        data = log.get("data", "0x")
        values = decode(types, bytes.fromhex(data[2:] if data.startswith("0x") else data))
        decoded.append(dict(zip(names, values)))
    return decoded


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format."""
    addr = address.lower().replace("0x", "")
    addr_hash = keccak(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result
