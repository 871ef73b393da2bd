"""
Chain - On-chain interaction layer.

Provides the async JSON-RPC client, ABI management, and transaction
preparation/execution for the index and hotel contracts.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
