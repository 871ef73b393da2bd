"""
Off-chain data - URI-addressed documents living outside the ledger.

Provides the adapter registry and the stock adapters:
- json:       content-addressed in-memory storage
- file:       JSON documents in a local directory
- http/https: documents served over HTTP
"""

from .adapters import HttpAdapter, InMemoryAdapter, LocalDirAdapter, OffChainDataAdapter
from .client import AdapterSpec, OffChainDataClient

__all__ = [
    "AdapterSpec",
    "HttpAdapter",
    "InMemoryAdapter",
    "LocalDirAdapter",
    "OffChainDataAdapter",
    "OffChainDataClient",
]
