"""
Off-chain data adapters - one per URI scheme.

Every adapter downloads a parsed JSON document for a URI and uploads a
document, returning the URI it can later be downloaded from. Any transport
or parse failure on download surfaces as RemoteDataReadError.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

import httpx

from ..errors import RemoteDataReadError, RemoteWriteError
from ..logging_config import get_logger
from ..utils import canonical_json, content_hash, uri_locator

_LOGGER = get_logger(__name__)


class OffChainDataAdapter(Protocol):
    async def download(self, uri: str) -> Any:
        ...

    async def upload(self, document: Any) -> str:
        ...


# ============ In-memory (json://) ============


@dataclass
class InMemoryAdapter:
    """
    Content-addressed in-memory document store.

    Documents are keyed by the SHA-256 of their RFC 8785 canonical form, so
    uploading the same document twice yields the same URI. Share one
    ``storage`` dict between adapter instances to share the documents.
    """

    storage: dict[str, Any] = field(default_factory=dict)
    scheme: str = "json"

    def store(self, key: str, document: Any) -> str:
        """Put a document under an explicit key (fixtures, migrations)."""
        self.storage[key] = copy.deepcopy(document)
        return f"{self.scheme}://{key}"

    async def upload(self, document: Any) -> str:
        return self.store(content_hash(document), document)

    async def download(self, uri: str) -> Any:
        key = uri_locator(uri)
        if key not in self.storage:
            raise RemoteDataReadError(f"Cannot download {uri}: not found", uri=uri)
        return copy.deepcopy(self.storage[key])


# ============ Local directory (file://) ============


@dataclass(frozen=True)
class LocalDirAdapter:
    root: Path
    scheme: str = "file"

    def _path(self, uri: str) -> Path:
        root = self.root.resolve()
        path = (root / uri_locator(uri).lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise RemoteDataReadError(f"Path traversal detected: {uri}", uri=uri)
        return path

    async def download(self, uri: str) -> Any:
        path = self._path(uri)
        try:
            raw = await asyncio.to_thread(path.read_bytes)
            return json.loads(raw)
        except (OSError, ValueError) as exc:
            raise RemoteDataReadError(f"Cannot download {uri}: {exc}", uri=uri) from exc

    async def upload(self, document: Any) -> str:
        name = f"{content_hash(document)}.json"
        data = json.dumps(document, indent=2, sort_keys=True).encode("utf-8") + b"\n"
        await asyncio.to_thread(self._atomic_write, self.root / name, data)
        return f"{self.scheme}://{name}"

    def _atomic_write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            with tmp.open("wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise


# ============ HTTP(S) ============


@dataclass
class HttpAdapter:
    """
    Documents served over plain HTTP(S).

    Attributes:
        base_url: Where uploads are PUT as ``{base_url}/{content_hash}.json``.
            Download works for any http(s) URI regardless.
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    base_url: Optional[str] = None
    timeout: float = 30
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def download(self, uri: str) -> Any:
        try:
            async with self._client() as client:
                resp = await client.get(uri)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RemoteDataReadError(f"Cannot download {uri}: {exc}", uri=uri) from exc

    async def upload(self, document: Any) -> str:
        if not self.base_url:
            raise RemoteWriteError("HttpAdapter has no base_url to upload to")
        url = f"{self.base_url.rstrip('/')}/{content_hash(document)}.json"
        async with self._client() as client:
            resp = await client.put(
                url,
                content=canonical_json(document),
                headers={"Content-Type": "application/json"},
            )
        if resp.status_code not in (200, 201, 204):
            raise RemoteWriteError(f"Upload failed: {resp.status_code}")
        _LOGGER.debug("offchain.uploaded", uri=url)
        return url
