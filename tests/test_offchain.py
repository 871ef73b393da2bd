"""Off-chain adapter registry and stock adapter tests."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from wtlibs.errors import RemoteDataReadError, RemoteWriteError, UnsupportedStorageError
from wtlibs.offchain import (
    AdapterSpec,
    HttpAdapter,
    InMemoryAdapter,
    LocalDirAdapter,
    OffChainDataClient,
)
from wtlibs.utils import canonical_json, content_hash


# ============ Registry ============


class TestOffChainDataClient:
    def test_scheme_lookup_is_case_insensitive(self) -> None:
        client = OffChainDataClient({"JSON": AdapterSpec(InMemoryAdapter)})
        assert client.schemes == ["json"]
        assert isinstance(client.get_adapter("Json"), InMemoryAdapter)
        assert isinstance(client.adapter_for("JSON://abc"), InMemoryAdapter)

    def test_unknown_scheme(self) -> None:
        client = OffChainDataClient({"json": AdapterSpec(InMemoryAdapter)})
        with pytest.raises(UnsupportedStorageError, match="ipfs"):
            client.get_adapter("ipfs")

    def test_missing_scheme(self) -> None:
        client = OffChainDataClient({"json": AdapterSpec(InMemoryAdapter)})
        with pytest.raises(UnsupportedStorageError, match="null"):
            client.get_adapter(None)
        with pytest.raises(UnsupportedStorageError):
            client.adapter_for("no-scheme-here")

    def test_duplicate_scheme(self) -> None:
        with pytest.raises(ValueError, match="declared twice"):
            OffChainDataClient(
                {"json": AdapterSpec(InMemoryAdapter), "JSON": AdapterSpec(InMemoryAdapter)}
            )

    def test_reset_and_setup(self) -> None:
        client = OffChainDataClient({"json": AdapterSpec(InMemoryAdapter)})
        client.reset()
        assert client.schemes == []
        client.setup({"file": AdapterSpec(LocalDirAdapter, {"root": Path(".")})})
        assert client.schemes == ["file"]

    def test_clients_are_isolated(self) -> None:
        first = OffChainDataClient({"json": AdapterSpec(InMemoryAdapter)})
        second = OffChainDataClient()
        assert first.schemes == ["json"]
        assert second.schemes == []

    def test_adapter_built_with_options(self) -> None:
        storage = {"doc": {"a": 1}}
        client = OffChainDataClient({"json": AdapterSpec(InMemoryAdapter, {"storage": storage})})
        assert asyncio.run(client.get_adapter("json").download("json://doc")) == {"a": 1}


# ============ In-memory ============


class TestInMemoryAdapter:
    def test_upload_is_content_addressed(self) -> None:
        adapter = InMemoryAdapter()
        doc = {"b": 2, "a": 1}

        async def scenario():
            first = await adapter.upload(doc)
            second = await adapter.upload({"a": 1, "b": 2})
            return first, second, await adapter.download(first)

        first, second, downloaded = asyncio.run(scenario())
        assert first == second == f"json://{content_hash(doc)}"
        assert downloaded == doc

    def test_download_returns_copy(self) -> None:
        adapter = InMemoryAdapter()
        uri = adapter.store("doc", {"tags": ["a"]})
        downloaded = asyncio.run(adapter.download(uri))
        downloaded["tags"].append("b")
        assert adapter.storage["doc"] == {"tags": ["a"]}

    def test_missing_key(self) -> None:
        with pytest.raises(RemoteDataReadError) as excinfo:
            asyncio.run(InMemoryAdapter().download("json://nope"))
        assert excinfo.value.uri == "json://nope"


# ============ Local directory ============


class TestLocalDirAdapter:
    def test_round_trip(self, tmp_path: Path) -> None:
        adapter = LocalDirAdapter(tmp_path)
        doc = {"name": "Grand", "rooms": [1, 2]}

        async def scenario():
            uri = await adapter.upload(doc)
            return uri, await adapter.download(uri)

        uri, downloaded = asyncio.run(scenario())
        assert uri == f"file://{content_hash(doc)}.json"
        assert downloaded == doc
        assert not list(tmp_path.glob("*.tmp"))

    def test_reads_existing_file(self, tmp_path: Path) -> None:
        (tmp_path / "hotels").mkdir()
        (tmp_path / "hotels" / "grand.json").write_text(json.dumps({"a": 1}), encoding="utf-8")
        adapter = LocalDirAdapter(tmp_path)
        assert asyncio.run(adapter.download("file://hotels/grand.json")) == {"a": 1}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(RemoteDataReadError):
            asyncio.run(LocalDirAdapter(tmp_path).download("file://missing.json"))

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(RemoteDataReadError):
            asyncio.run(LocalDirAdapter(tmp_path).download("file://bad.json"))

    def test_path_traversal(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret.json").write_text("{}", encoding="utf-8")
        with pytest.raises(RemoteDataReadError, match="traversal"):
            asyncio.run(LocalDirAdapter(root).download("file://../secret.json"))


# ============ HTTP ============


class TestHttpAdapter:
    def test_download(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url == "https://data.example.com/hotel.json"
            return httpx.Response(200, json={"name": "Grand"})

        adapter = HttpAdapter(transport=httpx.MockTransport(handler))
        doc = asyncio.run(adapter.download("https://data.example.com/hotel.json"))
        assert doc == {"name": "Grand"}

    def test_download_http_error(self) -> None:
        adapter = HttpAdapter(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        with pytest.raises(RemoteDataReadError) as excinfo:
            asyncio.run(adapter.download("https://data.example.com/missing.json"))
        assert excinfo.value.uri == "https://data.example.com/missing.json"

    def test_download_invalid_json(self) -> None:
        adapter = HttpAdapter(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"<html>"))
        )
        with pytest.raises(RemoteDataReadError):
            asyncio.run(adapter.download("https://data.example.com/page"))

    def test_upload(self) -> None:
        seen: list[httpx.Request] = []
        doc = {"b": 1, "a": 2}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        adapter = HttpAdapter(
            base_url="https://store.example.com/docs/",
            transport=httpx.MockTransport(handler),
        )
        uri = asyncio.run(adapter.upload(doc))
        assert uri == f"https://store.example.com/docs/{content_hash(doc)}.json"
        assert seen[0].method == "PUT"
        assert seen[0].content == canonical_json(doc)

    def test_upload_without_base_url(self) -> None:
        with pytest.raises(RemoteWriteError):
            asyncio.run(HttpAdapter().upload({"a": 1}))

    def test_upload_rejected(self) -> None:
        adapter = HttpAdapter(
            base_url="https://store.example.com",
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        with pytest.raises(RemoteWriteError, match="500"):
            asyncio.run(adapter.upload({"a": 1}))
