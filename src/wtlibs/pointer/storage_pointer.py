"""
Storage pointer - lazy, recursive resolution of a linked-document graph.

A pointer wraps one URI. Its document is downloaded on first access through
the adapter registered for the URI scheme, then memoized for the lifetime of
the pointer. Fields the schema declares as pointers are replaced by new,
unresolved pointers carrying the nested schema; everything else passes
through untouched.

Example schema (hotel data index):

    (
        FieldSchema.pointer("descriptionUri", ["name", "location", "currency"]),
    )
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Awaitable, Iterable, Mapping, Optional, Sequence, Union

from ..cache import CacheCell
from ..errors import RemoteDataReadError, SchemaResolutionError
from ..logging_config import get_logger
from ..offchain.client import OffChainDataClient
from ..utils import is_uri

_LOGGER = get_logger(__name__)

DEFAULT_MAX_DEPTH = 16


@dataclass(frozen=True)
class FieldSchema:
    name: str
    is_storage_pointer: bool = False
    fields: tuple["FieldSchema", ...] = ()

    @classmethod
    def pointer(cls, name: str, fields: Iterable[Union["FieldSchema", str]] = ()) -> "FieldSchema":
        return cls(name=name, is_storage_pointer=True, fields=normalize_schema(fields))


SchemaLike = Iterable[Union[FieldSchema, str]]


def normalize_schema(fields: SchemaLike) -> tuple[FieldSchema, ...]:
    """Turn a mixed list of names and descriptors into descriptors.

    Raises:
        ValueError: If a field name is declared twice
    """
    result: list[FieldSchema] = []
    seen: set[str] = set()
    for item in fields:
        descriptor = FieldSchema(name=item) if isinstance(item, str) else item
        if descriptor.name in seen:
            raise ValueError(f"Field declared twice in schema: {descriptor.name}")
        seen.add(descriptor.name)
        result.append(descriptor)
    return tuple(result)


_NOT_REQUESTED = object()


def _subpaths(paths: Sequence[list[str]], key: str) -> Any:
    """Remaining paths below ``key``; None means resolve everything below it."""
    rests = [path[1:] for path in paths if path[0] == key]
    if not rests:
        return _NOT_REQUESTED
    if any(not rest for rest in rests):
        return None
    return [".".join(rest) for rest in rests]


class StoragePointer:
    def __init__(
        self,
        uri: str,
        fields: SchemaLike,
        client: OffChainDataClient,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        _ancestors: tuple[str, ...] = (),
    ) -> None:
        if not is_uri(uri):
            raise SchemaResolutionError(f"Cannot create storage pointer: {uri!r} is not a URI", uri=uri)
        self._uri = uri
        self._schema = normalize_schema(fields)
        self._client = client
        self._max_depth = max_depth
        self._ancestors = _ancestors
        self._cell = CacheCell()

    def __repr__(self) -> str:
        return f"StoragePointer(ref={self._uri!r}, resolved={self.is_resolved})"

    @property
    def ref(self) -> str:
        return self._uri

    @property
    def schema(self) -> tuple[FieldSchema, ...]:
        return self._schema

    @property
    def depth(self) -> int:
        return len(self._ancestors)

    @property
    def is_resolved(self) -> bool:
        return self._cell.is_ready

    @property
    def contents(self) -> Awaitable[dict[str, Any]]:
        """Awaitable resolved document; nested pointers stay unresolved."""
        return self.resolve()

    async def resolve(self) -> dict[str, Any]:
        return await self._cell.get(self._download)

    async def get(self, name: str) -> Any:
        contents = await self.resolve()
        return contents[name]

    async def _download(self) -> dict[str, Any]:
        _LOGGER.debug("pointer.download", uri=self._uri, depth=self.depth)
        try:
            adapter = self._client.adapter_for(self._uri)
            document = await adapter.download(self._uri)
        except RemoteDataReadError as exc:
            if exc.uri is None:
                exc.uri = self._uri
            raise
        except Exception as exc:
            _LOGGER.warning("pointer.download_failed", uri=self._uri, error=str(exc))
            raise RemoteDataReadError(
                f"Cannot sync remote data from {self._uri}: {exc}", uri=self._uri
            ) from exc
        if not isinstance(document, Mapping):
            raise RemoteDataReadError(
                f"Cannot sync remote data from {self._uri}: document is not a mapping",
                uri=self._uri,
            )
        return self._wrap(document)

    def _wrap(self, document: Mapping[str, Any]) -> dict[str, Any]:
        contents = dict(document)
        for descriptor in self._schema:
            if not descriptor.is_storage_pointer:
                continue
            raw = contents.get(descriptor.name)
            if raw is None:
                continue
            contents[descriptor.name] = self._child(descriptor, raw)
        return contents

    def _child(self, descriptor: FieldSchema, raw: Any) -> "StoragePointer":
        if not is_uri(raw):
            raise SchemaResolutionError(
                f"Cannot resolve {descriptor.name} in {self._uri}: {raw!r} is not a URI",
                uri=self._uri,
                field=descriptor.name,
            )
        chain = self._ancestors + (self._uri,)
        if raw in chain:
            raise SchemaResolutionError(
                f"Cyclic document graph: {descriptor.name} in {self._uri} points back to {raw}",
                uri=self._uri,
                field=descriptor.name,
            )
        if len(chain) > self._max_depth:
            raise SchemaResolutionError(
                f"Document graph deeper than {self._max_depth} at {self._uri}",
                uri=self._uri,
                field=descriptor.name,
            )
        return StoragePointer(
            raw,
            descriptor.fields,
            self._client,
            max_depth=self._max_depth,
            _ancestors=chain,
        )

    async def to_plain_object(self, resolved_fields: Optional[Iterable[str]] = None) -> dict[str, Any]:
        """
        Materialize the document graph into plain data.

        Args:
            resolved_fields: Dot-separated paths (``descriptionUri.location``) of
                nested pointers to inline. Everything below the last segment of
                each path is inlined as well. Pointers off every path are left
                as unresolved StoragePointer objects. None inlines the whole graph.

        Returns:
            ``{"ref": uri, "contents": {...}}``
        """
        contents = await self.resolve()
        paths = None if resolved_fields is None else [p.split(".") for p in resolved_fields if p]

        result: dict[str, Any] = {}
        pending: dict[str, Awaitable[dict[str, Any]]] = {}
        for key, value in contents.items():
            if not isinstance(value, StoragePointer):
                result[key] = copy.deepcopy(value)
                continue
            subpaths = None if paths is None else _subpaths(paths, key)
            if subpaths is _NOT_REQUESTED:
                result[key] = value
            else:
                result[key] = None
                pending[key] = value.to_plain_object(subpaths)

        if pending:
            resolved = await asyncio.gather(*pending.values())
            result.update(zip(pending.keys(), resolved))
        return {"ref": self._uri, "contents": result}
