"""
Remotely-backed dataset - lazy field synchronization with dirty tracking.

An entity declares its fields once, as a static table of ``FieldBinding``
descriptors. Each field is fetched lazily through its remote getter and
memoized in a ``CacheCell``; local writes only touch the cache and mark the
field dirty. ``update_remote_data`` turns the dirty fields into one prepared
operation per setter group, never one per field.

Lifecycle:
    NOT_DEPLOYED --mark_deployed()--> DEPLOYED --mark_obsolete()--> OBSOLETE

No getter or setter is invoked outside DEPLOYED.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

from ..cache import CacheCell
from ..errors import (
    NotDeployedError,
    ObsoleteRecordError,
    RemoteDataReadError,
    RemoteWriteError,
)
from ..logging_config import get_logger

_LOGGER = get_logger(__name__)

RemoteGetter = Callable[[], Awaitable[Any]]
RemoteSetter = Callable[[dict[str, Any], dict[str, Any]], Awaitable[Any]]


class LifecycleState(enum.Enum):
    NOT_DEPLOYED = "not_deployed"
    DEPLOYED = "deployed"
    OBSOLETE = "obsolete"


class FieldKind(enum.Enum):
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


@dataclass(frozen=True)
class FieldBinding:
    """
    Declaration of one tracked field.

    Attributes:
        name: Unique key within the dataset
        remote_getter: Zero-argument coroutine function returning the remote value
        setter_group: Tag of the setter that persists this field. Fields sharing
            a tag are written by a single remote call. None means read-only.
    """

    name: str
    remote_getter: RemoteGetter
    setter_group: Optional[str] = None

    @property
    def kind(self) -> FieldKind:
        if self.setter_group is None:
            return FieldKind.READ_ONLY
        return FieldKind.READ_WRITE


@dataclass
class _FieldState:
    binding: FieldBinding
    cell: CacheCell = field(default_factory=CacheCell)
    dirty: bool = False
    # Bumped on every local write; lets confirm() skip fields rewritten
    # after the operation was prepared.
    generation: int = 0


@dataclass
class PreparedOperation:
    """One pending remote write covering every dirty field of a setter group.

    The dataset does not execute it. Whoever executes ``descriptor`` reports
    back through ``confirm()`` once the write is final, or ``reject()`` when it
    failed. Until confirmed the covered fields stay dirty and a later commit
    prepares them again.
    """

    setter_group: str
    fields: dict[str, Any]
    descriptor: Any
    _dataset: "RemotelyBackedDataset" = field(repr=False, compare=False)
    _generations: dict[str, int] = field(repr=False, compare=False)
    confirmed: bool = False
    error: Optional[BaseException] = None

    def confirm(self) -> None:
        self._dataset.mark_clean(self._generations)
        self.confirmed = True
        self.error = None

    def reject(self, error: Optional[BaseException] = None) -> None:
        self.error = error
        _LOGGER.warning(
            "dataset.commit_rejected",
            dataset=self._dataset.label,
            setter_group=self.setter_group,
            fields=sorted(self.fields),
            error=str(error) if error else None,
        )


class RemotelyBackedDataset:
    def __init__(self, label: str = "dataset") -> None:
        self.label = label
        self._state = LifecycleState.NOT_DEPLOYED
        self._fields: dict[str, _FieldState] = {}
        self._setters: dict[str, RemoteSetter] = {}

    def __repr__(self) -> str:
        return (
            f"RemotelyBackedDataset(label={self.label!r}, "
            f"state={self._state.value}, fields={list(self._fields)})"
        )

    # ============ Binding ============

    def bind_fields(
        self,
        fields: Iterable[FieldBinding],
        setters: Optional[Mapping[str, RemoteSetter]] = None,
    ) -> None:
        """
        Register field descriptors and the setters they refer to.

        Raises:
            ValueError: On a duplicate field name or an undeclared setter group
        """
        setters = dict(setters or {})
        for binding in fields:
            if binding.name in self._fields:
                raise ValueError(f"Field declared twice: {binding.name}")
            group = binding.setter_group
            if group is not None and group not in setters and group not in self._setters:
                raise ValueError(
                    f"Field {binding.name} refers to unknown setter group: {group}"
                )
            self._fields[binding.name] = _FieldState(binding=binding)
        self._setters.update(setters)

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    def binding(self, name: str) -> FieldBinding:
        return self._field(name).binding

    def _field(self, name: str) -> _FieldState:
        try:
            return self._fields[name]
        except KeyError:
            raise KeyError(f"Unknown field: {name}") from None

    # ============ Lifecycle ============

    @property
    def state(self) -> LifecycleState:
        return self._state

    def is_deployed(self) -> bool:
        return self._state is LifecycleState.DEPLOYED

    def is_obsolete(self) -> bool:
        return self._state is LifecycleState.OBSOLETE

    def mark_deployed(self) -> None:
        if self._state is LifecycleState.OBSOLETE:
            raise ObsoleteRecordError(f"Cannot deploy {self.label}: record is obsolete")
        self._state = LifecycleState.DEPLOYED
        _LOGGER.debug("dataset.deployed", dataset=self.label)

    def mark_obsolete(self) -> None:
        if self._state is LifecycleState.NOT_DEPLOYED:
            raise NotDeployedError(f"Cannot destroy {self.label}: not deployed")
        self._state = LifecycleState.OBSOLETE
        _LOGGER.debug("dataset.obsolete", dataset=self.label)

    # ============ Field access ============

    def is_dirty(self, name: str) -> bool:
        return self._field(name).dirty

    def dirty_fields(self) -> list[str]:
        return [name for name, state in self._fields.items() if state.dirty]

    def peek(self, name: str, default: Any = None) -> Any:
        """Return the cached value of a field without any remote call."""
        return self._field(name).cell.peek(default)

    async def get(self, name: str) -> Any:
        """
        Read a field, fetching it remotely at most once.

        Raises:
            ObsoleteRecordError: The record was destroyed
            NotDeployedError: The field is not cached and the record does not exist yet
            RemoteDataReadError: The remote getter failed (nothing is cached)
        """
        state = self._field(name)
        if self._state is LifecycleState.OBSOLETE:
            raise ObsoleteRecordError(f"Cannot read {self.label}.{name}: record is obsolete")
        if state.cell.is_ready:
            return state.cell.value
        if self._state is LifecycleState.NOT_DEPLOYED:
            raise NotDeployedError(f"Cannot read {self.label}.{name}: not deployed")
        return await state.cell.get(partial(self._fetch, state.binding))

    def set(self, name: str, value: Any) -> None:
        state = self._field(name)
        if self._state is LifecycleState.OBSOLETE:
            raise ObsoleteRecordError(f"Cannot write {self.label}.{name}: record is obsolete")
        state.cell.store(value)
        state.dirty = True
        state.generation += 1

    async def _fetch(self, binding: FieldBinding) -> Any:
        _LOGGER.debug("dataset.fetch", dataset=self.label, field=binding.name)
        try:
            return await binding.remote_getter()
        except Exception as exc:
            _LOGGER.warning(
                "dataset.fetch_failed", dataset=self.label, field=binding.name, error=str(exc)
            )
            raise RemoteDataReadError(
                f"Cannot sync remote data for {self.label}.{binding.name}: {exc}"
            ) from exc

    # ============ Commit ============

    async def update_remote_data(
        self, options: Optional[Mapping[str, Any]] = None
    ) -> list[PreparedOperation]:
        """
        Prepare remote writes for every dirty field.

        Dirty fields are grouped by setter group and each setter is invoked
        exactly once with all of its dirty fields. Read-only fields are skipped.

        Args:
            options: Write options handed to every setter (each gets its own copy)

        Returns:
            One PreparedOperation per setter group with dirty fields

        Raises:
            NotDeployedError: The record does not exist yet
            ObsoleteRecordError: The record was destroyed
            RemoteWriteError: A setter failed; its fields remain dirty
        """
        if self._state is LifecycleState.OBSOLETE:
            raise ObsoleteRecordError(f"Cannot update {self.label}: record is obsolete")
        if self._state is LifecycleState.NOT_DEPLOYED:
            raise NotDeployedError(f"Cannot update {self.label}: not deployed")

        groups: dict[str, dict[str, Any]] = {}
        for name, state in self._fields.items():
            if not state.dirty:
                continue
            group = state.binding.setter_group
            if group is None:
                continue
            groups.setdefault(group, {})[name] = state.cell.value

        operations: list[PreparedOperation] = []
        for group, values in groups.items():
            generations = {name: self._fields[name].generation for name in values}
            _LOGGER.debug(
                "dataset.commit", dataset=self.label, setter_group=group, fields=sorted(values)
            )
            try:
                descriptor = await self._setters[group](dict(values), dict(options or {}))
            except Exception as exc:
                _LOGGER.warning(
                    "dataset.commit_failed", dataset=self.label, setter_group=group, error=str(exc)
                )
                raise RemoteWriteError(
                    f"Cannot update remote data for {self.label} ({group}): {exc}",
                    fields=values,
                ) from exc
            operations.append(
                PreparedOperation(
                    setter_group=group,
                    fields=values,
                    descriptor=descriptor,
                    _dataset=self,
                    _generations=generations,
                )
            )
        return operations

    def sync(self, name: str, value: Any) -> None:
        """Cache a value the remote record is known to hold. The field ends up clean."""
        state = self._field(name)
        if self._state is LifecycleState.OBSOLETE:
            raise ObsoleteRecordError(f"Cannot write {self.label}.{name}: record is obsolete")
        state.cell.store(value)
        state.dirty = False
        state.generation += 1

    def generations(self) -> dict[str, int]:
        """Snapshot the write generation of every dirty field."""
        return {name: state.generation for name, state in self._fields.items() if state.dirty}

    def mark_clean(self, generations: Mapping[str, int]) -> None:
        """
        Declare fields in sync with the remote record.

        Only fields still at the snapshotted generation are cleared; a field
        written again after the snapshot stays dirty.
        """
        for name, generation in generations.items():
            state = self._field(name)
            if state.generation == generation:
                state.dirty = False
