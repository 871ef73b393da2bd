"""Unit tests for cache.py (memoized, coalesced async cells)."""

from __future__ import annotations

import asyncio

import pytest

from wtlibs.cache import CacheCell, CellState


class Loader:
    """Counting loader; optionally blocks until released."""

    def __init__(self, value=42, error: Exception | None = None, gate: asyncio.Event | None = None):
        self.value = value
        self.error = error
        self.gate = gate
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.value


class TestCacheCell:
    def test_starts_empty(self) -> None:
        cell = CacheCell()
        assert cell.state is CellState.EMPTY
        assert not cell.is_ready
        assert cell.peek("default") == "default"

    def test_get_loads_once(self) -> None:
        loader = Loader(value="remote")

        async def scenario():
            cell = CacheCell()
            first = await cell.get(loader)
            second = await cell.get(loader)
            return cell, first, second

        cell, first, second = asyncio.run(scenario())
        assert first == second == "remote"
        assert loader.calls == 1
        assert cell.state is CellState.READY

    def test_concurrent_reads_share_one_load(self) -> None:
        loader = Loader(value=7)

        async def scenario():
            cell = CacheCell()
            return await asyncio.gather(*(cell.get(loader) for _ in range(5)))

        assert asyncio.run(scenario()) == [7] * 5
        assert loader.calls == 1

    def test_failure_is_not_cached(self) -> None:
        failing = Loader(error=ValueError("boom"))
        succeeding = Loader(value="ok")

        async def scenario():
            cell = CacheCell()
            with pytest.raises(ValueError, match="boom"):
                await cell.get(failing)
            assert cell.state is CellState.FAILED
            assert isinstance(cell.error, ValueError)
            assert cell.peek() is None
            return cell, await cell.get(succeeding)

        cell, value = asyncio.run(scenario())
        assert value == "ok"
        assert cell.error is None
        assert succeeding.calls == 1

    def test_concurrent_waiters_all_see_failure(self) -> None:
        loader = Loader(error=RuntimeError("down"))

        async def scenario():
            cell = CacheCell()
            return await asyncio.gather(
                *(cell.get(loader) for _ in range(3)), return_exceptions=True
            )

        results = asyncio.run(scenario())
        assert all(isinstance(r, RuntimeError) for r in results)
        assert loader.calls == 1

    def test_store_skips_loader(self) -> None:
        loader = Loader()

        async def scenario():
            cell = CacheCell()
            cell.store("local")
            return await cell.get(loader)

        assert asyncio.run(scenario()) == "local"
        assert loader.calls == 0

    def test_store_supersedes_inflight_load(self) -> None:
        async def scenario():
            gate = asyncio.Event()
            loader = Loader(value="remote", gate=gate)
            cell = CacheCell()
            reader = asyncio.ensure_future(cell.get(loader))
            await asyncio.sleep(0)
            assert cell.state is CellState.PENDING
            cell.store("local")
            gate.set()
            return cell, await reader

        cell, seen = asyncio.run(scenario())
        assert seen == "local"
        assert cell.value == "local"
        assert cell.state is CellState.READY

    def test_clear_forgets_value(self) -> None:
        loader = Loader(value=1)

        async def scenario():
            cell = CacheCell()
            await cell.get(loader)
            cell.clear()
            assert cell.state is CellState.EMPTY
            return await cell.get(loader)

        assert asyncio.run(scenario()) == 1
        assert loader.calls == 2

    def test_cancelled_reader_leaves_shared_load_running(self) -> None:
        async def scenario():
            gate = asyncio.Event()
            loader = Loader(value="remote", gate=gate)
            cell = CacheCell()
            patient = asyncio.ensure_future(cell.get(loader))
            await asyncio.sleep(0)
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(cell.get(loader), timeout=0.01)
            assert cell.state is CellState.PENDING
            gate.set()
            first = await patient
            later = await cell.get(loader)
            return cell, loader, first, later

        cell, loader, first, later = asyncio.run(scenario())
        assert first == later == "remote"
        assert loader.calls == 1
        assert cell.state is CellState.READY

    def test_cancelled_load_resets_cell(self) -> None:
        cancelled = Loader(error=asyncio.CancelledError())
        succeeding = Loader(value="ok")

        async def scenario():
            cell = CacheCell()
            with pytest.raises(asyncio.CancelledError):
                await cell.get(cancelled)
            assert cell.state is CellState.EMPTY
            assert cell.error is None
            return await cell.get(succeeding)

        assert asyncio.run(scenario()) == "ok"
        assert cancelled.calls == 1
        assert succeeding.calls == 1
