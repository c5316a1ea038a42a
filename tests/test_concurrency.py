"""Tests for the asyncio primitives (utils/concurrency.py)."""

from __future__ import annotations

import asyncio

import pytest

from cmdlaunch.utils.concurrency import (
    AsyncMemo,
    BackgroundTasks,
    Lazy,
    SingleFlight,
    bounded_gather,
)


class TestBoundedGather:
    def test_preserves_order_and_limits_concurrency(self) -> None:
        active = 0
        peak = 0

        async def _work(item: int) -> int:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01 * (5 - item))
            active -= 1
            return item * 10

        results = asyncio.run(bounded_gather(range(5), _work, concurrency=2))

        assert results == [0, 10, 20, 30, 40]
        assert peak == 2

    def test_rejects_zero_concurrency(self) -> None:
        async def _work(item: int) -> int:
            return item

        with pytest.raises(ValueError):
            asyncio.run(bounded_gather([1], _work, concurrency=0))

    def test_first_error_propagates(self) -> None:
        async def _work(item: int) -> int:
            if item == 2:
                raise RuntimeError("boom")
            return item

        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(bounded_gather([1, 2, 3], _work, concurrency=3))


class TestSingleFlight:
    def test_concurrent_callers_share_one_call(self) -> None:
        calls = 0

        async def _factory() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "value"

        async def _scenario() -> tuple[list[str], bool]:
            flight: SingleFlight[str, str] = SingleFlight()
            results = await asyncio.gather(*(flight.do("k", _factory) for _ in range(5)))
            return list(results), flight.in_flight("k")

        results, still_pending = asyncio.run(_scenario())

        assert results == ["value"] * 5
        assert calls == 1
        assert still_pending is False

    def test_entry_dropped_after_failure(self) -> None:
        calls = 0

        async def _factory() -> str:
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        async def _scenario() -> None:
            flight: SingleFlight[str, str] = SingleFlight()
            for _ in range(2):
                with pytest.raises(RuntimeError):
                    await flight.do("k", _factory)

        asyncio.run(_scenario())
        assert calls == 2


class TestAsyncMemo:
    def test_success_memoized(self) -> None:
        calls = 0

        async def _factory() -> int:
            nonlocal calls
            calls += 1
            return 42

        async def _scenario() -> AsyncMemo[str, int]:
            memo: AsyncMemo[str, int] = AsyncMemo()
            assert await memo.get("k", _factory) == 42
            assert await memo.get("k", _factory) == 42
            return memo

        memo = asyncio.run(_scenario())
        assert calls == 1
        assert "k" in memo
        assert memo.peek("k") == 42

        memo.clear()
        assert "k" not in memo

    def test_failure_not_memoized(self) -> None:
        attempts = 0

        async def _factory() -> int:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise OSError("transient")
            return 7

        async def _scenario() -> int:
            memo: AsyncMemo[str, int] = AsyncMemo()
            with pytest.raises(OSError):
                await memo.get("k", _factory)
            return await memo.get("k", _factory)

        assert asyncio.run(_scenario()) == 7
        assert attempts == 2


class TestLazy:
    def test_runs_once(self) -> None:
        calls = 0

        async def _factory() -> str:
            nonlocal calls
            calls += 1
            return "loaded"

        lazy = Lazy(_factory)
        assert lazy.loaded is False

        async def _scenario() -> list[str]:
            return list(await asyncio.gather(lazy(), lazy(), lazy()))

        assert asyncio.run(_scenario()) == ["loaded"] * 3
        assert asyncio.run(lazy()) == "loaded"
        assert calls == 1
        assert lazy.loaded is True

    def test_resolved(self) -> None:
        lazy = Lazy.resolved({"name": "x"})
        assert lazy.loaded is True
        assert asyncio.run(lazy()) == {"name": "x"}


class TestBackgroundTasks:
    def test_drain_waits_and_swallows_errors(self) -> None:
        finished: list[str] = []

        async def _ok() -> None:
            await asyncio.sleep(0.01)
            finished.append("ok")

        async def _fail() -> None:
            raise RuntimeError("ignored")

        async def _scenario() -> int:
            tasks = BackgroundTasks()
            tasks.spawn(_ok(), name="ok")
            tasks.spawn(_fail(), name="fail")
            await tasks.drain()
            return len(tasks)

        assert asyncio.run(_scenario()) == 0
        assert finished == ["ok"]
