"""asyncio primitives used by discovery, the metadata cache and help.

* :func:`bounded_gather`: ordered fan-out with a concurrency ceiling.
* :class:`SingleFlight`: concurrent callers for one key share a single
  in-flight task; the entry is dropped as soon as the task settles.
* :class:`AsyncMemo`: :class:`SingleFlight` plus a memo of successful
  results.  Failures are not memoized, so a later call retries.
* :class:`Lazy`: a memoized, deferred zero-argument computation.
* :class:`BackgroundTasks`: fire-and-forget tasks that can be drained.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")
K = TypeVar("K", bound=Hashable)


async def bounded_gather(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    *,
    concurrency: int,
) -> list[R]:
    """Apply *func* to every item with at most *concurrency* in flight.

    Results keep the input order.  The first exception propagates, as
    with :func:`asyncio.gather`.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    semaphore = asyncio.Semaphore(concurrency)

    async def _run(item: T) -> R:
        async with semaphore:
            return await func(item)

    return list(await asyncio.gather(*(_run(item) for item in items)))


class SingleFlight(Generic[K, R]):
    """De-duplicate concurrent computations per key."""

    def __init__(self) -> None:
        self._pending: dict[K, asyncio.Task[R]] = {}

    def in_flight(self, key: K) -> bool:
        return key in self._pending

    async def do(self, key: K, factory: Callable[[], Awaitable[R]]) -> R:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda _task: self._forget(key, _task))
        return await task

    def _forget(self, key: K, task: asyncio.Task[R]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]


class AsyncMemo(Generic[K, R]):
    """Memoize successful async results per key with single-flight loading."""

    def __init__(self) -> None:
        self._values: dict[K, R] = {}
        self._flight: SingleFlight[K, R] = SingleFlight()

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def peek(self, key: K) -> R | None:
        return self._values.get(key)

    async def get(self, key: K, factory: Callable[[], Awaitable[R]]) -> R:
        if key in self._values:
            return self._values[key]

        async def _load() -> R:
            value = await factory()
            self._values[key] = value
            return value

        return await self._flight.do(key, _load)

    def clear(self) -> None:
        self._values.clear()


_UNSET: Any = object()


class Lazy(Generic[R]):
    """A deferred computation that runs at most once successfully.

    Usage::

        load = Lazy(lambda: fetch_metadata(path))
        meta = await load()   # runs fetch_metadata
        meta = await load()   # memoized
    """

    def __init__(self, factory: Callable[[], Awaitable[R]]) -> None:
        self._factory = factory
        self._value: R = _UNSET
        self._flight: SingleFlight[int, R] = SingleFlight()

    @classmethod
    def resolved(cls, value: R) -> Lazy[R]:
        """Return an already-loaded instance whose factory never runs."""

        async def _unused() -> R:  # pragma: no cover - never awaited
            return value

        lazy = cls(_unused)
        lazy._value = value
        return lazy

    @property
    def loaded(self) -> bool:
        return self._value is not _UNSET

    async def __call__(self) -> R:
        if self._value is not _UNSET:
            return self._value

        async def _load() -> R:
            value = await self._factory()
            self._value = value
            return value

        return await self._flight.do(0, _load)


class BackgroundTasks:
    """Fire-and-forget task holder.

    Spawned tasks are referenced until they finish so they are not
    garbage-collected mid-flight.  Their failures are logged at debug
    level and otherwise ignored.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable[Any], *, name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        if name is not None:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Background task %s failed: %s", task.get_name(), exc)

    async def drain(self) -> None:
        """Wait for every outstanding task; exceptions are not re-raised."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
