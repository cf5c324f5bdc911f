"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Batching dispatcher coalescing per-key lookups into upstream batch calls.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Generic

from ..errors import UpstreamFetchError
from ..options import BatchOptions, build_options
from ..types import BatchFetcher, K, KeyFn, V
from .scheduling import LoopScheduler, Scheduler, TimerHandle

logger = logging.getLogger("projected.runtime.dispatcher")


@dataclass(slots=True)
class DispatcherStats:
    """Counters describing dispatcher activity."""

    batches: int = 0
    keys_dispatched: int = 0
    failed_batches: int = 0


@dataclass(frozen=True, slots=True)
class _Failure:
    error: BaseException


@dataclass(eq=False, slots=True)
class _Waiter(Generic[K, V]):
    """Tracks one ``resolve`` call until all of its keys are answered."""

    outstanding: set[K]
    resolved: dict[K, V | None]
    future: asyncio.Future[dict[K, V | None]]

    def consume(self, results: Mapping[K, Any]) -> bool:
        """Apply one chunk of results. Returns True once the waiter is settled."""
        if self.future.done():
            return True
        for key in [k for k in results if k in self.outstanding]:
            outcome = results[key]
            if isinstance(outcome, _Failure):
                self.future.set_exception(outcome.error)
                return True
            self.resolved[key] = outcome
            self.outstanding.discard(key)
        if not self.outstanding:
            self.future.set_result(self.resolved)
            return True
        return False


class Dispatcher(Generic[K, V]):
    """
    Collect keys requested within one batch window and fetch them together.

    Every ``resolve`` call registers a waiter and adds its keys to a shared
    queue. The queue is flushed when the window timer fires, or immediately
    in chunks of ``max_chunk_size`` while it holds more keys than that. Each
    flushed chunk is one upstream call; its results fan out to every waiter
    still missing any of the chunk's keys.

    Args:
        values: Upstream batch fetch. Receives the chunk's keys and returns
            items (sync or awaitable) matched back by ``key``; missing items
            are reported as ``None``.
        key: Extracts the key of one returned item.
        delay_s: Batch window in seconds.
        max_chunk_size: Maximum keys per upstream call.
        scheduler: Timer source; defaults to the running loop.
        name: Label used in log records.
    """

    def __init__(
        self,
        values: BatchFetcher[K, V],
        key: KeyFn[V, K],
        *,
        delay_s: float | None = None,
        max_chunk_size: int | None = None,
        scheduler: Scheduler | None = None,
        name: str = "dispatcher",
    ) -> None:
        options = build_options(
            BatchOptions,
            delay_s=delay_s,
            max_chunk_size=max_chunk_size,
        )
        self._values = values
        self._key = key
        self._delay_s = options.delay_s
        self._max_chunk_size = options.max_chunk_size
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._name = name

        self._queue: dict[K, None] = {}
        self._timer: TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._waiters: set[_Waiter[K, V]] = set()
        self._inflight: set[asyncio.Task[None]] = set()
        self.stats = DispatcherStats()

    @property
    def delay_s(self) -> float:
        return self._delay_s

    @property
    def max_chunk_size(self) -> int:
        return self._max_chunk_size

    @property
    def pending_keys(self) -> tuple[K, ...]:
        """Keys queued for the next flush, in insertion order."""
        return tuple(self._queue)

    @property
    def active_waiters(self) -> int:
        return len(self._waiters)

    @property
    def inflight_batches(self) -> int:
        return len(self._inflight)

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def resolve(self, keys: Iterable[K]) -> asyncio.Future[dict[K, V | None]]:
        """
        Resolve ``keys`` through the batch queue.

        The returned future maps every requested key to its item or ``None``.
        It fails as soon as any chunk covering one of the keys fails.
        """
        loop = asyncio.get_running_loop()
        self._bind(loop)
        future: asyncio.Future[dict[K, V | None]] = loop.create_future()
        requested = list(dict.fromkeys(keys))
        if not requested:
            future.set_result({})
            return future

        self._waiters.add(_Waiter(outstanding=set(requested), resolved={}, future=future))
        for key in requested:
            self._queue[key] = None
        self._schedule()
        return future

    async def fetch_now(self, keys: Iterable[K]) -> dict[K, V | None]:
        """Call the upstream directly for ``keys``, bypassing the batch queue."""
        requested = list(dict.fromkeys(keys))
        if not requested:
            return {}
        payload = self._values(requested)
        if inspect.isawaitable(payload):
            payload = await payload
        return self._match(requested, payload)

    def flush(self) -> int:
        """Dispatch everything queued right now. Returns the number of chunks sent."""
        self._cancel_timer()
        chunks = 0
        while self._queue:
            self._dispatch()
            chunks += 1
        return chunks

    def _schedule(self) -> None:
        while len(self._queue) > self._max_chunk_size:
            self._cancel_timer()
            self._dispatch()

        if self._queue and self._timer is None:
            self._timer = self._scheduler.call_later(self._delay_s, self._on_timer)

    def _bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Drop queue state left behind by a different or closed event loop."""
        previous = self._loop
        self._loop = loop
        if previous is None or previous is loop:
            return
        if self._queue or self._waiters or self._inflight:
            logger.debug(
                "Discarding %d queued keys and %d waiters of %s from a previous event loop",
                len(self._queue),
                len(self._waiters),
                self._name,
            )
        if self._timer is not None and not previous.is_closed():
            self._timer.cancel()
        self._timer = None
        self._queue.clear()
        self._waiters.clear()
        self._inflight.clear()

    def _on_timer(self) -> None:
        self._timer = None
        self.flush()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _dispatch(self) -> None:
        keys = list(itertools.islice(self._queue, self._max_chunk_size))
        if not keys:
            return
        for key in keys:
            del self._queue[key]

        self.stats.batches += 1
        self.stats.keys_dispatched += len(keys)
        logger.debug(
            "Dispatching %d keys for %s (%d still queued)",
            len(keys),
            self._name,
            len(self._queue),
        )

        try:
            payload = self._values(keys)
        except Exception as exc:
            self._fail(keys, exc)
            return

        if inspect.isawaitable(payload):
            task = asyncio.ensure_future(self._settle_chunk(keys, payload))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            return
        self._complete(keys, payload)

    async def _settle_chunk(self, keys: list[K], payload: Any) -> None:
        try:
            items = await payload
        except asyncio.CancelledError:
            self._cancel_waiters(keys)
            raise
        except Exception as exc:
            self._fail(keys, exc)
            return
        self._complete(keys, items)

    def _complete(self, keys: list[K], items: Any) -> None:
        try:
            results = self._match(keys, items)
        except Exception as exc:
            self._fail(keys, exc)
            return
        self._fan_out(results)

    def _match(self, keys: list[K], items: Any) -> dict[K, V | None]:
        if items is None or isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
            raise UpstreamFetchError(
                f"Batch fetch for {self._name} returned {type(items).__name__}, "
                "expected an iterable of items"
            )
        results: dict[K, V | None] = dict.fromkeys(keys)
        for item in items:
            if item is None:
                continue
            item_key = self._key(item)
            if item_key in results:
                results[item_key] = item
            else:
                logger.debug("Ignoring item with unrequested key %r from %s", item_key, self._name)
        return results

    def _fail(self, keys: list[K], error: BaseException) -> None:
        self.stats.failed_batches += 1
        logger.debug("Batch of %d keys for %s failed: %s", len(keys), self._name, error)
        failure = _Failure(error)
        self._fan_out({key: failure for key in keys})

    def _fan_out(self, results: Mapping[K, Any]) -> None:
        for waiter in list(self._waiters):
            if waiter.consume(results):
                self._waiters.discard(waiter)

    def _cancel_waiters(self, keys: list[K]) -> None:
        chunk = set(keys)
        for waiter in list(self._waiters):
            if waiter.outstanding & chunk:
                waiter.future.cancel()
                self._waiters.discard(waiter)
