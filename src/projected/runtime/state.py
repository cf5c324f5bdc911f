"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Single-flight cache state machine shared by value and map projections.

State transitions::

    Empty --get--> Pending --ok--> Resolved
    Empty --get--> Pending --fail--> Empty
    Resolved --refresh--> Refreshing --ok--> Resolved(new)
    Refreshing --fail--> Resolved(old)

A settling fetch commits only while the state that started it is still
current, so ``clear()`` during a fetch is never undone by its completion.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Union

from ..maybe import Deferred, Immediate, Maybe
from ..types import T

logger = logging.getLogger("projected.runtime.state")


@dataclass(frozen=True, slots=True, eq=False)
class Empty:
    """Nothing fetched and nothing in flight."""


@dataclass(frozen=True, slots=True, eq=False)
class Pending(Generic[T]):
    """First-time fetch in flight; nothing to serve synchronously."""

    future: asyncio.Future[T]


@dataclass(frozen=True, slots=True, eq=False)
class Resolved(Generic[T]):
    """Cached value served synchronously."""

    value: T


@dataclass(frozen=True, slots=True, eq=False)
class Refreshing(Generic[T]):
    """Cached value still served while a background refresh is in flight."""

    value: T
    future: asyncio.Future[T]


CacheState = Union[Empty, Pending[T], Resolved[T], Refreshing[T]]

EMPTY = Empty()


class StateCell(Generic[T]):
    """
    One cached result guarded by the single-flight state machine.

    Args:
        load: Calls the upstream; may return a plain payload or an awaitable.
        finalize: Turns the raw payload into the cached value (validation,
            protection, indexing). Errors raised here count as fetch failures.
        cache: When false, results are handed to waiting callers and the
            cell returns to ``Empty``.
        name: Label used in log records.
    """

    def __init__(
        self,
        load: Callable[[], Any],
        *,
        finalize: Callable[[Any], T],
        cache: bool = True,
        name: str = "cell",
    ) -> None:
        self._load = load
        self._finalize = finalize
        self._cache = cache
        self._name = name
        self._state: CacheState[T] = EMPTY

    @property
    def state(self) -> CacheState[T]:
        return self._state

    def get(self) -> Maybe[T]:
        state = self._state
        if isinstance(state, (Resolved, Refreshing)):
            return Immediate(state.value)
        if isinstance(state, Pending):
            return Deferred(state.future)
        return self._start(None)

    def refresh(self) -> Maybe[T]:
        """
        Fetch a fresh value, reusing any fetch already in flight.

        The returned result settles with the fresh value; on failure it raises
        while ``get()`` keeps serving the previous value.
        """
        state = self._state
        if isinstance(state, (Pending, Refreshing)):
            return Deferred(state.future)
        if isinstance(state, Resolved):
            return self._start(state)
        return self._start(None)

    def peek(self) -> T | None:
        state = self._state
        if isinstance(state, (Resolved, Refreshing)):
            return state.value
        return None

    def clear(self) -> None:
        self._state = EMPTY

    def _start(self, stale: Resolved[T] | None) -> Maybe[T]:
        raw = self._load()
        if not inspect.isawaitable(raw):
            value = self._finalize(raw)
            self._state = Resolved(value) if self._cache else EMPTY
            return Immediate(value)

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._settle(raw))
        if stale is None:
            self._state = Pending(task)
            task.add_done_callback(self._log_fetch_failure)
        else:
            self._state = Refreshing(stale.value, task)
            task.add_done_callback(self._log_refresh_failure)
        return Deferred(task)

    async def _settle(self, raw: Any) -> T:
        me = asyncio.current_task()
        try:
            value = self._finalize(await raw)
        except (Exception, asyncio.CancelledError):
            self._revert(me)
            raise

        if self._owns(me):
            self._state = Resolved(value) if self._cache else EMPTY
        return value

    def _owns(self, task: asyncio.Future[Any] | None) -> bool:
        state = self._state
        return isinstance(state, (Pending, Refreshing)) and state.future is task

    def _revert(self, task: asyncio.Future[Any] | None) -> None:
        if not self._owns(task):
            return
        state = self._state
        if isinstance(state, Refreshing):
            self._state = Resolved(state.value)
        else:
            self._state = EMPTY

    def _log_fetch_failure(self, task: asyncio.Future[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Fetch of %s failed: %s", self._name, exc)

    def _log_refresh_failure(self, task: asyncio.Future[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Refresh of %s failed, keeping stale value: %s", self._name, exc
            )
