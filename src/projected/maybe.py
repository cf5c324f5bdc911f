"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Value-or-pending result type returned by every projection read.

A read answered from cache is ``Immediate`` and can be consumed without an
event loop; a read that has to wait on an upstream fetch is ``Deferred``.
Both variants are awaitable, so ``await projection.get()`` works either way,
and both expose ``then``/``catch`` to chain a transformation without
branching on the variant.

Example::

    result = users.get_by_key("42")
    if result.ready:
        print(result.value)
    else:
        print(await result)

    names = users.get_by_keys(["1", "2"]).then(lambda rows: [r.name for r in rows])
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Generator
from dataclasses import dataclass
from typing import Any, Generic, Union

from .types import R, T


async def _completed(value: T) -> T:
    return value


async def _settle(value: Any) -> Any:
    """Await nested awaitables until a plain value remains."""
    while isinstance(value, (Immediate, Deferred)) or inspect.isawaitable(value):
        value = await value
    return value


@dataclass(frozen=True, slots=True)
class Immediate(Generic[T]):
    """Result available synchronously."""

    value: T

    @property
    def ready(self) -> bool:
        return True

    def then(self, fn: Callable[[T], Any]) -> Maybe[R]:
        return lift(fn(self.value))

    def catch(self, fn: Callable[[BaseException], Any]) -> Maybe[T]:
        _ = fn
        return self

    def __await__(self) -> Generator[Any, None, T]:
        return _completed(self.value).__await__()


@dataclass(frozen=True, slots=True)
class Deferred(Generic[T]):
    """Result that settles once an in-flight fetch completes."""

    future: asyncio.Future[T]

    @property
    def ready(self) -> bool:
        return False

    def then(self, fn: Callable[[T], Any]) -> Maybe[R]:
        async def _chain() -> R:
            return await _settle(fn(await self.future))

        return Deferred(asyncio.ensure_future(_chain()))

    def catch(self, fn: Callable[[BaseException], Any]) -> Maybe[T]:
        async def _recover() -> T:
            try:
                return await self.future
            except Exception as exc:
                return await _settle(fn(exc))

        return Deferred(asyncio.ensure_future(_recover()))

    def __await__(self) -> Generator[Any, None, T]:
        # a cancelled awaiter must not cancel the fetch shared with other callers
        return asyncio.shield(self.future).__await__()


Maybe = Union[Immediate[T], Deferred[T]]


def lift(value: Any) -> Maybe[Any]:
    """Wrap a plain value or an awaitable into the matching ``Maybe`` variant."""
    if isinstance(value, (Immediate, Deferred)):
        return value
    if isinstance(value, asyncio.Future):
        return Deferred(value)
    if inspect.isawaitable(value):
        return Deferred(asyncio.ensure_future(_settle(value)))
    return Immediate(value)


def maybe_then(value: Any, fn: Callable[[Any], Any]) -> Any:
    """
    Chain ``fn`` on a value that may or may not be awaitable.

    Plain values are transformed directly; awaitables return a ``Deferred``.
    """
    if isinstance(value, (Immediate, Deferred)):
        return value.then(fn)
    if inspect.isawaitable(value):
        return lift(value).then(fn)
    return fn(value)


def maybe_catch(value: Any, fn: Callable[[BaseException], Any]) -> Any:
    """Attach error recovery to an awaitable; plain values pass through unchanged."""
    if isinstance(value, (Immediate, Deferred)):
        return value.catch(fn)
    if inspect.isawaitable(value):
        return lift(value).catch(fn)
    return value


async def resolve(value: Awaitable[T] | T) -> T:
    """Await ``value`` if needed and return the plain result."""
    return await _settle(value)
