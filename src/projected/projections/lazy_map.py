"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Keyed collection materialized key by key through a batching dispatcher.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Generic, overload

from ..cache.base import KeyStore
from ..cache.registry import create_key_store
from ..maybe import Deferred, Immediate, Maybe
from ..options import LazyMapOptions, build_options
from ..protection import protect
from ..runtime.dispatcher import Dispatcher
from ..runtime.scheduling import Scheduler
from ..types import BatchFetcher, K, KeyFn, V

logger = logging.getLogger("projected.projections.lazy_map")


class ProjectedLazyMap(Generic[K, V]):
    """
    A large collection whose items are fetched only when they are read.

    Reads answer synchronously when every requested key is already in the
    key store. Misses go through a ``Dispatcher``, so misses from concurrent
    callers within one batch window share upstream calls. Keys the upstream
    does not return are never stored and are fetched again on the next read.

    Args:
        values: Batch fetch receiving a list of keys.
        key: Extracts the key of one returned item.
        options: Pre-built ``LazyMapOptions``; explicit keyword options
            override its fields.
        delay_s: Batch window in seconds.
        max_chunk_size: Maximum keys per upstream call.
        cache: ``True`` for an in-memory store, ``False`` to disable caching,
            a registered backend name, or a ``KeyStore`` instance.
        protection: ``"freeze"`` to deep-freeze stored items.
        scheduler: Timer source for the batch window.
    """

    def __init__(
        self,
        values: BatchFetcher[K, V],
        key: KeyFn[V, K],
        *,
        options: LazyMapOptions | None = None,
        delay_s: float | None = None,
        max_chunk_size: int | None = None,
        cache: Any = None,
        protection: str | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.options = build_options(
            LazyMapOptions,
            options,
            delay_s=delay_s,
            max_chunk_size=max_chunk_size,
            cache=cache,
            protection=protection,
        )
        self.store: KeyStore[K, V] = create_key_store(self.options.cache)
        self.dispatcher: Dispatcher[K, V] = Dispatcher(
            values,
            key,
            delay_s=self.options.delay_s,
            max_chunk_size=self.options.max_chunk_size,
            scheduler=scheduler,
            name=getattr(values, "__qualname__", "lazy_map"),
        )
        self._background: set[asyncio.Task[Any]] = set()

    def get_by_keys_sparse(
        self,
        keys: Iterable[K],
        *,
        immediate: bool = False,
    ) -> Maybe[list[V | None]]:
        """
        Items aligned with ``keys``; ``None`` marks a key the upstream lacks.

        With ``immediate=True`` misses skip the batch window and are fetched
        in a dedicated upstream call.
        """
        requested = list(keys)
        if not requested:
            return Immediate([])

        found: dict[K, V] = {}
        missing: list[K] = []
        for key in requested:
            if self.store.has(key):
                hit = self.store.get(key)
                if hit is not None:
                    found[key] = hit
                    continue
            missing.append(key)

        if not missing:
            return Immediate([found.get(key) for key in requested])

        task = asyncio.get_running_loop().create_task(
            self._fill(requested, list(dict.fromkeys(missing)), found, immediate=immediate)
        )
        return Deferred(task)

    def get_by_keys(self, keys: Iterable[K], *, immediate: bool = False) -> Maybe[list[V]]:
        """Items for ``keys`` in request order; missing keys are dropped."""
        return self.get_by_keys_sparse(keys, immediate=immediate).then(
            lambda rows: [row for row in rows if row is not None]
        )

    def get_by_key(self, key: K, *, immediate: bool = False) -> Maybe[V | None]:
        return self.get_by_keys_sparse([key], immediate=immediate).then(lambda rows: rows[0])

    @overload
    def get(self, key_or_keys: list[K], *, immediate: bool = False) -> Maybe[list[V]]: ...

    @overload
    def get(self, key_or_keys: K, *, immediate: bool = False) -> Maybe[V | None]: ...

    def get(self, key_or_keys: Any, *, immediate: bool = False) -> Maybe[Any]:
        """Mixed accessor: a ``list`` of keys reads many, anything else one key."""
        if isinstance(key_or_keys, list):
            return self.get_by_keys(key_or_keys, immediate=immediate)
        return self.get_by_key(key_or_keys, immediate=immediate)

    def delete(self, key_or_keys: Any) -> None:
        """Remove one key or a list of keys from the store."""
        for key in self._as_keys(key_or_keys):
            self.store.delete(key)

    def clear(self) -> None:
        """Empty the key store. Requests already queued still store their results."""
        self.store.clear()

    def refresh(self, key_or_keys: Any) -> Any:
        """
        Return the stored value(s) now and re-fetch them in the background.

        The store is updated only when the background fetch succeeds; a failed
        refresh is logged and the stale values keep serving. Use
        ``revalidate`` to await the fresh values or the error.
        """
        keys = self._as_keys(key_or_keys)
        stale = [self.store.get(key) for key in keys]

        task = asyncio.get_running_loop().create_task(self._revalidate(keys))
        self._background.add(task)
        task.add_done_callback(self._finish_refresh)

        if isinstance(key_or_keys, list):
            return stale
        return stale[0]

    def revalidate(self, key_or_keys: Any) -> Maybe[Any]:
        """Re-fetch key(s) and settle with the fresh value(s), aligned like ``refresh``."""
        keys = self._as_keys(key_or_keys)
        result: Maybe[list[V | None]] = Deferred(
            asyncio.get_running_loop().create_task(self._revalidate(keys))
        )
        if isinstance(key_or_keys, list):
            return result
        return result.then(lambda rows: rows[0])

    async def _fill(
        self,
        requested: list[K],
        missing: list[K],
        found: dict[K, V],
        *,
        immediate: bool,
    ) -> list[V | None]:
        if immediate:
            fetched = await self.dispatcher.fetch_now(missing)
        else:
            fetched = await self.dispatcher.resolve(missing)
        found.update(self._store_found(fetched))
        return [found.get(key) for key in requested]

    async def _revalidate(self, keys: list[K]) -> list[V | None]:
        fetched = await self.dispatcher.resolve(keys)
        stored = self._store_found(fetched)
        return [stored.get(key) for key in keys]

    def _store_found(self, fetched: Mapping[K, V | None]) -> dict[K, V]:
        stored: dict[K, V] = {}
        for key, value in fetched.items():
            if value is None:
                continue
            value = protect(value, self.options.protection)
            self.store.set(key, value)
            stored[key] = value
        return stored

    def _finish_refresh(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background refresh failed, keeping stale values: %s", exc)

    @staticmethod
    def _as_keys(key_or_keys: Any) -> list[K]:
        if isinstance(key_or_keys, list):
            return list(key_or_keys)
        return [key_or_keys]
