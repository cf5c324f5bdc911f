"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Keyed collection fetched in one shot and kept in memory.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Generic, overload

from ..errors import UpstreamFetchError
from ..maybe import Immediate, Maybe
from ..options import MapOptions, build_options
from ..protection import protect
from ..runtime.state import CacheState, StateCell
from ..types import CollectionFetcher, K, KeyFn, V


class ProjectedMap(Generic[K, V]):
    """
    A fairly small collection fetched as a whole on first access.

    Every read shares one cached ``{key: item}`` map, so a burst of reads on
    an empty map triggers a single upstream call. ``refresh()`` re-fetches the
    whole collection in the background and swaps the map only on success.
    """

    def __init__(
        self,
        values: CollectionFetcher[V],
        key: KeyFn[V, K],
        *,
        options: MapOptions | None = None,
        cache: bool | None = None,
        protection: str | None = None,
    ) -> None:
        self.options = build_options(MapOptions, options, cache=cache, protection=protection)
        self._key = key
        self._cell: StateCell[dict[K, V]] = StateCell(
            values,
            finalize=self._index,
            cache=self.options.cache,
            name=getattr(values, "__qualname__", "map"),
        )

    @property
    def state(self) -> CacheState[dict[K, V]]:
        return self._cell.state

    def get_all(self) -> Maybe[list[V]]:
        """All items in upstream order."""
        return self._cell.get().then(lambda rows: list(rows.values()))

    def get_all_as_map(self) -> Maybe[dict[K, V]]:
        """A copy of the ``{key: item}`` map."""
        return self._cell.get().then(dict)

    def get_by_key(self, key: K) -> Maybe[V | None]:
        return self._cell.get().then(lambda rows: rows.get(key))

    def get_by_keys(self, keys: Iterable[K]) -> Maybe[list[V]]:
        """Items for ``keys`` in request order; missing keys are dropped."""
        return self.get_by_keys_sparse(keys).then(
            lambda rows: [row for row in rows if row is not None]
        )

    def get_by_keys_sparse(self, keys: Iterable[K]) -> Maybe[list[V | None]]:
        """Items aligned with ``keys``; ``None`` marks a missing key."""
        requested = list(keys)
        if not requested:
            return Immediate([])
        return self._cell.get().then(lambda rows: [rows.get(k) for k in requested])

    @overload
    def get(self, key_or_keys: list[K]) -> Maybe[list[V]]: ...

    @overload
    def get(self, key_or_keys: K) -> Maybe[V | None]: ...

    def get(self, key_or_keys: Any) -> Maybe[Any]:
        """Mixed accessor: a ``list`` of keys reads many, anything else one key."""
        if isinstance(key_or_keys, list):
            return self.get_by_keys(key_or_keys)
        return self.get_by_key(key_or_keys)

    def refresh(self) -> Maybe[dict[K, V]]:
        """Re-fetch the collection; settles with a copy of the fresh map."""
        return self._cell.refresh().then(dict)

    def peek(self) -> dict[K, V] | None:
        """Copy of the cached map without fetching, or ``None`` when empty."""
        rows = self._cell.peek()
        return dict(rows) if rows is not None else None

    def clear(self) -> None:
        """Drop the cached map so the next read fetches again."""
        self._cell.clear()

    def _index(self, items: Any) -> dict[K, V]:
        if items is None or isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
            raise UpstreamFetchError(
                f"Collection fetch returned {type(items).__name__}, expected an iterable of items"
            )
        rows: dict[K, V] = {}
        for item in items:
            if item is None:
                continue
            rows[self._key(item)] = protect(item, self.options.protection)
        return rows
