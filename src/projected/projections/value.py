"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Single value fetched from a remote source on first use.
"""

from __future__ import annotations

from typing import Any, Generic

from ..errors import InvalidValueError
from ..maybe import Maybe
from ..options import ValueOptions, build_options
from ..protection import protect
from ..runtime.state import CacheState, StateCell
from ..types import V, ValueFetcher


class ProjectedValue(Generic[V]):
    """
    A value that is expensive to fetch and is fetched only when needed.

    Concurrent readers share one in-flight fetch. ``refresh()`` re-fetches in
    the background while ``get()`` keeps answering with the cached value.

    Example::

        config = ProjectedValue(load_remote_config)
        current = await config.get()
        fresh = await config.refresh()
    """

    def __init__(
        self,
        value: ValueFetcher[V],
        *,
        options: ValueOptions | None = None,
        cache: bool | None = None,
        protection: str | None = None,
        allow_none: bool | None = None,
    ) -> None:
        self.options = build_options(
            ValueOptions,
            options,
            cache=cache,
            protection=protection,
            allow_none=allow_none,
        )
        self._cell: StateCell[V] = StateCell(
            value,
            finalize=self._finalize,
            cache=self.options.cache,
            name=getattr(value, "__qualname__", "value"),
        )

    @property
    def state(self) -> CacheState[V]:
        return self._cell.state

    def get(self) -> Maybe[V]:
        """Cached value, the in-flight fetch, or a newly started fetch."""
        return self._cell.get()

    def refresh(self) -> Maybe[V]:
        """Re-fetch and settle with the fresh value; failures keep the old one cached."""
        return self._cell.refresh()

    def peek(self) -> V | None:
        """Cached value without triggering a fetch."""
        return self._cell.peek()

    def clear(self) -> None:
        """Forget the cached value; the next ``get()`` fetches again."""
        self._cell.clear()

    def _finalize(self, raw: Any) -> V:
        if raw is None and not self.options.allow_none:
            raise InvalidValueError("Fetched value None is not allowed in ProjectedValue")
        return protect(raw, self.options.protection)
