"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared type aliases for fetch functions and key extractors.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable, Iterable
from typing import Literal, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
T = TypeVar("T")
R = TypeVar("R")

Protection = Literal["freeze", "none"]

KeyFn = Callable[[V], K]
"""Extract the key of one fetched item."""

ValueFetcher = Callable[[], V | Awaitable[V]]
"""Fetch a single value, sync or async."""

CollectionFetcher = Callable[[], Iterable[V] | Awaitable[Iterable[V]]]
"""Fetch a whole collection in one call."""

BatchFetcher = Callable[
    [list[K]],
    Iterable[V | None] | Awaitable[Iterable[V | None]],
]
"""Fetch items for a list of keys. Items are matched back by key, not position."""
