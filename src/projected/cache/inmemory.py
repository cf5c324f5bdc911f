"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/inmemory.py.
"""

from __future__ import annotations

from collections import OrderedDict

from ..errors import ProjectionConfigError
from ..types import K, V
from .base import KeyStore


class InMemoryKeyStore(KeyStore[K, V]):
    """Unbounded process-local store; the default when caching is enabled."""

    backend_id = "inmemory"

    def __init__(self) -> None:
        self._rows: dict[K, V] = {}

    def has(self, key: K) -> bool:
        return key in self._rows

    def get(self, key: K) -> V | None:
        return self._rows.get(key)

    def set(self, key: K, value: V) -> None:
        self._rows[key] = value

    def delete(self, key: K) -> None:
        self._rows.pop(key, None)

    def clear(self) -> None:
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)


class LRUKeyStore(KeyStore[K, V]):
    """Bounded store evicting the least recently used key past ``max_size``."""

    backend_id = "lru"

    def __init__(self, max_size: int = 1024) -> None:
        if max_size < 1:
            raise ProjectionConfigError("LRUKeyStore max_size must be >= 1")
        self._max_size = max_size
        self._rows: OrderedDict[K, V] = OrderedDict()

    @property
    def max_size(self) -> int:
        return self._max_size

    def has(self, key: K) -> bool:
        return key in self._rows

    def get(self, key: K) -> V | None:
        try:
            value = self._rows.pop(key)
        except KeyError:
            return None
        self._rows[key] = value
        return value

    def set(self, key: K, value: V) -> None:
        if key in self._rows:
            self._rows.pop(key)
        self._rows[key] = value
        if len(self._rows) > self._max_size:
            self._rows.popitem(last=False)

    def delete(self, key: K) -> None:
        self._rows.pop(key, None)

    def clear(self) -> None:
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)
