"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

from typing import Generic, Protocol, runtime_checkable

from ..types import K, V


@runtime_checkable
class KeyStore(Protocol, Generic[K, V]):
    """Capability implemented by key stores backing a lazy projection."""

    def has(self, key: K) -> bool: ...

    def get(self, key: K) -> V | None: ...

    def set(self, key: K, value: V) -> None: ...

    def delete(self, key: K) -> None: ...

    def clear(self) -> None: ...
