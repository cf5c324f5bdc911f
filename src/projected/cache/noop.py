"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/noop.py.
"""

from __future__ import annotations

from typing import Any

from .base import KeyStore


class NoopKeyStore(KeyStore[Any, Any]):
    """Store that never retains anything; used when caching is disabled."""

    backend_id = "noop"

    def has(self, key: Any) -> bool:
        return False

    def get(self, key: Any) -> None:
        return None

    def set(self, key: Any, value: Any) -> None:
        return None

    def delete(self, key: Any) -> None:
        return None

    def clear(self) -> None:
        return None


NOOP_KEY_STORE = NoopKeyStore()
