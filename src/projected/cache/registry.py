"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/registry.py.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import Any

from ..errors import ProjectionConfigError
from .base import KeyStore
from .inmemory import InMemoryKeyStore, LRUKeyStore
from .noop import NOOP_KEY_STORE

KeyStoreFactory = Callable[[], KeyStore[Any, Any]]

_REGISTRY: dict[str, KeyStoreFactory] = {
    "inmemory": InMemoryKeyStore,
    "lru": LRUKeyStore,
    "noop": lambda: NOOP_KEY_STORE,
}
_LOCK = Lock()

CacheOption = bool | str | KeyStore[Any, Any] | None


def register_key_store_backend(
    backend_id: str,
    factory: KeyStoreFactory,
    *,
    overwrite: bool = False,
) -> None:
    """Register one key store factory by id."""
    key = backend_id.strip().lower()
    if not key:
        raise ProjectionConfigError("Key store backend id must be non-empty")

    with _LOCK:
        if key in _REGISTRY and not overwrite:
            raise ProjectionConfigError(f"Key store backend already registered: {key}")
        _REGISTRY[key] = factory


def create_key_store(cache: CacheOption = None) -> KeyStore[Any, Any]:
    """
    Resolve the ``cache`` option into a key store instance.

    ``None``/``True`` build a fresh in-memory store, ``False`` the shared no-op
    store, a string a registered backend; any other object must implement the
    ``KeyStore`` capability and is used as-is.
    """
    if cache is None or cache is True:
        return InMemoryKeyStore()
    if cache is False:
        return NOOP_KEY_STORE

    if isinstance(cache, str):
        key = cache.strip().lower()
        with _LOCK:
            factory = _REGISTRY.get(key)
        if factory is None:
            raise ProjectionConfigError(f"Unknown key store backend '{cache}'")
        return factory()

    if not isinstance(cache, KeyStore):
        raise ProjectionConfigError(
            f"Object of type {type(cache).__name__} does not implement "
            "has/get/set/delete/clear"
        )
    return cache


def list_key_store_backends() -> list[str]:
    """List registered key store backend ids."""
    with _LOCK:
        return sorted(_REGISTRY.keys())
