"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import KeyStore
from .inmemory import InMemoryKeyStore, LRUKeyStore
from .noop import NOOP_KEY_STORE, NoopKeyStore
from .registry import (
    CacheOption,
    create_key_store,
    list_key_store_backends,
    register_key_store_backend,
)

__all__ = [
    "KeyStore",
    "InMemoryKeyStore",
    "LRUKeyStore",
    "NoopKeyStore",
    "NOOP_KEY_STORE",
    "CacheOption",
    "register_key_store_backend",
    "create_key_store",
    "list_key_store_backends",
]
