"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Transparent caching and request coalescing in front of remote fetch functions.

Three projection shapes are provided:

- ``ProjectedValue``: one value fetched on first use
- ``ProjectedMap``: a keyed collection fetched as a whole
- ``ProjectedLazyMap``: a keyed collection fetched key by key, with misses
  batched through a ``Dispatcher``

Quick start::

    from projected import ProjectedLazyMap

    users = ProjectedLazyMap(fetch_users_by_ids, key=lambda user: user["id"])
    alice, bob = await users.get_by_keys(["alice", "bob"])
"""

from .cache import (
    NOOP_KEY_STORE,
    InMemoryKeyStore,
    KeyStore,
    LRUKeyStore,
    NoopKeyStore,
    create_key_store,
    list_key_store_backends,
    register_key_store_backend,
)
from .errors import (
    InvalidValueError,
    ProjectionConfigError,
    ProjectionError,
    UpstreamFetchError,
)
from .factory import (
    create_projected_lazy_map,
    create_projected_map,
    create_projected_value,
)
from .maybe import Deferred, Immediate, Maybe, lift, maybe_catch, maybe_then, resolve
from .options import (
    BatchOptions,
    LazyMapOptions,
    MapOptions,
    ProjectionOptions,
    ValueOptions,
)
from .projections import ProjectedLazyMap, ProjectedMap, ProjectedValue
from .protection import deep_freeze, protect
from .runtime import (
    CacheState,
    Dispatcher,
    DispatcherStats,
    Empty,
    LoopScheduler,
    ManualScheduler,
    Pending,
    Refreshing,
    Resolved,
    Scheduler,
)
from .settings import ProjectionSettings

__all__ = [
    "ProjectedValue",
    "ProjectedMap",
    "ProjectedLazyMap",
    "create_projected_value",
    "create_projected_map",
    "create_projected_lazy_map",
    "Dispatcher",
    "DispatcherStats",
    "Scheduler",
    "LoopScheduler",
    "ManualScheduler",
    "CacheState",
    "Empty",
    "Pending",
    "Resolved",
    "Refreshing",
    "Maybe",
    "Immediate",
    "Deferred",
    "lift",
    "maybe_then",
    "maybe_catch",
    "resolve",
    "KeyStore",
    "InMemoryKeyStore",
    "LRUKeyStore",
    "NoopKeyStore",
    "NOOP_KEY_STORE",
    "create_key_store",
    "register_key_store_backend",
    "list_key_store_backends",
    "ProjectionOptions",
    "ValueOptions",
    "MapOptions",
    "LazyMapOptions",
    "BatchOptions",
    "ProjectionSettings",
    "deep_freeze",
    "protect",
    "ProjectionError",
    "ProjectionConfigError",
    "InvalidValueError",
    "UpstreamFetchError",
]
