"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers building projections from process settings.
"""

from __future__ import annotations

from typing import Any

from .projections import ProjectedLazyMap, ProjectedMap, ProjectedValue
from .runtime.scheduling import Scheduler
from .settings import ProjectionSettings
from .types import BatchFetcher, CollectionFetcher, K, KeyFn, V, ValueFetcher


def create_projected_value(
    value: ValueFetcher[V],
    *,
    settings: ProjectionSettings | None = None,
    **overrides: Any,
) -> ProjectedValue[V]:
    """
    Create a ``ProjectedValue`` with defaults from ``settings``.

    Settings are loaded from ``PROJECTED_*`` environment variables when not
    supplied; keyword overrides win over both.
    """
    resolved = settings or ProjectionSettings.from_env()
    return ProjectedValue(value, options=resolved.value_options(**overrides))


def create_projected_map(
    values: CollectionFetcher[V],
    key: KeyFn[V, K],
    *,
    settings: ProjectionSettings | None = None,
    **overrides: Any,
) -> ProjectedMap[K, V]:
    """Create a ``ProjectedMap`` with defaults from ``settings``."""
    resolved = settings or ProjectionSettings.from_env()
    return ProjectedMap(values, key, options=resolved.map_options(**overrides))


def create_projected_lazy_map(
    values: BatchFetcher[K, V],
    key: KeyFn[V, K],
    *,
    settings: ProjectionSettings | None = None,
    scheduler: Scheduler | None = None,
    **overrides: Any,
) -> ProjectedLazyMap[K, V]:
    """Create a ``ProjectedLazyMap``; ``PROJECTED_CACHE_BACKEND`` picks the default store."""
    resolved = settings or ProjectionSettings.from_env()
    return ProjectedLazyMap(
        values,
        key,
        options=resolved.lazy_map_options(**overrides),
        scheduler=scheduler,
    )
