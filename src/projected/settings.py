"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Projection defaults and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from .options import LazyMapOptions, MapOptions, ValueOptions, build_options


@dataclass(frozen=True, slots=True)
class ProjectionSettings:
    """Process-wide defaults applied by the ``create_projected_*`` factories."""

    delay_s: float = 0.05
    max_chunk_size: int = 1000
    protection: str = "none"
    cache_backend: str = "inmemory"

    @staticmethod
    def from_env() -> "ProjectionSettings":
        """Load settings from environment variables."""
        return ProjectionSettings(
            delay_s=float(os.getenv("PROJECTED_DELAY_S", "0.05")),
            max_chunk_size=int(os.getenv("PROJECTED_MAX_CHUNK_SIZE", "1000")),
            protection=os.getenv("PROJECTED_PROTECTION", "none").strip().lower(),
            cache_backend=os.getenv("PROJECTED_CACHE_BACKEND", "inmemory").strip().lower(),
        )

    def value_options(self, **overrides: Any) -> ValueOptions:
        return build_options(ValueOptions, **_merge({"protection": self.protection}, overrides))

    def map_options(self, **overrides: Any) -> MapOptions:
        return build_options(MapOptions, **_merge({"protection": self.protection}, overrides))

    def lazy_map_options(self, **overrides: Any) -> LazyMapOptions:
        """Build lazy map options; the configured backend name becomes the default store."""
        defaults: dict[str, Any] = {
            "delay_s": self.delay_s,
            "max_chunk_size": self.max_chunk_size,
            "protection": self.protection,
            "cache": self.cache_backend,
        }
        return build_options(LazyMapOptions, **_merge(defaults, overrides))


def _merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(defaults)
    merged.update({name: value for name, value in overrides.items() if value is not None})
    return merged
