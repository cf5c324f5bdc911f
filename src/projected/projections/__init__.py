"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: projections/__init__.py.
"""

from .lazy_map import ProjectedLazyMap
from .map import ProjectedMap
from .value import ProjectedValue

__all__ = [
    "ProjectedValue",
    "ProjectedMap",
    "ProjectedLazyMap",
]
