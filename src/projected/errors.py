"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error types raised by projections and their runtime.
"""

from __future__ import annotations


class ProjectionError(RuntimeError):
    """Base error for projection failures."""


class ProjectionConfigError(ProjectionError, ValueError):
    """Raised when projection options or key store resolution are invalid."""


class InvalidValueError(ProjectionError):
    """Raised when a fetched value fails the shape-specific validity check."""


class UpstreamFetchError(ProjectionError):
    """Raised when the upstream returned a payload that cannot be interpreted."""
