"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Validated option models for projections and the batching dispatcher.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from .errors import ProjectionConfigError

OptionsT = TypeVar("OptionsT", bound=BaseModel)


class ProjectionOptions(BaseModel):
    """Options shared by every projection shape."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    protection: Literal["freeze", "none"] = "none"


class ValueOptions(ProjectionOptions):
    """Options for ``ProjectedValue``."""

    cache: StrictBool = True
    allow_none: StrictBool = False


class MapOptions(ProjectionOptions):
    """Options for ``ProjectedMap``."""

    cache: StrictBool = True


class BatchOptions(BaseModel):
    """Batch window and chunk size for the dispatcher."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    delay_s: float = Field(default=0.05, ge=0)
    max_chunk_size: int = Field(default=1000, ge=1)


class LazyMapOptions(ProjectionOptions, BatchOptions):
    """Options for ``ProjectedLazyMap``. ``cache`` accepts a key store instance."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    cache: Any = True


def build_options(
    model: type[OptionsT],
    base: BaseModel | None = None,
    **overrides: Any,
) -> OptionsT:
    """
    Validate ``base`` merged with non-``None`` overrides into ``model``.

    Raises ``ProjectionConfigError`` on invalid values or unknown option names.
    """
    values: dict[str, Any] = dict(base) if base is not None else {}
    values.update({name: value for name, value in overrides.items() if value is not None})
    try:
        return model(**values)
    except ValidationError as exc:
        raise ProjectionConfigError(
            f"Invalid {model.__name__}: {exc.errors(include_url=False)}"
        ) from exc
