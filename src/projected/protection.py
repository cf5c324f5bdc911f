"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Value protection applied to fetched objects before they are cached.

Cached objects are shared between every caller of a projection, so an
accidental mutation by one caller would leak into the answers of all the
others. ``deep_freeze`` returns a read-only equivalent of a fetched value.
"""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType, ModuleType
from typing import Any

from pydantic import BaseModel, ConfigDict

from .errors import ProjectionConfigError
from .types import Protection, T

PROTECTION_MODES: tuple[Protection, ...] = ("freeze", "none")

_ATOMIC = (str, bytes, int, float, complex, bool, type(None), frozenset, Enum)

# original class -> read-only derived class
_FROZEN_TYPES: dict[type, type] = {}


def deep_freeze(value: Any) -> Any:
    """
    Return an immutable equivalent of ``value``.

    - ``dict``/mappings become read-only ``MappingProxyType`` views
    - ``list``/``tuple`` become tuples, ``set`` becomes ``frozenset``
    - ``bytearray`` becomes ``bytes``
    - pydantic models become copies of a ``frozen=True`` subclass
    - dataclasses and plain objects become copies of a derived class whose
      ``__setattr__``/``__delattr__`` raise ``TypeError``; their attribute
      values are frozen recursively

    The input is never modified. Scalars, enums, classes, modules and
    callables are returned unchanged.
    """
    return _freeze(value, memo={})


def _freeze(value: Any, *, memo: dict[int, Any]) -> Any:
    if isinstance(value, _ATOMIC) or isinstance(value, MappingProxyType):
        return value
    if isinstance(value, (type, ModuleType)) or callable(value):
        return value
    marker = id(value)
    if marker in memo:
        return memo[marker]

    if isinstance(value, Mapping):
        rows: dict[Any, Any] = {}
        memo[marker] = proxy = MappingProxyType(rows)
        for k, v in value.items():
            rows[k] = _freeze(v, memo=memo)
        return proxy
    if isinstance(value, (list, tuple)):
        memo[marker] = value
        frozen = tuple(_freeze(item, memo=memo) for item in value)
        if isinstance(value, tuple) and hasattr(value, "_fields"):
            frozen = type(value)(*frozen)
        memo[marker] = frozen
        return frozen
    if isinstance(value, set):
        memo[marker] = result = frozenset(_freeze(item, memo=memo) for item in value)
        return result
    if isinstance(value, bytearray):
        return bytes(value)
    if type(value) in _FROZEN_TYPES.values():
        return value

    if isinstance(value, BaseModel):
        return _freeze_model(value, memo=memo)
    if dataclasses.is_dataclass(value):
        names = [field.name for field in dataclasses.fields(value)]
    else:
        attrs = getattr(value, "__dict__", None)
        if not isinstance(attrs, dict):
            return value
        names = list(attrs)

    clone = copy.copy(value)
    if clone is value:
        return value
    memo[marker] = clone
    for name in names:
        object.__setattr__(clone, name, _freeze(getattr(value, name), memo=memo))
    object.__setattr__(clone, "__class__", _frozen_type(type(value)))
    return clone


def _freeze_model(model: BaseModel, *, memo: dict[int, Any]) -> BaseModel:
    cls = type(model)
    memo[id(model)] = model
    fields = {name: _freeze(getattr(model, name), memo=memo) for name in cls.model_fields}
    extra = {name: _freeze(v, memo=memo) for name, v in (model.model_extra or {}).items()}
    frozen = _frozen_model_type(cls).model_construct(
        _fields_set=set(model.model_fields_set), **fields, **extra
    )
    memo[id(model)] = frozen
    return frozen


def _reject_setattr(self: Any, name: str, value: Any) -> None:
    raise TypeError(f"Cannot set '{name}' on frozen {type(self).__name__}")


def _reject_delattr(self: Any, name: str) -> None:
    raise TypeError(f"Cannot delete '{name}' on frozen {type(self).__name__}")


def _frozen_type(cls: type) -> type:
    frozen = _FROZEN_TYPES.get(cls)
    if frozen is None:
        frozen = type(cls)(
            cls.__name__,
            (cls,),
            {
                "__slots__": (),
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "__setattr__": _reject_setattr,
                "__delattr__": _reject_delattr,
            },
        )
        _FROZEN_TYPES[cls] = frozen
    return frozen


def _frozen_model_type(cls: type[BaseModel]) -> type[BaseModel]:
    if cls.model_config.get("frozen"):
        return cls
    frozen = _FROZEN_TYPES.get(cls)
    if frozen is None:
        frozen = type(cls)(
            cls.__name__,
            (cls,),
            {
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "model_config": ConfigDict(frozen=True),
            },
        )
        _FROZEN_TYPES[cls] = frozen
    return frozen


def protect(value: T, mode: Protection) -> T:
    """Apply protection ``mode`` to one fetched value."""
    if mode == "none":
        return value
    if mode == "freeze":
        return deep_freeze(value)
    raise ProjectionConfigError(
        f"Unknown protection mode '{mode}'; expected one of {', '.join(PROTECTION_MODES)}"
    )
