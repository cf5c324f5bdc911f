from __future__ import annotations

from collections import namedtuple
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

import pytest
from pydantic import BaseModel, ValidationError

from projected import ProjectedValue, ProjectionConfigError, deep_freeze, protect

Point = namedtuple("Point", ["x", "y"])


@dataclass
class Profile:
    name: str
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Slotted:
    name: str
    tags: list[str]


class Record:
    def __init__(self) -> None:
        self.meta = {"labels": ["a"]}


class User(BaseModel):
    id: str
    name: str
    roles: list[str] = []


class Color(Enum):
    RED = "red"


def test_builtin_containers_become_immutable():
    frozen = deep_freeze(
        {"rows": [1, {"nested": [2, 3]}], "ids": {4, 5}, "raw": bytearray(b"ab")}
    )

    assert isinstance(frozen, MappingProxyType)
    assert frozen["rows"][0] == 1
    assert frozen["rows"][1]["nested"] == (2, 3)
    assert frozen["ids"] == frozenset({4, 5})
    assert frozen["raw"] == b"ab"
    with pytest.raises(TypeError):
        frozen["rows"] = ()  # type: ignore[index]


def test_named_tuples_keep_their_type():
    frozen = deep_freeze(Point([1], [2]))

    assert isinstance(frozen, Point)
    assert frozen.x == (1,)


def test_dataclass_copy_rejects_attribute_writes():
    profile = Profile("ann", ["admin"])

    frozen = deep_freeze(profile)

    assert frozen is not profile
    assert isinstance(frozen, Profile)
    assert frozen.name == "ann"
    assert frozen.tags == ("admin",)
    with pytest.raises(TypeError):
        frozen.name = "mutated"
    with pytest.raises(TypeError):
        del frozen.tags
    assert profile.tags == ["admin"]
    profile.name = "still writable"


def test_slotted_frozen_dataclass_has_frozen_values():
    frozen = deep_freeze(Slotted("ann", ["a"]))

    assert isinstance(frozen, Slotted)
    assert frozen.tags == ("a",)
    with pytest.raises(TypeError):
        frozen.name = "mutated"  # type: ignore[misc]


def test_plain_object_copy_rejects_attribute_writes():
    record = Record()

    frozen = deep_freeze(record)

    assert isinstance(frozen, Record)
    assert isinstance(frozen.meta, MappingProxyType)
    assert frozen.meta["labels"] == ("a",)
    with pytest.raises(TypeError):
        frozen.meta = {}
    with pytest.raises(TypeError):
        frozen.extra = 1
    assert isinstance(record.meta, dict)


def test_pydantic_model_becomes_frozen_copy():
    user = User(id="1", name="ann", roles=["admin"])

    frozen = deep_freeze(user)

    assert isinstance(frozen, User)
    assert frozen.name == "ann"
    assert frozen.roles == ("admin",)
    with pytest.raises(ValidationError):
        frozen.name = "mutated"
    user.name = "still writable"


def test_freezing_is_idempotent():
    frozen = deep_freeze(Profile("ann"))
    assert deep_freeze(frozen) is frozen

    model = deep_freeze(User(id="1", name="ann"))
    assert deep_freeze(model) is model


def test_cycles_terminate():
    node = Record()
    node.meta = {"self": node}

    frozen = deep_freeze(node)

    assert frozen.meta["self"] is frozen


def test_scalars_enums_and_callables_pass_through():
    for value in ("text", b"raw", 1, 2.5, True, None, Color.RED, len, Record):
        assert deep_freeze(value) is value


def test_cached_object_cannot_be_mutated_by_a_reader():
    value = ProjectedValue(lambda: Profile("ann"), protection="freeze")

    with pytest.raises(TypeError):
        value.get().value.name = "mutated"

    assert value.get().value.name == "ann"


def test_protect_modes():
    payload = {"a": [1]}

    assert protect(payload, "none") is payload
    assert isinstance(protect(payload, "freeze"), MappingProxyType)
    with pytest.raises(ProjectionConfigError):
        protect(payload, "seal")  # type: ignore[arg-type]
