"""Recipe database records and their JSON decoding."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from os import PathLike
from typing import Any

_U64_MAX = 2**64 - 1
_ISIZE_MIN = -(2**63)
_ISIZE_MAX = 2**63 - 1


def _mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _required(data: Mapping, key: str, what: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{what}: missing field {key!r}") from None


def _integer(data: Mapping, key: str, what: str, low: int = 0, high: int = _U64_MAX) -> int:
    value = _required(data, key, what)
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ValueError(f"{what}: field {key!r} must be an integer in [{low}, {high}]")
    return value


def _boolean(data: Mapping, key: str, what: str) -> bool:
    value = _required(data, key, what)
    if not isinstance(value, bool):
        raise ValueError(f"{what}: field {key!r} must be a boolean")
    return value


def _string(data: Mapping, key: str, what: str) -> str:
    value = _required(data, key, what)
    if not isinstance(value, str):
        raise ValueError(f"{what}: field {key!r} must be a string")
    return value


def _optional_string(data: Mapping, key: str, what: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{what}: field {key!r} must be a string or null")
    return value


def _list(data: Mapping, key: str, what: str) -> list:
    value = _required(data, key, what)
    if not isinstance(value, list):
        raise ValueError(f"{what}: field {key!r} must be a list")
    return value


@dataclass(kw_only=True)
class RecipeItem:
    """An item consumed or produced by a recipe."""

    amount: int
    meta: int
    id: str | None = None
    localized_name: str | None = None
    nbt: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> RecipeItem:
        what = "recipe item"
        data = _mapping(data, what)
        return cls(
            id=_optional_string(data, "id", what),
            localized_name=_optional_string(data, "lN", what),
            amount=_integer(data, "a", what),
            meta=_integer(data, "m", what),
            nbt=_optional_string(data, "nbt", what),
        )


@dataclass(kw_only=True)
class RecipeFluid:
    """A fluid consumed or produced by a recipe, amount in millibuckets."""

    id: str
    localized_name: str
    amount: int

    @classmethod
    def from_dict(cls, data: Any) -> RecipeFluid:
        what = "recipe fluid"
        data = _mapping(data, what)
        return cls(
            id=_string(data, "id", what),
            localized_name=_string(data, "lN", what),
            amount=_integer(data, "a", what),
        )


@dataclass(kw_only=True)
class GregTechRecipe:
    """A machine processing recipe with its inputs, outputs and costs."""

    duration: int
    energy_usage: int
    enabled: bool = True
    special: int = 0
    item_inputs: list[RecipeItem] = field(default_factory=list)
    item_outputs: list[RecipeItem] = field(default_factory=list)
    fluid_inputs: list[RecipeFluid] = field(default_factory=list)
    fluid_outputs: list[RecipeFluid] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> GregTechRecipe:
        what = "recipe"
        data = _mapping(data, what)
        return cls(
            enabled=_boolean(data, "en", what),
            duration=_integer(data, "dur", what),
            energy_usage=_integer(data, "eut", what),
            special=_integer(data, "sp", what, _ISIZE_MIN, _ISIZE_MAX),
            item_inputs=[RecipeItem.from_dict(i) for i in _list(data, "iI", what)],
            item_outputs=[RecipeItem.from_dict(i) for i in _list(data, "iO", what)],
            fluid_inputs=[RecipeFluid.from_dict(f) for f in _list(data, "fI", what)],
            fluid_outputs=[RecipeFluid.from_dict(f) for f in _list(data, "fO", what)],
        )


@dataclass(kw_only=True)
class FurnaceRecipe:
    """A plain smelting recipe: one item in, one item out."""

    input: RecipeItem
    output: RecipeItem

    @classmethod
    def from_dict(cls, data: Any) -> FurnaceRecipe:
        what = "furnace recipe"
        data = _mapping(data, what)
        return cls(
            input=RecipeItem.from_dict(_required(data, "input", what)),
            output=RecipeItem.from_dict(_required(data, "output", what)),
        )


@dataclass(kw_only=True)
class Machine:
    """A recipe category (machine) and the recipes it can process."""

    name: str
    recipes: list[GregTechRecipe] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Machine:
        what = "machine"
        data = _mapping(data, what)
        return cls(
            name=_string(data, "n", what),
            recipes=[GregTechRecipe.from_dict(r) for r in _list(data, "recs", what)],
        )


@dataclass(kw_only=True)
class RecipeDatabase:
    """All known machine recipes plus furnace smelting recipes."""

    machines: list[Machine] = field(default_factory=list)
    smelting: list[FurnaceRecipe] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> RecipeDatabase:
        what = "recipe database"
        data = _mapping(data, what)
        return cls(
            machines=[Machine.from_dict(m) for m in _list(data, "machines", what)],
            smelting=[FurnaceRecipe.from_dict(s) for s in _list(data, "smelting", what)],
        )


def parse_database(text: str | bytes) -> RecipeDatabase:
    """Decode a recipe database from JSON text."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as error:
        raise ValueError(f"invalid recipe database JSON: {error}") from error
    return RecipeDatabase.from_dict(data)


def load_database(path: str | PathLike) -> RecipeDatabase:
    """Read and decode a recipe database from a JSON file."""
    with open(path, encoding="utf-8") as handle:
        return parse_database(handle.read())