"""Optimization requests sent by clients, and their JSON decoding."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

_U64_MAX = 2**64 - 1
_MISSING = object()


class RequestFormatError(ValueError):
    """Raised when a request document does not have the expected shape."""


def _mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise RequestFormatError(f"{what} must be a JSON object")
    return data


def _get(data: Mapping, key: str, what: str, default: Any) -> Any:
    if key in data:
        return data[key]
    if default is _MISSING:
        raise RequestFormatError(f"{what}: missing field {key!r}")
    return default


def _unsigned(data: Mapping, key: str, what: str, default: Any = _MISSING) -> int:
    value = _get(data, key, what, default)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U64_MAX:
        raise RequestFormatError(f"{what}: field {key!r} must be an unsigned integer")
    return value


def _optional_unsigned(data: Mapping, key: str, what: str) -> int | None:
    if data.get(key) is None:
        return None
    return _unsigned(data, key, what)


def _optional_float(data: Mapping, key: str, what: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RequestFormatError(f"{what}: field {key!r} must be a number")
    return float(value)


def _boolean(data: Mapping, key: str, what: str, default: Any = _MISSING) -> bool:
    value = _get(data, key, what, default)
    if not isinstance(value, bool):
        raise RequestFormatError(f"{what}: field {key!r} must be a boolean")
    return value


def _string(data: Mapping, key: str, what: str) -> str:
    value = _get(data, key, what, _MISSING)
    if not isinstance(value, str):
        raise RequestFormatError(f"{what}: field {key!r} must be a string")
    return value


def _list(data: Mapping, key: str, what: str) -> list:
    value = _get(data, key, what, _MISSING)
    if not isinstance(value, list):
        raise RequestFormatError(f"{what}: field {key!r} must be a list")
    return value


def _upgrade(key: str) -> Any:
    return field(default=False, metadata={"key": key})


@dataclass(kw_only=True)
class GorgeUpgrades:
    """Purchased upgrades of the Forge of the Gods; all default to absent."""

    start: bool = _upgrade("START")
    igcc: bool = _upgrade("IGCC")
    giss: bool = _upgrade("GISS")
    sa: bool = _upgrade("SA")
    rec: bool = _upgrade("REC")
    ctcdd: bool = _upgrade("CTCDD")
    sefcp: bool = _upgrade("SEFCP")
    tct: bool = _upgrade("TCT")
    ggebe: bool = _upgrade("GGEBE")
    tptp: bool = _upgrade("TPTP")
    cnti: bool = _upgrade("CNTI")
    epec: bool = _upgrade("EPEC")
    imkg: bool = _upgrade("IMKG")
    dop: bool = _upgrade("DoP")
    ndpe: bool = _upgrade("NDPE")
    pos: bool = _upgrade("PoS")
    dor: bool = _upgrade("DoR")
    ngms: bool = _upgrade("NGMS")
    pa: bool = _upgrade("PA")
    cd: bool = _upgrade("CD")
    tse: bool = _upgrade("TSE")
    tbf: bool = _upgrade("TBF")
    ee: bool = _upgrade("EE")
    end: bool = _upgrade("END")

    @classmethod
    def from_dict(cls, data: Any) -> GorgeUpgrades:
        what = "upgrades"
        data = _mapping(data, what)
        return cls(
            **{f.name: _boolean(data, f.metadata["key"], what, False) for f in fields(cls)}
        )


@dataclass(kw_only=True)
class MachineConfiguration:
    """The client's machine and the parameters that shape its throughput."""

    id: str
    recipes: list[str] = field(default_factory=list)
    energy_usage: int = 0
    parallels_offset: int | None = None
    parallels_per_tier: int | None = None
    speed_modifier: float | None = None
    energy_modifier: float | None = None
    maximum_overclock_tier: int = _U64_MAX
    tier: int = 1
    width: int = 0
    height: int = 0
    solenoid_tier: int = 1
    coil_tier: int = 1
    laser_amperage: int = 32
    pipe_casing_tier: int = 1
    item_pipe_casing_tier: int = 1
    glass_tier: int = 1
    upgrades: GorgeUpgrades = field(default_factory=GorgeUpgrades)
    dtr: int = 0
    rings: int = 1

    @classmethod
    def from_dict(cls, data: Any) -> MachineConfiguration:
        what = "machine"
        data = _mapping(data, what)
        recipes = _list(data, "recipes", what)
        if not all(isinstance(name, str) for name in recipes):
            raise RequestFormatError(f"{what}: field 'recipes' must hold strings")
        upgrades = (
            GorgeUpgrades.from_dict(data["upgrades"]) if "upgrades" in data else GorgeUpgrades()
        )
        return cls(
            id=_string(data, "id", what),
            recipes=list(recipes),
            energy_usage=_unsigned(data, "energyUsage", what, 0),
            parallels_offset=_optional_unsigned(data, "parallelsOffset", what),
            parallels_per_tier=_optional_unsigned(data, "parallelsPerTier", what),
            speed_modifier=_optional_float(data, "speedModifier", what),
            energy_modifier=_optional_float(data, "energyModifier", what),
            maximum_overclock_tier=_unsigned(data, "maximumOverclockTier", what, _U64_MAX),
            tier=_unsigned(data, "tier", what, 1),
            width=_unsigned(data, "width", what, 0),
            height=_unsigned(data, "height", what, 0),
            solenoid_tier=_unsigned(data, "solenoidTier", what, 1),
            coil_tier=_unsigned(data, "coilTier", what, 1),
            laser_amperage=_unsigned(data, "laserAmperage", what, 32),
            pipe_casing_tier=_unsigned(data, "pipeCasingTier", what, 1),
            item_pipe_casing_tier=_unsigned(data, "itemPipeCasingTier", what, 1),
            glass_tier=_unsigned(data, "glassTier", what, 1),
            upgrades=upgrades,
            dtr=_unsigned(data, "dtr", what, 0),
            rings=_unsigned(data, "rings", what, 1),
        )


@dataclass(kw_only=True)
class Fluid:
    """Fluid held by a container item, in millibuckets."""

    amount: int

    @classmethod
    def from_dict(cls, data: Any) -> Fluid:
        what = "fluid"
        data = _mapping(data, what)
        return cls(amount=_unsigned(data, "amount", what))


@dataclass(kw_only=True)
class FluidDrop:
    """A fluid represented as an item in the request."""

    label: str
    name: str
    amount: int
    has_tag: bool

    @classmethod
    def from_dict(cls, data: Any) -> FluidDrop:
        what = "fluid drop"
        data = _mapping(data, what)
        return cls(
            label=_string(data, "label", what),
            name=_string(data, "name", what),
            amount=_unsigned(data, "amount", what),
            has_tag=_boolean(data, "hasTag", what),
        )


@dataclass(kw_only=True)
class RequestItem:
    """An input or output item named in a request."""

    name: str
    label: str
    size: int
    max_size: int
    damage: int
    max_damage: int
    has_tag: bool
    capacity: int | None = None
    fluid: Fluid | None = None
    fluid_drop: FluidDrop | None = None

    @classmethod
    def from_dict(cls, data: Any) -> RequestItem:
        what = "request item"
        data = _mapping(data, what)
        fluid = data.get("fluid")
        fluid_drop = data.get("fluidDrop")
        return cls(
            name=_string(data, "name", what),
            label=_string(data, "label", what),
            size=_unsigned(data, "size", what),
            max_size=_unsigned(data, "maxSize", what),
            damage=_unsigned(data, "damage", what),
            max_damage=_unsigned(data, "maxDamage", what),
            has_tag=_boolean(data, "hasTag", what),
            capacity=_optional_unsigned(data, "capacity", what),
            fluid=None if fluid is None else Fluid.from_dict(fluid),
            fluid_drop=None if fluid_drop is None else FluidDrop.from_dict(fluid_drop),
        )


@dataclass(kw_only=True)
class OptimizationRequest:
    """A client's request to size a processing pattern for a machine."""

    machine: MachineConfiguration
    ticks: int
    skip: bool = False
    restore: bool = False
    restoreonly: bool = False
    inputs: list[RequestItem] = field(default_factory=list)
    outputs: list[RequestItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> OptimizationRequest:
        what = "request"
        data = _mapping(data, what)
        return cls(
            machine=MachineConfiguration.from_dict(_get(data, "machine", what, _MISSING)),
            ticks=_unsigned(data, "ticks", what),
            skip=_boolean(data, "skip", what, False),
            restore=_boolean(data, "restore", what, False),
            restoreonly=_boolean(data, "restoreonly", what, False),
            inputs=[RequestItem.from_dict(i) for i in _list(data, "inputs", what)],
            outputs=[RequestItem.from_dict(i) for i in _list(data, "outputs", what)],
        )

    def __str__(self) -> str:
        m = self.machine
        lines = [
            f"Machine: {m.id}",
            f"Using recipes: {', '.join(m.recipes)}",
            f"- Energy usage: {m.energy_usage} EU/t",
        ]
        if m.parallels_offset is not None:
            lines.append(f"- Parallels offset: {m.parallels_offset}")
        if m.parallels_per_tier is not None:
            lines.append(f"- Parallels per tier: {m.parallels_per_tier}")
        if m.speed_modifier is not None:
            lines.append(f"- Speed modifier: {m.speed_modifier:.2f}")
        if m.energy_modifier is not None:
            lines.append(f"- Energy modifier: {m.energy_modifier:.2f}")
        lines += [
            f"- Maximum overclock tier: {m.maximum_overclock_tier}",
            f"- Tier: {m.tier}",
            f"- Dimensions (W x H): {m.width} x {m.height}",
            f"- Solenoid tier: {m.solenoid_tier}",
            f"- Coil tier: {m.coil_tier}",
            f"- Laser amperage: {m.laser_amperage} A",
            f"- Pipe casing tier: {m.pipe_casing_tier}",
            f"- Item pipe casing tier: {m.item_pipe_casing_tier}",
            f"- Glass tier: {m.glass_tier}",
        ]
        return "".join(line + "\n" for line in lines)