"""Shared overclock and batch sizing rules for processing machines."""

from __future__ import annotations

import math

from gtbatch.model import GregTechRecipe
from gtbatch.request_model import MachineConfiguration

_U64_MAX = 2**64 - 1
_U64_MODULUS = 2**64


class CalculationError(ArithmeticError):
    """Raised when a machine configuration makes the batch computation impossible."""


def ilog(value: int, base: int) -> int:
    """Return the floor of the logarithm of ``value`` in ``base``."""
    if base < 2:
        raise CalculationError(f"logarithm base must be at least 2, got {base}")
    if value <= 0:
        raise CalculationError(f"logarithm of non-positive value {value}")
    exponent = 0
    power = base
    while power <= value:
        power *= base
        exponent += 1
    return exponent


def _to_u64(value: float | int) -> int:
    """Convert to an unsigned 64-bit integer, truncating and saturating."""
    if value != value:  # NaN
        return 0
    if value <= 0:
        return 0
    if value >= _U64_MODULUS:
        return _U64_MAX
    return int(value)


def _wrap_u64(value: int) -> int:
    """Reinterpret a signed integer as an unsigned 64-bit one."""
    return value % _U64_MODULUS


def _ceil_u64(value: float) -> int:
    if not math.isfinite(value):
        return _to_u64(value)
    return _to_u64(math.ceil(value))


def _checked_sub(left: int, right: int, what: str) -> int:
    if right > left:
        raise CalculationError(f"{what} would be negative ({left} - {right})")
    return left - right


def _fdiv(numerator: float, denominator: float) -> float:
    """Floating-point division with IEEE results instead of exceptions."""
    if denominator == 0:
        if numerator == 0 or numerator != numerator:
            return math.nan
        sign = math.copysign(1.0, numerator) * math.copysign(1.0, denominator)
        return math.copysign(math.inf, sign)
    return numerator / denominator


def _at_least_one(value: float) -> float:
    return value if value > 1.0 else 1.0


def _fit_batch(effective_parallels: int, processing_time: int, ticks: int) -> tuple[int, int]:
    """Scale the batch so that it keeps the machine busy for about ``ticks``."""
    if processing_time <= ticks:
        batch = _to_u64(effective_parallels * (ticks + 0.99) / processing_time)
        duration = _to_u64(processing_time * _fdiv(float(batch), float(effective_parallels)))
        return batch, duration
    return effective_parallels, processing_time


def _or_default(value, default):
    return default if value is None else value


class Overclock:
    """Default overclocking behaviour; machines override the parts that differ."""

    PARALLELS_OFFSET: int = 0
    PARALLELS_PER_TIER: int = 0
    SPEED_MODIFIER: float = 1.00
    ENERGY_MODIFIER: float = 1.00

    def max_parallels(
        self,
        parallels_offset: int,
        parallels_per_tier: int,
        tier: int,
        machine: MachineConfiguration,
    ) -> int:
        return parallels_offset + tier * parallels_per_tier

    def speed_modifier(self, machine: MachineConfiguration, speed_modifier: float) -> float:
        return speed_modifier

    def energy_modifier(
        self,
        machine: MachineConfiguration,
        recipe: GregTechRecipe,
        tier: int,
        energy_modifier: float,
    ) -> float:
        return energy_modifier

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        return 0

    def _overclocked_time(
        self,
        machine: MachineConfiguration,
        recipe: GregTechRecipe,
        speed_modifier: float,
        regular_overclocks: int,
        perfect_overclocks: int,
    ) -> float:
        speed = self.speed_modifier(machine, speed_modifier)
        return (
            _fdiv(float(recipe.duration), speed)
            / 2.0**regular_overclocks
            / 4.0**perfect_overclocks
        )

    def advised_batch(
        self, machine: MachineConfiguration, ticks: int, recipe: GregTechRecipe
    ) -> tuple[int, int]:
        """Return ``(batch size, duration in ticks)`` for running ``recipe``."""
        parallels_offset = _or_default(machine.parallels_offset, self.PARALLELS_OFFSET)
        parallels_per_tier = _or_default(machine.parallels_per_tier, self.PARALLELS_PER_TIER)
        speed_modifier = _or_default(machine.speed_modifier, self.SPEED_MODIFIER)
        energy_modifier = _or_default(machine.energy_modifier, self.ENERGY_MODIFIER)

        tier = ilog(machine.energy_usage // 8, 4)
        max_parallels = self.max_parallels(parallels_offset, parallels_per_tier, tier, machine)

        energy_modifier = self.energy_modifier(machine, recipe, tier, energy_modifier)
        adjusted_energy_usage = _ceil_u64(recipe.energy_usage * energy_modifier)
        if adjusted_energy_usage == 0:
            raise CalculationError("adjusted recipe energy usage is zero")
        effective_parallels = min(machine.energy_usage // adjusted_energy_usage, max_parallels)
        energy_used = effective_parallels * adjusted_energy_usage
        if energy_used == 0:
            raise CalculationError("machine cannot run a single parallel of the recipe")

        overclocks = ilog(machine.energy_usage // energy_used, 4)
        overclocks = min(
            overclocks,
            _checked_sub(machine.maximum_overclock_tier, tier, "overclock headroom"),
        )
        perfect = min(overclocks, self.perfect_overclocks(machine, recipe, tier))
        regular = overclocks - perfect

        processing_time = self._overclocked_time(
            machine, recipe, speed_modifier, regular, perfect
        )
        corrected_time = _to_u64(_at_least_one(processing_time))

        if processing_time < 1.0:
            effective_parallels = max(
                effective_parallels,
                _to_u64(_fdiv(float(max_parallels), processing_time)),
            )

        return _fit_batch(effective_parallels, corrected_time, ticks)