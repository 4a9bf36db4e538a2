"""Forge of the Gods modules: the Helioflare Power Forge and Helioflux Melting Core."""

from __future__ import annotations

import math

from gtbatch.model import GregTechRecipe
from gtbatch.overclock import (
    CalculationError,
    Overclock,
    _at_least_one,
    _ceil_u64,
    _checked_sub,
    _fdiv,
    _fit_batch,
    _or_default,
    _to_u64,
    _wrap_u64,
    ilog,
)
from gtbatch.request_model import GorgeUpgrades, MachineConfiguration

__all__ = ["CalculationError", "HelioflarePowerForge", "HeliofluxMeltingCore", "MissingUpgradeError"]


class MissingUpgradeError(ValueError):
    """Raised when the forge lacks an upgrade the computation requires."""


def _log2(value: int) -> float:
    return -math.inf if value == 0 else math.log2(value)


class HelioflarePowerForge(Overclock):
    """Heat-driven forge module whose power and parallels come from its upgrades."""

    SEFCP_HEAT_BASE = 1.12
    NDPE_EXPONENT = 0.85
    BASE_PARALLELS = 1024

    def heat(self, machine: MachineConfiguration) -> int:
        base = self.SEFCP_HEAT_BASE if machine.upgrades.sefcp else 1.5
        return _to_u64(_log2(machine.dtr) / math.log2(base) * 1000.0) + 12_601

    def effective_heat(self, machine: MachineConfiguration) -> int:
        heat = self.heat(machine)
        if machine.upgrades.ndpe and heat > 30_000:
            return 30_000 + _to_u64(float(heat - 30_000) ** self.NDPE_EXPONENT)
        return min(self.effective_heat_capacity(machine.upgrades), heat)

    def effective_heat_capacity(self, upgrades: GorgeUpgrades) -> int:
        if upgrades.cnti:
            return 30_000
        if upgrades.start:
            return 15_000
        raise MissingUpgradeError("heat capacity requires upgrade START or CNTI")

    def energy_usage(self, machine: MachineConfiguration) -> int:
        energy_usage = 2_000_000_000
        if machine.upgrades.giss:
            energy_usage += 100_000_000 * machine.dtr
        if machine.upgrades.ngms:
            energy_usage <<= 2 * machine.rings
        return energy_usage

    def parallels(self, machine: MachineConfiguration) -> int:
        multiplier = 1.0
        if machine.upgrades.sa:
            multiplier *= 1.0 + machine.dtr / 15.0
        if machine.upgrades.ctcdd:
            multiplier *= 2.0
        return _to_u64(self.BASE_PARALLELS * multiplier)

    def energy_modifier(
        self,
        machine: MachineConfiguration,
        recipe: GregTechRecipe,
        tier: int,
        energy_modifier: float,
    ) -> float:
        heat = self.effective_heat(machine)
        recipe_heat = min(
            _wrap_u64(recipe.special), self.effective_heat_capacity(machine.upgrades)
        )
        discounts = _checked_sub(heat, recipe_heat, "heat surplus") // 900
        energy_modifier *= 0.95**discounts
        # The battery is assumed to be sized for the full discount.
        if machine.upgrades.rec:
            energy_modifier *= 0.95
        return energy_modifier

    def speed_modifier(self, machine: MachineConfiguration, speed_modifier: float) -> float:
        if machine.upgrades.igcc:
            return speed_modifier * float(self.effective_heat(machine)) ** 0.01
        return speed_modifier

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        heat = self.effective_heat(machine)
        return _checked_sub(heat, _wrap_u64(recipe.special), "heat surplus") // 1800

    def advised_batch(
        self, machine: MachineConfiguration, ticks: int, recipe: GregTechRecipe
    ) -> tuple[int, int]:
        if not machine.upgrades.start:
            raise MissingUpgradeError("Missing upgrade START")
        parallels = self.parallels(machine)
        energy_usage = self.energy_usage(machine)
        speed_modifier = _or_default(machine.speed_modifier, self.SPEED_MODIFIER)
        energy_modifier = _or_default(machine.energy_modifier, self.ENERGY_MODIFIER)

        energy_modifier = self.energy_modifier(machine, recipe, 0, energy_modifier)
        energy_used = _ceil_u64(recipe.energy_usage * energy_modifier)
        if energy_used == 0:
            raise CalculationError("adjusted recipe energy usage is zero")

        overclocks = ilog(energy_usage // energy_used, 4)
        perfect = min(overclocks, self.perfect_overclocks(machine, recipe, 0))
        regular = overclocks - perfect

        processing_time = self._overclocked_time(
            machine, recipe, speed_modifier, regular, perfect
        )
        corrected_time = _to_u64(_at_least_one(processing_time))

        effective_parallels = 1
        if processing_time < 1.0:
            effective_parallels = _to_u64(_fdiv(1.0, processing_time))

        batch, duration = _fit_batch(effective_parallels, corrected_time, ticks)
        return parallels * batch, duration


class HeliofluxMeltingCore(HelioflarePowerForge):
    """Melting core module: fewer parallels and its own heat scaling."""

    SEFCP_HEAT_BASE = 1.18
    NDPE_EXPONENT = 0.80
    BASE_PARALLELS = 512