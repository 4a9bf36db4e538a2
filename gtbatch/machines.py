"""Per-machine overclock rules and dispatch by machine name."""

from __future__ import annotations

from gtbatch.gorge import HelioflarePowerForge, HeliofluxMeltingCore
from gtbatch.model import GregTechRecipe
from gtbatch.overclock import (
    CalculationError,
    Overclock,
    _checked_sub,
    _fdiv,
    _wrap_u64,
    ilog,
)
from gtbatch.request_model import MachineConfiguration

_U64_MAX = 2**64 - 1


class UnknownMachineError(LookupError):
    """Raised when no overclock rules exist for a machine name."""


def _shift_left(value: int, shift: int) -> int:
    if shift >= 64:
        raise CalculationError(f"shift by {shift} bits overflows")
    return _wrap_u64(value << shift)


def _saturating_sub(left: int, right: int) -> int:
    return left - right if left > right else 0


def _icbrt(value: int) -> int:
    """Floor of the cube root of a non-negative integer."""
    root = round(value ** (1.0 / 3.0))
    while root**3 > value:
        root -= 1
    while (root + 1) ** 3 <= value:
        root += 1
    return root


def _blast_heat(machine: MachineConfiguration, tier: int) -> int:
    return 901 + 900 * machine.coil_tier + 100 * _saturating_sub(tier, 2)


class BlastFurnace(Overclock):
    """Coil heat above the recipe's requirement gives discounts and perfect overclocks."""

    def energy_modifier(
        self,
        machine: MachineConfiguration,
        recipe: GregTechRecipe,
        tier: int,
        energy_modifier: float,
    ) -> float:
        surplus = _checked_sub(
            _blast_heat(machine, tier), _wrap_u64(recipe.special), "heat surplus"
        )
        return energy_modifier * 0.95 ** (surplus // 900)

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        surplus = _checked_sub(
            _blast_heat(machine, tier), _wrap_u64(recipe.special), "heat surplus"
        )
        return surplus // 1800


class MegaBlastFurnace(BlastFurnace):
    PARALLELS_OFFSET = 256


class CircuitAssemblyLine(Overclock):
    PARALLELS_OFFSET = 1

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        return _U64_MAX


class ComponentAssemblyLine(Overclock):
    PARALLELS_OFFSET = 1

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        return _saturating_sub(machine.tier, _wrap_u64(recipe.special))


class CryogenicFreezer(Overclock):
    PARALLELS_OFFSET = 4
    SPEED_MODIFIER = 2.00


class DissectionApparatus(Overclock):
    PARALLELS_OFFSET = 64
    SPEED_MODIFIER = 3.00
    ENERGY_MODIFIER = 0.85


class ElectricImplosionCompressor(Overclock):
    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        exponent = _checked_sub(machine.tier, 1, "machine tier")
        return _shift_left(1, 2 * exponent)


class FluidShaper(Overclock):
    # Assumed to run continuously.
    SPEED_MODIFIER = 3.00
    ENERGY_MODIFIER = 0.80

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return (2 + 3 * machine.width) * tier


class HighCurrentIndustrialArcFurnace(Overclock):
    SPEED_MODIFIER = 3.50

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        plasma_modifier = 1 if machine.tier == 1 else 8
        return plasma_modifier * machine.width * tier


class HyperIntensityLaserEngraver(Overclock):
    SPEED_MODIFIER = 3.00
    ENERGY_MODIFIER = 0.80

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return _icbrt(machine.laser_amperage)


class IndustrialAutoclave(Overclock):
    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return 12 * machine.item_pipe_casing_tier

    def speed_modifier(self, machine: MachineConfiguration, speed_modifier: float) -> float:
        return 1.00 + 0.25 * machine.coil_tier

    def energy_modifier(self, machine, recipe, tier, energy_modifier):
        return (12.0 - machine.pipe_casing_tier) / 12.0


class IndustrialCentrifuge(Overclock):
    PARALLELS_PER_TIER = 6
    SPEED_MODIFIER = 2.25
    ENERGY_MODIFIER = 0.90


class IndustrialCuttingFactory(Overclock):
    PARALLELS_PER_TIER = 4
    SPEED_MODIFIER = 3.00
    ENERGY_MODIFIER = 0.75


class IndustrialElectrolyzer(Overclock):
    PARALLELS_PER_TIER = 2
    SPEED_MODIFIER = 2.80
    ENERGY_MODIFIER = 0.90


class IndustrialExtrusionMachine(Overclock):
    PARALLELS_PER_TIER = 4
    SPEED_MODIFIER = 3.50


class IndustrialMacerationStack(Overclock):
    SPEED_MODIFIER = 1.60

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return 2 * tier if machine.tier == 1 else 8 * tier


class IndustrialMaterialPress(Overclock):
    PARALLELS_PER_TIER = 4
    SPEED_MODIFIER = 6.00


class IndustrialMixingMachine(Overclock):
    PARALLELS_PER_TIER = 8
    SPEED_MODIFIER = 3.50
    ENERGY_MODIFIER = 1.00


class IndustrialPrecisionLathe(Overclock):
    SPEED_MODIFIER = 4.00
    ENERGY_MODIFIER = 0.80

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return machine.item_pipe_casing_tier * 8


class IndustrialSledgehammer(Overclock):
    SPEED_MODIFIER = 2.00

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return 8 * tier * machine.tier


class IndustrialWireFactory(Overclock):
    PARALLELS_PER_TIER = 4
    SPEED_MODIFIER = 3.00
    ENERGY_MODIFIER = 0.75


class LargeFluidExtractor(Overclock):
    SPEED_MODIFIER = 1.50
    ENERGY_MODIFIER = 0.80

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return 8 * machine.solenoid_tier

    def speed_modifier(self, machine: MachineConfiguration, speed_modifier: float) -> float:
        return speed_modifier + 0.10 * machine.coil_tier

    def energy_modifier(self, machine, recipe, tier, energy_modifier):
        return energy_modifier * 0.90**machine.coil_tier


class LargeSifterControlBlock(Overclock):
    PARALLELS_PER_TIER = 4
    SPEED_MODIFIER = 5.00
    ENERGY_MODIFIER = 0.75


class MegaAlloyBlastSmelter(Overclock):
    PARALLELS_OFFSET = 256

    def speed_modifier(self, machine: MachineConfiguration, speed_modifier: float) -> float:
        speedups = min(_saturating_sub(machine.coil_tier, 4), machine.glass_tier)
        return _fdiv(1.00, 1.00 - 0.05 * speedups)

    def energy_modifier(self, machine, recipe, tier, energy_modifier):
        recipe_tier = ilog(recipe.energy_usage // 8, 4)
        discounts = _saturating_sub(machine.coil_tier, recipe_tier)
        return energy_modifier * energy_modifier**discounts


class MegaChemicalReactor(Overclock):
    PARALLELS_OFFSET = 256

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        return _U64_MAX


class MegaDistillationTower(Overclock):
    PARALLELS_OFFSET = 256


class MegaVacuumFreezer(Overclock):
    PARALLELS_OFFSET = 256

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        return machine.tier


class MultiSmelter(Overclock):
    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return _shift_left(4, machine.coil_tier)

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        return _U64_MAX


class OreWashingPlant(Overclock):
    PARALLELS_PER_TIER = 4
    SPEED_MODIFIER = 5.00


class PreciseAutoAssemblerMT3662(Overclock):
    SPEED_MODIFIER = 2.00

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return _shift_left(8, machine.tier)


class PseudostableBlackHoleContainmentField(Overclock):
    SPEED_MODIFIER = 5.00
    ENERGY_MODIFIER = 0.70

    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        # Assumes the field runs at stability 20 or below.
        return 4 * 8 * tier


class UtupuTanuri(Overclock):
    PARALLELS_OFFSET = 4
    SPEED_MODIFIER = 2.20
    ENERGY_MODIFIER = 0.50


class VacuumFreezer(Overclock):
    pass


class Volcanus(Overclock):
    PARALLELS_OFFSET = 8
    SPEED_MODIFIER = 2.20
    ENERGY_MODIFIER = 0.90

    def energy_modifier(self, machine, recipe, tier, energy_modifier):
        heat = 901 + 900 * machine.coil_tier
        surplus = _checked_sub(heat, _wrap_u64(recipe.special), "heat surplus")
        return energy_modifier * 0.95 ** (surplus // 900)

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        heat = 901 + 900 * machine.coil_tier
        return _checked_sub(heat, _wrap_u64(recipe.special), "heat surplus") // 1800


class Zyngen(Overclock):
    def max_parallels(self, parallels_offset, parallels_per_tier, tier, machine):
        return tier * machine.coil_tier

    def speed_modifier(self, machine: MachineConfiguration, speed_modifier: float) -> float:
        return speed_modifier + machine.coil_tier * 0.05

    def perfect_overclocks(
        self, machine: MachineConfiguration, recipe: GregTechRecipe, tier: int
    ) -> int:
        return (901 + 900 * machine.coil_tier) // 900


_MACHINES: dict[str, type[Overclock]] = {
    "Industrial Material Press": IndustrialMaterialPress,
    "Industrial Extrusion Machine": IndustrialExtrusionMachine,
    "Industrial Wire Factory": IndustrialWireFactory,
    "Industrial Sledgehammer": IndustrialSledgehammer,
    "Dissection Apparatus": DissectionApparatus,
    "Fluid Shaper": FluidShaper,
    "Industrial Cutting Factory": IndustrialCuttingFactory,
    "Large Fluid Extractor": LargeFluidExtractor,
    "Industrial Maceration Stack": IndustrialMacerationStack,
    "Blast Furnace": BlastFurnace,
    "Mega Blast Furnace": MegaBlastFurnace,
    "Volcanus": Volcanus,
    "Mega Alloy Blast Smelter": MegaAlloyBlastSmelter,
    "Vacuum Freezer": VacuumFreezer,
    "Mega Vacuum Freezer": MegaVacuumFreezer,
    "Cryogenic Freezer": CryogenicFreezer,
    "Industrial Mixing Machine": IndustrialMixingMachine,
    "Hyper-Intensity Laser Engraver": HyperIntensityLaserEngraver,
    "Industrial Centrifuge": IndustrialCentrifuge,
    "Industrial Autoclave": IndustrialAutoclave,
    "Precise Auto-Assembler MT-3662": PreciseAutoAssemblerMT3662,
    "Pseudostable Black Hole Containment Field": PseudostableBlackHoleContainmentField,
    "Industrial Electrolyzer": IndustrialElectrolyzer,
    "Utupu-Tanuri": UtupuTanuri,
    "Electric Implosion Compressor": ElectricImplosionCompressor,
    "Ore Washing Plant": OreWashingPlant,
    "Mega Chemical Reactor": MegaChemicalReactor,
    "Industrial Precision Lathe": IndustrialPrecisionLathe,
    "Zyngen": Zyngen,
    "High Current Industrial Arc Furnace": HighCurrentIndustrialArcFurnace,
    "Large Sifter Control Block": LargeSifterControlBlock,
    "Circuit Assembly Line": CircuitAssemblyLine,
    "Component Assembly Line": ComponentAssemblyLine,
    "Mega Distillation Tower": MegaDistillationTower,
    "Helioflare Power Forge": HelioflarePowerForge,
    "Helioflux Melting Core": HeliofluxMeltingCore,
    "Multi Smelter": MultiSmelter,
}


def machine_for(machine_id: str) -> Overclock:
    """Return the overclock rules for the machine with this name."""
    try:
        return _MACHINES[machine_id]()
    except KeyError:
        raise UnknownMachineError(f"unknown machine: {machine_id!r}") from None


def advised_batch(
    machine: MachineConfiguration, ticks: int, recipe: GregTechRecipe
) -> tuple[int, int]:
    """Return ``(batch size, duration in ticks)`` for ``recipe`` on ``machine``."""
    return machine_for(machine.id).advised_batch(machine, ticks, recipe)