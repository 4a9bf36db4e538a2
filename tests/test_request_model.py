import pytest

from gtbatch.request_model import (
    Fluid,
    FluidDrop,
    GorgeUpgrades,
    MachineConfiguration,
    OptimizationRequest,
    RequestFormatError,
    RequestItem,
)

ITEM = {
    "name": "gregtech:gt.metaitem.01",
    "label": "Iron Dust",
    "size": 1,
    "maxSize": 64,
    "damage": 2032,
    "maxDamage": 0,
    "hasTag": False,
}
DROP = {"label": "Water", "name": "water", "amount": 1000, "hasTag": False}


def make_request(**machine_extra):
    machine = {"id": "Volcanus", "recipes": ["Blast Furnace"]}
    machine.update(machine_extra)
    return {"machine": machine, "ticks": 20, "inputs": [ITEM], "outputs": []}


def test_machine_defaults():
    machine = MachineConfiguration.from_dict({"id": "Zyngen", "recipes": []})
    assert machine.energy_usage == 0
    assert machine.maximum_overclock_tier == 18446744073709551615
    assert machine.laser_amperage == 32
    assert (machine.tier, machine.coil_tier, machine.rings) == (1, 1, 1)
    assert (machine.width, machine.height, machine.dtr) == (0, 0, 0)
    assert machine.speed_modifier is None
    assert machine.upgrades == GorgeUpgrades()


def test_machine_explicit_values():
    machine = MachineConfiguration.from_dict(
        {
            "id": "Fluid Shaper",
            "recipes": ["Fluid Shaper"],
            "energyUsage": 7680,
            "parallelsOffset": 4,
            "speedModifier": 3,
            "width": 5,
            "coilTier": 6,
            "maximumOverclockTier": 9,
        }
    )
    assert machine.energy_usage == 7680
    assert machine.parallels_offset == 4
    assert machine.speed_modifier == 3.0
    assert machine.width == 5
    assert machine.coil_tier == 6
    assert machine.maximum_overclock_tier == 9


def test_machine_requires_id():
    with pytest.raises(RequestFormatError, match="'id'"):
        MachineConfiguration.from_dict({"recipes": []})


def test_machine_rejects_null_for_defaulted_field():
    with pytest.raises(RequestFormatError):
        MachineConfiguration.from_dict({"id": "x", "recipes": [], "tier": None})


def test_machine_rejects_non_string_recipe():
    with pytest.raises(RequestFormatError):
        MachineConfiguration.from_dict({"id": "x", "recipes": [3]})


def test_upgrades_keys():
    upgrades = GorgeUpgrades.from_dict({"START": True, "DoP": True, "NGMS": True})
    assert upgrades.start and upgrades.dop and upgrades.ngms
    assert not upgrades.cnti


def test_upgrades_reject_non_bool():
    with pytest.raises(RequestFormatError):
        GorgeUpgrades.from_dict({"SA": 1})


def test_request_format_error_is_value_error():
    with pytest.raises(ValueError):
        Fluid.from_dict({"amount": -1})


def test_fluid_drop():
    drop = FluidDrop.from_dict(DROP)
    assert drop.name == "water"
    assert drop.amount == 1000
    assert drop.has_tag is False


def test_request_item_with_fluid():
    item = RequestItem.from_dict(dict(ITEM, capacity=8000, fluid={"amount": 500}, fluidDrop=DROP))
    assert item.capacity == 8000
    assert item.fluid == Fluid(amount=500)
    assert item.fluid_drop == FluidDrop.from_dict(DROP)


def test_request_item_optional_missing():
    item = RequestItem.from_dict(ITEM)
    assert (item.capacity, item.fluid, item.fluid_drop) == (None, None, None)
    assert item.damage == ITEM["damage"]


def test_request_item_missing_max_size():
    broken = {k: v for k, v in ITEM.items() if k != "maxSize"}
    with pytest.raises(RequestFormatError, match="maxSize"):
        RequestItem.from_dict(broken)


def test_request_defaults():
    request = OptimizationRequest.from_dict(make_request())
    assert request.ticks == 20
    assert (request.skip, request.restore, request.restoreonly) == (False, False, False)
    assert request.inputs[0].name == ITEM["name"]
    assert request.outputs == []


def test_request_requires_ticks():
    data = make_request()
    del data["ticks"]
    with pytest.raises(RequestFormatError):
        OptimizationRequest.from_dict(data)


def test_request_rejects_non_object():
    with pytest.raises(RequestFormatError):
        OptimizationRequest.from_dict("request")


def test_str_without_optional_lines():
    text = str(OptimizationRequest.from_dict(make_request(energyUsage=1920)))
    lines = text.splitlines()
    assert text.endswith("\n")
    assert lines[0] == "Machine: Volcanus"
    assert lines[1] == "Using recipes: Blast Furnace"
    assert lines[2] == "- Energy usage: 1920 EU/t"
    assert "- Laser amperage: 32 A" in lines
    assert not any("Speed modifier" in line for line in lines)
    assert len(lines) == 12


def test_str_with_optional_lines():
    request = OptimizationRequest.from_dict(
        make_request(parallelsOffset=8, parallelsPerTier=2, speedModifier=2.2, energyModifier=0.9)
    )
    lines = str(request).splitlines()
    assert "- Parallels offset: 8" in lines
    assert "- Parallels per tier: 2" in lines
    assert "- Speed modifier: 2.20" in lines
    assert "- Energy modifier: 0.90" in lines
    assert len(lines) == 16


def test_str_joins_recipes():
    request = OptimizationRequest.from_dict(
        make_request(recipes=["Blast Furnace", "Multi Smelter"], width=3, height=4)
    )
    lines = str(request).splitlines()
    assert lines[1] == "Using recipes: Blast Furnace, Multi Smelter"
    assert "- Dimensions (W x H): 3 x 4" in lines