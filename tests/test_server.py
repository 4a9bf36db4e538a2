import json
import socket

import pytest

from gtbatch.advice import advise
from gtbatch.gorge import MissingUpgradeError
from gtbatch.machines import advised_batch
from gtbatch.model import FurnaceRecipe, GregTechRecipe, Machine, RecipeDatabase, RecipeItem
from gtbatch.request_model import (
    FluidDrop,
    MachineConfiguration,
    OptimizationRequest,
    RequestItem,
)
from gtbatch.model import RecipeFluid
from gtbatch.server import (
    MachineNotFoundError,
    NotEnoughEnergyError,
    RecipeNotFoundError,
    furnace_to_gregtech_recipe,
    handle_client,
    iter_json_documents,
    main,
    matches_request,
    optimize_recipe,
    process_request,
    respond,
)


def item(item_id, amount=1, meta=0):
    return RecipeItem(id=item_id, amount=amount, meta=meta)


def request_item(name, damage=0, fluid_name=None):
    drop = None
    if fluid_name is not None:
        drop = FluidDrop(label=fluid_name, name=fluid_name, amount=1000, has_tag=False)
    return RequestItem(
        name=name, label=name, size=1, max_size=64, damage=damage,
        max_damage=0, has_tag=False, fluid_drop=drop,
    )


FREEZE = GregTechRecipe(
    duration=100,
    energy_usage=30,
    item_inputs=[item("hot_ingot")],
    item_outputs=[item("ingot")],
)

DATABASE = RecipeDatabase(
    machines=[Machine(name="Vacuum Freezer", recipes=[FREEZE])],
    smelting=[FurnaceRecipe(input=item("iron_ore"), output=item("iron_ingot"))],
)


def make_request(machine_id="Mega Vacuum Freezer", recipes=("Vacuum Freezer",),
                 energy=480, inputs=(), outputs=()):
    return OptimizationRequest(
        machine=MachineConfiguration(id=machine_id, recipes=list(recipes), energy_usage=energy),
        ticks=20,
        inputs=list(inputs),
        outputs=list(outputs),
    )


REQUEST_DOC = {
    "machine": {"id": "Mega Vacuum Freezer", "recipes": ["Vacuum Freezer"], "energyUsage": 480},
    "ticks": 20,
    "inputs": [{"name": "hot_ingot", "label": "Hot Ingot", "size": 1, "maxSize": 64,
                "damage": 0, "maxDamage": 0, "hasTag": False}],
    "outputs": [],
}


def test_furnace_recipe_conversion():
    furnace = FurnaceRecipe(input=item("iron_ore"), output=item("iron_ingot"))
    converted = furnace_to_gregtech_recipe(furnace)
    assert converted.duration == 512
    assert converted.energy_usage == 4
    assert converted.special == 0
    assert converted.enabled is True
    assert converted.item_inputs == [furnace.input]
    assert converted.item_outputs == [furnace.output]
    assert converted.fluid_inputs == [] and converted.fluid_outputs == []


def test_matches_request_items_and_fluids():
    recipe = GregTechRecipe(
        duration=1, energy_usage=1,
        item_inputs=[item("a", meta=32767)],
        fluid_outputs=[RecipeFluid(id="steam", localized_name="Steam", amount=1)],
    )
    assert matches_request(recipe, make_request(inputs=[request_item("a", damage=7)]))
    assert matches_request(recipe, make_request(outputs=[request_item("x", fluid_name="steam")]))
    assert not matches_request(recipe, make_request(outputs=[request_item("steam")]))
    assert not matches_request(recipe, make_request(inputs=[request_item("b")]))


def test_machine_not_found():
    with pytest.raises(MachineNotFoundError):
        process_request(make_request(recipes=["Centrifuge"]), DATABASE)


def test_recipe_not_found():
    with pytest.raises(RecipeNotFoundError):
        process_request(make_request(inputs=[request_item("gold")]), DATABASE)


def test_not_enough_energy():
    with pytest.raises(NotEnoughEnergyError) as caught:
        process_request(make_request(energy=16, inputs=[request_item("hot_ingot")]), DATABASE)
    assert (caught.value.provided, caught.value.required) == (16, 30)
    assert str(caught.value) == "Not enough energy. Provided: 16, Required: 30"


def test_helio_machines_skip_energy_check():
    request = make_request(machine_id="Helioflare Power Forge", energy=0,
                           inputs=[request_item("hot_ingot")])
    with pytest.raises(MissingUpgradeError):
        process_request(request, DATABASE)


def test_found_recipe_is_advised():
    request = make_request(inputs=[request_item("hot_ingot")])
    batch, duration = advised_batch(request.machine, request.ticks, FREEZE)
    assert process_request(request, DATABASE) == advise(FREEZE, batch, duration, request)


def test_multi_smelter_uses_smelting_recipes():
    request = make_request(machine_id="Multi Smelter", recipes=["Multi Smelter"],
                           inputs=[request_item("iron_ore")])
    expected = optimize_recipe(request, furnace_to_gregtech_recipe(DATABASE.smelting[0]))
    result = process_request(request, DATABASE)
    assert result == expected
    assert [i.id for i in result.inputs] == ["iron_ore"]


def test_respond_error_documents():
    assert respond(make_request(recipes=["Nothing"]), DATABASE) == {"error": "Machine not found"}
    assert respond(make_request(inputs=[request_item("gold")]), DATABASE) == {
        "error": "Recipe not found for the given inputs"
    }


def test_iter_json_documents_across_chunks():
    chunks = [b'{"a": 1}  {"b"', b': [1, 2]}\n', b"12", b"3 true"]
    assert list(iter_json_documents(chunks)) == [{"a": 1}, {"b": [1, 2]}, 123, True]


def test_iter_json_documents_split_utf8():
    encoded = json.dumps({"k": "é"}, ensure_ascii=False).encode()
    cut = encoded.index("é".encode()) + 1
    assert list(iter_json_documents([encoded[:cut], encoded[cut:]])) == [{"k": "é"}]


def test_iter_json_documents_rejects_malformed_input():
    documents = iter_json_documents([b'{"a": 1} {"b": '])
    assert next(documents) == {"a": 1}
    with pytest.raises(ValueError):
        next(documents)


def _read_all(sock: socket.socket) -> bytes:
    received = b""
    while chunk := sock.recv(4096):
        received += chunk
    return received


def test_handle_client_answers_each_request():
    missing = json.loads(json.dumps(REQUEST_DOC))
    missing["inputs"][0]["name"] = "gold"
    server_side, client_side = socket.socketpair()
    with client_side:
        client_side.sendall((json.dumps(REQUEST_DOC) + json.dumps(missing)).encode())
        client_side.shutdown(socket.SHUT_WR)
        handle_client(server_side, DATABASE)
        data = _read_all(client_side)
    lines = data.decode().splitlines()
    expected = respond(OptimizationRequest.from_dict(REQUEST_DOC), DATABASE)
    assert json.loads(lines[0]) == expected
    assert lines[1] == '{"error":"Recipe not found for the given inputs"}'
    assert len(lines) == 2


def test_handle_client_stops_at_malformed_request():
    server_side, client_side = socket.socketpair()
    with client_side:
        payload = json.dumps(REQUEST_DOC) + json.dumps({"ticks": 1}) + json.dumps(REQUEST_DOC)
        client_side.sendall(payload.encode())
        client_side.shutdown(socket.SHUT_WR)
        handle_client(server_side, DATABASE)
        data = _read_all(client_side)
    lines = data.decode().splitlines()
    expected = respond(OptimizationRequest.from_dict(REQUEST_DOC), DATABASE)
    assert len(lines) == 1
    assert json.loads(lines[0]) == expected


def test_main_reports_missing_database(tmp_path):
    assert main([str(tmp_path / "missing.json")]) == 1