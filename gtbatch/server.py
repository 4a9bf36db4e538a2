"""Recipe lookup for optimization requests, and the TCP server that answers them."""

from __future__ import annotations

import argparse
import codecs
import json
import re
import socket
import sys
import threading
from collections.abc import Iterable, Iterator
from typing import Any

from gtbatch.advice import OptimizedPattern, _matches_item, advise
from gtbatch.machines import advised_batch
from gtbatch.model import (
    FurnaceRecipe,
    GregTechRecipe,
    RecipeDatabase,
    RecipeFluid,
    RecipeItem,
    load_database,
)
from gtbatch.request_model import OptimizationRequest, RequestFormatError, RequestItem

MULTI_SMELTER = "Multi Smelter"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3939

_DECODER = json.JSONDecoder()
_WHITESPACE = re.compile(r"[ \t\n\r]*")


class LookupFailure(LookupError):
    """A request could not be turned into a pattern."""


class RecipeNotFoundError(LookupFailure):
    def __init__(self) -> None:
        super().__init__("Recipe not found for the given inputs")


class MachineNotFoundError(LookupFailure):
    def __init__(self) -> None:
        super().__init__("Machine not found")


class NotEnoughEnergyError(LookupFailure):
    def __init__(self, provided: int, required: int) -> None:
        super().__init__(f"Not enough energy. Provided: {provided}, Required: {required}")
        self.provided = provided
        self.required = required


def furnace_to_gregtech_recipe(recipe: FurnaceRecipe) -> GregTechRecipe:
    """Express a furnace recipe as a machine recipe."""
    return GregTechRecipe(
        enabled=True,
        duration=512,
        energy_usage=4,
        special=0,
        item_inputs=[recipe.input],
        item_outputs=[recipe.output],
        fluid_inputs=[],
        fluid_outputs=[],
    )


def _matches_any_item(request_item: RequestItem, recipe_items: list[RecipeItem]) -> bool:
    return any(_matches_item(request_item, recipe_item) for recipe_item in recipe_items)


def _matches_any_fluid(request_item: RequestItem, recipe_fluids: list[RecipeFluid]) -> bool:
    drop = request_item.fluid_drop
    return drop is not None and any(f.id == drop.name for f in recipe_fluids)


def matches_request(recipe: GregTechRecipe, request: OptimizationRequest) -> bool:
    """Whether every requested input and output appears in ``recipe``."""
    inputs_match = all(
        _matches_any_item(item, recipe.item_inputs)
        or _matches_any_fluid(item, recipe.fluid_inputs)
        for item in request.inputs
    )
    outputs_match = all(
        _matches_any_item(item, recipe.item_outputs)
        or _matches_any_fluid(item, recipe.fluid_outputs)
        for item in request.outputs
    )
    return inputs_match and outputs_match


def optimize_recipe(request: OptimizationRequest, recipe: GregTechRecipe) -> OptimizedPattern:
    """Size a pattern for ``recipe`` on the requested machine."""
    machine = request.machine
    if machine.energy_usage < recipe.energy_usage and not machine.id.startswith("Helio"):
        raise NotEnoughEnergyError(machine.energy_usage, recipe.energy_usage)
    batch, duration = advised_batch(machine, request.ticks, recipe)
    return advise(recipe, batch, duration, request)


def process_request(request: OptimizationRequest, recipes: RecipeDatabase) -> OptimizedPattern:
    """Find the first recipe matching ``request`` and optimize it."""
    machine_present = False

    if MULTI_SMELTER in request.machine.recipes:
        machine_present = True
        for recipe in map(furnace_to_gregtech_recipe, recipes.smelting):
            if matches_request(recipe, request):
                return optimize_recipe(request, recipe)

    for machine in recipes.machines:
        if machine.name not in request.machine.recipes:
            continue
        machine_present = True
        for recipe in machine.recipes:
            if matches_request(recipe, request):
                print(f"{recipe!r}\n{request!r}")
                return optimize_recipe(request, recipe)

    if machine_present:
        raise RecipeNotFoundError()
    raise MachineNotFoundError()


def _reply(request: OptimizationRequest, recipes: RecipeDatabase) -> tuple[dict[str, Any], bool]:
    """Return the response document and whether a failed write ends the session."""
    try:
        return process_request(request, recipes).to_dict(), False
    except LookupFailure as failure:
        ends_session = isinstance(failure, (MachineNotFoundError, NotEnoughEnergyError))
        return {"error": str(failure)}, ends_session


def respond(request: OptimizationRequest, recipes: RecipeDatabase) -> dict[str, Any]:
    """Return the JSON document answering ``request``."""
    return _reply(request, recipes)[0]


def iter_json_documents(chunks: Iterable[bytes]) -> Iterator[Any]:
    """Yield JSON values from a stream of UTF-8 byte chunks.

    Values may be separated by whitespace or nothing at all. Malformed input
    raises ``ValueError`` once the stream ends.
    """
    text = codecs.getincrementaldecoder("utf-8")()
    buffer = ""
    source = iter(chunks)
    final = False
    while not final:
        chunk = next(source, None)
        if chunk is None:
            final = True
            buffer += text.decode(b"", final=True)
        else:
            buffer += text.decode(chunk)

        position = 0
        while True:
            position = _WHITESPACE.match(buffer, position).end()
            if position == len(buffer):
                break
            try:
                value, end = _DECODER.raw_decode(buffer, position)
            except json.JSONDecodeError:
                if final:
                    raise
                break
            # A number touching the end of the buffer may continue in the next chunk.
            is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
            if not final and end == len(buffer) and is_number:
                break
            yield value
            position = end
        buffer = buffer[position:]


def _format_peer(peer: Any) -> str:
    if isinstance(peer, tuple) and len(peer) >= 2:
        host, port = peer[0], peer[1]
        return f"[{host}]:{port}" if ":" in str(host) else f"{host}:{port}"
    return str(peer)


def _log_error(message: str) -> None:
    print(message, file=sys.stderr)


def handle_client(connection: socket.socket, recipes: RecipeDatabase) -> None:
    """Answer every request sent over ``connection``, then close it."""
    with connection:
        peer = _format_peer(connection.getpeername())
        print(f"Client connected: {peer}")

        documents = iter_json_documents(iter(lambda: connection.recv(4096), b""))
        while True:
            try:
                document = next(documents)
            except StopIteration:
                return
            except (ValueError, OSError) as error:
                _log_error(f"Failed to parse request JSON: {error}")
                return
            try:
                request = OptimizationRequest.from_dict(document)
            except RequestFormatError as error:
                _log_error(f"Failed to parse request JSON: {error}")
                return

            print(f"Received a request from {peer}:")
            print(request)

            response, ends_session = _reply(request, recipes)
            line = json.dumps(response, separators=(",", ":"), ensure_ascii=False) + "\n"
            try:
                connection.sendall(line.encode("utf-8"))
            except OSError as error:
                _log_error(f"Failed to write to socket: {error}")
                if ends_session:
                    return


def serve(recipes: RecipeDatabase, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Accept clients forever, each handled on its own thread."""
    with socket.create_server((host, port)) as listener:
        print(f"Server listening on port {port}")
        while True:
            try:
                connection, _ = listener.accept()
            except OSError as error:
                _log_error(f"Connection failed: {error}")
                continue
            threading.Thread(
                target=handle_client, args=(connection, recipes), daemon=True
            ).start()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Serve optimized processing patterns.")
    parser.add_argument("database", help="path of the recipe database JSON file")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    try:
        recipes = load_database(args.database)
    except (OSError, ValueError) as error:
        _log_error(f"Failed to load recipe database: {error}")
        return 1

    try:
        serve(recipes, args.host, args.port)
    except KeyboardInterrupt:
        return 0
    except OSError as error:
        _log_error(str(error))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())