# gtbatch

`gtbatch` works out how large a processing pattern should be for a GregTech
machine so that the machine stays busy for a requested number of ticks. It
knows the parallel, speed, energy and overclock rules of a range of
multiblocks, from the Industrial Material Press and Volcanus up to the
Helioflare Power Forge and Helioflux Melting Core of the Forge of the Gods.

Given a recipe database and a request that describes the machine and the
items a pattern should contain, it finds the first matching recipe and
returns the scaled inputs, outputs and the expected duration.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What is not included

The package ships no recipe database. You must supply one as a JSON file
(format below); the server cannot start without it.

## Running the server

```
gtbatch recipes.json
```

The server listens on port 3939 on all interfaces unless `--host` and
`--port` say otherwise. Each client connection is handled on its own thread.
Clients send JSON requests one after another over the connection (separated
by whitespace or nothing at all); for each one the server writes back a
single line of compact JSON. A request that cannot be parsed ends the
connection.

A successful answer looks like this:

```json
{"inputs":[{"id":"minecraft:iron_ingot","amount":64,"meta":0,"nbt":""}],"outputs":[{"id":"gregtech:gt.metaitem.01","amount":64,"meta":11032,"nbt":""}],"duration":200}
```

Fluids appear as `ae2fc:fluid_drop` items with meta 0 whose `nbt` names the
fluid, for example `{Fluid: "water"}`. Amounts are scaled down where needed
so that no amount exceeds 2147483647. When no answer can be given, the line
holds an `error` message instead: `Machine not found`,
`Recipe not found for the given inputs`, or
`Not enough energy. Provided: …, Required: …`.

## Requests

A request names the machine, the recipe maps it may use and the minimum
number of ticks to run:

```json
{
  "machine": {
    "id": "Industrial Material Press",
    "recipes": ["Forming Press"],
    "energyUsage": 8192
  },
  "ticks": 200,
  "inputs": [],
  "outputs": []
}
```

Each entry of `inputs` and `outputs` carries `name`, `label`, `size`,
`maxSize`, `damage`, `maxDamage` and `hasTag`, and optionally `capacity`,
`fluid` and `fluidDrop`. An item matches a recipe item with the same id and
a meta equal to its `damage` (or the wildcard meta 32767); a `fluidDrop`
matches a recipe fluid with the same id.

Optional flags: `skip` leaves out item inputs whose recipe amount is zero;
`restore` keeps every output of the recipe rather than only the requested
ones. `restoreonly` is accepted but does not change the result.

Machine fields such as `tier`, `coilTier`, `glassTier`, `solenoidTier`,
`pipeCasingTier`, `itemPipeCasingTier`, `width`, `height`, `laserAmperage`,
`maximumOverclockTier`, `parallelsOffset`, `parallelsPerTier`,
`speedModifier`, `energyModifier`, and for the Forge of the Gods `dtr`,
`rings` and `upgrades` (keys such as `START`, `CNTI`, `SEFCP`, `NDPE`, `GISS`,
`NGMS`, `SA`, `CTCDD`, `REC`, `IGCC`) refine the calculation where the
machine uses them.

If the recipe maps include `Multi Smelter`, the database's smelting recipes
are tried first, as 512-tick, 4 EU/t recipes. Machines whose id starts with
`Helio` skip the energy check.

## Recipe database format

```json
{
  "machines": [
    {"n": "Forming Press", "recs": [
      {"en": true, "dur": 200, "eut": 30, "sp": 0,
       "iI": [{"id": "minecraft:iron_ingot", "lN": "Iron Ingot", "a": 1, "m": 0}],
       "iO": [{"id": "gregtech:gt.metaitem.01", "a": 1, "m": 11032}],
       "fI": [], "fO": []}
    ]}
  ],
  "smelting": [
    {"input": {"id": "minecraft:iron_ore", "a": 1, "m": 0},
     "output": {"id": "minecraft:iron_ingot", "a": 1, "m": 0}}
  ]
}
```

Fluids use `id`, `lN` and `a` (millibuckets). Item `id`, `lN` and `nbt` are
optional.

## Using it as a library

```python
import json

from gtbatch.model import load_database
from gtbatch.request_model import OptimizationRequest
from gtbatch.server import process_request, respond

recipes = load_database("recipes.json")
request = OptimizationRequest.from_dict(json.loads(raw_request))

print(request)                      # human-readable summary of the machine
reply = respond(request, recipes)   # the JSON-ready answer the server sends
```

`parse_database` decodes a database from JSON text. `OptimizationRequest.from_dict`
raises `RequestFormatError` for malformed requests.

`process_request` returns an `OptimizedPattern` (with `to_dict()`) and raises
`MachineNotFoundError`, `RecipeNotFoundError` or `NotEnoughEnergyError`
(all subclasses of `LookupFailure`) when no pattern can be produced; `respond`
turns those into an `{"error": ...}` document. An unknown machine id raises
`UnknownMachineError`, a configuration the formulas cannot handle raises
`CalculationError`, and a Forge of the Gods module without the `START`
upgrade raises `MissingUpgradeError`.

The batch calculation alone is available through
`gtbatch.machines.advised_batch(machine, ticks, recipe)`, which returns the
batch size and the duration in ticks; `gtbatch.machines.machine_for` looks up
the rules for a machine by name, and `gtbatch.advice.advise` scales a recipe
into a pattern.