"""Turning a matched recipe and a batch size into an optimized pattern."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import chain
from typing import Any

from gtbatch.model import GregTechRecipe, RecipeFluid, RecipeItem
from gtbatch.request_model import OptimizationRequest, RequestItem

WILDCARD_META = 32767
FLUID_DROP_ID = "ae2fc:fluid_drop"
_I32_MAX = 2**31 - 1


@dataclass
class AdvisedItem:
    """One entry of an optimized pattern, with its scaled amount."""

    id: str
    amount: int
    meta: int
    nbt: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "amount": self.amount, "meta": self.meta, "nbt": self.nbt}


@dataclass
class OptimizedPattern:
    """The processing pattern sent back to the client."""

    inputs: list[AdvisedItem] = field(default_factory=list)
    outputs: list[AdvisedItem] = field(default_factory=list)
    duration: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputs": [item.to_dict() for item in self.inputs],
            "outputs": [item.to_dict() for item in self.outputs],
            "duration": self.duration,
        }


def _item_id(item: RecipeItem) -> str:
    if item.id is None:
        raise ValueError("recipe item has no id")
    return item.id


def _matches_item(request_item: RequestItem, recipe_item: RecipeItem) -> bool:
    return recipe_item.id == request_item.name and (
        recipe_item.meta == request_item.damage or recipe_item.meta == WILDCARD_META
    )


def _fluid_drop(fluid: RecipeFluid, factor: int) -> AdvisedItem:
    return AdvisedItem(
        id=FLUID_DROP_ID,
        amount=fluid.amount * factor,
        meta=0,
        nbt=f'{{Fluid: "{fluid.id}"}}',
    )


def _requested_fluid(request: OptimizationRequest, fluid: RecipeFluid) -> bool:
    return any(
        item.fluid_drop is not None and item.fluid_drop.name == fluid.id
        for item in request.outputs
    )


def advise(
    recipe: GregTechRecipe,
    advised_batch: int,
    duration: int,
    request: OptimizationRequest,
) -> OptimizedPattern:
    """Scale ``recipe`` by the advised batch, keeping every amount within 32-bit range."""
    wildcard_ids = {
        _item_id(item) for item in recipe.item_inputs if item.meta == WILDCARD_META
    }

    amounts = chain(
        (item.amount for item in chain(recipe.item_inputs, recipe.item_outputs)),
        (fluid.amount for fluid in chain(recipe.fluid_inputs, recipe.fluid_outputs)),
    )
    factor = min(chain((_I32_MAX // max(amount, 1) for amount in amounts), [advised_batch]))

    inputs = [
        AdvisedItem(
            id=_item_id(item),
            amount=max(item.amount * factor, 1),
            meta=WILDCARD_META if item.id in wildcard_ids else item.meta,
            nbt=item.nbt or "",
        )
        for item in recipe.item_inputs
        if not request.skip or item.amount > 0
    ]
    inputs += [_fluid_drop(fluid, factor) for fluid in recipe.fluid_inputs]

    outputs = [
        AdvisedItem(
            id=_item_id(item),
            amount=max(item.amount * factor, 1),
            meta=item.meta,
            nbt=item.nbt or "",
        )
        for item in recipe.item_outputs
        if request.restore or any(_matches_item(wanted, item) for wanted in request.outputs)
    ]
    outputs += [
        _fluid_drop(fluid, factor)
        for fluid in recipe.fluid_outputs
        if request.restore or _requested_fluid(request, fluid)
    ]

    return OptimizedPattern(inputs=inputs, outputs=outputs, duration=duration)