from __future__ import annotations

from typing import Optional, Sequence, TypeVar

from kiosk.models import (
    CHOCOLATE,
    CUP,
    KUNAFA,
    STICKS,
    AppState,
    Product,
    StrawberryBatch,
)

_B = TypeVar("_B")


def _batch_as_of(batches: Sequence[_B], as_of: str) -> Optional[_B]:
    """
    Price-as-of-date lookup: oldest-first by purchase date, keep the last batch
    bought on or before `as_of`. Dates earlier than every batch fall back to the
    earliest batch. Not FIFO consumption; remaining batch quantity is ignored.
    """
    if not batches:
        return None
    ordered = sorted(batches, key=lambda b: b.date)
    chosen = ordered[0]
    for b in ordered:
        if b.date <= as_of:
            chosen = b
        else:
            break
    return chosen


def ingredient_cost_per_unit(state: AppState, ingredient_id: str, as_of: Optional[str] = None) -> float:
    batches = [b for b in state.ingredient_batches if b.ingredient_id == ingredient_id]
    if not batches:
        ing = state.ingredients.get(ingredient_id)
        if ing is None:
            return 0.0
        return ing.default_cost_per_unit

    if as_of:
        return _batch_as_of(batches, as_of).cost_per_unit

    # No date: most recently added batch (insertion order, not purchase date)
    return batches[-1].cost_per_unit


def active_strawberry_batch(state: AppState) -> Optional[StrawberryBatch]:
    if not state.strawberry_batches:
        return None
    return state.strawberry_batches[-1]


def strawberry_batch_for_date(state: AppState, date: Optional[str] = None) -> Optional[StrawberryBatch]:
    if not date:
        return active_strawberry_batch(state)
    return _batch_as_of(state.strawberry_batches, date)


def product_cost_per_unit(state: AppState, product: Product, as_of: Optional[str] = None) -> float:
    if product.use_manual_cost:
        return float(product.manual_cost_per_unit or 0.0)

    batch = strawberry_batch_for_date(state, as_of)
    strawberry_cost = batch.cost_per_piece if batch else 0.0

    return (
        product.strawberries_per_unit * strawberry_cost
        + product.chocolate_g_per_unit * ingredient_cost_per_unit(state, CHOCOLATE, as_of)
        + product.kunafa_g_per_unit * ingredient_cost_per_unit(state, KUNAFA, as_of)
        + product.cups_per_unit * ingredient_cost_per_unit(state, CUP, as_of)
        + product.sticks_per_unit * ingredient_cost_per_unit(state, STICKS, as_of)
    )


def waste_unit_cost(state: AppState, ingredient_id: str) -> float:
    # Strawberry waste is weighed in grams, so it is priced per gram of the active batch.
    if ingredient_id == state.rules.strawberry_ingredient_id:
        batch = active_strawberry_batch(state)
        return batch.cost_per_gram if batch else 0.0
    return ingredient_cost_per_unit(state, ingredient_id)
