from __future__ import annotations

from typing import Optional

from kiosk.models import AppState, IngredientInventory, IngredientUsage
from kiosk.services.costing import strawberry_batch_for_date
from kiosk.utils import safe_div


def ingredient_usage(state: AppState) -> IngredientUsage:
    """
    Tracked ingredients consumed by all sales.

    Sales pointing at a deleted product, and sales of manual-cost products, are
    skipped. Strawberry grams use the average piece weight of the batch active
    on the sale date.
    """
    pcs = grams = chocolate = kunafa = cups = sticks = 0.0
    default_weight = state.rules.default_strawberry_weight_g

    for sale in state.sales:
        product = state.products.get(sale.product_id)
        if product is None or product.use_manual_cost:
            continue

        batch = strawberry_batch_for_date(state, sale.date)
        avg_weight = (batch.avg_weight_per_piece if batch else 0.0) or default_weight

        pcs += sale.qty * product.strawberries_per_unit
        grams += sale.qty * product.strawberries_per_unit * avg_weight
        chocolate += sale.qty * product.chocolate_g_per_unit
        kunafa += sale.qty * product.kunafa_g_per_unit
        cups += sale.qty * product.cups_per_unit
        sticks += sale.qty * product.sticks_per_unit

    return IngredientUsage(
        strawberries_g=grams,
        strawberries_pcs=pcs,
        chocolate_g=chocolate,
        kunafa_g=kunafa,
        cups_used=cups,
        sticks_used=sticks,
    )


def _wasted(state: AppState, ingredient_id: str) -> float:
    return sum(w.qty for w in state.waste_entries if w.ingredient_id == ingredient_id)


def _remaining(state: AppState, ingredient_id: str, calculated: float) -> tuple[float, bool]:
    # A manual stocktake figure replaces the calculated value outright.
    if ingredient_id in state.manual_inventory_adjustments:
        return float(state.manual_inventory_adjustments[ingredient_id]), True
    return calculated, False


def ingredient_inventory(state: AppState, usage: Optional[IngredientUsage] = None) -> list[IngredientInventory]:
    """
    One row per known ingredient, strawberry first.

    remaining = purchased - used - wasted, and is allowed to go negative: a
    negative figure means more was sold or wasted than was ever bought.
    """
    if usage is None:
        usage = ingredient_usage(state)

    out: list[IngredientInventory] = []
    strawberry_id = state.rules.strawberry_ingredient_id

    # ---- strawberry: purchases come from strawberry batches (grams) ----
    purchased = sum(b.bulk_weight_g for b in state.strawberry_batches)
    cost = sum(b.bulk_cost for b in state.strawberry_batches)
    wasted = _wasted(state, strawberry_id)
    used = usage.strawberries_g

    ing = state.ingredients.get(strawberry_id)
    if purchased > 0:
        cost_per_unit = safe_div(cost, purchased)
    else:
        cost_per_unit = ing.default_cost_per_unit if ing else 0.0

    calculated = purchased - used - wasted
    remaining, adjusted = _remaining(state, strawberry_id, calculated)
    out.append(
        IngredientInventory(
            ingredient_id=strawberry_id,
            name="Strawberry",
            unit="g",
            total_purchased=purchased,
            total_used=used,
            total_wasted=wasted,
            calculated_remaining=calculated,
            remaining=remaining,
            total_cost=cost,
            cost_per_unit=cost_per_unit,
            manually_adjusted=adjusted,
        )
    )

    # ---- everything else: generic ingredient batches ----
    for ing_id, ing in state.ingredients.items():
        if ing_id == strawberry_id:
            continue

        batches = [b for b in state.ingredient_batches if b.ingredient_id == ing_id]
        purchased = sum(b.bulk_qty for b in batches)
        cost = sum(b.bulk_cost for b in batches)
        wasted = _wasted(state, ing_id)
        used = usage.for_ingredient(ing_id)

        cost_per_unit = safe_div(cost, purchased) if purchased > 0 else ing.default_cost_per_unit

        calculated = purchased - used - wasted
        remaining, adjusted = _remaining(state, ing_id, calculated)
        out.append(
            IngredientInventory(
                ingredient_id=ing_id,
                name=ing.name,
                unit=ing.unit,
                total_purchased=purchased,
                total_used=used,
                total_wasted=wasted,
                calculated_remaining=calculated,
                remaining=remaining,
                total_cost=cost,
                cost_per_unit=cost_per_unit,
                manually_adjusted=adjusted,
            )
        )

    return out
