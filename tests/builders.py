from __future__ import annotations

import itertools

from kiosk.models import (
    IngredientBatch,
    Sale,
    StrawberryBatch,
    WasteEntry,
)

_ids = itertools.count(1)


def sale(product_id: str, qty: int = 1, unit_price: float = 30.0, date: str = "2025-01-10", **kw) -> Sale:
    return Sale(id=kw.pop("id", f"s{next(_ids)}"), date=date, product_id=product_id, qty=qty, unit_price=unit_price, **kw)


def ing_batch(ingredient_id: str, date: str, qty: float, cost: float, name: str = "") -> IngredientBatch:
    return IngredientBatch(
        id=f"ib{next(_ids)}", ingredient_id=ingredient_id, name=name or date, date=date, bulk_qty=qty, bulk_cost=cost
    )


def straw_batch(date: str, grams: float, cost: float, avg: float = 20.0, name: str = "") -> StrawberryBatch:
    return StrawberryBatch(
        id=f"sb{next(_ids)}", name=name or date, date=date, bulk_weight_g=grams, bulk_cost=cost, avg_weight_per_piece=avg
    )


def waste(ingredient_id: str, qty: float, cost: float = 0.0, date: str = "2025-01-10") -> WasteEntry:
    return WasteEntry(
        id=f"w{next(_ids)}", date=date, ingredient_id=ingredient_id, qty=qty, reason="test", estimated_cost=cost
    )
