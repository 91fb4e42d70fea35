from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Optional

from kiosk.logging import get_logger
from kiosk.models import (
    CHOCOLATE,
    CUP,
    KUNAFA,
    STICKS,
    STRAWBERRY,
    AppState,
    FixedCost,
    Ingredient,
    PricingRules,
    Product,
)
from kiosk.services.ledger import Ledger
from kiosk.stores import RECORD_TYPES, RecordStore, to_record

logger = get_logger(__name__)

DEFAULT_INGREDIENTS = [
    Ingredient(id=CUP, name="Cup", unit="units", default_bulk_qty=50, default_bulk_cost=61.5),
    Ingredient(id=CHOCOLATE, name="Chocolate", unit="g", default_bulk_qty=1000, default_bulk_cost=78.5),
    Ingredient(id=KUNAFA, name="Pistachio Kunafa", unit="g", default_bulk_qty=2000, default_bulk_cost=130),
    Ingredient(id=STICKS, name="Sticks", unit="units", default_bulk_qty=100, default_bulk_cost=21),
    Ingredient(id=STRAWBERRY, name="Strawberry", unit="g", default_bulk_qty=1000, default_bulk_cost=40),
]

DEFAULT_PRODUCTS = [
    Product(
        id="normal",
        name="Strawberry Chocolate",
        price=30.0,
        strawberries_per_unit=8,
        chocolate_g_per_unit=60,
        cups_per_unit=1,
        sticks_per_unit=1,
    ),
    Product(
        id="kunafa",
        name="Dubai Chocolate Strawberry",
        price=35.0,
        strawberries_per_unit=8,
        chocolate_g_per_unit=60,
        kunafa_g_per_unit=30,
        cups_per_unit=1,
        sticks_per_unit=1,
    ),
    Product(id="rocky", name="Rocky Road", price=55.0, use_manual_cost=True, manual_cost_per_unit=50.0),
    Product(id="tips", name="Tips", price=1.0, use_manual_cost=True, manual_cost_per_unit=0.0),
    Product(id="cookies", name="Cookies", price=15.0, use_manual_cost=True, manual_cost_per_unit=7.67),
]

DEFAULT_FIXED_COSTS = [
    FixedCost(id="fc1", name="Kiosk / Booth", amount=5650),
    FixedCost(id="fc2", name="Fridge", amount=1100),
    FixedCost(id="fc3", name="Machinery / Equipment", amount=3150),
    FixedCost(id="fc4", name="Kiosk Delivery", amount=450),
]


def default_state(rules: Optional[PricingRules] = None) -> AppState:
    return AppState(
        products={p.id: p for p in DEFAULT_PRODUCTS},
        fixed_costs=list(DEFAULT_FIXED_COSTS),
        ingredients={i.id: i for i in DEFAULT_INGREDIENTS},
        rules=rules or PricingRules(),
    )


def upsert_reference_data(store: RecordStore) -> None:
    """Seed the default catalog into an empty store; existing rows are left alone."""
    seeds = {
        "ingredients": DEFAULT_INGREDIENTS,
        "products": DEFAULT_PRODUCTS,
        "fixed_costs": DEFAULT_FIXED_COSTS,
    }
    for kind, records in seeds.items():
        existing = store.get_all(kind)
        if existing is None or existing:
            continue
        for rec in records:
            store.upsert(kind, to_record(rec))
        logger.info("reference_data_seeded", kind=kind, n=len(records))


def wipe_all(store: RecordStore) -> None:
    # Keep schema, delete data. Settings are reset to their zero values.
    for kind in RECORD_TYPES:
        for row in store.get_all(kind) or []:
            store.delete_by_id(kind, str(row["id"]))
    store.add_setting_value("pos_fee_percent", 0)
    store.add_setting_value("pos_fee_manual", 0)
    store.add_setting_value("use_manual_pos_fee", False)
    store.add_setting_value("manual_inventory_adjustments", {})


def load_demo_data(ledger: Ledger, *, seed: int = 7, days: int = 14) -> None:
    random.seed(seed)
    start = date.today() - timedelta(days=days - 1)

    # Two strawberry purchases a week apart so the as-of-date costing shows up
    ledger.add_strawberry_batch(
        name="Farm crate A", date=start.isoformat(), bulk_weight_kg=20, bulk_cost=1600, avg_weight_per_piece=20
    )
    ledger.add_strawberry_batch(
        name="Farm crate B",
        date=(start + timedelta(days=7)).isoformat(),
        bulk_weight_kg=15,
        bulk_cost=1350,
        avg_weight_per_piece=22,
    )
    ledger.add_ingredient_batch(
        ingredient_id=CHOCOLATE, name="Callebaut 5kg", date=start.isoformat(), bulk_qty=5000, bulk_cost=390
    )
    ledger.add_ingredient_batch(
        ingredient_id=KUNAFA, name="Kunafa 2kg", date=start.isoformat(), bulk_qty=2000, bulk_cost=130
    )
    ledger.add_ingredient_batch(ingredient_id=CUP, name="Cups x500", date=start.isoformat(), bulk_qty=500, bulk_cost=600)
    ledger.add_ingredient_batch(
        ingredient_id=STICKS, name="Sticks x1000", date=start.isoformat(), bulk_qty=1000, bulk_cost=190
    )

    sellable = [pid for pid in ("normal", "kunafa", "rocky", "cookies") if pid in ledger.state.products]
    for d in range(days):
        day = (start + timedelta(days=d)).isoformat()

        # Card checkouts at the kiosk
        for _ in range(random.randint(4, 10)):
            n_lines = random.choice([1, 1, 1, 2, 2, 3])
            items = [(random.choice(sellable), random.randint(1, 3)) for _ in range(n_lines)]
            ledger.checkout(items, date=day)

        # Cash sales typed in at end of day
        for _ in range(random.randint(0, 3)):
            ledger.add_sale(date=day, product_id=random.choice(sellable), qty=random.randint(1, 2))

        if "tips" in ledger.state.products and random.random() < 0.4:
            ledger.add_sale(date=day, product_id="tips", qty=random.randint(5, 20), unit_price=1.0)

    ledger.add_waste_entry(date=(start + timedelta(days=3)).isoformat(), ingredient_id=STRAWBERRY, qty=400, reason="Bruised")
    ledger.add_waste_entry(date=(start + timedelta(days=9)).isoformat(), ingredient_id=CHOCOLATE, qty=150, reason="Seized")
