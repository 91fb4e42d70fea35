import copy
from dataclasses import replace

import pytest

from builders import ing_batch, sale, straw_batch, waste
from kiosk.models import PosFeeSettings
from kiosk.services.classifier import catalog_prices, find_combinations
from kiosk.services.costing import ingredient_cost_per_unit, product_cost_per_unit, strawberry_batch_for_date
from kiosk.services.fees import automatic_pos_fees, line_fee_attribution, pos_transaction_fees
from kiosk.services.inventory import ingredient_inventory, ingredient_usage
from kiosk.services.reports import sales_export_csv, sales_ledger, waste_export_csv, waste_summary
from kiosk.services.stats import dashboard_stats


@pytest.fixture
def busy_state(state):
    return replace(
        state,
        strawberry_batches=[
            straw_batch("2025-01-08", 10000, 900, avg=22),
            straw_batch("2025-01-01", 20000, 1600, avg=20),
        ],
        ingredient_batches=[
            ing_batch("chocolate", "2025-01-05", 1000, 90),
            ing_batch("chocolate", "2025-01-01", 1000, 80),
            ing_batch("cup", "2025-01-01", 50, 61.5),
        ],
        sales=[
            sale("normal", qty=2, date="2025-01-09", source="pos", transaction_id="t2"),
            sale("kunafa", qty=1, unit_price=35, date="2025-01-02", source="pos", transaction_id="t1"),
            sale("rocky", qty=1, unit_price=55, date="2025-01-02", source="pos", transaction_id="t1"),
            sale("tips", qty=5, unit_price=1, date="2025-01-03"),
            sale("gone", qty=1, date="2025-01-04"),
        ],
        waste_entries=[waste("strawberry", 120, cost=9.6), waste("chocolate", 30, cost=2.4)],
        manual_inventory_adjustments={"cup": 40},
        fees=PosFeeSettings(pos_fee_percent=1.5),
    )


def test_calculators_leave_state_untouched(busy_state):
    before = copy.deepcopy(busy_state)
    sales_order = [s.id for s in busy_state.sales]

    dashboard_stats(busy_state)
    ingredient_usage(busy_state)
    ingredient_inventory(busy_state)
    sales_ledger(busy_state)
    sales_export_csv(busy_state)
    waste_summary(busy_state)
    waste_export_csv(busy_state)
    line_fee_attribution(busy_state.sales, busy_state.rules)
    pos_transaction_fees(busy_state.sales, busy_state.rules)
    automatic_pos_fees(busy_state.sales, busy_state.rules)
    strawberry_batch_for_date(busy_state, "2025-01-05")
    ingredient_cost_per_unit(busy_state, "chocolate", "2025-01-03")
    for product in busy_state.products.values():
        product_cost_per_unit(busy_state, product, "2025-01-06")
    find_combinations(70, catalog_prices(busy_state))

    assert busy_state == before
    assert [s.id for s in busy_state.sales] == sales_order
    assert [b.date for b in busy_state.strawberry_batches] == ["2025-01-08", "2025-01-01"]


def test_repeated_runs_agree(busy_state):
    assert dashboard_stats(busy_state) == dashboard_stats(busy_state)
    assert sales_ledger(busy_state) == sales_ledger(busy_state)
