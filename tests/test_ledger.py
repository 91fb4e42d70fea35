import pytest

from kiosk.services.demo_data import upsert_reference_data
from kiosk.services.ledger import Ledger
from kiosk.services.stats import dashboard_stats
from kiosk.stores import SqliteStore, load_state


class FailingStore:
    name = "broken"

    def get_all(self, kind):
        return None

    def upsert(self, kind, record):
        return False

    def delete_by_id(self, kind, record_id):
        return False

    def add_setting_value(self, key, value):
        return False

    def get_setting_values(self):
        return None


@pytest.fixture
def ledger(state):
    return Ledger(state)


@pytest.fixture
def store(tmp_path):
    return SqliteStore.open(tmp_path / "app.db")


def test_strawberry_batch_costs(ledger):
    b = ledger.add_strawberry_batch(
        name="Crate", date="2025-01-01", bulk_weight_kg=20, bulk_cost=1600, avg_weight_per_piece=20
    )
    assert b.bulk_weight_g == 20000
    assert b.cost_per_gram == pytest.approx(0.08)
    assert b.cost_per_piece == pytest.approx(1.60)


def test_strawberry_batch_update_keeps_costs_consistent(ledger):
    b = ledger.add_strawberry_batch(
        name="Crate", date="2025-01-01", bulk_weight_kg=20, bulk_cost=1600, avg_weight_per_piece=20
    )
    b = ledger.update_strawberry_batch(b.id, bulk_weight_kg=10)
    assert b.bulk_weight_g == 10000
    assert b.cost_per_gram == pytest.approx(0.16)
    assert b.cost_per_piece == pytest.approx(3.20)

    b = ledger.update_strawberry_batch(b.id, avg_weight_per_piece=25, bulk_cost=2000)
    assert b.cost_per_gram == pytest.approx(0.2)
    assert b.cost_per_piece == pytest.approx(5.0)
    assert ledger.state.strawberry_batches == [b]


@pytest.mark.parametrize("kg", [0, -1, "abc"])
def test_strawberry_batch_rejects_bad_weight(ledger, kg):
    with pytest.raises(ValueError):
        ledger.add_strawberry_batch(name="X", date="2025-01-01", bulk_weight_kg=kg, bulk_cost=10, avg_weight_per_piece=20)


def test_update_unknown_batch(ledger):
    with pytest.raises(ValueError, match="not found"):
        ledger.update_strawberry_batch("missing", bulk_cost=1)


def test_add_sale_defaults_to_product_price(ledger):
    s = ledger.add_sale(date="2025-01-02", product_id="kunafa", qty=2)
    assert s.unit_price == 35.0
    assert s.source == "manual"
    assert s.transaction_id is None
    assert s.revenue == 70


def test_sale_keeps_price_after_product_price_change(ledger):
    s = ledger.add_sale(date="2025-01-02", product_id="normal", qty=1)
    ledger.update_product("normal", price=40)
    assert ledger.state.sales[0].unit_price == 30.0
    assert ledger.state.sales[0].id == s.id
    assert ledger.state.products["normal"].price == 40


@pytest.mark.parametrize(
    "kwargs",
    [
        {"product_id": "nope", "qty": 1},
        {"product_id": "normal", "qty": 0},
        {"product_id": "normal", "qty": 1.5},
        {"product_id": "normal", "qty": "x"},
        {"product_id": "normal", "qty": 1, "source": "web"},
        {"product_id": "normal", "qty": 1, "unit_price": "free"},
    ],
)
def test_add_sale_validation(ledger, kwargs):
    with pytest.raises(ValueError):
        ledger.add_sale(date="2025-01-02", **kwargs)
    assert ledger.state.sales == []


def test_checkout_shares_one_transaction(ledger):
    lines = ledger.checkout([("normal", 1), ("kunafa", 2)], date="2025-01-05")
    assert len(lines) == 2
    assert {s.source for s in lines} == {"pos"}
    txn = lines[0].transaction_id
    assert txn and txn.startswith("t")
    assert lines[1].transaction_id == txn

    stats = dashboard_stats(ledger.state)
    assert stats.auto_pos_fees == pytest.approx(1 + 0.026 * 100)


def test_checkout_rejects_bad_order_atomically(ledger):
    with pytest.raises(ValueError):
        ledger.checkout([])
    with pytest.raises(ValueError):
        ledger.checkout([("normal", 1), ("ghost", 1)])
    assert ledger.state.sales == []


def test_two_checkouts_are_two_transactions(ledger):
    a = ledger.checkout([("normal", 1)], date="2025-01-05")
    b = ledger.checkout([("normal", 1)], date="2025-01-05")
    assert a[0].transaction_id != b[0].transaction_id


def test_product_crud(ledger):
    p = ledger.add_product(name="Mini cup", price=18, strawberries_per_unit=4, cups_per_unit=1)
    assert ledger.state.products[p.id].strawberries_per_unit == 4

    p = ledger.update_product(p.id, use_manual_cost=1, manual_cost_per_unit=6)
    assert p.use_manual_cost is True

    with pytest.raises(ValueError):
        ledger.update_product(p.id, colour="red")
    with pytest.raises(ValueError):
        ledger.update_product(p.id, price=-1)
    with pytest.raises(ValueError):
        ledger.add_product(name="  ", price=5)

    ledger.delete_product(p.id)
    assert p.id not in ledger.state.products


def test_deleting_product_keeps_its_sales(ledger):
    ledger.add_sale(date="2025-01-02", product_id="cookies", qty=1)
    ledger.delete_product("cookies")
    assert len(ledger.state.sales) == 1
    assert dashboard_stats(ledger.state).gross_revenue == 0


def test_fixed_cost_crud(ledger):
    c = ledger.add_fixed_cost(name="Permit", amount=300)
    assert dashboard_stats(ledger.state).fixed_total == 10650
    ledger.update_fixed_cost(c.id, amount=200)
    assert dashboard_stats(ledger.state).fixed_total == 10550
    ledger.delete_fixed_cost(c.id)
    assert dashboard_stats(ledger.state).fixed_total == 10350
    with pytest.raises(ValueError):
        ledger.update_fixed_cost("missing", amount=1)


def test_ingredient_unit_validation(ledger):
    with pytest.raises(ValueError, match="Unit"):
        ledger.add_ingredient(name="Sugar", unit="kg")
    ing = ledger.add_ingredient(name="Sugar", unit="g", default_bulk_qty=1000, default_bulk_cost=8)
    assert ledger.state.ingredients[ing.id].default_cost_per_unit == pytest.approx(0.008)


def test_ingredient_batch_requires_known_ingredient(ledger):
    with pytest.raises(ValueError):
        ledger.add_ingredient_batch(ingredient_id="sugar", name="b", date="2025-01-01", bulk_qty=1, bulk_cost=1)
    b = ledger.add_ingredient_batch(ingredient_id="cup", name="b", date="2025-01-01", bulk_qty=100, bulk_cost=150)
    ledger.delete_ingredient_batch(b.id)
    assert ledger.state.ingredient_batches == []


def test_waste_cost_frozen_at_entry(ledger):
    ledger.add_strawberry_batch(name="A", date="2025-01-01", bulk_weight_kg=10, bulk_cost=800, avg_weight_per_piece=20)
    w = ledger.add_waste_entry(date="2025-01-02", ingredient_id="strawberry", qty=100, reason=" bruised ")
    assert w.estimated_cost == pytest.approx(8)
    assert w.reason == "bruised"

    ledger.add_strawberry_batch(name="B", date="2025-01-03", bulk_weight_kg=10, bulk_cost=2000, avg_weight_per_piece=20)
    assert ledger.state.waste_entries[0].estimated_cost == pytest.approx(8)

    with pytest.raises(ValueError):
        ledger.add_waste_entry(date="2025-01-02", ingredient_id="strawberry", qty=0)


def test_manual_inventory_set_and_clear(ledger):
    ledger.set_manual_inventory("chocolate", 500)
    assert dashboard_stats(ledger.state).remaining("chocolate") == 500
    ledger.set_manual_inventory("chocolate", None)
    assert dashboard_stats(ledger.state).remaining("chocolate") == 0


def test_pos_fee_settings(ledger):
    ledger.set_pos_fee_percent(2.5)
    ledger.set_pos_fee_manual(30)
    assert ledger.state.fees.pos_fee_percent == 2.5
    assert not ledger.state.fees.use_manual_pos_fee
    ledger.set_use_manual_pos_fee(True)
    assert ledger.state.fees.use_manual_pos_fee
    with pytest.raises(ValueError):
        ledger.set_pos_fee_percent(-1)


def test_failing_store_still_updates_memory(state):
    ledger = Ledger(state, FailingStore())
    sale = ledger.add_sale(date="2025-01-02", product_id="normal", qty=1)
    assert ledger.state.sales == [sale]
    assert ledger.sync_failures == 1

    assert ledger.set_pos_fee_percent(3) is False
    assert ledger.state.fees.pos_fee_percent == 3
    assert ledger.delete_sale(sale.id) is False
    assert ledger.state.sales == []
    assert ledger.sync_failures == 3


def test_mutations_survive_reload(state, store):
    upsert_reference_data(store)
    ledger = Ledger(state, store)
    ledger.add_strawberry_batch(name="A", date="2025-01-01", bulk_weight_kg=5, bulk_cost=400, avg_weight_per_piece=20)
    ledger.checkout([("normal", 2), ("kunafa", 1)], date="2025-01-02")
    ledger.set_pos_fee_percent(2)
    ledger.set_manual_inventory("cup", 12)
    ledger.update_product("normal", price=32)

    reloaded = load_state(store, state)
    assert reloaded is not None
    assert reloaded.strawberry_batches == ledger.state.strawberry_batches
    assert reloaded.sales == ledger.state.sales
    assert reloaded.products["normal"].price == 32
    assert reloaded.fees.pos_fee_percent == 2
    assert reloaded.manual_inventory_adjustments == {"cup": 12}
    assert dashboard_stats(reloaded) == dashboard_stats(ledger.state)
    assert ledger.sync_failures == 0


def test_reset_is_memory_only(ledger, state):
    ledger.add_sale(date="2025-01-02", product_id="normal", qty=1)
    ledger.reset(state)
    assert ledger.state.sales == []


def test_ingredient_update_and_delete(ledger):
    ing = ledger.update_ingredient("cup", default_bulk_qty=100, default_bulk_cost=100)
    assert ing.default_cost_per_unit == 1.0
    with pytest.raises(ValueError):
        ledger.update_ingredient("cup", unit="litre")
    with pytest.raises(ValueError):
        ledger.update_ingredient("nope", name="x")

    ledger.delete_ingredient("sticks")
    assert "sticks" not in ledger.state.ingredients
    assert all(r.ingredient_id != "sticks" for r in dashboard_stats(ledger.state).inventory)


@pytest.mark.parametrize(
    "updates",
    [
        {"avg_weight_per_piece": 0},
        {"bulk_weight_g": 0},
        {"bulk_weight_kg": 0},
        {"avg_weight_per_piece": -5},
        {"bulk_cost": -1},
        {"name": "  "},
    ],
)
def test_strawberry_batch_update_uses_add_rules(ledger, updates):
    b = ledger.add_strawberry_batch(
        name="Crate", date="2025-01-01", bulk_weight_kg=20, bulk_cost=1600, avg_weight_per_piece=20
    )
    with pytest.raises(ValueError):
        ledger.update_strawberry_batch(b.id, **updates)
    assert ledger.state.strawberry_batches == [b]


def test_strawberry_batch_update_allows_free_batch(ledger):
    b = ledger.add_strawberry_batch(
        name="Crate", date="2025-01-01", bulk_weight_kg=20, bulk_cost=1600, avg_weight_per_piece=20
    )
    b = ledger.update_strawberry_batch(b.id, bulk_cost=0)
    assert b.cost_per_piece == 0


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), "inf", "nan"])
def test_non_finite_numbers_are_rejected(ledger, value):
    with pytest.raises(ValueError, match="finite"):
        ledger.add_ingredient_batch(ingredient_id="cup", name="b", date="2025-01-01", bulk_qty=value, bulk_cost=10)
    with pytest.raises(ValueError):
        ledger.add_sale(date="2025-01-02", product_id="normal", qty=value)
    assert ledger.state.ingredient_batches == []
    assert ledger.state.sales == []


@pytest.mark.parametrize("qty, expected", [("2.0", 2), ("3", 3), (4.0, 4), (5, 5)])
def test_whole_quantities_in_any_form(ledger, qty, expected):
    assert ledger.add_sale(date="2025-01-02", product_id="normal", qty=qty).qty == expected


@pytest.mark.parametrize("qty", ["2.5", -1, 0, "0.0"])
def test_bad_quantities(ledger, qty):
    with pytest.raises(ValueError):
        ledger.add_sale(date="2025-01-02", product_id="normal", qty=qty)
