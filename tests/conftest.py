from __future__ import annotations

import pytest

from kiosk.models import AppState, Ingredient, Product
from kiosk.services.demo_data import default_state


@pytest.fixture
def state() -> AppState:
    """Default catalog, no activity."""
    return default_state()


@pytest.fixture
def bare_state() -> AppState:
    """One cup-only product, one ingredient, no fixed costs."""
    return AppState(
        products={"cup_only": Product(id="cup_only", name="Cup only", price=10.0, cups_per_unit=1)},
        ingredients={"cup": Ingredient(id="cup", name="Cup", unit="units", default_bulk_qty=10, default_bulk_cost=5)},
        fixed_costs=[],
    )
