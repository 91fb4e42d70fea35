from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from kiosk.models import AppState, Sale

# Products a card amount is split into, in search order.
CLASSIFIER_PRODUCTS = ("rocky", "kunafa", "normal", "cookies")


@dataclass(frozen=True)
class ClassifiedTransaction:
    amount: float
    combo: dict[str, int] = field(default_factory=dict)

    @property
    def units(self) -> int:
        return sum(self.combo.values())


def _cents(value: float) -> int:
    return int(round(float(value) * 100))


def catalog_prices(state: AppState, product_ids: Iterable[str] = CLASSIFIER_PRODUCTS) -> dict[str, float]:
    """Current prices of the classifier products that exist and sell for more than 0."""
    prices: dict[str, float] = {}
    for pid in product_ids:
        product = state.products.get(pid)
        if product is not None and product.price > 0:
            prices[pid] = float(product.price)
    return prices


def find_combinations(amount: float, prices: Mapping[str, float]) -> list[dict[str, int]]:
    """
    Every non-empty basket whose prices add up to exactly `amount`.

    Products are searched in the mapping's order, each from 0 up to the most
    that still fits; the last product takes whatever is left if it divides
    evenly. Amounts are compared in cents.
    """
    target = _cents(amount)
    items = [(pid, _cents(p)) for pid, p in prices.items() if _cents(p) > 0]
    if target <= 0 or not items:
        return []

    out: list[dict[str, int]] = []

    def walk(i: int, remaining: int, combo: dict[str, int]) -> None:
        pid, price = items[i]
        if i == len(items) - 1:
            if remaining % price == 0:
                out.append({**combo, pid: remaining // price})
            return
        for n in range(remaining // price + 1):
            walk(i + 1, remaining - n * price, {**combo, pid: n})

    walk(0, target, {})
    return [c for c in out if sum(c.values()) > 0]


def describe_combo(combo: Mapping[str, int], names: Optional[Mapping[str, str]] = None) -> str:
    names = names or {}
    parts = [f"{n} × {names.get(pid, pid)}" for pid, n in combo.items() if n]
    return ", ".join(parts) or "No products"


def combo_totals(transactions: Iterable[ClassifiedTransaction]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for tx in transactions:
        for pid, n in tx.combo.items():
            if n:
                totals[pid] = totals.get(pid, 0) + n
    return totals


def post_classified_sales(ledger, transactions: Iterable[ClassifiedTransaction], *, date: str) -> list[Sale]:
    """
    Post the summed units as one manual sale per product at its current
    catalog price. Products missing from the catalog are skipped.
    """
    sales: list[Sale] = []
    for pid, qty in combo_totals(transactions).items():
        if pid not in ledger.state.products:
            continue
        sales.append(ledger.add_sale(date=date, product_id=pid, qty=qty))
    return sales
