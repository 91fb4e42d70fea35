from __future__ import annotations

from typing import Iterable

from kiosk.models import SOURCE_POS, PosFeeSettings, PricingRules, Sale


def transaction_key(sale: Sale) -> str:
    # A POS line without a transaction id is a transaction of its own.
    return sale.transaction_id or sale.id


def pos_transaction_totals(sales: Iterable[Sale]) -> dict[str, float]:
    """
    Revenue per POS checkout. Manually entered sales never take part.
    Keys keep first-seen order.
    """
    totals: dict[str, float] = {}
    for sale in sales:
        if sale.source != SOURCE_POS:
            continue
        key = transaction_key(sale)
        totals[key] = totals.get(key, 0.0) + sale.revenue
    return totals


def transaction_fee(revenue: float, rules: PricingRules) -> float:
    return rules.pos_fixed_charge + rules.pos_fee_rate * revenue


def pos_transaction_fees(sales: Iterable[Sale], rules: PricingRules) -> dict[str, float]:
    return {key: transaction_fee(rev, rules) for key, rev in pos_transaction_totals(sales).items()}


def automatic_pos_fees(sales: Iterable[Sale], rules: PricingRules) -> float:
    return sum(pos_transaction_fees(sales, rules).values())


def line_fee_attribution(sales: list[Sale], rules: PricingRules) -> dict[str, float]:
    """
    Per sale line fee for display: the whole transaction fee sits on the first
    line of its group (list order), every other line shows 0.
    """
    fees = pos_transaction_fees(sales, rules)
    seen: set[str] = set()
    out: dict[str, float] = {}
    for sale in sales:
        if sale.source != SOURCE_POS:
            out[sale.id] = 0.0
            continue
        key = transaction_key(sale)
        if key in seen:
            out[sale.id] = 0.0
        else:
            seen.add(key)
            out[sale.id] = fees[key]
    return out


def global_pos_fee(settings: PosFeeSettings, gross_revenue: float) -> float:
    """
    Operator-configured fee over all revenue, independent of the automatic
    per-transaction fee. Both are deducted.
    """
    if settings.use_manual_pos_fee:
        return float(settings.pos_fee_manual)
    return (float(settings.pos_fee_percent) / 100.0) * gross_revenue
