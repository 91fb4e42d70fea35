from __future__ import annotations

import pandas as pd

from kiosk.models import AppState, SalesLedgerRow
from kiosk.services.costing import product_cost_per_unit, strawberry_batch_for_date
from kiosk.services.fees import line_fee_attribution
from kiosk.services.stats import fixed_total

SALES_EXPORT_COLUMNS = ["Date", "Product", "Quantity", "Unit Price", "Revenue", "Cost/Unit", "Profit"]
WASTE_EXPORT_COLUMNS = ["Date", "Ingredient", "Quantity", "Reason", "Estimated Cost"]


def sales_ledger(state: AppState) -> list[SalesLedgerRow]:
    """
    Running P&L per sale, oldest first.

    Each line is costed with the batches active on its own date; cumulative
    profit is compared with the fixed-cost total to show when break-even was hit.
    """
    ordered = sorted(state.sales, key=lambda s: s.date)
    fees = line_fee_attribution(ordered, state.rules)
    fixed = fixed_total(state)
    default_weight = state.rules.default_strawberry_weight_g

    rows: list[SalesLedgerRow] = []
    cum_revenue = 0.0
    cum_profit = 0.0

    for i, sale in enumerate(ordered, start=1):
        product = state.products.get(sale.product_id)
        revenue = sale.revenue
        cost_per_unit = product_cost_per_unit(state, product, sale.date) if product else 0.0
        var_cost = sale.qty * cost_per_unit
        profit = revenue - var_cost

        cum_revenue += revenue
        cum_profit += profit
        net_after_fixed = cum_profit - fixed
        is_breakeven = net_after_fixed >= 0

        batch = strawberry_batch_for_date(state, sale.date)
        avg_weight = (batch.avg_weight_per_piece if batch else 0.0) or default_weight

        strawberry_g = chocolate_g = kunafa_g = 0.0
        if product and not product.use_manual_cost:
            strawberry_g = sale.qty * product.strawberries_per_unit * avg_weight
            chocolate_g = sale.qty * product.chocolate_g_per_unit
            kunafa_g = sale.qty * product.kunafa_g_per_unit

        rows.append(
            SalesLedgerRow(
                index=i,
                sale=sale,
                product_name=product.name if product else sale.product_id,
                manual_cost=bool(product and product.use_manual_cost),
                revenue=revenue,
                cost_per_unit=cost_per_unit,
                var_cost=var_cost,
                profit_before_fixed=profit,
                cumulative_revenue=cum_revenue,
                cumulative_profit=cum_profit,
                net_after_fixed=net_after_fixed,
                is_breakeven=is_breakeven,
                remaining_to_breakeven=0.0 if is_breakeven else -net_after_fixed,
                strawberry_g=strawberry_g,
                chocolate_g=chocolate_g,
                kunafa_g=kunafa_g,
                batch_used=batch.name if batch else "Default",
                pos_fee=fees.get(sale.id, 0.0),
            )
        )
    return rows


def sales_ledger_frame(state: AppState) -> pd.DataFrame:
    rows = sales_ledger(state)
    return pd.DataFrame(
        [
            {
                "#": r.index,
                "date": r.sale.date,
                "product": r.product_name,
                "source": r.sale.source,
                "qty": r.sale.qty,
                "unit_price": r.sale.unit_price,
                "revenue": r.revenue,
                "cost_per_unit": r.cost_per_unit,
                "var_cost": r.var_cost,
                "profit": r.profit_before_fixed,
                "cum_profit": r.cumulative_profit,
                "net_after_fixed": r.net_after_fixed,
                "breakeven": r.is_breakeven,
                "to_breakeven": r.remaining_to_breakeven,
                "pos_fee": r.pos_fee,
                "strawberry_g": r.strawberry_g,
                "chocolate_g": r.chocolate_g,
                "kunafa_g": r.kunafa_g,
                "batch": r.batch_used,
                "sale_id": r.sale.id,
            }
            for r in rows
        ]
    )


def sales_export_frame(state: AppState) -> pd.DataFrame:
    """Flat projection of the ledger for offline analysis (two decimals)."""
    rows = sales_ledger(state)
    df = pd.DataFrame(
        [
            [
                r.sale.date,
                r.product_name,
                r.sale.qty,
                r.sale.unit_price,
                r.revenue,
                r.cost_per_unit,
                r.profit_before_fixed,
            ]
            for r in rows
        ],
        columns=SALES_EXPORT_COLUMNS,
    )
    for col in ["Unit Price", "Revenue", "Cost/Unit", "Profit"]:
        df[col] = df[col].map(lambda v: f"{float(v):.2f}")
    return df


def sales_export_csv(state: AppState) -> str:
    return sales_export_frame(state).to_csv(index=False, lineterminator="\n")


def waste_summary(state: AppState) -> list[dict]:
    """Waste quantity and cost per ingredient, in first-seen order."""
    acc: dict[str, dict] = {}
    for w in state.waste_entries:
        ing = state.ingredients.get(w.ingredient_id)
        row = acc.setdefault(
            w.ingredient_id,
            {
                "ingredient_id": w.ingredient_id,
                "name": ing.name if ing else w.ingredient_id,
                "unit": ing.unit if ing else "",
                "qty": 0.0,
                "cost": 0.0,
                "entries": 0,
            },
        )
        row["qty"] += w.qty
        row["cost"] += w.estimated_cost
        row["entries"] += 1
    return list(acc.values())


def waste_export_csv(state: AppState) -> str:
    data = []
    for w in state.waste_entries:
        ing = state.ingredients.get(w.ingredient_id)
        data.append(
            [
                w.date,
                ing.name if ing else w.ingredient_id,
                w.qty,
                w.reason,
                f"{float(w.estimated_cost):.2f}",
            ]
        )
    df = pd.DataFrame(data, columns=WASTE_EXPORT_COLUMNS)
    return df.to_csv(index=False, lineterminator="\n")
