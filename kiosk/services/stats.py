from __future__ import annotations

from kiosk.models import AppState, DashboardStats, Sale
from kiosk.services.costing import product_cost_per_unit
from kiosk.services.fees import automatic_pos_fees, global_pos_fee
from kiosk.services.inventory import ingredient_inventory, ingredient_usage
from kiosk.utils import safe_div


def known_sales(state: AppState) -> list[Sale]:
    # Products may be deleted without touching history; their sales drop out here.
    return [s for s in state.sales if s.product_id in state.products]


def cost_of_goods_sold(state: AppState) -> float:
    """Usage-based cost: each sale costed with the batches active on its date."""
    total = 0.0
    for sale in known_sales(state):
        product = state.products[sale.product_id]
        total += sale.qty * product_cost_per_unit(state, product, sale.date)
    return total


def fixed_total(state: AppState) -> float:
    return sum(c.amount for c in state.fixed_costs)


def total_waste_cost(state: AppState) -> float:
    return sum(w.estimated_cost for w in state.waste_entries)


def dashboard_stats(state: AppState) -> DashboardStats:
    """
    Top-level P&L for the whole state. Pure: no caching, no mutation.

    Variable cost is what was spent on ingredient purchases, not what the sold
    units consumed; the usage-based figure is reported separately as COGS.
    """
    rules = state.rules
    sales = known_sales(state)

    gross = 0.0
    tips = 0.0
    specialty_deduction = 0.0
    revenue_excl_specialty = 0.0
    units = 0

    for sale in sales:
        revenue = sale.revenue
        gross += revenue
        if sale.product_id == rules.tips_product_id:
            tips += revenue
        if sale.product_id == rules.specialty_product_id:
            specialty_deduction += rules.specialty_deduction_per_unit * sale.qty
        else:
            revenue_excl_specialty += revenue
        units += sale.qty

    usage = ingredient_usage(state)
    inventory = ingredient_inventory(state, usage)
    total_var_cost = sum(inv.total_cost for inv in inventory)

    auto_fees = automatic_pos_fees(sales, rules)
    pos_fees = global_pos_fee(state.fees, gross)

    net_revenue = gross - pos_fees - auto_fees - specialty_deduction

    # Global fee prorated by the non-specialty share of gross
    pos_fees_excl = pos_fees * safe_div(revenue_excl_specialty, gross)
    net_excl_specialty = revenue_excl_specialty - pos_fees_excl

    profit_before_fixed = net_revenue - total_var_cost
    fixed = fixed_total(state)
    net_after_fixed = profit_before_fixed - fixed
    achieved = net_after_fixed >= 0
    remaining_to_breakeven = 0.0 if achieved else -net_after_fixed

    return DashboardStats(
        gross_revenue=gross,
        net_revenue=net_revenue,
        net_revenue_excluding_specialty=net_excl_specialty,
        tips_revenue=tips,
        specialty_deduction=specialty_deduction,
        pos_fees=pos_fees,
        auto_pos_fees=auto_fees,
        total_var_cost=total_var_cost,
        cost_of_goods_sold=cost_of_goods_sold(state),
        profit_before_fixed=profit_before_fixed,
        fixed_total=fixed,
        net_after_fixed=net_after_fixed,
        remaining_to_breakeven=remaining_to_breakeven,
        breakeven_achieved=achieved,
        total_units=units,
        total_waste_cost=total_waste_cost(state),
        usage=usage,
        inventory=tuple(inventory),
    )
