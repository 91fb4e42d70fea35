from __future__ import annotations

import streamlit as st
import pandas as pd

from kiosk.config import get_settings
from kiosk.services.reports import sales_ledger_frame
from kiosk.services.stats import dashboard_stats
from kiosk.session import get_ledger, money

st.title("🍓 Kiosk Ledger: Dashboard")
st.caption("Revenue, costs and break-even for the kiosk. Costs use the batch prices active on each sale date.")

settings = get_settings()
ledger = get_ledger()
stats = dashboard_stats(ledger.state)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Store:** `{ledger.store.name if ledger.store else 'memory'}`")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    if ledger.sync_failures:
        st.warning(f"{ledger.sync_failures} change(s) may not have synced.")

c1, c2, c3, c4 = st.columns(4)
c1.metric("Gross revenue", money(stats.gross_revenue))
c2.metric("Net revenue", money(stats.net_revenue))
c3.metric("Variable cost (purchases)", money(stats.total_var_cost))
c4.metric("Profit before fixed", money(stats.profit_before_fixed))

c1, c2, c3, c4 = st.columns(4)
c1.metric("Fixed costs", money(stats.fixed_total))
c2.metric("Net after fixed", money(stats.net_after_fixed))
c3.metric("Units sold", f"{stats.total_units}")
c4.metric("COGS (by usage)", money(stats.cost_of_goods_sold))

if stats.breakeven_achieved:
    st.success("Break-even achieved.", icon="🎯")
else:
    st.warning(f"Remaining to break-even: **{money(stats.remaining_to_breakeven)}**", icon="🎯")

st.divider()
st.subheader("Deductions")
deductions = pd.DataFrame(
    [
        {"line": "POS fee (configured)", "amount": stats.pos_fees},
        {"line": "POS fee (per transaction)", "amount": stats.auto_pos_fees},
        {"line": "Specialty product deduction", "amount": stats.specialty_deduction},
        {"line": "Tips revenue (included in gross)", "amount": stats.tips_revenue},
        {"line": "Waste (estimated)", "amount": stats.total_waste_cost},
    ]
)
st.dataframe(deductions.round(2), use_container_width=True, hide_index=True)
st.caption(f"Net revenue excluding specialty product: {money(stats.net_revenue_excluding_specialty)}")

st.subheader("Inventory")
inv = pd.DataFrame(
    [
        {
            "ingredient": i.name,
            "unit": i.unit,
            "purchased": i.total_purchased,
            "used": i.total_used,
            "wasted": i.total_wasted,
            "remaining": i.remaining,
            "manual": i.manually_adjusted,
            "cost/unit": i.cost_per_unit,
            "spent": i.total_cost,
        }
        for i in stats.inventory
    ]
)
st.dataframe(inv.round(4), use_container_width=True, hide_index=True)
negative = [i.name for i in stats.inventory if i.remaining < 0]
if negative:
    st.error(f"Negative stock (check purchases / sales entry): {', '.join(negative)}")

st.subheader("Cumulative profit vs fixed costs")
df = sales_ledger_frame(ledger.state)
if df.empty:
    st.info("No sales yet. Use **🛒 POS** or **🧾 Sales Log**, or load demo data in **🧪 Data Management**.")
else:
    daily = df.groupby("date")[["revenue", "profit"]].sum().cumsum()
    daily["fixed costs"] = stats.fixed_total
    st.line_chart(daily)
