from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Kiosk Ledger", page_icon="🍓", layout="wide")

pages = [
    st.Page("home.py", title="Dashboard", icon="📊"),
    st.Page("pages/1_🛒_POS.py", title="POS", icon="🛒"),
    st.Page("pages/2_🧾_Sales_Log.py", title="Sales Log", icon="🧾"),
    st.Page("pages/3_🧮_Products_&_Costs.py", title="Products & Costs", icon="🧮"),
    st.Page("pages/4_📦_Ingredients.py", title="Ingredients & Inventory", icon="📦"),
    st.Page("pages/5_🗑️_Waste.py", title="Waste", icon="🗑️"),
    st.Page("pages/6_🏠_Fixed_Costs.py", title="Fixed Costs", icon="🏠"),
    st.Page("pages/7_🧪_Data_Management.py", title="Data Management", icon="🧪"),
    st.Page("pages/8_💳_Card_Classifier.py", title="Card Classifier", icon="💳"),
]

st.navigation(pages).run()
