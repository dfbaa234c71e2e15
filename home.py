from __future__ import annotations

import streamlit as st

from core.catalog import APP_NAME, WORK_CENTERS
from core.config import configure_logging, get_settings
from core.db import get_conn, ensure_schema
from core.services.iqf import available_iqf
from core.services.materials import material_stock
from core.services.reports import material_stock_frame
from core.services.stock import finished_goods_stock, stock_totals
from core.services.workcenter import current_context, switch_work_center

st.set_page_config(page_title=f"{APP_NAME} Ledger", page_icon="🫐", layout="wide")

st.title(f"🫐 {APP_NAME} Traceability Ledger")
st.caption("Reception pallets → production lots → finished-goods folios → dispatch, with FIFO packaging stock.")

settings = get_settings()
configure_logging(settings)
conn = get_conn(settings.db_path)
ensure_schema(conn)
ctx = current_context(conn)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")

    options = list(dict.fromkeys(WORK_CENTERS + [ctx.active]))
    center = st.selectbox("Work center", options=options, index=options.index(ctx.active))
    if center != ctx.active:
        ctx = switch_work_center(conn, center)
        st.rerun()

groups = finished_goods_stock(conn, ctx)
totals = stock_totals(groups)
iqf = available_iqf(conn, ctx)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Finished goods (kg)", f"{totals['kilos']:,.2f}")
c2.metric("Boxes", f"{int(totals['units']):,}")
c3.metric("Folios in stock", int(totals["folios"]))
c4.metric("Loose IQF (kg)", f"{sum(a.remaining for a in iqf):,.2f}")

st.subheader("Packaging materials")
stock = material_stock(conn, ctx)
if stock:
    st.dataframe(material_stock_frame(stock), use_container_width=True, hide_index=True)
else:
    st.info("No packaging materials yet. Load demo data from **🧪 Data Management**.", icon="ℹ️")
