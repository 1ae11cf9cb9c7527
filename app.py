"""
app.py
Streamlit membership analytics view (admin staff).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
import os
from datetime import date
import pandas as pd
import streamlit as st

import db
import utils
from analytics import build_report, load_snapshot
from errors import UpstreamFetchError
from models import ONE_OFF_PLAN_MARKERS, SERVICE_FLOOR_DATE, STATUSES
from sales import sales_breakdown

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(message)s",
)

st.set_page_config(page_title="Membership Analytics", layout="wide")


def init_once():
    db.init_db()


def period_options(today: date) -> dict[str, str]:
    options = {"Last 12 months": "1y", "Last 3 months": "3m", "All time": "all"}
    for year in range(today.year + 1, SERVICE_FLOOR_DATE.year - 1, -1):
        options[str(year)] = str(year)
    return options


def member_table(entries: list[dict]):
    if entries:
        st.dataframe(pd.DataFrame(entries), use_container_width=True, hide_index=True)
    else:
        st.caption("None.")


def analytics_page():
    st.header("📈 Member Movement & Sales")

    today = date.today()
    with st.sidebar:
        st.subheader("Filters")
        store_id = st.selectbox("Store", ["all"] + db.list_stores())
        periods = period_options(today)
        period = periods[st.selectbox("Period", list(periods.keys()))]
        exclude_one_off = st.checkbox("Exclude one-off plans", value=False)

    try:
        records = load_snapshot(store_id)
    except UpstreamFetchError as exc:
        st.error(f"Could not load membership history: {exc}")
        st.stop()

    report = build_report(
        records,
        today,
        period,
        store_id,
        excluded_plans=ONE_OFF_PLAN_MARKERS if exclude_one_off else (),
    )

    history = report["memberHistory"]
    if not history:
        st.info("No months to show for this period.")
        return

    current_key = utils.month_key(today)
    current = next((m for m in history if m["month"] == current_key), history[-1])

    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Active members", current["active"])
    c2.metric("New", current["new"])
    c3.metric("Withdrawn", current["withdrawn"])
    c4.metric("Suspended", current["suspended"])
    c5.metric("Projected sales (this month)", f"{float(report['projectedSales']):,.0f}")

    st.divider()

    df = utils.report_to_frame(report).set_index("month")
    st.subheader("Members per month")
    st.line_chart(df[["active", "suspended"]])
    st.bar_chart(df[["new", "withdrawn"]])

    st.subheader("Estimated sales per month")
    st.bar_chart(df[["amount"]])

    st.download_button(
        "Download report.csv",
        data=utils.report_to_csv_bytes(report),
        file_name=f"membership_report_{store_id}_{period}.csv",
        mime="text/csv",
    )

    st.divider()

    st.subheader("Month details")
    months = [m["month"] for m in history]
    chosen = st.selectbox("Month", months, index=months.index(current["month"]))
    detail = next(m for m in history if m["month"] == chosen)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.markdown(f"**New ({detail['new']})**")
        member_table(detail["newMembers"])
    with col2:
        st.markdown(f"**Withdrawn ({detail['withdrawn']})**")
        member_table(detail["withdrawnMembers"])
    with col3:
        st.markdown(f"**Suspended ({detail['suspended']})**")
        member_table(detail["suspendedMembers"])

    st.markdown("**Sales breakdown**")
    lines = sales_breakdown(records, utils.month_window(utils.parse_iso(f"{chosen}-01")))
    member_table(lines)


def status_change_page():
    st.header("🔁 Record Status Change")

    users = db.fetch_all("SELECT id, full_name, plan, monthly_fee, store_id FROM users ORDER BY full_name ASC")
    if not users:
        st.info("No members yet. Insert sample data from Settings.")
        return

    options = {f"{u['full_name']} - ID {u['id']}": u for u in users}
    chosen = options[st.selectbox("Member", list(options.keys()))]

    col1, col2, col3 = st.columns(3)
    with col1:
        status = st.selectbox("New status", list(STATUSES))
        start_date = st.date_input("Effective from", value=date.today())
    with col2:
        plan = st.text_input("Plan", value=chosen["plan"] or "")
        fee = st.text_input("Monthly fee", value=str(chosen["monthly_fee"] or 0))
    with col3:
        store_id = st.text_input("Store", value=chosen["store_id"] or "")

    if st.button("Save", type="primary"):
        try:
            amount = float(fee)
        except ValueError:
            st.error("Monthly fee must be numeric.")
            return
        if amount < 0:
            st.error("Monthly fee must be >= 0.")
            return
        try:
            db.record_status_change(
                chosen["id"], status, store_id.strip() or None, start_date, plan.strip() or None, amount
            )
        except ValueError as exc:
            st.error(str(exc))
            return
        st.success("Status change recorded.")
        st.rerun()

    st.divider()

    st.subheader("History")
    rows = db.fetch_all(
        """
        SELECT id, status, store_id, start_date, end_date, plan, monthly_fee
        FROM membership_history
        WHERE user_id = ?
        ORDER BY start_date DESC, id DESC
        """,
        (chosen["id"],),
    )
    if rows:
        st.dataframe(pd.DataFrame([dict(r) for r in rows]), use_container_width=True, hide_index=True)
    else:
        st.caption("No history for this member yet.")


def settings_page():
    st.header("⚙️ Settings")

    st.subheader("Sample data")
    st.caption("Insert 3 sample members with renewal, suspension and churn histories.")
    if st.button("Insert sample data"):
        utils.insert_sample_data()
        st.success("Sample data inserted.")
        st.rerun()


def main_app():
    st.sidebar.title("🏋️ Membership Analytics")

    pages = ["Analytics", "Status changes", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Analytics"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.session_state.page == "Analytics":
        analytics_page()
    elif st.session_state.page == "Status changes":
        status_change_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    main_app()


if __name__ == "__main__":
    run()
