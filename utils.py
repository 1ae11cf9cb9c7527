"""
utils.py
Month arithmetic, exports, sample data.
"""

from __future__ import annotations

from datetime import date, timedelta
import pandas as pd

import db
from models import MonthWindow, STATUS_ACTIVE, STATUS_SUSPENDED, STATUS_WITHDRAWN


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def end_of_month(d: date) -> date:
    return add_months(start_of_month(d), 1) - timedelta(days=1)


def month_window(d: date) -> MonthWindow:
    return MonthWindow(start=start_of_month(d), end=end_of_month(d))


def month_key(d: date) -> str:
    return d.strftime("%Y-%m")


def days_apart(a: date, b: date) -> int:
    return abs((a - b).days)


def report_to_frame(report: dict) -> pd.DataFrame:
    """
    One row per month: member counts plus estimated sales.
    """
    counts = pd.DataFrame(
        [
            {k: m[k] for k in ("month", "active", "suspended", "new", "withdrawn")}
            for m in report["memberHistory"]
        ],
        columns=["month", "active", "suspended", "new", "withdrawn"],
    )
    sales = pd.DataFrame(report["salesHistory"], columns=["month", "amount"])
    return counts.merge(sales, on="month", how="left")


def report_to_csv_bytes(report: dict) -> bytes:
    df = report_to_frame(report)
    return df.to_csv(index=False).encode("utf-8")


def insert_sample_data(today: date | None = None) -> None:
    """
    Insert 3 members with renewal, suspension and churn histories
    (safe to run multiple times: users that already exist are skipped).
    """
    this_month = start_of_month(today or date.today())

    # (user, name, store, [(months ago, status, plan, fee), ...])
    members = [
        # plan change 3 months ago: one continuous membership
        ("sample-1", "Ahmed Hassan", "store-1", [
            (8, STATUS_ACTIVE, "Monthly 2", 8800.0),
            (3, STATUS_ACTIVE, "Monthly 4", 13200.0),
        ]),
        # suspended 2 months ago, still suspended
        ("sample-2", "Mona Ali", "store-1", [
            (6, STATUS_ACTIVE, "Monthly 8", 22000.0),
            (2, STATUS_SUSPENDED, "Monthly 8", 0.0),
        ]),
        # withdrew 4 months ago
        ("sample-3", "Omar Samy", "store-2", [
            (10, STATUS_ACTIVE, "Monthly 2", 8800.0),
            (4, STATUS_WITHDRAWN, "Monthly 2", 0.0),
        ]),
    ]

    for user_id, name, store_id, changes in members:
        if db.fetch_one("SELECT id FROM users WHERE id = ?", (user_id,)):
            continue
        plan, fee = changes[-1][2], changes[-1][3]
        db.execute(
            "INSERT INTO users(id, full_name, plan, monthly_fee, store_id) VALUES(?,?,?,?,?)",
            (user_id, name, plan, fee, store_id),
        )
        for months_ago, status, plan, fee in changes:
            db.record_status_change(
                user_id, status, store_id, add_months(this_month, -months_ago), plan, fee
            )
