"""
db.py
SQLite helpers + membership history store (schema, fetch, status changes).
"""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from datetime import date, timedelta

from errors import UpstreamFetchError
from models import MembershipRecord, STATUSES
from records import records_from_rows

logger = logging.getLogger(__name__)

DB_FILE = Path(os.environ.get("MEMBERSHIP_DB", Path(__file__).with_name("membership.db")))


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            full_name TEXT NOT NULL,
            plan TEXT,
            monthly_fee REAL,
            billing_start_month TEXT,
            store_id TEXT
        )
        """
    )

    # One row per status stint; end_date NULL = still open
    execute(
        """
        CREATE TABLE IF NOT EXISTS membership_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('active','suspended','withdrawn')),
            store_id TEXT,
            start_date TEXT NOT NULL,
            end_date TEXT,
            plan TEXT,
            monthly_fee REAL,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        )
        """
    )

    execute(
        "CREATE INDEX IF NOT EXISTS idx_history_user ON membership_history(user_id, start_date)"
    )


def init_db() -> None:
    """
    Initialize the database (create tables). Safe to call on every run.
    """
    _create_tables()


def fetch_membership_history(store_filter: str = "all") -> list[MembershipRecord]:
    """
    All history rows joined with their user, optionally for a single store.
    """
    sql = """
        SELECT h.id, h.user_id, h.status, h.store_id, h.start_date, h.end_date,
               h.plan, h.monthly_fee,
               u.full_name AS user_full_name, u.plan AS user_plan,
               u.monthly_fee AS user_monthly_fee, u.billing_start_month
        FROM membership_history h
        LEFT JOIN users u ON u.id = h.user_id
    """
    params: tuple = ()
    if store_filter and store_filter != "all":
        sql += " WHERE h.store_id = ?"
        params = (store_filter,)
    sql += " ORDER BY h.user_id ASC, h.start_date ASC, h.id ASC"

    try:
        rows = fetch_all(sql, params)
    except sqlite3.Error as exc:
        logger.error("Membership history fetch failed (store=%s): %s", store_filter, exc)
        raise UpstreamFetchError(f"could not fetch membership history: {exc}") from exc
    return records_from_rows(rows)


def record_status_change(
    user_id: str,
    status: str,
    store_id: str | None = None,
    start_date: date | None = None,
    plan: str | None = None,
    monthly_fee: float | None = None,
) -> int:
    """
    Close the user's open history row the day before `start_date` and open a new one.
    Returns the id of the new row.
    """
    if status not in STATUSES:
        raise ValueError(f"Unknown membership status: {status}")
    start = start_date or date.today()

    with get_conn() as conn:
        current = conn.execute(
            """
            SELECT id, start_date FROM membership_history
            WHERE user_id = ? AND end_date IS NULL
            ORDER BY start_date DESC, id DESC
            LIMIT 1
            """,
            (user_id,),
        ).fetchone()
        if current:
            if start.isoformat() <= current["start_date"]:
                raise ValueError(
                    f"Status change on {start} must start after the open row starting {current['start_date']}"
                )
            # New stint starting 2026-01-01 closes the old one on 2025-12-31
            conn.execute(
                "UPDATE membership_history SET end_date = ? WHERE id = ?",
                ((start - timedelta(days=1)).isoformat(), current["id"]),
            )

        cur = conn.execute(
            """
            INSERT INTO membership_history(user_id, status, store_id, start_date, end_date, plan, monthly_fee)
            VALUES(?,?,?,?,NULL,?,?)
            """,
            (user_id, status, store_id, start.isoformat(), plan, monthly_fee),
        )
        return cur.lastrowid


def list_stores() -> list[str]:
    rows = fetch_all(
        "SELECT DISTINCT store_id FROM membership_history WHERE store_id IS NOT NULL ORDER BY store_id"
    )
    return [r["store_id"] for r in rows]
