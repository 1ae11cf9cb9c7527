"""
records.py
Adapter from stored history rows to MembershipRecord.

Rows come from sqlite (flat join columns) or from exported JSON where the
joined user is either an object or a one-element list. Both shapes are
resolved here so nothing downstream has to look at them.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
import pandas as pd

from errors import MalformedRecordError
from models import MemberUser, MembershipRecord

logger = logging.getLogger(__name__)


def parse_date(value) -> date | None:
    """
    Normalize a stored date to `date`.
    - None / "" / NaN / NaT -> None (open-ended)
    - date / datetime (incl. pandas Timestamp) -> date
    - "YYYY-MM-DD" or a full ISO datetime string -> date
    Anything else raises MalformedRecordError.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if isinstance(value, datetime):
        if pd.isna(value):
            return None
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise MalformedRecordError(f"unparsable date: {value!r}") from exc
    raise MalformedRecordError(f"unsupported date value: {value!r}")


def _joined_user(row: dict) -> MemberUser:
    joined = row.get("users")
    if isinstance(joined, (list, tuple)):
        joined = joined[0] if joined else None
    if isinstance(joined, dict):
        full_name = joined.get("full_name")
        plan = joined.get("plan")
        fee = joined.get("monthly_fee")
        billing = joined.get("billing_start_month", row.get("billing_start_month"))
    else:
        full_name = row.get("user_full_name", row.get("full_name"))
        plan = row.get("user_plan")
        fee = row.get("user_monthly_fee")
        billing = row.get("billing_start_month")

    billing_start = None
    try:
        billing_start = parse_date(billing)
    except MalformedRecordError as exc:
        logger.warning("Ignoring billing start month for user %s: %s", row.get("user_id"), exc)
    if billing_start is not None:
        billing_start = billing_start.replace(day=1)

    return MemberUser(
        full_name=full_name,
        plan=plan,
        monthly_fee=fee,
        billing_start_month=billing_start,
    )


def record_from_row(row) -> MembershipRecord:
    """
    Build a MembershipRecord from a history row (sqlite Row or plain dict).
    A row whose dates cannot be parsed is kept but flagged `malformed`.
    """
    row = dict(row)
    user = _joined_user(row)
    malformed = False
    try:
        start = parse_date(row.get("start_date"))
        end = parse_date(row.get("end_date"))
        if start is None:
            raise MalformedRecordError("missing start_date")
    except MalformedRecordError as exc:
        logger.warning("Skipping dates of history row for user %s: %s", row.get("user_id"), exc)
        start, end, malformed = None, None, True

    return MembershipRecord(
        user_id=str(row["user_id"]),
        start_date=start,
        end_date=end,
        status=row.get("status") or "",
        store_id=row.get("store_id"),
        monthly_fee=row.get("monthly_fee"),
        plan=row.get("plan"),
        user=user,
        malformed=malformed,
    )


def records_from_rows(rows) -> list[MembershipRecord]:
    return [record_from_row(r) for r in rows]
