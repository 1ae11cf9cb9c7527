"""
analytics.py
Monthly membership movement + estimated sales report.

Output shape (JSON-serializable):
    {
      "memberHistory": [{"month", "active", "suspended", "new", "withdrawn",
                         "newMembers", "withdrawnMembers", "suspendedMembers"}, ...],
      "salesHistory": [{"month", "amount"}, ...],
      "projectedSales": number,
    }
"""

from __future__ import annotations

import logging
import warnings
from datetime import date

import db
from classifier import classify_month
from continuity import ContinuityResolver
from errors import DataIntegrityWarning, UpstreamFetchError
from models import MembershipRecord, SERVICE_FLOOR_DATE
from periods import DEFAULT_PERIOD, month_range
from sales import estimate_month
from utils import month_key, month_window

logger = logging.getLogger(__name__)


def restrict_to_store(records: list[MembershipRecord], store_id: str | None) -> list[MembershipRecord]:
    """
    Keep only rows of `store_id` ("all" / empty keeps everything). Rows that
    get dropped here should already have been excluded by the store query.
    """
    if not store_id or store_id == "all":
        return list(records)

    kept = [r for r in records if r.store_id == store_id]
    if len(kept) != len(records):
        msg = (
            f"History store filter leak for store {store_id}: "
            f"filtered in-memory from {len(records)} to {len(kept)} rows"
        )
        logger.warning(msg)
        # reported, never escalated: the corrected rows are still usable
        with warnings.catch_warnings():
            warnings.simplefilter("always", DataIntegrityWarning)
            warnings.warn(msg, DataIntegrityWarning, stacklevel=2)
    return kept


def build_report(
    records: list[MembershipRecord],
    today: date,
    period: str = DEFAULT_PERIOD,
    store_id: str | None = "all",
    excluded_plans=(),
    floor: date = SERVICE_FLOOR_DATE,
) -> dict:
    records = restrict_to_store(records, store_id)
    months = month_range(period, today, floor)
    resolver = ContinuityResolver(records)

    member_history = []
    sales_history = []
    for m in months:
        window = month_window(m)
        key = month_key(m)

        c = classify_month(records, window, resolver, excluded_plans)
        member_history.append({
            "month": key,
            **c.counts,
            "newMembers": [e.to_dict() for e in c.new],
            "withdrawnMembers": [e.to_dict() for e in c.withdrawn],
            "suspendedMembers": [e.to_dict() for e in c.suspended],
        })
        sales_history.append({"month": key, "amount": estimate_month(records, window)})

    current_key = month_key(today)
    projected = next((s["amount"] for s in sales_history if s["month"] == current_key), 0)

    logger.debug(
        "Report store=%s period=%s: %d records, %d months", store_id, period, len(records), len(months)
    )
    return {
        "memberHistory": member_history,
        "salesHistory": sales_history,
        "projectedSales": projected,
    }


def load_snapshot(store_id: str | None, fetch=None) -> list[MembershipRecord]:
    """
    Fetch the history for `store_id` once and apply the in-memory store filter.
    Both the report and any per-month detail should be built from this list.
    A failed fetch raises UpstreamFetchError.
    """
    fetch = fetch or db.fetch_membership_history
    store_filter = store_id or "all"
    try:
        records = fetch(store_filter)
    except UpstreamFetchError:
        raise
    except Exception as exc:
        logger.error("Membership history fetch failed (store=%s): %s", store_filter, exc)
        raise UpstreamFetchError(f"could not fetch membership history: {exc}") from exc
    return restrict_to_store(records, store_filter)


def generate_report(
    store_id: str | None,
    today: date,
    period: str = DEFAULT_PERIOD,
    fetch=None,
    excluded_plans=(),
) -> dict:
    """
    Fetch the history snapshot for `store_id` and build the report from it.
    A failed fetch raises UpstreamFetchError; no partial report is returned.
    """
    records = load_snapshot(store_id, fetch)
    return build_report(records, today, period, store_id or "all", excluded_plans)
