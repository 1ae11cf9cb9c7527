"""
sales.py
Estimated monthly recurring revenue from membership history.
"""

from __future__ import annotations

from classifier import billing_started
from models import MembershipRecord, MonthWindow, STATUS_ACTIVE


def active_during_month(record: MembershipRecord, window: MonthWindow) -> bool:
    if record.malformed or record.status != STATUS_ACTIVE:
        return False
    if record.start_date > window.end:
        return False
    if record.end_date is not None and record.end_date < window.start:
        return False
    return billing_started(record, window)


def billable_records(records: list[MembershipRecord], window: MonthWindow) -> list[MembershipRecord]:
    """
    One record per user active during the month. Concurrent rows (same-day
    plan change) resolve to the one with the highest fee.
    """
    best: dict[str, MembershipRecord] = {}
    for r in records:
        if not active_during_month(r, window):
            continue
        kept = best.get(r.user_id)
        if kept is None or r.effective_fee > kept.effective_fee:
            best[r.user_id] = r
    return list(best.values())


def estimate_month(records: list[MembershipRecord], window: MonthWindow) -> float:
    return sum((r.effective_fee for r in billable_records(records, window) if r.effective_fee > 0), 0)


def sales_breakdown(records: list[MembershipRecord], window: MonthWindow) -> list[dict]:
    """
    Per-member revenue lines for one month, sorted by plan then name.
    """
    lines = [
        {
            "user_id": r.user_id,
            "full_name": r.full_name,
            "plan": r.plan_label or "-",
            "amount": r.effective_fee,
        }
        for r in billable_records(records, window)
        if r.effective_fee > 0
    ]
    lines.sort(key=lambda line: (line["plan"], line["full_name"]))
    return lines
