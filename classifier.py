"""
classifier.py
Per-month split of membership history into active / new / withdrawn / suspended members.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from continuity import ContinuityResolver
from models import MemberEvent, MembershipRecord, MonthWindow, STATUS_ACTIVE, STATUS_SUSPENDED


@dataclass
class MonthClassification:
    window: MonthWindow
    active: list[MemberEvent] = field(default_factory=list)  # one entry per user
    new: list[MemberEvent] = field(default_factory=list)
    withdrawn: list[MemberEvent] = field(default_factory=list)
    suspended: list[MemberEvent] = field(default_factory=list)

    @property
    def counts(self) -> dict:
        return {
            "active": len(self.active),
            "suspended": len(self.suspended),
            "new": len(self.new),
            "withdrawn": len(self.withdrawn),
        }


def is_recurring(record: MembershipRecord, excluded_plans=()) -> bool:
    plan = (record.plan_label or "").lower()
    return not any(marker.lower() in plan for marker in excluded_plans)


def billing_started(record: MembershipRecord, window: MonthWindow) -> bool:
    billing_start = record.billing_start_month
    return billing_start is None or window.start >= billing_start


def open_at_month_end(
    record: MembershipRecord, window: MonthWindow, resolver: ContinuityResolver | None = None
) -> bool:
    """
    Started by the last day of the month and still running after it. A stint
    ending on the last day counts when it is renewed (the membership goes on).
    """
    if record.malformed or record.start_date > window.end:
        return False
    end = record.end_date
    if end is None or end > window.end:
        return True
    return end == window.end and resolver is not None and resolver.is_withdrawal_continued(record, end)


def _event(record: MembershipRecord, when) -> MemberEvent:
    return MemberEvent(
        user_id=record.user_id,
        full_name=record.full_name,
        plan=record.plan_label,
        date=when,
    )


def classify_month(
    records: list[MembershipRecord],
    window: MonthWindow,
    resolver: ContinuityResolver,
    excluded_plans=(),
) -> MonthClassification:
    result = MonthClassification(window=window)
    seen_active: set[str] = set()

    for r in records:
        if r.malformed or r.status != STATUS_ACTIVE or not is_recurring(r, excluded_plans):
            continue

        if open_at_month_end(r, window, resolver) and billing_started(r, window) and r.user_id not in seen_active:
            seen_active.add(r.user_id)
            result.active.append(_event(r, r.start_date))

        if window.contains(r.end_date) and not resolver.is_withdrawal_continued(r, r.end_date):
            result.withdrawn.append(_event(r, r.end_date))

        if window.contains(r.start_date) and not resolver.is_start_continuation(r, r.start_date):
            result.new.append(_event(r, r.start_date))

    # A suspension followed by a withdrawal in the same month is reported as the withdrawal
    withdrawn_users = {e.user_id for e in result.withdrawn}
    for r in records:
        if r.status != STATUS_SUSPENDED or not open_at_month_end(r, window, resolver):
            continue
        if r.user_id in withdrawn_users:
            continue
        result.suspended.append(_event(r, r.start_date))

    return result
