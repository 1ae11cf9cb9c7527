"""
continuity.py
Decide whether a record starting or ending is a real join/leave, or just a
renewal / plan change stored as a separate history row.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date

from models import CONTINUITY_TOLERANCE_DAYS, MembershipRecord, STATUS_ACTIVE, STATUS_WITHDRAWN
from utils import days_apart


class ContinuityResolver:
    """
    Built once per report over the whole snapshot. Records are indexed by
    user so each check only scans that user's own history.
    """

    def __init__(self, records: list[MembershipRecord], tolerance_days: int = CONTINUITY_TOLERANCE_DAYS):
        self.tolerance_days = tolerance_days
        self._by_user: dict[str, list[MembershipRecord]] = defaultdict(list)
        for r in records:
            if not r.malformed:
                self._by_user[r.user_id].append(r)
        for history in self._by_user.values():
            history.sort(key=lambda r: r.start_date)

    def _others(self, record: MembershipRecord):
        return (r for r in self._by_user.get(record.user_id, ()) if r is not record)

    def _has_withdrawal_between(self, user_id: str, a: date, b: date) -> bool:
        low, high = min(a, b), max(a, b)
        return any(
            r.status == STATUS_WITHDRAWN and low < r.start_date < high
            for r in self._by_user.get(user_id, ())
        )

    def is_withdrawal_continued(self, record: MembershipRecord, end_date: date) -> bool:
        """
        True when another active record of the same user starts within the
        tolerance of `end_date` and no withdrawn record starts strictly between them.
        """
        for nxt in self._others(record):
            if nxt.status != STATUS_ACTIVE:
                continue
            if days_apart(nxt.start_date, end_date) > self.tolerance_days:
                continue
            if self._has_withdrawal_between(record.user_id, end_date, nxt.start_date):
                continue
            return True
        return False

    def is_start_continuation(self, record: MembershipRecord, start_date: date) -> bool:
        """
        True when any other record of the same user ended within the tolerance
        of `start_date`. Open-ended records never explain a new start.
        """
        return any(
            prev.end_date is not None and days_apart(start_date, prev.end_date) <= self.tolerance_days
            for prev in self._others(record)
        )
