"""
models.py
Lightweight domain helpers (statuses, business constants, dataclasses).
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date

# Membership statuses as stored in membership_history.status
STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"
STATUS_WITHDRAWN = "withdrawn"
STATUSES = (STATUS_ACTIVE, STATUS_SUSPENDED, STATUS_WITHDRAWN)

# First month the gym was open; "all time" reports never start earlier
SERVICE_FLOOR_DATE = date(2023, 11, 1)

# A boundary within this many days of another record of the same user is a
# renewal / plan change, not churn followed by a fresh signup
CONTINUITY_TOLERANCE_DAYS = 32

UNKNOWN_MEMBER_NAME = "Unknown"

# Plans that are not a recurring membership (drop-ins, trials, fixed courses)
ONE_OFF_PLAN_MARKERS = (
    "drop-in",
    "trial",
    "counseling",
    "diet course",
    "session course",
)


@dataclass(frozen=True)
class MemberUser:
    full_name: str | None = None
    plan: str | None = None
    monthly_fee: float | None = None
    billing_start_month: date | None = None  # always the 1st of a month


@dataclass(frozen=True, eq=False)
class MembershipRecord:
    """
    One row of membership history. Compared by identity: two rows with the
    same values are still two different stints.
    """

    user_id: str
    start_date: date | None
    end_date: date | None  # None = open-ended
    status: str  # 'active', 'suspended' or 'withdrawn'
    store_id: str | None = None
    monthly_fee: float | None = None
    plan: str | None = None
    user: MemberUser = MemberUser()
    malformed: bool = False  # dates could not be parsed; matches no window

    @property
    def billing_start_month(self) -> date | None:
        return self.user.billing_start_month

    @property
    def full_name(self) -> str:
        return self.user.full_name or UNKNOWN_MEMBER_NAME

    @property
    def plan_label(self) -> str | None:
        return self.plan or self.user.plan

    @property
    def effective_fee(self) -> float:
        # history snapshot -> current user setting -> 0
        if self.monthly_fee is not None:
            return self.monthly_fee
        if self.user.monthly_fee is not None:
            return self.user.monthly_fee
        return 0


@dataclass(frozen=True)
class MonthWindow:
    start: date  # first day, inclusive
    end: date  # last day, inclusive

    def contains(self, d: date | None) -> bool:
        return d is not None and self.start <= d <= self.end


@dataclass(frozen=True)
class MemberEvent:
    user_id: str
    full_name: str
    plan: str | None
    date: date

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "plan": self.plan,
            "date": self.date.isoformat(),
        }
