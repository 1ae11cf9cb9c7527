"""
periods.py
Turn a report period selector into the list of months to report on.
"""

from __future__ import annotations

import logging
from datetime import MAXYEAR, MINYEAR, date

from models import SERVICE_FLOOR_DATE
from utils import add_months, start_of_month

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = "1y"


def period_bounds(period: str | None, today: date, floor: date = SERVICE_FLOOR_DATE) -> tuple[date, date]:
    """
    First and last month (both month starts, inclusive) for a period:
    - "all":  service floor -> current month
    - "YYYY": Jan -> Dec of that year (future years included, for a stable axis)
    - "3m":   current month and the 2 before it
    - "1y":   current month and the 11 before it (default)
    The start is never earlier than the service floor.
    """
    current = start_of_month(today)
    floor = start_of_month(floor)
    period = (period or DEFAULT_PERIOD).strip()

    if period == "all":
        start, end = floor, current
    elif len(period) == 4 and period.isdigit() and MINYEAR <= int(period) < MAXYEAR:
        year = int(period)
        start, end = date(year, 1, 1), date(year, 12, 1)
    elif period == "3m":
        start, end = add_months(current, -2), current
    else:
        if period != DEFAULT_PERIOD:
            logger.debug("Unknown period %r, using %s", period, DEFAULT_PERIOD)
        start, end = add_months(current, -11), current

    if start < floor:
        start = floor
    return start, end


def month_range(period: str | None, today: date, floor: date = SERVICE_FLOOR_DATE) -> list[date]:
    """Ascending month starts covered by `period`; empty when the period ends before the floor."""
    start, end = period_bounds(period, today, floor)
    months = []
    cursor = start
    while cursor <= end:
        months.append(cursor)
        if cursor == end:
            break
        cursor = add_months(cursor, 1)
    logger.debug("Period %s -> %d months from %s", period, len(months), start)
    return months
