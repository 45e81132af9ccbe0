"""
Smart Recommendation Engine & Date Window Selector

Pure date/mileage derivations used by the schedule screen.
"""

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional


# Shop interval settings
DEFAULT_MONTHS = 6
DEFAULT_MILES = 6000
MIN_MONTHS = 3
MAX_MONTHS = 12
MIN_MILES = 3000
MAX_MILES = 15000
MILE_STEP = 1000

WINDOW_DAYS = 5  # Monday through Friday


@dataclass(frozen=True)
class Recommendation:
    """Suggested next visit"""
    date: date
    mileage: Optional[int]


def month_options() -> List[int]:
    return list(range(MIN_MONTHS, MAX_MONTHS + 1))


def mile_options() -> List[int]:
    return list(range(MIN_MILES, MAX_MILES + 1, MILE_STEP))


def is_valid_month_interval(months) -> bool:
    return isinstance(months, int) and not isinstance(months, bool) and MIN_MONTHS <= months <= MAX_MONTHS


def is_valid_mile_interval(miles) -> bool:
    return (
        isinstance(miles, int)
        and not isinstance(miles, bool)
        and MIN_MILES <= miles <= MAX_MILES
        and (miles - MIN_MILES) % MILE_STEP == 0
    )


def miles_for_month_interval(months: int) -> int:
    """Mile interval that tracks a month interval (1,000 miles per month)"""
    return min(MAX_MILES, max(MIN_MILES, months * 1000))


def add_months(d: date, months: int) -> date:
    """Calendar month arithmetic; the day is clamped to the target month's length"""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def is_finite_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def recommend(
    month_interval: int,
    mile_interval: int,
    current_mileage: Optional[float],
    today: date
) -> Recommendation:
    """
    Recommend the next visit.

    Date is today plus the month interval. Mileage is the current mileage
    plus the mile interval, or None when the RO has no usable mileage.
    """
    mileage = None
    if is_finite_number(current_mileage):
        mileage = int(current_mileage) + mile_interval
    return Recommendation(date=add_months(today, month_interval), mileage=mileage)


def five_day_window(base: date) -> List[date]:
    """Monday..Friday of the week containing base (weekends anchor to that week's Monday)"""
    if isinstance(base, datetime):
        base = base.date()
    days_since_monday = base.weekday()  # Monday == 0, Sunday == 6
    monday = base - timedelta(days=days_since_monday)
    return [monday + timedelta(days=offset) for offset in range(WINDOW_DAYS)]


def date_key(d: date) -> str:
    """YYYY-MM-DD key used for appointment counts"""
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()


def week_key(shop_id, window: List[date]) -> str:
    """Fingerprint of (shop, window start, window end)"""
    return f"{shop_id}:{date_key(window[0])}:{date_key(window[-1])}"


def format_miles(miles) -> str:
    return f"{int(miles):,}"
