from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import iter_dates, month_bounds
from .model import Holiday, SitePolicy

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def get_holiday(policy: SitePolicy, day: date) -> Optional[Holiday]:
    for holiday in policy.holidays:
        if holiday.date == day:
            return holiday
    return None


def is_holiday(policy: SitePolicy, day: date) -> bool:
    return get_holiday(policy, day) is not None


def is_weekend(policy: SitePolicy, day: date) -> bool:
    return day.weekday() in policy.weekend_days


def day_name(day: date) -> str:
    return DAY_NAMES[day.weekday()]


def expected_check_in(policy: SitePolicy, day: date) -> datetime:
    """Latest on-time arrival: check-in time plus the late grace."""
    return datetime.combine(day, policy.check_in_time) + timedelta(minutes=policy.late_threshold_minutes)


def expected_check_out(policy: SitePolicy, day: date) -> datetime:
    """Earliest acceptable departure: check-out time minus the early-leave grace."""
    return datetime.combine(day, policy.check_out_time) - timedelta(minutes=policy.early_leave_threshold_minutes)


def is_late(policy: SitePolicy, timestamp: datetime) -> bool:
    return timestamp > expected_check_in(policy, timestamp.date())


def is_early_leave(policy: SitePolicy, timestamp: datetime) -> bool:
    return timestamp < expected_check_out(policy, timestamp.date())


def minutes_late(policy: SitePolicy, timestamp: datetime) -> int:
    delta = timestamp - expected_check_in(policy, timestamp.date())
    return max(int(delta.total_seconds() // 60), 0)


def minutes_early(policy: SitePolicy, timestamp: datetime) -> int:
    delta = expected_check_out(policy, timestamp.date()) - timestamp
    return max(int(delta.total_seconds() // 60), 0)


def month_working_days(policy: SitePolicy, year: int, month: int) -> int:
    """Calendar days of the month that are neither weekend nor holiday."""
    start, end = month_bounds(year, month)
    return sum(1 for day in iter_dates(start, end) if not is_weekend(policy, day) and not is_holiday(policy, day))
