from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Tuple


@dataclass(frozen=True)
class Holiday:
    date: date
    name: str
    is_paid: bool = True


@dataclass(frozen=True)
class RunSummary:
    """Aggregate outcome of the last auto-close run for a site."""

    run_date: date
    ran_at: datetime
    processed: int = 0
    present: int = 0
    absent: int = 0
    on_leave: int = 0
    already_marked: int = 0
    errors: int = 0


@dataclass(frozen=True)
class SitePolicy:
    """Per-site schedule and thresholds.

    Immutable value object; the helpers that interpret it live in
    ``sites.rules`` as free functions.
    """

    site_id: int
    working_hours_per_day: float = 8.0
    half_day_threshold: float = 4.0
    check_in_time: time = time(9, 0)
    check_out_time: time = time(18, 0)
    late_threshold_minutes: int = 15
    early_leave_threshold_minutes: int = 30
    # Python weekday numbers, Monday=0 .. Sunday=6
    weekend_days: Tuple[int, ...] = (6,)
    holidays: Tuple[Holiday, ...] = ()
    overtime_enabled: bool = False
    overtime_threshold: float = 8.0
    overtime_rate: float = 1.5
    auto_close_enabled: bool = True
    auto_close_time: time = time(23, 59)
    last_run: Optional[RunSummary] = field(default=None, compare=False)


def default_policy(site_id: int) -> SitePolicy:
    return SitePolicy(site_id=int(site_id))
