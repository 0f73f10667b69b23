from __future__ import annotations

from dataclasses import replace

from ..core.enums import AttendanceStatus
from ..sites import rules
from ..sites.model import SitePolicy
from .model import AttendanceDay, derive_times


def classify_day(
    policy: SitePolicy,
    *,
    checked_in: bool,
    total_hours: float,
    is_late: bool,
    is_early_leave: bool,
    has_approved_leave: bool,
    closing: bool = False,
) -> AttendanceStatus:
    """Return the single terminal status of a day.

    ``closing`` is set by the end-of-day job: an open day (checked in, never
    checked out) counts as present while the day is live and as half-day once
    the day is closed.
    """

    if has_approved_leave:
        return AttendanceStatus.ON_LEAVE
    if not checked_in:
        return AttendanceStatus.ABSENT
    if total_hours <= 0:
        return AttendanceStatus.HALF_DAY if closing else AttendanceStatus.PRESENT
    if total_hours < policy.half_day_threshold:
        return AttendanceStatus.HALF_DAY
    if is_early_leave and total_hours < policy.working_hours_per_day:
        return AttendanceStatus.EARLY_LEAVE
    if is_late:
        return AttendanceStatus.LATE
    return AttendanceStatus.PRESENT


def rederive(day: AttendanceDay, policy: SitePolicy, *, closing: bool = False) -> AttendanceDay:
    """Recompute derived times, flags and status of a day from its entries."""

    check_in, check_out, hours = derive_times(day.entries)
    is_late = bool(check_in and rules.is_late(policy, check_in))
    is_early = bool(check_out and rules.is_early_leave(policy, check_out))
    status = classify_day(
        policy,
        checked_in=check_in is not None,
        total_hours=hours,
        is_late=is_late,
        is_early_leave=is_early,
        has_approved_leave=day.leave_application_id is not None,
        closing=closing,
    )
    return replace(
        day,
        check_in_time=check_in,
        check_out_time=check_out,
        total_hours=hours,
        is_late=is_late,
        is_early_leave=is_early,
        status=status,
    )
