from __future__ import annotations

from ...common.datetime_utils import format_hhmm
from ...core.constants import AFTER_HOURS_END, AFTER_HOURS_START, EXCESSIVE_ENTRY_THRESHOLD
from ...core.enums import IssueKind, Severity
from ...sites import rules
from ..model import ValidationIssue
from .base import PASS, CheckOutcome, EntryCheck, EntryContext


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _warn(ctx: EntryContext, kind: IssueKind, severity: Severity, message: str, *, info: tuple = ()) -> CheckOutcome:
    issue = ValidationIssue(kind=kind, severity=severity, message=message, timestamp=ctx.candidate.timestamp)
    return CheckOutcome(warnings=(message,), info=info, issues=(issue,))


class ExcessiveEntriesCheck(EntryCheck):
    """More than three IN/OUT pairs in one day."""

    name = "excessive_entries"

    def run(self, ctx: EntryContext) -> CheckOutcome:
        count = len(ctx.entries)
        if count < EXCESSIVE_ENTRY_THRESHOLD:
            return PASS
        return _warn(
            ctx,
            IssueKind.EXCESSIVE_ENTRIES,
            Severity.HIGH,
            f"Excessive entries detected: {count} entries today (threshold: {EXCESSIVE_ENTRY_THRESHOLD}). "
            "This may indicate an anomaly",
            info=(f"This will be the {_ordinal(count + 1)} entry today",),
        )


class LateArrivalCheck(EntryCheck):
    name = "late_arrival"

    def run(self, ctx: EntryContext) -> CheckOutcome:
        ts = ctx.candidate.timestamp
        if not rules.is_late(ctx.policy, ts):
            return PASS
        expected = rules.expected_check_in(ctx.policy, ts.date())
        return _warn(
            ctx,
            IssueKind.LATE_ARRIVAL,
            Severity.MEDIUM,
            f"Employee checked in {rules.minutes_late(ctx.policy, ts)} minutes late "
            f"(Expected: {format_hhmm(expected)}, Actual: {format_hhmm(ts)})",
        )


class EarlyLeaveCheck(EntryCheck):
    name = "early_leave"

    def run(self, ctx: EntryContext) -> CheckOutcome:
        ts = ctx.candidate.timestamp
        if not rules.is_early_leave(ctx.policy, ts):
            return PASS
        expected = rules.expected_check_out(ctx.policy, ts.date())
        return _warn(
            ctx,
            IssueKind.EARLY_LEAVE,
            Severity.MEDIUM,
            f"Employee checked out {rules.minutes_early(ctx.policy, ts)} minutes early "
            f"(Expected: {format_hhmm(expected)}, Actual: {format_hhmm(ts)})",
        )


class WeekendCheck(EntryCheck):
    name = "weekend"

    def run(self, ctx: EntryContext) -> CheckOutcome:
        day = ctx.candidate.work_date
        if not rules.is_weekend(ctx.policy, day):
            return PASS
        return _warn(
            ctx, IssueKind.WEEKEND_MARKING, Severity.LOW, f"Attendance marked on weekend ({rules.day_name(day)})"
        )


class AfterHoursCheck(EntryCheck):
    name = "after_hours"

    def run(self, ctx: EntryContext) -> CheckOutcome:
        ts = ctx.candidate.timestamp
        if AFTER_HOURS_START <= ts.hour < AFTER_HOURS_END:
            return PASS
        return _warn(
            ctx, IssueKind.AFTER_HOURS, Severity.LOW, f"Attendance marked outside normal hours ({format_hhmm(ts)})"
        )
