from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Sequence, Set

from ...attendance.model import AttendanceDay
from ...common.datetime_utils import iter_dates
from ...core.constants import OVERTIME_RATE_MONTH_DAYS
from ...core.enums import AttendanceStatus
from ...leaves.model import LeaveApplication, is_paid_leave
from ...sites.model import SitePolicy
from .base import DayBuckets, PayrollCalculator, SalaryTotals

ZERO = Decimal("0.00")
HALF = Decimal("0.5")


def quantize(value) -> Decimal:
    value = value or ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: per-day rate from the month's working days, earnings capped at base salary."""

    def summarize(
        self,
        *,
        days: Sequence[AttendanceDay],
        leaves: Sequence[LeaveApplication],
        linked_leaves: Mapping[int, LeaveApplication],
        start: date,
        end: date,
        policy: SitePolicy,
    ) -> DayBuckets:
        counts = dict(present=0, absent=0, half_day=0, paid_leave=0, unpaid_leave=0, holiday=0, late=0, early_leave=0)
        total_hours = 0.0
        overtime_hours = 0.0
        seen: Set[date] = set()

        for day in days:
            if not start <= day.work_date <= end:
                continue
            seen.add(day.work_date)
            total_hours += day.total_hours
            if policy.overtime_enabled and day.total_hours > policy.overtime_threshold:
                overtime_hours += day.total_hours - policy.overtime_threshold

            status = day.status
            if status == AttendanceStatus.PRESENT:
                counts["present"] += 1
                counts["late"] += int(day.is_late)
                counts["early_leave"] += int(day.is_early_leave)
            elif status == AttendanceStatus.LATE:
                counts["present"] += 1
                counts["late"] += 1
            elif status == AttendanceStatus.EARLY_LEAVE:
                counts["present"] += 1
                counts["early_leave"] += 1
            elif status == AttendanceStatus.HALF_DAY:
                counts["half_day"] += 1
            elif status == AttendanceStatus.HOLIDAY:
                counts["holiday"] += 1
            elif status == AttendanceStatus.ON_LEAVE:
                leave = linked_leaves.get(day.leave_application_id) if day.leave_application_id else None
                counts["paid_leave" if is_paid_leave(leave) else "unpaid_leave"] += 1
            else:
                counts["absent"] += 1

        # leave days with no attendance row of their own
        for leave in leaves:
            for day in iter_dates(max(leave.from_date, start), min(leave.last_covered_date, end)):
                if day in seen:
                    continue
                seen.add(day)
                counts["paid_leave" if is_paid_leave(leave) else "unpaid_leave"] += 1

        return DayBuckets(total_hours=round(total_hours, 2), overtime_hours=round(overtime_hours, 2), **counts)

    def totals(
        self,
        *,
        base_salary: Decimal,
        month_working_days: int,
        buckets: DayBuckets,
        policy: SitePolicy,
        other_bonuses: Decimal,
        other_deductions: Decimal,
    ) -> SalaryTotals:
        base_salary = Decimal(base_salary)
        per_day = base_salary / Decimal(month_working_days) if month_working_days > 0 else ZERO

        earned = per_day * (buckets.present + buckets.paid_leave + buckets.holiday) + per_day / 2 * buckets.half_day
        earned = min(earned, base_salary)

        absent_deduction = per_day * buckets.absent
        unpaid_deduction = per_day * buckets.unpaid_leave
        total_deductions = absent_deduction + unpaid_deduction + other_deductions

        overtime_pay = ZERO
        if policy.overtime_enabled and buckets.overtime_hours > 0 and policy.working_hours_per_day > 0:
            hourly = base_salary / (Decimal(str(policy.working_hours_per_day)) * OVERTIME_RATE_MONTH_DAYS)
            overtime_pay = hourly * Decimal(str(buckets.overtime_hours)) * Decimal(str(policy.overtime_rate))
        overtime_pay = quantize(overtime_pay)
        total_bonuses = other_bonuses + overtime_pay

        net = max(ZERO, earned - total_deductions + total_bonuses)
        working_days = Decimal(buckets.present + buckets.paid_leave + buckets.holiday) + HALF * buckets.half_day

        return SalaryTotals(
            per_day_amount=quantize(per_day),
            earned_salary=quantize(earned),
            absent_deduction=quantize(absent_deduction),
            unpaid_leave_deduction=quantize(unpaid_deduction),
            total_deductions=quantize(total_deductions),
            overtime_pay=overtime_pay,
            total_bonuses=quantize(total_bonuses),
            gross_salary=quantize(earned + total_bonuses),
            net_salary=quantize(net),
            total_working_days=working_days.quantize(Decimal("0.1")),
        )
