from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Sequence

from ...attendance.model import AttendanceDay
from ...leaves.model import LeaveApplication
from ...sites.model import SitePolicy


@dataclass(frozen=True)
class DayBuckets:
    """Attendance of a payable window aggregated into day counts."""

    present: int = 0
    absent: int = 0
    half_day: int = 0
    paid_leave: int = 0
    unpaid_leave: int = 0
    holiday: int = 0
    late: int = 0
    early_leave: int = 0
    total_hours: float = 0.0
    overtime_hours: float = 0.0


@dataclass(frozen=True)
class SalaryTotals:
    per_day_amount: Decimal
    earned_salary: Decimal
    absent_deduction: Decimal
    unpaid_leave_deduction: Decimal
    total_deductions: Decimal
    overtime_pay: Decimal
    total_bonuses: Decimal
    gross_salary: Decimal
    net_salary: Decimal
    total_working_days: Decimal


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
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
        raise NotImplementedError

    @abstractmethod
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
        raise NotImplementedError
