from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional, Tuple

from ..core.enums import PaymentMode
from ..core.exceptions import ConflictError

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Adjustment:
    """A manually recorded bonus or deduction line."""

    title: str
    amount: Decimal
    description: str = ""
    added_by: Optional[int] = None
    added_at: Optional[datetime] = None


@dataclass(frozen=True)
class EditRecord:
    edited_by: int
    edited_at: datetime
    reason: str
    # field name -> {"before": ..., "after": ...}
    changes: Dict[str, Dict[str, Any]]


@dataclass(frozen=True)
class SalaryRecord:
    worker_id: int
    site_id: int
    month: str
    year: int
    working_start_date: date
    working_end_date: date
    month_working_days: int
    base_salary: Decimal
    calculated_at: datetime
    is_prorated: bool = False
    prorated_reason: Optional[str] = None
    total_working_days: Decimal = ZERO
    present_days: int = 0
    absent_days: int = 0
    half_days: int = 0
    paid_leave_days: int = 0
    unpaid_leave_days: int = 0
    holiday_days: int = 0
    late_days: int = 0
    early_leave_days: int = 0
    total_hours_worked: float = 0.0
    overtime_hours: float = 0.0
    overtime_pay: Decimal = ZERO
    per_day_amount: Decimal = ZERO
    earned_salary: Decimal = ZERO
    absent_deduction: Decimal = ZERO
    unpaid_leave_deduction: Decimal = ZERO
    bonuses: Tuple[Adjustment, ...] = ()
    deductions: Tuple[Adjustment, ...] = ()
    total_bonuses: Decimal = ZERO
    total_deductions: Decimal = ZERO
    gross_salary: Decimal = ZERO
    net_salary: Decimal = ZERO
    is_paid: bool = False
    paid_date: Optional[datetime] = None
    paid_by: Optional[int] = None
    payment_mode: Optional[PaymentMode] = None
    transaction_id: str = ""
    payment_proof: str = ""
    ledger_entry_id: Optional[str] = None
    is_added_to_ledger: bool = False
    notes: str = ""
    calculated_by: Optional[int] = None
    edit_history: Tuple[EditRecord, ...] = ()
    last_edited_at: Optional[datetime] = None
    last_edited_by: Optional[int] = None
    salary_id: Optional[int] = None
    version: int = 0

    @property
    def other_bonuses(self) -> Decimal:
        return sum((b.amount for b in self.bonuses), ZERO)

    @property
    def other_deductions(self) -> Decimal:
        return sum((d.amount for d in self.deductions), ZERO)

    def to_document(self) -> Dict[str, Any]:
        """Record layout read by reporting tools."""

        def money(value: Decimal) -> float:
            return float(value)

        def adjustment(a: Adjustment) -> Dict[str, Any]:
            return {
                "title": a.title,
                "amount": money(a.amount),
                "description": a.description,
                "addedBy": a.added_by,
                "addedAt": a.added_at.isoformat() if a.added_at else None,
            }

        return {
            "id": self.salary_id,
            "employee": self.worker_id,
            "site": self.site_id,
            "month": self.month,
            "year": self.year,
            "isProrated": self.is_prorated,
            "proratedReason": self.prorated_reason,
            "workingStartDate": self.working_start_date.isoformat(),
            "workingEndDate": self.working_end_date.isoformat(),
            "monthWorkingDays": self.month_working_days,
            "baseSalary": money(self.base_salary),
            "totalWorkingDays": money(self.total_working_days),
            "presentDays": self.present_days,
            "absentDays": self.absent_days,
            "halfDays": self.half_days,
            "paidLeaveDays": self.paid_leave_days,
            "unpaidLeaveDays": self.unpaid_leave_days,
            "holidayDays": self.holiday_days,
            "lateDays": self.late_days,
            "earlyLeaveDays": self.early_leave_days,
            "totalHoursWorked": self.total_hours_worked,
            "overtimeHours": self.overtime_hours,
            "overtimePay": money(self.overtime_pay),
            "perDayAmount": money(self.per_day_amount),
            "earnedSalary": money(self.earned_salary),
            "absentDeduction": money(self.absent_deduction),
            "unpaidLeaveDeduction": money(self.unpaid_leave_deduction),
            "bonuses": [adjustment(b) for b in self.bonuses],
            "deductions": [adjustment(d) for d in self.deductions],
            "totalBonuses": money(self.total_bonuses),
            "totalDeductions": money(self.total_deductions),
            "grossSalary": money(self.gross_salary),
            "netSalary": money(self.net_salary),
            "isPaid": self.is_paid,
            "paidDate": self.paid_date.isoformat() if self.paid_date else None,
            "paidBy": self.paid_by,
            "paymentMode": self.payment_mode.value if self.payment_mode else None,
            "transactionId": self.transaction_id,
            "paymentProof": self.payment_proof,
            "expenseRecordId": self.ledger_entry_id,
            "isAddedToExpense": self.is_added_to_ledger,
            "notes": self.notes,
            "calculatedAt": self.calculated_at.isoformat(),
            "calculatedBy": self.calculated_by,
            "editHistory": [
                {
                    "editedBy": e.edited_by,
                    "editedAt": e.edited_at.isoformat(),
                    "reason": e.reason,
                    "changes": e.changes,
                }
                for e in self.edit_history
            ],
            "lastEditedAt": self.last_edited_at.isoformat() if self.last_edited_at else None,
            "lastEditedBy": self.last_edited_by,
        }


# Fields a paid record may still change: payment tracking, ledger linkage, audit.
PAYMENT_FIELDS: FrozenSet[str] = frozenset(
    {
        "is_paid",
        "paid_date",
        "paid_by",
        "payment_mode",
        "transaction_id",
        "payment_proof",
        "notes",
        "ledger_entry_id",
        "is_added_to_ledger",
        "edit_history",
        "last_edited_at",
        "last_edited_by",
        "version",
    }
)

# Fields an unpaid record may change through the audited edit path.
EDITABLE_FIELDS: FrozenSet[str] = frozenset(
    {
        "base_salary",
        "present_days",
        "absent_days",
        "half_days",
        "paid_leave_days",
        "unpaid_leave_days",
        "holiday_days",
        "late_days",
        "early_leave_days",
        "overtime_hours",
        "notes",
    }
)


def changed_fields(before: SalaryRecord, after: SalaryRecord) -> Dict[str, Dict[str, Any]]:
    return {
        f.name: {"before": getattr(before, f.name), "after": getattr(after, f.name)}
        for f in fields(SalaryRecord)
        if getattr(before, f.name) != getattr(after, f.name)
    }


def ensure_mutation_allowed(before: SalaryRecord, after: SalaryRecord) -> None:
    """Reject any change to a paid record outside the payment fields."""

    if not before.is_paid:
        return
    kept = after.edit_history[: len(before.edit_history)]
    if kept != before.edit_history:
        raise ConflictError("Salary record is paid; its edit history can only be appended to")
    blocked = sorted(set(changed_fields(before, after)) - PAYMENT_FIELDS)
    if blocked:
        raise ConflictError(f"Salary record is paid; cannot modify: {', '.join(blocked)}")
