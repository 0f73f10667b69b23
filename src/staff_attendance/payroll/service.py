from __future__ import annotations

import logging
from dataclasses import asdict, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds, month_key, now_local
from ..common.locks import KeyedLock
from ..common.results import BatchResult, PerItemFailure
from ..common.validators import require_amount, require_non_empty
from ..core.enums import AttendanceStatus, PaymentMode
from ..core.exceptions import (
    AlreadyPaidError,
    ConflictError,
    DomainError,
    NoDataError,
    NotFoundError,
    NotWorkingThisMonthError,
    ValidationError,
)
from ..leaves.model import LeaveApplication
from ..leaves.repository import LeaveRepository
from ..sites import rules
from ..sites.repository import SitePolicyRepository
from ..sites.service import load_site_policy
from ..workers.model import Worker
from ..workers.repository import WorkerRepository
from .calculator.base import DayBuckets, PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import EDITABLE_FIELDS, Adjustment, EditRecord, SalaryRecord, ensure_mutation_allowed
from .repository import SalaryRepository

logger = logging.getLogger(__name__)

# DayBuckets field -> SalaryRecord field
_BUCKET_FIELDS = {
    "present": "present_days",
    "absent": "absent_days",
    "half_day": "half_days",
    "paid_leave": "paid_leave_days",
    "unpaid_leave": "unpaid_leave_days",
    "holiday": "holiday_days",
    "late": "late_days",
    "early_leave": "early_leave_days",
    "total_hours": "total_hours_worked",
    "overtime_hours": "overtime_hours",
}


def _plain(value: Any) -> Any:
    """JSON-friendly form of a record value for the edit history."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _coerce_edit(name: str, value: Any) -> Any:
    if name == "base_salary":
        return require_amount(value, "Base salary")
    if name == "notes":
        return "" if value is None else str(value)
    if name == "overtime_hours":
        try:
            hours = float(value)
        except (TypeError, ValueError):
            raise ValidationError("Overtime hours must be a number")
        if hours < 0:
            raise ValidationError("Overtime hours must not be negative")
        return round(hours, 2)
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a whole number")
    if days < 0:
        raise ValidationError(f"{name} must not be negative")
    return days


class PayrollService:
    """Monthly salary derivation from attendance and leave.

    Calculation for one (worker, month) is serialized in-process by a keyed
    lock; the repository's version check catches writers in other processes.
    """

    def __init__(
        self,
        salaries: SalaryRepository,
        workers: WorkerRepository,
        attendance: AttendanceRepository,
        leaves: LeaveRepository,
        policies: SitePolicyRepository,
        *,
        calculator: Optional[PayrollCalculator] = None,
        clock: Callable[[], datetime] = now_local,
        locks: Optional[KeyedLock] = None,
    ):
        self._salaries = salaries
        self._workers = workers
        self._attendance = attendance
        self._leaves = leaves
        self._policies = policies
        self._calculator = calculator or StandardPayrollCalculator()
        self._clock = clock
        self._locks = locks or KeyedLock()

    # ---- lookups ----

    def _get(self, salary_id: int) -> SalaryRecord:
        record = self._salaries.get_by_id(int(salary_id))
        if not record:
            raise NotFoundError("Salary record not found")
        return record

    def _get_worker(self, worker_id: int) -> Worker:
        worker = self._workers.get_by_id(int(worker_id))
        if not worker:
            raise NotFoundError(f"Worker {worker_id} not found")
        return worker

    def _save(self, before: Optional[SalaryRecord], after: SalaryRecord) -> SalaryRecord:
        if before is None:
            return self._salaries.save(after, expected_version=None)
        ensure_mutation_allowed(before, after)
        return self._salaries.save(after, expected_version=before.version)

    def _payable_window(self, worker: Worker, year: int, month: int) -> Tuple[date, date, Optional[str]]:
        month_start, month_end = month_bounds(year, month)
        start = max(month_start, worker.joining_date)
        end = min(month_end, self._clock().date())
        reasons = []
        if worker.joining_date > month_start:
            reasons.append(f"Joined on {worker.joining_date.isoformat()}")
        if worker.exit_date is not None and worker.exit_date < month_end:
            end = min(end, worker.exit_date)
            reasons.append(f"Left on {worker.exit_date.isoformat()}")
        if end < start:
            raise NotWorkingThisMonthError("Employee was not working in this month")
        return start, end, ", ".join(reasons) or None

    def _with_totals(self, record: SalaryRecord) -> SalaryRecord:
        """Re-derive money fields from the record's own day buckets."""

        policy = load_site_policy(self._policies, record.site_id)
        buckets = DayBuckets(**{bucket: getattr(record, name) for bucket, name in _BUCKET_FIELDS.items()})
        totals = self._calculator.totals(
            base_salary=record.base_salary,
            month_working_days=record.month_working_days,
            buckets=buckets,
            policy=policy,
            other_bonuses=record.other_bonuses,
            other_deductions=record.other_deductions,
        )
        return replace(record, **asdict(totals))

    # ---- calculation ----

    def calculate_monthly_salary(
        self, worker_id: int, month: int, year: int, *, calculated_by: Optional[int] = None
    ) -> SalaryRecord:
        worker = self._get_worker(worker_id)
        key = month_key(year, month)

        existing = self._salaries.get_for_worker_and_month(worker.worker_id, key)
        if existing is not None and existing.is_paid:
            raise AlreadyPaidError("Salary already paid for this month. Cannot recalculate.")

        with self._locks.hold((worker.worker_id, key)):
            existing = self._salaries.get_for_worker_and_month(worker.worker_id, key)
            if existing is not None and existing.is_paid:
                raise AlreadyPaidError("Salary already paid for this month. Cannot recalculate.")

            start, end, prorated_reason = self._payable_window(worker, int(year), int(month))
            policy = load_site_policy(self._policies, worker.site_id)

            days = self._attendance.list_for_worker_between(worker.worker_id, start, end)
            leaves = self._leaves.list_approved_for_worker_between(worker_id=worker.worker_id, start=start, end=end)
            if not days and not leaves:
                raise NoDataError(
                    "No attendance records found. Cannot calculate salary without attendance data."
                )

            buckets = self._calculator.summarize(
                days=days,
                leaves=leaves,
                linked_leaves=self._linked_leaves(days),
                start=start,
                end=end,
                policy=policy,
            )
            computed = dict(
                worker_id=worker.worker_id,
                site_id=worker.site_id,
                month=key,
                year=int(year),
                working_start_date=start,
                working_end_date=end,
                month_working_days=rules.month_working_days(policy, int(year), int(month)),
                base_salary=Decimal(worker.base_salary),
                is_prorated=prorated_reason is not None,
                prorated_reason=prorated_reason,
                calculated_at=self._clock(),
                calculated_by=calculated_by,
                **{name: getattr(buckets, bucket) for bucket, name in _BUCKET_FIELDS.items()},
            )
            # manual adjustments, audit trail and payment linkage survive recalculation
            record = replace(existing, **computed) if existing else SalaryRecord(**computed)
            saved = self._save(existing, self._with_totals(record))

        logger.info(
            "Salary %s for worker %s: %s working days, net %s",
            key,
            worker.worker_id,
            saved.total_working_days,
            saved.net_salary,
        )
        return saved

    def _linked_leaves(self, days) -> Mapping[int, LeaveApplication]:
        linked: Dict[int, LeaveApplication] = {}
        for day in days:
            leave_id = day.leave_application_id
            if day.status != AttendanceStatus.ON_LEAVE or not leave_id or leave_id in linked:
                continue
            leave = self._leaves.get_by_id(int(leave_id))
            if leave is not None:
                linked[int(leave_id)] = leave
        return linked

    def calculate_bulk_salary(
        self, site_id: int, month: int, year: int, *, calculated_by: Optional[int] = None
    ) -> BatchResult:
        # an unreadable worker list fails the whole run
        workers = list(self._workers.list_active_for_site(int(site_id)))
        result = BatchResult(total=len(workers))
        for worker in workers:
            try:
                result.succeeded.append(
                    self.calculate_monthly_salary(worker.worker_id, month, year, calculated_by=calculated_by)
                )
            except DomainError as exc:
                logger.warning("Salary for worker %s skipped: %s", worker.worker_id, exc)
                result.errors.append(PerItemFailure(worker.worker_id, str(exc)))
            except Exception as exc:
                logger.exception("Salary calculation failed for worker %s", worker.worker_id)
                result.errors.append(PerItemFailure(worker.worker_id, str(exc)))
        logger.info(
            "Bulk salary %s for site %s: %d of %d calculated",
            month_key(year, month),
            site_id,
            len(result.succeeded),
            result.total,
        )
        return result

    def recalculate_salary(self, salary_id: int, *, calculated_by: Optional[int] = None) -> SalaryRecord:
        record = self._get(salary_id)
        if record.is_paid:
            raise AlreadyPaidError("Cannot recalculate paid salary")
        month = int(record.month.split("-")[1])
        return self.calculate_monthly_salary(record.worker_id, month, record.year, calculated_by=calculated_by)

    # ---- audited edits ----

    def edit_salary_record(
        self,
        salary_id: int,
        *,
        changes: Mapping[str, Any],
        reason: str,
        editor_id: int,
        now: Optional[datetime] = None,
    ) -> SalaryRecord:
        reason = require_non_empty(reason, "Reason")
        if not changes:
            raise ValidationError("No changes supplied")
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")
        coerced = {name: _coerce_edit(name, value) for name, value in changes.items()}
        now = now or self._clock()

        record = self._get(salary_id)
        with self._locks.hold((record.worker_id, record.month)):
            current = self._get(salary_id)
            if current.is_paid:
                raise ConflictError("Cannot edit paid salary record. Please create a new adjustment.")
            edited = self._with_totals(replace(current, **coerced))
            diff = {
                name: {"before": _plain(getattr(current, name)), "after": _plain(getattr(edited, name))}
                for name in sorted(coerced)
            }
            edited = replace(
                edited,
                edit_history=current.edit_history
                + (EditRecord(edited_by=int(editor_id), edited_at=now, reason=reason, changes=diff),),
                last_edited_at=now,
                last_edited_by=int(editor_id),
            )
            saved = self._save(current, edited)
        logger.info("Salary record %s edited by %s: %s", salary_id, editor_id, ", ".join(sorted(coerced)))
        return saved

    def _add_adjustment(
        self,
        salary_id: int,
        *,
        kind: str,
        title: str,
        amount: Any,
        description: str,
        added_by: int,
        now: Optional[datetime],
    ) -> SalaryRecord:
        adjustment = Adjustment(
            title=require_non_empty(title, "Title"),
            amount=require_amount(amount, "Amount"),
            description=description or "",
            added_by=int(added_by),
            added_at=now or self._clock(),
        )
        record = self._get(salary_id)
        with self._locks.hold((record.worker_id, record.month)):
            current = self._get(salary_id)
            if current.is_paid:
                raise ConflictError(f"Cannot add {kind} to paid salary record")
            if kind == "bonus":
                updated = replace(current, bonuses=current.bonuses + (adjustment,))
            else:
                updated = replace(current, deductions=current.deductions + (adjustment,))
            saved = self._save(current, self._with_totals(updated))
        logger.info("Added %s %s (%s) to salary record %s", kind, adjustment.amount, adjustment.title, salary_id)
        return saved

    def add_bonus(
        self,
        salary_id: int,
        *,
        title: str,
        amount: Any,
        description: str = "",
        added_by: int,
        now: Optional[datetime] = None,
    ) -> SalaryRecord:
        return self._add_adjustment(
            salary_id, kind="bonus", title=title, amount=amount, description=description, added_by=added_by, now=now
        )

    def add_deduction(
        self,
        salary_id: int,
        *,
        title: str,
        amount: Any,
        description: str = "",
        added_by: int,
        now: Optional[datetime] = None,
    ) -> SalaryRecord:
        return self._add_adjustment(
            salary_id, kind="deduction", title=title, amount=amount, description=description, added_by=added_by, now=now
        )

    # ---- payment and ledger ----

    def mark_as_paid(
        self,
        salary_id: int,
        *,
        paid_by: int,
        payment_mode: PaymentMode | str,
        transaction_id: str = "",
        payment_proof: str = "",
        paid_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> SalaryRecord:
        try:
            payment_mode = PaymentMode(payment_mode)
        except ValueError:
            raise ValidationError(f"Unknown payment mode: {payment_mode!r}")

        record = self._get(salary_id)
        with self._locks.hold((record.worker_id, record.month)):
            current = self._get(salary_id)
            if current.is_paid:
                raise ConflictError("Salary already marked as paid")
            paid = replace(
                current,
                is_paid=True,
                paid_date=paid_date or self._clock(),
                paid_by=int(paid_by),
                payment_mode=payment_mode,
                transaction_id=transaction_id or "",
                payment_proof=payment_proof or "",
                notes=current.notes if notes is None else notes,
            )
            saved = self._save(current, paid)
        logger.info("Salary record %s marked paid (%s) by %s", salary_id, payment_mode.value, paid_by)
        return saved

    def mark_bulk_paid(
        self,
        salary_ids: Iterable[int],
        *,
        paid_by: int,
        payment_mode: PaymentMode | str,
        paid_date: Optional[datetime] = None,
    ) -> BatchResult:
        ids: List[int] = [int(i) for i in salary_ids]
        result = BatchResult(total=len(ids))
        for salary_id in ids:
            try:
                result.succeeded.append(
                    self.mark_as_paid(salary_id, paid_by=paid_by, payment_mode=payment_mode, paid_date=paid_date)
                )
            except DomainError as exc:
                result.errors.append(PerItemFailure(salary_id, str(exc)))
            except Exception as exc:
                logger.exception("Marking salary record %s paid failed", salary_id)
                result.errors.append(PerItemFailure(salary_id, str(exc)))
        return result

    def link_ledger_entry(self, salary_id: int, *, ledger_entry_id: str) -> SalaryRecord:
        ledger_entry_id = require_non_empty(ledger_entry_id, "Ledger entry id")
        current = self._get(salary_id)
        if current.is_added_to_ledger:
            raise ConflictError("Salary record is already linked to a ledger entry")
        linked = replace(current, ledger_entry_id=ledger_entry_id, is_added_to_ledger=True)
        return self._save(current, linked)

    def unlink_ledger_entry(self, salary_id: int) -> SalaryRecord:
        current = self._get(salary_id)
        return self._save(current, replace(current, ledger_entry_id=None, is_added_to_ledger=False))

    def get_salary_slip(self, salary_id: int) -> Dict[str, Any]:
        record = self._get(salary_id)
        worker = self._workers.get_by_id(record.worker_id)
        slip = record.to_document()
        slip["employee"] = {
            "id": record.worker_id,
            "fullName": worker.full_name if worker else None,
            "employeeCode": worker.employee_code if worker else None,
            "joiningDate": worker.joining_date.isoformat() if worker else None,
            "relievingDate": worker.exit_date.isoformat() if worker and worker.exit_date else None,
        }
        return slip

    def list_for_site(self, *, site_id: int, month: int, year: int) -> List[SalaryRecord]:
        return list(self._salaries.list_for_site_and_month(int(site_id), month_key(year, month)))
