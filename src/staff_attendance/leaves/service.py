from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Dict

from ..common.validators import require_min_length
from ..core.constants import MIN_LEAVE_REASON_LENGTH
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..workers.repository import WorkerRepository
from .model import LeaveApplication
from .repository import LeaveRepository

logger = logging.getLogger(__name__)


class LeaveService:
    def __init__(self, leaves: LeaveRepository, workers: WorkerRepository):
        self._leaves = leaves
        self._workers = workers

    def _get(self, leave_id: int) -> LeaveApplication:
        leave = self._leaves.get_by_id(int(leave_id))
        if not leave:
            raise NotFoundError(f"Leave application {leave_id} not found")
        return leave

    def apply_leave(
        self,
        *,
        worker_id: int,
        leave_type: LeaveType | str,
        from_date: date,
        to_date: date,
        reason: str,
        is_paid: bool | None = None,
        now: datetime | None = None,
    ) -> LeaveApplication:
        now = now or datetime.now()
        worker = self._workers.get_by_id(int(worker_id))
        if not worker:
            raise NotFoundError(f"Worker {worker_id} not found")
        try:
            leave_type = LeaveType(leave_type)
        except ValueError:
            raise ValidationError(f"Unknown leave type: {leave_type!r}")
        if to_date < from_date:
            raise ValidationError("Leave end date must not be before its start date")
        reason = require_min_length(reason or "", "Reason", MIN_LEAVE_REASON_LENGTH)
        if is_paid is None:
            is_paid = leave_type != LeaveType.UNPAID

        leave_id = self._leaves.create(
            worker_id=worker.worker_id,
            site_id=worker.site_id,
            leave_type=leave_type,
            from_date=from_date,
            to_date=to_date,
            reason=reason,
            is_paid=bool(is_paid),
            applied_at=now,
        )
        logger.info("Leave %s applied by worker %s (%s to %s)", leave_id, worker.worker_id, from_date, to_date)
        return self._get(leave_id)

    def _review(self, leave_id: int, status: LeaveStatus, reviewer_id: int, notes: str | None, now: datetime | None) -> LeaveApplication:
        leave = self._get(leave_id)
        if leave.status != LeaveStatus.PENDING:
            raise ConflictError(f"Leave application is already {leave.status.value}")
        updated = replace(
            leave,
            status=status,
            reviewed_by=int(reviewer_id),
            reviewed_at=now or datetime.now(),
            review_notes=notes,
        )
        self._leaves.save(updated)
        logger.info("Leave %s %s by %s", leave_id, status.value, reviewer_id)
        return updated

    def approve(self, leave_id: int, *, reviewer_id: int, notes: str | None = None, now: datetime | None = None) -> LeaveApplication:
        return self._review(leave_id, LeaveStatus.APPROVED, reviewer_id, notes, now)

    def reject(self, leave_id: int, *, reviewer_id: int, notes: str | None = None, now: datetime | None = None) -> LeaveApplication:
        return self._review(leave_id, LeaveStatus.REJECTED, reviewer_id, notes, now)

    def cancel(self, leave_id: int) -> LeaveApplication:
        leave = self._get(leave_id)
        if leave.status not in (LeaveStatus.PENDING, LeaveStatus.APPROVED):
            raise ConflictError(f"Cannot cancel a {leave.status.value} leave application")
        updated = replace(leave, status=LeaveStatus.CANCELLED)
        self._leaves.save(updated)
        return updated

    def process_early_return(self, leave_id: int, *, return_date: date) -> LeaveApplication:
        leave = self._get(leave_id)
        if not leave.is_approved:
            raise ConflictError("Early return applies only to approved leave")
        if not leave.from_date < return_date <= leave.to_date:
            raise ValidationError("Return date must fall after the leave start and within the leave")
        updated = replace(leave, early_return=True, actual_return_date=return_date)
        self._leaves.save(updated)
        logger.info("Leave %s closed early, worker back on %s", leave_id, return_date)
        return updated

    def leave_balance(self, *, worker_id: int, year: int) -> Dict[str, int]:
        """Approved leave days taken per type in a calendar year."""

        start, end = date(int(year), 1, 1), date(int(year), 12, 31)
        balance = {t.value: 0 for t in LeaveType}
        for leave in self._leaves.list_approved_for_worker_between(worker_id=int(worker_id), start=start, end=end):
            balance[leave.leave_type.value] += leave.days_within(start, end)
        balance["total"] = sum(balance.values())
        return balance
