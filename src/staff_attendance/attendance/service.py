from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence, Tuple

from ..core.constants import DEFAULT_UNRECONCILED_LIMIT
from ..core.enums import AttendanceStatus, Direction, EntrySource
from ..core.exceptions import NotFoundError, ValidationError, ValidationRejected
from ..leaves.model import LeaveApplication
from ..leaves.repository import LeaveRepository
from ..sites.repository import SitePolicyRepository
from ..sites.service import load_site_policy
from ..workers.repository import WorkerRepository
from .checks.base import EntryCandidate
from .classifier import rederive
from .model import AttendanceDay, Entry, ValidationIssue, summarize_issues
from .repository import AttendanceRepository
from .validator import EntryValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryResult:
    admitted: bool
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    info: Tuple[str, ...] = ()
    leave_conflict: Optional[LeaveApplication] = None
    day: Optional[AttendanceDay] = None

    def raise_for_rejection(self) -> "EntryResult":
        if not self.admitted:
            raise ValidationRejected(list(self.errors), warnings=list(self.warnings), leave_conflict=self.leave_conflict)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admitted": self.admitted,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "info": list(self.info),
            "leaveConflict": self.leave_conflict.to_document() if self.leave_conflict else None,
            "attendance": self.day.to_document() if self.day else None,
        }


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        workers: WorkerRepository,
        leaves: LeaveRepository,
        policies: SitePolicyRepository,
        *,
        validator: EntryValidator | None = None,
    ):
        self._attendance = attendance
        self._workers = workers
        self._leaves = leaves
        self._policies = policies
        self._validator = validator or EntryValidator(attendance, leaves, policies)

    def validate_and_record_entry(
        self,
        *,
        worker_id: int,
        site_id: int,
        direction: Direction | str,
        timestamp: datetime,
        work_date: date | None = None,
        source: EntrySource = EntrySource.MANUAL,
        device_id: str | None = None,
        marked_by: int | None = None,
        notes: str = "",
    ) -> EntryResult:
        try:
            direction = Direction(direction)
        except ValueError:
            raise ValidationError(f"Direction must be IN or OUT, got {direction!r}")
        work_date = work_date or timestamp.date()

        worker = self._workers.get_by_id(int(worker_id))
        if not worker:
            raise NotFoundError(f"Worker {worker_id} not found")
        if worker.site_id != int(site_id):
            raise ValidationError(f"Worker {worker_id} is not assigned to site {site_id}")
        if not worker.is_active:
            raise ValidationError(f"Worker {worker_id} is not active")

        policy = load_site_policy(self._policies, site_id)
        candidate = EntryCandidate(
            worker_id=worker.worker_id,
            site_id=int(site_id),
            work_date=work_date,
            direction=direction,
            timestamp=timestamp,
        )

        with self._attendance.open_day(worker.worker_id, work_date) as unit:
            current = unit.day
            result = self._validator.evaluate(candidate, entries=current.entries if current else (), policy=policy)
            if not result.admit:
                return EntryResult(
                    admitted=False,
                    errors=result.errors,
                    warnings=result.warnings,
                    leave_conflict=result.leave_conflict,
                    day=current,
                )

            day = current or AttendanceDay(
                worker_id=worker.worker_id,
                site_id=int(site_id),
                work_date=work_date,
                status=AttendanceStatus.ABSENT,
            )
            entry = Entry(
                direction=direction,
                timestamp=timestamp,
                source=EntrySource(source),
                device_id=device_id,
                marked_by=marked_by,
                notes=notes or "",
            )
            day = replace(
                day,
                entries=day.entries + (entry,),
                validation_issues=day.validation_issues + result.issues,
                reconciled=day.reconciled and not result.issues,
                auto_closed=False,
            )
            saved = unit.save(rederive(day, policy))

        self._workers.update_direction(worker_id=worker.worker_id, direction=direction, at=timestamp)
        logger.info(
            "Recorded %s for worker %s on %s (%d warnings)",
            direction.value,
            worker.worker_id,
            work_date,
            len(result.warnings),
        )
        return EntryResult(admitted=True, warnings=result.warnings, info=result.info, day=saved)

    def get_day(self, *, worker_id: int, work_date: date) -> Optional[AttendanceDay]:
        return self._attendance.get_for_worker_and_date(int(worker_id), work_date)

    def list_unreconciled(self, *, site_id: int, limit: int = DEFAULT_UNRECONCILED_LIMIT) -> Sequence[AttendanceDay]:
        return self._attendance.list_unreconciled(int(site_id), limit=int(limit))

    def reconcile(self, *, day_id: int, reviewer_id: int, notes: str = "", now: datetime | None = None) -> AttendanceDay:
        day = self._attendance.get_by_id(int(day_id))
        if not day:
            raise NotFoundError(f"Attendance record {day_id} not found")
        reconciled = replace(
            day,
            reconciled=True,
            reconciled_by=int(reviewer_id),
            reconciled_at=now or datetime.now(),
            reconciliation_notes=notes,
        )
        logger.info("Attendance %s reconciled by %s", day_id, reviewer_id)
        return self._attendance.upsert(reconciled)

    def validation_summary(self, *, day_id: int, now: datetime | None = None) -> Sequence[ValidationIssue]:
        day = self._attendance.get_by_id(int(day_id))
        if not day:
            raise NotFoundError(f"Attendance record {day_id} not found")
        return summarize_issues(day, now=now or datetime.now())

    def daily_summary(self, *, site_id: int, work_date: date) -> Dict[str, int]:
        """Status counts for a site's day; active workers without a record count as not marked."""

        days = self._attendance.list_for_site_on(int(site_id), work_date)
        counts = Counter(d.status.value for d in days)
        summary = {status.value: counts.get(status.value, 0) for status in AttendanceStatus}

        marked = {d.worker_id for d in days}
        active = self._workers.list_active_for_site(int(site_id))
        summary["not_marked"] = sum(1 for w in active if w.worker_id not in marked)
        summary["total_workers"] = len(active)
        return summary
