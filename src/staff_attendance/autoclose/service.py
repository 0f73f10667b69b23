from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List

from ..attendance.classifier import rederive
from ..attendance.model import AttendanceDay, Entry
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import iter_dates, now_local
from ..common.results import PerItemFailure
from ..core.constants import DEFAULT_WORKER_TIMEOUT_SECONDS
from ..core.enums import AttendanceStatus, Direction, EntrySource
from ..core.exceptions import ConflictError, ValidationError
from ..leaves.repository import LeaveRepository
from ..sites import rules
from ..sites.model import RunSummary, SitePolicy
from ..sites.repository import SitePolicyRepository
from ..sites.service import load_site_policy
from ..workers.model import Worker
from ..workers.repository import WorkerRepository

logger = logging.getLogger(__name__)

INFERRED_CHECKOUT_NOTE = "Auto-marked as present: worker was still IN at day close, check-out inferred"
ON_LEAVE_NOTE = "On approved leave"

# outcome labels returned by the per-worker step
PRESENT = "present"
ABSENT = "absent"
ON_LEAVE = "on_leave"
ALREADY_MARKED = "already_marked"


@dataclass
class AutoCloseResult:
    site_id: int
    run_date: date
    ok: bool = True
    skipped: bool = False
    message: str = ""
    processed: int = 0
    marked_present: int = 0
    marked_absent: int = 0
    marked_on_leave: int = 0
    marked_holiday: int = 0
    already_marked: int = 0
    errors: List[PerItemFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "siteId": self.site_id,
            "date": self.run_date.isoformat(),
            "ok": self.ok,
            "skipped": self.skipped,
            "message": self.message,
            "processed": self.processed,
            "markedPresent": self.marked_present,
            "markedAbsent": self.marked_absent,
            "markedOnLeave": self.marked_on_leave,
            "markedHoliday": self.marked_holiday,
            "alreadyMarked": self.already_marked,
            "errors": [e.to_dict() for e in self.errors],
        }


class AutoCloseService:
    """End-of-day close-out of every active worker's attendance at a site.

    Re-running for the same (site, date) leaves persisted state unchanged:
    records are keyed by (worker, date) and days the job created itself are
    only tallied on later runs.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        workers: WorkerRepository,
        leaves: LeaveRepository,
        policies: SitePolicyRepository,
        *,
        worker_timeout: float = DEFAULT_WORKER_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._workers = workers
        self._leaves = leaves
        self._policies = policies
        self._worker_timeout = float(worker_timeout)
        self._clock = clock

    def run_for_site(self, site_id: int, run_date: date) -> AutoCloseResult:
        result = AutoCloseResult(site_id=int(site_id), run_date=run_date)
        policy = load_site_policy(self._policies, site_id)

        if not policy.auto_close_enabled:
            return self._skip(result, "Auto-close is disabled for this site")
        if rules.is_weekend(policy, run_date):
            return self._skip(result, f"Weekend day ({rules.day_name(run_date)}) - no auto-close")

        # an unreadable worker list fails the whole run
        workers = list(self._workers.list_active_for_site(int(site_id)))

        holiday = rules.get_holiday(policy, run_date)
        if holiday is not None:
            return self._close_holiday(result, workers, holiday.name)

        if not workers:
            result.ok = False
            result.message = "No active workers found"
            return result

        logger.info("Auto-close site %s for %s: %d workers", site_id, run_date, len(workers))
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix=f"auto-close-{site_id}")
        try:
            for worker in workers:
                future = executor.submit(self._close_worker, worker, policy, run_date)
                try:
                    outcome = future.result(timeout=self._worker_timeout)
                except FutureTimeout:
                    future.cancel()
                    logger.error("Auto-close timed out for worker %s on %s", worker.worker_id, run_date)
                    result.errors.append(PerItemFailure(worker.worker_id, f"Timed out after {self._worker_timeout:g}s"))
                    continue
                except Exception as exc:
                    logger.exception("Auto-close failed for worker %s on %s", worker.worker_id, run_date)
                    result.errors.append(PerItemFailure(worker.worker_id, str(exc)))
                    continue
                self._tally(result, outcome)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        result.message = f"Processed {result.processed} of {len(workers)} workers"
        self._record_summary(result)
        return result

    def run_for_date_range(self, site_id: int, start: date, end: date) -> List[AutoCloseResult]:
        """Sequential day-by-day backfill."""

        if end < start:
            raise ValidationError("End date must not be before start date")
        return [self.run_for_site(site_id, day) for day in iter_dates(start, end)]

    def run_for_all_sites(self, run_date: date) -> List[AutoCloseResult]:
        results = []
        for site_id in self._policies.list_auto_close_site_ids():
            try:
                results.append(self.run_for_site(site_id, run_date))
            except Exception as exc:
                logger.exception("Auto-close aborted for site %s on %s", site_id, run_date)
                failed = AutoCloseResult(site_id=int(site_id), run_date=run_date, ok=False, message=str(exc))
                failed.errors.append(PerItemFailure(int(site_id), str(exc)))
                results.append(failed)
        return results

    @staticmethod
    def _skip(result: AutoCloseResult, message: str) -> AutoCloseResult:
        logger.info("Auto-close skipped for site %s on %s: %s", result.site_id, result.run_date, message)
        result.ok = False
        result.skipped = True
        result.message = message
        return result

    def _close_holiday(self, result: AutoCloseResult, workers: List[Worker], name: str) -> AutoCloseResult:
        for worker in workers:
            try:
                day = AttendanceDay(
                    worker_id=worker.worker_id,
                    site_id=worker.site_id,
                    work_date=result.run_date,
                    status=AttendanceStatus.HOLIDAY,
                    auto_closed=True,
                    notes=f"Holiday: {name}",
                )
                existing = self._attendance.get_for_worker_and_date(worker.worker_id, result.run_date)
                if existing is not None and existing.auto_closed and existing.status == AttendanceStatus.HOLIDAY:
                    result.marked_holiday += 1
                elif existing is None and self._attendance.create_if_absent(day):
                    result.marked_holiday += 1
                else:
                    result.already_marked += 1
                result.processed += 1
            except Exception as exc:
                logger.exception("Holiday marking failed for worker %s", worker.worker_id)
                result.errors.append(PerItemFailure(worker.worker_id, str(exc)))
        result.message = f"Holiday: {name}"
        logger.info("Site %s holiday %s on %s: %d marked", result.site_id, name, result.run_date, result.marked_holiday)
        return result

    def _close_worker(self, worker: Worker, policy: SitePolicy, run_date: date) -> str:
        try:
            return self._close_worker_once(worker, policy, run_date)
        except ConflictError:
            # an entry was recorded while we decided; the day now has entries of its own
            logger.info("Day of worker %s on %s changed during close, re-reading", worker.worker_id, run_date)
            return self._close_worker_once(worker, policy, run_date)

    def _close_worker_once(self, worker: Worker, policy: SitePolicy, run_date: date) -> str:
        """Decide and write inside one locked unit, so a concurrent check-in is never overwritten."""

        with self._attendance.open_day(worker.worker_id, run_date) as unit:
            existing = unit.day

            if existing is not None and existing.auto_closed:
                return _outcome_for_status(existing.status)

            if existing is not None and existing.has_entries:
                rederived = rederive(existing, policy, closing=True)
                if rederived != existing:
                    unit.save(rederived)
                return ALREADY_MARKED

            leave = self._leaves.find_approved_for_worker_on(worker_id=worker.worker_id, day=run_date)
            if leave is not None and leave.covers(run_date):
                unit.save(
                    AttendanceDay(
                        worker_id=worker.worker_id,
                        site_id=worker.site_id,
                        work_date=run_date,
                        status=AttendanceStatus.ON_LEAVE,
                        entries=(
                            Entry(
                                direction=Direction.IN,
                                timestamp=datetime.combine(run_date, datetime.min.time()),
                                source=EntrySource.AUTO,
                                notes=f"{ON_LEAVE_NOTE} #{leave.leave_id}",
                            ),
                        ),
                        leave_application_id=leave.leave_id,
                        auto_closed=True,
                        notes=f"{ON_LEAVE_NOTE} ({leave.leave_type.value})",
                    )
                )
                return ON_LEAVE

            if worker.current_direction == Direction.IN:
                check_in = datetime.combine(run_date, policy.check_in_time)
                unit.save(
                    AttendanceDay(
                        worker_id=worker.worker_id,
                        site_id=worker.site_id,
                        work_date=run_date,
                        status=AttendanceStatus.PRESENT,
                        entries=(
                            Entry(
                                direction=Direction.IN,
                                timestamp=check_in,
                                source=EntrySource.AUTO,
                                notes=INFERRED_CHECKOUT_NOTE,
                            ),
                        ),
                        check_in_time=check_in,
                        total_hours=float(policy.working_hours_per_day),
                        auto_closed=True,
                        notes=INFERRED_CHECKOUT_NOTE,
                    )
                )
                return PRESENT

            unit.save(
                AttendanceDay(
                    worker_id=worker.worker_id,
                    site_id=worker.site_id,
                    work_date=run_date,
                    status=AttendanceStatus.ABSENT,
                    auto_closed=True,
                )
            )
            return ABSENT

    @staticmethod
    def _tally(result: AutoCloseResult, outcome: str) -> None:
        result.processed += 1
        if outcome == PRESENT:
            result.marked_present += 1
        elif outcome == ABSENT:
            result.marked_absent += 1
        elif outcome == ON_LEAVE:
            result.marked_on_leave += 1
        elif outcome == ALREADY_MARKED:
            result.already_marked += 1

    def _record_summary(self, result: AutoCloseResult) -> None:
        summary = RunSummary(
            run_date=result.run_date,
            ran_at=self._clock(),
            processed=result.processed,
            present=result.marked_present,
            absent=result.marked_absent,
            on_leave=result.marked_on_leave,
            already_marked=result.already_marked,
            errors=len(result.errors),
        )
        try:
            self._policies.record_run_summary(site_id=result.site_id, summary=summary)
        except Exception:
            # observability only; the closed days are already persisted
            logger.exception("Could not record auto-close summary for site %s", result.site_id)


def _outcome_for_status(status: AttendanceStatus) -> str:
    if status == AttendanceStatus.ON_LEAVE:
        return ON_LEAVE
    if status == AttendanceStatus.ABSENT:
        return ABSENT
    if status == AttendanceStatus.HOLIDAY:
        return ALREADY_MARKED
    return PRESENT
