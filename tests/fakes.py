from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

from staff_attendance.attendance.model import AttendanceDay
from staff_attendance.container import wire
from staff_attendance.core.enums import Direction, LeaveStatus, LeaveType
from staff_attendance.core.exceptions import ConflictError
from staff_attendance.leaves.model import LeaveApplication
from staff_attendance.sites.model import SitePolicy
from staff_attendance.workers.model import Worker


def make_worker(worker_id=1, *, site_id=1, base_salary="31000", joining_date=date(2024, 1, 1), **kwargs) -> Worker:
    return Worker(
        worker_id=worker_id,
        site_id=site_id,
        full_name=f"Worker {worker_id}",
        employee_code=f"EMP{worker_id:03d}",
        base_salary=Decimal(base_salary),
        joining_date=joining_date,
        **kwargs,
    )


def make_leave(leave_id=1, *, worker_id=1, site_id=1, leave_type=LeaveType.SICK, from_date, to_date, **kwargs):
    kwargs.setdefault("status", LeaveStatus.APPROVED)
    return LeaveApplication(
        leave_id=leave_id,
        worker_id=worker_id,
        site_id=site_id,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
        reason="Medical appointment and rest",
        applied_at=datetime(2025, 1, 1, 9, 0),
        **kwargs,
    )


class FakeWorkerRepo:
    def __init__(self, workers=()):
        self._workers = {w.worker_id: w for w in workers}
        self.fail_listing = False

    def add(self, worker: Worker) -> None:
        self._workers[worker.worker_id] = worker

    def get_by_id(self, worker_id):
        return self._workers.get(int(worker_id))

    def list_active_for_site(self, site_id):
        if self.fail_listing:
            raise RuntimeError("worker store unavailable")
        return [w for w in self._workers.values() if w.site_id == int(site_id) and w.is_active]

    def update_direction(self, *, worker_id, direction, at):
        worker = self._workers[int(worker_id)]
        if direction == Direction.IN:
            self._workers[worker.worker_id] = replace(worker, current_direction=direction, last_check_in=at)
        else:
            self._workers[worker.worker_id] = replace(worker, current_direction=direction, last_check_out=at)


class FakeSitePolicyRepo:
    def __init__(self, policies=()):
        self._policies = {p.site_id: p for p in policies}
        self.summaries = []

    def get_for_site(self, site_id):
        return self._policies.get(int(site_id))

    def list_auto_close_site_ids(self):
        return [p.site_id for p in self._policies.values() if p.auto_close_enabled]

    def save(self, policy: SitePolicy) -> None:
        self._policies[policy.site_id] = policy

    def record_run_summary(self, *, site_id, summary):
        self.summaries.append((int(site_id), summary))
        policy = self._policies.get(int(site_id))
        if policy is not None:
            self._policies[policy.site_id] = replace(policy, last_run=summary)


class FakeLeaveRepo:
    def __init__(self, leaves=()):
        self._leaves = {l.leave_id: l for l in leaves}
        self._next_id = max(self._leaves, default=0) + 1

    def add(self, leave: LeaveApplication) -> None:
        self._leaves[leave.leave_id] = leave

    def create(self, *, worker_id, site_id, leave_type, from_date, to_date, reason, is_paid, applied_at):
        leave_id = self._next_id
        self._next_id += 1
        self._leaves[leave_id] = LeaveApplication(
            leave_id=leave_id,
            worker_id=worker_id,
            site_id=site_id,
            leave_type=leave_type,
            from_date=from_date,
            to_date=to_date,
            reason=reason,
            status=LeaveStatus.PENDING,
            applied_at=applied_at,
            is_paid=is_paid,
        )
        return leave_id

    def get_by_id(self, leave_id):
        return self._leaves.get(int(leave_id))

    def save(self, leave):
        self._leaves[leave.leave_id] = leave

    def _approved(self):
        return [l for l in self._leaves.values() if l.status == LeaveStatus.APPROVED]

    def find_approved_for_worker_on(self, *, worker_id, day):
        for leave in self._approved():
            if leave.worker_id == int(worker_id) and leave.covers(day):
                return leave
        return None

    def list_approved_for_site_on(self, *, site_id, day):
        return [l for l in self._approved() if l.site_id == int(site_id) and l.covers(day)]

    def list_approved_for_worker_between(self, *, worker_id, start, end):
        return [
            l
            for l in self._approved()
            if l.worker_id == int(worker_id) and l.from_date <= end and l.last_covered_date >= start
        ]


class _FakeDayUnit:
    """Mirrors the MySQL unit: a write fails if the row changed since it was read."""

    def __init__(self, repo, day):
        self._repo = repo
        self.day = day

    def save(self, day):
        stored = self._repo._days.get((day.worker_id, day.work_date))
        if stored != self.day:
            raise ConflictError(f"Attendance for worker {day.worker_id} on {day.work_date} was written concurrently")
        self.day = self._repo.upsert(day)
        return self.day


class FakeAttendanceRepo:
    def __init__(self):
        self._days = {}
        self._next_id = 1
        self.fail_for_worker = set()

    def all(self):
        return sorted(self._days.values(), key=lambda d: (d.work_date, d.worker_id))

    def get_by_id(self, day_id):
        for day in self._days.values():
            if day.day_id == int(day_id):
                return day
        return None

    def get_for_worker_and_date(self, worker_id, work_date):
        if int(worker_id) in self.fail_for_worker:
            raise RuntimeError(f"attendance store failed for worker {worker_id}")
        return self._days.get((int(worker_id), work_date))

    def list_for_worker_between(self, worker_id, start, end):
        return [d for d in self.all() if d.worker_id == int(worker_id) and start <= d.work_date <= end]

    def list_for_site_on(self, site_id, work_date):
        return [d for d in self.all() if d.site_id == int(site_id) and d.work_date == work_date]

    def list_unreconciled(self, site_id, *, limit):
        days = [d for d in self.all() if d.site_id == int(site_id) and not d.reconciled and d.validation_issues]
        return days[:limit]

    @contextmanager
    def open_day(self, worker_id, work_date):
        yield _FakeDayUnit(self, self.get_for_worker_and_date(worker_id, work_date))

    def upsert(self, day: AttendanceDay) -> AttendanceDay:
        key = (day.worker_id, day.work_date)
        existing = self._days.get(key)
        if existing is not None:
            day = replace(day, day_id=existing.day_id)
        else:
            day = replace(day, day_id=self._next_id)
            self._next_id += 1
        self._days[key] = day
        return day

    def create_if_absent(self, day: AttendanceDay) -> bool:
        if (day.worker_id, day.work_date) in self._days:
            return False
        self.upsert(day)
        return True


class FakeSalaryRepo:
    def __init__(self):
        self._records = {}
        self._next_id = 1

    def get_by_id(self, salary_id):
        return self._records.get(int(salary_id))

    def get_for_worker_and_month(self, worker_id, month):
        for record in self._records.values():
            if record.worker_id == int(worker_id) and record.month == month:
                return record
        return None

    def list_for_site_and_month(self, site_id, month):
        return [r for r in self._records.values() if r.site_id == int(site_id) and r.month == month]

    def save(self, record, *, expected_version):
        if expected_version is None:
            if self.get_for_worker_and_month(record.worker_id, record.month) is not None:
                raise ConflictError("already exists")
            saved = replace(record, salary_id=self._next_id, version=1)
            self._next_id += 1
        else:
            stored = self._records.get(record.salary_id)
            if stored is None or stored.version != expected_version:
                raise ConflictError("modified concurrently")
            saved = replace(record, version=expected_version + 1)
        self._records[saved.salary_id] = saved
        return saved


def fake_container(*, workers=(), policies=(), leaves=(), worker_timeout=5.0):
    return wire(
        workers_repo=FakeWorkerRepo(workers),
        policies_repo=FakeSitePolicyRepo(policies),
        leaves_repo=FakeLeaveRepo(leaves),
        attendance_repo=FakeAttendanceRepo(),
        salaries_repo=FakeSalaryRepo(),
        worker_timeout=worker_timeout,
    )
