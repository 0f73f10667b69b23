from __future__ import annotations

import random
from datetime import date, datetime, timedelta

import pytest

from staff_attendance.attendance.service import AttendanceService
from staff_attendance.core.enums import AttendanceStatus, Direction, EmploymentStatus
from staff_attendance.core.exceptions import NotFoundError, ValidationError, ValidationRejected
from staff_attendance.sites.model import SitePolicy

from tests.fakes import FakeAttendanceRepo, FakeLeaveRepo, FakeSitePolicyRepo, FakeWorkerRepo, make_leave, make_worker

DAY = date(2026, 3, 2)


def at(hour, minute=0, second=0):
    return datetime(2026, 3, 2, hour, minute, second)


@pytest.fixture
def repos():
    return {
        "attendance": FakeAttendanceRepo(),
        "workers": FakeWorkerRepo([make_worker(1), make_worker(2, employment_status=EmploymentStatus.INACTIVE)]),
        "leaves": FakeLeaveRepo(),
        "policies": FakeSitePolicyRepo([SitePolicy(site_id=1)]),
    }


@pytest.fixture
def service(repos):
    return AttendanceService(repos["attendance"], repos["workers"], repos["leaves"], repos["policies"])


def record(service, direction, ts, worker_id=1):
    return service.validate_and_record_entry(worker_id=worker_id, site_id=1, direction=direction, timestamp=ts)


def test_full_day_is_recorded_and_classified(service, repos):
    record(service, "IN", at(9))
    result = record(service, Direction.OUT, at(18))

    assert result.admitted
    day = result.day
    assert [e.direction for e in day.entries] == [Direction.IN, Direction.OUT]
    assert day.check_in_time == at(9)
    assert day.check_out_time == at(18)
    assert day.total_hours == 9.0
    assert day.status == AttendanceStatus.PRESENT
    assert day.reconciled is True
    assert repos["workers"].get_by_id(1).current_direction == Direction.OUT
    assert repos["workers"].get_by_id(1).last_check_out == at(18)


def test_out_first_is_rejected_and_nothing_is_persisted(service, repos):
    result = record(service, "OUT", at(9))

    assert not result.admitted
    assert result.errors == ("Cannot mark OUT without marking IN first",)
    assert repos["attendance"].get_for_worker_and_date(1, DAY) is None
    assert repos["workers"].get_by_id(1).current_direction == Direction.OUT

    with pytest.raises(ValidationRejected) as exc:
        result.raise_for_rejection()
    assert exc.value.errors == ["Cannot mark OUT without marking IN first"]


def test_leave_conflict_is_surfaced(service, repos):
    leave = make_leave(from_date=DAY, to_date=DAY)
    repos["leaves"].add(leave)

    result = record(service, "IN", at(9))

    assert not result.admitted
    assert result.leave_conflict == leave


def test_warnings_mark_day_unreconciled(service, repos):
    result = record(service, "IN", at(10))

    assert result.admitted
    assert result.warnings
    assert result.day.reconciled is False
    assert result.day.is_late is True
    assert [d.day_id for d in service.list_unreconciled(site_id=1)] == [result.day.day_id]

    reconciled = service.reconcile(day_id=result.day.day_id, reviewer_id=99, notes="Bus delay", now=at(19))

    assert reconciled.reconciled is True
    assert reconciled.reconciled_by == 99
    assert service.list_unreconciled(site_id=1) == []


def test_unknown_or_inactive_worker(service):
    with pytest.raises(NotFoundError):
        record(service, "IN", at(9), worker_id=404)
    with pytest.raises(ValidationError):
        record(service, "IN", at(9), worker_id=2)
    with pytest.raises(ValidationError):
        record(service, "SIDEWAYS", at(9))


def test_worker_from_another_site_is_refused(service):
    with pytest.raises(ValidationError):
        service.validate_and_record_entry(worker_id=1, site_id=2, direction="IN", timestamp=at(9))


def test_admitted_entries_always_alternate(service, repos):
    rng = random.Random(7)
    ts = at(6)
    record(service, "IN", ts)
    for _ in range(40):
        ts += timedelta(minutes=rng.randint(5, 20))
        # roughly a third of the attempts are backdated
        attempt = ts - timedelta(minutes=rng.randint(1, 90)) if rng.random() < 0.3 else ts
        record(service, rng.choice(["IN", "OUT"]), attempt)

    day = repos["attendance"].get_for_worker_and_date(1, DAY)
    ordered = sorted(day.entries, key=lambda e: e.timestamp)
    directions = [e.direction for e in ordered]
    assert directions[0] == Direction.IN
    assert all(a != b for a, b in zip(directions, directions[1:]))
    assert [e.timestamp for e in day.entries] == [e.timestamp for e in ordered]


def test_backdated_entry_is_rejected(service, repos):
    record(service, "IN", at(9))

    result = record(service, "OUT", at(8))

    assert not result.admitted
    assert result.errors == ("Entry time must be after the last entry (09:00)",)
    day = repos["attendance"].get_for_worker_and_date(1, DAY)
    assert [e.direction for e in day.entries] == [Direction.IN]


def test_leave_recorded_at_another_site_still_blocks(service, repos):
    repos["leaves"].add(make_leave(site_id=9, from_date=DAY, to_date=DAY))

    result = record(service, "IN", at(9))

    assert not result.admitted
    assert result.errors == ("Employee is on approved sick leave till 2026-03-02",)


def test_validation_summary_reports_open_day(service):
    result = record(service, "IN", at(9))

    kinds = {i.kind.value for i in service.validation_summary(day_id=result.day.day_id, now=at(20))}

    assert kinds == {"MISSING_CHECKOUT", "INCOMPLETE_PAIR"}


def test_daily_summary_counts_unmarked_workers(service, repos):
    repos["workers"].add(make_worker(3))
    record(service, "IN", at(9))
    record(service, "OUT", at(18))

    summary = service.daily_summary(site_id=1, work_date=DAY)

    assert summary["present"] == 1
    assert summary["not_marked"] == 1
    assert summary["total_workers"] == 2


def test_day_document_uses_record_field_names(service):
    record(service, "IN", at(9))
    day = record(service, "OUT", at(13)).day

    doc = day.to_document()

    assert doc["status"] == "early-leave"
    assert doc["totalHours"] == 4.0
    assert doc["isEarlyLeave"] is True
    assert doc["checkInTime"] == "2026-03-02T09:00:00"
    assert doc["entries"][0]["type"] == "IN"
