from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from staff_attendance.attendance.model import AttendanceDay
from staff_attendance.core.enums import AttendanceStatus, PaymentMode
from staff_attendance.core.exceptions import (
    AlreadyPaidError,
    ConflictError,
    NoDataError,
    NotFoundError,
    NotWorkingThisMonthError,
    ValidationError,
)
from staff_attendance.payroll.model import ensure_mutation_allowed
from staff_attendance.payroll.service import PayrollService
from staff_attendance.sites.model import SitePolicy

from tests.fakes import (
    FakeAttendanceRepo,
    FakeLeaveRepo,
    FakeSalaryRepo,
    FakeSitePolicyRepo,
    FakeWorkerRepo,
    make_leave,
    make_worker,
)

APRIL_FIRST = datetime(2026, 4, 1, 10, 0)
EDIT_TIME = datetime(2026, 4, 2, 11, 0)


def build(workers, *, leaves=(), now=APRIL_FIRST):
    repos = {
        "salaries": FakeSalaryRepo(),
        "workers": FakeWorkerRepo(workers),
        "attendance": FakeAttendanceRepo(),
        "leaves": FakeLeaveRepo(leaves),
        "policies": FakeSitePolicyRepo([SitePolicy(site_id=1)]),
    }
    service = PayrollService(
        repos["salaries"],
        repos["workers"],
        repos["attendance"],
        repos["leaves"],
        repos["policies"],
        clock=lambda: now,
    )
    return service, repos


def add_present_days(attendance, worker_id, start, end, hours=9.0):
    current = start
    while current <= end:
        attendance.upsert(
            AttendanceDay(
                worker_id=worker_id,
                site_id=1,
                work_date=current,
                status=AttendanceStatus.PRESENT,
                total_hours=hours,
            )
        )
        current += timedelta(days=1)


@pytest.fixture
def joiner():
    service, repos = build([make_worker(1, joining_date=date(2026, 3, 15), base_salary="31000")])
    add_present_days(repos["attendance"], 1, date(2026, 3, 15), date(2026, 3, 31))
    return service, repos


def test_mid_month_joiner_is_prorated(joiner):
    service, _ = joiner

    record = service.calculate_monthly_salary(1, 3, 2026)

    assert record.month == "2026-03"
    assert record.working_start_date == date(2026, 3, 15)
    assert record.working_end_date == date(2026, 3, 31)
    assert record.is_prorated
    assert record.prorated_reason == "Joined on 2026-03-15"
    assert record.month_working_days == 26
    assert record.present_days == 17
    assert record.per_day_amount == Decimal("1192.31")
    assert record.earned_salary == Decimal("20269.23")
    assert record.earned_salary < record.base_salary
    assert record.net_salary == Decimal("20269.23")
    assert record.version == 1


def test_leave_only_month_is_paid_from_leave_bucket():
    leave = make_leave(from_date=date(2026, 3, 1), to_date=date(2026, 3, 31))
    service, _ = build([make_worker(1, base_salary="26000")], leaves=[leave])

    record = service.calculate_monthly_salary(1, 3, 2026)

    assert record.paid_leave_days == leave.total_days == 31
    assert record.present_days == 0
    # 31 paid days at 1000 a day is capped at the base salary
    assert record.earned_salary == Decimal("26000.00")
    assert record.net_salary == Decimal("26000.00")


def test_window_is_clipped_to_today():
    service, repos = build([make_worker(1)], now=datetime(2026, 3, 10, 12, 0))
    add_present_days(repos["attendance"], 1, date(2026, 3, 2), date(2026, 3, 20))

    record = service.calculate_monthly_salary(1, 3, 2026)

    assert record.working_end_date == date(2026, 3, 10)
    assert record.present_days == 9
    assert not record.is_prorated


def test_mid_month_leaver_window_ends_on_exit():
    service, repos = build([make_worker(1, exit_date=date(2026, 3, 10))])
    add_present_days(repos["attendance"], 1, date(2026, 3, 2), date(2026, 3, 20))

    record = service.calculate_monthly_salary(1, 3, 2026)

    assert record.working_end_date == date(2026, 3, 10)
    assert record.prorated_reason == "Left on 2026-03-10"


def test_failures_unknown_worker_no_data_and_not_working():
    service, _ = build([make_worker(1), make_worker(2, joining_date=date(2026, 5, 1))])

    with pytest.raises(NotFoundError):
        service.calculate_monthly_salary(99, 3, 2026)
    with pytest.raises(NoDataError):
        service.calculate_monthly_salary(1, 3, 2026)
    with pytest.raises(NotWorkingThisMonthError):
        service.calculate_monthly_salary(2, 3, 2026)
    with pytest.raises(ValidationError):
        service.calculate_monthly_salary(1, 13, 2026)


def test_paid_record_is_locked(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)

    paid = service.mark_as_paid(record.salary_id, paid_by=5, payment_mode="bank_transfer", transaction_id="TX-1")

    assert paid.is_paid
    assert paid.payment_mode == PaymentMode.BANK_TRANSFER
    assert paid.paid_date == APRIL_FIRST
    with pytest.raises(AlreadyPaidError):
        service.calculate_monthly_salary(1, 3, 2026)
    with pytest.raises(AlreadyPaidError):
        service.recalculate_salary(record.salary_id)
    with pytest.raises(ConflictError):
        service.edit_salary_record(record.salary_id, changes={"absent_days": 2}, reason="fix", editor_id=5)
    with pytest.raises(ConflictError):
        service.add_bonus(record.salary_id, title="Festival", amount="500", added_by=5)
    with pytest.raises(ConflictError, match="Salary already marked as paid"):
        service.mark_as_paid(record.salary_id, paid_by=5, payment_mode="cash")


def test_ledger_linkage_is_allowed_on_paid_record(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)
    service.mark_as_paid(record.salary_id, paid_by=5, payment_mode="cash")

    linked = service.link_ledger_entry(record.salary_id, ledger_entry_id="EXP-42")
    assert linked.is_added_to_ledger
    assert linked.to_document()["expenseRecordId"] == "EXP-42"

    unlinked = service.unlink_ledger_entry(record.salary_id)
    assert not unlinked.is_added_to_ledger
    assert unlinked.ledger_entry_id is None


def test_any_other_change_to_paid_record_is_rejected(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)
    paid = service.mark_as_paid(record.salary_id, paid_by=5, payment_mode="upi")

    with pytest.raises(ConflictError, match="net_salary"):
        ensure_mutation_allowed(paid, replace(paid, net_salary=Decimal("1")))
    ensure_mutation_allowed(paid, replace(paid, transaction_id="TX-2", notes="receipt sent"))


def test_paid_record_history_cannot_be_rewritten(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)
    service.edit_salary_record(
        record.salary_id,
        changes={"present_days": "15", "absent_days": 2},
        reason="Two days were marked wrongly",
        editor_id=8,
        now=EDIT_TIME,
    )
    paid = service.mark_as_paid(record.salary_id, paid_by=5, payment_mode="upi")
    assert paid.edit_history

    with pytest.raises(ConflictError, match="edit history"):
        ensure_mutation_allowed(paid, replace(paid, edit_history=()))
    with pytest.raises(ConflictError, match="edit history"):
        ensure_mutation_allowed(paid, replace(paid, edit_history=(replace(paid.edit_history[0], reason="no reason"),)))
    ensure_mutation_allowed(paid, replace(paid, edit_history=paid.edit_history + paid.edit_history[:1]))


def test_edit_recomputes_totals_and_keeps_history(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)

    edited = service.edit_salary_record(
        record.salary_id,
        changes={"present_days": "15", "absent_days": 2},
        reason="Two days were marked wrongly",
        editor_id=8,
        now=EDIT_TIME,
    )

    assert edited.present_days == 15
    assert edited.absent_days == 2
    assert edited.earned_salary == Decimal("17884.62")
    assert edited.absent_deduction == Decimal("2384.62")
    assert edited.net_salary == Decimal("15500.00")
    assert edited.last_edited_by == 8
    assert edited.last_edited_at == EDIT_TIME
    assert len(edited.edit_history) == 1
    entry = edited.edit_history[0]
    assert entry.reason == "Two days were marked wrongly"
    assert entry.changes == {
        "absent_days": {"before": 0, "after": 2},
        "present_days": {"before": 17, "after": 15},
    }


def test_edit_rejects_fields_outside_the_audit_path(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)

    with pytest.raises(ValidationError):
        service.edit_salary_record(record.salary_id, changes={"net_salary": 1}, reason="x", editor_id=1)
    with pytest.raises(ValidationError):
        service.edit_salary_record(record.salary_id, changes={"absent_days": -1}, reason="x", editor_id=1)
    with pytest.raises(ValidationError):
        service.edit_salary_record(record.salary_id, changes={"absent_days": 1}, reason=" ", editor_id=1)


def test_adjustments_survive_recalculation(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)

    service.add_bonus(record.salary_id, title="Festival", amount="1000", added_by=2)
    with_deduction = service.add_deduction(record.salary_id, title="Advance", amount="269.23", added_by=2)

    assert with_deduction.total_bonuses == Decimal("1000.00")
    assert with_deduction.total_deductions == Decimal("269.23")
    assert with_deduction.net_salary == Decimal("21000.00")
    assert with_deduction.gross_salary == Decimal("21269.23")

    recalculated = service.recalculate_salary(record.salary_id)

    assert recalculated.salary_id == record.salary_id
    assert [b.title for b in recalculated.bonuses] == ["Festival"]
    assert recalculated.net_salary == Decimal("21000.00")
    assert recalculated.version == 4


def test_adjustment_amount_must_be_valid(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)

    with pytest.raises(ValidationError):
        service.add_bonus(record.salary_id, title="Festival", amount="-5", added_by=2)
    with pytest.raises(ValidationError):
        service.add_deduction(record.salary_id, title="", amount="5", added_by=2)


def test_bulk_calculation_isolates_failures():
    service, repos = build([make_worker(1), make_worker(2), make_worker(3)])
    add_present_days(repos["attendance"], 1, date(2026, 3, 2), date(2026, 3, 6))
    add_present_days(repos["attendance"], 3, date(2026, 3, 2), date(2026, 3, 6))

    result = service.calculate_bulk_salary(1, 3, 2026)

    assert result.total == 3
    assert [r.worker_id for r in result.succeeded] == [1, 3]
    assert [e.item_id for e in result.errors] == [2]
    assert "No attendance records found" in result.errors[0].reason
    assert len(service.list_for_site(site_id=1, month=3, year=2026)) == 2


def test_bulk_payment_isolates_failures():
    service, repos = build([make_worker(1)])
    add_present_days(repos["attendance"], 1, date(2026, 3, 2), date(2026, 3, 6))
    record = service.calculate_monthly_salary(1, 3, 2026)

    result = service.mark_bulk_paid([record.salary_id, 999], paid_by=1, payment_mode=PaymentMode.CASH)

    assert [r.salary_id for r in result.succeeded] == [record.salary_id]
    assert result.errors[0].item_id == 999
    assert result.to_dict()["failed"] == 1


def test_stale_version_is_rejected_by_repository(joiner):
    service, repos = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)
    service.recalculate_salary(record.salary_id)

    with pytest.raises(ConflictError):
        repos["salaries"].save(replace(record, notes="stale"), expected_version=record.version)


def test_salary_slip_includes_employee(joiner):
    service, _ = joiner
    record = service.calculate_monthly_salary(1, 3, 2026)

    slip = service.get_salary_slip(record.salary_id)

    assert slip["employee"]["fullName"] == "Worker 1"
    assert slip["employee"]["joiningDate"] == "2026-03-15"
    assert slip["netSalary"] == 20269.23
    assert slip["monthWorkingDays"] == 26
    with pytest.raises(NotFoundError):
        service.get_salary_slip(404)
