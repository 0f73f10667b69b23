from datetime import date
from decimal import Decimal
from itertools import product

from staff_attendance.attendance.model import AttendanceDay
from staff_attendance.core.enums import AttendanceStatus, LeaveType
from staff_attendance.payroll.calculator.base import DayBuckets
from staff_attendance.payroll.calculator.standard_calculator import StandardPayrollCalculator, quantize
from staff_attendance.sites.model import SitePolicy

from tests.fakes import make_leave

POLICY = SitePolicy(site_id=1)
START, END = date(2026, 3, 1), date(2026, 3, 31)


def day(d, status, hours=0.0, **kwargs):
    return AttendanceDay(worker_id=1, site_id=1, work_date=date(2026, 3, d), status=status, total_hours=hours, **kwargs)


def totals(buckets, base="26000", working_days=26, policy=POLICY, bonuses="0", deductions="0"):
    return StandardPayrollCalculator().totals(
        base_salary=Decimal(base),
        month_working_days=working_days,
        buckets=buckets,
        policy=policy,
        other_bonuses=Decimal(bonuses),
        other_deductions=Decimal(deductions),
    )


def test_summarize_buckets_statuses():
    days = [
        day(2, AttendanceStatus.PRESENT, 9),
        day(3, AttendanceStatus.LATE, 8.5, is_late=True),
        day(4, AttendanceStatus.EARLY_LEAVE, 6, is_early_leave=True),
        day(5, AttendanceStatus.HALF_DAY, 3),
        day(6, AttendanceStatus.ABSENT),
        day(7, AttendanceStatus.HOLIDAY),
        day(9, AttendanceStatus.PRESENT, 8, is_late=True),
    ]

    buckets = StandardPayrollCalculator().summarize(
        days=days, leaves=[], linked_leaves={}, start=START, end=END, policy=POLICY
    )

    assert buckets.present == 4
    assert buckets.late == 2
    assert buckets.early_leave == 1
    assert buckets.half_day == 1
    assert buckets.absent == 1
    assert buckets.holiday == 1
    assert buckets.total_hours == 34.5
    assert buckets.overtime_hours == 0


def test_on_leave_rows_follow_linked_leave_and_type():
    unpaid = make_leave(1, leave_type=LeaveType.UNPAID, from_date=date(2026, 3, 10), to_date=date(2026, 3, 10), is_paid=False)
    emergency_unpaid = make_leave(
        2, leave_type=LeaveType.EMERGENCY, from_date=date(2026, 3, 11), to_date=date(2026, 3, 11), is_paid=False
    )
    sick_flagged_unpaid = make_leave(
        3, leave_type=LeaveType.SICK, from_date=date(2026, 3, 12), to_date=date(2026, 3, 12), is_paid=False
    )
    days = [
        day(10, AttendanceStatus.ON_LEAVE, leave_application_id=1),
        day(11, AttendanceStatus.ON_LEAVE, leave_application_id=2),
        day(12, AttendanceStatus.ON_LEAVE, leave_application_id=3),
        day(13, AttendanceStatus.ON_LEAVE),
    ]

    buckets = StandardPayrollCalculator().summarize(
        days=days,
        leaves=[unpaid, emergency_unpaid, sick_flagged_unpaid],
        linked_leaves={1: unpaid, 2: emergency_unpaid, 3: sick_flagged_unpaid},
        start=START,
        end=END,
        policy=POLICY,
    )

    assert buckets.unpaid_leave == 2
    # sick leave is paid whatever the flag says; an unlinked leave day counts as paid
    assert buckets.paid_leave == 2


def test_leave_days_without_rows_are_added_once_and_clipped():
    leave = make_leave(1, from_date=date(2026, 2, 27), to_date=date(2026, 3, 4))
    days = [day(2, AttendanceStatus.ON_LEAVE, leave_application_id=1)]

    buckets = StandardPayrollCalculator().summarize(
        days=days, leaves=[leave], linked_leaves={1: leave}, start=START, end=END, policy=POLICY
    )

    assert buckets.paid_leave == 4


def test_overtime_counts_only_when_enabled():
    policy = SitePolicy(site_id=1, overtime_enabled=True, overtime_threshold=8, overtime_rate=1.5)
    days = [day(2, AttendanceStatus.PRESENT, 10), day(3, AttendanceStatus.PRESENT, 7)]

    buckets = StandardPayrollCalculator().summarize(
        days=days, leaves=[], linked_leaves={}, start=START, end=END, policy=policy
    )
    result = totals(buckets, base="20800", policy=policy)

    assert buckets.overtime_hours == 2
    # 20800 / (8 * 26) = 100 per hour
    assert result.overtime_pay == Decimal("300.00")
    assert result.total_bonuses == Decimal("300.00")


def test_prorated_month_rate():
    result = totals(DayBuckets(present=17), base="31000")

    assert result.per_day_amount == Decimal("1192.31")
    assert result.earned_salary == Decimal("20269.23")
    assert result.net_salary == Decimal("20269.23")
    assert result.total_working_days == Decimal("17.0")


def test_half_days_earn_half_rate():
    result = totals(DayBuckets(present=10, half_day=2))

    assert result.earned_salary == Decimal("11000.00")
    assert result.total_working_days == Decimal("11.0")


def test_earnings_are_capped_at_base_salary():
    result = totals(DayBuckets(present=20, paid_leave=8, holiday=3))

    assert result.earned_salary == Decimal("26000.00")


def test_net_salary_never_negative():
    result = totals(DayBuckets(present=1, absent=25), deductions="5000")

    assert result.net_salary == Decimal("0.00")
    assert result.total_deductions == Decimal("30000.00")


def test_zero_working_days_gives_zero_rate():
    result = totals(DayBuckets(present=3), working_days=0)

    assert result.per_day_amount == Decimal("0.00")
    assert result.net_salary == Decimal("0.00")


def test_cap_and_non_negative_hold_across_bucket_mixes():
    calc = StandardPayrollCalculator()
    for present, absent, half, paid, unpaid, holiday in product((0, 5, 31), (0, 10, 31), (0, 4), (0, 12), (0, 9), (0, 2)):
        buckets = DayBuckets(
            present=present, absent=absent, half_day=half, paid_leave=paid, unpaid_leave=unpaid, holiday=holiday
        )
        result = calc.totals(
            base_salary=Decimal("30000"),
            month_working_days=26,
            buckets=buckets,
            policy=POLICY,
            other_bonuses=Decimal("0"),
            other_deductions=Decimal("250"),
        )
        assert result.earned_salary <= Decimal("30000")
        assert result.net_salary >= 0


def test_quantize_rounds_half_up():
    assert quantize(Decimal("1.005")) == Decimal("1.01")
    assert quantize(None) == Decimal("0.00")
