from datetime import date, datetime, time

from staff_attendance.sites import rules
from staff_attendance.sites.model import Holiday, SitePolicy, default_policy
from staff_attendance.sites.service import SitePolicyService, load_site_policy

from tests.fakes import FakeSitePolicyRepo


def test_default_policy_values():
    policy = default_policy(7)

    assert policy.site_id == 7
    assert policy.working_hours_per_day == 8.0
    assert policy.half_day_threshold == 4.0
    assert policy.check_in_time == time(9, 0)
    assert policy.check_out_time == time(18, 0)
    assert policy.weekend_days == (6,)
    assert policy.auto_close_enabled is True


def test_late_uses_grace_minutes():
    policy = SitePolicy(site_id=1)

    assert not rules.is_late(policy, datetime(2026, 3, 2, 9, 15))
    assert rules.is_late(policy, datetime(2026, 3, 2, 9, 16))
    assert rules.minutes_late(policy, datetime(2026, 3, 2, 9, 45)) == 30


def test_early_leave_uses_grace_minutes():
    policy = SitePolicy(site_id=1)

    assert not rules.is_early_leave(policy, datetime(2026, 3, 2, 17, 30))
    assert rules.is_early_leave(policy, datetime(2026, 3, 2, 17, 29))
    assert rules.minutes_early(policy, datetime(2026, 3, 2, 16, 0)) == 90


def test_weekend_and_holiday_lookup():
    policy = SitePolicy(site_id=1, holidays=(Holiday(date(2025, 1, 26), "Republic Day"),))

    assert rules.is_weekend(policy, date(2025, 1, 26))  # Sunday
    assert not rules.is_weekend(policy, date(2025, 1, 27))
    assert rules.is_holiday(policy, date(2025, 1, 26))
    assert rules.get_holiday(policy, date(2025, 1, 26)).name == "Republic Day"
    assert rules.get_holiday(policy, date(2025, 1, 27)) is None


def test_month_working_days_excludes_weekends_and_holidays():
    policy = SitePolicy(site_id=1)
    # March 2026 has five Sundays
    assert rules.month_working_days(policy, 2026, 3) == 26

    with_holiday = SitePolicy(site_id=1, holidays=(Holiday(date(2026, 3, 4), "Festival"),))
    assert rules.month_working_days(with_holiday, 2026, 3) == 25


def test_missing_policy_falls_back_to_defaults(caplog):
    repo = FakeSitePolicyRepo()

    with caplog.at_level("WARNING"):
        policy = load_site_policy(repo, 3)

    assert policy == default_policy(3)
    assert "using defaults" in caplog.text


def test_unreadable_policy_falls_back_to_defaults():
    class BrokenRepo(FakeSitePolicyRepo):
        def get_for_site(self, site_id):
            raise RuntimeError("db down")

    assert load_site_policy(BrokenRepo(), 2) == default_policy(2)


def test_add_holiday_replaces_same_date_and_keeps_order():
    repo = FakeSitePolicyRepo([SitePolicy(site_id=1)])
    service = SitePolicyService(repo)

    service.add_holiday(site_id=1, day=date(2026, 8, 15), name="Independence")
    service.add_holiday(site_id=1, day=date(2026, 1, 26), name="Republic")
    policy = service.add_holiday(site_id=1, day=date(2026, 8, 15), name="Independence Day", is_paid=False)

    assert [h.date for h in policy.holidays] == [date(2026, 1, 26), date(2026, 8, 15)]
    assert policy.holidays[1].name == "Independence Day"
    assert policy.holidays[1].is_paid is False

    policy = service.remove_holiday(site_id=1, day=date(2026, 1, 26))
    assert [h.date for h in policy.holidays] == [date(2026, 8, 15)]
    assert repo.get_for_site(1) == policy
