from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json, normalize_mysql_time
from .model import Holiday, RunSummary, SitePolicy
from .repository import SitePolicyRepository


def _summary_to_json(summary: RunSummary) -> Dict[str, Any]:
    return {
        "lastRunDate": summary.run_date.isoformat(),
        "lastRunTime": summary.ran_at.isoformat(),
        "processed": summary.processed,
        "present": summary.present,
        "absent": summary.absent,
        "onLeave": summary.on_leave,
        "alreadyMarked": summary.already_marked,
        "errors": summary.errors,
    }


def _summary_from_json(data: Optional[Dict[str, Any]]) -> Optional[RunSummary]:
    if not data:
        return None
    return RunSummary(
        run_date=date.fromisoformat(data["lastRunDate"]),
        ran_at=datetime.fromisoformat(data["lastRunTime"]),
        processed=int(data.get("processed", 0)),
        present=int(data.get("present", 0)),
        absent=int(data.get("absent", 0)),
        on_leave=int(data.get("onLeave", 0)),
        already_marked=int(data.get("alreadyMarked", 0)),
        errors=int(data.get("errors", 0)),
    )


def _row_to_policy(r: Dict[str, Any]) -> SitePolicy:
    holidays = tuple(
        Holiday(date=date.fromisoformat(h["date"]), name=h["name"], is_paid=bool(h.get("isPaid", True)))
        for h in load_json(r.get("holidays"), [])
    )
    return SitePolicy(
        site_id=int(r["site_id"]),
        working_hours_per_day=float(r["working_hours_per_day"]),
        half_day_threshold=float(r["half_day_threshold"]),
        check_in_time=normalize_mysql_time(r["check_in_time"]),
        check_out_time=normalize_mysql_time(r["check_out_time"]),
        late_threshold_minutes=int(r["late_threshold_minutes"]),
        early_leave_threshold_minutes=int(r["early_leave_threshold_minutes"]),
        weekend_days=tuple(int(d) for d in load_json(r.get("weekend_days"), [6])),
        holidays=holidays,
        overtime_enabled=bool(r["overtime_enabled"]),
        overtime_threshold=float(r["overtime_threshold"]),
        overtime_rate=float(r["overtime_rate"]),
        auto_close_enabled=bool(r["auto_close_enabled"]),
        auto_close_time=normalize_mysql_time(r["auto_close_time"]),
        last_run=_summary_from_json(load_json(r.get("last_run"), None)),
    )


class MySQLSitePolicyRepository(SitePolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_site(self, site_id: int) -> Optional[SitePolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM site_policies WHERE site_id=%s", (int(site_id),))
            r = fetchone(cur)
            return _row_to_policy(r) if r else None

    def list_auto_close_site_ids(self) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT site_id FROM site_policies WHERE auto_close_enabled=1 ORDER BY site_id")
            return [int(r["site_id"]) for r in fetchall(cur)]

    def save(self, policy: SitePolicy) -> None:
        holidays = [{"date": h.date.isoformat(), "name": h.name, "isPaid": h.is_paid} for h in policy.holidays]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO site_policies(
                    site_id, working_hours_per_day, half_day_threshold, check_in_time, check_out_time,
                    late_threshold_minutes, early_leave_threshold_minutes, weekend_days, holidays,
                    overtime_enabled, overtime_threshold, overtime_rate, auto_close_enabled, auto_close_time
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    working_hours_per_day=VALUES(working_hours_per_day),
                    half_day_threshold=VALUES(half_day_threshold),
                    check_in_time=VALUES(check_in_time),
                    check_out_time=VALUES(check_out_time),
                    late_threshold_minutes=VALUES(late_threshold_minutes),
                    early_leave_threshold_minutes=VALUES(early_leave_threshold_minutes),
                    weekend_days=VALUES(weekend_days),
                    holidays=VALUES(holidays),
                    overtime_enabled=VALUES(overtime_enabled),
                    overtime_threshold=VALUES(overtime_threshold),
                    overtime_rate=VALUES(overtime_rate),
                    auto_close_enabled=VALUES(auto_close_enabled),
                    auto_close_time=VALUES(auto_close_time)
                """,
                (
                    policy.site_id,
                    policy.working_hours_per_day,
                    policy.half_day_threshold,
                    policy.check_in_time,
                    policy.check_out_time,
                    policy.late_threshold_minutes,
                    policy.early_leave_threshold_minutes,
                    dump_json(list(policy.weekend_days)),
                    dump_json(holidays),
                    int(policy.overtime_enabled),
                    policy.overtime_threshold,
                    policy.overtime_rate,
                    int(policy.auto_close_enabled),
                    policy.auto_close_time,
                ),
            )

    def record_run_summary(self, *, site_id: int, summary: RunSummary) -> None:
        # a site running on defaults still gets its row so the summary is kept
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO site_policies(site_id, last_run) VALUES(%s, %s)
                ON DUPLICATE KEY UPDATE last_run=VALUES(last_run)
                """,
                (int(site_id), dump_json(_summary_to_json(summary))),
            )
