from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import format_hhmm, parse_iso_date
from ..common.http import json_body, ok, require_field
from ..container import Container
from .model import SitePolicy
from .rules import DAY_NAMES


def _policy_document(policy: SitePolicy) -> dict:
    last_run = policy.last_run
    return {
        "site": policy.site_id,
        "workingHoursPerDay": policy.working_hours_per_day,
        "halfDayThreshold": policy.half_day_threshold,
        "checkInTime": format_hhmm(policy.check_in_time),
        "checkOutTime": format_hhmm(policy.check_out_time),
        "lateThresholdMinutes": policy.late_threshold_minutes,
        "earlyLeaveThresholdMinutes": policy.early_leave_threshold_minutes,
        "weekendDays": [DAY_NAMES[d] for d in policy.weekend_days],
        "holidays": [{"date": h.date.isoformat(), "name": h.name, "isPaid": h.is_paid} for h in policy.holidays],
        "overtimeEnabled": policy.overtime_enabled,
        "overtimeThreshold": policy.overtime_threshold,
        "overtimeRate": policy.overtime_rate,
        "autoCloseEnabled": policy.auto_close_enabled,
        "autoCloseTime": format_hhmm(policy.auto_close_time),
        "lastRun": (
            {
                "lastRunDate": last_run.run_date.isoformat(),
                "lastRunTime": last_run.ran_at.isoformat(),
                "processed": last_run.processed,
                "present": last_run.present,
                "absent": last_run.absent,
                "onLeave": last_run.on_leave,
                "alreadyMarked": last_run.already_marked,
                "errors": last_run.errors,
            }
            if last_run
            else None
        ),
    }


def register(app: Flask, container: Container) -> None:
    service = container.site_policy_service

    @app.route("/api/sites/<int:site_id>/policy", methods=["GET"], endpoint="api_site_policy")
    def api_site_policy(site_id: int):
        return ok(_policy_document(service.get(site_id)))

    @app.route("/api/sites/<int:site_id>/holidays", methods=["POST"], endpoint="api_add_holiday")
    def api_add_holiday(site_id: int):
        data = json_body()
        policy = service.add_holiday(
            site_id=site_id,
            day=parse_iso_date(require_field(data, "date")),
            name=data.get("name") or "",
            is_paid=bool(data.get("is_paid", True)),
        )
        return ok(_policy_document(policy), message="Holiday saved", status=201)

    @app.route("/api/sites/<int:site_id>/holidays/<day>", methods=["DELETE"], endpoint="api_remove_holiday")
    def api_remove_holiday(site_id: int, day: str):
        policy = service.remove_holiday(site_id=site_id, day=parse_iso_date(day))
        return ok(_policy_document(policy), message="Holiday removed")
