from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..common.http import as_int, json_body, ok, require_field
from ..core.constants import DEFAULT_UNRECONCILED_LIMIT
from ..core.enums import EntrySource
from ..core.exceptions import NotFoundError, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/entries", methods=["POST"], endpoint="api_record_entry")
    def api_record_entry():
        """Validate one IN/OUT event and append it to the worker's day."""
        data = json_body()
        work_date = data.get("date")
        try:
            source = EntrySource(data.get("source") or EntrySource.MANUAL.value)
        except ValueError:
            raise ValidationError(f"Unknown entry source: {data.get('source')!r}")

        result = container.attendance_service.validate_and_record_entry(
            worker_id=as_int(require_field(data, "worker_id"), "worker_id"),
            site_id=as_int(require_field(data, "site_id"), "site_id"),
            direction=str(require_field(data, "direction")).upper(),
            timestamp=parse_iso_datetime(require_field(data, "timestamp")),
            work_date=parse_iso_date(work_date) if work_date else None,
            source=source,
            device_id=data.get("device_id"),
            marked_by=as_int(data["marked_by"], "marked_by") if data.get("marked_by") is not None else None,
            notes=data.get("notes") or "",
        ).raise_for_rejection()
        return ok(result.to_dict(), message="Attendance recorded", status=201)

    @app.route("/api/workers/<int:worker_id>/attendance/<work_date>", methods=["GET"], endpoint="api_get_day")
    def api_get_day(worker_id: int, work_date: str):
        day = container.attendance_service.get_day(worker_id=worker_id, work_date=parse_iso_date(work_date))
        if day is None:
            raise NotFoundError(f"No attendance for worker {worker_id} on {work_date}")
        return ok(day.to_document())

    @app.route("/api/sites/<int:site_id>/attendance/unreconciled", methods=["GET"], endpoint="api_unreconciled")
    def api_unreconciled(site_id: int):
        limit = as_int(request.args.get("limit", DEFAULT_UNRECONCILED_LIMIT), "limit")
        days = container.attendance_service.list_unreconciled(site_id=site_id, limit=limit)
        return ok([d.to_document() for d in days])

    @app.route("/api/attendance/<int:day_id>/reconcile", methods=["POST"], endpoint="api_reconcile")
    def api_reconcile(day_id: int):
        data = json_body()
        day = container.attendance_service.reconcile(
            day_id=day_id,
            reviewer_id=as_int(require_field(data, "reviewer_id"), "reviewer_id"),
            notes=data.get("notes") or "",
        )
        return ok(day.to_document(), message="Attendance reconciled")

    @app.route("/api/attendance/<int:day_id>/issues", methods=["GET"], endpoint="api_day_issues")
    def api_day_issues(day_id: int):
        issues = container.attendance_service.validation_summary(day_id=day_id)
        return ok(
            [
                {"type": i.kind.value, "severity": i.severity.value, "message": i.message}
                for i in issues
            ]
        )

    @app.route("/api/sites/<int:site_id>/attendance/summary", methods=["GET"], endpoint="api_daily_summary")
    def api_daily_summary(site_id: int):
        work_date = parse_iso_date(request.args.get("date") or "")
        summary = container.attendance_service.daily_summary(site_id=site_id, work_date=work_date)
        return ok({"date": work_date.isoformat(), **summary})
