from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import as_int, json_body, ok, require_field
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.leave_service

    @app.route("/api/leaves", methods=["POST"], endpoint="api_apply_leave")
    def api_apply_leave():
        data = json_body()
        is_paid = data.get("is_paid")
        leave = service.apply_leave(
            worker_id=as_int(require_field(data, "worker_id"), "worker_id"),
            leave_type=require_field(data, "leave_type"),
            from_date=parse_iso_date(require_field(data, "from_date")),
            to_date=parse_iso_date(require_field(data, "to_date")),
            reason=data.get("reason") or "",
            is_paid=None if is_paid is None else bool(is_paid),
        )
        return ok(leave.to_document(), message="Leave application submitted", status=201)

    @app.route("/api/leaves/<int:leave_id>/approve", methods=["POST"], endpoint="api_approve_leave")
    def api_approve_leave(leave_id: int):
        data = json_body()
        leave = service.approve(
            leave_id,
            reviewer_id=as_int(require_field(data, "reviewer_id"), "reviewer_id"),
            notes=data.get("notes"),
        )
        return ok(leave.to_document(), message="Leave approved")

    @app.route("/api/leaves/<int:leave_id>/reject", methods=["POST"], endpoint="api_reject_leave")
    def api_reject_leave(leave_id: int):
        data = json_body()
        leave = service.reject(
            leave_id,
            reviewer_id=as_int(require_field(data, "reviewer_id"), "reviewer_id"),
            notes=data.get("notes"),
        )
        return ok(leave.to_document(), message="Leave rejected")

    @app.route("/api/leaves/<int:leave_id>/cancel", methods=["POST"], endpoint="api_cancel_leave")
    def api_cancel_leave(leave_id: int):
        return ok(service.cancel(leave_id).to_document(), message="Leave cancelled")

    @app.route("/api/leaves/<int:leave_id>/early-return", methods=["POST"], endpoint="api_early_return")
    def api_early_return(leave_id: int):
        data = json_body()
        leave = service.process_early_return(leave_id, return_date=parse_iso_date(require_field(data, "return_date")))
        return ok(leave.to_document(), message="Early return recorded")

    @app.route("/api/workers/<int:worker_id>/leave-balance", methods=["GET"], endpoint="api_leave_balance")
    def api_leave_balance(worker_id: int):
        year = as_int(request.args.get("year"), "year")
        return ok({"year": year, **service.leave_balance(worker_id=worker_id, year=year)})
