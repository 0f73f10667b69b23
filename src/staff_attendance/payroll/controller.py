from __future__ import annotations

from flask import Flask, request

from ..common.http import as_int, json_body, ok, require_field
from ..core.exceptions import ValidationError
from ..container import Container


def _document(record):
    return record.to_document()


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service

    def _optional_int(data: dict, name: str):
        return as_int(data[name], name) if data.get(name) is not None else None

    @app.route("/api/salaries/calculate", methods=["POST"], endpoint="api_calculate_salary")
    def api_calculate_salary():
        data = json_body()
        record = service.calculate_monthly_salary(
            as_int(require_field(data, "worker_id"), "worker_id"),
            as_int(require_field(data, "month"), "month"),
            as_int(require_field(data, "year"), "year"),
            calculated_by=_optional_int(data, "calculated_by"),
        )
        return ok(record.to_document(), message="Salary calculated", status=201)

    @app.route("/api/sites/<int:site_id>/salaries/calculate", methods=["POST"], endpoint="api_calculate_bulk_salary")
    def api_calculate_bulk_salary(site_id: int):
        data = json_body()
        result = service.calculate_bulk_salary(
            site_id,
            as_int(require_field(data, "month"), "month"),
            as_int(require_field(data, "year"), "year"),
            calculated_by=_optional_int(data, "calculated_by"),
        )
        return ok(result.to_dict(_document))

    @app.route("/api/sites/<int:site_id>/salaries", methods=["GET"], endpoint="api_list_salaries")
    def api_list_salaries(site_id: int):
        records = service.list_for_site(
            site_id=site_id,
            month=as_int(request.args.get("month"), "month"),
            year=as_int(request.args.get("year"), "year"),
        )
        return ok([r.to_document() for r in records])

    @app.route("/api/salaries/<int:salary_id>/recalculate", methods=["POST"], endpoint="api_recalculate_salary")
    def api_recalculate_salary(salary_id: int):
        data = request.get_json(silent=True) or {}
        record = service.recalculate_salary(salary_id, calculated_by=_optional_int(data, "calculated_by"))
        return ok(record.to_document(), message="Salary recalculated")

    @app.route("/api/salaries/<int:salary_id>", methods=["PUT"], endpoint="api_edit_salary")
    def api_edit_salary(salary_id: int):
        data = json_body()
        changes = data.get("changes")
        if not isinstance(changes, dict):
            raise ValidationError("changes must be an object")
        record = service.edit_salary_record(
            salary_id,
            changes=changes,
            reason=data.get("reason") or "",
            editor_id=as_int(require_field(data, "editor_id"), "editor_id"),
        )
        return ok(record.to_document(), message="Salary record updated")

    @app.route("/api/salaries/<int:salary_id>/bonuses", methods=["POST"], endpoint="api_add_bonus")
    def api_add_bonus(salary_id: int):
        data = json_body()
        record = service.add_bonus(
            salary_id,
            title=data.get("title") or "",
            amount=require_field(data, "amount"),
            description=data.get("description") or "",
            added_by=as_int(require_field(data, "added_by"), "added_by"),
        )
        return ok(record.to_document(), message="Bonus added")

    @app.route("/api/salaries/<int:salary_id>/deductions", methods=["POST"], endpoint="api_add_deduction")
    def api_add_deduction(salary_id: int):
        data = json_body()
        record = service.add_deduction(
            salary_id,
            title=data.get("title") or "",
            amount=require_field(data, "amount"),
            description=data.get("description") or "",
            added_by=as_int(require_field(data, "added_by"), "added_by"),
        )
        return ok(record.to_document(), message="Deduction added")

    @app.route("/api/salaries/<int:salary_id>/pay", methods=["POST"], endpoint="api_mark_paid")
    def api_mark_paid(salary_id: int):
        data = json_body()
        record = service.mark_as_paid(
            salary_id,
            paid_by=as_int(require_field(data, "paid_by"), "paid_by"),
            payment_mode=require_field(data, "payment_mode"),
            transaction_id=data.get("transaction_id") or "",
            payment_proof=data.get("payment_proof") or "",
            notes=data.get("notes"),
        )
        return ok(record.to_document(), message="Salary marked as paid")

    @app.route("/api/salaries/bulk-pay", methods=["POST"], endpoint="api_mark_bulk_paid")
    def api_mark_bulk_paid():
        data = json_body()
        salary_ids = data.get("salary_ids")
        if not isinstance(salary_ids, list) or not salary_ids:
            raise ValidationError("salary_ids must be a non-empty list")
        result = service.mark_bulk_paid(
            [as_int(i, "salary_ids") for i in salary_ids],
            paid_by=as_int(require_field(data, "paid_by"), "paid_by"),
            payment_mode=require_field(data, "payment_mode"),
        )
        return ok(result.to_dict(_document))

    @app.route("/api/salaries/<int:salary_id>/ledger", methods=["PUT"], endpoint="api_link_ledger")
    def api_link_ledger(salary_id: int):
        data = json_body()
        record = service.link_ledger_entry(salary_id, ledger_entry_id=str(require_field(data, "ledger_entry_id")))
        return ok(record.to_document(), message="Ledger entry linked")

    @app.route("/api/salaries/<int:salary_id>/ledger", methods=["DELETE"], endpoint="api_unlink_ledger")
    def api_unlink_ledger(salary_id: int):
        record = service.unlink_ledger_entry(salary_id)
        return ok(record.to_document(), message="Ledger entry unlinked")

    @app.route("/api/salaries/<int:salary_id>/slip", methods=["GET"], endpoint="api_salary_slip")
    def api_salary_slip(salary_id: int):
        return ok(service.get_salary_slip(salary_id))
