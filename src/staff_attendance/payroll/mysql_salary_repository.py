from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import mysql.connector

from ..core.enums import PaymentMode
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import Adjustment, EditRecord, SalaryRecord
from .repository import SalaryRepository

_MONEY = (
    "base_salary", "total_working_days", "overtime_pay", "per_day_amount", "earned_salary", "absent_deduction",
    "unpaid_leave_deduction", "total_bonuses", "total_deductions", "gross_salary", "net_salary",
)
_INTS = (
    "month_working_days", "present_days", "absent_days", "half_days", "paid_leave_days", "unpaid_leave_days",
    "holiday_days", "late_days", "early_leave_days",
)
_FLOATS = ("total_hours_worked", "overtime_hours")
_BOOLS = ("is_prorated", "is_paid", "is_added_to_ledger")
_PLAIN = (
    "worker_id", "site_id", "month", "year", "prorated_reason", "working_start_date", "working_end_date",
    "paid_date", "paid_by", "transaction_id", "payment_proof", "ledger_entry_id", "notes", "calculated_at",
    "calculated_by", "last_edited_at", "last_edited_by",
)
_JSON = ("bonuses", "deductions", "edit_history")

_WRITE_COLUMNS = _PLAIN + _MONEY + _INTS + _FLOATS + _BOOLS + ("payment_mode",) + _JSON


def _adjustments_to_json(items) -> List[Dict[str, Any]]:
    return [
        {
            "title": a.title,
            "amount": str(a.amount),
            "description": a.description,
            "addedBy": a.added_by,
            "addedAt": a.added_at.isoformat() if a.added_at else None,
        }
        for a in items
    ]


def _adjustments_from_json(items) -> tuple:
    return tuple(
        Adjustment(
            title=a["title"],
            amount=Decimal(str(a["amount"])),
            description=a.get("description") or "",
            added_by=a.get("addedBy"),
            added_at=datetime.fromisoformat(a["addedAt"]) if a.get("addedAt") else None,
        )
        for a in items
    )


def _history_to_json(items) -> List[Dict[str, Any]]:
    return [
        {"editedBy": e.edited_by, "editedAt": e.edited_at.isoformat(), "reason": e.reason, "changes": e.changes}
        for e in items
    ]


def _history_from_json(items) -> tuple:
    return tuple(
        EditRecord(
            edited_by=int(e["editedBy"]),
            edited_at=datetime.fromisoformat(e["editedAt"]),
            reason=e["reason"],
            changes=e.get("changes") or {},
        )
        for e in items
    )


def _row_to_record(r: Dict[str, Any]) -> SalaryRecord:
    values: Dict[str, Any] = {c: r.get(c) for c in _PLAIN}
    values.update({c: Decimal(str(r[c] if r.get(c) is not None else "0")) for c in _MONEY})
    values.update({c: int(r.get(c) or 0) for c in _INTS})
    values.update({c: float(r.get(c) or 0) for c in _FLOATS})
    values.update({c: bool(r.get(c)) for c in _BOOLS})
    values["transaction_id"] = values["transaction_id"] or ""
    values["payment_proof"] = values["payment_proof"] or ""
    values["notes"] = values["notes"] or ""
    values["payment_mode"] = PaymentMode(r["payment_mode"]) if r.get("payment_mode") else None
    values["bonuses"] = _adjustments_from_json(load_json(r.get("bonuses"), []))
    values["deductions"] = _adjustments_from_json(load_json(r.get("deductions"), []))
    values["edit_history"] = _history_from_json(load_json(r.get("edit_history"), []))
    return SalaryRecord(salary_id=int(r["salary_id"]), version=int(r["version"]), **values)


def _params(record: SalaryRecord) -> tuple:
    values = [getattr(record, c) for c in _PLAIN + _MONEY + _INTS + _FLOATS]
    values += [int(getattr(record, c)) for c in _BOOLS]
    values.append(record.payment_mode.value if record.payment_mode else None)
    values += [
        dump_json(_adjustments_to_json(record.bonuses)),
        dump_json(_adjustments_to_json(record.deductions)),
        dump_json(_history_to_json(record.edit_history)),
    ]
    return tuple(values)


class MySQLSalaryRepository(SalaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, salary_id: int) -> Optional[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM salary_records WHERE salary_id=%s", (int(salary_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_worker_and_month(self, worker_id: int, month: str) -> Optional[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM salary_records WHERE worker_id=%s AND month=%s", (int(worker_id), month))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def list_for_site_and_month(self, site_id: int, month: str) -> Sequence[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM salary_records WHERE site_id=%s AND month=%s ORDER BY worker_id",
                (int(site_id), month),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def save(self, record: SalaryRecord, *, expected_version: Optional[int]) -> SalaryRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            if expected_version is None:
                columns = ", ".join(_WRITE_COLUMNS + ("version",))
                placeholders = ", ".join(["%s"] * (len(_WRITE_COLUMNS) + 1))
                try:
                    cur.execute(
                        f"INSERT INTO salary_records({columns}) VALUES({placeholders})",
                        _params(record) + (1,),
                    )
                except mysql.connector.IntegrityError:
                    raise ConflictError(f"Salary for worker {record.worker_id} in {record.month} already exists")
                return replace(record, salary_id=int(cur.lastrowid), version=1)

            assignments = ", ".join(f"{c}=%s" for c in _WRITE_COLUMNS)
            cur.execute(
                f"""
                UPDATE salary_records
                SET {assignments}, version=version+1
                WHERE salary_id=%s AND version=%s
                """,
                _params(record) + (record.salary_id, int(expected_version)),
            )
            if cur.rowcount != 1:
                raise ConflictError(f"Salary record {record.salary_id} was modified concurrently, retry")
            return replace(record, version=int(expected_version) + 1)
