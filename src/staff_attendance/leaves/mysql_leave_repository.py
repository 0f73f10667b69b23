from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LeaveApplication
from .repository import LeaveRepository

_COLUMNS = """
    leave_id, worker_id, site_id, leave_type, from_date, to_date, reason, status, is_paid, applied_at,
    reviewed_by, reviewed_at, review_notes, early_return, actual_return_date
"""

# coverage ends the day before an early return
_COVERED_UNTIL = "IF(early_return=1 AND actual_return_date IS NOT NULL, DATE_SUB(actual_return_date, INTERVAL 1 DAY), to_date)"


def _row_to_leave(r: Dict[str, Any]) -> LeaveApplication:
    return LeaveApplication(
        leave_id=int(r["leave_id"]),
        worker_id=int(r["worker_id"]),
        site_id=int(r["site_id"]),
        leave_type=LeaveType(r["leave_type"]),
        from_date=r["from_date"],
        to_date=r["to_date"],
        reason=r["reason"],
        status=LeaveStatus(r["status"]),
        is_paid=bool(r["is_paid"]),
        applied_at=r["applied_at"],
        reviewed_by=r.get("reviewed_by"),
        reviewed_at=r.get("reviewed_at"),
        review_notes=r.get("review_notes"),
        early_return=bool(r.get("early_return")),
        actual_return_date=r.get("actual_return_date"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        worker_id: int,
        site_id: int,
        leave_type: LeaveType,
        from_date: date,
        to_date: date,
        reason: str,
        is_paid: bool,
        applied_at: datetime,
    ) -> int:
        total_days = (to_date - from_date).days + 1
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_applications(
                    worker_id, site_id, leave_type, from_date, to_date, total_days, reason, status, is_paid, applied_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,'pending',%s,%s)
                """,
                (int(worker_id), int(site_id), leave_type.value, from_date, to_date, total_days, reason, int(is_paid), applied_at),
            )
            return int(cur.lastrowid)

    def get_by_id(self, leave_id: int) -> Optional[LeaveApplication]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leave_applications WHERE leave_id=%s", (int(leave_id),))
            r = fetchone(cur)
            return _row_to_leave(r) if r else None

    def save(self, leave: LeaveApplication) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_applications
                SET status=%s, reviewed_by=%s, reviewed_at=%s, review_notes=%s,
                    early_return=%s, actual_return_date=%s, total_days=%s
                WHERE leave_id=%s
                """,
                (
                    leave.status.value,
                    leave.reviewed_by,
                    leave.reviewed_at,
                    leave.review_notes,
                    int(leave.early_return),
                    leave.actual_return_date,
                    leave.total_days,
                    leave.leave_id,
                ),
            )

    def find_approved_for_worker_on(self, *, worker_id: int, day: date) -> Optional[LeaveApplication]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM leave_applications
                WHERE worker_id=%s AND status='approved' AND from_date<=%s AND {_COVERED_UNTIL}>=%s
                ORDER BY from_date
                LIMIT 1
                """,
                (int(worker_id), day, day),
            )
            r = fetchone(cur)
            return _row_to_leave(r) if r else None

    def list_approved_for_site_on(self, *, site_id: int, day: date) -> Sequence[LeaveApplication]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM leave_applications
                WHERE site_id=%s AND status='approved' AND from_date<=%s AND {_COVERED_UNTIL}>=%s
                """,
                (int(site_id), day, day),
            )
            return [_row_to_leave(r) for r in fetchall(cur)]

    def list_approved_for_worker_between(self, *, worker_id: int, start: date, end: date) -> Sequence[LeaveApplication]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM leave_applications
                WHERE worker_id=%s AND status='approved' AND from_date<=%s AND {_COVERED_UNTIL}>=%s
                ORDER BY from_date
                """,
                (int(worker_id), end, start),
            )
            return [_row_to_leave(r) for r in fetchall(cur)]
