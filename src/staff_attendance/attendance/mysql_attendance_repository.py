from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import AttendanceStatus, Direction, EntrySource, IssueKind, Severity
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import AttendanceDay, Entry, ValidationIssue
from .repository import AttendanceRepository, DayUnit

_COLUMNS = """
    day_id, worker_id, site_id, work_date, status, check_in_time, check_out_time, total_hours,
    is_late, is_early_leave, leave_application_id, entries, validation_issues, auto_closed,
    reconciled, reconciled_by, reconciled_at, reconciliation_notes, notes
"""

_WRITE_COLUMNS = (
    "worker_id", "site_id", "work_date", "status", "check_in_time", "check_out_time", "total_hours",
    "is_late", "is_early_leave", "leave_application_id", "entries", "validation_issues", "auto_closed",
    "reconciled", "reconciled_by", "reconciled_at", "reconciliation_notes", "notes",
)


def _entries_to_json(entries: Sequence[Entry]) -> List[Dict[str, Any]]:
    return [
        {
            "type": e.direction.value,
            "timestamp": e.timestamp.isoformat(),
            "source": e.source.value,
            "deviceId": e.device_id,
            "markedBy": e.marked_by,
            "notes": e.notes,
        }
        for e in entries
    ]


def _issues_to_json(issues: Sequence[ValidationIssue]) -> List[Dict[str, Any]]:
    return [
        {"type": i.kind.value, "severity": i.severity.value, "message": i.message, "timestamp": i.timestamp.isoformat()}
        for i in issues
    ]


def _row_to_day(r: Dict[str, Any]) -> AttendanceDay:
    entries = tuple(
        Entry(
            direction=Direction(e["type"]),
            timestamp=datetime.fromisoformat(e["timestamp"]),
            source=EntrySource(e.get("source", "manual")),
            device_id=e.get("deviceId"),
            marked_by=e.get("markedBy"),
            notes=e.get("notes") or "",
        )
        for e in load_json(r.get("entries"), [])
    )
    issues = tuple(
        ValidationIssue(
            kind=IssueKind(i["type"]),
            severity=Severity(i["severity"]),
            message=i["message"],
            timestamp=datetime.fromisoformat(i["timestamp"]),
        )
        for i in load_json(r.get("validation_issues"), [])
    )
    return AttendanceDay(
        day_id=int(r["day_id"]),
        worker_id=int(r["worker_id"]),
        site_id=int(r["site_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        entries=entries,
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        total_hours=float(r.get("total_hours") or 0),
        is_late=bool(r.get("is_late")),
        is_early_leave=bool(r.get("is_early_leave")),
        leave_application_id=r.get("leave_application_id"),
        validation_issues=issues,
        auto_closed=bool(r.get("auto_closed")),
        reconciled=bool(r.get("reconciled")),
        reconciled_by=r.get("reconciled_by"),
        reconciled_at=r.get("reconciled_at"),
        reconciliation_notes=r.get("reconciliation_notes"),
        notes=r.get("notes") or "",
    )


def _params(day: AttendanceDay) -> tuple:
    return (
        day.worker_id,
        day.site_id,
        day.work_date,
        day.status.value,
        day.check_in_time,
        day.check_out_time,
        day.total_hours,
        int(day.is_late),
        int(day.is_early_leave),
        day.leave_application_id,
        dump_json(_entries_to_json(day.entries)),
        dump_json(_issues_to_json(day.validation_issues)),
        int(day.auto_closed),
        int(day.reconciled),
        day.reconciled_by,
        day.reconciled_at,
        day.reconciliation_notes,
        day.notes,
    )


_INSERT = f"INSERT INTO attendance_days({', '.join(_WRITE_COLUMNS)}) VALUES({', '.join(['%s'] * len(_WRITE_COLUMNS))})"


class _MySQLDayUnit(DayUnit):
    def __init__(self, cur, day: Optional[AttendanceDay]):
        self._cur = cur
        self.day = day

    def save(self, day: AttendanceDay) -> AttendanceDay:
        if self.day is None:
            try:
                self._cur.execute(_INSERT, _params(day))
            except mysql.connector.Error as exc:
                # duplicate key, or deadlock between two inserts into the same empty (worker, date) gap
                if exc.errno not in (errorcode.ER_DUP_ENTRY, errorcode.ER_LOCK_DEADLOCK):
                    raise
                raise ConflictError(
                    f"Attendance for worker {day.worker_id} on {day.work_date} was written concurrently, retry"
                )
            saved = replace(day, day_id=int(self._cur.lastrowid))
        else:
            assignments = ", ".join(f"{c}=%s" for c in _WRITE_COLUMNS)
            self._cur.execute(
                f"UPDATE attendance_days SET {assignments} WHERE day_id=%s",
                _params(day) + (self.day.day_id,),
            )
            saved = replace(day, day_id=self.day.day_id)
        self.day = saved
        return saved


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, day_id: int) -> Optional[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_days WHERE day_id=%s", (int(day_id),))
            r = fetchone(cur)
            return _row_to_day(r) if r else None

    def get_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_days WHERE worker_id=%s AND work_date=%s",
                (int(worker_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_day(r) if r else None

    def list_for_worker_between(self, worker_id: int, start: date, end: date) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_days
                WHERE worker_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (int(worker_id), start, end),
            )
            return [_row_to_day(r) for r in fetchall(cur)]

    def list_for_site_on(self, site_id: int, work_date: date) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_days WHERE site_id=%s AND work_date=%s ORDER BY worker_id",
                (int(site_id), work_date),
            )
            return [_row_to_day(r) for r in fetchall(cur)]

    def list_unreconciled(self, site_id: int, *, limit: int) -> Sequence[AttendanceDay]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_days
                WHERE site_id=%s AND reconciled=0 AND JSON_LENGTH(validation_issues) > 0
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (int(site_id), int(limit)),
            )
            return [_row_to_day(r) for r in fetchall(cur)]

    @contextmanager
    def open_day(self, worker_id: int, work_date: date) -> Iterator[DayUnit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_days WHERE worker_id=%s AND work_date=%s FOR UPDATE",
                (int(worker_id), work_date),
            )
            r = fetchone(cur)
            yield _MySQLDayUnit(cur, _row_to_day(r) if r else None)

    def upsert(self, day: AttendanceDay) -> AttendanceDay:
        updates = ", ".join(f"{c}=VALUES({c})" for c in _WRITE_COLUMNS if c not in ("worker_id", "work_date"))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_INSERT} ON DUPLICATE KEY UPDATE {updates}", _params(day))
            cur.execute(
                "SELECT day_id FROM attendance_days WHERE worker_id=%s AND work_date=%s",
                (day.worker_id, day.work_date),
            )
            r = fetchone(cur)
        return replace(day, day_id=int(r["day_id"]))

    def create_if_absent(self, day: AttendanceDay) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_INSERT.replace("INSERT INTO", "INSERT IGNORE INTO", 1), _params(day))
            return cur.rowcount == 1
