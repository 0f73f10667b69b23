from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..core.enums import Direction, EmploymentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Worker
from .repository import WorkerRepository

_COLUMNS = """
    worker_id, site_id, full_name, employee_code, base_salary, joining_date, exit_date,
    employment_status, current_direction, last_check_in, last_check_out
"""


def _row_to_worker(r: Dict[str, Any]) -> Worker:
    return Worker(
        worker_id=int(r["worker_id"]),
        site_id=int(r["site_id"]),
        full_name=r["full_name"],
        employee_code=r["employee_code"],
        base_salary=Decimal(str(r["base_salary"])),
        joining_date=r["joining_date"],
        exit_date=r.get("exit_date"),
        employment_status=EmploymentStatus(r["employment_status"]),
        current_direction=Direction(r["current_direction"]),
        last_check_in=r.get("last_check_in"),
        last_check_out=r.get("last_check_out"),
    )


class MySQLWorkerRepository(WorkerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, worker_id: int) -> Optional[Worker]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM workers WHERE worker_id=%s", (int(worker_id),))
            r = fetchone(cur)
            return _row_to_worker(r) if r else None

    def list_active_for_site(self, site_id: int) -> Sequence[Worker]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM workers
                WHERE site_id=%s AND employment_status='ACTIVE'
                ORDER BY worker_id
                """,
                (int(site_id),),
            )
            return [_row_to_worker(r) for r in fetchall(cur)]

    def update_direction(self, *, worker_id: int, direction: Direction, at: datetime) -> None:
        column = "last_check_in" if direction == Direction.IN else "last_check_out"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE workers SET current_direction=%s, {column}=%s WHERE worker_id=%s",
                (direction.value, at, int(worker_id)),
            )
