from __future__ import annotations

from datetime import date
from typing import ContextManager, Optional, Protocol, Sequence

from .model import AttendanceDay


class DayUnit(Protocol):
    """Open unit of work over one (worker, date) record.

    ``day`` is the latest persisted state read inside the unit; ``save``
    writes it back before the unit commits.
    """

    day: Optional[AttendanceDay]

    def save(self, day: AttendanceDay) -> AttendanceDay:
        raise NotImplementedError


class AttendanceRepository(Protocol):
    def get_by_id(self, day_id: int) -> Optional[AttendanceDay]:
        raise NotImplementedError

    def get_for_worker_and_date(self, worker_id: int, work_date: date) -> Optional[AttendanceDay]:
        raise NotImplementedError

    def list_for_worker_between(self, worker_id: int, start: date, end: date) -> Sequence[AttendanceDay]:
        raise NotImplementedError

    def list_for_site_on(self, site_id: int, work_date: date) -> Sequence[AttendanceDay]:
        raise NotImplementedError

    def list_unreconciled(self, site_id: int, *, limit: int) -> Sequence[AttendanceDay]:
        raise NotImplementedError

    def open_day(self, worker_id: int, work_date: date) -> ContextManager[DayUnit]:
        """Serialize read-decide-append for one (worker, date)."""

        raise NotImplementedError

    def upsert(self, day: AttendanceDay) -> AttendanceDay:
        """Insert or replace the record keyed by (worker, date)."""

        raise NotImplementedError

    def create_if_absent(self, day: AttendanceDay) -> bool:
        """Insert only when no record exists for (worker, date)."""

        raise NotImplementedError
