from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveType
from .model import LeaveApplication


class LeaveRepository(Protocol):
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
        raise NotImplementedError

    def get_by_id(self, leave_id: int) -> Optional[LeaveApplication]:
        raise NotImplementedError

    def save(self, leave: LeaveApplication) -> None:
        """Persist status, review and early-return fields."""

        raise NotImplementedError

    def find_approved_for_worker_on(self, *, worker_id: int, day: date) -> Optional[LeaveApplication]:
        raise NotImplementedError

    def list_approved_for_site_on(self, *, site_id: int, day: date) -> Sequence[LeaveApplication]:
        raise NotImplementedError

    def list_approved_for_worker_between(self, *, worker_id: int, start: date, end: date) -> Sequence[LeaveApplication]:
        """Approved leaves overlapping [start, end]."""

        raise NotImplementedError
