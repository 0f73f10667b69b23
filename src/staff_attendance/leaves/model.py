from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from ..common.datetime_utils import inclusive_days
from ..core.constants import PAID_LEAVE_TYPES
from ..core.enums import LeaveStatus, LeaveType


@dataclass(frozen=True)
class LeaveApplication:
    leave_id: int
    worker_id: int
    site_id: int
    leave_type: LeaveType
    from_date: date
    to_date: date
    reason: str
    status: LeaveStatus
    applied_at: datetime
    is_paid: bool = True
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    early_return: bool = False
    actual_return_date: Optional[date] = None

    @property
    def total_days(self) -> int:
        """Inclusive day count of the requested range."""
        return inclusive_days(self.from_date, self.to_date)

    @property
    def last_covered_date(self) -> date:
        # an early return ends coverage the day before the worker is back
        if self.early_return and self.actual_return_date:
            return min(self.to_date, self.actual_return_date - timedelta(days=1))
        return self.to_date

    @property
    def taken_days(self) -> int:
        return inclusive_days(self.from_date, self.last_covered_date)

    @property
    def is_approved(self) -> bool:
        return self.status == LeaveStatus.APPROVED

    def covers(self, day: date) -> bool:
        return self.from_date <= day <= self.last_covered_date

    def days_within(self, start: date, end: date) -> int:
        """Covered days clipped to [start, end]."""
        return inclusive_days(max(self.from_date, start), min(self.last_covered_date, end))

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.leave_id,
            "employee": self.worker_id,
            "site": self.site_id,
            "leaveType": self.leave_type.value,
            "fromDate": self.from_date.isoformat(),
            "toDate": self.to_date.isoformat(),
            "totalDays": self.total_days,
            "reason": self.reason,
            "status": self.status.value,
            "isPaid": self.is_paid,
            "appliedAt": self.applied_at.isoformat(),
            "reviewedBy": self.reviewed_by,
            "reviewedAt": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewNotes": self.review_notes,
            "earlyReturn": self.early_return,
            "actualReturnDate": self.actual_return_date.isoformat() if self.actual_return_date else None,
        }


def is_paid_leave(leave: Optional[LeaveApplication]) -> bool:
    """Sick, casual and earned leave are always paid; other types follow the flag."""

    if leave is None:
        return True
    if leave.leave_type.value in PAID_LEAVE_TYPES:
        return True
    return bool(leave.is_paid)
