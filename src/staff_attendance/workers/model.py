from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import Direction, EmploymentStatus


@dataclass(frozen=True)
class Worker:
    """A staff member tracked for attendance and payroll.

    Pure data object; never deleted, only deactivated.
    """

    worker_id: int
    site_id: int
    full_name: str
    employee_code: str
    base_salary: Decimal
    joining_date: date
    employment_status: EmploymentStatus = EmploymentStatus.ACTIVE
    current_direction: Direction = Direction.OUT
    last_check_in: Optional[datetime] = None
    last_check_out: Optional[datetime] = None
    exit_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.employment_status == EmploymentStatus.ACTIVE
