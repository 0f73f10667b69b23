from __future__ import annotations

from enum import Enum


class Direction(str, Enum):
    """Type of a single gate-entry event."""

    IN = "IN"
    OUT = "OUT"

    @property
    def opposite(self) -> "Direction":
        return Direction.OUT if self is Direction.IN else Direction.IN


class EmploymentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AttendanceStatus(str, Enum):
    """Terminal status of one AttendanceDay, stored verbatim."""

    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half-day"
    LATE = "late"
    EARLY_LEAVE = "early-leave"
    ON_LEAVE = "on-leave"
    HOLIDAY = "holiday"


class EntrySource(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"
    BULK = "bulk"
    DEVICE = "device"


class IssueKind(str, Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"
    INFO = "INFO"
    LATE_ARRIVAL = "LATE_ARRIVAL"
    EARLY_LEAVE = "EARLY_LEAVE"
    EXCESSIVE_ENTRIES = "EXCESSIVE_ENTRIES"
    MISSING_CHECKOUT = "MISSING_CHECKOUT"
    INCOMPLETE_PAIR = "INCOMPLETE_PAIR"
    WEEKEND_MARKING = "WEEKEND_MARKING"
    AFTER_HOURS = "AFTER_HOURS"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class LeaveStatus(str, Enum):
    """Approval workflow of a leave application."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class LeaveType(str, Enum):
    SICK = "sick"
    CASUAL = "casual"
    EARNED = "earned"
    UNPAID = "unpaid"
    EMERGENCY = "emergency"
    MATERNITY = "maternity"
    PATERNITY = "paternity"


class PaymentMode(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    UPI = "upi"
    CHEQUE = "cheque"
    OTHER = "other"
