from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.constants import EXCESSIVE_ENTRY_THRESHOLD
from ..core.enums import AttendanceStatus, Direction, EntrySource, IssueKind, Severity


@dataclass(frozen=True)
class Entry:
    direction: Direction
    timestamp: datetime
    source: EntrySource = EntrySource.MANUAL
    device_id: Optional[str] = None
    marked_by: Optional[int] = None
    notes: str = ""


@dataclass(frozen=True)
class ValidationIssue:
    kind: IssueKind
    severity: Severity
    message: str
    timestamp: datetime


@dataclass(frozen=True)
class AttendanceDay:
    """All of one worker's entries on one date plus the derived status."""

    worker_id: int
    site_id: int
    work_date: date
    status: AttendanceStatus
    entries: Tuple[Entry, ...] = ()
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    total_hours: float = 0.0
    is_late: bool = False
    is_early_leave: bool = False
    leave_application_id: Optional[int] = None
    validation_issues: Tuple[ValidationIssue, ...] = ()
    auto_closed: bool = False
    reconciled: bool = True
    reconciled_by: Optional[int] = None
    reconciled_at: Optional[datetime] = None
    reconciliation_notes: Optional[str] = None
    notes: str = ""
    day_id: Optional[int] = None

    @property
    def has_entries(self) -> bool:
        return bool(self.entries)

    def to_document(self) -> Dict[str, Any]:
        """Record layout read by reporting tools."""

        return {
            "id": self.day_id,
            "employee": self.worker_id,
            "site": self.site_id,
            "date": self.work_date.isoformat(),
            "entries": [
                {
                    "type": e.direction.value,
                    "timestamp": e.timestamp.isoformat(),
                    "source": e.source.value,
                    "deviceId": e.device_id,
                    "markedBy": e.marked_by,
                    "notes": e.notes,
                }
                for e in self.entries
            ],
            "checkInTime": self.check_in_time.isoformat() if self.check_in_time else None,
            "checkOutTime": self.check_out_time.isoformat() if self.check_out_time else None,
            "totalHours": self.total_hours,
            "status": self.status.value,
            "isLate": self.is_late,
            "isEarlyLeave": self.is_early_leave,
            "leaveApplication": self.leave_application_id,
            "validationIssues": [
                {
                    "type": i.kind.value,
                    "severity": i.severity.value,
                    "message": i.message,
                    "timestamp": i.timestamp.isoformat(),
                }
                for i in self.validation_issues
            ],
            "reconciled": self.reconciled,
            "reconciledBy": self.reconciled_by,
            "reconciledAt": self.reconciled_at.isoformat() if self.reconciled_at else None,
            "reconciliationNotes": self.reconciliation_notes,
            "autoClosed": self.auto_closed,
            "notes": self.notes,
        }


def sort_entries(entries: Sequence[Entry]) -> Tuple[Entry, ...]:
    return tuple(sorted(entries, key=lambda e: e.timestamp))


def derive_times(entries: Sequence[Entry]) -> Tuple[Optional[datetime], Optional[datetime], float]:
    """First IN, last OUT and the hours between them (0 while the day is open)."""

    ordered = sort_entries(entries)
    ins = [e.timestamp for e in ordered if e.direction == Direction.IN]
    outs = [e.timestamp for e in ordered if e.direction == Direction.OUT]
    check_in = ins[0] if ins else None
    check_out = outs[-1] if outs else None

    hours = 0.0
    if check_in and check_out and check_out > check_in:
        hours = round((check_out - check_in).total_seconds() / 3600, 2)
    return check_in, check_out, hours


def summarize_issues(day: AttendanceDay, *, now: datetime) -> List[ValidationIssue]:
    """Structural problems of a stored day, for review screens."""

    issues: List[ValidationIssue] = []
    count = len(day.entries)
    if count > EXCESSIVE_ENTRY_THRESHOLD:
        issues.append(
            ValidationIssue(IssueKind.EXCESSIVE_ENTRIES, Severity.HIGH, f"Excessive entries: {count} entries recorded", now)
        )
    if day.is_late:
        issues.append(ValidationIssue(IssueKind.LATE_ARRIVAL, Severity.MEDIUM, "Employee arrived late", now))
    if day.is_early_leave:
        issues.append(ValidationIssue(IssueKind.EARLY_LEAVE, Severity.MEDIUM, "Employee left early", now))
    if day.check_in_time and not day.check_out_time:
        issues.append(ValidationIssue(IssueKind.MISSING_CHECKOUT, Severity.HIGH, "Check-out not recorded", now))
    if count % 2 != 0:
        issues.append(
            ValidationIssue(IssueKind.INCOMPLETE_PAIR, Severity.HIGH, "Odd number of entries (incomplete IN/OUT pair)", now)
        )
    return issues
