from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..core.enums import Direction
from .checks.advisory_checks import (
    AfterHoursCheck,
    EarlyLeaveCheck,
    ExcessiveEntriesCheck,
    LateArrivalCheck,
    WeekendCheck,
)
from .checks.base import EntryCheck
from .checks.critical_checks import DuplicateCheck, LeaveConflictCheck, SequenceCheck


@dataclass
class EntryCheckFactory:
    """Factory Pattern: the ordered check chain for a candidate's direction."""

    def for_direction(self, direction: Direction) -> List[EntryCheck]:
        checks: List[EntryCheck] = [
            LeaveConflictCheck(),
            SequenceCheck(),
            DuplicateCheck(),
            ExcessiveEntriesCheck(),
        ]
        if direction == Direction.IN:
            checks.append(LateArrivalCheck())
        else:
            checks.append(EarlyLeaveCheck())
        checks.extend([WeekendCheck(), AfterHoursCheck()])
        return checks
