from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ...core.enums import Direction
from ...leaves.model import LeaveApplication
from ...leaves.repository import LeaveRepository
from ...sites.model import SitePolicy
from ..model import Entry, ValidationIssue


@dataclass(frozen=True)
class EntryCandidate:
    worker_id: int
    site_id: int
    work_date: date
    direction: Direction
    timestamp: datetime


@dataclass(frozen=True)
class EntryContext:
    """Everything a check may look at; ``entries`` are sorted by timestamp."""

    candidate: EntryCandidate
    policy: SitePolicy
    entries: Tuple[Entry, ...]
    leaves: LeaveRepository


@dataclass(frozen=True)
class CheckOutcome:
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    info: Tuple[str, ...] = ()
    issues: Tuple[ValidationIssue, ...] = ()
    leave_conflict: Optional[LeaveApplication] = None

    @property
    def rejected(self) -> bool:
        return bool(self.errors)


PASS = CheckOutcome()


class EntryCheck(ABC):
    """Strategy Pattern: one admissibility rule for a candidate entry.

    Critical checks reject the entry when they cannot run; advisory checks
    are skipped instead.
    """

    name: str = "check"
    critical: bool = False

    @abstractmethod
    def run(self, ctx: EntryContext) -> CheckOutcome:
        raise NotImplementedError
