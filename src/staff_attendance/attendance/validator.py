from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.enums import Direction
from ..leaves.model import LeaveApplication
from ..leaves.repository import LeaveRepository
from ..sites.model import SitePolicy
from ..sites.repository import SitePolicyRepository
from ..sites.service import load_site_policy
from .checks.base import EntryCandidate, EntryContext
from .factory import EntryCheckFactory
from .model import Entry, ValidationIssue, sort_entries
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    admit: bool
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    info: Tuple[str, ...] = ()
    issues: Tuple[ValidationIssue, ...] = ()
    leave_conflict: Optional[LeaveApplication] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admit": self.admit,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "info": list(self.info),
            "leaveConflict": self.leave_conflict.to_document() if self.leave_conflict else None,
        }


class EntryValidator:
    """Decides whether a gate entry may be recorded.

    Checks run in order and stop at the first rejection. The decision is
    authoritative: callers persist the entry only when ``admit`` is true.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        leaves: LeaveRepository,
        policies: SitePolicyRepository,
        *,
        factory: EntryCheckFactory | None = None,
    ):
        self._attendance = attendance
        self._leaves = leaves
        self._policies = policies
        self._factory = factory or EntryCheckFactory()

    def validate(
        self,
        *,
        worker_id: int,
        site_id: int,
        work_date: date,
        direction: Direction,
        timestamp: datetime,
    ) -> ValidationResult:
        """Read the day's current entries and evaluate the candidate against them."""

        try:
            day = self._attendance.get_for_worker_and_date(int(worker_id), work_date)
        except Exception as exc:
            logger.exception("Could not load entries for worker %s on %s", worker_id, work_date)
            return ValidationResult(admit=False, errors=(f"Validation failed: {exc}",))

        candidate = EntryCandidate(
            worker_id=int(worker_id),
            site_id=int(site_id),
            work_date=work_date,
            direction=Direction(direction),
            timestamp=timestamp,
        )
        policy = load_site_policy(self._policies, site_id)
        return self.evaluate(candidate, entries=day.entries if day else (), policy=policy)

    def evaluate(self, candidate: EntryCandidate, *, entries: Sequence[Entry], policy: SitePolicy) -> ValidationResult:
        ctx = EntryContext(candidate=candidate, policy=policy, entries=sort_entries(entries), leaves=self._leaves)

        warnings: List[str] = []
        info: List[str] = []
        issues: List[ValidationIssue] = []

        for check in self._factory.for_direction(candidate.direction):
            try:
                outcome = check.run(ctx)
            except Exception as exc:
                if check.critical:
                    logger.exception("Critical check %s failed for worker %s", check.name, candidate.worker_id)
                    return ValidationResult(admit=False, errors=(f"Validation failed: {exc}",))
                logger.exception("Advisory check %s skipped for worker %s", check.name, candidate.worker_id)
                continue

            if outcome.rejected:
                logger.info(
                    "Rejected %s entry for worker %s: %s",
                    candidate.direction.value,
                    candidate.worker_id,
                    outcome.errors[0],
                )
                return ValidationResult(
                    admit=False,
                    errors=outcome.errors,
                    warnings=tuple(warnings),
                    leave_conflict=outcome.leave_conflict,
                )
            warnings.extend(outcome.warnings)
            info.extend(outcome.info)
            issues.extend(outcome.issues)

        return ValidationResult(admit=True, warnings=tuple(warnings), info=tuple(info), issues=tuple(issues))
